"""
File Storage

Uploaded files are written under UPLOAD_DIR/<tenant_id>/<kind>/ and served
by the static mount at UPLOAD_URL_PREFIX. Callers store the returned URL.
"""
from pathlib import Path
import uuid

from fastapi import UploadFile

from taskbrick.config import get_settings
from taskbrick.core.exceptions import InvalidInputError
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


async def save_upload(file: UploadFile, tenant_id: str, kind: str) -> str:
    """
    Persist an uploaded file and return its public URL.

    kind groups files per feature: "logos", "profiles", "comments", ...
    """
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise InvalidInputError(f"File too large (max {settings.MAX_UPLOAD_SIZE} bytes)")

    upload_dir = Path(settings.UPLOAD_DIR) / tenant_id / kind
    upload_dir.mkdir(parents=True, exist_ok=True)

    # Never trust the client filename for the path; keep only the extension
    ext = Path(file.filename).suffix if file.filename else ""
    filename = f"{uuid.uuid4()}{ext}"
    with open(upload_dir / filename, "wb") as f:
        f.write(content)

    logger.debug(f"Stored upload {filename} ({len(content)} bytes) for tenant {tenant_id}")
    return f"{settings.UPLOAD_URL_PREFIX}/{tenant_id}/{kind}/{filename}"

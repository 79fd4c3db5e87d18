"""
Shared field types for request schemas.
"""
from pydantic import AfterValidator
from typing import Annotated
from datetime import datetime, timezone


def to_naive_utc(value: datetime) -> datetime:
    # Stored datetimes are naive UTC; aware input is converted so the two compare
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]

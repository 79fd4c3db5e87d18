"""
Comment Endpoints

Comments on a task. Create/update take multipart forms so files can be
attached; deletion is soft.
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session
from typing import List, Optional

from taskbrick.database import get_db
from taskbrick.models.user import User
from taskbrick.models.comment import Comment
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.comment import CommentResponse
from taskbrick.api.deps import (
    get_current_tenant,
    get_current_user,
    get_task_or_404,
    verify_path_tenant,
)
from taskbrick.core.permissions import can_modify_comment
from taskbrick.core.exceptions import CommentNotFoundError, InvalidInputError, PermissionDenied
from taskbrick.services.storage import save_upload
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}/tasks/{task_id}/comments",
    tags=["comments"],
    dependencies=[Depends(verify_path_tenant)],
)


def _to_response(comment: Comment, author: Optional[User]) -> CommentResponse:
    response = CommentResponse.model_validate(comment)
    response.author_first_name = author.first_name if author else None
    return response


def _get_comment(db: Session, tenant_id: str, task_id: str, comment_id: str) -> Comment:
    comment = db.query(Comment).filter(
        Comment.id == comment_id,
        Comment.task_id == task_id,
        Comment.tenant_id == tenant_id,  # CRITICAL
        Comment.is_deleted == False  # noqa: E712
    ).first()
    if not comment:
        raise CommentNotFoundError(comment_id)
    return comment


@router.get("", response_model=list[CommentResponse])
async def list_comments(
    task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    get_task_or_404(db, tenant.id, task_id)

    rows = db.query(Comment, User).outerjoin(User, User.id == Comment.user_id).filter(
        Comment.task_id == task_id,
        Comment.tenant_id == tenant.id,
        Comment.is_deleted == False  # noqa: E712
    ).order_by(Comment.created_at).all()

    return [_to_response(comment, author) for comment, author in rows]


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    task_id: str,
    body: str = Form(...),
    attachments: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, tenant.id, task_id)
    if not body.strip():
        raise InvalidInputError("Comment body is required")

    urls = [await save_upload(f, tenant.id, "comments") for f in attachments or [] if f.filename]

    comment = Comment(
        tenant_id=tenant.id,
        task_id=task.id,
        user_id=current_user.id,
        body=body.strip(),
        attachments=urls,
        reactions=[],
    )
    db.add(comment)
    db.commit()

    logger.info(f"Comment created: {comment.id} on task {task.id} by {current_user.id}")
    return _to_response(comment, current_user)


@router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(
    task_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    comment = _get_comment(db, tenant.id, task_id, comment_id)
    author = db.query(User).filter(User.id == comment.user_id).first() if comment.user_id else None
    return _to_response(comment, author)


@router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    task_id: str,
    comment_id: str,
    body: Optional[str] = Form(None),
    reaction: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Edit the body and/or add a reaction.

    A reaction already present is not added twice.
    """
    comment = _get_comment(db, tenant.id, task_id, comment_id)

    if not can_modify_comment(current_user, comment.user_id):
        raise PermissionDenied("Not authorized to modify this comment")

    if body is not None:
        if not body.strip():
            raise InvalidInputError("Comment body cannot be empty")
        comment.body = body.strip()

    if reaction:
        reactions = list(comment.reactions or [])
        if reaction not in reactions:
            # Reassign so the JSON column is flagged as changed
            comment.reactions = reactions + [reaction]

    db.commit()

    author = db.query(User).filter(User.id == comment.user_id).first() if comment.user_id else None
    return _to_response(comment, author)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    task_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    comment = _get_comment(db, tenant.id, task_id, comment_id)

    if not can_modify_comment(current_user, comment.user_id):
        raise PermissionDenied("Not authorized to delete this comment")

    comment.soft_delete(current_user.id)
    db.commit()

    logger.info(f"Comment soft deleted: {comment_id} by {current_user.id}")
    return None

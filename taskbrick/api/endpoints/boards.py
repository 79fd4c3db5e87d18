"""
Board Endpoints

Boards of a project and the placement of tasks on them.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskbrick.database import get_db
from taskbrick.models.user import User
from taskbrick.models.board import Board, BoardTask
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.board import (
    BoardCreate,
    BoardReplace,
    BoardResponse,
    BoardTaskCreate,
    BoardTaskResponse,
    BoardTaskUpdate,
)
from taskbrick.api.deps import (
    get_current_tenant,
    get_current_user,
    get_or_404,
    get_project_or_404,
    get_task_or_404,
    verify_path_tenant,
)
from taskbrick.core.exceptions import BoardNotFoundError, BoardTaskNotFoundError, ConflictError
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}/boards",
    tags=["boards"],
    dependencies=[Depends(verify_path_tenant)],
)


def _get_board(db: Session, tenant_id: str, board_id: str) -> Board:
    return get_or_404(db, Board, board_id, tenant_id, BoardNotFoundError)


def _get_board_task(db: Session, board: Board, board_task_id: str) -> BoardTask:
    board_task = db.query(BoardTask).filter(
        BoardTask.id == board_task_id,
        BoardTask.board_id == board.id
    ).first()
    if not board_task:
        raise BoardTaskNotFoundError(board_task_id)
    return board_task


@router.get("", response_model=list[BoardResponse])
async def list_boards(
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return db.query(Board).filter(Board.tenant_id == tenant.id).order_by(Board.created_at).all()


@router.post("", response_model=BoardResponse, status_code=status.HTTP_201_CREATED)
async def create_board(
    body: BoardCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    get_project_or_404(db, tenant.id, body.project_id)

    board = Board(tenant_id=tenant.id, **body.model_dump())
    db.add(board)
    db.commit()

    logger.info(f"Board created: {board.id} by {current_user.id}")
    return board


@router.get("/{board_id}", response_model=BoardResponse)
async def get_board(
    board_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return _get_board(db, tenant.id, board_id)


@router.put("/{board_id}", response_model=BoardResponse)
async def replace_board(
    board_id: str,
    body: BoardReplace,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    board = _get_board(db, tenant.id, board_id)
    get_project_or_404(db, tenant.id, body.project_id)

    for field, value in body.model_dump().items():
        setattr(board, field, value)
    db.commit()
    return board


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board(
    board_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    board = _get_board(db, tenant.id, board_id)
    db.delete(board)
    db.commit()

    logger.info(f"Board deleted: {board_id} by {current_user.id}")
    return None


# ============================================================================
# BOARD TASKS
# ============================================================================

@router.get("/{board_id}/tasks", response_model=list[BoardTaskResponse])
async def list_board_tasks(
    board_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    board = _get_board(db, tenant.id, board_id)
    return db.query(BoardTask).filter(
        BoardTask.board_id == board.id
    ).order_by(BoardTask.column, BoardTask.position).all()


@router.post("/{board_id}/tasks", response_model=BoardTaskResponse, status_code=status.HTTP_201_CREATED)
async def create_board_task(
    board_id: str,
    body: BoardTaskCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    board = _get_board(db, tenant.id, board_id)
    task = get_task_or_404(db, tenant.id, body.task_id)

    board_task = BoardTask(board_id=board.id, task_id=task.id, position=body.position, column=body.column)
    db.add(board_task)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Task is already on this board")
    return board_task


@router.get("/{board_id}/tasks/{board_task_id}", response_model=BoardTaskResponse)
async def get_board_task(
    board_id: str,
    board_task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    board = _get_board(db, tenant.id, board_id)
    return _get_board_task(db, board, board_task_id)


@router.put("/{board_id}/tasks/{board_task_id}", response_model=BoardTaskResponse)
async def update_board_task(
    board_id: str,
    board_task_id: str,
    body: BoardTaskUpdate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Move a task on the board. The column is kept when omitted."""
    board = _get_board(db, tenant.id, board_id)
    board_task = _get_board_task(db, board, board_task_id)

    if body.task_id:
        board_task.task_id = get_task_or_404(db, tenant.id, body.task_id).id
    if body.position is not None:
        board_task.position = body.position
    if body.column is not None:
        board_task.column = body.column
    db.commit()
    return board_task


@router.delete("/{board_id}/tasks/{board_task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board_task(
    board_id: str,
    board_task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    board = _get_board(db, tenant.id, board_id)
    db.delete(_get_board_task(db, board, board_task_id))
    db.commit()
    return None

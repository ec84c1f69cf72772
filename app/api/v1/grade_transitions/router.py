from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.enums import TransitionStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    GradeTransitionCreate,
    GradeTransitionListResponse,
    GradeTransitionResponse,
    GradeTransitionUpdate,
    HistoryResponse,
    SuggestedMapping,
    TransitionPreview,
    TransitionResult,
)
from . import service

router = APIRouter(prefix="/api/v1/grade-transitions", tags=["grade-transitions"])


@router.get(
    "",
    response_model=GradeTransitionListResponse,
    dependencies=[Depends(check_permission("grade_transitions", "read"))],
)
async def list_grade_transitions(
    status_filter: Optional[TransitionStatus] = Query(None, alias="status", description="draft, applied or reverted"),
    academic_year: Optional[str] = Query(None, description="e.g. 2025-2026"),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> GradeTransitionListResponse:
    """List transitions, newest first."""
    items, total = await service.list_transitions(
        db,
        status_filter=status_filter.value if status_filter else None,
        academic_year=academic_year,
        limit=limit,
        offset=offset,
    )
    return GradeTransitionListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get(
    "/classes",
    response_model=List[str],
    dependencies=[Depends(check_permission("grade_transitions", "read"))],
)
async def get_distinct_classes(db: AsyncSession = Depends(get_db)) -> List[str]:
    """All class labels that currently have students."""
    return await service.get_distinct_classes(db)


@router.get(
    "/suggest",
    response_model=List[SuggestedMapping],
    dependencies=[Depends(check_permission("grade_transitions", "read"))],
)
async def suggest_mappings(db: AsyncSession = Depends(get_db)) -> List[SuggestedMapping]:
    """Suggested mappings from class names (1a -> 2a, final grade graduates). Nothing is saved."""
    return await service.suggest_mappings(db)


@router.post(
    "",
    response_model=GradeTransitionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("grade_transitions", "create"))],
)
async def create_grade_transition(
    payload: GradeTransitionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GradeTransitionResponse:
    """Create a draft transition."""
    try:
        return await service.create_transition(db, payload, created_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{transition_id}",
    response_model=GradeTransitionResponse,
    dependencies=[Depends(check_permission("grade_transitions", "read"))],
)
async def get_grade_transition(
    transition_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> GradeTransitionResponse:
    try:
        return await service.get_transition(db, transition_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{transition_id}/preview",
    response_model=TransitionPreview,
    dependencies=[Depends(check_permission("grade_transitions", "read"))],
)
async def preview_grade_transition(
    transition_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> TransitionPreview:
    """What apply would do right now: per-mapping counts, unmapped classes, warnings."""
    try:
        return await service.preview_transition(db, transition_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{transition_id}/history",
    response_model=List[HistoryResponse],
    dependencies=[Depends(check_permission("grade_transitions", "read"))],
)
async def get_grade_transition_history(
    transition_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[HistoryResponse]:
    try:
        return await service.get_history(db, transition_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{transition_id}",
    response_model=GradeTransitionResponse,
    dependencies=[Depends(check_permission("grade_transitions", "update"))],
)
async def update_grade_transition(
    transition_id: UUID,
    payload: GradeTransitionUpdate,
    db: AsyncSession = Depends(get_db),
) -> GradeTransitionResponse:
    """Update a draft. If mappings is sent it replaces all existing mappings."""
    try:
        return await service.update_transition(db, transition_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{transition_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("grade_transitions", "delete"))],
)
async def delete_grade_transition(
    transition_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a draft transition and its mappings."""
    try:
        await service.delete_transition(db, transition_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{transition_id}/apply",
    response_model=TransitionResult,
    dependencies=[Depends(check_permission("grade_transitions", "apply"))],
)
async def apply_grade_transition(
    transition_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TransitionResult:
    """Promote and graduate students. Graduates are deleted permanently."""
    try:
        return await service.apply_transition(db, transition_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{transition_id}/revert",
    response_model=TransitionResult,
    dependencies=[Depends(check_permission("grade_transitions", "apply"))],
)
async def revert_grade_transition(
    transition_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TransitionResult:
    """Move promoted students back to their previous class. Graduates cannot be restored."""
    try:
        return await service.revert_transition(db, transition_id, actor_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

"""
Grade transition workflow: draft CRUD, preview, apply and revert.

Apply and revert each run as one transaction on the caller's session. Any store error
rolls the whole operation back and leaves the transition in its previous status.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import TransitionAction, TransitionStatus
from app.core.exceptions import NotFoundError, ServiceError, StateConflictError, TransactionFailure, ValidationError
from app.core.models import GradeTransition, GradeTransitionHistory

from . import repository
from .schemas import (
    GradeTransitionCreate,
    GradeTransitionResponse,
    GradeTransitionUpdate,
    HistoryResponse,
    MappingPreview,
    MappingResponse,
    SuggestedMapping,
    TransitionPreview,
    TransitionResult,
    UnmappedClassInfo,
)
from .suggestions import build_suggestions
from .validation import validate_academic_year, validate_created_by, validate_mappings

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_response(t: GradeTransition) -> GradeTransitionResponse:
    return GradeTransitionResponse(
        id=t.id,
        academic_year=t.academic_year,
        status=t.status,
        notes=t.notes,
        created_by=t.created_by,
        created_at=t.created_at,
        updated_at=t.updated_at,
        applied_at=t.applied_at,
        applied_by=t.applied_by,
        reverted_at=t.reverted_at,
        reverted_by=t.reverted_by,
        mappings=[
            MappingResponse(id=m.id, from_class=m.from_class, to_class=m.to_class, action=m.action)
            for m in t.mappings
        ],
        can_modify=t.can_modify(),
        can_apply=t.can_apply(),
        can_revert=t.can_revert(),
    )


async def _get_or_404(db: AsyncSession, transition_id: UUID, *, for_update: bool = False) -> GradeTransition:
    transition = await repository.find_transition(db, transition_id, for_update=for_update)
    if not transition:
        raise NotFoundError("Grade transition not found")
    return transition


# ----- draft CRUD -----


async def create_transition(
    db: AsyncSession,
    payload: GradeTransitionCreate,
    created_by: Optional[UUID],
) -> GradeTransitionResponse:
    """Create a draft transition with its mappings (possibly none)."""
    academic_year = validate_academic_year(payload.academic_year)
    actor = validate_created_by(created_by)
    rules = validate_mappings(payload.mappings)

    transition = GradeTransition(
        academic_year=academic_year,
        status=TransitionStatus.DRAFT.value,
        notes=payload.notes,
        created_by=actor,
        mappings=[],
    )
    db.add(transition)
    try:
        await repository.replace_mappings(db, transition, rules)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationError("duplicate mapping for the same from_class")
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to create grade transition for %s", academic_year)
        raise TransactionFailure("failed to create transition") from exc

    logger.info("Created grade transition %s (%s) with %d mappings", transition.id, academic_year, len(rules))
    return await get_transition(db, transition.id)


async def update_transition(
    db: AsyncSession,
    transition_id: UUID,
    payload: GradeTransitionUpdate,
) -> GradeTransitionResponse:
    """Update a draft. Supplied mappings replace the existing set; omitted mappings are left alone."""
    transition = await _get_or_404(db, transition_id, for_update=True)
    if not transition.can_modify():
        raise StateConflictError("cannot modify transition: must be in draft status")

    academic_year = transition.academic_year
    if payload.academic_year is not None:
        academic_year = validate_academic_year(payload.academic_year)
    rules = validate_mappings(payload.mappings) if payload.mappings is not None else None

    transition.academic_year = academic_year
    if payload.notes is not None:
        transition.notes = payload.notes
    try:
        if rules is not None:
            await repository.replace_mappings(db, transition, rules)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationError("duplicate mapping for the same from_class")
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to update grade transition %s", transition_id)
        raise TransactionFailure("failed to update transition") from exc

    return await get_transition(db, transition_id)


async def delete_transition(db: AsyncSession, transition_id: UUID) -> None:
    transition = await _get_or_404(db, transition_id, for_update=True)
    if not transition.can_modify():
        raise StateConflictError("cannot delete transition: must be in draft status")
    await db.delete(transition)
    await db.commit()
    logger.info("Deleted grade transition %s", transition_id)


async def get_transition(db: AsyncSession, transition_id: UUID) -> GradeTransitionResponse:
    transition = await _get_or_404(db, transition_id)
    return _to_response(transition)


async def list_transitions(
    db: AsyncSession,
    *,
    status_filter: Optional[str] = None,
    academic_year: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[GradeTransitionResponse], int]:
    """Newest first, with the total count for pagination."""
    rows, total = await repository.list_transitions(
        db,
        status_filter=status_filter,
        academic_year=academic_year,
        limit=limit,
        offset=offset,
    )
    return [_to_response(t) for t in rows], total


# ----- preview -----


async def preview_transition(db: AsyncSession, transition_id: UUID) -> TransitionPreview:
    """Simulate apply against the live roster. Read-only; valid in any status."""
    transition = await _get_or_404(db, transition_id)
    class_counts = await repository.get_class_counts(db)

    preview = TransitionPreview(transition_id=transition.id, academic_year=transition.academic_year)
    mapped_classes = set()
    for mapping in transition.mappings:
        count = class_counts.get(mapping.from_class, 0)
        if mapping.is_graduating():
            preview.to_graduate += count
        else:
            preview.to_promote += count
        preview.total_students += count
        preview.by_mapping.append(
            MappingPreview(
                from_class=mapping.from_class,
                to_class=mapping.to_class,
                student_count=count,
                action=mapping.action,
            )
        )
        mapped_classes.add(mapping.from_class)

    for class_name in sorted(class_counts):
        if class_name not in mapped_classes:
            preview.unmapped_classes.append(
                UnmappedClassInfo(class_name=class_name, student_count=class_counts[class_name])
            )

    if preview.unmapped_classes:
        preview.warnings.append(
            f"{len(preview.unmapped_classes)} classes with students are not included in this transition"
        )
    if preview.to_graduate > 0:
        preview.warnings.append(f"{preview.to_graduate} students will be permanently deleted (graduates)")
    return preview


# ----- apply / revert -----


def _check_can_apply(transition: GradeTransition) -> None:
    if transition.can_apply():
        return
    if transition.is_applied():
        raise StateConflictError("transition has already been applied")
    if transition.is_reverted():
        raise StateConflictError("transition has been reverted")
    raise StateConflictError("cannot apply transition: must be in draft status with mappings")


def _check_can_revert(transition: GradeTransition) -> None:
    if transition.can_revert():
        return
    if transition.is_draft():
        raise StateConflictError("transition has not been applied yet")
    raise StateConflictError("transition has already been reverted")


async def apply_transition(db: AsyncSession, transition_id: UUID, actor_id: UUID) -> TransitionResult:
    """Draft -> applied: write history, promote, delete graduates, stamp the transition."""
    try:
        transition = await _get_or_404(db, transition_id, for_update=True)
        _check_can_apply(transition)

        class_lookup: Dict[str, Optional[str]] = {m.from_class: m.to_class for m in transition.mappings}
        promote_lookup = {k: v for k, v in class_lookup.items() if v is not None}

        # Captured before any change so history holds the pre-apply classes.
        students = await repository.get_students_by_classes(db, list(class_lookup), for_update=True)

        history: List[GradeTransitionHistory] = []
        promote_ids: List[UUID] = []
        graduate_ids: List[UUID] = []
        for student_id, full_name, school_class in students:
            to_class = class_lookup[school_class]
            if to_class is None:
                action = TransitionAction.GRADUATED.value
                graduate_ids.append(student_id)
            else:
                action = TransitionAction.PROMOTED.value
                promote_ids.append(student_id)
            history.append(
                GradeTransitionHistory(
                    transition_id=transition.id,
                    student_id=student_id,
                    person_name=full_name,
                    from_class=school_class,
                    to_class=to_class,
                    action=action,
                )
            )

        if history:
            await repository.create_history_batch(db, history)
        promoted = await repository.promote_students(db, promote_ids, promote_lookup)
        graduated = await repository.delete_students(db, graduate_ids)

        updated = await repository.set_transition_status(
            db,
            transition.id,
            expected_status=TransitionStatus.DRAFT.value,
            values={
                "status": TransitionStatus.APPLIED.value,
                "applied_at": _now(),
                "applied_by": actor_id,
            },
        )
        if updated != 1:
            raise StateConflictError("transition has already been applied")
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Applying grade transition %s failed; rolled back", transition_id)
        raise TransactionFailure("failed to apply transition; no changes were made") from exc

    result = TransitionResult(
        transition_id=transition_id,
        status=TransitionStatus.APPLIED.value,
        students_promoted=promoted,
        students_graduated=graduated,
        can_revert=True,
    )
    if graduated > 0:
        result.warnings.append(f"{graduated} students were permanently deleted (graduates)")
    logger.info(
        "Applied grade transition %s by %s: %d promoted, %d graduated",
        transition_id,
        actor_id,
        promoted,
        graduated,
    )
    return result


async def revert_transition(db: AsyncSession, transition_id: UUID, actor_id: UUID) -> TransitionResult:
    """Applied -> reverted: move promoted students back to their recorded class.
    Graduated students were deleted at apply time and cannot be restored."""
    missing = 0
    restored = 0
    graduated = 0
    try:
        transition = await _get_or_404(db, transition_id, for_update=True)
        _check_can_revert(transition)

        for record in await repository.get_history(db, transition.id):
            if record.was_promoted():
                # Zero rows means the student was deleted after promotion; other errors propagate.
                if await repository.restore_student_class(db, record.student_id, record.from_class):
                    restored += 1
                else:
                    missing += 1
            elif record.was_graduated():
                graduated += 1

        updated = await repository.set_transition_status(
            db,
            transition.id,
            expected_status=TransitionStatus.APPLIED.value,
            values={
                "status": TransitionStatus.REVERTED.value,
                "reverted_at": _now(),
                "reverted_by": actor_id,
            },
        )
        if updated != 1:
            raise StateConflictError("transition has already been reverted")
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Reverting grade transition %s failed; rolled back", transition_id)
        raise TransactionFailure("failed to revert transition; no changes were made") from exc

    result = TransitionResult(
        transition_id=transition_id,
        status=TransitionStatus.REVERTED.value,
        students_promoted=restored,
        students_graduated=0,
        can_revert=False,
    )
    if missing > 0:
        result.warnings.append(f"{missing} promoted students could not be reverted (no longer exist)")
        logger.warning("Grade transition %s: %d promoted students no longer exist", transition_id, missing)
    if graduated > 0:
        result.warnings.append(f"{graduated} graduated students cannot be restored (were permanently deleted)")
        logger.warning("Grade transition %s: %d graduated students cannot be restored", transition_id, graduated)
    logger.info("Reverted grade transition %s by %s: %d students restored", transition_id, actor_id, restored)
    return result


# ----- utilities -----


async def get_distinct_classes(db: AsyncSession) -> List[str]:
    return await repository.get_distinct_classes(db)


async def suggest_mappings(db: AsyncSession) -> List[SuggestedMapping]:
    """Propose a mapping for every class with students, based on its label."""
    class_counts = await repository.get_class_counts(db)
    return build_suggestions(class_counts)


async def get_history(db: AsyncSession, transition_id: UUID) -> List[HistoryResponse]:
    await _get_or_404(db, transition_id)
    records = await repository.get_history(db, transition_id)
    return [HistoryResponse.model_validate(r) for r in records]

"""
Grade transitions: one reviewable bulk reclassification per academic year.
Status moves draft -> applied -> reverted and never back.
Mappings are editable only while draft; history rows are written once at apply time.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import MappingAction, TransitionAction, TransitionStatus
from app.db.session import Base


class GradeTransition(Base):
    __tablename__ = "grade_transitions"
    __table_args__ = {"schema": "education"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    academic_year = Column(String(9), nullable=False, index=True)  # e.g. "2025-2026"
    status = Column(String(20), nullable=False, default=TransitionStatus.DRAFT.value)
    notes = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    applied_at = Column(DateTime(timezone=True), nullable=True)
    applied_by = Column(UUID(as_uuid=True), nullable=True)
    reverted_at = Column(DateTime(timezone=True), nullable=True)
    reverted_by = Column(UUID(as_uuid=True), nullable=True)

    mappings = relationship(
        "GradeTransitionMapping",
        back_populates="transition",
        cascade="all, delete-orphan",
        order_by="GradeTransitionMapping.from_class",
    )

    def is_draft(self) -> bool:
        return self.status == TransitionStatus.DRAFT.value

    def is_applied(self) -> bool:
        return self.status == TransitionStatus.APPLIED.value

    def is_reverted(self) -> bool:
        return self.status == TransitionStatus.REVERTED.value

    def can_modify(self) -> bool:
        return self.is_draft()

    def can_apply(self) -> bool:
        return self.is_draft() and len(self.mappings) > 0

    def can_revert(self) -> bool:
        return self.is_applied()


class GradeTransitionMapping(Base):
    """from_class -> to_class rule. to_class NULL means the class graduates."""

    __tablename__ = "grade_transition_mappings"
    __table_args__ = (
        UniqueConstraint("transition_id", "from_class", name="uq_grade_transition_mapping_from_class"),
        {"schema": "education"},
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transition_id = Column(
        UUID(as_uuid=True),
        ForeignKey("education.grade_transitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_class = Column(String(50), nullable=False)
    to_class = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    transition = relationship("GradeTransition", back_populates="mappings")

    def is_graduating(self) -> bool:
        return self.to_class is None

    @property
    def action(self) -> str:
        return MappingAction.GRADUATE.value if self.is_graduating() else MappingAction.PROMOTE.value


class GradeTransitionHistory(Base):
    """
    Append-only record of one student's class change, captured before the change was made.
    student_id has no FK: graduated students are deleted but their history stays.
    """

    __tablename__ = "grade_transition_history"
    __table_args__ = {"schema": "education"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transition_id = Column(
        UUID(as_uuid=True),
        ForeignKey("education.grade_transitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(UUID(as_uuid=True), nullable=False)
    person_name = Column(String(255), nullable=False)
    from_class = Column(String(50), nullable=False)
    to_class = Column(String(50), nullable=True)
    action = Column(String(20), nullable=False)  # promoted | graduated
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    def was_promoted(self) -> bool:
        return self.action == TransitionAction.PROMOTED.value

    def was_graduated(self) -> bool:
        return self.action == TransitionAction.GRADUATED.value

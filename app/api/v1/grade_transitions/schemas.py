from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MappingRequest(BaseModel):
    """One class rule. to_class null (or omitted) means the class graduates."""

    from_class: str = Field(..., max_length=50, description="e.g. 1a")
    to_class: Optional[str] = Field(None, max_length=50, description="e.g. 2a; null = graduate")


class GradeTransitionCreate(BaseModel):
    academic_year: str = Field(..., max_length=9, description="e.g. 2025-2026")
    notes: Optional[str] = None
    mappings: List[MappingRequest] = Field(default_factory=list)


class GradeTransitionUpdate(BaseModel):
    """Update a draft transition. mappings=None leaves mappings untouched; [] removes them all."""

    academic_year: Optional[str] = Field(None, max_length=9)
    notes: Optional[str] = None
    mappings: Optional[List[MappingRequest]] = Field(
        None,
        description="When present, fully replaces the existing mappings.",
    )


class MappingResponse(BaseModel):
    id: UUID
    from_class: str
    to_class: Optional[str] = None
    action: str  # promote | graduate

    class Config:
        from_attributes = True


class GradeTransitionResponse(BaseModel):
    id: UUID
    academic_year: str
    status: str
    notes: Optional[str] = None
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    applied_at: Optional[datetime] = None
    applied_by: Optional[UUID] = None
    reverted_at: Optional[datetime] = None
    reverted_by: Optional[UUID] = None
    mappings: List[MappingResponse] = Field(default_factory=list)
    can_modify: bool
    can_apply: bool
    can_revert: bool


class GradeTransitionListResponse(BaseModel):
    items: List[GradeTransitionResponse]
    total: int
    limit: int
    offset: int


class MappingPreview(BaseModel):
    from_class: str
    to_class: Optional[str] = None
    student_count: int
    action: str


class UnmappedClassInfo(BaseModel):
    class_name: str
    student_count: int


class TransitionPreview(BaseModel):
    """What apply would do right now. Computed from live counts; nothing is written."""

    transition_id: UUID
    academic_year: str
    total_students: int = 0
    to_promote: int = 0
    to_graduate: int = 0
    by_mapping: List[MappingPreview] = Field(default_factory=list)
    unmapped_classes: List[UnmappedClassInfo] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class TransitionResult(BaseModel):
    """Outcome of apply or revert."""

    transition_id: UUID
    status: str
    students_promoted: int = 0
    students_graduated: int = 0
    can_revert: bool
    warnings: List[str] = Field(default_factory=list)


class SuggestedMapping(BaseModel):
    from_class: str
    to_class: Optional[str] = None
    student_count: int
    is_graduating: bool


class HistoryResponse(BaseModel):
    id: UUID
    transition_id: UUID
    student_id: UUID
    person_name: str
    from_class: str
    to_class: Optional[str] = None
    action: str
    created_at: datetime

    class Config:
        from_attributes = True

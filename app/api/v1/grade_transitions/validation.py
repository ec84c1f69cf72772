"""
Validation for grade transitions and their class mappings.
Runs before anything is written, so a rejected request never leaves a partial mapping set.
"""

import re
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from app.core.exceptions import ValidationError

from .schemas import MappingRequest

ACADEMIC_YEAR_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{4}$")


def validate_academic_year(academic_year: Optional[str]) -> str:
    """Return the stripped academic year, e.g. "2025-2026"."""
    value = (academic_year or "").strip()
    if not value:
        raise ValidationError("academic year is required")
    if not ACADEMIC_YEAR_PATTERN.match(value):
        raise ValidationError("academic year must be in format YYYY-YYYY")
    return value


def validate_created_by(created_by: Optional[UUID]) -> UUID:
    if created_by is None:
        raise ValidationError("created_by is required")
    return created_by


def normalize_mapping(mapping: MappingRequest) -> Tuple[str, Optional[str]]:
    """Strip labels; an empty to_class means graduate."""
    from_class = (mapping.from_class or "").strip()
    to_class = mapping.to_class.strip() if mapping.to_class is not None else None
    if not to_class:
        to_class = None
    if not from_class:
        raise ValidationError("from_class is required")
    if to_class is not None and to_class == from_class:
        raise ValidationError(f"invalid mapping for class {from_class}: from_class and to_class cannot be the same")
    return from_class, to_class


def validate_mappings(mappings: Sequence[MappingRequest]) -> List[Tuple[str, Optional[str]]]:
    """Validate a full mapping set. Returns normalized (from_class, to_class) pairs in request order."""
    seen = set()
    rules: List[Tuple[str, Optional[str]]] = []
    for mapping in mappings:
        from_class, to_class = normalize_mapping(mapping)
        if from_class in seen:
            raise ValidationError(f"duplicate mapping for class {from_class}")
        seen.add(from_class)
        rules.append((from_class, to_class))
    return rules

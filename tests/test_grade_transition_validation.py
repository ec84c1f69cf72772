"""Academic year and mapping validation."""

import uuid

import pytest

from app.api.v1.grade_transitions.schemas import MappingRequest
from app.api.v1.grade_transitions.validation import (
    validate_academic_year,
    validate_created_by,
    validate_mappings,
)
from app.core.exceptions import ValidationError


def test_academic_year_is_stripped() -> None:
    assert validate_academic_year(" 2025-2026 ") == "2025-2026"


@pytest.mark.parametrize("value", ["", "   ", None])
def test_academic_year_required(value) -> None:
    with pytest.raises(ValidationError) as exc:
        validate_academic_year(value)
    assert "academic year is required" in exc.value.message
    assert exc.value.status_code == 400


@pytest.mark.parametrize("value", ["20252026", "25-26", "2025/2026"])
def test_academic_year_format(value: str) -> None:
    with pytest.raises(ValidationError) as exc:
        validate_academic_year(value)
    assert "format YYYY-YYYY" in exc.value.message


def test_created_by_required() -> None:
    with pytest.raises(ValidationError):
        validate_created_by(None)
    actor = uuid.uuid4()
    assert validate_created_by(actor) == actor


def test_valid_mappings_are_normalized() -> None:
    rules = validate_mappings(
        [
            MappingRequest(from_class=" 1a ", to_class=" 2a "),
            MappingRequest(from_class="4a", to_class=None),
            MappingRequest(from_class="4b", to_class="  "),
        ]
    )
    assert rules == [("1a", "2a"), ("4a", None), ("4b", None)]


def test_self_mapping_rejected() -> None:
    with pytest.raises(ValidationError) as exc:
        validate_mappings([MappingRequest(from_class="2a", to_class="3a"), MappingRequest(from_class="1a", to_class="1a")])
    assert "cannot be the same" in exc.value.message


def test_empty_from_class_rejected() -> None:
    with pytest.raises(ValidationError) as exc:
        validate_mappings([MappingRequest(from_class="   ", to_class="2a")])
    assert "from_class is required" in exc.value.message


def test_duplicate_from_class_rejected() -> None:
    with pytest.raises(ValidationError) as exc:
        validate_mappings([MappingRequest(from_class="1a", to_class="2a"), MappingRequest(from_class="1a", to_class=None)])
    assert "duplicate mapping for class 1a" in exc.value.message


def test_empty_mapping_set_is_valid() -> None:
    assert validate_mappings([]) == []

from enum import Enum


class TransitionStatus(str, Enum):
    DRAFT = "draft"
    APPLIED = "applied"
    REVERTED = "reverted"


class TransitionAction(str, Enum):
    PROMOTED = "promoted"
    GRADUATED = "graduated"


class MappingAction(str, Enum):
    PROMOTE = "promote"
    GRADUATE = "graduate"

"""Shared schemas and types for the decision tree CMS (backend and frontend contract)."""

from shared.schemas.decision_tree import (
    AnswerCreate,
    AnswerOrder,
    AnswerRead,
    AnswerUpdate,
    DisplayRule,
    ElementCreate,
    ElementRead,
    ElementUpdate,
    FormField,
    StepCreate,
    StepPathway,
    StepRead,
    StepType,
    StepUpdate,
)

__all__ = [
    "AnswerCreate",
    "AnswerOrder",
    "AnswerRead",
    "AnswerUpdate",
    "DisplayRule",
    "ElementCreate",
    "ElementRead",
    "ElementUpdate",
    "FormField",
    "StepCreate",
    "StepPathway",
    "StepRead",
    "StepType",
    "StepUpdate",
]

"""
Decision tree step, answer and element schemas.

Used by both backend (API request/response bodies) and frontend (authoring UI).
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class StepType(str, Enum):
    """Kind of step: a question with answers, or a final recommendation."""

    QUESTION = "Question"
    RESULT = "Result"


# -----------------------------------------------------------------------------
# Steps
# -----------------------------------------------------------------------------


class StepCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=255, description="Question text or result heading")
    type: StepType = Field(StepType.QUESTION, description="Question or Result")
    content: Optional[str] = Field(None, description="Rich text (HTML) shown below the title")
    hide_title: bool = Field(False, description="Hide the title on the front end (Result steps only)")


class StepUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    type: Optional[StepType] = None
    content: Optional[str] = None
    hide_title: Optional[bool] = None


class StepRead(BaseModel):
    """Single step as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: Optional[str] = None
    type: StepType
    content: Optional[str] = None
    hide_title: bool = False


class StepPathway(BaseModel):
    """Chain of questions and answers leading to a step, leaf first."""

    step_id: int
    answer_pathway: list[int] = Field(default_factory=list, description="Answer IDs, leaf to root")
    question_pathway: list[int] = Field(default_factory=list, description="Step IDs, leaf to root")
    full_pathway: list[dict[str, int]] = Field(
        default_factory=list,
        description="Interleaved {'question': id} / {'answer': id} entries, leaf to root",
    )
    tree_origin_id: Optional[int] = Field(None, description="ID of the first step of the tree")
    position: int = Field(0, description="1-based position of the step among the questions of its pathway")
    cms_edit_link: Optional[str] = Field(None, description="Deep link to edit the step in the CMS")


# -----------------------------------------------------------------------------
# Answers
# -----------------------------------------------------------------------------


class AnswerCreate(BaseModel):
    title: str = Field(..., max_length=255, description="Answer label shown to the end-user")
    resulting_step_id: Optional[int] = Field(None, description="Step displayed when this answer is chosen")
    sort: Optional[int] = Field(None, description="Position among the question's answers (appended when omitted)")


class AnswerUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    resulting_step_id: Optional[int] = None
    sort: Optional[int] = None


class AnswerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: Optional[str] = None
    sort: int = 0
    question_id: int
    resulting_step_id: Optional[int] = None


class AnswerOrder(BaseModel):
    answer_ids: list[int] = Field(..., description="Answer IDs in their new display order")


# -----------------------------------------------------------------------------
# Elements (tree roots)
# -----------------------------------------------------------------------------


class ElementCreate(BaseModel):
    title: str = Field(..., max_length=255)
    introduction: Optional[str] = Field(None, description="Rich text shown above the first step")
    first_step_id: Optional[int] = Field(None, description="Step the tree starts from")


class ElementUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    introduction: Optional[str] = None
    first_step_id: Optional[int] = None


class ElementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    introduction: Optional[str] = None
    first_step_id: Optional[int] = None


# -----------------------------------------------------------------------------
# CMS form description
# -----------------------------------------------------------------------------


class DisplayRule(BaseModel):
    """Show or hide a field depending on another field's value."""

    field: str
    operator: str = Field("is_equal_to", description="Only equality is used by the step form")
    value: Any
    show: bool = Field(True, description="True: displayIf, False: displayUnless")


class FormField(BaseModel):
    """One field of a CMS edit form."""

    name: str
    title: str
    field_type: str = Field(..., description="text, dropdown, checkbox, html, readonly, grid, tree_preview")
    tab: str = Field("Root.Main", description="Tab path the field is rendered in")
    value: Optional[Any] = None
    options: Optional[dict[str, str]] = None
    rows: Optional[int] = None
    read_only: bool = False
    display_rule: Optional[DisplayRule] = None
    config: dict[str, Any] = Field(default_factory=dict, description="Field specific settings (grid components...)")

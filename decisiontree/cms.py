"""
CMS form and grid descriptions for decision tree steps.

The authoring frontend renders these descriptions; nothing here touches the
database beyond what the step's own helpers load.
"""

from typing import Any, Optional

from decisiontree.models_db import StepModel
from shared.schemas import DisplayRule, FormField, StepType

# Columns of the steps grid: label -> value getter
SUMMARY_FIELDS: dict[str, Any] = {
    "ID": lambda step: step.id,
    "Title": lambda step: step.title,
    "Answers": lambda step: step.get_answer_tree_for_grid(),
}

STEP_TYPE_OPTIONS = {t.value: t.value for t in StepType}


def summary_row(step: StepModel) -> dict[str, Any]:
    """One row of the steps grid."""
    return {label: getter(step) for label, getter in SUMMARY_FIELDS.items()}


def build_tree_preview(
    step: StepModel,
    field_name: Optional[str] = None,
    current_id: Optional[int] = None,
    _seen: Optional[set[int]] = None,
) -> dict[str, Any]:
    """
    Nested preview of the tree below `step`: each step with its answers and
    the step each answer leads to. The step being edited is flagged `current`.
    """
    seen = _seen if _seen is not None else set()
    seen.add(step.id)
    node: dict[str, Any] = {
        "id": step.id,
        "title": step.title,
        "type": step.type,
        "current": step.is_currently_edited(field_name, current_id),
        "answers": [],
    }
    for answer in step.answers:
        child = answer.resulting_step
        entry: dict[str, Any] = {"id": answer.id, "title": answer.title, "resulting_step": None}
        if child is not None and child.id not in seen:
            entry["resulting_step"] = build_tree_preview(child, field_name, current_id, seen)
        node["answers"].append(entry)
    return node


def get_cms_fields(
    step: StepModel,
    field_name: Optional[str] = None,
    current_id: Optional[int] = None,
) -> list[FormField]:
    """
    Edit form of a step.

    Answers, parent answer and tree preview need a saved record, so they are
    only added once the step is in the database.
    """
    fields = [
        FormField(name="Title", title="Title", field_type="text", value=step.title),
        # Allow to hide the title only on Result
        FormField(
            name="HideTitle",
            title="HideTitle",
            field_type="checkbox",
            value=bool(step.hide_title),
            display_rule=DisplayRule(field="Type", value=StepType.RESULT.value),
        ),
        FormField(
            name="Type",
            title="Type",
            field_type="dropdown",
            value=step.type or StepType.QUESTION.value,
            options=STEP_TYPE_OPTIONS,
        ),
        FormField(name="Content", title="Content", field_type="html", value=step.content, rows=4),
    ]

    if not step.is_in_db():
        return fields

    parent_answer = step.get_parent_answer()
    if parent_answer is not None:
        fields.insert(
            0,
            FormField(
                name="ParentAnswerTitle",
                title="Parent Answer",
                field_type="readonly",
                value=parent_answer.title_with_question(),
                read_only=True,
            ),
        )

    fields.append(
        FormField(
            name="Answers",
            title="Answers",
            field_type="grid",
            value=[
                {"id": a.id, "title": a.title, "sort": a.sort, "resulting_step_id": a.resulting_step_id}
                for a in step.answers
            ],
            display_rule=DisplayRule(field="Type", value=StepType.RESULT.value, show=False),
            config={"components": ["record_editor", "orderable_rows"], "sort_field": "Sort"},
        )
    )

    origin = step.get_tree_origin()
    fields.append(
        FormField(
            name="Tree",
            title="Tree",
            field_type="tree_preview",
            tab="Root.Tree",
            value=build_tree_preview(origin, field_name, current_id),
            read_only=True,
        )
    )
    return fields

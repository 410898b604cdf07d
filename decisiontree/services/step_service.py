"""
Write operations on steps and answers.

Routes check permissions and existence; these functions mutate, commit and
log. They raise ValueError for references that do not resolve or that would
give a step a second way in (another parent answer, or an element).
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from decisiontree.models.member import Member
from decisiontree.models_db import AnswerModel, StepModel
from decisiontree.utils.logging import log_step_event
from shared.schemas import AnswerCreate, AnswerUpdate, StepCreate, StepUpdate

logger = logging.getLogger(__name__)


def create_step(db: Session, data: StepCreate) -> StepModel:
    row = StepModel(
        title=data.title,
        type=data.type.value,
        content=data.content,
        hide_title=data.hide_title,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    log_step_event(logger, "step_created", row.id, {"type": row.type})
    return row


def update_step(db: Session, row: StepModel, data: StepUpdate) -> StepModel:
    changes = data.model_dump(exclude_unset=True)
    # Columns that cannot be NULL keep their value when sent as null
    for key in ("type", "hide_title"):
        if key in changes and changes[key] is None:
            del changes[key]
    if "type" in changes:
        changes["type"] = changes["type"].value
    for key, value in changes.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    log_step_event(logger, "step_updated", row.id, {"fields": sorted(changes)})
    return row


def delete_step(db: Session, row: StepModel, member: Optional[Member] = None) -> list[int]:
    """Delete a step and its leaf answers. Caller has checked can_delete."""
    step_id = row.id
    deleted_answers = row.delete(db, member)
    db.commit()
    log_step_event(logger, "step_deleted", step_id, {"deleted_answers": deleted_answers})
    return deleted_answers


def _check_resulting_step(db: Session, step_id: Optional[int], answer_id: Optional[int] = None) -> None:
    """A step is reached by at most one answer and is never also an element's first step."""
    if step_id is None:
        return
    step = db.get(StepModel, step_id)
    if step is None:
        raise ValueError(f"Resulting step {step_id} not found")
    parent = step.get_parent_answer()
    if parent is not None and parent.id != answer_id:
        raise ValueError(f"Step {step_id} is already reached by answer {parent.id}")
    if step.belongs_to_element():
        raise ValueError(f"Step {step_id} is the first step of an element")


def create_answer(db: Session, question: StepModel, data: AnswerCreate) -> AnswerModel:
    _check_resulting_step(db, data.resulting_step_id)
    if data.resulting_step_id == question.id:
        raise ValueError("An answer cannot lead back to its own question")
    sort = data.sort
    if sort is None:
        current_max = (
            db.query(func.max(AnswerModel.sort)).filter(AnswerModel.question_id == question.id).scalar()
        )
        sort = (current_max or 0) + 1
    row = AnswerModel(
        title=data.title,
        sort=sort,
        question_id=question.id,
        resulting_step_id=data.resulting_step_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    log_step_event(logger, "answer_created", question.id, {"answer_id": row.id})
    return row


def update_answer(db: Session, row: AnswerModel, data: AnswerUpdate) -> AnswerModel:
    changes = data.model_dump(exclude_unset=True)
    # sort cannot be NULL; keep the current position when sent as null
    if "sort" in changes and changes["sort"] is None:
        del changes["sort"]
    if "resulting_step_id" in changes:
        _check_resulting_step(db, changes["resulting_step_id"], row.id)
        if changes["resulting_step_id"] == row.question_id:
            raise ValueError("An answer cannot lead back to its own question")
    for key, value in changes.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    log_step_event(logger, "answer_updated", row.question_id, {"answer_id": row.id, "fields": sorted(changes)})
    return row


def delete_answer(db: Session, row: AnswerModel) -> None:
    question_id, answer_id = row.question_id, row.id
    db.delete(row)
    db.commit()
    log_step_event(logger, "answer_deleted", question_id, {"answer_id": answer_id})


def reorder_answers(db: Session, question: StepModel, answer_ids: list[int]) -> list[AnswerModel]:
    """Set sort = position (1-based) for each answer ID, in the given order."""
    by_id = {a.id: a for a in question.answers}
    unknown = [i for i in answer_ids if i not in by_id]
    if unknown:
        raise ValueError(f"Answers {unknown} do not belong to step {question.id}")
    for position, answer_id in enumerate(answer_ids, start=1):
        by_id[answer_id].sort = position
    db.commit()
    db.expire(question, ["answers"])
    log_step_event(logger, "answers_reordered", question.id, {"order": answer_ids})
    return list(question.answers)

"""
Sample decision tree used for demos and local development.

Idempotent: an element with the sample title is reused rather than duplicated.
"""

import logging

from sqlalchemy.orm import Session

from decisiontree.models_db import AnswerModel, ElementModel, StepModel
from shared.schemas import StepType

logger = logging.getLogger(__name__)

SAMPLE_TITLE = "Which plan suits you?"


def _step(db: Session, title, type_=StepType.QUESTION, content=None) -> StepModel:
    step = StepModel(title=title, type=type_.value, content=content)
    db.add(step)
    db.flush()
    return step


def _answer(db: Session, question: StepModel, title: str, sort: int, resulting: StepModel) -> AnswerModel:
    answer = AnswerModel(title=title, sort=sort, question_id=question.id, resulting_step_id=resulting.id)
    db.add(answer)
    return answer


def seed_sample_tree(db: Session) -> ElementModel:
    """Create the sample element and its tree; return the existing one if already seeded."""
    existing = db.query(ElementModel).filter(ElementModel.title == SAMPLE_TITLE).first()
    if existing:
        return existing

    root = _step(db, "Do you travel often?")
    abroad = _step(db, "Do you mostly travel abroad?")
    basic = _step(db, "Basic plan", StepType.RESULT, "<p>Pay as you go, no roaming.</p>")
    national = _step(db, "National plan", StepType.RESULT, "<p>Unlimited national calls and data.</p>")
    global_ = _step(db, None, StepType.RESULT, "<p>Roaming included in 80 countries.</p>")

    _answer(db, root, "Yes", 1, abroad)
    _answer(db, root, "No", 2, basic)
    _answer(db, abroad, "Yes", 1, global_)
    _answer(db, abroad, "No", 2, national)

    element = ElementModel(title=SAMPLE_TITLE, introduction="<p>Answer a few questions.</p>", first_step_id=root.id)
    db.add(element)
    db.commit()
    db.refresh(element)
    logger.info("Seeded sample tree: element %s, first step %s", element.id, root.id)
    return element

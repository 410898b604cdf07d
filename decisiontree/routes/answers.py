"""
Routes for single answers. Answers are created and ordered through their question (see steps).
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from decisiontree.auth import get_current_member, require_permission
from decisiontree.database import get_db
from decisiontree.models.member import Member
from decisiontree.models_db import AnswerModel, ElementModel
from decisiontree.services import step_service
from shared.schemas import AnswerRead, AnswerUpdate

router = APIRouter()


def _get_answer(db: Session, answer_id: int) -> AnswerModel:
    row = db.get(AnswerModel, answer_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Answer '{answer_id}' not found")
    return row


@router.get("/{answer_id}")
def get_answer(answer_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """Answer with its question/answer label as shown in the parent answer field."""
    row = _get_answer(db, answer_id)
    require_permission(row.can_view(member), "view", "answer", answer_id, member)
    data = AnswerRead.model_validate(row).model_dump()
    data["title_with_question"] = row.title_with_question()
    return data


@router.put("/{answer_id}", response_model=AnswerRead)
def update_answer(
    answer_id: int,
    body: AnswerUpdate,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
):
    row = _get_answer(db, answer_id)
    require_permission(row.can_edit(member), "edit", "answer", answer_id, member)
    try:
        return step_service.update_answer(db, row, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/{answer_id}", status_code=204)
def delete_answer(answer_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """Delete an answer. Blocked (409) while it leads to a further step."""
    row = _get_answer(db, answer_id)
    require_permission(ElementModel.can_delete(member), "delete", "answer", answer_id, member)
    if not row.can_delete(member):
        raise HTTPException(
            status_code=409,
            detail=f"Answer '{answer_id}' leads to step '{row.resulting_step_id}'; delete that step first",
        )
    step_service.delete_answer(db, row)
    return None

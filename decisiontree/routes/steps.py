"""
CRUD, pathway and CMS routes for decision tree steps.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from decisiontree.auth import get_current_member, require_permission
from decisiontree.cms import get_cms_fields, summary_row
from decisiontree.database import get_db
from decisiontree.models.member import Member
from decisiontree.models_db import ElementModel, PathwayCycleError, StepModel
from decisiontree.services import step_service
from shared.schemas import (
    AnswerCreate,
    AnswerOrder,
    AnswerRead,
    FormField,
    StepCreate,
    StepPathway,
    StepRead,
    StepUpdate,
)

router = APIRouter()


def _get_step(db: Session, step_id: int) -> StepModel:
    row = db.get(StepModel, step_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Step '{step_id}' not found")
    return row


@router.get("/", response_model=list[dict[str, Any]])
def list_steps(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """List all steps as grid rows (ID, Title, Answers summary)."""
    require_permission(ElementModel.can_view(member), "view", "steps", None, member)
    rows = db.query(StepModel).order_by(StepModel.id).all()
    return [summary_row(r) for r in rows]


@router.get("/orphans", response_model=list[StepRead])
def list_orphans(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """Steps that belong to no tree."""
    require_permission(ElementModel.can_view(member), "view", "steps", None, member)
    return StepModel.get_orphans(db)


@router.get("/initial", response_model=list[StepRead])
def list_initial_steps(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """Question steps no answer leads to (choices for an element's first step)."""
    require_permission(ElementModel.can_view(member), "view", "steps", None, member)
    return StepModel.get_initial_steps(db)


@router.post("/", response_model=StepRead, status_code=201)
def create_step(body: StepCreate, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    require_permission(ElementModel.can_create(member), "create", "step", None, member)
    return step_service.create_step(db, body)


@router.get("/{step_id}", response_model=StepRead)
def get_step(step_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    row = _get_step(db, step_id)
    require_permission(row.can_view(member), "view", "step", step_id, member)
    return row


@router.put("/{step_id}", response_model=StepRead)
def update_step(
    step_id: int,
    body: StepUpdate,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
):
    row = _get_step(db, step_id)
    require_permission(row.can_edit(member), "edit", "step", step_id, member)
    return step_service.update_step(db, row, body)


@router.delete("/{step_id}", status_code=204)
def delete_step(step_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """Delete a step and the answers that lead nowhere. Blocked (409) by answers leading to further steps."""
    row = _get_step(db, step_id)
    require_permission(ElementModel.can_delete(member), "delete", "step", step_id, member)
    if not row.can_delete(member):
        raise HTTPException(
            status_code=409,
            detail=f"Step '{step_id}' has answers leading to further steps; delete those first",
        )
    step_service.delete_step(db, row, member)
    return None


@router.get("/{step_id}/pathway", response_model=StepPathway)
def get_pathway(step_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """Questions and answers leading to this step, its tree origin, position and CMS edit link."""
    row = _get_step(db, step_id)
    require_permission(row.can_view(member), "view", "step", step_id, member)
    try:
        return StepPathway(
            step_id=row.id,
            answer_pathway=row.get_answer_pathway(),
            question_pathway=row.get_question_pathway(),
            full_pathway=row.get_full_pathway(),
            tree_origin_id=row.get_tree_origin().id,
            position=row.get_position_in_pathway(),
            cms_edit_link=row.cms_edit_link(),
        )
    except PathwayCycleError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.get("/{step_id}/cms-fields", response_model=list[FormField])
def get_step_cms_fields(
    step_id: int,
    field_name: Optional[str] = Query(None, description="Relationship the step is edited through (ResultingStep, FirstStep)"),
    current_id: Optional[int] = Query(None, description="ID of the record being edited"),
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
):
    """Edit form description for the step."""
    row = _get_step(db, step_id)
    require_permission(row.can_edit(member), "edit", "step", step_id, member)
    if field_name is None:
        field_name = "ResultingStep" if row.belongs_to_answer() else "FirstStep"
    if current_id is None:
        current_id = row.id
    try:
        return get_cms_fields(row, field_name, current_id)
    except PathwayCycleError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.get("/{step_id}/answers-optionset")
def get_answers_optionset(step_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    row = _get_step(db, step_id)
    require_permission(row.can_view(member), "view", "step", step_id, member)
    return row.get_answers_optionset()


@router.get("/{step_id}/answers", response_model=list[AnswerRead])
def list_answers(step_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    row = _get_step(db, step_id)
    require_permission(row.can_view(member), "view", "step", step_id, member)
    return row.answers


@router.post("/{step_id}/answers", response_model=AnswerRead, status_code=201)
def create_answer(
    step_id: int,
    body: AnswerCreate,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
):
    row = _get_step(db, step_id)
    require_permission(ElementModel.can_create(member), "create", "answer", None, member)
    try:
        return step_service.create_answer(db, row, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.put("/{step_id}/answers/order", response_model=list[AnswerRead])
def reorder_answers(
    step_id: int,
    body: AnswerOrder,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
):
    """Persist a new display order for the step's answers."""
    row = _get_step(db, step_id)
    require_permission(row.can_edit(member), "edit", "step", step_id, member)
    try:
        return step_service.reorder_answers(db, row, body.answer_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

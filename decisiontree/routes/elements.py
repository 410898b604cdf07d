"""
CRUD routes for decision tree elements (the containers a tree starts from).
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from decisiontree.auth import get_current_member, require_permission
from decisiontree.database import get_db
from decisiontree.models.member import Member
from decisiontree.models_db import ElementModel, StepModel
from decisiontree.services.sample_tree import seed_sample_tree
from shared.schemas import ElementCreate, ElementRead, ElementUpdate

router = APIRouter()


def _get_element(db: Session, element_id: int) -> ElementModel:
    row = db.get(ElementModel, element_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Element '{element_id}' not found")
    return row


def _check_first_step(db: Session, step_id: Optional[int]) -> None:
    """The first step must exist and be an initial step: a question no answer leads to."""
    if step_id is None:
        return
    if db.get(StepModel, step_id) is None:
        raise HTTPException(status_code=400, detail=f"First step '{step_id}' not found")
    if step_id not in {s.id for s in StepModel.get_initial_steps(db)}:
        raise HTTPException(
            status_code=400,
            detail=f"Step '{step_id}' is reached by an answer or is a Result; it cannot start a tree",
        )


def _element_to_dict(row: ElementModel) -> dict[str, Any]:
    data = ElementRead.model_validate(row).model_dump()
    data["cms_edit_link"] = row.cms_edit_link()
    data["cms_edit_first_step_link"] = row.cms_edit_first_step_link()
    return data


@router.post("/seed-sample", status_code=201)
def seed_sample(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """Create the sample tree so it appears in the list."""
    require_permission(ElementModel.can_create(member), "create", "element", None, member)
    return _element_to_dict(seed_sample_tree(db))


@router.get("/", response_model=list[dict])
def list_elements(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    require_permission(ElementModel.can_view(member), "view", "elements", None, member)
    rows = db.query(ElementModel).order_by(ElementModel.id).all()
    return [_element_to_dict(r) for r in rows]


@router.post("/", status_code=201)
def create_element(body: ElementCreate, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    require_permission(ElementModel.can_create(member), "create", "element", None, member)
    _check_first_step(db, body.first_step_id)
    row = ElementModel(title=body.title, introduction=body.introduction, first_step_id=body.first_step_id)
    db.add(row)
    db.commit()
    db.refresh(row)
    return _element_to_dict(row)


@router.get("/{element_id}")
def get_element(element_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    row = _get_element(db, element_id)
    require_permission(ElementModel.can_view(member), "view", "element", element_id, member)
    return _element_to_dict(row)


@router.put("/{element_id}")
def update_element(
    element_id: int,
    body: ElementUpdate,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
):
    row = _get_element(db, element_id)
    require_permission(ElementModel.can_edit(member), "edit", "element", element_id, member)
    changes = body.model_dump(exclude_unset=True)
    if "first_step_id" in changes:
        _check_first_step(db, changes["first_step_id"])
    if changes.get("title", "") is None:
        del changes["title"]
    for key, value in changes.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return _element_to_dict(row)


@router.delete("/{element_id}", status_code=204)
def delete_element(element_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    """Delete an element. Its steps are kept and show up as orphans."""
    row = _get_element(db, element_id)
    require_permission(ElementModel.can_delete(member), "delete", "element", element_id, member)
    db.delete(row)
    db.commit()
    return None

"""
SQLAlchemy ORM models for the decision tree CMS (persisted in SQLite).

A tree is stored as foreign keys only: an element points at its first step,
a step owns its answers, and each answer points at the step it leads to.
Pathway helpers on StepModel rebuild the chain from a step back to the root
by following those references upwards.
"""

import html
import logging
import os
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, event, select
from sqlalchemy.orm import Mapped, Session, mapped_column, object_session, relationship

from decisiontree.database import Base
from decisiontree.models.member import CMS_ACCESS_PERMISSION, Member, member_has_permission
from decisiontree.utils.links import join_links
from shared.schemas import StepType

logger = logging.getLogger(__name__)

DEFAULT_RESULT_TITLE = os.getenv("DECISIONTREE_DEFAULT_RESULT_TITLE", "Our recommendation")
ADMIN_URL = os.getenv("DECISIONTREE_ADMIN_URL", "/admin/elements")

# Request field names under which a step is edited in the CMS
STEP_RELATIONSHIPS = ("ResultingStep", "FirstStep")


class PathwayCycleError(ValueError):
    """Raised when walking up from a step comes back to a step already visited."""

    def __init__(self, step_id: Optional[int]):
        super().__init__(f"Cyclic pathway: step {step_id} is its own ancestor")
        self.step_id = step_id


class ElementModel(Base):
    """Content element holding a decision tree; the root container of a tree."""

    __tablename__ = "element_decision_trees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    introduction: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    first_step_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("decision_tree_steps.id"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    first_step: Mapped[Optional["StepModel"]] = relationship(foreign_keys=[first_step_id])

    # Permission policy for the whole tree. Steps and answers delegate here.

    @classmethod
    def can_create(cls, member: Optional[Member] = None) -> bool:
        return member_has_permission(member, CMS_ACCESS_PERMISSION)

    @classmethod
    def can_view(cls, member: Optional[Member] = None) -> bool:
        return member_has_permission(member, CMS_ACCESS_PERMISSION)

    @classmethod
    def can_edit(cls, member: Optional[Member] = None) -> bool:
        return member_has_permission(member, CMS_ACCESS_PERMISSION)

    @classmethod
    def can_delete(cls, member: Optional[Member] = None) -> bool:
        return member_has_permission(member, CMS_ACCESS_PERMISSION)

    def cms_edit_link(self) -> str:
        return join_links(ADMIN_URL, "EditForm/field/ElementDecisionTree/item", self.id, "edit")

    def cms_edit_first_step_link(self) -> Optional[str]:
        """Edit link of the first step, nested inside this element's edit form."""
        if self.first_step_id is None:
            return None
        return join_links(self.cms_edit_link(), "ItemEditForm/field/FirstStep/item", self.first_step_id)


class AnswerModel(Base):
    """One possible answer to a question step."""

    __tablename__ = "decision_tree_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sort: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("decision_tree_steps.id"), nullable=False, index=True)
    resulting_step_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("decision_tree_steps.id"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    question: Mapped["StepModel"] = relationship(foreign_keys=[question_id], back_populates="answers")
    resulting_step: Mapped[Optional["StepModel"]] = relationship(foreign_keys=[resulting_step_id])

    def title_with_question(self) -> str:
        question_title = self.question.title if self.question is not None else ""
        return f"{question_title} - {self.title or ''}"

    def can_create(self, member: Optional[Member] = None) -> bool:
        return ElementModel.can_create(member)

    def can_view(self, member: Optional[Member] = None) -> bool:
        return ElementModel.can_create(member)

    def can_edit(self, member: Optional[Member] = None) -> bool:
        return ElementModel.can_create(member)

    def can_delete(self, member: Optional[Member] = None) -> bool:
        """An answer leading to a further step cannot be deleted."""
        if not ElementModel.can_delete(member):
            return False
        return self.resulting_step_id is None


class StepModel(Base):
    """A node of a decision tree: either a question (with answers) or a result."""

    __tablename__ = "decision_tree_steps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=StepType.QUESTION.value, index=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # HTML
    hide_title: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    answers: Mapped[list["AnswerModel"]] = relationship(
        foreign_keys="AnswerModel.question_id",
        back_populates="question",
        order_by="AnswerModel.sort",
    )

    @property
    def is_result(self) -> bool:
        return self.type == StepType.RESULT.value

    def is_in_db(self) -> bool:
        return self.id is not None

    # -------------------------------------------------------------------------
    # Relations resolved by reverse lookup
    # -------------------------------------------------------------------------

    def _session(self) -> Optional[Session]:
        if self.id is None:
            return None
        return object_session(self)

    def get_parent_answer(self) -> Optional[AnswerModel]:
        """Return the answer responsible for displaying this step (first match)."""
        db = self._session()
        if db is None:
            return None
        return db.query(AnswerModel).filter(AnswerModel.resulting_step_id == self.id).first()

    def get_parent_element(self) -> Optional[ElementModel]:
        """Return the element this step is the first step of."""
        db = self._session()
        if db is None:
            return None
        return db.query(ElementModel).filter(ElementModel.first_step_id == self.id).first()

    def belongs_to_element(self) -> bool:
        return self.get_parent_element() is not None

    def belongs_to_answer(self) -> bool:
        return self.get_parent_answer() is not None

    def belongs_to_tree(self) -> bool:
        return self.belongs_to_element() or self.belongs_to_answer()

    # -------------------------------------------------------------------------
    # Pathway
    # -------------------------------------------------------------------------

    def _walk_to_origin(self):
        """
        Yield (step, parent_answer) from this step up to the tree origin.

        The origin is yielded with parent_answer None. Raises PathwayCycleError
        if a step shows up twice.
        """
        seen: set[Optional[int]] = set()
        step: Optional[StepModel] = self
        while step is not None:
            if step.id in seen:
                logger.warning("Cyclic pathway detected at step %s (walk started at %s)", step.id, self.id)
                raise PathwayCycleError(step.id)
            seen.add(step.id)
            answer = step.get_parent_answer()
            yield step, answer
            step = answer.question if answer is not None else None

    def get_answer_pathway(self) -> list[int]:
        """Return the IDs of the answers leading to this step, closest answer first."""
        return [answer.id for _, answer in self._walk_to_origin() if answer is not None]

    def get_question_pathway(self) -> list[int]:
        """Return the IDs of the steps leading to this step, starting with this step."""
        return [step.id for step, _ in self._walk_to_origin()]

    def get_full_pathway(self) -> list[dict[str, int]]:
        """
        Interleaved questions and answers leading to this step.

        Each entry is a one-key dict, either {'question': step_id} or
        {'answer': answer_id}. The list is in reverse order: this step first,
        the tree origin last.
        """
        path: list[dict[str, int]] = []
        for step, answer in self._walk_to_origin():
            path.append({"question": step.id})
            if answer is not None:
                path.append({"answer": answer.id})
        return path

    def get_tree_origin(self) -> "StepModel":
        """Find the very first step of the tree this step belongs to."""
        origin = self
        for step, _ in self._walk_to_origin():
            origin = step
        return origin

    def get_position_in_pathway(self) -> int:
        """Return this step's 1-based position among the questions of its pathway (0 if absent)."""
        pathway = list(reversed(self.get_full_pathway()))
        ids = [entry["question"] for entry in pathway if "question" in entry]
        try:
            return ids.index(self.id) + 1
        except ValueError:
            return 0

    # -------------------------------------------------------------------------
    # Tree membership queries
    # -------------------------------------------------------------------------

    @staticmethod
    def _resulting_step_ids():
        return select(AnswerModel.resulting_step_id).where(AnswerModel.resulting_step_id.is_not(None))

    @staticmethod
    def _first_step_ids():
        return select(ElementModel.first_step_id).where(ElementModel.first_step_id.is_not(None))

    @classmethod
    def get_orphans(cls, db: Session) -> list["StepModel"]:
        """Steps that belong to no tree: neither an answer's resulting step nor an element's first step."""
        return (
            db.query(cls)
            .filter(cls.id.not_in(cls._resulting_step_ids()))
            .filter(cls.id.not_in(cls._first_step_ids()))
            .order_by(cls.id)
            .all()
        )

    @classmethod
    def get_initial_steps(cls, db: Session) -> list["StepModel"]:
        """Question steps that no answer leads to, ie. candidates for an element's first step."""
        return (
            db.query(cls)
            .filter(cls.id.not_in(cls._resulting_step_ids()))
            .filter(cls.type != StepType.RESULT.value)
            .order_by(cls.id)
            .all()
        )

    # -------------------------------------------------------------------------
    # Permissions
    # -------------------------------------------------------------------------

    def can_create(self, member: Optional[Member] = None) -> bool:
        return ElementModel.can_create(member)

    def can_view(self, member: Optional[Member] = None) -> bool:
        return ElementModel.can_create(member)

    def can_edit(self, member: Optional[Member] = None) -> bool:
        return ElementModel.can_create(member)

    def can_delete(self, member: Optional[Member] = None) -> bool:
        """Prevent deleting a step with answers that have dependent questions."""
        allowed = ElementModel.can_delete(member)
        for answer in self.answers:
            if not answer.can_delete(member):
                allowed = False
        return allowed

    # -------------------------------------------------------------------------
    # Write / delete hooks
    # -------------------------------------------------------------------------

    def on_before_write(self) -> None:
        """Set default title on Result steps."""
        if self.is_result and not self.title:
            self.title = DEFAULT_RESULT_TITLE

    def on_before_delete(self, db: Session, member: Optional[Member] = None) -> list[int]:
        """
        Delete answers that have no subsequent question and detach references to this step.

        Returns the IDs of the deleted answers.
        """
        deleted: list[int] = []
        for answer in list(self.answers):
            if answer.can_delete(member):
                deleted.append(answer.id)
                db.delete(answer)
        db.flush()
        db.expire(self, ["answers"])
        db.query(AnswerModel).filter(AnswerModel.resulting_step_id == self.id).update(
            {AnswerModel.resulting_step_id: None}, synchronize_session="fetch"
        )
        db.query(ElementModel).filter(ElementModel.first_step_id == self.id).update(
            {ElementModel.first_step_id: None}, synchronize_session="fetch"
        )
        return deleted

    def delete(self, db: Session, member: Optional[Member] = None) -> list[int]:
        """Run the delete hook then remove the step. Caller commits."""
        deleted = self.on_before_delete(db, member)
        db.delete(self)
        return deleted

    # -------------------------------------------------------------------------
    # CMS helpers
    # -------------------------------------------------------------------------

    def get_answer_tree_for_grid(self) -> str:
        """
        Readable list of the answer titles and the title of the question
        displayed when the answer is selected. Used for the steps grid.
        """
        output = ""
        for answer in self.answers:
            output += html.escape(answer.title or "")
            if answer.resulting_step is not None:
                output += " => " + html.escape(answer.resulting_step.title or "")
            output += "<br/>"
        return output

    def get_answers_optionset(self) -> dict:
        """Option set letting the end-user pick an answer to this question."""
        return {
            "name": "stepanswerid",
            "title": "",
            "options": {answer.id: answer.title for answer in self.answers},
            "extra_class": "decisiontree-option",
        }

    def is_currently_edited(self, field_name: Optional[str], current_id) -> bool:
        """True if the CMS request (field_name, current_id) is editing this step."""
        if current_id and field_name in STEP_RELATIONSHIPS:
            return str(current_id) == str(self.id)
        return False

    def get_recursive_edit_path(self) -> str:
        """Append each hop of the pathway (minus the origin) to build a nested CMS edit path."""
        pathway = list(reversed(self.get_full_pathway()))[1:]
        url = ""
        for hop in pathway:
            if not hop:
                continue
            kind, record_id = next(iter(hop.items()))
            if kind == "question":
                url += f"/ItemEditForm/field/ResultingStep/item/{record_id}"
            elif kind == "answer":
                url += f"/ItemEditForm/field/Answers/item/{record_id}"
        return url

    def cms_edit_link(self) -> Optional[str]:
        """
        Link to edit this step in the CMS.

        Rewinds the tree up to its element, then appends the edit path of each
        question and answer on the way down.
        """
        origin = self.get_tree_origin()
        element = origin.get_parent_element()
        if element is None:
            return None
        return join_links(element.cms_edit_first_step_link(), self.get_recursive_edit_path())


@event.listens_for(StepModel, "before_insert")
@event.listens_for(StepModel, "before_update")
def _step_before_write(mapper, connection, target: StepModel) -> None:
    target.on_before_write()

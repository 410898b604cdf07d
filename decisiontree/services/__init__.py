"""Backend services (step writes, monitoring, sample data)."""

from decisiontree.services.monitoring_service import get_health, get_metrics
from decisiontree.services.sample_tree import SAMPLE_TITLE, seed_sample_tree
from decisiontree.services.step_service import (
    create_answer,
    create_step,
    delete_answer,
    delete_step,
    reorder_answers,
    update_answer,
    update_step,
)

__all__ = [
    "get_health",
    "get_metrics",
    "SAMPLE_TITLE",
    "seed_sample_tree",
    "create_answer",
    "create_step",
    "delete_answer",
    "delete_step",
    "reorder_answers",
    "update_answer",
    "update_step",
]

"""
Decision tree CMS domain models (non-persisted).

Persisted records live in decisiontree.models_db; the API contract with the
authoring frontend lives in shared.schemas.
"""

from decisiontree.models.member import (
    ADMIN_PERMISSION,
    CMS_ACCESS_PERMISSION,
    Member,
    member_has_permission,
)

__all__ = [
    "ADMIN_PERMISSION",
    "CMS_ACCESS_PERMISSION",
    "Member",
    "member_has_permission",
]

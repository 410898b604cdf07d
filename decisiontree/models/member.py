"""
CMS member and permission codes.

A Member is the identity a request runs as. Permission checks on steps,
answers and elements all resolve to the element type's policy, which only
asks whether the member holds a given permission code.
"""

from typing import Optional

from pydantic import BaseModel, Field

ADMIN_PERMISSION = "ADMIN"
CMS_ACCESS_PERMISSION = "CMS_ACCESS_DecisionTree"


class Member(BaseModel):
    """A CMS user resolved from the request credentials."""

    id: Optional[int] = Field(None, description="Member ID when backed by an account")
    email: Optional[str] = Field(None, description="Member email, used in logs")
    permissions: set[str] = Field(default_factory=set, description="Granted permission codes")

    def has_permission(self, code: str) -> bool:
        """ADMIN implies every other code."""
        return ADMIN_PERMISSION in self.permissions or code in self.permissions


def member_has_permission(member: Optional[Member], code: str) -> bool:
    """Anonymous (None) members hold no permission."""
    return member is not None and member.has_permission(code)

"""Choice of account-update schema by caller role.

Admins may only change a user's role, regular users may only change their own
password, anyone else is refused before a body is even looked at.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from ..schemas.user import AdminRoleUpdate, SelfPasswordUpdate


class UpdatePolicyKind(str, enum.Enum):
    admin_role = "admin_role"
    self_password = "self_password"
    denied = "denied"


@dataclass(frozen=True)
class UpdatePolicy:
    kind: UpdatePolicyKind
    schema: type[BaseModel] | None

    @property
    def allowed(self) -> bool:
        return self.schema is not None

    def validate(self, payload: dict[str, Any]) -> BaseModel:
        if self.schema is None:
            raise PermissionError("Caller may not update this account")
        return self.schema.model_validate(payload)


ADMIN_ROLE = UpdatePolicy(UpdatePolicyKind.admin_role, AdminRoleUpdate)
SELF_PASSWORD = UpdatePolicy(UpdatePolicyKind.self_password, SelfPasswordUpdate)
DENIED = UpdatePolicy(UpdatePolicyKind.denied, None)


def select_update_policy(is_self: bool, is_admin: bool) -> UpdatePolicy:
    if is_admin:
        return ADMIN_ROLE
    if is_self:
        return SELF_PASSWORD
    return DENIED

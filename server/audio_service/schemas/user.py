from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict, Field

from .base import CamelModel


class SelfPasswordUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)


class AdminRoleUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    user_type: Literal["USER", "ADMIN"]

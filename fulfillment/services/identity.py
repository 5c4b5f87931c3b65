from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Identity:
    """Acting user and active tenant, attached to every write."""

    user_id: int
    tenant_id: int


class IdentityContext(Protocol):
    def current_user(self) -> int: ...

    def current_tenant(self) -> int: ...


def resolve_identity(ctx: IdentityContext) -> Identity:
    """Read the context once so one invocation never mixes two identities."""
    return Identity(user_id=int(ctx.current_user()), tenant_id=int(ctx.current_tenant()))

"""
DocStore Caller Context — Per-request caller identity.

The caller is the identity every authorization decision is made against:
a user id, an admin flag and the set of role tokens the caller holds.
A context variable carries it through async call chains so request glue can
set it once and services can read it without threading it manually.

Usage:
    from docstore.engine.context import CallerContext, set_caller_context

    set_caller_context(CallerContext(user_id=7, roles={"NURSE"}))
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

from docstore.engine.errors import DocStoreValidationError

current_caller_context: ContextVar[Optional["CallerContext"]] = ContextVar(
    "caller_context", default=None
)


def _normalize_roles(roles: Iterable[str]) -> FrozenSet[str]:
    return frozenset(r.strip().upper() for r in roles if r and r.strip())


@dataclass(frozen=True)
class CallerContext:
    """Identity of the caller of a document operation. Immutable."""

    user_id: int
    is_admin: bool = False
    roles: FrozenSet[str] = field(default_factory=frozenset)
    username: str = ""
    execution_id: str = field(default_factory=lambda: f"exec_{uuid.uuid4().hex[:12]}")

    def __post_init__(self) -> None:
        # Accept any iterable of roles; store them normalized
        object.__setattr__(self, "roles", _normalize_roles(self.roles))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging."""
        return {
            "user_id": self.user_id,
            "username": self.username,
            "is_admin": self.is_admin,
            "roles": sorted(self.roles),
            "execution_id": self.execution_id,
        }


def set_caller_context(ctx: CallerContext) -> None:
    """Set the caller for the current task."""
    current_caller_context.set(ctx)


def get_caller_context() -> Optional[CallerContext]:
    """Get the current caller. Returns None if not set."""
    return current_caller_context.get()


def require_caller_context() -> CallerContext:
    """Get the current caller or raise if none was set."""
    ctx = get_caller_context()
    if ctx is None:
        raise DocStoreValidationError(
            "No caller context — user not authenticated",
            field="caller",
        )
    return ctx


def clear_caller_context() -> None:
    """Clear the caller (request end)."""
    current_caller_context.set(None)

"""
Explicit caller context.

The core never reads session or auth state; whoever calls it (HTTP layer,
CLI, tests) builds a CallerContext and passes it in.
"""

from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Header

from .errors import InvalidTimezone

ROLES = ("customer", "provider", "admin", "system")


@dataclass(frozen=True)
class CallerContext:
    customer_id: int | None = None
    timezone: str = "UTC"
    role: str = "customer"

    @property
    def tz(self) -> ZoneInfo:
        return resolve_timezone(self.timezone)


def resolve_timezone(name: str) -> ZoneInfo:
    """Return ZoneInfo for an IANA name or raise InvalidTimezone."""
    if not name or not isinstance(name, str):
        raise InvalidTimezone(f"Invalid timezone: {name!r}")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise InvalidTimezone(f"Invalid timezone: {name!r}", timezone=name)


def get_caller_context(
    x_customer_id: int | None = Header(default=None),
    x_timezone: str = Header(default="UTC"),
    x_actor_role: str = Header(default="customer"),
) -> CallerContext:
    """FastAPI dependency: caller identity is forwarded by the gateway."""
    return CallerContext(
        customer_id=x_customer_id,
        timezone=x_timezone,
        role=x_actor_role if x_actor_role in ROLES else "customer",
    )

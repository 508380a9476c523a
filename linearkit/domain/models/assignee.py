"""Assignee variants accepted by issue operations.

Callers pass raw values (the ``"me"`` sentinel, a user id, an empty string or
``None``); the facade parses them once at its boundary into one of four
variants so the rest of the code never branches on magic strings.
"""

from dataclasses import dataclass
from typing import Any, Union

ME_SENTINEL = "me"


class Assignee:
    """Base class for the assignee variants."""


@dataclass(frozen=True)
class CurrentUser(Assignee):
    """Assign to the owner of the API credential (the viewer)."""


@dataclass(frozen=True)
class ById(Assignee):
    """Assign to a specific user."""
    user_id: str


@dataclass(frozen=True)
class Unassign(Assignee):
    """Explicitly clear the assignee."""


@dataclass(frozen=True)
class Unchanged(Assignee):
    """Leave the assignee as it is (or apply no assignee filter)."""


CURRENT_USER = CurrentUser()
UNASSIGN = Unassign()
UNCHANGED = Unchanged()

RawAssignee = Union[Assignee, str, None]


def parse_assignee(value: RawAssignee, empty: Assignee = UNCHANGED) -> Assignee:
    """Parses a raw assignee value into a variant.

    Args:
        value: An Assignee, the "me" sentinel, a user id, "" or None.
        empty: Variant to use for "" and None. Updates pass UNASSIGN; search and
            create leave the default, since there is nothing to clear there.

    Returns:
        The parsed Assignee variant.

    Raises:
        TypeError: If value is neither an Assignee, a string nor None.
    """
    if isinstance(value, Assignee):
        return value
    if value is None or value == "":
        return empty
    if not isinstance(value, str):
        raise TypeError(f"Assignee must be a string, None or Assignee, got {type(value).__name__}")
    if value == ME_SENTINEL:
        return CURRENT_USER
    return ById(value)


def parse_update_assignee(updates: Any) -> Assignee:
    """Parses the assignee of an update mapping, where a missing key means unchanged."""
    if "assignee_id" not in updates:
        return UNCHANGED
    return parse_assignee(updates["assignee_id"], empty=UNASSIGN)

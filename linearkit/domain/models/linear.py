"""Domain models for records returned by the Linear API.

The core treats these as opaque: it reads identifiers and passes the rest
through to callers untouched.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class User:
    """The owner of a credential, or any other workspace member."""
    id: str
    name: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    active: bool = True


@dataclass
class Team:
    """A Linear team, the unit that owns issues and workflow states."""
    id: str
    name: str
    key: str
    description: Optional[str] = None


@dataclass
class WorkflowState:
    """A column of a team's workflow (e.g., 'Todo', 'In Progress')."""
    id: str
    name: str
    type: str  # backlog, unstarted, started, completed, canceled
    color: Optional[str] = None
    position: Optional[float] = None


@dataclass
class Issue:
    """A Linear issue."""
    id: str
    identifier: str  # e.g., ENG-123
    title: str
    url: str
    description: Optional[str] = None
    priority: Optional[int] = None
    state: Optional[str] = None
    assignee_id: Optional[str] = None
    team_id: Optional[str] = None
    created_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Comment:
    """A comment attached to an issue."""
    id: str
    body: str
    issue_id: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[str] = None

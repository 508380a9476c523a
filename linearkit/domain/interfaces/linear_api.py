"""Interface for the remote Linear API capability.

Defines the contract the facade consumes. Concrete implementations (an SDK
wrapper, an HTTP/GraphQL client, a test fake) live outside the core.
"""

import abc
from typing import List, Optional

# Import relevant domain models
from ..models.common import IssueFilter, IssueInput
from ..models.linear import Comment, Issue, Team, User, WorkflowState


class LinearApi(abc.ABC):
    """Abstract Base Class for calls against the Linear API.

    Every method performs a single remote call attempt. Retries and rate limiting
    are the caller's concern. Failures should carry a ``status_code`` attribute or
    a message mentioning the HTTP status so client errors (400/404) can be told
    apart from transient ones.
    """

    @abc.abstractmethod
    async def list_teams(self) -> List[Team]:
        """Lists all teams visible to the credential."""
        pass

    @abc.abstractmethod
    async def list_issues(self, filter: IssueFilter, limit: int) -> List[Issue]:
        """Lists issues matching a structured filter.

        Args:
            filter: Filter in the remote schema's shape, e.g.
                ``{"team": {"id": {"eq": "T1"}}}``.
            limit: Maximum number of issues to return.
        """
        pass

    @abc.abstractmethod
    async def get_issue(self, issue_id: str) -> Optional[Issue]:
        """Fetches one issue, or None if it does not exist."""
        pass

    @abc.abstractmethod
    async def create_issue(self, input: IssueInput) -> Optional[Issue]:
        """Creates an issue; returns None if the API accepted the call but returned no issue."""
        pass

    @abc.abstractmethod
    async def update_issue(self, issue_id: str, input: IssueInput) -> Optional[Issue]:
        """Updates an issue; returns None if the API returned no issue."""
        pass

    @abc.abstractmethod
    async def get_team(self, team_id: str) -> Optional[Team]:
        """Fetches one team, or None if it does not exist."""
        pass

    @abc.abstractmethod
    async def list_team_workflow_states(self, team_id: str) -> List[WorkflowState]:
        """Lists the workflow states of a team."""
        pass

    @abc.abstractmethod
    async def create_comment(self, issue_id: str, body: str) -> Optional[Comment]:
        """Adds a comment to an issue; returns None if no comment was returned."""
        pass

    @abc.abstractmethod
    async def get_current_user(self) -> User:
        """Fetches the owner of the credential (the viewer)."""
        pass

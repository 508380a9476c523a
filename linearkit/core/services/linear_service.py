"""
Core service fronting the Linear API.

Composes the remote capability with a shared rate limiter, a retry executor
and three TTL caches (viewer, team list, per-team workflow states). Every
error leaving this module is an AppError whose message names the failed
operation and its identifiers.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

# Domain Layer Imports
from linearkit.domain.events.api_events import (
    ApiCallDeferred,
    CacheHit,
    CacheMiss,
    EventHandler,
)
from linearkit.domain.interfaces.linear_api import LinearApi
from linearkit.domain.models.assignee import (
    CURRENT_USER,
    Assignee,
    ById,
    CurrentUser,
    RawAssignee,
    Unassign,
    Unchanged,
    parse_assignee,
    parse_update_assignee,
)
from linearkit.domain.models.common import (
    DEFAULT_CACHE_TTLS,
    CacheTtls,
    HealthStatus,
    IssueFilter,
    IssueInput,
)
from linearkit.domain.models.linear import Comment, Issue, Team, User, WorkflowState

# Core Layer Imports
from linearkit.core.exceptions import (
    AppError,
    ClientError,
    EmptyResultError,
    NotFoundError,
    TransientError,
    client_status_of,
    handle_error,
)

# Infrastructure Layer Imports (Specific Implementations Injected)
from linearkit.infrastructure.cache.ttl_cache import SINGLE_ENTRY_KEY, TTLCache
from linearkit.infrastructure.resilience.api_retry import ApiRetryService, log_event
from linearkit.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SEARCH_LIMIT = 50
MAX_SEARCH_LIMIT = 250

UPDATABLE_FIELDS = frozenset({"title", "description", "assignee_id", "priority", "state_id"})


def _format_context(context: Mapping[str, Any]) -> str:
    return ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)


class LinearService:
    """Resilient facade over the Linear API.

    One instance is meant to be constructed at startup and shared by every
    caller. Concurrent cold reads of the same cache key may each fetch from
    the API; both writes carry equivalent data.
    """

    def __init__(
        self,
        api: LinearApi,
        rate_limiter: Optional[RateLimiter] = None,
        retry_service: Optional[ApiRetryService] = None,
        cache_ttls: CacheTtls = DEFAULT_CACHE_TTLS,
        rate_limit_mutations: bool = False,
        clock: Callable[[], float] = time.monotonic,
        event_handler: Optional[EventHandler] = None,
    ):
        """Initializes the facade.

        Args:
            api: The remote capability every call is delegated to.
            rate_limiter: Limiter shared by the rate-limited operations.
            retry_service: Executor wrapping the retried remote calls.
            cache_ttls: Time-to-live of each reference-data cache.
            rate_limit_mutations: Also rate limit issue creation and updates.
            clock: Monotonic clock used by the caches.
            event_handler: Receives cache and rate-limit events.
        """
        self.api = api
        self._dispatch = event_handler or log_event
        self.rate_limiter = rate_limiter or RateLimiter(clock=clock)
        self.retry_service = retry_service or ApiRetryService(event_handler=event_handler)
        self.cache_ttls = cache_ttls
        self.rate_limit_mutations = rate_limit_mutations

        self._viewer_cache: TTLCache[str, User] = TTLCache("viewer", clock=clock)
        self._teams_cache: TTLCache[str, Tuple[Team, ...]] = TTLCache("teams", clock=clock)
        self._workflow_states_cache: TTLCache[str, Tuple[WorkflowState, ...]] = TTLCache("workflow_states", clock=clock)
        self._closed = False

        logger.debug("LinearService initialized")

    # --- Lifecycle ---

    def reset(self) -> None:
        """Discards all cached data and rate-limiter bookkeeping."""
        self._viewer_cache.clear()
        self._teams_cache.clear()
        self._workflow_states_cache.clear()
        self.rate_limiter.reset()
        logger.debug("LinearService state reset")

    def close(self) -> None:
        """Resets the facade; further calls fail."""
        self.reset()
        self._closed = True
        logger.debug("LinearService closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise AppError("LinearService has been closed")

    # --- Plumbing ---

    def _cached(self, cache: TTLCache, key: str) -> Optional[Any]:
        value = cache.get(key)
        if value is None:
            self._dispatch(CacheMiss(cache_name=cache.name, key=key))
        else:
            self._dispatch(CacheHit(cache_name=cache.name, key=key))
        return value

    async def _throttle(self, endpoint: str) -> None:
        waited = await self.rate_limiter.acquire()
        if waited > 0:
            self._dispatch(ApiCallDeferred(endpoint=endpoint, wait_time_seconds=waited))

    async def _call(
        self,
        endpoint: str,
        operation: Callable[[], Awaitable[T]],
        context: Dict[str, Any],
        rate_limited: bool,
    ) -> T:
        """Acquires a rate-limit slot if required, then runs operation under retry."""
        if rate_limited:
            await self._throttle(endpoint)
        return await self.retry_service.execute_with_retry(operation, endpoint_name=endpoint, context=context)

    def _fail(self, message: str, exc: Exception, context: Dict[str, Any]) -> AppError:
        """Builds the error raised at the facade boundary for a failed operation."""
        described = _format_context(context)
        full_message = f"{message} ({described}): {exc}" if described else f"{message}: {exc}"
        details: Dict[str, Any] = dict(context)

        client_status = client_status_of(exc)
        if client_status is not None:
            error_cls = NotFoundError if client_status == 404 else ClientError
            if isinstance(exc, ClientError):
                error_cls = type(exc)
            error: AppError = error_cls(full_message, status_code=client_status, details=details)
        elif isinstance(exc, EmptyResultError):
            error = EmptyResultError(full_message, details=details)
        else:
            details["cause"] = str(exc)
            error = TransientError(full_message, details=details)

        response = handle_error(error)
        logger.error(
            f"{message} [status={response['status_code']} code={response['code']}]: {exc}",
            exc_info=not isinstance(exc, AppError),
        )
        return error

    async def _assignee_input(self, assignee: Assignee) -> Dict[str, Any]:
        """Translates an Assignee into the assigneeId field of a remote payload."""
        if isinstance(assignee, CurrentUser):
            viewer = await self.get_viewer()
            return {"assigneeId": viewer.id}
        if isinstance(assignee, ById):
            return {"assigneeId": assignee.user_id}
        if isinstance(assignee, Unassign):
            return {"assigneeId": None}
        return {}

    # --- Reference data (cached) ---

    async def get_viewer(self) -> User:
        """Returns the owner of the API credential, cached for the viewer TTL."""
        self._ensure_open()
        cached = self._cached(self._viewer_cache, SINGLE_ENTRY_KEY)
        if cached is not None:
            return cached

        logger.debug("Fetching current user from Linear")
        try:
            viewer = await self._call("viewer", self.api.get_current_user, {}, rate_limited=False)
        except Exception as e:
            raise self._fail("Failed to fetch current user from Linear", e, {}) from e

        self._viewer_cache.put(SINGLE_ENTRY_KEY, viewer, self.cache_ttls.viewer)
        return viewer

    async def get_teams(self) -> List[Team]:
        """Returns all teams, cached for the teams TTL."""
        self._ensure_open()
        cached = self._cached(self._teams_cache, SINGLE_ENTRY_KEY)
        if cached is not None:
            return list(cached)

        logger.debug("Fetching teams from Linear")
        try:
            teams = await self._call("teams", self.api.list_teams, {}, rate_limited=True)
        except Exception as e:
            raise self._fail("Failed to fetch teams from Linear", e, {}) from e

        self._teams_cache.put(SINGLE_ENTRY_KEY, tuple(teams), self.cache_ttls.teams)
        return list(teams)

    async def get_workflow_states(self, team_id: str) -> List[WorkflowState]:
        """Returns a team's workflow states, cached per team.

        Raises:
            NotFoundError: If the team does not exist.
        """
        self._ensure_open()
        cached = self._cached(self._workflow_states_cache, team_id)
        if cached is not None:
            return list(cached)

        context = {"team_id": team_id}
        logger.debug(f"Fetching workflow states from Linear for team {team_id}")

        async def fetch_states() -> List[WorkflowState]:
            team = await self.api.get_team(team_id)
            if team is None:
                raise NotFoundError(f"Team {team_id} not found")
            return await self.api.list_team_workflow_states(team_id)

        try:
            states = await self._call("workflowStates", fetch_states, context, rate_limited=True)
        except Exception as e:
            raise self._fail("Failed to fetch workflow states from Linear", e, context) from e

        self._workflow_states_cache.put(team_id, tuple(states), self.cache_ttls.workflow_states)
        return list(states)

    # --- Issues ---

    async def search_issues(
        self,
        query: str = "",
        team_id: Optional[str] = None,
        status: Optional[str] = None,
        assignee_id: RawAssignee = None,
        limit: Optional[int] = DEFAULT_SEARCH_LIMIT,
    ) -> List[Issue]:
        """Searches issues by team, state name, assignee and title substring.

        Args:
            query: Case-insensitive title substring; ignored when blank.
            team_id: Only issues of this team.
            status: Only issues in the workflow state with this name.
            assignee_id: "me", a user id or an Assignee. Unassign matches issues
                without an assignee.
            limit: Maximum results, clamped to 1..250.
        """
        self._ensure_open()
        requested = DEFAULT_SEARCH_LIMIT if limit is None else limit
        capped_limit = max(1, min(requested, MAX_SEARCH_LIMIT))
        context = {"query": query, "team_id": team_id, "status": status, "limit": capped_limit}
        logger.debug(f"Searching issues in Linear: {_format_context(context)}")

        try:
            issue_filter: Dict[str, Any] = {}
            if team_id:
                issue_filter["team"] = {"id": {"eq": team_id}}
            if status:
                issue_filter["state"] = {"name": {"eq": status}}

            assignee = parse_assignee(assignee_id)
            if isinstance(assignee, Unassign):
                issue_filter["assignee"] = {"null": True}
            elif not isinstance(assignee, Unchanged):
                assignee_field = await self._assignee_input(assignee)
                issue_filter["assignee"] = {"id": {"eq": assignee_field["assigneeId"]}}

            if query and query.strip():
                issue_filter["title"] = {"containsIgnoreCase": query.strip()}

            logger.debug(f"Using filter: {issue_filter}")
            await self._throttle("issues")
            return await self.api.list_issues(IssueFilter(issue_filter), capped_limit)
        except Exception as e:
            raise self._fail("Failed to search issues in Linear", e, context) from e

    async def get_my_issues(self, limit: Optional[int] = DEFAULT_SEARCH_LIMIT) -> List[Issue]:
        """Returns issues assigned to the owner of the API credential."""
        return await self.search_issues("", assignee_id=CURRENT_USER, limit=limit)

    async def get_issue(self, issue_id: str) -> Issue:
        """Fetches a single issue.

        Raises:
            NotFoundError: If no issue has this id.
        """
        self._ensure_open()
        context = {"issue_id": issue_id}
        logger.debug(f"Fetching issue {issue_id} from Linear")

        async def fetch_issue() -> Issue:
            issue = await self.api.get_issue(issue_id)
            if issue is None:
                raise NotFoundError(f"Issue {issue_id} not found")
            return issue

        try:
            return await self._call("issue", fetch_issue, context, rate_limited=True)
        except Exception as e:
            raise self._fail("Failed to fetch issue from Linear", e, context) from e

    async def create_issue(
        self,
        team_id: str,
        title: str,
        description: Optional[str] = None,
        assignee_id: RawAssignee = None,
        priority: Optional[int] = None,
    ) -> Issue:
        """Creates an issue. Optional fields are left out of the payload when absent.

        Raises:
            EmptyResultError: If Linear accepted the call but returned no issue.
        """
        self._ensure_open()
        context = {"team_id": team_id, "title": title}
        logger.debug(f"Creating issue in Linear: {_format_context(context)}")

        try:
            issue_input: Dict[str, Any] = {"teamId": team_id, "title": title}
            if description:
                issue_input["description"] = description
            if priority is not None:
                issue_input["priority"] = priority

            assignee = parse_assignee(assignee_id)
            if not isinstance(assignee, Unassign):  # new issues start unassigned
                issue_input.update(await self._assignee_input(assignee))

            async def create() -> Issue:
                issue = await self.api.create_issue(IssueInput(issue_input))
                if issue is None:
                    raise EmptyResultError("Linear returned no issue")
                return issue

            return await self._call("createIssue", create, context, rate_limited=self.rate_limit_mutations)
        except Exception as e:
            raise self._fail("Failed to create issue in Linear", e, context) from e

    async def update_issue(self, issue_id: str, updates: Mapping[str, Any]) -> Issue:
        """Updates an issue.

        Args:
            issue_id: The issue to update.
            updates: Any of title, description, assignee_id, priority, state_id.
                assignee_id "me" assigns the viewer; "" or None unassigns.

        Raises:
            ClientError: If updates names an unknown field.
            EmptyResultError: If Linear returned no issue.
        """
        self._ensure_open()
        context = {"issue_id": issue_id}
        logger.debug(f"Updating issue {issue_id} in Linear with fields: {sorted(updates)}")

        try:
            unknown = set(updates) - UPDATABLE_FIELDS
            if unknown:
                raise ClientError(f"Unknown update fields: {', '.join(sorted(unknown))}")

            issue_input: Dict[str, Any] = {}
            if updates.get("title"):
                issue_input["title"] = updates["title"]
            if updates.get("description") is not None:
                issue_input["description"] = updates["description"]
            if updates.get("priority") is not None:
                issue_input["priority"] = updates["priority"]
            if updates.get("state_id"):
                issue_input["stateId"] = updates["state_id"]
            issue_input.update(await self._assignee_input(parse_update_assignee(updates)))

            async def update() -> Issue:
                issue = await self.api.update_issue(issue_id, IssueInput(issue_input))
                if issue is None:
                    raise EmptyResultError("Linear returned no issue")
                return issue

            return await self._call("updateIssue", update, context, rate_limited=self.rate_limit_mutations)
        except Exception as e:
            raise self._fail("Failed to update issue in Linear", e, context) from e

    async def add_comment(self, issue_id: str, body: str) -> Comment:
        """Adds a comment to an issue.

        Raises:
            EmptyResultError: If Linear accepted the call but returned no comment.
        """
        self._ensure_open()
        context = {"issue_id": issue_id}
        logger.debug(f"Adding comment to issue {issue_id} in Linear")

        async def create_comment() -> Comment:
            comment = await self.api.create_comment(issue_id, body)
            if comment is None:
                raise EmptyResultError("Linear returned no comment")
            return comment

        try:
            return await self._call("createComment", create_comment, context, rate_limited=True)
        except Exception as e:
            raise self._fail("Failed to add comment in Linear", e, context) from e

    # --- Health ---

    async def health_check(self) -> HealthStatus:
        """Checks connectivity by fetching the viewer. Never raises."""
        try:
            self._ensure_open()
            viewer = await self._call("viewer", self.api.get_current_user, {}, rate_limited=True)
            return HealthStatus(
                status="healthy",
                api_connected=True,
                viewer={
                    "id": getattr(viewer, "id", None),
                    "name": getattr(viewer, "name", None),
                    "email": getattr(viewer, "email", None),
                },
            )
        except Exception as e:
            logger.error(f"Linear health check failed: {e}")
            return HealthStatus(status="unhealthy", api_connected=False, error=str(e) or type(e).__name__)

import asyncio
from typing import List
from unittest.mock import MagicMock

import pytest

from linearkit.core.services.linear_service import LinearService
from linearkit.domain.events.api_events import DomainEvent
from linearkit.domain.interfaces.linear_api import LinearApi
from linearkit.domain.models.linear import Comment, Issue, Team, User, WorkflowState
from linearkit.infrastructure.config import settings
from linearkit.infrastructure.resilience.api_retry import ApiRetryService
from linearkit.infrastructure.resilience.rate_limiter import RateLimiter


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)  # still yield to the event loop


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> List[DomainEvent]:
    """Collects the domain events published during a test."""
    return []


@pytest.fixture
def viewer() -> User:
    return User(id="user-me", name="Test User", email="me@example.com")


@pytest.fixture
def sample_issue() -> Issue:
    return Issue(id="issue-1", identifier="ENG-123", title="Test issue", url="https://linear.app/test/issue/ENG-123")


@pytest.fixture
def mock_api(viewer: User, sample_issue: Issue) -> MagicMock:
    """A LinearApi mock; its coroutine methods come back as AsyncMocks."""
    api = MagicMock(spec=LinearApi)
    api.get_current_user.return_value = viewer
    api.list_teams.return_value = [
        Team(id="team-1", name="Engineering", key="ENG"),
        Team(id="team-2", name="Product", key="PRO"),
    ]
    api.list_issues.return_value = [sample_issue]
    api.get_issue.return_value = sample_issue
    api.create_issue.return_value = sample_issue
    api.update_issue.return_value = sample_issue
    api.get_team.return_value = Team(id="team-1", name="Engineering", key="ENG")
    api.list_team_workflow_states.return_value = [
        WorkflowState(id="state-1", name="Todo", type="unstarted"),
        WorkflowState(id="state-2", name="Done", type="completed"),
    ]
    api.create_comment.return_value = Comment(id="comment-1", body="Looks good", issue_id="issue-1")
    return api


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(max_requests=10, time_window=1.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def retry_service(clock: FakeClock, events: List[DomainEvent]) -> ApiRetryService:
    return ApiRetryService(sleep=clock.sleep, event_handler=events.append)


@pytest.fixture
def service(mock_api, rate_limiter, retry_service, clock, events) -> LinearService:
    """LinearService wired with fake time and a mocked API."""
    return LinearService(
        api=mock_api,
        rate_limiter=rate_limiter,
        retry_service=retry_service,
        clock=clock,
        event_handler=events.append,
    )


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keeps tests independent of the developer's config file and environment."""
    for name in ("LINEAR_API_KEY", "LOG_LEVEL", "LOG_FILE", "RATE_LIMIT_MAX", "RATE_LIMIT_WINDOW_MS",
                 "RATE_LIMIT_MUTATIONS", "RETRY_MAX_RETRIES", "RETRY_INITIAL_DELAY", "RETRY_MAX_DELAY",
                 "RETRY_BACKOFF_MULTIPLIER", "CACHE_VIEWER_TTL_SECONDS", "CACHE_TEAMS_TTL_SECONDS",
                 "CACHE_WORKFLOW_STATES_TTL_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", True)
    monkeypatch.setattr(settings, "_loaded_from", settings.DEFAULT_CONFIG_FILE)
    monkeypatch.setattr(settings, "find_dotenv_path", lambda: None)
    settings.clear_test_config()
    yield
    settings.clear_test_config()

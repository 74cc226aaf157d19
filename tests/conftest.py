"""Shared pytest configuration and fixtures."""

from collections.abc import Generator
from contextlib import ExitStack
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from pydantic import SecretStr

from src.config import Settings, get_settings

# Every module that does ``from src.config import get_settings`` holds its own
# reference, so each one has to be patched.
SETTINGS_IMPORT_SITES = (
    "src.config",
    "src.clients.auth",
    "src.clients.http",
    "src.clients.nl_sql",
    "src.clients.agent",
    "src.clients.forecast",
    "src.clients.rag",
    "src.clients.health",
    "src.api.main",
)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run e2e tests against the live NL-SQL, RAG, forecast and agent services (reads .env)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="live services not requested (pass --run-e2e)")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def _no_dotenv(request: pytest.FixtureRequest) -> Generator[None]:
    """Keep a developer's .env (and its JWT secret) out of unit tests.

    e2e tests are the only ones allowed to read it.
    """
    if "e2e" in request.keywords:
        yield
        return

    get_settings.cache_clear()
    saved_env_file = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None
    try:
        yield
    finally:
        Settings.model_config["env_file"] = saved_env_file
        get_settings.cache_clear()


@pytest.fixture
def mock_settings() -> Generator[SimpleNamespace]:
    """Settings pointing at fake ``*.test`` hosts with short timeouts.

    Attributes can be changed inside a test; every patched import site sees
    the same object.
    """
    fake_settings = SimpleNamespace(
        jwt_secret=SecretStr("test-secret-key"),
        jwt_subject="frontend-user",
        jwt_ttl_seconds=3600,
        nl_sql_url="http://nl-sql.test:8001",
        rag_url="http://rag.test:8002",
        forecast_url="http://forecast.test:8003",
        agent_url="http://agent.test:8000",
        request_timeout_seconds=5.0,
        health_timeout_seconds=1.0,
        dashboard_cache_ttl_seconds=300,
        dashboard_cache_db_path="",
    )
    with ExitStack() as stack:
        for module in SETTINGS_IMPORT_SITES:
            stack.enter_context(patch(f"{module}.get_settings", return_value=fake_settings))
        yield fake_settings

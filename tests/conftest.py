import time

import platformdirs
import pytest
import requests

from binfetch.constants import (
    CONFIG_ENV_VAR,
    GITHUB_TOKEN_ENV_VARS,
    GITLAB_TOKEN_ENV_VARS,
    LOG_LEVEL_ENV_VAR,
)

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock the session passed to binfetch."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used across the binfetch test suite.
    """
    config.addinivalue_line("markers", "unit: fast isolated unit tests")
    config.addinivalue_line(
        "markers", "core_downloads: release resolution and asset download tests"
    )


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs at a temporary config directory and clear binfetch environment variables.

    Tokens from the developer's shell would otherwise leak into provider
    construction, and a real binfetch.yaml would leak into load_config().
    """
    config_dir = tmp_path_factory.mktemp("binfetch") / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )

    for name in (
        CONFIG_ENV_VAR,
        LOG_LEVEL_ENV_VAR,
        *GITHUB_TOKEN_ENV_VARS,
        *GITLAB_TOKEN_ENV_VARS,
    ):
        monkeypatch.delenv(name, raising=False)


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.put = _block_network
    requests.delete = _block_network
    requests.head = _block_network
    requests.patch = _block_network
    requests.options = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """
    Make time.sleep instant for all tests to prevent delays.

    urllib3's retry backoff sleeps between attempts; tests that need real
    timing should monkeypatch sleep back within the test.
    """
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


@pytest.fixture
def http_response(mocker):
    """
    Provide a factory for mocked requests.Response objects.

    Responses with a status of 400 or more raise requests.HTTPError from
    raise_for_status(), like the real thing.
    """

    def _create_response(status_code=200, payload=None, headers=None, chunks=None):
        response = mocker.Mock()
        response.status_code = status_code
        response.headers = headers or {}
        response.json.return_value = payload
        response.iter_content.return_value = list(chunks or [])
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.HTTPError(
                f"{status_code} Error", response=response
            )
        return response

    return _create_response

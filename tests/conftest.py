import os
import shutil
import ssl
from pathlib import Path
from typing import Callable, List

import certifi
import httpx
import pytest

from httpout.config.main import OutputConfig
from httpout.config.tls import TLSConfig

ENDPOINT_URL = "http://example.com/api/"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without network access")


@pytest.fixture(autouse=True)
def clean_httpout_env(monkeypatch):
    """
    Keep HTTPOUT_* variables of the developer's shell out of the tests.
    """
    for name in list(os.environ):
        if name.startswith("HTTPOUT_"):
            monkeypatch.delenv(name)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tls_config() -> TLSConfig:
    return TLSConfig(verify=ssl.create_default_context())


@pytest.fixture
def ca_bundle(tmp_path: Path) -> Path:
    """
    A loadable PEM bundle outside certifi's own location.
    """
    bundle_file = tmp_path / "internal-ca.pem"
    shutil.copy(certifi.where(), bundle_file)
    return bundle_file


@pytest.fixture
def make_config() -> Callable[..., OutputConfig]:
    def _make(**kwargs) -> OutputConfig:
        kwargs.setdefault("endpoint_url", ENDPOINT_URL)
        return OutputConfig(**kwargs)

    return _make


class RecordingHandler:
    """
    httpx.MockTransport handler that records requests and replays responses.

    Each item of ``responses`` is either an httpx.Response or an exception to
    raise. The last item is repeated once the list runs out.
    """

    def __init__(self, *responses):
        self.responses = list(responses) or [httpx.Response(200)]
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def make_handler() -> Callable[..., RecordingHandler]:
    return RecordingHandler

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from till_sdk.clients.till_client import TillClient
from till_sdk.config import ClientConfig
from till_sdk.http_client import HttpClient
from till_sdk.local_store import TillSessionRepository
from till_sdk.till_manager import TillSessionManager

BASE_URL = "https://api.example.com"


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        env_name="test",
        api_base_url=BASE_URL,
        tenant_id="tenant-a",
        retries=2,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def http(config: ClientConfig) -> HttpClient:
    return HttpClient(config, sleep=lambda _seconds: None)


@pytest.fixture
def till_client(http: HttpClient) -> TillClient:
    return TillClient(http=http, access_token="token-1")


@pytest.fixture
def repository() -> TillSessionRepository:
    return TillSessionRepository.from_url("sqlite:///:memory:")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(repository: TillSessionRepository, till_client: TillClient, clock: FakeClock) -> TillSessionManager:
    return TillSessionManager(repository=repository, client=till_client, clock=clock)

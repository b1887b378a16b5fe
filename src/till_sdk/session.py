from __future__ import annotations

from dataclasses import dataclass

from .auth_store import AuthStore
from .clients.till_client import TillClient
from .config import ClientConfig
from .http_client import HttpClient
from .local_store import TillSessionRepository
from .models import SessionData, UserContext
from .shift import ShiftService
from .till_manager import OrdersProvider, TillSessionManager, no_orders


@dataclass
class ApiSession:
    """Wires config, stored credentials and the till components for one terminal."""

    config: ClientConfig
    auth_store: AuthStore | None = None
    repository: TillSessionRepository | None = None
    http: HttpClient | None = None
    token: str | None = None
    user: UserContext | None = None

    def __post_init__(self) -> None:
        self.auth_store = self.auth_store or AuthStore()
        self.repository = self.repository or TillSessionRepository.from_url(self.config.database_url)
        self.http = self.http or HttpClient(config=self.config)
        stored = self.auth_store.load()
        if stored and not self.token:
            self.token = stored.access_token
            self.user = stored.user

    def _current_token(self) -> str | None:
        stored = self.auth_store.load() if self.auth_store else None
        return stored.access_token if stored else self.token

    def till_client(self) -> TillClient:
        return TillClient(
            http=self.http,
            access_token=self.token,
            tenant_id=self.config.tenant_id,
            token_provider=self._current_token,
        )

    def till_manager(self, orders_provider: OrdersProvider = no_orders) -> TillSessionManager:
        return TillSessionManager(
            repository=self.repository,
            client=self.till_client(),
            orders_provider=orders_provider,
        )

    def shift_service(self, manager: TillSessionManager | None = None) -> ShiftService:
        manager = manager or self.till_manager()
        return ShiftService(manager=manager, client=manager.client, auth_store=self.auth_store)

    def establish(self, access_token: str, user: UserContext | None) -> None:
        self.token = access_token
        self.user = user
        self.auth_store.save(SessionData(access_token=access_token, user=user, env_name=self.config.env_name))

    def clear(self) -> None:
        self.token = None
        self.user = None
        if self.auth_store:
            self.auth_store.clear()

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..http_client import HttpClient


@dataclass
class BaseClient:
    http: HttpClient
    access_token: str | None = None
    tenant_id: str | None = None
    token_provider: Callable[[], str | None] | None = None

    def current_token(self) -> str | None:
        if self.token_provider is not None:
            token = self.token_provider()
            if token:
                return token
        return self.access_token

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        token = self.current_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        tenant_id = self.tenant_id or self.http.config.tenant_id
        if tenant_id:
            headers["x-tenant-id"] = tenant_id
        return headers

    def _request(self, method: str, path: str, **kwargs):
        headers = kwargs.pop("headers", {})
        merged = {**self._auth_headers(), **headers}
        return self.http.request(method, path, headers=merged, **kwargs)

"""Same-origin proxy for the till endpoints.

Browser terminals call ``/api/till/*`` on this app; it forwards to the
backend's till routes with the tenant headers attached and passes the
backend's status and JSON body straight back.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import ClientConfig
from .logger import get_logger, log_action

logger = get_logger(__name__)

_FORWARDED_HEADERS = ("idempotency-key",)


def _tenant_id(request: Request, config: ClientConfig) -> str:
    return request.headers.get("x-tenant-id") or config.tenant_id


def _backend_headers(request: Request, config: ClientConfig, *, tenant_slug: str | None) -> dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "x-tenant-id": _tenant_id(request, config),
        "Authorization": request.headers.get("authorization", ""),
    }
    if tenant_slug:
        headers["x-tenant-slug"] = tenant_slug
    for name in _FORWARDED_HEADERS:
        value = request.headers.get(name)
        if value:
            headers[name] = value
    return headers


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"success": response.is_success, "message": response.text}


def create_app(config: ClientConfig, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.backend.aclose()

    app = FastAPI(title="POS till proxy", lifespan=lifespan)
    app.state.config = config
    app.state.backend = httpx.AsyncClient(
        base_url=config.api_base_url,
        timeout=httpx.Timeout(config.read_timeout_seconds, connect=config.connect_timeout_seconds),
        verify=config.verify_ssl,
        transport=transport,
    )

    async def forward(
        method: str,
        action: str,
        request: Request,
        *,
        body: dict[str, Any] | None = None,
        tenant_slug: str | None = None,
    ) -> httpx.Response:
        return await app.state.backend.request(
            method,
            config.till_path(action),
            headers=_backend_headers(request, config, tenant_slug=tenant_slug),
            json=body,
        )

    def proxy_failure(action: str, exc: Exception, message: str, extra: dict[str, Any] | None = None) -> JSONResponse:
        log_action(logger, "proxy", action, "error", error=str(exc))
        payload = {"success": False, **(extra or {}), "error": str(exc) or "Proxy error", "message": message}
        return JSONResponse(payload, status_code=500)

    @app.post("/api/till/open")
    async def open_till(request: Request) -> JSONResponse:
        if not request.headers.get("authorization"):
            return JSONResponse(
                {"success": False, "error": "No authentication token", "message": "Authorization header is required"},
                status_code=401,
            )
        try:
            body = await request.json()
            response = await forward("POST", "open", request, body=body, tenant_slug=_tenant_id(request, config))
        except (httpx.HTTPError, ValueError) as exc:
            return proxy_failure("open", exc, "Failed to connect to till service")
        log_action(logger, "proxy", "open", "forwarded", status_code=response.status_code)
        return JSONResponse(_decode(response), status_code=response.status_code)

    @app.post("/api/till/close")
    async def close_till(request: Request) -> JSONResponse:
        if not request.headers.get("authorization"):
            return JSONResponse(
                {"success": False, "error": "No authentication token", "message": "Authorization header is required"},
                status_code=401,
            )
        try:
            body = await request.json()
            # The backend resolves the tenant from the body on close.
            body = {**body, "tenantSlug": config.tenant_id}
            response = await forward("POST", "close", request, body=body, tenant_slug=config.tenant_id)
        except (httpx.HTTPError, TypeError, ValueError) as exc:
            return proxy_failure("close", exc, "Failed to connect to till service")
        log_action(logger, "proxy", "close", "forwarded", status_code=response.status_code)
        return JSONResponse(_decode(response), status_code=response.status_code)

    @app.get("/api/till/session")
    async def till_session(request: Request) -> JSONResponse:
        if not request.headers.get("authorization"):
            return JSONResponse({"success": False, "error": "Missing authorization header"}, status_code=401)
        try:
            response = await forward("GET", "session", request)
        except httpx.HTTPError as exc:
            return proxy_failure("session", exc, "Failed to connect to till service")
        return JSONResponse(_decode(response), status_code=response.status_code)

    @app.get("/api/till/check")
    async def till_check(request: Request) -> JSONResponse:
        if not request.headers.get("authorization"):
            return JSONResponse(
                {"success": False, "hasActiveTill": False, "error": "No authentication token"},
                status_code=401,
            )
        try:
            response = await forward("GET", "check", request)
        except httpx.HTTPError as exc:
            return proxy_failure("check", exc, "Failed to connect to till service", {"hasActiveTill": False})
        if response.status_code == 404:
            return JSONResponse({"success": True, "hasActiveTill": False})
        return JSONResponse(_decode(response), status_code=response.status_code)

    return app

"""SparkleShare dashboard connection: device linking and signed JSON requests.

The ConnectionManager owns the server address and the device credentials and
executes every network call on behalf of folder items. Each call:

  - waits for a slot on a bounded semaphore (caps in-flight requests),
  - runs with an httpx timeout,
  - resolves exactly one of `success(request, response, payload)` or
    `failure(request, response, error, payload)`, exactly once,
  - returns the same outcome as a RequestResult.

Nothing is retried here; retry policy belongs to the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Set, Tuple

import httpx

from core.errors import (
    AuthError,
    MalformedResponseError,
    NetworkError,
    PersistenceError,
    ServerError,
    SparkleShareError,
    ValidationError,
)
from core.interfaces import ConnectionDelegate
from core.models import Credentials, RequestResult
from core.storage import CredentialStore

from .inputs import build_api_path, normalize_address, normalize_link_code

logger = logging.getLogger(__name__)

SuccessFn = Callable[[Any, Any, Any], Any]
FailureFn = Callable[[Any, Any, SparkleShareError, Any], Any]


async def invoke(fn: Optional[Callable[..., Any]], *args: Any) -> None:
    # Callbacks may be plain functions or coroutine functions
    if fn is None:
        return
    out = fn(*args)
    if inspect.isawaitable(out):
        await out


async def notify(delegate: Any, name: str, *args: Any) -> None:
    if delegate is None:
        return
    await invoke(getattr(delegate, name, None), *args)


async def resolve(result: RequestResult, success: Optional[SuccessFn], failure: Optional[FailureFn]) -> RequestResult:
    if result.ok:
        await invoke(success, result.request, result.response, result.payload)
    else:
        await invoke(failure, result.request, result.response, result.error, result.payload)
    return result


class ConnectionManager:
    """Credentials holder and request executor for one SparkleShare server."""

    API_PREFIX = "/api"
    IDENT_HEADER = "X-SPARKLE-IDENT"
    AUTH_HEADER = "X-SPARKLE-AUTH"

    PING_METHOD = "ping"
    LINK_METHOD = "getAuthCode"

    def __init__(
        self,
        *,
        store: CredentialStore,
        timeout: float = 20.0,
        verify: bool = True,
        max_concurrency: int = 4,
        device_name: str = "sparkleshare-mcp",
        delegate: Optional[ConnectionDelegate] = None,
    ) -> None:
        self._store = store
        self._timeout = float(timeout)
        self._verify = bool(verify)
        self._device_name = (device_name or "").strip() or "sparkleshare-mcp"
        self.delegate = delegate

        self._sem = asyncio.Semaphore(max(1, int(max_concurrency)))
        self._link_lock = asyncio.Lock()
        self._consumed_codes: Set[Tuple[str, str]] = set()

        self._credentials: Optional[Credentials] = store.load()
        if self._credentials is not None:
            logger.info("Restored device link for %s", self._credentials.address)

    @classmethod
    def from_storage(cls, state_dir: Path, **kwargs: Any) -> "ConnectionManager":
        """Restore a previously linked device from `state_dir`, or start unlinked."""
        return cls(store=CredentialStore.in_dir(state_dir), **kwargs)

    # --- state ---

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def is_linked(self) -> bool:
        return self._credentials is not None

    @property
    def address(self) -> Optional[str]:
        return self._credentials.address if self._credentials else None

    @property
    def ident_code(self) -> Optional[str]:
        return self._credentials.ident_code if self._credentials else None

    @property
    def auth_code(self) -> Optional[str]:
        return self._credentials.auth_code if self._credentials else None

    # --- handshake ---

    async def establish_connection(self) -> RequestResult:
        """Check the held credentials against the server. Never mutates them."""
        result = await self.send_request(self.PING_METHOD)
        if result.ok:
            logger.info("Connection to %s established", self.address)
            await notify(self.delegate, "connection_establishing_success", self)
        else:
            logger.warning("Connection check failed: %s", result.error)
            await notify(self.delegate, "connection_establishing_failed", self)
        return result

    async def link_device_with_address(self, address: object, code: str) -> RequestResult:
        """Exchange a one-shot link code for durable credentials.

        On any failure the previously held credentials (if any) stay as they were.
        """
        async with self._link_lock:
            result = await self._link(address, code)

        if result.ok:
            logger.info("Device linked to %s as %s", self.address, self.ident_code)
            await notify(self.delegate, "connection_linking_success", self)
        else:
            logger.warning("Device linking failed: %s", result.error)
            await notify(self.delegate, "connection_linking_failed", self, str(result.error))
        return result

    async def _link(self, address: object, code: str) -> RequestResult:
        try:
            addr = normalize_address(address)
            code_clean = normalize_link_code(code)
        except ValidationError as e:
            return RequestResult(error=e)

        key = (addr, code_clean)
        if key in self._consumed_codes:
            return RequestResult(error=AuthError("Link code has already been used"))

        result = await self._execute(
            "GET",
            f"{self.API_PREFIX}/{self.LINK_METHOD}",
            address=addr,
            params={"code": code_clean, "name": self._device_name},
        )
        if not result.ok:
            return result

        payload = result.payload
        ident = payload.get("ident") if isinstance(payload, dict) else None
        auth = payload.get("authCode") if isinstance(payload, dict) else None
        if not (isinstance(ident, str) and ident and isinstance(auth, str) and auth):
            err = MalformedResponseError("Link response lacks ident/authCode")
            return RequestResult(result.request, result.response, payload, err)

        credentials = Credentials(address=addr, ident_code=ident, auth_code=auth)
        try:
            self._store.save(credentials)
        except PersistenceError as e:
            return RequestResult(result.request, result.response, payload, e)

        self._credentials = credentials
        self._consumed_codes.add(key)
        return result

    # --- signed requests ---

    async def send_request(
        self,
        path: str,
        success: Optional[SuccessFn] = None,
        failure: Optional[FailureFn] = None,
        *,
        expect_json: bool = True,
    ) -> RequestResult:
        """Signed GET of `/api/{path}`; `path` may carry a `?query`."""
        result = await self._signed("GET", path, expect_json=expect_json)
        return await resolve(result, success, failure)

    async def send_post_request(
        self,
        path: str,
        data: str,
        success: Optional[SuccessFn] = None,
        failure: Optional[FailureFn] = None,
    ) -> RequestResult:
        """Signed POST of a raw text body to `/api/{path}`."""
        result = await self._signed(
            "POST",
            path,
            content=(data or "").encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )
        return await resolve(result, success, failure)

    def api_path(self, method: str, ssid: str = "", path: Optional[str] = None) -> str:
        return build_api_path(method, ssid, path)

    async def _signed(self, method: str, path: str, **kwargs: Any) -> RequestResult:
        credentials = self._credentials
        if credentials is None:
            return RequestResult(error=AuthError("Device is not linked"))

        url = f"{self.API_PREFIX}/{(path or '').lstrip('/')}"
        return await self._execute(method, url, address=credentials.address, credentials=credentials, **kwargs)

    # --- HTTP helpers ---

    def _create_client(self, *, address: str, credentials: Optional[Credentials] = None) -> httpx.AsyncClient:
        headers = {"Accept": "application/json", "User-Agent": self._device_name}
        if credentials is not None:
            headers[self.IDENT_HEADER] = credentials.ident_code
            headers[self.AUTH_HEADER] = credentials.auth_code
        return httpx.AsyncClient(
            base_url=address,
            headers=headers,
            timeout=self._timeout,
            verify=self._verify,
        )

    async def _execute(
        self,
        method: str,
        url: str,
        *,
        address: str,
        credentials: Optional[Credentials] = None,
        params: Optional[dict] = None,
        content: Optional[bytes] = None,
        headers: Optional[dict] = None,
        expect_json: bool = True,
    ) -> RequestResult:
        request = None
        # Limit concurrent requests across tasks
        async with self._sem:
            try:
                async with self._create_client(address=address, credentials=credentials) as client:
                    request = client.build_request(method, url, params=params, content=content, headers=headers)
                    logger.debug("%s %s", method, request.url.path)
                    response = await client.send(request)
            except httpx.TimeoutException as e:
                return RequestResult(request, None, None, NetworkError(f"{method} {url} timed out: {e}"))
            except httpx.HTTPError as e:
                return RequestResult(request, None, None, NetworkError(f"{method} {url} failed: {e}"))

        return self._interpret(request, response, expect_json=expect_json)

    def _interpret(self, request: httpx.Request, response: httpx.Response, *, expect_json: bool) -> RequestResult:
        status = response.status_code
        body, malformed = self._decode_json(response)

        if status in (401, 403):
            err = AuthError(self._error_message(response, body, "credentials rejected"), status_code=status)
            return RequestResult(request, response, body, err)

        if not response.is_success:
            err = ServerError(
                self._error_message(response, body, response.reason_phrase),
                status_code=status,
                body=body if body is not None else response.text,
            )
            return RequestResult(request, response, body, err)

        if not expect_json:
            return RequestResult(request, response, response.content)

        if malformed:
            err = MalformedResponseError(f"Expected JSON from {request.url.path}", status_code=status)
            return RequestResult(request, response, None, err)

        return RequestResult(request, response, body)

    @staticmethod
    def _decode_json(response: httpx.Response) -> Tuple[Any, bool]:
        # Returns (value, malformed); an empty body decodes to None
        if not response.content.strip():
            return None, False
        try:
            return response.json(), False
        except ValueError:
            return None, True

    @staticmethod
    def _error_message(response: httpx.Response, body: Any, fallback: str) -> str:
        detail = None
        if isinstance(body, dict):
            detail = body.get("error") or body.get("message")
        if not isinstance(detail, str) or not detail:
            detail = (response.text or "").strip()[:200] or fallback
        return f"HTTP {response.status_code}: {detail}"

# noderpc/transport/http.py
from __future__ import annotations

import base64
import contextlib
import json
import logging
from typing import Any, Callable, Optional

import anyio
import httpx

from noderpc.config.settings import ClientSettings
from noderpc.errors import (
    AUTH_REJECTED,
    FORBIDDEN,
    MALFORMED_RESPONSE,
    OVERLOADED,
    REMOTE_ERROR,
    TRANSPORT_ERROR,
    WORK_QUEUE_EXCEEDED,
    CoercionError,
    JSONRPCError,
)
from noderpc.schemas import RPCErrorObject

Callback = Callable[[Optional[JSONRPCError], Any], Any]


class LevelGate(logging.LoggerAdapter):
    """Per-client view of a shared logger that drops records below ``level``."""

    def __init__(self, logger: logging.Logger, level: int):
        super().__init__(logger, {})
        self.level = level

    def isEnabledFor(self, level: int) -> bool:
        return level >= self.level and self.logger.isEnabledFor(level)


# ──────────────────────────────────────────────────────────────
# Completion – one-shot latch for the outcome of an exchange
# ──────────────────────────────────────────────────────────────
class Completion:
    """
    Holds the outcome of one exchange and hands it to ``callback`` at most once.

    A late second outcome (for example a connection error racing the end of a
    response) is ignored.
    """

    def __init__(self, callback: Callback | None = None):
        self._callback = callback
        self._called = False
        self.error: JSONRPCError | None = None
        self.result: Any = None

    @property
    def called(self) -> bool:
        return self._called

    def fire(self, error: JSONRPCError | None, result: Any = None) -> bool:
        if self._called:
            return False
        self._called = True
        self.error = error
        self.result = result
        if self._callback is not None:
            self._callback(error, result)
        return True

    def outcome(self) -> Any:
        """Return the result, raising the error when no callback took it."""
        if self.error is not None and self._callback is None:
            raise self.error
        return self.result


# ──────────────────────────────────────────────────────────────
# HTTPTransport
# ──────────────────────────────────────────────────────────────
class HTTPTransport:
    """
    Performs authenticated JSON-RPC POST exchanges against the node daemon.

    ``transport`` is handed to ``httpx.AsyncClient`` (tests pass an
    ``httpx.MockTransport`` here).
    """

    path = "/"

    def __init__(
        self,
        settings: ClientSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ):
        self.settings = settings
        self._logger = logger or settings.logger or LevelGate(
            logging.getLogger("noderpc.transport"), settings.log_level_number
        )
        auth = f"{settings.username}:{settings.password}".encode("utf-8")
        self._authorization = "Basic " + base64.b64encode(auth).decode("ascii")
        self._semaphore: anyio.Semaphore | None = None

        client_kwargs: dict[str, Any] = {
            "base_url": settings.base_url,
            "timeout": settings.timeout,
            "verify": settings.reject_unauthorized,
        }
        if settings.disable_connection_reuse:
            client_kwargs["limits"] = httpx.Limits(max_keepalive_connections=0)
        if transport is not None:
            client_kwargs["transport"] = transport
        self.client = httpx.AsyncClient(**client_kwargs)

    @property
    def logger(self) -> logging.Logger | logging.LoggerAdapter:
        return self._logger

    # ───── Request building ─────
    def encode(self, payload: Any) -> bytes:
        try:
            return json.dumps(payload).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise CoercionError(message=f"request is not JSON serializable: {e}") from e

    def build_request(self, body: bytes) -> httpx.Request:
        headers = {
            "Content-Length": str(len(body)),
            "Content-Type": "application/json",
            "Authorization": self._authorization,
        }
        options: dict[str, Any] = {"method": "POST", "url": self.path, "content": body}
        for key, value in self.settings.http_options.items():
            if key == "headers":
                headers.update(value)
            else:
                options[key] = value
        options["headers"] = headers
        return self.client.build_request(**options)

    # ───── Concurrency gate ─────
    def _gate(self):
        limit = self.settings.concurrency_limit
        if limit is None:
            return contextlib.nullcontext()
        if self._semaphore is None:
            self._semaphore = anyio.Semaphore(limit)
        return self._semaphore

    # ───── Exchange ─────
    def prepare(self, payload: Any) -> httpx.Request:
        """Encode ``payload`` into a request; raises ``CoercionError`` right away."""
        return self.build_request(self.encode(payload))

    async def exchange(self, payload: Any, callback: Callback | None = None) -> Any:
        """POST ``payload`` (an envelope dict or a list of them) and classify the reply."""
        return await self.send(self.prepare(payload), callback)

    async def send(self, request: httpx.Request, callback: Callback | None = None) -> Any:
        """
        Send a prepared request and classify the reply.

        Without ``callback`` the decoded response is returned or the classified
        error raised. With one, ``callback(error, result)`` fires exactly once
        and the result is returned.
        """
        done = Completion(callback)
        async with self._gate():
            try:
                response = await self.client.send(request)
            except httpx.RequestError as e:
                self._logger.error(f"Request to {request.url} failed: {e!r}")
                done.fire(TRANSPORT_ERROR(e))
            else:
                self.classify(response, done)
        return done.outcome()

    def classify(self, response: httpx.Response, done: Completion) -> None:
        status = response.status_code
        text = response.text

        if status == 401:
            done.fire(AUTH_REJECTED())
            return
        if status == 403:
            done.fire(FORBIDDEN())
            return
        if status == 500 and text == WORK_QUEUE_EXCEEDED:
            done.fire(OVERLOADED(text))
            return

        try:
            decoded = json.loads(text)
        except ValueError as e:
            self._logger.error(f"Error parsing JSON response: {e}")
            self._logger.error(text)
            self._logger.error(f"HTTP Status code: {status}")
            done.fire(MALFORMED_RESPONSE(str(e), status))
            return

        if isinstance(decoded, dict) and decoded.get("error"):
            done.fire(self._remote_error(decoded["error"], decoded), decoded)
            return
        done.fire(None, decoded)

    @staticmethod
    def _remote_error(error: Any, decoded: Any):
        try:
            obj = RPCErrorObject.model_validate(error)
        except ValueError:
            return REMOTE_ERROR(None, str(error), decoded)
        return REMOTE_ERROR(obj.code, obj.message, decoded)

    # ───── Lifecycle ─────
    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "HTTPTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

# noderpc/errors.py
from typing import Any
from dataclasses import dataclass

ERROR_PREFIX = "Node JSON-RPC: "
WORK_QUEUE_EXCEEDED = "Work queue depth exceeded"


@dataclass(eq=False)
class JSONRPCError(Exception):
    code: int | None = None
    message: str = ""
    data: Any = None

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self):
        return self.message

    def to_dict(self):
        base = {"code": self.code, "message": self.message}
        if self.data is not None:
            base["data"] = self.data
        return base


class CoercionError(JSONRPCError, ValueError):
    """An argument could not be converted to the wire type of its slot."""


class AuthRejected(JSONRPCError):
    pass


class Forbidden(JSONRPCError):
    pass


class Overloaded(JSONRPCError):
    """The daemon's work queue is full; callers may retry with backoff."""


class MalformedResponse(JSONRPCError):
    pass


class TransportError(JSONRPCError):
    pass


class RemoteProcedureError(JSONRPCError):
    """
    The daemon answered with a populated ``error`` field.

    ``code`` and ``message`` come from that error object and ``data`` holds
    the whole decoded response, since some error payloads carry partial data.
    """


class BatchInProgress(JSONRPCError, RuntimeError):
    pass


# Fixed-message errors for the transport classification
AUTH_REJECTED = lambda: AuthRejected(401, ERROR_PREFIX + "Connection Rejected: 401 Unauthorized")
FORBIDDEN = lambda: Forbidden(403, ERROR_PREFIX + "Connection Rejected: 403 Forbidden")
OVERLOADED = lambda body=WORK_QUEUE_EXCEEDED: Overloaded(429, ERROR_PREFIX + body)


def MALFORMED_RESPONSE(reason: str, status_code: int | None = None) -> MalformedResponse:
    return MalformedResponse(
        status_code,
        ERROR_PREFIX + f"Error Parsing JSON: {reason}",
    )


def TRANSPORT_ERROR(cause: BaseException) -> TransportError:
    return TransportError(None, ERROR_PREFIX + f"Request Error: {cause}", {"exception": type(cause).__name__})


def REMOTE_ERROR(code: int | None, message: str, payload: Any) -> RemoteProcedureError:
    return RemoteProcedureError(code, message, payload)

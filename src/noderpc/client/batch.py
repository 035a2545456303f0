# noderpc/client/batch.py
from typing import Any, Iterable, List

from noderpc.registry.registry import ProcedureHost, ProcedureSpec
from noderpc.schemas import RPCRequest


class Batch(ProcedureHost):
    """
    Collection window handed to the body of ``NodeRPCClient.run_batch``.

    Generated methods called on a batch only record the call; the whole list
    goes out as one array request when the window closes, and the results
    come back once, for the whole batch, in call order. Each client class
    builds its own subclass carrying its procedure table (``batch_class``).
    """

    def __init__(self):
        self._calls: List[RPCRequest] = []
        self._closed = False

    @property
    def calls(self) -> List[RPCRequest]:
        return list(self._calls)

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._calls)

    def _invoke(self, spec: ProcedureSpec, params: Iterable[Any], callback: Any) -> None:
        if self._closed:
            raise RuntimeError("batch window is closed")
        params = list(params)
        if callback is not None or any(callable(p) for p in params):
            raise TypeError(
                f"{spec.name}: batched calls take no per-call callback; "
                "results are delivered once by run_batch"
            )
        self._calls.append(RPCRequest(jsonrpc="2.0", method=spec.wire_name, params=spec.coerce(params)))

    def close(self) -> List[dict]:
        self._closed = True
        return [call.to_wire() for call in self._calls]

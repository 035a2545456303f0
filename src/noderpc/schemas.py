# noderpc/schemas.py
import random
from typing import Any, Optional, Union, List
from pydantic import BaseModel, Field

# ids only need to be distinguishable within a session
MAX_REQUEST_ID = 100000


def random_id() -> int:
    return random.randrange(MAX_REQUEST_ID)


class RPCRequest(BaseModel):
    jsonrpc: Optional[str] = None  # batch entries carry "2.0", single calls omit it
    method: str
    params: List[Any] = Field(default_factory=list)
    id: Union[int, str] = Field(default_factory=random_id)

    def to_wire(self) -> dict:
        data = {"method": self.method, "params": list(self.params), "id": self.id}
        if self.jsonrpc is not None:
            data = {"jsonrpc": self.jsonrpc, **data}
        return data


class RPCErrorObject(BaseModel):
    code: Optional[int] = None
    message: str
    data: Optional[Any] = None


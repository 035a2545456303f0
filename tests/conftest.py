"""Pytest fixtures: clients wired to a recording httpx.MockTransport."""

import json

import httpx
import pytest

from noderpc.client.client import NodeRPCClient


class Recorder:
    """MockTransport handler that keeps every request it is given."""

    def __init__(self, responder):
        self.requests = []
        self._responder = responder

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self._responder(request)

    @property
    def bodies(self):
        return [json.loads(r.content) for r in self.requests]


def json_reply(payload, status_code=200):
    return lambda request: httpx.Response(status_code, json=payload)


def text_reply(text, status_code=200):
    return lambda request: httpx.Response(status_code, text=text)


def echo_result(request: httpx.Request):
    """Answer each envelope with its own params as the result."""
    body = json.loads(request.content)
    if isinstance(body, list):
        return httpx.Response(200, json=[{"result": e["params"], "error": None, "id": e["id"]} for e in body])
    return httpx.Response(200, json={"result": body["params"], "error": None, "id": body["id"]})


@pytest.fixture
def make_client():
    def factory(responder=echo_result, client_class=NodeRPCClient, **settings):
        recorder = Recorder(responder)
        settings.setdefault("protocol", "http")
        client = client_class(transport=httpx.MockTransport(recorder), **settings)
        return client, recorder

    return factory

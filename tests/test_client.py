import logging
from decimal import Decimal

import pytest

from conftest import json_reply
from noderpc.client.client import NodeRPCClient
from noderpc.errors import CoercionError, RemoteProcedureError
from noderpc.schemas import MAX_REQUEST_ID


@pytest.mark.asyncio
async def test_declared_and_lowercase_names_send_the_same_request(make_client):
    client, recorder = make_client()
    async with client:
        first = await client.getBlockHash("10")
        second = await client.getblockhash("10")
    a, b = recorder.bodies
    assert a["method"] == b["method"] == "getblockhash"
    assert a["params"] == b["params"] == [10]
    assert first["result"] == second["result"] == [10]


@pytest.mark.asyncio
async def test_single_call_envelope(make_client):
    client, recorder = make_client()
    async with client:
        await client.getBlock("00ab", "true")
    body, = recorder.bodies
    assert set(body) == {"method", "params", "id"}
    assert body["params"] == ["00ab", True]
    assert 0 <= body["id"] < MAX_REQUEST_ID


def test_bad_number_fails_before_any_request(make_client):
    client, recorder = make_client()
    with pytest.raises(CoercionError):
        client.getBlockHash("not-a-number")
    assert recorder.requests == []


def test_bad_json_object_fails_before_any_request(make_client):
    client, recorder = make_client()
    with pytest.raises(CoercionError):
        client.createRawTransaction("[{broken", "{}")
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_fewer_arguments_than_declared(make_client):
    client, recorder = make_client()
    async with client:
        await client.listUnspent(1)
        await client.getBalance()
    assert [b["params"] for b in recorder.bodies] == [[1], []]


@pytest.mark.asyncio
async def test_extra_arguments_pass_through_uncoerced(make_client):
    client, recorder = make_client()
    async with client:
        await client.getBlockHash("3", "7", {"k": 1})
        await client.getBlockCount(5)
    assert [b["params"] for b in recorder.bodies] == [[3, "7", {"k": 1}], [5]]


def test_unserializable_extra_argument_fails_at_call_time(make_client):
    client, recorder = make_client()
    calls = []
    with pytest.raises(CoercionError):
        client.getBlockCount(Decimal("1.5"), callback=lambda err, res: calls.append((err, res)))
    assert recorder.requests == []
    assert calls == []


@pytest.mark.asyncio
async def test_large_integers_are_sent_exactly(make_client):
    client, recorder = make_client()
    big = 2**53 + 1
    async with client:
        await client.getBlockHash(big)
        await client.getBlockHash(str(big))
    assert [b["params"] for b in recorder.bodies] == [[big], [big]]
    assert b"9007199254740993" in recorder.requests[0].content


@pytest.mark.asyncio
async def test_callback_receives_result_once(make_client):
    client, _ = make_client(json_reply({}))
    calls = []
    async with client:
        returned = await client.getBestBlockHash(callback=lambda err, res: calls.append((err, res)))
    assert calls == [(None, {})]
    assert returned == {}


@pytest.mark.asyncio
async def test_remote_error_raised_without_callback(make_client):
    payload = {"result": None, "error": {"code": -8, "message": "Block height out of range"}, "id": 3}
    client, _ = make_client(json_reply(payload, 500))
    async with client:
        with pytest.raises(RemoteProcedureError) as exc_info:
            await client.getblockhash(99999999)
    assert exc_info.value.code == -8
    assert exc_info.value.data == payload


@pytest.mark.asyncio
async def test_remote_error_goes_to_callback_with_payload(make_client):
    payload = {"result": None, "error": {"code": -5, "message": "Invalid address"}, "id": 3}
    client, _ = make_client(json_reply(payload, 500))
    calls = []
    async with client:
        await client.validateAddress("xyz", callback=lambda err, res: calls.append((err, res)))
    (err, res), = calls
    assert isinstance(err, RemoteProcedureError)
    assert res == payload


@pytest.mark.asyncio
async def test_generic_call_resolves_names_case_insensitively(make_client):
    client, recorder = make_client()
    async with client:
        await client.call("GetBlockHash", "4")
        await client.call("getnewmethod", "4", 5)
    a, b = recorder.bodies
    assert a["method"] == "getblockhash" and a["params"] == [4]
    assert b["method"] == "getnewmethod" and b["params"] == ["4", 5]


def test_settings_normalization():
    assert NodeRPCClient().settings.port == 8332
    assert NodeRPCClient({"host": "node", "port": "18443"}).settings.port == 18443
    client = NodeRPCClient("http://bob:pw@10.0.0.2:18332", concurrency_limit=4)
    assert (client.settings.username, client.settings.host, client.settings.concurrency_limit) == ("bob", "10.0.0.2", 4)
    with pytest.raises(TypeError):
        NodeRPCClient(42)
    with pytest.raises(TypeError):
        NodeRPCClient(user="x")


def test_log_level_is_per_client(make_client):
    normal, _ = make_client(log_level="normal")
    silent, _ = make_client(log_level="none")
    assert normal.transport.logger.isEnabledFor(logging.ERROR)
    assert not silent.transport.logger.isEnabledFor(logging.ERROR)
    debug, _ = make_client(log_level="debug")
    assert not silent.transport.logger.isEnabledFor(logging.ERROR)
    assert not normal.transport.logger.isEnabledFor(logging.DEBUG)
    assert debug.transport.logger.isEnabledFor(logging.DEBUG)


def test_repr_shows_endpoint(make_client):
    client, _ = make_client()
    assert repr(client) == "<NodeRPCClient http://127.0.0.1:8332>"

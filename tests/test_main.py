import json

import httpx
import pytest

from conftest import Recorder, echo_result, json_reply
from noderpc import main as cli
from noderpc.client.client import NodeRPCClient


@pytest.fixture
def recorder(monkeypatch):
    holder = {"recorder": Recorder(echo_result)}

    def client_factory(settings):
        return NodeRPCClient(settings, transport=httpx.MockTransport(holder["recorder"]))

    monkeypatch.setattr(cli, "NodeRPCClient", client_factory)
    return holder


def test_list_prints_procedure_table(capsys):
    assert cli.main(["--list"]) == 0
    table = json.loads(capsys.readouterr().out)
    assert table["getBlockHash"]["param_types"] == ["int"]


def test_single_call(recorder, capsys):
    assert cli.main(["--url", "http://u:p@node:8332", "GetBlockHash", "12"]) == 0
    body, = recorder["recorder"].bodies
    assert body["method"] == "getblockhash"
    assert body["params"] == [12]
    assert json.loads(capsys.readouterr().out)["result"] == [12]


def test_batch_call(recorder, capsys):
    assert cli.main(["--url", "http://u:p@node:8332", "--batch", "getblockhash:1", "getblock:ab,false", "getblockcount"]) == 0
    body, = recorder["recorder"].bodies
    assert [e["params"] for e in body] == [[1], ["ab", False], []]
    assert len(json.loads(capsys.readouterr().out)) == 3


def test_batch_rejects_unknown_procedures(capsys):
    with pytest.raises(SystemExit):
        cli.main(["--url", "http://u:p@node:8332", "--batch", "nosuch:1"])


def test_rpc_errors_exit_nonzero(recorder, capsys):
    recorder["recorder"] = Recorder(json_reply({"result": None, "error": {"code": -1, "message": "bad"}, "id": 1}, 500))
    assert cli.main(["--url", "http://u:p@node:8332", "getblockcount"]) == 1
    err = json.loads(capsys.readouterr().err)
    assert err["code"] == -1
    assert err["message"] == "bad"


def test_method_is_required(capsys):
    with pytest.raises(SystemExit):
        cli.main([])

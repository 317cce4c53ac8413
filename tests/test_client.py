"""
Tests for XMLRPCClient and SyncIO.

The I/O seam is mocked, no network connections are made.
"""

from unittest.mock import MagicMock, Mock

import pytest

from rpcxml import XMLRPCClient
from rpcxml.config import ClientConfig
from rpcxml.io import SCGIAdapter, SyncIO, SyncIOProtocol
from rpcxml.lib import error
from rpcxml.protocol import (
    Int,
    MethodCall,
    RPCRequest,
    RPCResponse,
    String,
    decode_call,
    encode_fault,
    encode_response,
)


def mocked_client(body: bytes, status: int = 200, **kwargs) -> XMLRPCClient:
    io = Mock()
    io.execute.return_value = RPCResponse(
        status=status, headers={"Content-Type": "text/xml"}, body=body, reason="OK"
    )
    return XMLRPCClient("http://localhost:8000/RPC2", io=io, **kwargs)


class TestXMLRPCClient:
    """Test XMLRPCClient with mocked I/O."""

    def test_call(self):
        client = mocked_client(encode_response(["South Dakota"]))
        assert client.call("examples.getStateName", 41) == [String("South Dakota")]

        request = client.io.execute.call_args[0][0]
        assert request.method == "POST"
        assert request.url == "http://localhost:8000/RPC2"
        assert request.headers["Content-Type"] == "text/xml"
        assert decode_call(request.body) == MethodCall("examples.getStateName", [Int(41)])

    def test_method_proxy(self):
        client = mocked_client(encode_response([["a", "b"]]))
        [methods] = client.system.listMethods()
        assert methods.to_python() == ["a", "b"]
        request = client.io.execute.call_args[0][0]
        assert decode_call(request.body).name == "system.listMethods"

    def test_private_attributes_are_not_methods(self):
        client = mocked_client(b"")
        with pytest.raises(AttributeError):
            client._missing

    def test_fault(self):
        client = mocked_client(encode_fault(4, "Too many parameters."))
        with pytest.raises(error.Fault) as excinfo:
            client.call("examples.getStateName", 41, 42)
        assert excinfo.value.code == 4
        assert excinfo.value.message == "Too many parameters."

    def test_decode_error(self):
        client = mocked_client(b"<?xml version='1.0'?><methodResponse><params>")
        with pytest.raises(error.MalformedDocument):
            client.call("m")

    def test_protocol_error(self):
        client = mocked_client(b"oops", status=500)
        with pytest.raises(error.ProtocolError):
            client.call("m")

    def test_unsupported_argument_is_not_sent(self):
        client = mocked_client(encode_response([]))
        with pytest.raises(error.UnsupportedArgumentType):
            client.call("m", object())
        client.io.execute.assert_not_called()

    def test_config_is_applied(self):
        config = ClientConfig(headers={"X-Token": "t"}, username="u", password="p")
        client = mocked_client(encode_response([1]), config=config)
        client.call("m")
        request = client.io.execute.call_args[0][0]
        assert request.headers["X-Token"] == "t"
        assert request.headers["Authorization"].startswith("Basic ")

    def test_context_manager(self):
        with mocked_client(encode_response([])) as client:
            pass
        client.io.close.assert_called_once()


class TestSyncIO:
    """Test the requests based I/O shell."""

    def test_adapters_are_mounted(self):
        with SyncIO() as io:
            assert isinstance(io.session.get_adapter("scgi://localhost:5000/"), SCGIAdapter)
            assert isinstance(io.session.get_adapter("scgi+unix:///tmp/rpc.socket"), SCGIAdapter)
            http_adapter = io.session.get_adapter("http://localhost/")
            assert http_adapter._pool_maxsize == 100

    def test_extra_adapters(self):
        adapter = Mock()
        with SyncIO(config=ClientConfig(adapters={"custom://": adapter})) as io:
            assert io.session.get_adapter("custom://host/") is adapter

    def test_execute(self):
        session = MagicMock()
        response = session.request.return_value.__enter__.return_value
        response.status_code = 200
        response.headers = {"Content-Type": "text/xml"}
        response.content = b"<body/>"
        response.reason = "OK"

        io = SyncIO(session=session, config=ClientConfig(connect_timeout=5, read_timeout=10))
        result = io.execute(RPCRequest(url="http://localhost/RPC2", body=b"<call/>"))

        assert result == RPCResponse(
            status=200, headers={"Content-Type": "text/xml"}, body=b"<body/>", reason="OK"
        )
        kwargs = session.request.call_args[1]
        assert kwargs["method"] == "POST"
        assert kwargs["data"] == b"<call/>"
        assert kwargs["timeout"] == (5, 10)
        session.request.return_value.__exit__.assert_called_once()

    def test_proxy(self):
        io = SyncIO(session=MagicMock(), config=ClientConfig(proxy="http://proxy:3128"))
        assert io.proxies == {"http": "http://proxy:3128", "https": "http://proxy:3128"}

    def test_satisfies_io_protocol(self):
        with SyncIO() as io:
            assert isinstance(io, SyncIOProtocol)
        assert not isinstance(object(), SyncIOProtocol)

    def test_foreign_session_is_not_closed(self):
        session = MagicMock()
        SyncIO(session=session).close()
        session.close.assert_not_called()

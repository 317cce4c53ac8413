"""
Tests for the SCGI transport adapter.

Sockets are replaced by FakeSocket, no connections are made.
"""

import socket

import pytest
import requests

from rpcxml import XMLRPCClient
from rpcxml.io import SCGIAdapter
from rpcxml.io.scgi import encode_header, encode_netstring, parse_response
from rpcxml.lib import error
from rpcxml.protocol import Int, String, decode_call, encode_response


class FakeSocket:
    def __init__(self, response: bytes, recv_size: int = 7) -> None:
        self.response = response
        self.recv_size = recv_size
        self.sent = b""
        self.closed = False
        self.timeouts = []

    def settimeout(self, timeout):
        self.timeouts.append(timeout)

    def sendall(self, data):
        self.sent += data

    def recv(self, size):
        chunk = self.response[: min(size, self.recv_size)]
        self.response = self.response[len(chunk) :]
        return chunk

    def close(self):
        self.closed = True


@pytest.fixture
def fake_socket(monkeypatch):
    fake = FakeSocket(b"")
    connects = []

    def connect(self, url, timeout):
        connects.append((url, timeout))
        return fake

    monkeypatch.setattr(SCGIAdapter, "_connect", connect)
    fake.connects = connects
    return fake


def session() -> requests.Session:
    s = requests.Session()
    s.mount("scgi://", SCGIAdapter())
    s.mount("scgi+unix://", SCGIAdapter())
    return s


class TestFraming:
    def test_netstring(self):
        assert encode_netstring(b"hello") == b"5:hello,"
        assert encode_netstring(b"") == b"0:,"

    def test_header(self):
        assert encode_header(b"SCGI", b"1") == b"SCGI\x001\x00"

    def test_parse_response(self):
        status, reason, headers, body = parse_response(
            b"Status: 500 Internal Server Error\r\nContent-Type: text/xml\r\n\r\n<body/>"
        )
        assert status == 500
        assert reason == "Internal Server Error"
        assert headers["content-type"] == "text/xml"
        assert "Status" not in headers
        assert body == b"<body/>"

    def test_parse_response_defaults_to_ok(self):
        status, reason, headers, body = parse_response(b"Content-Type: text/xml\n\nbody\r\n\r\nmore")
        assert (status, reason) == (200, "OK")
        assert body == b"body\r\n\r\nmore"

    def test_parse_response_without_headers(self):
        with pytest.raises(error.ProtocolError):
            parse_response(b"<?xml version='1.0'?><methodResponse/>")

    def test_parse_response_bad_status(self):
        with pytest.raises(error.ProtocolError):
            parse_response(b"Status: fine\r\n\r\n")


class TestSCGIAdapter:
    def test_request_framing(self, fake_socket):
        fake_socket.response = b"Status: 200 OK\r\nContent-Type: text/xml\r\n\r\n<ok/>"
        body = b"<methodCall/>"
        response = session().post(
            "scgi://localhost:5000/RPC2",
            data=body,
            headers={"Content-Type": "text/xml"},
            timeout=(3, 4),
        )

        header = (
            encode_header(b"CONTENT_LENGTH", b"13")
            + encode_header(b"SCGI", b"1")
            + encode_header(b"REQUEST_METHOD", b"POST")
            + encode_header(b"REQUEST_URI", b"/RPC2")
            + encode_header(b"CONTENT_TYPE", b"text/xml")
        )
        assert fake_socket.sent == encode_netstring(header) + body
        assert fake_socket.closed
        assert fake_socket.connects[0][1] == 3
        assert fake_socket.timeouts == [4]

        assert response.status_code == 200
        assert response.headers["Content-Type"] == "text/xml"
        assert response.content == b"<ok/>"

    def test_unix_socket_uri(self, fake_socket):
        fake_socket.response = b"Content-Type: text/xml\r\n\r\n"
        session().post("scgi+unix:///var/run/rtorrent.sock", data=b"x")
        assert b"REQUEST_URI\x00/\x00" in fake_socket.sent
        assert fake_socket.connects[0][0].path == "/var/run/rtorrent.sock"

    def test_connect_timeout(self, monkeypatch):
        def connect(self, url, timeout):
            raise socket.timeout("timed out")

        monkeypatch.setattr(SCGIAdapter, "_connect", connect)
        with pytest.raises(requests.exceptions.ConnectTimeout):
            session().post("scgi://localhost:5000/", data=b"x")

    def test_connection_refused(self, monkeypatch):
        def connect(self, url, timeout):
            raise ConnectionRefusedError("refused")

        monkeypatch.setattr(SCGIAdapter, "_connect", connect)
        with pytest.raises(requests.exceptions.ConnectionError):
            session().post("scgi://localhost:5000/", data=b"x")

    def test_missing_port(self):
        with pytest.raises(requests.exceptions.InvalidURL):
            session().post("scgi://localhost/", data=b"x")

    def test_malformed_reply_is_closed(self, fake_socket):
        fake_socket.response = b"garbage"
        with pytest.raises(error.ProtocolError) as excinfo:
            session().post("scgi://localhost:5000/", data=b"x")
        assert excinfo.value.url == "scgi://localhost:5000/"
        assert fake_socket.closed


class TestClientOverSCGI:
    def test_call(self, fake_socket):
        fake_socket.response = b"Status: 200 OK\r\nContent-Type: text/xml\r\n\r\n" + encode_response(
            ["0.9.8", 7]
        )
        with XMLRPCClient("scgi://localhost:5000/") as client:
            assert client.call("system.client_version") == [String("0.9.8"), Int(7)]

        _, _, body = fake_socket.sent.partition(b",")
        assert decode_call(body).name == "system.client_version"

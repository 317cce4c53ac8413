"""
SCGI transport for requests.

requests only speaks HTTP(S).  SCGIAdapter is mounted on a session for
the ``scgi://host:port/path`` and ``scgi+unix:///path/to/socket`` schemes
and sends the request body framed as an SCGI netstring, which is what
e.g. rTorrent expects.
"""

import logging
import socket
from io import BytesIO
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

from requests import Response
from requests.adapters import BaseAdapter
from requests.exceptions import ConnectionError, ConnectTimeout, InvalidURL, ReadTimeout
from requests.structures import CaseInsensitiveDict

from rpcxml.lib import error

log = logging.getLogger(__name__)

RECV_SIZE = 4096


def encode_netstring(data: bytes) -> bytes:
    return str(len(data)).encode() + b":" + data + b","


def encode_header(key: bytes, value: bytes) -> bytes:
    return key + b"\x00" + value + b"\x00"


def parse_response(raw: bytes) -> Tuple[int, str, CaseInsensitiveDict, bytes]:
    """
    Splits a CGI style response (header lines, blank line, body).

    A ``Status`` header sets the status code and reason, which default
    to 200 OK like a CGI gateway would do.
    """
    for separator in (b"\r\n\r\n", b"\n\n"):
        head, found, body = raw.partition(separator)
        if found:
            break
    else:
        raise error.ProtocolError(reason="malformed SCGI response, no header block")

    headers = CaseInsensitiveDict()
    for line in head.decode("latin-1").splitlines():
        if not line.strip():
            continue
        name, colon, value = line.partition(":")
        if not colon:
            raise error.ProtocolError(reason=f"malformed SCGI response header {line!r}")
        headers[name.strip()] = value.strip()

    status, reason = 200, "OK"
    if "Status" in headers:
        code, _, reason = headers.pop("Status").partition(" ")
        try:
            status = int(code)
        except ValueError:
            raise error.ProtocolError(reason=f"malformed SCGI status {code!r}")
    return status, reason, headers, body


class SCGIAdapter(BaseAdapter):
    def _connect(self, url, timeout: Optional[float]) -> socket.socket:
        if url.scheme == "scgi+unix":
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            sock.settimeout(timeout)
            try:
                sock.connect(unquote(url.path))
            except OSError:
                sock.close()
                raise
            return sock
        return socket.create_connection((url.hostname, url.port), timeout=timeout)

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        """
        Sends the PreparedRequest over a fresh SCGI connection.

        :param request: The PreparedRequest being "sent".
        :returns: a Response object with the CGI headers and the body
        """
        url = urlparse(request.url)
        if url.scheme != "scgi+unix" and not (url.hostname and url.port):
            raise InvalidURL(f"SCGI URL needs a host and a port: {request.url}")
        if isinstance(timeout, tuple):
            connect_timeout, read_timeout = timeout
        else:
            connect_timeout = read_timeout = timeout

        body = request.body or b""
        if isinstance(body, str):
            body = body.encode("utf-8")
        uri = "/" if url.scheme == "scgi+unix" else (url.path or "/")

        header = encode_header(b"CONTENT_LENGTH", str(len(body)).encode())
        header += encode_header(b"SCGI", b"1")
        header += encode_header(b"REQUEST_METHOD", request.method.encode())
        header += encode_header(b"REQUEST_URI", uri.encode())
        content_type = request.headers.get("Content-Type")
        if content_type:
            header += encode_header(b"CONTENT_TYPE", content_type.encode())

        chunks = []
        try:
            sock = self._connect(url, connect_timeout)
        except socket.timeout as e:
            raise ConnectTimeout(e, request=request)
        except OSError as e:
            raise ConnectionError(e, request=request)
        try:
            sock.settimeout(read_timeout)
            sock.sendall(encode_netstring(header) + body)
            while True:
                chunk = sock.recv(RECV_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
        except socket.timeout as e:
            raise ReadTimeout(e, request=request)
        except OSError as e:
            raise ConnectionError(e, request=request)
        finally:
            sock.close()

        raw = b"".join(chunks)
        log.debug(f"SCGI response from {request.url}: {len(raw)} bytes")
        try:
            status, reason, headers, content = parse_response(raw)
        except error.ProtocolError as e:
            e.url = request.url
            raise

        resp = Response()
        resp.status_code = status
        resp.reason = reason
        resp.headers = headers
        resp.raw = BytesIO(content)
        resp.raw.release_conn = resp.raw.close
        resp.url = request.url
        resp.request = request
        return resp

    def close(self) -> None:
        pass

"""
XML-RPC protocol operations combining request building and response parsing.

This class provides a high-level interface to XML-RPC calls while
remaining completely I/O-free.
"""

import base64
import logging
from typing import Any, Dict, List, Optional, Sequence

from rpcxml import __version__
from rpcxml.lib import error
from rpcxml.lib.debug import xmlstring

from .types import RPCRequest, RPCResponse, Value
from .xml_builders import encode_call
from .xml_parsers import decode_response

log = logging.getLogger(__name__)

XML_CONTENT_TYPES = ("text/xml", "application/xml")


class XMLRPCProtocol:
    """
    Sans-I/O XML-RPC protocol handler.

    Builds requests and parses responses without doing any I/O.
    All communication is delegated to an external I/O implementation.

    Example:
        protocol = XMLRPCProtocol(url="http://localhost:8000/RPC2")

        # Build request
        request = protocol.call_request("system.listMethods")

        # Execute with your I/O (not shown)
        response = io.execute(request)

        # Parse response
        methods = protocol.parse_call_response(response)
    """

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        huge_tree: bool = False,
    ):
        """
        Initialize the protocol handler.

        Args:
            url: Endpoint URL (http, https or scgi)
            headers: Extra headers sent with every call
            username: Username for Basic authentication
            password: Password for Basic authentication
            huge_tree: Allow parsing very large XML documents
        """
        self.url = url
        self.headers = dict(headers or {})
        self.huge_tree = huge_tree
        self._auth_header = self._build_auth_header(username, password)

    def _build_auth_header(
        self,
        username: Optional[str],
        password: Optional[str],
    ) -> Optional[str]:
        """Build Basic auth header if credentials provided."""
        if username and password:
            credentials = f"{username}:{password}"
            encoded = base64.b64encode(credentials.encode()).decode()
            return f"Basic {encoded}"
        return None

    def _base_headers(self) -> Dict[str, str]:
        """Return base headers for all requests."""
        headers = {
            "User-Agent": f"rpcxml/{__version__}",
            "Content-Type": "text/xml",
            "Accept": "text/xml",
        }
        headers.update(self.headers)
        if self._auth_header:
            headers["Authorization"] = self._auth_header
        return headers

    def call_request(self, name: str, args: Sequence[Any] = ()) -> RPCRequest:
        """
        Build the POST request for one procedure call.

        Args:
            name: Method name
            args: Call arguments

        Returns:
            RPCRequest ready for execution
        """
        body = encode_call(name, args)
        if error.debug_dump_communication:
            log.debug(f"call to {self.url}:\n{xmlstring(body)}")
        return RPCRequest(url=self.url, headers=self._base_headers(), body=body)

    def parse_call_response(self, response: RPCResponse) -> List[Value]:
        """
        Parse the reply to a call_request.

        Returns:
            The params of the methodResponse

        Raises:
            ProtocolError: If the transport reports a failure status
            Fault: If the server answered with a fault
            DecodeError: If the body is not a valid methodResponse
        """
        if error.debug_dump_communication:
            log.debug(f"response from {self.url}: {response.status}\n{xmlstring(response.body)}")

        if not response.ok:
            log.debug(f"error reply from {self.url}: {error.errmsg(response)}")
            raise error.ProtocolError(
                reason=f"{response.status} {response.reason}".strip(), url=self.url
            )

        content_type = response.content_type
        if content_type and not content_type.startswith(XML_CONTENT_TYPES):
            error.weirdness(f"Unexpected content type: {content_type}")

        return decode_response(response.body, huge_tree=self.huge_tree)

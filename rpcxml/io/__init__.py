"""
I/O layer for the XML-RPC protocol.

This module provides the synchronous implementation for executing
RPCRequest objects and returning RPCResponse objects.

The I/O layer is intentionally thin - it only handles transport.
All protocol logic (XML building/parsing) is in rpcxml.protocol.

Example:
    from rpcxml.protocol import XMLRPCProtocol
    from rpcxml.io import SyncIO

    protocol = XMLRPCProtocol(url="scgi://localhost:5000/")
    with SyncIO() as io:
        request = protocol.call_request("system.client_version")
        response = io.execute(request)
        version = protocol.parse_call_response(response)
"""

from .base import SyncIOProtocol
from .scgi import SCGIAdapter
from .sync import SyncIO

__all__ = [
    "SyncIOProtocol",
    "SCGIAdapter",
    "SyncIO",
]

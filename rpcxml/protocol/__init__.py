"""
Sans-I/O XML-RPC protocol implementation.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: The decoded value union and the request/response structures
- tokens: Forward-only token cursor over the lxml feed parser
- xml_builders: Pure functions to build methodCall/methodResponse documents
- xml_parsers: Recursive-descent decoders for those documents
- operations: XMLRPCProtocol class combining builders and parsers

Example usage:

    from rpcxml.protocol import XMLRPCProtocol

    protocol = XMLRPCProtocol(url="http://localhost:8000/RPC2")

    # Build a request (no I/O)
    request = protocol.call_request("examples.getStateName", [41])

    # Execute via your preferred I/O (sync or mock)
    response = your_http_client.execute(request)

    # Parse response (no I/O)
    [state] = protocol.parse_call_response(response)
"""

from .types import (
    # Values
    Array,
    Boolean,
    Bytes,
    DateTime,
    Double,
    Int,
    Nil,
    String,
    Struct,
    Value,
    # Calls
    MethodCall,
    # Request/Response
    RPCRequest,
    RPCResponse,
)
from .tokens import TokenCursor
from .xml_builders import (
    encode_call,
    encode_fault,
    encode_response,
    to_value,
)
from .xml_parsers import (
    decode_call,
    decode_response,
    decode_value,
)
from .operations import XMLRPCProtocol

__all__ = [
    # Values
    "Array",
    "Boolean",
    "Bytes",
    "DateTime",
    "Double",
    "Int",
    "Nil",
    "String",
    "Struct",
    "Value",
    # Calls
    "MethodCall",
    # Request/Response
    "RPCRequest",
    "RPCResponse",
    # Token navigation
    "TokenCursor",
    # XML Builders
    "encode_call",
    "encode_fault",
    "encode_response",
    "to_value",
    # XML Parsers
    "decode_call",
    "decode_response",
    "decode_value",
    # Protocol
    "XMLRPCProtocol",
]

"""
The seam between XMLRPCClient and the transport.

XMLRPCClient only needs two things from its I/O object: send one
encoded methodCall and get the raw reply back, and release whatever
connections it holds when the client is closed.  Anything with those two
methods can be passed as ``io=``, which is how the tests run the client
without a network.
"""

from typing import Protocol, runtime_checkable

from rpcxml.protocol.types import RPCRequest, RPCResponse


@runtime_checkable
class SyncIOProtocol(Protocol):
    """
    Blocking transport for XML-RPC calls.

    ``execute`` sends ``request.body`` as a POST to ``request.url`` and
    returns the complete reply.  The reply body must be fully read and the
    underlying connection handed back before returning, also when the
    transport fails half way; error statuses are returned, not raised,
    so that XMLRPCProtocol can turn them into ProtocolError.
    """

    def execute(self, request: RPCRequest) -> RPCResponse:
        ...

    def close(self) -> None:
        """Release pooled connections.  Calling it twice is harmless."""
        ...

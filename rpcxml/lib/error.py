#!/usr/bin/env python
import logging
import os
from typing import Optional

from rpcxml import __version__

## Environmental variables prepended with "PYTHON_RPCXML" are used for debug purposes,
## environmental variables prepended with "RPCXML_" are for connection parameters
debug_dump_communication = os.environ.get("PYTHON_RPCXML_COMMDUMP", False)

## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_RPCXML_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("rpcxml")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)


def errmsg(r) -> str:
    """Utility for formatting an error response to an error string"""
    return "%s %s\n\n%s" % (r.status, r.reason, r.body)


def weirdness(*reasons):
    from rpcxml.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


class XMLRPCError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, reason: Optional[str] = None, url: Optional[str] = None) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason
        super().__init__(self.reason)

    def __str__(self) -> str:
        if self.url:
            return "%s at '%s', reason %s" % (
                self.__class__.__name__,
                self.url,
                self.reason,
            )
        return "%s: %s" % (self.__class__.__name__, self.reason)


class Fault(XMLRPCError):
    """
    The server answered with a well-formed fault envelope.

    This is a normal outcome of a round trip, not a decoding problem:
    ``code`` and ``message`` are the ``faultCode`` and ``faultString``
    members sent by the server.
    """

    def __init__(self, code: int, message: str, url: Optional[str] = None) -> None:
        self.code = code
        self.message = message
        super().__init__(reason=message, url=url)

    def __str__(self) -> str:
        return "fault (%d): %s" % (self.code, self.message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fault):
            return NotImplemented
        return (self.code, self.message) == (other.code, other.message)

    __hash__ = Exception.__hash__


class ProtocolError(XMLRPCError):
    """
    The transport delivered something that is not an XML-RPC reply,
    typically a non-2xx HTTP status.  The reason contains the status line.
    """

    pass


class DecodeError(XMLRPCError):
    """Base class for all structural errors found while decoding."""

    pass


class MalformedDocument(DecodeError):
    pass


class UnexpectedEnd(MalformedDocument):
    reason = "unexpected end of document"


class UnexpectedTag(DecodeError):
    pass


class UnexpectedTokenType(DecodeError):
    pass


class UnknownValueType(DecodeError):
    def __init__(self, tag: str) -> None:
        self.tag = tag
        super().__init__(reason=f"unknown value type {tag!r}")


class MalformedValue(DecodeError):
    pass


class DuplicateKey(DecodeError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(reason=f"duplicate struct member {key!r}")


class IncompleteMember(DecodeError):
    pass


class MalformedFault(DecodeError):
    pass


class EncodeError(XMLRPCError):
    pass


class UnsupportedArgumentType(EncodeError):
    def __init__(self, observed_type: type) -> None:
        self.observed_type = observed_type
        super().__init__(reason=f"unsupported argument type {observed_type.__name__}")

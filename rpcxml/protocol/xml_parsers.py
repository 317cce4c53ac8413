"""
Recursive-descent decoding of XML-RPC documents.

All functions in this module are pure - they take XML bytes (or a
stream of them) in and return decoded values out.  The grammar is walked
directly on the token stream from ``TokenCursor``; no document tree is
kept around.
"""

import base64
import binascii
import logging
import math
import re
from datetime import datetime
from typing import Callable, Dict, List, Tuple

from rpcxml.lib import error

from .tokens import CharData, EndTag, Source, TokenCursor
from .types import (
    DATETIME_FORMAT,
    INT_MAX,
    INT_MIN,
    Array,
    Boolean,
    Bytes,
    DateTime,
    Double,
    Int,
    MethodCall,
    Nil,
    String,
    Struct,
    Value,
)

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"^[+-]?[0-9]+$")
_DOUBLE_RE = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")


def _read_text(cursor: TokenCursor, name: str) -> str:
    """
    Reads the text content of element ``name`` (possibly empty) and
    consumes its end tag.
    """
    text = cursor.next_char_data_or_end(name)
    ## CharData tokens are never empty, so an empty string means the
    ## end tag has been consumed already
    if text:
        cursor.next_end(name)
    return text


def _read_literal(cursor: TokenCursor, name: str) -> str:
    text = cursor.next_char_data()
    cursor.next_end(name)
    return text.strip()


## Scalar decoders.  Each one is entered right after the start tag of
## the type element and leaves after the matching end tag.


def _decode_int(cursor: TokenCursor, tag: str) -> Int:
    text = cursor.next_char_data()
    end = cursor.next_end()
    if end.name not in ("int", "i4"):
        raise error.UnexpectedTag(reason=f"<{tag}> closed by </{end.name}>")
    text = text.strip()
    if not _INT_RE.match(text):
        raise error.MalformedValue(reason=f"invalid integer {text!r}")
    ## the length check keeps int() clear of its digit limit
    if len(text.lstrip("+-0")) > 19:
        raise error.MalformedValue(reason=f"integer out of range {text[:32]!r}")
    value = int(text)
    if not INT_MIN <= value <= INT_MAX:
        raise error.MalformedValue(reason=f"integer out of range {text!r}")
    return Int(value)


def _decode_double(cursor: TokenCursor, tag: str) -> Double:
    text = _read_literal(cursor, tag)
    if not _DOUBLE_RE.match(text):
        raise error.MalformedValue(reason=f"invalid double {text!r}")
    value = float(text)
    if not math.isfinite(value):
        raise error.MalformedValue(reason=f"double out of range {text!r}")
    return Double(value)


def _decode_string(cursor: TokenCursor, tag: str) -> String:
    return String(_read_text(cursor, tag))


def _decode_boolean(cursor: TokenCursor, tag: str) -> Boolean:
    text = _read_literal(cursor, tag)
    if text == "1":
        return Boolean(True)
    if text == "0":
        return Boolean(False)
    raise error.MalformedValue(reason=f"invalid boolean {text!r}")


def _decode_base64(cursor: TokenCursor, tag: str) -> Bytes:
    text = "".join(_read_text(cursor, tag).split())
    try:
        return Bytes(base64.b64decode(text, validate=True))
    except binascii.Error as e:
        raise error.MalformedValue(reason=f"invalid base64 data: {e}") from e


def parse_datetime(text: str) -> datetime:
    """
    Parses a dateTime.iso8601 literal.  Both the classic XML-RPC layout
    and RFC 3339 (as sent by some servers) are accepted.
    """
    try:
        return datetime.strptime(text, DATETIME_FORMAT)
    except ValueError:
        pass
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise error.MalformedValue(reason=f"invalid dateTime.iso8601 {text!r}") from e


def _decode_datetime(cursor: TokenCursor, tag: str) -> DateTime:
    return DateTime(parse_datetime(_read_literal(cursor, tag)))


def _decode_nil(cursor: TokenCursor, tag: str) -> Nil:
    cursor.next_end(tag)
    return Nil()


def _decode_array(cursor: TokenCursor, tag: str) -> Array:
    cursor.next_start("data")
    items: List[Value] = []
    while True:
        token = cursor.next_start_or_end("value", "data")
        if isinstance(token, EndTag):
            break
        items.append(decode_value(cursor))
    cursor.next_end(tag)
    return Array(items)


def _decode_member(cursor: TokenCursor) -> Tuple[str, Value]:
    key = None
    value = None
    seen_key = False
    seen_value = False
    while True:
        token = cursor.next_start_or_end(None, "member")
        if isinstance(token, EndTag):
            if not seen_key:
                raise error.IncompleteMember(reason="struct member without <name>")
            if not seen_value:
                raise error.IncompleteMember(reason=f"struct member {key!r} without <value>")
            return key, value
        if token.name == "name":
            if seen_key:
                raise error.IncompleteMember(reason="struct member with several <name> tags")
            key = _read_text(cursor, "name")
            seen_key = True
        elif token.name == "value":
            if seen_value:
                raise error.IncompleteMember(reason="struct member with several <value> tags")
            value = decode_value(cursor)
            seen_value = True
        else:
            raise error.UnexpectedTag(reason=f"unexpected <{token.name}> in struct member")


def _decode_struct(cursor: TokenCursor, tag: str) -> Struct:
    members: Dict[str, Value] = {}
    while True:
        token = cursor.next_start_or_end("member", tag)
        if isinstance(token, EndTag):
            return Struct(members)
        key, value = _decode_member(cursor)
        if key in members:
            raise error.DuplicateKey(key)
        members[key] = value


_VALUE_DECODERS: Dict[str, Callable[[TokenCursor, str], Value]] = {
    "int": _decode_int,
    "i4": _decode_int,
    "double": _decode_double,
    "string": _decode_string,
    "boolean": _decode_boolean,
    "base64": _decode_base64,
    "dateTime.iso8601": _decode_datetime,
    "nil": _decode_nil,
    "array": _decode_array,
    "struct": _decode_struct,
}


def decode_value(cursor: TokenCursor) -> Value:
    """
    Decodes one value.  The cursor must be positioned right after a
    ``<value>`` start tag; the matching ``</value>`` is consumed too.

    Raises:
        UnknownValueType: If the type tag is not part of XML-RPC
        DecodeError: For any other structural problem
    """
    tag = cursor.next_start()
    decoder = _VALUE_DECODERS.get(tag.name)
    if decoder is None:
        raise error.UnknownValueType(tag.name)
    value = decoder(cursor, tag.name)
    cursor.next_end("value")
    return value


def _decode_params(cursor: TokenCursor) -> List[Value]:
    params: List[Value] = []
    while True:
        token = cursor.next_start_or_end("param", "params")
        if isinstance(token, EndTag):
            return params
        cursor.next_start("value")
        params.append(decode_value(cursor))
        cursor.next_end("param")


def _decode_fault(cursor: TokenCursor) -> error.Fault:
    cursor.next_start("value")
    value = decode_value(cursor)
    if not isinstance(value, Struct):
        raise error.MalformedFault(reason="fault value is not a struct")

    code = value.get("faultCode")
    if code is None:
        raise error.MalformedFault(reason="missing faultCode")
    if not isinstance(code, Int):
        raise error.MalformedFault(reason="wrong faultCode type")

    message = value.get("faultString")
    if message is None:
        raise error.MalformedFault(reason="missing faultString")
    if not isinstance(message, String):
        raise error.MalformedFault(reason="wrong faultString type")

    cursor.next_end("fault")
    return error.Fault(code.value, message.value)


def _expect_declaration(cursor: TokenCursor) -> None:
    try:
        pi = cursor.next_processing_instruction()
    except error.UnexpectedTokenType as e:
        raise error.MalformedDocument(reason="missing XML declaration") from e
    if pi.target != "xml" or "version" not in pi.text:
        raise error.MalformedDocument(reason=f"invalid XML declaration <?{pi.target} {pi.text}?>")


def _expect_root(cursor: TokenCursor, name: str) -> None:
    try:
        cursor.next_start(name)
    except (error.UnexpectedTag, error.UnexpectedTokenType) as e:
        raise error.MalformedDocument(
            reason=f"expected <{name}> document element: {e.reason}"
        ) from e


def _expect_end_of_document(cursor: TokenCursor) -> None:
    while True:
        token = cursor.next_token()
        if token is None:
            return
        if not isinstance(token, CharData):
            raise error.MalformedDocument(
                reason=f"unexpected {type(token).__name__} after document element"
            )


def decode_response(source: Source, huge_tree: bool = False) -> List[Value]:
    """
    Decode a methodResponse document.

    Args:
        source: Response body as bytes, file-like object or byte chunks
        huge_tree: Allow parsing very large XML documents

    Returns:
        The params of the response, in document order

    Raises:
        Fault: If the server answered with a fault envelope
        DecodeError: If the document is not a valid methodResponse
    """
    cursor = TokenCursor(source, huge_tree=huge_tree)
    _expect_declaration(cursor)
    _expect_root(cursor, "methodResponse")

    params: List[Value] = []
    fault = None
    token = cursor.next_start()
    if token.name == "params":
        params = _decode_params(cursor)
    elif token.name == "fault":
        fault = _decode_fault(cursor)
    else:
        raise error.UnexpectedTag(reason=f"expected <params> or <fault>, got <{token.name}>")

    cursor.next_end("methodResponse")
    _expect_end_of_document(cursor)

    if fault is not None:
        log.debug(f"server returned {fault}")
        raise fault
    return params


def decode_call(source: Source, huge_tree: bool = False) -> MethodCall:
    """
    Decode a methodCall document, the way a server receives it.

    Args:
        source: Request body as bytes, file-like object or byte chunks
        huge_tree: Allow parsing very large XML documents

    Returns:
        MethodCall with the method name and its params
    """
    cursor = TokenCursor(source, huge_tree=huge_tree)
    _expect_declaration(cursor)
    _expect_root(cursor, "methodCall")

    cursor.next_start("methodName")
    name = _read_literal(cursor, "methodName")

    params: List[Value] = []
    token = cursor.next_start_or_end("params", "methodCall")
    if not isinstance(token, EndTag):
        params = _decode_params(cursor)
        cursor.next_end("methodCall")
    _expect_end_of_document(cursor)

    return MethodCall(name=name, params=params)

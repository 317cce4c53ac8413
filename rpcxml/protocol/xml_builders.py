"""
Pure functions for building XML-RPC documents.

All functions in this module are pure - they take data in and return XML
out, with no side effects or I/O.
"""

import base64
import math
from datetime import datetime
from typing import Any, Iterable, Sequence

from lxml import etree

from rpcxml.lib import error

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

_VALUE_TYPES = (Int, Double, String, Boolean, Bytes, DateTime, Nil, Array, Struct)


def to_value(data: Any) -> Value:
    """
    Maps a call argument to the XML-RPC value it is sent as.

    Value instances are passed through.  bool is checked before int,
    as bool is a subclass of int in Python.

    Raises:
        UnsupportedArgumentType: For anything without an XML-RPC equivalent
    """
    if isinstance(data, _VALUE_TYPES):
        return data
    if isinstance(data, bool):
        return Boolean(data)
    if isinstance(data, int):
        return Int(data)
    if isinstance(data, float):
        if not math.isfinite(data):
            raise error.UnsupportedArgumentType(type(data))
        return Double(data)
    if isinstance(data, str):
        return String(data)
    if isinstance(data, (bytes, bytearray)):
        return Bytes(bytes(data))
    if isinstance(data, datetime):
        return DateTime(data)
    if data is None:
        return Nil()
    if isinstance(data, (list, tuple)):
        return Array([to_value(item) for item in data])
    if isinstance(data, dict):
        members = {}
        for key, value in data.items():
            if not isinstance(key, str):
                raise error.UnsupportedArgumentType(type(key))
            members[key] = to_value(value)
        return Struct(members)
    raise error.UnsupportedArgumentType(type(data))


def _set_text(element: etree._Element, text: str) -> None:
    try:
        element.text = text
    except ValueError as e:
        ## lxml refuses control characters that XML 1.0 cannot carry
        raise error.EncodeError(reason=str(e)) from e


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        return value.isoformat()
    return value.strftime(DATETIME_FORMAT)


def _value_element(value: Value) -> etree._Element:
    """Builds <value><TYPE>...</TYPE></value> for one value"""
    element = etree.Element("value")
    if isinstance(value, Int):
        if not INT_MIN <= value.value <= INT_MAX:
            raise error.EncodeError(reason=f"integer {value.value} does not fit in 64 bits")
        etree.SubElement(element, "int").text = str(value.value)
    elif isinstance(value, Double):
        etree.SubElement(element, "double").text = repr(value.value)
    elif isinstance(value, String):
        _set_text(etree.SubElement(element, "string"), value.value)
    elif isinstance(value, Boolean):
        etree.SubElement(element, "boolean").text = "1" if value.value else "0"
    elif isinstance(value, Bytes):
        etree.SubElement(element, "base64").text = base64.b64encode(value.value).decode("ascii")
    elif isinstance(value, DateTime):
        etree.SubElement(element, "dateTime.iso8601").text = _format_datetime(value.value)
    elif isinstance(value, Nil):
        etree.SubElement(element, "nil")
    elif isinstance(value, Array):
        data = etree.SubElement(etree.SubElement(element, "array"), "data")
        for item in value.items:
            data.append(_value_element(item))
    elif isinstance(value, Struct):
        struct = etree.SubElement(element, "struct")
        for key, member_value in value.members.items():
            member = etree.SubElement(struct, "member")
            _set_text(etree.SubElement(member, "name"), key)
            member.append(_value_element(member_value))
    else:
        raise error.UnsupportedArgumentType(type(value))
    return element


def _params_element(params: Iterable[Value]) -> etree._Element:
    element = etree.Element("params")
    for value in params:
        param = etree.SubElement(element, "param")
        param.append(_value_element(value))
    return element


def _tostring(root: etree._Element) -> bytes:
    return etree.tostring(root, encoding="utf-8", xml_declaration=True, pretty_print=True)


def build_method_call(name: str, arguments: Sequence[Any] = ()) -> MethodCall:
    """Maps the arguments and returns the MethodCall to be serialized"""
    return MethodCall(name=name, params=[to_value(argument) for argument in arguments])


def encode_method_call(call: MethodCall) -> bytes:
    root = etree.Element("methodCall")
    _set_text(etree.SubElement(root, "methodName"), call.name)
    root.append(_params_element(call.params))
    return _tostring(root)


def encode_call(name: str, arguments: Sequence[Any] = ()) -> bytes:
    """
    Build a methodCall document.

    Args:
        name: Method name
        arguments: Call arguments, either Value instances or plain Python
                   data (see to_value)

    Returns:
        UTF-8 encoded XML bytes, indented by two spaces

    Raises:
        UnsupportedArgumentType: If an argument cannot be sent
    """
    return encode_method_call(build_method_call(name, arguments))


def encode_response(params: Sequence[Any] = ()) -> bytes:
    """
    Build a methodResponse document carrying params.

    Returns:
        UTF-8 encoded XML bytes
    """
    root = etree.Element("methodResponse")
    root.append(_params_element([to_value(param) for param in params]))
    return _tostring(root)


def encode_fault(code: int, message: str) -> bytes:
    """
    Build a methodResponse document carrying a fault.

    Returns:
        UTF-8 encoded XML bytes
    """
    root = etree.Element("methodResponse")
    fault = etree.SubElement(root, "fault")
    fault.append(_value_element(Struct({"faultCode": Int(code), "faultString": String(message)})))
    return _tostring(root)


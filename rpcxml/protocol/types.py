"""
Core protocol types for the Sans-I/O XML-RPC implementation.

The decoded value model is a tagged union: one frozen dataclass per
XML-RPC value type.  Requests and responses are plain data structures
describing an HTTP exchange, independent of any I/O implementation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Tuple, Union

## The classic XML-RPC layout, e.g. 19980717T14:08:55
DATETIME_FORMAT = "%Y%m%dT%H:%M:%S"

## <int> values are signed 64 bit on the wire
INT_MIN = -(2**63)
INT_MAX = 2**63 - 1


@dataclass(frozen=True)
class Int:
    """``<int>`` / ``<i4>``"""

    value: int

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True)
class Double:
    """``<double>``"""

    value: float

    def to_python(self) -> float:
        return self.value


@dataclass(frozen=True)
class String:
    """``<string>``"""

    value: str

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class Boolean:
    """``<boolean>``, transported as ``0`` or ``1``"""

    value: bool

    def to_python(self) -> bool:
        return self.value


@dataclass(frozen=True)
class Bytes:
    """``<base64>``, holding the decoded raw bytes"""

    value: bytes

    def to_python(self) -> bytes:
        return self.value


@dataclass(frozen=True)
class DateTime:
    """``<dateTime.iso8601>``"""

    value: datetime

    def to_python(self) -> datetime:
        return self.value


@dataclass(frozen=True)
class Nil:
    """``<nil/>``"""

    def to_python(self) -> None:
        return None


@dataclass(frozen=True)
class Array:
    """``<array><data>...</data></array>``, order preserved"""

    items: Tuple["Value", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def to_python(self) -> list:
        return [item.to_python() for item in self.items]


@dataclass(frozen=True)
class Struct:
    """
    ``<struct>`` with uniquely named members.

    The members mapping is read-only; the decoder refuses documents
    repeating a member name, so a Struct never needs to pick a winner.
    """

    members: Mapping[str, "Value"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", MappingProxyType(dict(self.members)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Struct):
            return NotImplemented
        return dict(self.members) == dict(other.members)

    def __hash__(self) -> int:
        return hash(frozenset(self.members.items()))

    def __len__(self) -> int:
        return len(self.members)

    def __contains__(self, key: object) -> bool:
        return key in self.members

    def __getitem__(self, key: str) -> "Value":
        return self.members[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.members.get(key, default)

    def to_python(self) -> dict:
        return {key: value.to_python() for key, value in self.members.items()}


Value = Union[Int, Double, String, Boolean, Bytes, DateTime, Nil, Array, Struct]


@dataclass(frozen=True)
class MethodCall:
    """
    A procedure call: the method name and its already mapped arguments.

    Attributes:
        name: Method name, e.g. ``system.listMethods``
        params: Arguments in call order
    """

    name: str
    params: Tuple[Value, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params))


@dataclass(frozen=True)
class RPCRequest:
    """
    Represents an HTTP POST carrying a methodCall document.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.

    Attributes:
        url: Full URL of the endpoint (http, https or scgi)
        headers: HTTP headers as dict
        body: The encoded methodCall document
    """

    url: str
    headers: dict = field(default_factory=dict)
    body: bytes = b""
    method: str = "POST"

    def with_header(self, name: str, value: str) -> "RPCRequest":
        """Return new request with additional header."""
        return RPCRequest(
            url=self.url,
            headers={**self.headers, name: value},
            body=self.body,
            method=self.method,
        )


@dataclass(frozen=True)
class RPCResponse:
    """
    Represents the reply to an RPCRequest.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
        reason: Reason phrase as delivered by the transport
    """

    status: int
    headers: dict
    body: bytes
    reason: str = ""

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return ""

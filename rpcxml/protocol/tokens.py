"""
Token navigation on top of the lxml feed parser.

lxml pushes parser events while bytes are fed to it.  ``TokenCursor``
turns those events into a forward-only stream of tokens (start tags, end
tags, character data, processing instructions and comments) that the
recursive-descent decoder pulls from one at a time.  None of the
primitives in here know anything about XML-RPC.
"""

import codecs
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, Iterator, Optional, Union

from lxml import etree

from rpcxml.lib import error

log = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024


@dataclass(frozen=True)
class StartTag:
    name: str


@dataclass(frozen=True)
class EndTag:
    name: str


@dataclass(frozen=True)
class CharData:
    text: str


@dataclass(frozen=True)
class ProcessingInstruction:
    target: str
    text: str = ""


@dataclass(frozen=True)
class Comment:
    text: str = ""


Token = Union[StartTag, EndTag, CharData, ProcessingInstruction, Comment]

Source = Union[bytes, bytearray, memoryview, Iterable[bytes]]


def _iter_chunks(source: Source, chunk_size: int) -> Iterator[bytes]:
    if isinstance(source, (bytes, bytearray, memoryview)):
        yield bytes(source)
        return
    if hasattr(source, "read"):
        while True:
            chunk = source.read(chunk_size)
            if not chunk:
                return
            yield chunk
        return
    for chunk in source:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        yield chunk


def _localname(element) -> str:
    return etree.QName(element).localname


def _kind(token: Optional[Token]) -> str:
    if token is None:
        return "end of document"
    return type(token).__name__


class TokenCursor:
    """
    Forward-only cursor over the tokens of one XML document.

    Args:
        source: The document as bytes, a binary file-like object or an
                iterable of byte chunks.  Chunks are only read when the
                decoder asks for a token that has not been parsed yet.
        huge_tree: Allow parsing very large XML documents
        chunk_size: Read size used for file-like sources
    """

    def __init__(
        self,
        source: Source,
        huge_tree: bool = False,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self._chunks = _iter_chunks(source, chunk_size)
        self._parser = etree.XMLPullParser(
            events=("start", "end", "comment", "pi"),
            huge_tree=huge_tree,
            resolve_entities=False,
            no_network=True,
        )
        self._tokens: Deque[Token] = deque()
        ## element whose text (or tail) has not been turned into a token yet
        self._pending = None
        self._head = b""
        self._started = False
        self._finished = False
        self._error: Optional[error.DecodeError] = None

    ## Low level: feeding lxml and collecting its events

    def _feed(self, chunk: bytes, final: bool = False) -> None:
        if not self._started:
            self._head += chunk
            head = self._head
            if head.startswith(codecs.BOM_UTF8):
                head = head[len(codecs.BOM_UTF8) :]
            if len(head) < 6 and not final:
                return
            if head[:5] == b"<?xml" and head[5:6].isspace():
                end = head.find(b"?>")
                if end < 0 and not final:
                    return
                if end >= 0:
                    ## lxml consumes the declaration silently
                    self._tokens.append(
                        ProcessingInstruction("xml", head[5:end].strip().decode("latin-1"))
                    )
            self._started = True
            chunk, self._head = self._head, b""
        if chunk:
            self._parser.feed(chunk)

    def _flush_pending(self) -> None:
        if self._pending is None:
            return
        element, attribute = self._pending
        self._pending = None
        text = getattr(element, attribute)
        if text:
            self._tokens.append(CharData(text))

    def _collect(self) -> None:
        for event, item in self._parser.read_events():
            self._flush_pending()
            if event == "start":
                self._tokens.append(StartTag(_localname(item)))
                self._pending = (item, "text")
            elif event == "end":
                ## unresolved entities produce no events and would hide their tail text
                for child in item:
                    if isinstance(child, etree._Entity):
                        raise error.MalformedDocument(
                            reason=f"entity reference {child.text} in <{_localname(item)}>"
                        )
                self._tokens.append(EndTag(_localname(item)))
                ## children and text are already tokens, only the tail is left
                item.clear(keep_tail=True)
                self._pending = (item, "tail")
            elif event == "comment":
                self._tokens.append(Comment(item.text or ""))
                self._pending = (item, "tail")
            elif event == "pi":
                self._tokens.append(ProcessingInstruction(item.target, item.text or ""))
                self._pending = (item, "tail")

    def _fill(self) -> None:
        while not self._tokens and not self._finished:
            chunk = next(self._chunks, None)
            try:
                if chunk is None:
                    self._finished = True
                    if not self._started:
                        self._feed(b"", final=True)
                    self._parser.close()
                else:
                    self._feed(chunk)
            except etree.XMLSyntaxError as e:
                self._finished = True
                if chunk is None:
                    self._error = error.UnexpectedEnd(reason=str(e))
                else:
                    self._error = error.MalformedDocument(reason=str(e))
            self._collect()
            if self._finished:
                self._flush_pending()

    def next_token(self) -> Optional[Token]:
        """
        Returns the next raw token, or None when the document has
        ended cleanly.  Syntax errors reported by lxml are raised once
        all tokens parsed before the error have been consumed.
        """
        self._fill()
        if self._tokens:
            return self._tokens.popleft()
        if self._error is not None:
            raise self._error
        return None

    def _next_required(self, where: str) -> Token:
        token = self.next_token()
        if token is None:
            raise error.UnexpectedEnd(reason=f"{where}: unexpected end of document")
        return token

    ## Navigation primitives

    def next_start(self, name: Optional[str] = None) -> StartTag:
        """
        Skips character data and returns the next start tag, which
        must be named ``name`` unless name is empty.
        """
        while True:
            token = self._next_required("next_start")
            if isinstance(token, StartTag):
                if name and token.name != name:
                    raise error.UnexpectedTag(
                        reason=f"expected <{name}>, got <{token.name}>"
                    )
                return token
            if not isinstance(token, CharData):
                raise error.UnexpectedTokenType(
                    reason=f"expected start tag, got {_kind(token)}"
                )

    def next_end(self, name: Optional[str] = None) -> EndTag:
        """Mirror of next_start for end tags."""
        while True:
            token = self._next_required("next_end")
            if isinstance(token, EndTag):
                if name and token.name != name:
                    raise error.UnexpectedTag(
                        reason=f"expected </{name}>, got </{token.name}>"
                    )
                return token
            if not isinstance(token, CharData):
                raise error.UnexpectedTokenType(
                    reason=f"expected end tag, got {_kind(token)}"
                )

    def next_char_data(self) -> str:
        token = self._next_required("next_char_data")
        if not isinstance(token, CharData):
            raise error.UnexpectedTokenType(
                reason=f"expected character data, got {_kind(token)}"
            )
        ## lxml hands out fresh str objects, nothing to copy
        return token.text

    def next_char_data_or_end(self, name: str) -> str:
        """
        Returns the next character data, or an empty string if the
        element ``name`` is closed right away.  In the second case the
        end tag is consumed.
        """
        token = self._next_required("next_char_data_or_end")
        if isinstance(token, CharData):
            return token.text
        if isinstance(token, EndTag):
            if token.name != name:
                raise error.UnexpectedTag(
                    reason=f"expected </{name}>, got </{token.name}>"
                )
            return ""
        raise error.UnexpectedTokenType(
            reason=f"expected character data, got {_kind(token)}"
        )

    def next_start_or_end(
        self, start: Optional[str] = None, end: Optional[str] = None
    ) -> Union[StartTag, EndTag]:
        """
        Skips character data and returns whatever tag comes first.
        This drives all the "zero or more children" loops.
        """
        while True:
            token = self._next_required("next_start_or_end")
            if isinstance(token, StartTag):
                if start and token.name != start:
                    raise error.UnexpectedTag(
                        reason=f"expected <{start}>, got <{token.name}>"
                    )
                return token
            if isinstance(token, EndTag):
                if end and token.name != end:
                    raise error.UnexpectedTag(
                        reason=f"expected </{end}>, got </{token.name}>"
                    )
                return token
            if not isinstance(token, CharData):
                raise error.UnexpectedTokenType(
                    reason=f"expected start or end tag, got {_kind(token)}"
                )

    def next_processing_instruction(self) -> ProcessingInstruction:
        token = self.next_token()
        if token is None:
            raise error.UnexpectedEnd(
                reason="expected processing instruction, got end of document"
            )
        if not isinstance(token, ProcessingInstruction):
            raise error.UnexpectedTokenType(
                reason=f"expected processing instruction, got {_kind(token)}"
            )
        return token

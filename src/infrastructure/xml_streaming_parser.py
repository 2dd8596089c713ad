"""Secure Incremental XML Scanner.

This module provides a secure push-style XML scanner that turns the raw bytes
of an Apple Health export into a stream of structural events (element opened
with attributes, element closed), without ever holding the whole document
in memory.

Security Impact:
    - Prevents XML-based attacks (Billion Laughs, external entity fetches)
    - Enforces limits on nesting depth and element count
    - Disables entity expansion and network access
    - Fails fast on malformed XML, no best-effort recovery

Architecture:
    - Wraps lxml.etree.XMLPullParser fed with arbitrary-sized byte chunks
    - Element names and attribute keys are normalized to lower case
    - Completed elements are cleared and detached as soon as they close
    - Memory usage: O(largest element) instead of O(file_size)
"""

import logging
from typing import BinaryIO, Callable, Iterator, List, Optional

from lxml import etree

from src.domain.markup_events import AttributeMap, ElementClosed, ElementEvent, ElementOpened
from src.domain.ports import MarkupError, MarkupLimitError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def _local_name(tag: str) -> str:
    """Strip any namespace from a tag or attribute name and lower-case it."""
    return tag.rsplit("}", 1)[-1].lower()


class StreamingXMLScanner:
    """Secure incremental XML scanner built on lxml.

    The scanner is fed bytes in any chunk size (down to a single byte) and
    returns, for each chunk, the structural events that chunk completed.
    ``close`` signals end of input and reports truncated documents.

    Security Impact:
        - resolve_entities=False and no_network=True block entity attacks
        - recover=False makes every syntax error fatal
        - Depth and element-count limits bound the work a hostile file can cause

    Example Usage:
        ```python
        scanner = StreamingXMLScanner(max_depth=100)

        with open("export.xml", "rb") as source:
            for event in scanner.scan(source):
                handle(event)
        ```
    """

    def __init__(
        self,
        max_depth: int = 100,
        max_events: Optional[int] = None,
        huge_tree: bool = False
    ):
        """Initialize the scanner with security limits.

        Parameters:
            max_depth: Maximum XML nesting depth (prevents deep recursion)
            max_events: Maximum number of elements to open (None = no limit)
            huge_tree: Allow very deep trees and very long text nodes in libxml2

        Security Impact:
            - Limits prevent resource exhaustion attacks
            - huge_tree=False keeps libxml2's own hardening limits in place
        """
        self.max_depth = max_depth
        self.max_events = max_events
        self.huge_tree = huge_tree

        self.event_count = 0
        self._depth = 0
        self._root_seen = False
        self._closed = False
        self._parser = self._create_parser()

    def _create_parser(self) -> etree.XMLPullParser:
        """Create a pull parser with security settings.

        Security Impact:
            - resolve_entities=False: Prevents entity expansion attacks
            - no_network=True: Prevents network access during parsing
            - recover=False: Fail fast on malformed XML
        """
        return etree.XMLPullParser(
            events=("start", "end"),
            huge_tree=self.huge_tree,
            resolve_entities=False,
            no_network=True,
            recover=False,
            remove_comments=True,
            remove_pis=True,
        )

    @staticmethod
    def _markup_error(error: etree.XMLSyntaxError) -> MarkupError:
        """Convert an lxml syntax error into a MarkupError with position info."""
        reason = getattr(error, "msg", None) or str(error) or "Malformed XML"
        line = getattr(error, "lineno", None)
        column = getattr(error, "offset", None)
        return MarkupError(reason, line=line or None, column=column)

    def _check_security_limits(self) -> None:
        """Check if parsing exceeds security limits.

        Raises:
            MarkupLimitError: If security limits are exceeded
        """
        self.event_count += 1

        if self.max_events:
            if self.event_count == int(self.max_events * 0.8):
                logger.warning(
                    f"XML element count at 80% of limit: {self.event_count:,} / {self.max_events:,}"
                )
            if self.event_count > self.max_events:
                raise MarkupLimitError(
                    f"XML element limit exceeded: {self.event_count:,} > {self.max_events:,}. "
                    f"This may indicate a very large file or a malicious XML file."
                )

        if self._depth > self.max_depth:
            raise MarkupLimitError(
                f"XML depth limit exceeded: {self._depth} > {self.max_depth}. "
                "This may indicate a malicious XML file."
            )

    def _read_events(self) -> List[ElementEvent]:
        events: List[ElementEvent] = []
        try:
            for action, elem in self._parser.read_events():
                if action == "start":
                    self._depth += 1
                    self._root_seen = True
                    self._check_security_limits()
                    attributes = AttributeMap(
                        {_local_name(key): value for key, value in elem.attrib.items()}
                    )
                    events.append(ElementOpened(_local_name(elem.tag), attributes))
                else:
                    self._depth -= 1
                    events.append(ElementClosed(_local_name(elem.tag)))
                    # Release the finished subtree; siblings before it are done too
                    elem.clear(keep_tail=False)
                    parent = elem.getparent()
                    if parent is not None:
                        while elem.getprevious() is not None:
                            del parent[0]
        except etree.XMLSyntaxError as e:
            raise self._markup_error(e) from e
        return events

    def feed(self, chunk: bytes) -> List[ElementEvent]:
        """Feed the next chunk of the document.

        Parameters:
            chunk: Raw bytes, any size

        Returns:
            List[ElementEvent]: Events completed by this chunk, in document order

        Raises:
            MarkupError: If the bytes seen so far are not well-formed XML
            ValueError: If the scanner has already been closed
        """
        if self._closed:
            raise ValueError("Cannot feed a closed scanner")
        try:
            self._parser.feed(chunk)
        except etree.XMLSyntaxError as e:
            raise self._markup_error(e) from e
        return self._read_events()

    def close(self) -> List[ElementEvent]:
        """Signal end of input and return any remaining events.

        Raises:
            MarkupError: If the document is empty or truncated
        """
        if self._closed:
            return []
        self._closed = True
        try:
            self._parser.close()
        except etree.XMLSyntaxError as e:
            raise self._markup_error(e) from e
        events = self._read_events()
        if not self._root_seen:
            raise MarkupError("Document is empty")
        return events

    def scan(
        self,
        stream: BinaryIO,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_bytes: Optional[Callable[[int], None]] = None
    ) -> Iterator[ElementEvent]:
        """Scan a binary stream to exhaustion.

        Parameters:
            stream: Readable binary stream positioned at the document start
            chunk_size: Number of bytes to read per step
            on_bytes: Optional callback receiving the size of every chunk read

        Yields:
            ElementEvent: Structural events in document order
        """
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            if on_bytes is not None:
                on_bytes(len(chunk))
            yield from self.feed(chunk)
        yield from self.close()

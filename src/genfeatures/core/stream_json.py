"""Incremental extraction of JSON objects from a chunked text stream.

Model output arrives in fragments that have no relationship to JSON structure.
``StreamJsonExtractor`` buffers those fragments and yields every top-level
``{...}`` object as soon as its closing brace arrives.

Brace depth is counted without tokenizing string literals, so a ``{`` or ``}``
inside a string value can close a candidate early. Such a candidate fails to
parse and the scan moves on to the next opening brace; objects containing
unbalanced braces inside strings may therefore never be emitted.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, List, Optional

logger = logging.getLogger("genfeatures.stream")


def _matching_close(text: str, start: int, open_char: str, close_char: str) -> int:
    """Index of the character closing the group opened at ``start``, or -1."""
    depth = 0
    for i in range(start, len(text)):
        ch = text[i]
        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return i
    return -1


class StreamJsonExtractor:
    """Single-pass extractor; build a new one per stream."""

    def __init__(self) -> None:
        self._buffer = ""
        self._consumed = False

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, fragment: str) -> List[Any]:
        """Append a fragment and return every object it completed."""
        self._buffer += fragment
        emitted: List[Any] = []
        start = self._buffer.find("{")
        while start != -1:
            end = _matching_close(self._buffer, start, "{", "}")
            if end == -1:
                break
            candidate = self._buffer[start : end + 1]
            try:
                value = json.loads(candidate)
            except json.JSONDecodeError:
                logger.debug("stream_json_candidate_rejected", extra={"length": len(candidate)})
                start = self._buffer.find("{", start + 1)
                continue
            emitted.append(value)
            self._buffer = self._buffer[end + 1 :]
            start = self._buffer.find("{")
        return emitted

    async def extract(self, fragments: AsyncIterable[Any]) -> AsyncIterator[Any]:
        if self._consumed:
            raise RuntimeError("StreamJsonExtractor is single-pass; create a new instance per stream")
        self._consumed = True
        async for fragment in fragments:
            if not isinstance(fragment, str):
                continue
            for value in self.feed(fragment):
                yield value
        if self._buffer.strip():
            logger.debug("stream_json_partial_discarded", extra={"length": len(self._buffer)})
        self._buffer = ""


def parse_json_stream(fragments: AsyncIterable[Any]) -> AsyncIterator[Any]:
    return StreamJsonExtractor().extract(fragments)


def extract_json_array(text: Optional[str]) -> Optional[List[Any]]:
    """Parse the first balanced ``[...]`` found in ``text``.

    Returns ``None`` when there is no balanced array or it is not valid JSON.
    """
    if not text:
        return None
    start = text.find("[")
    while start != -1:
        end = _matching_close(text, start, "[", "]")
        if end == -1:
            return None
        try:
            value = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            start = text.find("[", start + 1)
            continue
        return value if isinstance(value, list) else None
    return None

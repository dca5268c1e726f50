from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from src.genfeatures.errors import TransportError


@dataclass
class StreamCall:
    prompt: str
    purpose: str
    system_instruction: Optional[str]
    temperature: Optional[float]


@dataclass
class FakeGenerationService:
    """Scripted stand-in for the remote model.

    ``streams`` maps a substring of the prompt (typically a direction label)
    to the fragments that stream yields; an Exception in the list is raised at
    that point. ``default_stream`` is used when nothing matches.
    """

    directions: Any = '["Soft Glass", "Brutalist", "Neon"]'
    streams: Dict[str, Sequence[Any]] = field(default_factory=dict)
    default_stream: Sequence[Any] = ("<div>", "ok", "</div>")
    suggestions: Any = '["a retro calculator", "a cozy reading list"]'
    generate_calls: List[Dict[str, Any]] = field(default_factory=list)
    stream_calls: List[StreamCall] = field(default_factory=list)

    async def generate(self, prompt: str, *, purpose: str = "directions", model: Optional[str] = None) -> str:
        self.generate_calls.append({"prompt": prompt, "purpose": purpose, "model": model})
        await asyncio.sleep(0)
        payload = self.suggestions if purpose == "suggestions" else self.directions
        if isinstance(payload, BaseException):
            raise payload
        return payload

    async def stream(
        self,
        prompt: str,
        *,
        purpose: str = "artifact",
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        self.stream_calls.append(StreamCall(prompt, purpose, system_instruction, temperature))
        fragments = self.default_stream
        for needle, scripted in self.streams.items():
            if needle in prompt:
                fragments = scripted
                break
        for fragment in fragments:
            # Yield control so concurrent streams interleave.
            await asyncio.sleep(0)
            if isinstance(fragment, BaseException):
                raise fragment
            yield fragment


async def iter_fragments(fragments: Sequence[Any]) -> AsyncIterator[Any]:
    for fragment in fragments:
        await asyncio.sleep(0)
        yield fragment


def broken_stream(after: Sequence[str] = ()) -> List[Any]:
    return list(after) + [TransportError("connection reset")]

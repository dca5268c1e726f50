from __future__ import annotations

import logging
import os
from typing import Any, AsyncIterator, List, Mapping, Optional, Protocol

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ..errors import ConfigurationError, TransportError
from .model_router import ModelRouter

LOG = logging.getLogger("genfeatures.llm")


class GenerationService(Protocol):
    async def generate(self, prompt: str, *, purpose: str = "directions", model: Optional[str] = None) -> str: ...

    def stream(
        self,
        prompt: str,
        *,
        purpose: str = "artifact",
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]: ...


def _chunk_text(chunk: Any) -> str:
    """Pull plain text out of a LangChain message or chunk."""
    content = getattr(chunk, "content", chunk)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""


def _build_messages(prompt: str, system_instruction: Optional[str]) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    if system_instruction:
        messages.append(SystemMessage(content=system_instruction))
    messages.append(HumanMessage(content=prompt))
    return messages


class ChatModelService:
    """Generation service over any OpenAI-compatible chat endpoint.

    Clients are built per call so each request can carry its own model and
    temperature. Retries are disabled; a failed call surfaces as
    ``TransportError`` and the caller decides what to do.
    """

    def __init__(
        self,
        router: Optional[ModelRouter] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        model: Optional[str] = None,
        timeout: float = 120.0,
    ) -> None:
        self._env = env if env is not None else os.environ
        self._router = router or ModelRouter(env=self._env)
        self._model = model
        self._timeout = timeout

    def _client(self, purpose: str, model: Optional[str], temperature: Optional[float]) -> ChatOpenAI:
        selection = self._router.select_provider(purpose, model_hint=model or self._model)
        api_key = self._env.get(selection.api_key_env) if selection.api_key_env else None
        if selection.requires_api_key and not api_key:
            raise ConfigurationError("LLM not configured")
        LOG.debug(
            "llm_client_selected",
            extra={"provider": selection.name, "model": selection.model, "purpose": purpose},
        )
        kwargs: dict = {
            "api_key": api_key or "not-needed",
            "base_url": selection.base_url,
            "model": selection.model,
            "max_retries": 0,
            "timeout": self._timeout,
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        return ChatOpenAI(**kwargs)

    async def generate(self, prompt: str, *, purpose: str = "directions", model: Optional[str] = None) -> str:
        llm = self._client(purpose, model, None)
        try:
            res = await llm.ainvoke(_build_messages(prompt, None))
        except Exception as exc:
            LOG.warning("llm_generate_failed", extra={"purpose": purpose, "err": str(exc)})
            raise TransportError(str(exc)) from exc
        return _chunk_text(res)

    async def stream(
        self,
        prompt: str,
        *,
        purpose: str = "artifact",
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        llm = self._client(purpose, model, temperature)
        try:
            async for chunk in llm.astream(_build_messages(prompt, system_instruction)):
                text = _chunk_text(chunk)
                if text:
                    yield text
        except Exception as exc:
            LOG.warning("llm_stream_failed", extra={"purpose": purpose, "err": str(exc)})
            raise TransportError(str(exc)) from exc

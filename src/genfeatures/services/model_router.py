"""Routing helpers for selecting the model provider behind generation calls.

The router does not couple directly to SDK clients; it resolves a provider
configuration (model, credential env var, OpenAI-compatible base URL) that the
generation service uses to build its client. This keeps the selection policy
unit-testable without network access.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Set

from ..errors import ConfigurationError


@dataclass(frozen=True)
class ProviderSelection:
    """Returned details about the provider that should handle a task."""

    name: str
    model: str
    api_key_env: Optional[str]
    base_url: Optional[str] = None
    requires_api_key: bool = True


class ModelRouter:
    """Policy-based router across OpenAI-compatible endpoints."""

    PROVIDER_CONFIG: Dict[str, Dict[str, Optional[str] | bool]] = {
        "gemini": {
            "api_key_env": "GEMINI_API_KEY",
            "base_url_env": "GEMINI_BASE_URL",
            "model_env": "GEMINI_MODEL",
            "default_model": "gemini-2.5-flash",
            "default_base_url": "https://generativelanguage.googleapis.com/v1beta/openai/",
        },
        "openai": {
            "api_key_env": "OPENAI_API_KEY",
            "base_url_env": "OPENAI_BASE_URL",
            "model_env": "OPENAI_MODEL",
            "default_model": "gpt-4o-mini",
            "default_base_url": "https://api.openai.com/v1",
        },
        "xai": {
            "api_key_env": "XAI_API_KEY",
            "base_url_env": "XAI_BASE_URL",
            "model_env": "XAI_MODEL",
            "default_model": "grok-2-latest",
            "default_base_url": "https://api.x.ai/v1",
        },
        "local": {
            "api_key_env": "LOCAL_API_KEY",
            "base_url_env": "LOCAL_BASE_URL",
            "model_env": "LOCAL_MODEL",
            "default_model": "qwen2.5-coder:14b",
            "default_base_url": "http://127.0.0.1:11434/v1",
            "requires_api_key": False,
        },
    }

    ROUTING_POLICY: Dict[str, tuple[str, ...]] = {
        # Direction labels and suggestions are short; any provider will do.
        "directions": ("gemini", "openai", "xai", "local"),
        "suggestions": ("gemini", "openai", "xai", "local"),
        # Component bodies and variations favour the strongest HTML writers.
        "artifact": ("gemini", "openai", "xai", "local"),
        "variations": ("gemini", "openai", "xai", "local"),
    }

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        allowed_providers: Optional[Iterable[str]] = None,
        preferred_provider: Optional[str] = None,
    ) -> None:
        self._env = env if env is not None else os.environ
        self._allowed: Optional[Set[str]] = set(allowed_providers) if allowed_providers else None
        preferred = preferred_provider or (self._env.get("GENFEATURES_MODEL_PROVIDER") or "")
        self._preferred_provider = preferred.strip().lower() or None

    def _provider_available(self, provider: str) -> bool:
        cfg = self.PROVIDER_CONFIG.get(provider)
        if not cfg:
            return False
        if self._allowed is not None and provider not in self._allowed:
            return False
        if bool(cfg.get("requires_api_key", True)):
            api_key_env = cfg.get("api_key_env")
            return bool(api_key_env and self._env.get(str(api_key_env)))
        # Keyless providers must be opted into with an explicit base URL.
        base_url_env = cfg.get("base_url_env")
        return bool(base_url_env and self._env.get(str(base_url_env)))

    def _resolve_selection(self, provider: str, model_hint: Optional[str] = None) -> ProviderSelection:
        cfg = self.PROVIDER_CONFIG[provider]
        model_env = str(cfg.get("model_env") or "")
        model = model_hint or self._env.get(model_env) or str(cfg.get("default_model") or "")
        base_url_env = str(cfg.get("base_url_env") or "")
        base_url = self._env.get(base_url_env) or cfg.get("default_base_url")
        return ProviderSelection(
            name=provider,
            model=model,
            api_key_env=cfg.get("api_key_env"),  # type: ignore[arg-type]
            base_url=base_url,  # type: ignore[arg-type]
            requires_api_key=bool(cfg.get("requires_api_key", True)),
        )

    def resolve_provider(self, provider: str, model_hint: Optional[str] = None) -> ProviderSelection:
        if provider not in self.PROVIDER_CONFIG:
            raise KeyError(provider)
        return self._resolve_selection(provider, model_hint)

    def select_provider(self, purpose: str, model_hint: Optional[str] = None) -> ProviderSelection:
        """Return the provider selected for the supplied purpose.

        Raises
        ------
        ConfigurationError
            If no provider with a usable credential is configured.
        """

        priority = list(self.ROUTING_POLICY.get(purpose, self.ROUTING_POLICY["artifact"]))
        if self._preferred_provider and self._preferred_provider in self.PROVIDER_CONFIG:
            priority = [self._preferred_provider] + [p for p in priority if p != self._preferred_provider]
        for provider in priority:
            if self._provider_available(provider):
                return self._resolve_selection(provider, model_hint)
        raise ConfigurationError("No model provider credential configured.")

    def maybe_select_provider(self, purpose: str) -> Optional[ProviderSelection]:
        """Like :meth:`select_provider` but returns ``None`` on failure."""

        try:
            return self.select_provider(purpose)
        except ConfigurationError:
            return None

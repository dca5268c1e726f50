"""Runtime settings for the studio, resolved from environment variables.

Every knob has a default so the service boots with nothing configured except a
provider credential. Tests pass an explicit ``env`` mapping instead of touching
``os.environ``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_FANOUT = 3
DEFAULT_VARIATION_TEMPERATURE = 1.2


def _as_int(raw: Optional[str], default: int, minimum: int = 1) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value >= minimum else default


def _as_float(raw: Optional[str], default: float) -> float:
    try:
        return float(str(raw).strip())
    except (TypeError, ValueError):
        return default


def _as_flag(raw: Optional[str], default: bool) -> bool:
    if raw is None or not str(raw).strip():
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    provider: Optional[str] = None
    model: Optional[str] = None
    fanout: int = DEFAULT_FANOUT
    variation_temperature: float = DEFAULT_VARIATION_TEMPERATURE
    vault_impl: str = "memory"
    vault_file: Optional[str] = None
    enable_suggestions: bool = True

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        provider = (env.get("GENFEATURES_MODEL_PROVIDER") or "").strip().lower() or None
        model = (env.get("GENFEATURES_MODEL") or "").strip() or None
        return cls(
            provider=provider,
            model=model,
            fanout=_as_int(env.get("GENFEATURES_FANOUT"), DEFAULT_FANOUT),
            variation_temperature=_as_float(
                env.get("GENFEATURES_VARIATION_TEMPERATURE"), DEFAULT_VARIATION_TEMPERATURE
            ),
            vault_impl=(env.get("GENFEATURES_VAULT_IMPL") or "memory").strip().lower(),
            vault_file=(env.get("GENFEATURES_VAULT_FILE") or "").strip() or None,
            enable_suggestions=_as_flag(env.get("GENFEATURES_ENABLE_SUGGESTIONS"), True),
        )

from __future__ import annotations

import logging
import random
from typing import List, Optional

from ..core.stream_json import extract_json_array
from .generation import GenerationService
from .prompts import INITIAL_PLACEHOLDERS, SUGGESTIONS_PROMPT

logger = logging.getLogger("genfeatures.suggestions")

_MAX_FETCHED = 10


class PromptSuggestions:
    """Rotating example prompts, optionally topped up by the model once."""

    def __init__(self, service: Optional[GenerationService] = None, *, rng: Optional[random.Random] = None) -> None:
        self._service = service
        self._rng = rng or random.Random()
        self._items: List[str] = list(INITIAL_PLACEHOLDERS)

    def list(self) -> List[str]:
        return list(self._items)

    def pick(self, index: int) -> str:
        return self._items[index % len(self._items)]

    async def refresh(self) -> List[str]:
        """Append up to ten fetched prompts; any failure leaves the list as is."""
        if self._service is None:
            return self.list()
        try:
            text = await self._service.generate(SUGGESTIONS_PROMPT, purpose="suggestions")
        except Exception as exc:
            logger.warning("suggestions_fetch_failed", extra={"err": str(exc)})
            return self.list()

        fetched = [s.strip() for s in (extract_json_array(text) or []) if isinstance(s, str) and s.strip()]
        if not fetched:
            return self.list()
        self._rng.shuffle(fetched)
        self._items.extend(fetched[:_MAX_FETCHED])
        logger.info("suggestions_refreshed", extra={"added": min(len(fetched), _MAX_FETCHED)})
        return self.list()

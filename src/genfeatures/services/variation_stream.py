from __future__ import annotations

import logging
import uuid
from typing import Any, List, Optional

from pydantic import ValidationError

from ..config import DEFAULT_VARIATION_TEMPERATURE
from ..core import reducers
from ..core.state_store import StateStore
from ..core.stream_json import StreamJsonExtractor
from ..domain.models import ComponentVariation, StudioState
from ..errors import InputValidationError
from ..observability.metrics import VARIATIONS_RECEIVED
from .generation import GenerationService
from .prompts import SYSTEM_INSTRUCTION, variations_prompt

logger = logging.getLogger("genfeatures.variations")


def _coerce_variation(value: Any) -> Optional[ComponentVariation]:
    if not isinstance(value, dict):
        return None
    name, html = value.get("name"), value.get("html")
    if not isinstance(name, str) or not isinstance(html, str):
        return None
    try:
        return ComponentVariation(name=name, html=html)
    except ValidationError:
        return None


class VariationStream:
    """Streams alternative renderings of the focused artifact.

    The view is bound to the target's session and artifact ids when it opens,
    so moving focus while the stream runs does not redirect the result.
    """

    def __init__(
        self,
        store: StateStore,
        service: GenerationService,
        *,
        temperature: float = DEFAULT_VARIATION_TEMPERATURE,
        model: Optional[str] = None,
    ) -> None:
        self._store = store
        self._service = service
        self._temperature = temperature
        self._model = model

    def open(self) -> StudioState:
        """Open the view for the focused artifact under a new run id."""
        state = self._store.state
        session, artifact = state.current_session, state.focused_artifact
        if session is None or artifact is None:
            raise InputValidationError("Focus an artifact before requesting variations")
        return self._store.dispatch(reducers.open_variations, session.id, artifact.id, uuid.uuid4().hex)

    async def run(self, run_id: Optional[str] = None) -> List[ComponentVariation]:
        """Stream variations into the view opened under ``run_id``.

        Without ``run_id`` the currently open view is used. Once the view has
        been reopened the results of this run no longer reach it.
        """
        view = self._store.state.variation_view
        run_id = run_id or view.run_id
        if not run_id or view.run_id != run_id:
            logger.info("variation_run_stale", extra={"run_id": run_id})
            return []
        session = self._store.state.find_session(view.session_id or "")
        if session is None:
            self._store.dispatch(reducers.finish_variations, run_id)
            return []

        received: List[ComponentVariation] = []
        try:
            fragments = self._service.stream(
                variations_prompt(session.prompt),
                purpose="variations",
                model=self._model,
                system_instruction=SYSTEM_INSTRUCTION,
                temperature=self._temperature,
            )
            async for value in StreamJsonExtractor().extract(fragments):
                variation = _coerce_variation(value)
                if variation is None:
                    continue
                received.append(variation)
                VARIATIONS_RECEIVED.inc()
                self._store.dispatch(reducers.add_variation, run_id, variation)
        except Exception as exc:
            logger.error("variation_stream_failed", extra={"run_id": run_id, "err": str(exc)})
        finally:
            self._store.dispatch(reducers.finish_variations, run_id)
        logger.info("variation_stream_finished", extra={"run_id": run_id, "count": len(received)})
        return received

    async def generate(self) -> List[ComponentVariation]:
        state = self.open()
        return await self.run(state.variation_view.run_id)

    def apply(self, html: str) -> StudioState:
        return self._store.dispatch(reducers.apply_variation, html)

    def close(self) -> StudioState:
        return self._store.dispatch(reducers.close_variations)

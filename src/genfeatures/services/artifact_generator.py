from __future__ import annotations

import logging
from typing import Optional

from ..core import reducers
from ..core.state_store import StateStore
from ..domain.models import ArtifactStatus
from ..infrastructure import events
from ..observability.metrics import ARTIFACTS_FINISHED
from .generation import GenerationService
from .prompts import SYSTEM_INSTRUCTION, artifact_prompt

logger = logging.getLogger("genfeatures.generation")

_FENCE = "```"


def normalize_html(text: str) -> str:
    """Trim whitespace and a wrapping markdown code fence, if present."""
    html = (text or "").strip()
    if html.startswith(_FENCE + "html"):
        html = html[len(_FENCE) + 4 :].lstrip()
    if html.startswith(_FENCE):
        html = html[len(_FENCE) :].lstrip()
    if html.endswith(_FENCE):
        html = html[: -len(_FENCE)].rstrip()
    return html.strip()


class ArtifactGenerator:
    """Streams the body of one artifact into the shared state.

    Every increment is published as a patch addressed by (session id,
    artifact id). At stream end the text is normalized and the artifact moves
    to ``complete`` or ``error``. A transport failure is logged and leaves the
    artifact in ``streaming``. Returns the final status, or ``None`` when the
    stream broke or the session was discarded meanwhile.
    """

    def __init__(self, store: StateStore, service: GenerationService, *, model: Optional[str] = None) -> None:
        self._store = store
        self._service = service
        self._model = model

    async def run(self, session_id: str, artifact_id: str, prompt: str, style_instruction: str) -> Optional[ArtifactStatus]:
        accumulated = ""
        try:
            async for text in self._service.stream(
                artifact_prompt(prompt, style_instruction),
                purpose="artifact",
                model=self._model,
                system_instruction=SYSTEM_INSTRUCTION,
            ):
                if not isinstance(text, str):
                    continue
                accumulated += text
                self._store.dispatch(reducers.patch_artifact, session_id, artifact_id, html=accumulated)
        except Exception as exc:
            logger.warning(
                "artifact_generation_failed",
                extra={"session_id": session_id, "artifact_id": artifact_id, "err": str(exc)},
            )
            return None

        if self._store.state.find_session(session_id) is None:
            logger.debug("artifact_update_dropped", extra={"session_id": session_id, "artifact_id": artifact_id})
            return None

        final_html = normalize_html(accumulated)
        status: ArtifactStatus = "complete" if final_html else "error"
        self._store.dispatch(reducers.patch_artifact, session_id, artifact_id, html=final_html, status=status)
        ARTIFACTS_FINISHED.labels(status=status).inc()
        events.publish_event(
            "artifact_finished",
            {"session_id": session_id, "artifact_id": artifact_id, "status": status, "length": len(final_html)},
        )
        logger.info(
            "artifact_generation_finished",
            extra={"session_id": session_id, "artifact_id": artifact_id, "status": status},
        )
        return status

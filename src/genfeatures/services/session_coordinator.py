from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import List, Optional, Tuple

from ..config import DEFAULT_FANOUT
from ..core import reducers
from ..core.state_store import StateStore
from ..core.stream_json import extract_json_array
from ..domain.models import Session
from ..errors import InputValidationError, StreamParseError, StudioBusyError
from ..infrastructure import events
from ..observability.metrics import DIRECTION_FALLBACKS
from .artifact_generator import ArtifactGenerator
from .generation import GenerationService
from .prompts import directions_prompt, fallback_directions

logger = logging.getLogger("genfeatures.generation")


def parse_directions(text: Optional[str], count: int) -> List[str]:
    """Strictly parse ``count`` non-empty string labels, truncating extras."""
    parsed = extract_json_array(text)
    if parsed is None:
        raise StreamParseError("No JSON array of direction labels in model response")
    labels = [item.strip() for item in parsed if isinstance(item, str) and item.strip()]
    if len(labels) < count:
        raise StreamParseError(f"Expected {count} direction labels, got {len(labels)}")
    return labels[:count]


def resolve_directions(text: Optional[str], count: int) -> Tuple[List[str], bool]:
    """Pick exactly ``count`` direction labels from a model response.

    Malformed JSON and too few labels take the same fallback path. Returns the
    labels and whether the fallback was used.
    """
    try:
        return parse_directions(text, count), False
    except StreamParseError as exc:
        logger.debug("direction_labels_unparsed", extra={"err": str(exc)})
        return fallback_directions(count), True


class SessionCoordinator:
    """Runs one batch of ``fanout`` artifacts for a prompt.

    ``begin`` creates the session synchronously (so validation errors reach the
    caller before anything is scheduled); ``run`` resolves direction labels and
    then streams every artifact concurrently. A failure in one artifact never
    cancels its siblings.
    """

    def __init__(
        self,
        store: StateStore,
        service: GenerationService,
        *,
        fanout: int = DEFAULT_FANOUT,
        model: Optional[str] = None,
    ) -> None:
        self._store = store
        self._service = service
        self._fanout = fanout
        self._model = model

    @property
    def fanout(self) -> int:
        return self._fanout

    def begin(self, prompt: str) -> Session:
        trimmed = (prompt or "").strip()
        if not trimmed:
            raise InputValidationError("Prompt must not be empty")
        if self._store.state.is_loading:
            raise StudioBusyError("A generation batch is already in progress")

        session_id = uuid.uuid4().hex
        session = Session(
            id=session_id,
            prompt=trimmed,
            timestamp=int(time.time() * 1000),
            artifacts=reducers.placeholder_artifacts(session_id, self._fanout),
        )
        self._store.dispatch(reducers.add_session, session)
        self._store.dispatch(reducers.begin_loading, session_id)
        events.publish_event("session_started", {"session_id": session_id, "prompt": trimmed})
        logger.info("session_started", extra={"session_id": session_id, "fanout": self._fanout})
        return session

    async def run(self, session: Session) -> Optional[Session]:
        try:
            try:
                text = await self._service.generate(
                    directions_prompt(session.prompt, self._fanout), purpose="directions", model=self._model
                )
            except Exception as exc:
                logger.error(
                    "generation_batch_aborted",
                    extra={"session_id": session.id, "err": str(exc)},
                )
                return None

            labels, used_fallback = resolve_directions(text, self._fanout)
            if used_fallback:
                DIRECTION_FALLBACKS.inc()
                logger.warning("direction_labels_fallback", extra={"session_id": session.id})
            self._store.dispatch(reducers.apply_style_names, session.id, labels)

            generator = ArtifactGenerator(self._store, self._service, model=self._model)
            results = await asyncio.gather(
                *(
                    generator.run(session.id, artifact.id, session.prompt, label)
                    for artifact, label in zip(session.artifacts, labels)
                ),
                return_exceptions=True,
            )
            for artifact, result in zip(session.artifacts, results):
                if isinstance(result, BaseException):
                    logger.error(
                        "artifact_task_crashed",
                        extra={"session_id": session.id, "artifact_id": artifact.id, "err": repr(result)},
                    )
        finally:
            self._store.dispatch(reducers.end_loading, session.id)

        settled = self._store.state.find_session(session.id)
        if settled is None:
            logger.info("session_orphaned", extra={"session_id": session.id})
            return None
        events.publish_event(
            "batch_settled",
            {"session_id": session.id, "statuses": [a.status for a in settled.artifacts]},
        )
        return settled

    async def start(self, prompt: str) -> Optional[Session]:
        return await self.run(self.begin(prompt))

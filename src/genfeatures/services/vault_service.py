from __future__ import annotations

import logging
import time
import uuid
from typing import List, Optional

from ..core import reducers
from ..core.state_store import StateStore
from ..domain.models import Artifact, SavedArtifact, Session
from ..errors import InputValidationError
from ..infrastructure import events
from ..infrastructure.vault import Vault

logger = logging.getLogger("genfeatures.vault")


class VaultService:
    """Keeps chosen artifacts beyond the lifetime of their session.

    Saved records are copies: later edits to the live artifact (or a reset of
    the whole history) do not touch them.
    """

    def __init__(self, store: StateStore, vault: Vault) -> None:
        self._store = store
        self._vault = vault

    def list(self) -> List[SavedArtifact]:
        return self._vault.load_all()

    def get(self, artifact_id: str) -> Optional[SavedArtifact]:
        for record in self._vault.load_all():
            if record.id == artifact_id:
                return record
        return None

    def save_focused(self) -> SavedArtifact:
        state = self._store.state
        session, artifact = state.current_session, state.focused_artifact
        if session is None or artifact is None:
            raise InputValidationError("Focus an artifact before saving it")

        records = self._vault.load_all()
        for record in records:
            if record.id == artifact.id:
                return record

        saved = SavedArtifact(
            **artifact.model_dump(),
            prompt=session.prompt,
            saved_at=int(time.time() * 1000),
        )
        self._vault.save_all([saved] + records)
        events.publish_event("artifact_saved", {"artifact_id": saved.id})
        logger.info("artifact_saved", extra={"artifact_id": saved.id})
        return saved

    def remove(self, artifact_id: str) -> bool:
        removed = self._vault.remove(artifact_id)
        if removed:
            logger.info("artifact_removed", extra={"artifact_id": artifact_id})
        return removed

    def restore(self, artifact_id: str) -> Optional[Session]:
        """Open a saved artifact as a new single-artifact session, focused."""
        saved = self.get(artifact_id)
        if saved is None:
            return None
        session = Session(
            id=uuid.uuid4().hex,
            prompt=saved.prompt,
            timestamp=int(time.time() * 1000),
            artifacts=(
                Artifact(
                    id=uuid.uuid4().hex,
                    style_name=saved.style_name,
                    html=saved.html,
                    status=saved.status,
                ),
            ),
        )
        self._store.dispatch(reducers.restore_session, session)
        logger.info("artifact_restored", extra={"artifact_id": artifact_id, "session_id": session.id})
        return session

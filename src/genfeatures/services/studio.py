from __future__ import annotations

from typing import Optional, Tuple

from ..config import Settings
from ..core.navigator import HistoryNavigator
from ..core.state_store import StateStore
from ..domain.models import Artifact
from ..infrastructure.vault import Vault, build_vault
from .exporter import build_archive
from .generation import ChatModelService, GenerationService
from .model_router import ModelRouter
from .session_coordinator import SessionCoordinator
from .suggestions import PromptSuggestions
from .vault_service import VaultService
from .variation_stream import VariationStream


class Studio:
    """Wires the generation engine around one shared ``StateStore``."""

    def __init__(
        self,
        service: GenerationService,
        *,
        settings: Optional[Settings] = None,
        vault: Optional[Vault] = None,
        store: Optional[StateStore] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.service = service
        self.store = store or StateStore()
        self.navigator = HistoryNavigator(self.store)
        self.coordinator = SessionCoordinator(
            self.store, service, fanout=self.settings.fanout, model=self.settings.model
        )
        self.variations = VariationStream(
            self.store,
            service,
            temperature=self.settings.variation_temperature,
            model=self.settings.model,
        )
        self.vault = VaultService(self.store, vault if vault is not None else build_vault(self.settings))
        self.suggestions = PromptSuggestions(service if self.settings.enable_suggestions else None)

    def find_artifact(self, artifact_id: str) -> Optional[Artifact]:
        for session in self.store.state.sessions:
            artifact = session.find_artifact(artifact_id)
            if artifact is not None:
                return artifact
        saved = self.vault.get(artifact_id)
        if saved is not None:
            return Artifact(id=saved.id, style_name=saved.style_name, html=saved.html, status=saved.status)
        return None

    def export_artifact(self, artifact_id: str) -> Optional[Tuple[str, bytes]]:
        artifact = self.find_artifact(artifact_id)
        if artifact is None:
            return None
        return build_archive(artifact)


_studio: Optional[Studio] = None


def get_studio() -> Studio:
    global _studio
    if _studio is not None:
        return _studio
    settings = Settings.from_env()
    service = ChatModelService(ModelRouter(preferred_provider=settings.provider), model=settings.model)
    _studio = Studio(service, settings=settings)
    return _studio


def set_studio(studio: Optional[Studio]) -> None:
    global _studio
    _studio = studio

from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field


ArtifactStatus = Literal["streaming", "complete", "error"]

PLACEHOLDER_STYLE_NAME = "Designing..."


class Artifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    style_name: str = PLACEHOLDER_STYLE_NAME
    html: str = ""
    status: ArtifactStatus = "streaming"


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    prompt: str
    timestamp: int
    artifacts: Tuple[Artifact, ...] = ()

    def find_artifact(self, artifact_id: str) -> Optional[Artifact]:
        for artifact in self.artifacts:
            if artifact.id == artifact_id:
                return artifact
        return None


class SavedArtifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    style_name: str
    html: str
    status: ArtifactStatus
    prompt: str
    saved_at: int


class ComponentVariation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    html: str = Field(min_length=1)


class VariationView(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_open: bool = False
    run_id: Optional[str] = None
    session_id: Optional[str] = None
    artifact_id: Optional[str] = None
    variations: Tuple[ComponentVariation, ...] = ()
    is_loading: bool = False


class StudioState(BaseModel):
    """Immutable snapshot of everything the presentation layer renders."""

    model_config = ConfigDict(frozen=True)

    version: int = 0
    sessions: Tuple[Session, ...] = ()
    current_session_index: int = -1
    focused_artifact_index: Optional[int] = None
    loading_session_id: Optional[str] = None
    variation_view: VariationView = Field(default_factory=VariationView)

    @computed_field  # type: ignore[misc]
    @property
    def is_loading(self) -> bool:
        return self.loading_session_id is not None

    @property
    def current_session(self) -> Optional[Session]:
        if 0 <= self.current_session_index < len(self.sessions):
            return self.sessions[self.current_session_index]
        return None

    @property
    def focused_artifact(self) -> Optional[Artifact]:
        session = self.current_session
        if session is None or self.focused_artifact_index is None:
            return None
        if 0 <= self.focused_artifact_index < len(session.artifacts):
            return session.artifacts[self.focused_artifact_index]
        return None

    def find_session(self, session_id: str) -> Optional[Session]:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None


class NavigationState(BaseModel):
    current_session_index: int = -1
    focused_artifact_index: Optional[int] = None
    can_go_back: bool = False
    can_go_forward: bool = False


# API payloads


class SessionCreate(BaseModel):
    prompt: str = Field(min_length=1)


class SessionAccepted(BaseModel):
    session_id: str
    artifact_ids: List[str]


class VariationApply(BaseModel):
    html: str

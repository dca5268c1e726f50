"""Pure state transitions for the studio.

Every function takes a ``StudioState`` and returns a new one; nothing here
mutates its input. Sessions and artifacts are always addressed by id so that
an update computed against an older snapshot cannot land on the wrong entry.
"""

from __future__ import annotations

from typing import Any, Sequence, Tuple

from ..domain.models import (
    Artifact,
    ComponentVariation,
    Session,
    StudioState,
    VariationView,
)
from ..errors import InputValidationError


_PATCHABLE_FIELDS = {"style_name", "html", "status"}


# Session history


def add_session(state: StudioState, session: Session) -> StudioState:
    sessions = state.sessions + (session,)
    return state.model_copy(
        update={
            "sessions": sessions,
            "current_session_index": len(sessions) - 1,
            "focused_artifact_index": None,
        }
    )


def begin_loading(state: StudioState, session_id: str) -> StudioState:
    return state.model_copy(update={"loading_session_id": session_id})


def end_loading(state: StudioState, session_id: str) -> StudioState:
    """Clear the loading flag, but only if ``session_id`` still owns it."""
    if state.loading_session_id != session_id:
        return state
    return state.model_copy(update={"loading_session_id": None})


def reset(state: StudioState) -> StudioState:
    return StudioState(version=state.version)


def _replace_session(state: StudioState, session_id: str, fn) -> StudioState:
    changed = False
    sessions = []
    for session in state.sessions:
        if session.id == session_id:
            session = fn(session)
            changed = True
        sessions.append(session)
    if not changed:
        return state
    return state.model_copy(update={"sessions": tuple(sessions)})


def patch_artifact(state: StudioState, session_id: str, artifact_id: str, **fields: Any) -> StudioState:
    """Replace only the given fields of one artifact.

    Unknown session or artifact ids leave the state untouched.
    """
    unknown = set(fields) - _PATCHABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot patch artifact fields: {sorted(unknown)}")

    def _patch(session: Session) -> Session:
        artifacts = tuple(
            art.model_copy(update=fields) if art.id == artifact_id else art
            for art in session.artifacts
        )
        return session.model_copy(update={"artifacts": artifacts})

    if state.find_session(session_id) is None:
        return state
    return _replace_session(state, session_id, _patch)


def apply_style_names(state: StudioState, session_id: str, names: Sequence[str]) -> StudioState:
    """Assign direction labels to a session's artifacts in order."""

    def _apply(session: Session) -> Session:
        artifacts = tuple(
            art.model_copy(update={"style_name": names[i]}) if i < len(names) else art
            for i, art in enumerate(session.artifacts)
        )
        return session.model_copy(update={"artifacts": artifacts})

    return _replace_session(state, session_id, _apply)


# Navigation


def advance(state: StudioState) -> StudioState:
    session = state.current_session
    if state.focused_artifact_index is not None:
        if session is not None and state.focused_artifact_index < len(session.artifacts) - 1:
            return state.model_copy(update={"focused_artifact_index": state.focused_artifact_index + 1})
        return state
    if state.current_session_index < len(state.sessions) - 1:
        return state.model_copy(update={"current_session_index": state.current_session_index + 1})
    return state


def retreat(state: StudioState) -> StudioState:
    if state.focused_artifact_index is not None:
        if state.focused_artifact_index > 0:
            return state.model_copy(update={"focused_artifact_index": state.focused_artifact_index - 1})
        return state
    if state.current_session_index > 0:
        return state.model_copy(update={"current_session_index": state.current_session_index - 1})
    return state


def focus(state: StudioState, index: int) -> StudioState:
    session = state.current_session
    if session is None:
        raise InputValidationError("No current session to focus within")
    if not 0 <= index < len(session.artifacts):
        raise InputValidationError(f"Artifact index {index} out of range")
    return state.model_copy(update={"focused_artifact_index": index})


def unfocus(state: StudioState) -> StudioState:
    if state.focused_artifact_index is None:
        return state
    return state.model_copy(update={"focused_artifact_index": None})


def can_go_back(state: StudioState) -> bool:
    if state.focused_artifact_index is not None:
        return state.focused_artifact_index > 0
    return state.current_session_index > 0


def can_go_forward(state: StudioState) -> bool:
    if state.focused_artifact_index is not None:
        session = state.current_session
        count = len(session.artifacts) if session else 0
        return state.focused_artifact_index < count - 1
    return state.current_session_index < len(state.sessions) - 1


# Variations


def open_variations(state: StudioState, session_id: str, artifact_id: str, run_id: str) -> StudioState:
    """Open a fresh view; any stream still tagged with an older ``run_id`` is now stale."""
    view = VariationView(
        is_open=True, run_id=run_id, session_id=session_id, artifact_id=artifact_id, is_loading=True
    )
    return state.model_copy(update={"variation_view": view})


def add_variation(state: StudioState, run_id: str, variation: ComponentVariation) -> StudioState:
    view = state.variation_view
    if not view.is_open or view.run_id != run_id:
        return state
    view = view.model_copy(update={"variations": view.variations + (variation,)})
    return state.model_copy(update={"variation_view": view})


def finish_variations(state: StudioState, run_id: str) -> StudioState:
    view = state.variation_view
    if view.run_id != run_id or not view.is_loading:
        return state
    return state.model_copy(update={"variation_view": view.model_copy(update={"is_loading": False})})


def close_variations(state: StudioState) -> StudioState:
    if not state.variation_view.is_open:
        return state
    view = state.variation_view.model_copy(update={"is_open": False})
    return state.model_copy(update={"variation_view": view})


def apply_variation(state: StudioState, html: str) -> StudioState:
    """Overwrite the variation target's html, force it complete, close the view.

    A closed view has no target any more; applying to it changes nothing.
    """
    view = state.variation_view
    if not view.is_open:
        return state
    if view.session_id and view.artifact_id:
        state = patch_artifact(state, view.session_id, view.artifact_id, html=html, status="complete")
    return close_variations(state)


# Restoring saved work


def restore_session(state: StudioState, session: Session) -> StudioState:
    state = add_session(state, session)
    return state.model_copy(update={"focused_artifact_index": 0 if session.artifacts else None})


def placeholder_artifacts(session_id: str, count: int) -> Tuple[Artifact, ...]:
    return tuple(Artifact(id=f"{session_id}_{i}") for i in range(count))



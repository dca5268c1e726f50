from __future__ import annotations

from typing import Optional

from ..domain.models import Artifact, NavigationState, Session
from . import reducers
from .state_store import StateStore


class HistoryNavigator:
    """Traversal over session history and artifact focus.

    With an artifact focused, ``advance``/``retreat`` step between artifacts of
    the current session and stop at its ends; ``unfocus`` is required before
    moving between sessions again.
    """

    def __init__(self, store: StateStore) -> None:
        self._store = store

    @property
    def current_session_index(self) -> int:
        return self._store.state.current_session_index

    @property
    def focused_artifact_index(self) -> Optional[int]:
        return self._store.state.focused_artifact_index

    @property
    def current_session(self) -> Optional[Session]:
        return self._store.state.current_session

    @property
    def focused_artifact(self) -> Optional[Artifact]:
        return self._store.state.focused_artifact

    @property
    def can_go_back(self) -> bool:
        return reducers.can_go_back(self._store.state)

    @property
    def can_go_forward(self) -> bool:
        return reducers.can_go_forward(self._store.state)

    def snapshot(self) -> NavigationState:
        state = self._store.state
        return NavigationState(
            current_session_index=state.current_session_index,
            focused_artifact_index=state.focused_artifact_index,
            can_go_back=reducers.can_go_back(state),
            can_go_forward=reducers.can_go_forward(state),
        )

    def advance(self) -> NavigationState:
        self._store.dispatch(reducers.advance)
        return self.snapshot()

    def retreat(self) -> NavigationState:
        self._store.dispatch(reducers.retreat)
        return self.snapshot()

    def focus(self, index: int) -> NavigationState:
        self._store.dispatch(reducers.focus, index)
        return self.snapshot()

    def unfocus(self) -> NavigationState:
        self._store.dispatch(reducers.unfocus)
        return self.snapshot()

    def reset(self) -> NavigationState:
        self._store.dispatch(reducers.reset)
        return self.snapshot()

from __future__ import annotations

import asyncio
import io
from typing import AsyncIterator, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse

from ...domain.models import (
    NavigationState,
    SavedArtifact,
    Session,
    SessionAccepted,
    SessionCreate,
    StudioState,
    VariationApply,
    VariationView,
)
from ...errors import InputValidationError, StudioBusyError
from ...services.studio import Studio, get_studio

router = APIRouter(tags=["studio"])


# Sessions


@router.post("/sessions", response_model=SessionAccepted, status_code=status.HTTP_202_ACCEPTED)
async def create_session(
    req: SessionCreate,
    background: BackgroundTasks,
    studio: Studio = Depends(get_studio),
) -> SessionAccepted:
    try:
        session = studio.coordinator.begin(req.prompt)
    except InputValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StudioBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    background.add_task(studio.coordinator.run, session)
    return SessionAccepted(session_id=session.id, artifact_ids=[a.id for a in session.artifacts])


@router.get("/sessions", response_model=List[Session])
async def list_sessions(studio: Studio = Depends(get_studio)) -> List[Session]:
    return list(studio.store.state.sessions)


@router.get("/sessions/{session_id}", response_model=Session)
async def get_session(session_id: str, studio: Studio = Depends(get_studio)) -> Session:
    session = studio.store.state.find_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("/reset", response_model=StudioState)
async def go_home(studio: Studio = Depends(get_studio)) -> StudioState:
    studio.navigator.reset()
    return studio.store.state


# State


@router.get("/state", response_model=StudioState)
async def get_state(studio: Studio = Depends(get_studio)) -> StudioState:
    return studio.store.state


async def _state_updates(studio: Studio, follow: bool) -> AsyncIterator[StudioState]:
    queue: asyncio.Queue[StudioState] = asyncio.Queue()
    loop = asyncio.get_running_loop()
    unsubscribe = studio.store.subscribe(lambda state: loop.call_soon_threadsafe(queue.put_nowait, state))
    try:
        state = studio.store.state
        yield state
        while follow or state.is_loading or state.variation_view.is_loading:
            state = await queue.get()
            yield state
    finally:
        unsubscribe()


@router.get("/state/stream", response_class=StreamingResponse)
async def stream_state(
    follow: bool = Query(False, description="Keep streaming after generation settles"),
    studio: Studio = Depends(get_studio),
):
    async def event_stream():
        async for state in _state_updates(studio, follow):
            yield f"data: {state.model_dump_json()}\n\n"

    headers = {
        "Cache-Control": "no-cache, no-transform",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=headers)


# Navigation


@router.get("/navigation", response_model=NavigationState)
async def get_navigation(studio: Studio = Depends(get_studio)) -> NavigationState:
    return studio.navigator.snapshot()


@router.post("/navigation/advance", response_model=NavigationState)
async def advance(studio: Studio = Depends(get_studio)) -> NavigationState:
    return studio.navigator.advance()


@router.post("/navigation/retreat", response_model=NavigationState)
async def retreat(studio: Studio = Depends(get_studio)) -> NavigationState:
    return studio.navigator.retreat()


@router.post("/navigation/focus/{index}", response_model=NavigationState)
async def focus(index: int, studio: Studio = Depends(get_studio)) -> NavigationState:
    try:
        return studio.navigator.focus(index)
    except InputValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/navigation/unfocus", response_model=NavigationState)
async def unfocus(studio: Studio = Depends(get_studio)) -> NavigationState:
    return studio.navigator.unfocus()


# Variations


@router.post("/variations", response_model=VariationView, status_code=status.HTTP_202_ACCEPTED)
async def request_variations(background: BackgroundTasks, studio: Studio = Depends(get_studio)) -> VariationView:
    try:
        state = studio.variations.open()
    except InputValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    background.add_task(studio.variations.run, state.variation_view.run_id)
    return state.variation_view


@router.get("/variations", response_model=VariationView)
async def get_variations(studio: Studio = Depends(get_studio)) -> VariationView:
    return studio.store.state.variation_view


@router.post("/variations/apply", response_model=StudioState)
async def apply_variation(req: VariationApply, studio: Studio = Depends(get_studio)) -> StudioState:
    view = studio.store.state.variation_view
    if not view.is_open or not view.artifact_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No open variation view to apply from")
    return studio.variations.apply(req.html)


@router.post("/variations/close", response_model=VariationView)
async def close_variations(studio: Studio = Depends(get_studio)) -> VariationView:
    return studio.variations.close().variation_view


# Vault


@router.get("/vault", response_model=List[SavedArtifact])
async def list_vault(studio: Studio = Depends(get_studio)) -> List[SavedArtifact]:
    return studio.vault.list()


@router.post("/vault", response_model=SavedArtifact, status_code=status.HTTP_201_CREATED)
async def save_to_vault(studio: Studio = Depends(get_studio)) -> SavedArtifact:
    try:
        return studio.vault.save_focused()
    except InputValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.delete("/vault/{artifact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_from_vault(artifact_id: str, studio: Studio = Depends(get_studio)) -> Response:
    if not studio.vault.remove(artifact_id):
        raise HTTPException(status_code=404, detail="Saved artifact not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/vault/{artifact_id}/restore", response_model=Session)
async def restore_from_vault(artifact_id: str, studio: Studio = Depends(get_studio)) -> Session:
    session = studio.vault.restore(artifact_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Saved artifact not found")
    return session


# Export


@router.get("/artifacts/{artifact_id}/export")
async def export_artifact(artifact_id: str, studio: Studio = Depends(get_studio)) -> StreamingResponse:
    packaged = studio.export_artifact(artifact_id)
    if packaged is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    filename, data = packaged
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(io.BytesIO(data), media_type="application/zip", headers=headers)


# Suggestions


@router.get("/suggestions", response_model=List[str])
async def list_suggestions(studio: Studio = Depends(get_studio)) -> List[str]:
    return studio.suggestions.list()


@router.post("/suggestions/refresh", response_model=List[str])
async def refresh_suggestions(studio: Studio = Depends(get_studio)) -> List[str]:
    return await studio.suggestions.refresh()

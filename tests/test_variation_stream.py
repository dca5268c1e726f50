from __future__ import annotations

import asyncio
import json

import pytest

from src.genfeatures.core import reducers
from src.genfeatures.core.state_store import StateStore
from src.genfeatures.domain.models import Session
from src.genfeatures.errors import InputValidationError
from src.genfeatures.services.variation_stream import VariationStream, _coerce_variation

from .fakes import FakeGenerationService, broken_stream


def _focused_store() -> StateStore:
    store = StateStore()
    session = Session(id="s1", prompt="a pricing card", timestamp=1, artifacts=reducers.placeholder_artifacts("s1", 3))
    store.dispatch(reducers.add_session, session)
    store.dispatch(reducers.patch_artifact, "s1", "s1_1", html="<div>orig</div>", status="complete")
    store.dispatch(reducers.focus, 1)
    return store


def _variation_fragments():
    text = json.dumps(
        [
            {"name": "Paper", "html": "<div>paper</div>"},
            {"name": "Missing html"},
            {"name": "Arcade", "html": "<div>arcade</div>"},
        ]
    )
    return [text[i : i + 7] for i in range(0, len(text), 7)]


@pytest.mark.parametrize(
    "value,ok",
    [
        ({"name": "A", "html": "<p/>"}, True),
        ({"name": "A"}, False),
        ({"name": "", "html": "<p/>"}, False),
        ({"name": "A", "html": 3}, False),
        (["A", "<p/>"], False),
    ],
)
def test_coerce_variation(value, ok):
    assert (_coerce_variation(value) is not None) is ok


def test_open_requires_focused_artifact():
    store = StateStore()
    with pytest.raises(InputValidationError):
        VariationStream(store, FakeGenerationService()).open()
    assert store.state.variation_view.is_open is False


def test_variations_stream_in_and_malformed_objects_are_dropped():
    store = _focused_store()
    service = FakeGenerationService(default_stream=_variation_fragments())
    counts = []
    store.subscribe(lambda state: counts.append(len(state.variation_view.variations)))

    received = asyncio.run(VariationStream(store, service).generate())

    assert [v.name for v in received] == ["Paper", "Arcade"]
    view = store.state.variation_view
    assert view.is_open is True
    assert view.is_loading is False
    assert [v.html for v in view.variations] == ["<div>paper</div>", "<div>arcade</div>"]
    # Each variation became visible on its own before the stream ended.
    assert 1 in counts and 2 in counts

    call = service.stream_calls[0]
    assert call.purpose == "variations"
    assert call.temperature == 1.2
    assert 'RADICAL CONCEPTUAL VARIATIONS of: "a pricing card"' in call.prompt


def test_transport_failure_keeps_received_variations():
    store = _focused_store()
    service = FakeGenerationService(default_stream=broken_stream(['{"name": "One", "html": "<p>1</p>"}', '{"name"']))
    received = asyncio.run(VariationStream(store, service, temperature=0.7).generate())
    assert [v.name for v in received] == ["One"]
    assert store.state.variation_view.is_loading is False
    assert service.stream_calls[0].temperature == 0.7


def test_apply_replaces_target_and_leaves_siblings():
    store = _focused_store()
    stream = VariationStream(store, FakeGenerationService(default_stream=_variation_fragments()))
    asyncio.run(stream.generate())
    before = store.state.current_session

    stream.apply("<div>X</div>")

    after = store.state.current_session
    assert after.artifacts[1].html == "<div>X</div>"
    assert after.artifacts[1].status == "complete"
    assert after.artifacts[0] == before.artifacts[0]
    assert after.artifacts[2] == before.artifacts[2]
    assert store.state.variation_view.is_open is False


def test_target_is_bound_when_view_opens():
    store = _focused_store()
    stream = VariationStream(store, FakeGenerationService(default_stream=_variation_fragments()))
    stream.open()
    store.dispatch(reducers.focus, 2)
    asyncio.run(stream.run())

    stream.apply("<div>X</div>")
    artifacts = store.state.current_session.artifacts
    assert artifacts[1].html == "<div>X</div>"
    assert artifacts[2].html == ""


def test_close_hides_view():
    store = _focused_store()
    stream = VariationStream(store, FakeGenerationService())
    stream.open()
    stream.close()
    assert store.state.variation_view.is_open is False


def test_reopening_the_view_discards_the_older_stream():
    store = _focused_store()
    fragments = [json.dumps({"name": f"V{i}", "html": f"<p>{i}</p>"}) for i in range(3)]
    stream = VariationStream(store, FakeGenerationService(default_stream=fragments))

    async def scenario():
        stream.open()
        first = asyncio.create_task(stream.run())
        for _ in range(3):
            await asyncio.sleep(0)
        stream.open()
        second = asyncio.create_task(stream.run())
        await first
        loading_after_first = store.state.variation_view.is_loading
        await second
        return loading_after_first

    assert asyncio.run(scenario()) is True
    view = store.state.variation_view
    assert [v.name for v in view.variations] == ["V0", "V1", "V2"]
    assert view.is_loading is False


def test_run_for_a_replaced_view_does_nothing():
    store = _focused_store()
    service = FakeGenerationService(default_stream=_variation_fragments())
    stream = VariationStream(store, service)
    old_run_id = stream.open().variation_view.run_id
    stream.open()
    assert asyncio.run(stream.run(old_run_id)) == []
    assert service.stream_calls == []
    assert store.state.variation_view.is_loading is True


def test_apply_after_close_leaves_artifact_untouched():
    store = _focused_store()
    stream = VariationStream(store, FakeGenerationService())
    stream.open()
    stream.close()
    stream.apply("<div>X</div>")
    assert store.state.current_session.artifacts[1].html == "<div>orig</div>"

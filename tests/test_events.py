import json
import types

from src.genfeatures.infrastructure import events


class FakeRedisClient:
    pings = 0
    fail_pings = 0
    published = []
    publish_should_fail = False

    def ping(self):
        FakeRedisClient.pings += 1
        if FakeRedisClient.fail_pings:
            FakeRedisClient.fail_pings -= 1
            raise Exception("connect failed")

    def publish(self, channel, payload):
        if FakeRedisClient.publish_should_fail:
            FakeRedisClient.publish_should_fail = False
            raise Exception("publish failed")
        FakeRedisClient.published.append((channel, payload))


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def _install_fake_redis(monkeypatch, *, fail_pings=0):
    FakeRedisClient.pings = 0
    FakeRedisClient.fail_pings = fail_pings
    FakeRedisClient.published = []
    FakeRedisClient.publish_should_fail = False

    def from_url(url, socket_timeout=0.5):
        return FakeRedisClient()

    monkeypatch.setattr(events, "redis", types.SimpleNamespace(Redis=types.SimpleNamespace(from_url=from_url)))


def test_publish_event_without_url_is_a_noop():
    assert events.load_event_client() is None
    assert events.publish_event("session_started", {"session_id": "s1"}) is False


def test_events_are_wrapped_in_an_envelope(monkeypatch):
    _install_fake_redis(monkeypatch)
    monkeypatch.setenv("REDIS_URL", "redis://localhost")

    assert events.publish_event("artifact_finished", {"artifact_id": "s1_0"}) is True

    channel, raw = FakeRedisClient.published[-1]
    assert channel == "genfeatures.events.artifact_finished"
    message = json.loads(raw)
    assert message["type"] == "artifact_finished"
    assert message["payload"] == {"artifact_id": "s1_0"}
    assert message["emitted_at"].endswith("Z")
    assert events.load_event_client().connected is True


def test_unreachable_server_is_retried_after_the_interval(monkeypatch):
    _install_fake_redis(monkeypatch, fail_pings=1)
    clock = FakeClock()
    publisher = events.EventPublisher("redis://localhost", retry_interval=5.0, clock=clock)

    assert publisher.publish("batch_settled", {"session_id": "s1"}) is False
    assert publisher.publish("batch_settled", {"session_id": "s1"}) is False
    assert FakeRedisClient.pings == 1  # second call skipped during back-off

    clock.now += 5.0
    assert publisher.publish("batch_settled", {"session_id": "s1"}) is True
    assert (publisher.sent, publisher.dropped) == (1, 2)


def test_publish_failure_drops_connection_and_backs_off(monkeypatch):
    _install_fake_redis(monkeypatch)
    clock = FakeClock()
    publisher = events.EventPublisher("redis://localhost", retry_interval=5.0, clock=clock)
    assert publisher.publish("artifact_saved", {"artifact_id": "a"}) is True

    FakeRedisClient.publish_should_fail = True
    assert publisher.publish("artifact_saved", {"artifact_id": "b"}) is False
    assert publisher.connected is False
    assert publisher.publish("artifact_saved", {"artifact_id": "c"}) is False

    clock.now += 5.0
    assert publisher.publish("artifact_saved", {"artifact_id": "d"}) is True
    assert [json.loads(p)["payload"]["artifact_id"] for _, p in FakeRedisClient.published] == ["a", "d"]

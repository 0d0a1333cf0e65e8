"""
Tests for the session store: lazy creation, ring-buffered logs, reset,
eviction and serialize/restore.
"""

import threading

import numpy as np
import pytest

from affect_spine.core.defaults import BASELINE, COOLDOWN
from affect_spine.core.engine import baseline_vector, to_dict
from affect_spine.core.store import SessionStore


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(event_log_size=5, clock=clock)


class TestSessionLifecycle:

    def test_lazy_creation_at_baseline(self, store):
        assert store.session_count() == 0
        record = store.get_session("s1")

        assert store.session_count() == 1
        assert np.array_equal(record.state, baseline_vector())
        assert np.all(record.momentum == 0)

    def test_get_session_returns_same_record(self, store):
        assert store.get_session("s1") is store.get_session("s1")

    def test_peek_does_not_create(self, store):
        assert store.peek("ghost") is None
        assert store.session_count() == 0

    def test_delete_session(self, store):
        store.get_session("s1")
        assert store.delete_session("s1") is True
        assert store.delete_session("s1") is False
        assert store.list_sessions() == []

    def test_invalid_log_size(self):
        with pytest.raises(ValueError, match="event_log_size"):
            SessionStore(event_log_size=0)

    def test_sessions_are_isolated(self, store):
        store.get_session("a").state[0] = 0.9
        assert store.get_session("b").state[0] == BASELINE["valence"]


class TestEventLog:

    def test_ring_buffer_drops_oldest(self, store):
        """With capacity 5, the 6th and 7th events evict the two oldest."""
        for i in range(7):
            store.log_event("s1", {"type": "CUSTOM", "seq": i})

        events = store.get_events("s1", 50)
        assert [e["seq"] for e in events] == [2, 3, 4, 5, 6]

    def test_get_events_limit_keeps_most_recent(self, store):
        for i in range(4):
            store.log_event("s1", {"seq": i})

        assert [e["seq"] for e in store.get_events("s1", 2)] == [2, 3]

    def test_get_events_unknown_session(self, store):
        assert store.get_events("nobody", 10) == []
        assert store.session_count() == 0

    def test_get_events_nonpositive_limit(self, store):
        store.log_event("s1", {"seq": 0})
        assert store.get_events("s1", 0) == []

    def test_log_event_stamps_time(self, store, clock):
        store.log_event("s1", {"seq": 0})
        assert store.get_events("s1", 1)[0]["ts"] == clock.now

    def test_log_to_deleted_record_does_not_recreate(self, store):
        record = store.get_session("s1")
        store.delete_session("s1")

        store.log_to_record(record, {"seq": 0})

        assert store.peek("s1") is None
        assert [e["seq"] for e in record.events] == [0]

    def test_concurrent_logging_respects_capacity(self):
        store = SessionStore(event_log_size=50)

        def writer(n):
            for i in range(200):
                store.log_event("shared", {"writer": n, "seq": i})

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.get_events("shared", 1000)) == 50


class TestReset:

    def test_reset_to_cooldown(self, store):
        store.get_session("s1").state[:] = 0.9
        record = store.reset_session("s1", "cooldown")

        assert to_dict(record.state) == pytest.approx(dict(COOLDOWN))
        assert record.mode == "cooldown"
        assert np.all(record.momentum == 0)

    def test_reset_logged_as_custom(self, store):
        store.reset_session("s1", "baseline")
        entry = store.get_events("s1", 1)[0]

        assert entry["type"] == "CUSTOM"
        assert entry["payload"] == {"action": "reset", "mode": "baseline"}

    def test_reset_unknown_mode_raises_without_creating(self, store):
        with pytest.raises(ValueError):
            store.reset_session("s1", "sleep")
        assert store.session_count() == 0


class TestEviction:

    def test_evict_idle(self, store, clock):
        store.get_session("old")
        clock.now += 1000
        store.get_session("new")

        assert store.idle_sessions(500) == ["old"]
        assert store.evict_idle(500) == ["old"]
        assert store.list_sessions() == ["new"]


class TestSerializeRestore:

    def test_serialize_shape(self, store):
        store.get_session("s1")
        store.log_event("s1", {"type": "SUCCESS"})

        data = store.serialize_all()
        entry = data["s1"]
        assert set(entry) == {"E", "M", "events"}
        assert entry["E"]["mode"] == "baseline"
        assert "ts" in entry["E"]
        assert len(entry["events"]) == 1

    def test_serialize_truncates_events(self, clock):
        store = SessionStore(event_log_size=200, clock=clock)
        for i in range(150):
            store.log_event("s1", {"seq": i})

        events = store.serialize_all(event_limit=100)["s1"]["events"]
        assert len(events) == 100
        assert events[0]["seq"] == 50

    def test_restore_round_trip(self, store, clock):
        record = store.get_session("s1")
        record.state[:] = [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7]
        record.momentum[:] = 0.05
        store.log_event("s1", {"seq": 1})

        data = store.serialize_all()
        fresh = SessionStore(event_log_size=5, clock=clock)

        assert fresh.restore_all(data) == 1
        restored = fresh.get_session("s1")
        assert np.allclose(restored.state, record.state)
        assert np.allclose(restored.momentum, record.momentum)
        assert fresh.get_events("s1", 5) == store.get_events("s1", 5)

    def test_restore_skips_corrupt_entries(self, store):
        data = {
            "good": {"E": dict(BASELINE), "M": {}, "events": []},
            "": {"E": dict(BASELINE), "M": {}},
            "not_a_dict": "garbage",
            "missing_m": {"E": dict(BASELINE)},
            "bad_e": {"E": [1, 2, 3], "M": {}},
        }

        assert store.restore_all(data) == 1
        assert store.list_sessions() == ["good"]

    def test_restore_non_mapping_input(self, store):
        assert store.restore_all(["s1"]) == 0
        assert store.restore_all(None) == 0

    def test_restore_clamps_and_ignores_unknown_fields(self, store):
        data = {"s1": {"E": {"valence": 7, "mood": "sunny"}, "M": {"valence": 2}, "extra": True}}

        assert store.restore_all(data) == 1
        record = store.get_session("s1")
        assert to_dict(record.state)["valence"] == 1.0
        assert to_dict(record.momentum)["valence"] == 0.5

    def test_restore_future_timestamp_becomes_now(self, store, clock):
        data = {"s1": {"E": {"ts": clock.now + 10_000, "mode": "cooldown"}, "M": {}}}
        store.restore_all(data)

        record = store.get_session("s1")
        assert record.last_tick == clock.now
        assert record.mode == "cooldown"

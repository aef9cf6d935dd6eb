"""
Tests for Events and the Event Log
"""

import dataclasses
import threading

import pytest


class TestEvent:
    """Tests for Event"""

    def test_event_is_immutable(self, at):
        from interview_proctor.proctor.events import Event, EventKind

        attrs = {"count": 2}
        event = Event(EventKind.MULTIPLE_FACES_DETECTED, at(0), attrs)
        attrs["count"] = 5

        assert event.attributes["count"] == 2
        with pytest.raises(TypeError):
            event.attributes["count"] = 3
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.kind = EventKind.NO_FACE_DETECTED

    def test_kind_must_be_known(self, at):
        from interview_proctor.proctor.events import Event

        with pytest.raises(ValueError):
            Event("tab_switch", at(0))

    def test_dict_form(self, at):
        from interview_proctor.proctor.events import Event, EventKind

        event = Event(EventKind.OBJECT_DETECTED, at(3), {"class": "book", "score": 0.7, "bbox": (1.0, 2.0, 3.0, 4.0)})
        data = event.to_dict()

        assert data == {
            "type": "object_detected",
            "timestamp": at(3).isoformat(),
            "class": "book",
            "score": 0.7,
            "bbox": [1.0, 2.0, 3.0, 4.0],
        }
        restored = Event.from_dict(data)
        assert restored.kind is EventKind.OBJECT_DETECTED
        assert restored.timestamp == at(3)
        assert restored.attributes["class"] == "book"

    def test_describe_event(self, at):
        from interview_proctor.proctor.events import Event, EventKind, describe_event

        assert describe_event(Event(EventKind.OBJECT_DETECTED, at(0), {"class": "cell phone", "score": 0.87})) \
            == "Object detected: cell phone (87%)"
        assert describe_event(Event(EventKind.MULTIPLE_FACES_DETECTED, at(0), {"count": 3})) \
            == "Multiple faces detected (3)"
        assert describe_event(Event(EventKind.BACKGROUND_VOICE_DETECTED, at(0), {"level": 61.4})) \
            == "Background audio detected (level 61)"


class TestEventLog:
    """Tests for EventLog"""

    def _event(self, at_time, level=60):
        from interview_proctor.proctor.events import Event, EventKind
        return Event(EventKind.BACKGROUND_VOICE_DETECTED, at_time, {"level": level})

    def test_insertion_order_preserved(self, at):
        from interview_proctor.proctor.events import EventLog

        log = EventLog()
        for level in (70, 60, 90):
            log.append(self._event(at(0), level))

        assert [e.attributes["level"] for e in log.snapshot()] == [70, 60, 90]
        assert [e.attributes["level"] for e in log.recent(2)] == [60, 90]
        assert log.recent(0) == ()

    def test_snapshot_is_a_copy(self, at):
        from interview_proctor.proctor.events import EventLog

        log = EventLog()
        log.append(self._event(at(0)))
        snapshot = log.snapshot()
        log.append(self._event(at(1)))

        assert len(snapshot) == 1
        assert len(log) == 2

    def test_sealed_log_refuses_appends(self, at):
        from interview_proctor.proctor.events import EventLog

        log = EventLog()
        log.append(self._event(at(0)))
        final = log.seal()

        assert log.append(self._event(at(1))) is False
        assert len(final) == 1
        assert len(log) == 1

    def test_clear_empties_and_reopens(self, at):
        from interview_proctor.proctor.events import EventLog

        log = EventLog()
        log.append(self._event(at(0)))
        log.seal()
        log.clear()

        assert len(log) == 0
        assert log.append(self._event(at(1))) is True

    def test_concurrent_appends_all_recorded(self, at):
        from interview_proctor.proctor.events import EventLog

        log = EventLog()

        def writer(offset):
            for i in range(200):
                log.append(self._event(at(offset + i)))

        threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(log) == 800

"""Tests for change notifications."""

from tagged_tasks.core.notifications import ChangeEvent, ChangeKind, ChangeNotifier


def _event(**kwargs):
    return ChangeEvent(ChangeKind.TASKS_UPDATED, "/tmp/tasks.json", **kwargs)


class TestChangeNotifier:
    def test_register_and_emit(self):
        received = []
        notifier = ChangeNotifier()
        notifier.register(received.append)

        delivered = notifier.emit(_event(tag="master"))

        assert delivered == 1
        assert received[0].tag == "master"

    def test_unregister_callable(self):
        received = []
        notifier = ChangeNotifier()
        unsubscribe = notifier.register(received.append)

        unsubscribe()
        notifier.emit(_event())

        assert received == []
        assert notifier.listener_count == 0

    def test_unregister_unknown_listener(self):
        assert ChangeNotifier().unregister(print) is False

    def test_failing_listener_is_isolated(self, caplog):
        caplog.set_level("WARNING", logger="tagged_tasks")
        received = []

        def broken(event):
            raise RuntimeError("listener exploded")

        notifier = ChangeNotifier([broken, received.append])

        delivered = notifier.emit(_event())

        assert delivered == 1
        assert len(received) == 1
        assert "Change listener" in caplog.text

    def test_emit_all_counts_deliveries(self):
        notifier = ChangeNotifier([lambda event: None, lambda event: None])

        assert notifier.emit_all([_event(), _event()]) == 4


class TestChangeEvent:
    def test_to_dict_omits_empty_fields(self):
        event = ChangeEvent(ChangeKind.TASK_FILE_ADDED, "task_001.txt")

        assert event.to_dict() == {"kind": "TASK_FILE_ADDED", "path": "task_001.txt"}

    def test_to_dict_full(self):
        event = _event(tag="backlog", operation="move", affected_ids=("1", "4"))

        assert event.to_dict() == {
            "kind": "TASKS_UPDATED",
            "path": "/tmp/tasks.json",
            "tag": "backlog",
            "operation": "move",
            "affected_ids": ["1", "4"],
        }

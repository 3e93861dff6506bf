"""
test_event_hub.py
EventHubとEventAwareManagerのテスト
"""
import threading
import unittest

import pytest

from locatree.event_hub import Event, EventHub, EventPriority, EventType, create_event_hub
from locatree.managers.event_aware_manager import EventAwareManager


@pytest.mark.unit
class TestEventHub(unittest.TestCase):
    """EventHubの単体テスト"""

    def setUp(self):
        self.hub = EventHub()
        self.received = []

    def test_synchronous_publish(self):
        self.hub.subscribe(EventType.CATALOG_LOADED, self.received.append)
        self.hub.publish(EventType.CATALOG_LOADED, {"project": "demo"}, "test")

        self.assertEqual(len(self.received), 1)
        self.assertEqual(self.received[0].data, {"project": "demo"})
        self.assertEqual(self.received[0].source, "test")

    def test_duplicate_subscription_ignored(self):
        self.hub.subscribe(EventType.KEY_RENAMED, self.received.append)
        self.hub.subscribe(EventType.KEY_RENAMED, self.received.append)
        self.hub.publish(EventType.KEY_RENAMED)
        self.assertEqual(len(self.received), 1)

    def test_unsubscribe(self):
        self.hub.subscribe(EventType.KEY_RENAMED, self.received.append)
        self.hub.unsubscribe(EventType.KEY_RENAMED, self.received.append)
        self.hub.publish(EventType.KEY_RENAMED)
        self.assertEqual(self.received, [])

    def test_unsubscribe_all(self):
        self.hub.subscribe(EventType.KEY_RENAMED, self.received.append)
        self.hub.subscribe(EventType.LANGUAGE_ADDED, self.received.append)
        self.hub.unsubscribe_all()
        self.hub.publish(EventType.KEY_RENAMED)
        self.hub.publish(EventType.LANGUAGE_ADDED)
        self.assertEqual(self.received, [])

    def test_source_filter(self):
        self.hub.subscribe(EventType.TRANSLATION_UPDATED, self.received.append)
        self.hub.add_source_filter(EventType.TRANSLATION_UPDATED, "noisy")
        self.hub.publish(EventType.TRANSLATION_UPDATED, source="noisy")
        self.hub.publish(EventType.TRANSLATION_UPDATED, source="session")
        self.assertEqual([event.source for event in self.received], ["session"])

        self.hub.remove_source_filter(EventType.TRANSLATION_UPDATED, "noisy")
        self.hub.publish(EventType.TRANSLATION_UPDATED, source="noisy")
        self.assertEqual(len(self.received), 2)

    def test_failing_subscriber_reports_app_error(self):
        errors = []

        def broken(event):
            raise RuntimeError("subscriber failed")

        self.hub.subscribe(EventType.CATALOG_SAVED, broken)
        self.hub.subscribe(EventType.CATALOG_SAVED, self.received.append)
        self.hub.subscribe(EventType.APP_ERROR, errors.append)

        self.hub.publish(EventType.CATALOG_SAVED)
        # 他のサブスクライバーには配信される
        self.assertEqual(len(self.received), 1)
        self.assertEqual(errors[0].data["original_event"], "CATALOG_SAVED")

    def test_debug_history(self):
        self.hub.set_debug_mode(True, max_history_size=2)
        for _ in range(3):
            self.hub.publish(EventType.LANGUAGE_ADDED, {"code": "fr"}, "test")
        history = self.hub.get_event_history()
        self.assertEqual(len(history), 2)
        self.assertEqual(history[0]["type"], "LANGUAGE_ADDED")

        self.hub.set_debug_mode(False)
        self.assertEqual(self.hub.get_event_history(), [])

    def test_async_mode_uses_processor_thread(self):
        delivered = threading.Event()
        self.hub.subscribe(EventType.CATALOG_LOADED, lambda event: delivered.set())

        self.hub.start()
        try:
            self.assertTrue(self.hub.is_running())
            self.hub.publish(EventType.CATALOG_LOADED, async_mode=True)
            self.assertTrue(delivered.wait(timeout=2.0))
        finally:
            self.hub.stop()
        self.assertFalse(self.hub.is_running())

    def test_event_ordering_by_priority(self):
        low = Event(EventType.APP_ERROR, priority=EventPriority.LOW)
        high = Event(EventType.APP_ERROR, priority=EventPriority.HIGHEST)
        self.assertTrue(high < low)


class _RecordingManager(EventAwareManager):
    def __init__(self, event_hub=None):
        self.loaded = []
        super().__init__("recording_manager", event_hub)

    def _setup_event_subscriptions(self):
        self.subscribe_to_event(EventType.CATALOG_LOADED)

    def _handle_catalog_loaded(self, event):
        self.loaded.append(event.data)


@pytest.mark.unit
class TestEventAwareManager(unittest.TestCase):
    """EventAwareManagerの単体テスト"""

    def test_dispatches_to_named_handler(self):
        hub = create_event_hub()
        manager = _RecordingManager(hub)
        hub.publish(EventType.CATALOG_LOADED, {"project": "demo"})
        self.assertEqual(manager.loaded, [{"project": "demo"}])

    def test_publish_without_hub_is_noop(self):
        manager = _RecordingManager()
        manager.publish_event(EventType.CATALOG_SAVED, {"saved_changes": 1})
        self.assertEqual(manager.loaded, [])

    def test_set_event_hub_moves_subscriptions(self):
        first, second = EventHub(), EventHub()
        manager = _RecordingManager(first)
        manager.set_event_hub(second)

        first.publish(EventType.CATALOG_LOADED, "old")
        second.publish(EventType.CATALOG_LOADED, "new")
        self.assertEqual(manager.loaded, ["new"])

    def test_cleanup_unsubscribes(self):
        hub = EventHub()
        manager = _RecordingManager(hub)
        manager.cleanup()
        hub.publish(EventType.CATALOG_LOADED, "ignored")
        self.assertEqual(manager.loaded, [])

    def test_publish_event_sets_source(self):
        hub = EventHub()
        received = []
        hub.subscribe(EventType.KEY_RENAMED, received.append)
        _RecordingManager(hub).publish_event(EventType.KEY_RENAMED, {"old_path": "a"})
        self.assertEqual(received[0].source, "recording_manager")

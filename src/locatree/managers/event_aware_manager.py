"""
event_aware_manager.py
EventHubに接続するマネージャーの基底クラス
"""
from typing import Any, Callable, Optional, Set

from ..event_hub import Event, EventHub, EventPriority, EventType
from ..logging_config import get_logger

logger = get_logger(__name__)


class EventAwareManager:
    """
    イベントの発行と購読を行うマネージャーの基底クラス

    EventHubが無い場合、発行・購読は何もしません。購読したイベントは
    既定で _handle_<イベントタイプ名の小文字> メソッドに振り分けます。

    Attributes:
        manager_name (str): 発行元として使う名前
        event_hub (EventHub): 接続先のハブ（無ければ None）
    """

    def __init__(self, manager_name: str, event_hub: Optional[EventHub] = None):
        self.manager_name = manager_name
        self.event_hub = event_hub
        self._subscribed_events: Set[EventType] = set()

        if self.event_hub:
            self._setup_event_subscriptions()

    def set_event_hub(self, event_hub: Optional[EventHub]) -> None:
        """
        接続先のハブを付け替える（既存の購読は解除し、新しいハブで登録し直す）

        Args:
            event_hub: 新しいハブ（None で切断）
        """
        self.cleanup()
        self.event_hub = event_hub
        if self.event_hub:
            self._setup_event_subscriptions()

    def _setup_event_subscriptions(self) -> None:
        """購読するイベントを登録する。必要なサブクラスがオーバーライドする"""

    def subscribe_to_event(self, event_type: EventType, handler: Optional[Callable[[Event], None]] = None) -> None:
        if not self.event_hub:
            return
        self.event_hub.subscribe(event_type, handler or self._event_handler)
        self._subscribed_events.add(event_type)

    def unsubscribe_from_event(self, event_type: EventType, handler: Optional[Callable[[Event], None]] = None) -> None:
        if not self.event_hub:
            return
        self.event_hub.unsubscribe(event_type, handler or self._event_handler)
        self._subscribed_events.discard(event_type)

    def publish_event(
        self,
        event_type: EventType,
        data: Optional[Any] = None,
        priority: EventPriority = EventPriority.NORMAL,
        async_mode: bool = False
    ) -> None:
        """manager_name を発行元としてイベントを発行する"""
        if not self.event_hub:
            return
        self.event_hub.publish(event_type, data, self.manager_name, priority, async_mode)

    def _event_handler(self, event: Event) -> None:
        handler = getattr(self, f"_handle_{event.event_type.name.lower()}", None)
        if callable(handler):
            handler(event)
        else:
            logger.debug(f"{self.manager_name}: no handler for {event.event_type.name}")

    def cleanup(self) -> None:
        """共通ハンドラーで登録した購読をすべて解除する"""
        if self.event_hub:
            for event_type in self._subscribed_events:
                self.event_hub.unsubscribe(event_type, self._event_handler)
        self._subscribed_events.clear()

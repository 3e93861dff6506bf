"""
event_hub.py
編集セッションの状態変化を表示層へ伝えるPubSubハブ

セッションは変更のたびに同期的にイベントを発行します。ツリービューや
ステータスバーなどの表示層はイベントタイプを購読して再描画します。
start() した場合に限り、async_mode のイベントを専用スレッドで配信します。
"""
from collections import defaultdict, deque
from enum import Enum, auto
from typing import Any, Callable, Deque, Dict, List, Optional, Set
import itertools
import queue
import threading
import time

from .logging_config import get_logger

logger = get_logger(__name__)

Subscriber = Callable[["Event"], None]


class EventType(Enum):
    """セッションが発行するイベント"""
    # 読み込み・保存
    CATALOG_LOADED = auto()
    CATALOG_SAVED = auto()
    CHANGES_DISCARDED = auto()

    # 編集
    TRANSLATION_UPDATED = auto()
    KEY_RENAMED = auto()
    LANGUAGE_ADDED = auto()
    LANGUAGE_REMOVED = auto()
    TRANSLATIONS_IMPORTED = auto()

    # アプリケーション
    LANGUAGE_CHANGED = auto()      # UI表示言語
    APP_ERROR = auto()


class EventPriority(Enum):
    """キュー配信時の優先度（値が大きいほど先）"""
    LOW = 0
    NORMAL = 1
    HIGH = 2
    HIGHEST = 3


_sequence = itertools.count()


class Event:
    """
    発行された1件のイベント

    Attributes:
        event_type (EventType): イベントタイプ
        data (Any): ペイロード（通常は辞書）
        source (str): 発行元マネージャー名
        priority (EventPriority): 優先度
        timestamp (float): 発行時刻
        sequence (int): 発行順の通し番号
    """

    def __init__(
        self,
        event_type: EventType,
        data: Optional[Any] = None,
        source: Optional[str] = None,
        priority: EventPriority = EventPriority.NORMAL
    ):
        self.event_type = event_type
        self.data = data
        self.source = source
        self.priority = priority
        self.timestamp = time.time()
        self.sequence = next(_sequence)

    def __lt__(self, other):
        # 優先度の高い順、同じ優先度なら発行順
        if not isinstance(other, Event):
            return NotImplemented
        return (-self.priority.value, self.sequence) < (-other.priority.value, other.sequence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type.name,
            "data": self.data,
            "source": self.source,
            "priority": self.priority.name,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"Event({self.event_type.name}, source={self.source!r})"


class EventHub:
    """
    イベントの購読と配信を管理するクラス

    購読者の例外は配信を止めず、APP_ERROR イベントとして報告します。
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[Subscriber]] = defaultdict(list)
        self._muted_sources: Dict[EventType, Set[str]] = defaultdict(set)

        self._queue: "queue.PriorityQueue[Event]" = queue.PriorityQueue()
        self._worker: Optional[threading.Thread] = None
        self._running = False

        self._history: Deque[Event] = deque(maxlen=100)
        self._record_history = False

    # ------------------------------------------------------------------
    # 購読
    # ------------------------------------------------------------------

    def subscribe(self, event_type: EventType, callback: Subscriber) -> None:
        """
        イベントタイプを購読する（同じコールバックの二重登録は無視）

        Args:
            event_type: 購読するイベントタイプ
            callback: Event を受け取る関数
        """
        callbacks = self._subscribers[event_type]
        if callback not in callbacks:
            callbacks.append(callback)

    def unsubscribe(self, event_type: EventType, callback: Subscriber) -> None:
        callbacks = self._subscribers.get(event_type)
        if not callbacks or callback not in callbacks:
            return
        callbacks.remove(callback)
        if not callbacks:
            del self._subscribers[event_type]

    def unsubscribe_all(self, event_type: Optional[EventType] = None) -> None:
        """指定したタイプ（省略時はすべて）の購読を解除する"""
        if event_type is None:
            self._subscribers.clear()
        else:
            self._subscribers.pop(event_type, None)

    def add_source_filter(self, event_type: EventType, source: str) -> None:
        """発行元 source からの event_type を配信しないようにする"""
        self._muted_sources[event_type].add(source)

    def remove_source_filter(self, event_type: EventType, source: str) -> None:
        muted = self._muted_sources.get(event_type)
        if not muted:
            return
        muted.discard(source)
        if not muted:
            del self._muted_sources[event_type]

    # ------------------------------------------------------------------
    # 配信
    # ------------------------------------------------------------------

    def publish(
        self,
        event_type: EventType,
        data: Optional[Any] = None,
        source: Optional[str] = None,
        priority: EventPriority = EventPriority.NORMAL,
        async_mode: bool = False
    ) -> None:
        """
        イベントを発行する

        Args:
            event_type: イベントタイプ
            data: ペイロード
            source: 発行元の名前
            priority: キュー配信時の優先度
            async_mode: 配信スレッドの稼働中ならキューに入れて後で配信する
        """
        event = Event(event_type, data, source, priority)
        if self._record_history:
            self._history.append(event)

        if async_mode and self._running:
            self._queue.put(event)
        else:
            self._deliver(event)

    def _deliver(self, event: Event) -> None:
        if event.source in self._muted_sources.get(event.event_type, ()):
            return

        # 配信中に購読が変わっても影響しないようにコピーを走査
        for callback in list(self._subscribers.get(event.event_type, ())):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber for {event.event_type.name} raised: {e}")
                if event.event_type is not EventType.APP_ERROR:
                    self.publish(
                        EventType.APP_ERROR,
                        {"error": str(e), "original_event": event.event_type.name},
                        "event_hub",
                        EventPriority.HIGH,
                    )

    def _run_worker(self) -> None:
        while self._running:
            try:
                event = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            self._deliver(event)
            self._queue.task_done()

    def start(self) -> None:
        """async_mode のイベントを配信するスレッドを開始する"""
        if self._running:
            return
        self._running = True
        self._worker = threading.Thread(target=self._run_worker, name="locatree-events", daemon=True)
        self._worker.start()
        logger.info("EventHub worker started")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._worker is not None:
            self._worker.join(timeout=1.0)
            self._worker = None
        logger.info("EventHub worker stopped")

    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # デバッグ用履歴
    # ------------------------------------------------------------------

    def set_debug_mode(self, enabled: bool, max_history_size: int = 100) -> None:
        """発行したイベントの履歴を記録するかどうか（無効にすると履歴は消える）"""
        self._record_history = enabled
        self._history = deque(self._history if enabled else (), maxlen=max_history_size)

    def get_event_history(self) -> List[Dict[str, Any]]:
        return [event.to_dict() for event in self._history]

    def clear_event_history(self) -> None:
        self._history.clear()


def create_event_hub(start: bool = False) -> EventHub:
    """EventHubを作成する工場関数（start=True で配信スレッドも開始）"""
    hub = EventHub()
    if start:
        hub.start()
    return hub

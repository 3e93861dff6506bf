"""
copy_manager.py
カタログの独立したコピーを作るマネージャー

元スナップショットと編集中のカタログは、読み込み・保存・破棄の境目で
必ず別オブジェクトになっていなければなりません。Leaf の値辞書まで
作り直し、どの可変オブジェクトも共有しないコピーを返します。
"""
import copy
from typing import Any

from ..debug_control import print_init
from ..models import Catalog, Leaf, Namespace
from .event_aware_manager import EventAwareManager


class CopyManager(EventAwareManager):
    """Catalog・ツリーノード・JSON値の深いコピー"""

    def __init__(self, event_hub=None):
        super().__init__("copy_manager", event_hub)
        print_init("[OK] CopyManager initialized")

    def deep_copy(self, data: Any) -> Any:
        """
        data と可変状態を共有しないコピーを返す

        Args:
            data: Catalog、Namespace、Leaf、またはJSON由来の値

        Returns:
            Any: 同じ型のコピー（不変のスカラーはそのまま）
        """
        if isinstance(data, Catalog):
            return Catalog(data.project, list(data.languages), self.deep_copy(data.translations))
        if isinstance(data, Namespace):
            return Namespace({name: self.deep_copy(child) for name, child in data.children.items()})
        if isinstance(data, Leaf):
            return Leaf(dict(data.values))
        if isinstance(data, dict):
            return {key: self.deep_copy(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self.deep_copy(item) for item in data]
        if data is None or isinstance(data, (str, int, float, bool)):
            return data
        return copy.deepcopy(data)


def create_copy_manager(event_hub=None) -> CopyManager:
    return CopyManager(event_hub)

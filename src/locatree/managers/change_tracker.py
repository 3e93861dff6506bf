"""
change_tracker.py
未保存の変更を追跡するマネージャークラス

元スナップショットと比較して、(キーパス, 言語) ごとに最大1件の変更レコードを
保持します。値が元に戻った場合はレコードを自動的に取り除き、一覧には
実質的な差分だけが残ります。キー名変更は専用の言語値 KEY_RENAME で記録します。
"""
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..logging_config import get_logger
from ..models import (
    KEY_RENAME, PATH_SEPARATOR, Catalog, Leaf, Namespace, PendingChange,
    join_path, parent_path_of, split_path,
)
from .event_aware_manager import EventAwareManager
from .tree_navigator import TreeNavigator

logger = get_logger(__name__)


def _is_within(key_path: str, root_path: str) -> bool:
    """key_path が root_path 自身またはその子孫かどうか"""
    return key_path == root_path or key_path.startswith(root_path + PATH_SEPARATOR)


def _replace_prefix(key_path: str, old_prefix: str, new_prefix: str) -> str:
    return new_prefix + key_path[len(old_prefix):]


class ChangeTracker(EventAwareManager):
    """
    未保存の変更一覧を管理するクラス

    Attributes:
        navigator (TreeNavigator): スナップショット参照用のナビゲーター
    """

    def __init__(self, navigator: Optional[TreeNavigator] = None, event_hub=None):
        super().__init__("change_tracker", event_hub)
        self.navigator = navigator or TreeNavigator()
        self._changes: List[PendingChange] = []

        from ..debug_control import print_init
        print_init("[OK] ChangeTracker initialized")

    @property
    def changes(self) -> List[PendingChange]:
        """変更一覧のコピー（記録順）"""
        return list(self._changes)

    def has_changes(self) -> bool:
        return bool(self._changes)

    def __len__(self) -> int:
        return len(self._changes)

    def content_changes(self) -> List[PendingChange]:
        return [change for change in self._changes if not change.is_rename]

    def rename_changes(self) -> List[PendingChange]:
        return [change for change in self._changes if change.is_rename]

    def changes_for(self, key_path: str) -> List[PendingChange]:
        """キーパスに対する内容変更の一覧"""
        return [c for c in self._changes if not c.is_rename and c.key_path == key_path]

    def has_change(self, key_path: str, language: str) -> bool:
        return self._index_of(key_path, language) >= 0

    def clear(self) -> None:
        if self._changes:
            logger.debug(f"Clearing {len(self._changes)} pending change(s)")
        self._changes = []

    def _index_of(self, key_path: str, language: str) -> int:
        for index, change in enumerate(self._changes):
            if change.key_path == key_path and change.language == language:
                return index
        return -1

    # ------------------------------------------------------------------
    # スナップショット上のパス解決
    # ------------------------------------------------------------------

    def snapshot_path(self, key_path: str) -> str:
        """
        現在のキーパスを、未保存のキー名変更を遡って元スナップショット上のパスに変換する

        Args:
            key_path: 現在のツリー上のキーパス

        Returns:
            str: スナップショット上のキーパス
        """
        renames = self.rename_changes()
        if not renames:
            return key_path

        current_parent = ""
        snapshot_parent = ""
        for segment in split_path(key_path):
            snapshot_segment = segment
            for change in renames:
                if parent_path_of(change.key_path) == current_parent and change.new_value == segment:
                    snapshot_segment = change.original_value
                    break
            current_parent = join_path(current_parent, segment)
            snapshot_parent = join_path(snapshot_parent, snapshot_segment)
        return snapshot_parent

    def original_value(self, snapshot: Optional[Catalog], key_path: str, language: str) -> str:
        """元スナップショットの値。存在しない場合は空文字列"""
        if snapshot is None:
            return ""
        return self.navigator.get_value(snapshot.translations, self.snapshot_path(key_path), language)

    # ------------------------------------------------------------------
    # 記録
    # ------------------------------------------------------------------

    def record_edit(self, snapshot: Optional[Catalog], key_path: str, language: str, new_value: str) -> List[PendingChange]:
        """
        翻訳値の編集を記録する

        新しい値が元の値と同じ場合は既存のレコードを取り除き、異なる場合は
        (キーパス, 言語) のレコードを最新の値で置き換える。

        Args:
            snapshot: 元スナップショット
            key_path: 編集したLeafのキーパス
            language: 言語コード
            new_value: 新しい値

        Returns:
            List[PendingChange]: 更新後の変更一覧
        """
        original = self.original_value(snapshot, key_path, language)
        index = self._index_of(key_path, language)

        if new_value == original:
            if index >= 0:
                del self._changes[index]
                logger.debug(f"Edit reverted, dropped pending change: {key_path} [{language}]")
            return self.changes

        change = PendingChange(key_path, language, original, new_value)
        if index >= 0:
            self._changes[index] = change
        else:
            self._changes.append(change)
        logger.debug(f"Pending change recorded: {change!r}")
        return self.changes

    def record_rename(self, old_path: str, new_key: str) -> List[PendingChange]:
        """
        キー名変更を記録する

        同じノードに対する連続したキー名変更は1件にまとめ、元の名前に戻した場合は
        レコードを取り除く。変更されたサブツリー配下の既存レコードは新しいパスへ移す。

        Args:
            old_path: 変更前のキーパス
            new_key: 新しいキー名（末尾セグメント）

        Returns:
            List[PendingChange]: 更新後の変更一覧
        """
        parent = parent_path_of(old_path)
        old_key = split_path(old_path)[-1]
        new_path = join_path(parent, new_key)

        # サブツリー配下のレコードを新しいパスへ移す
        for index, change in enumerate(self._changes):
            if change.is_rename:
                if _is_within(parent_path_of(change.key_path), old_path):
                    moved = _replace_prefix(change.key_path, old_path, new_path)
                    self._changes[index] = PendingChange(moved, KEY_RENAME, change.original_value, change.new_value)
            elif _is_within(change.key_path, old_path):
                moved = _replace_prefix(change.key_path, old_path, new_path)
                self._changes[index] = PendingChange(moved, change.language, change.original_value, change.new_value)

        chained = self._find_rename_for_current_path(old_path)
        if chained >= 0:
            previous = self._changes[chained]
            if previous.original_value == new_key:
                del self._changes[chained]
                logger.debug(f"Rename reverted, dropped pending change: {previous.key_path}")
            else:
                self._changes[chained] = PendingChange(previous.key_path, KEY_RENAME, previous.original_value, new_key)
        else:
            self._changes.append(PendingChange(old_path, KEY_RENAME, old_key, new_key))

        logger.debug(f"Rename recorded: {old_path} -> {new_path}")
        return self.changes

    def _find_rename_for_current_path(self, current_path: str) -> int:
        parent = parent_path_of(current_path)
        name = split_path(current_path)[-1]
        for index, change in enumerate(self._changes):
            if change.is_rename and parent_path_of(change.key_path) == parent and change.new_value == name:
                return index
        return -1

    def discard_where(self, predicate: Callable[[PendingChange], bool]) -> int:
        """条件に一致するレコードを取り除き、取り除いた件数を返す"""
        before = len(self._changes)
        self._changes = [change for change in self._changes if not predicate(change)]
        return before - len(self._changes)

    def rebase(
        self,
        submitted: Iterable[PendingChange],
        snapshot: Catalog,
        current: Optional[Catalog] = None,
    ) -> List[PendingChange]:
        """
        保存完了後に、保存時点以降に記録されたレコードだけを新しいスナップショット基準で残す

        保存中に元の値・元の名前へ戻された項目は、送信済みの値との差分として記録し直す
        （current を渡した場合）。

        Args:
            submitted: 保存要求を出した時点の変更一覧
            snapshot: 保存に成功した新しいスナップショット
            current: 現在のカタログ

        Returns:
            List[PendingChange]: 残った変更一覧
        """
        submitted = list(submitted)
        submitted_renames: Dict[Tuple[str, str], PendingChange] = {
            (change.key_path, change.original_value): change
            for change in submitted if change.is_rename
        }

        remaining: List[PendingChange] = []
        consumed = set()
        for change in self._changes:
            if change in submitted:
                if change.is_rename:
                    consumed.add((change.key_path, KEY_RENAME, change.original_value))
                continue
            if change.is_rename:
                saved = submitted_renames.get((change.key_path, change.original_value))
                if saved is not None:
                    consumed.add((saved.key_path, KEY_RENAME, saved.original_value))
                    # 保存済みの名前を起点に付け替える
                    key_path = join_path(parent_path_of(change.key_path), saved.new_value)
                    change = PendingChange(key_path, KEY_RENAME, saved.new_value, change.new_value)
                    if change.original_value == change.new_value:
                        continue
            remaining.append(change)

        if current is not None:
            remaining.extend(self._reverted_renames(submitted, consumed, current))

        # 元の値の解決に使うため、キー名変更を先に反映する
        self._changes = [change for change in remaining if change.is_rename]
        rebased: List[PendingChange] = []
        seen = set()
        for change in remaining:
            if not change.is_rename:
                original = self.original_value(snapshot, change.key_path, change.language)
                seen.add(change.key)
                if original == change.new_value:
                    continue
                change = PendingChange(change.key_path, change.language, original, change.new_value)
            rebased.append(change)

        if current is not None:
            for change in submitted:
                if change.is_rename or change.key in seen:
                    continue
                leaf = self.navigator.find(current.translations, change.key_path)
                if not isinstance(leaf, Leaf):
                    continue
                value = leaf.get(change.language)
                original = self.original_value(snapshot, change.key_path, change.language)
                if value != original:
                    rebased.append(PendingChange(change.key_path, change.language, original, value))
        self._changes = rebased

        logger.debug(f"Rebased pending changes after save: {len(self._changes)} remaining")
        return self.changes

    def _reverted_renames(self, submitted, consumed, current: Catalog) -> List[PendingChange]:
        """保存中に元の名前へ戻されたキー名変更を、保存済みの名前からの変更として返す"""
        reverted = []
        for change in submitted:
            if not change.is_rename or (change.key_path, KEY_RENAME, change.original_value) in consumed:
                continue
            parent = self.navigator.find(current.translations, parent_path_of(change.key_path))
            if not isinstance(parent, Namespace):
                continue
            if change.original_value in parent.children and change.new_value not in parent.children:
                saved_path = join_path(parent_path_of(change.key_path), change.new_value)
                reverted.append(PendingChange(saved_path, KEY_RENAME, change.new_value, change.original_value))
        return reverted

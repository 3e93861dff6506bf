"""
debug_control.py
DEBUG_MODE 環境変数による出力レベルの判定

    0 / false / 未設定  : 通常（初期化メッセージなし、コンソールは WARNING 以上）
    1 / true / on / yes : 開発（初期化メッセージ表示、INFO 以上、ログファイル出力）
    2 / verbose / debug : 詳細（DEBUG 以上）

値は参照のたびに読み直すので、テストや実行中の切り替えがすぐに反映されます。
"""
import os

_LEVEL_ALIASES = {
    "1": 1, "true": 1, "yes": 1, "on": 1,
    "2": 2, "verbose": 2, "debug": 2,
}


def _read_level() -> int:
    raw = os.environ.get("DEBUG_MODE", "0").strip().lower()
    return _LEVEL_ALIASES.get(raw, 0)


class DebugControl:
    """現在の DEBUG_MODE を問い合わせる窓口"""

    def get_debug_mode(self) -> int:
        return _read_level()

    @property
    def is_enabled(self) -> bool:
        return _read_level() >= 1

    def print_init(self, message: str) -> None:
        """開発モード以上のときだけ初期化メッセージを標準出力へ出す"""
        if self.is_enabled:
            print(message)


_control = DebugControl()


def get_debug_control() -> DebugControl:
    return _control


def print_init(message: str) -> None:
    _control.print_init(message)

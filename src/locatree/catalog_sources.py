"""
catalog_sources.py
カタログの読み込み・保存先

編集セッションは fetch() / store() だけを使い、保存先の種類を知りません。
メモリ上のソース（デモ・テスト用）とJSONファイルのソースを提供します。
"""
import asyncio
import copy
import json
import os
import tempfile
from typing import Any, Dict, Optional

from .logging_config import get_logger
from .models import Catalog
from .sample_data import SAMPLE_CATALOG

logger = get_logger(__name__)


class CatalogSource:
    """カタログの読み込み・保存先の基底クラス"""

    name = "source"

    async def fetch(self) -> Catalog:
        """カタログを読み込む。失敗時は例外を送出する"""
        raise NotImplementedError

    async def store(self, catalog: Catalog) -> None:
        """カタログを保存する。失敗時は例外を送出する"""
        raise NotImplementedError


class InMemoryCatalogSource(CatalogSource):
    """
    メモリ上の辞書を読み込み・保存先とするソース

    Attributes:
        data (Dict): 保存されているカタログ（{"project", "languages", "translations"}）
        delay (float): 読み込み・保存時の疑似待ち時間（秒）
        store_count (int): 保存が成功した回数
    """

    name = "memory"

    def __init__(self, data: Optional[Dict[str, Any]] = None, delay: float = 0.0):
        self.data = copy.deepcopy(data if data is not None else SAMPLE_CATALOG)
        self.delay = delay
        self.store_count = 0

    async def fetch(self) -> Catalog:
        if self.delay:
            await asyncio.sleep(self.delay)
        return Catalog.from_dict(copy.deepcopy(self.data))

    async def store(self, catalog: Catalog) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.data = catalog.to_dict()
        self.store_count += 1


class JsonFileCatalogSource(CatalogSource):
    """
    JSONファイルを読み込み・保存先とするソース

    保存は一時ファイルに書いてから置き換えるため、失敗しても既存ファイルは壊れない。
    """

    name = "json_file"

    def __init__(self, file_path: str, indent: int = 2):
        self.file_path = file_path
        self.indent = indent

    async def fetch(self) -> Catalog:
        return await asyncio.to_thread(self._read)

    async def store(self, catalog: Catalog) -> None:
        await asyncio.to_thread(self._write, catalog.to_dict())

    def _read(self) -> Catalog:
        logger.info(f"Loading catalog file: {self.file_path}")
        with open(self.file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return Catalog.from_dict(data)

    def _write(self, data: Dict[str, Any]) -> None:
        logger.info(f"Saving catalog file: {self.file_path}")
        directory = os.path.dirname(os.path.abspath(self.file_path))
        os.makedirs(directory, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(prefix=".locatree-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=self.indent)
                f.write("\n")
            os.replace(temp_path, self.file_path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

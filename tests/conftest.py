"""
テスト用の共通フィクスチャと設定を提供するモジュール。
"""
import asyncio
import copy
import json

import pytest

from locatree.catalog_sources import InMemoryCatalogSource
from locatree.error_handling import ErrorHandler
from locatree.event_hub import EventHub, EventType
from locatree.managers.catalog_session import CatalogSession
from locatree.messages import set_language
from locatree.models import Catalog
from locatree.sample_data import SAMPLE_CATALOG


@pytest.fixture(autouse=True)
def english_messages():
    """各テストの前後でUIメッセージを英語に戻す"""
    set_language("en")
    yield
    set_language("en")


@pytest.fixture
def sample_data():
    """サンプルカタログの生データ（テストごとに独立したコピー）"""
    return copy.deepcopy(SAMPLE_CATALOG)


@pytest.fixture
def sample_catalog(sample_data):
    return Catalog.from_dict(sample_data)


@pytest.fixture
def event_hub():
    return EventHub()


@pytest.fixture
def recorded_events(event_hub):
    """EventHubに発行されたイベントを記録するリスト"""
    events = []

    def record(event):
        events.append(event)

    for event_type in EventType:
        event_hub.subscribe(event_type, record)
    return events


@pytest.fixture
def error_handler(event_hub):
    return ErrorHandler(event_hub)


@pytest.fixture
def memory_source(sample_data):
    return InMemoryCatalogSource(sample_data)


@pytest.fixture
def session(memory_source, event_hub, error_handler):
    """未読み込みのセッション"""
    return CatalogSession(memory_source, event_hub, error_handler)


@pytest.fixture
def loaded_session(session):
    """サンプルカタログを読み込み済みのセッション"""
    assert asyncio.run(session.load())
    return session


@pytest.fixture
def catalog_file(tmp_path, sample_data):
    """サンプルカタログを書き込んだJSONファイル"""
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(sample_data, ensure_ascii=False), encoding="utf-8")
    return path

from __future__ import annotations

import pytest

import store
from clock import ManualScheduler
from definitions import DefinitionLookupService
from models import Article
from reader import Preferences
from tests.fakes import FakeCache, FakeCompletion, FakeDictionary, speech_track


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "test.db")
    monkeypatch.setattr(store, "DB_PATH", path)
    return path


@pytest.fixture
async def db(db_path):
    await store.init_db()
    return db_path


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def preferences(tmp_path):
    return Preferences(tmp_path / "prefs.json")


@pytest.fixture
def definitions():
    return DefinitionLookupService(
        cache=FakeCache(),
        completion=FakeCompletion(),
        dictionary=FakeDictionary({"cat"}),
    )


@pytest.fixture
def article():
    english = ["The cat sat.", "It was happy."]
    return Article(
        id="art-1",
        title_english="A Cat",
        title_korean="고양이",
        english=english,
        korean=["고양이가 앉았다.", "행복했다."],
        audio=speech_track(english),
    )

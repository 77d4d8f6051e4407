from __future__ import annotations

import json

from adapters.json_config_store import JsonConfigStore
from core.config import PollConfiguration


def test_from_raw_falls_back_below_minimum() -> None:
    config = PollConfiguration.from_raw(" tok ", 0, 0)
    assert config == PollConfiguration(token="tok", interval_seconds=300, page_size=10)


def test_from_raw_caps_above_maximum() -> None:
    config = PollConfiguration.from_raw("tok", 5000, 999)
    assert config.interval_seconds == 3600
    assert config.page_size == 50


def test_from_raw_tolerates_garbage() -> None:
    config = PollConfiguration.from_raw(None, "soon", None)
    assert config == PollConfiguration()


def test_per_page_is_clamped_at_use() -> None:
    assert PollConfiguration(page_size=999).per_page == 50
    assert PollConfiguration(page_size=0).per_page == 1
    assert PollConfiguration(page_size=25).per_page == 25


def test_store_round_trip_preserves_other_sections(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"logging": {"level": "DEBUG"}}), encoding="utf-8")
    store = JsonConfigStore(path)

    store.save(PollConfiguration(token="abc", interval_seconds=120, page_size=20))

    assert store.load() == PollConfiguration(token="abc", interval_seconds=120, page_size=20)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["logging"] == {"level": "DEBUG"}
    assert data["github"]["page_size"] == 20


def test_store_missing_file_uses_defaults_and_env_token(tmp_path) -> None:
    store = JsonConfigStore(tmp_path / "missing.json", fallback_token="from-env")
    assert store.load() == PollConfiguration(token="from-env")


def test_file_token_wins_over_env(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"github": {"token": "from-file"}}), encoding="utf-8")
    assert JsonConfigStore(path, fallback_token="from-env").load().token == "from-file"

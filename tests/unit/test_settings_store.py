# pylint: disable=missing-module-docstring,missing-function-docstring
import json
from pathlib import Path

import pytest

from observability import logger
from orchestrator.target import ConnectionTarget
from session.settings_store import JsonSettingsStore


@pytest.fixture(autouse=True)
def _quiet_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda _line: None)


def test_missing_file_yields_defaults(tmp_path: Path):
    store = JsonSettingsStore(tmp_path / "settings.json")

    assert store.load() == ConnectionTarget(host="", port=9000)


def test_save_then_load(tmp_path: Path):
    path = tmp_path / "nested" / "settings.json"
    store = JsonSettingsStore(path)

    store.save("192.168.1.20", 9001)

    assert json.loads(path.read_text(encoding="utf-8")) == {"host": "192.168.1.20", "port": 9001}
    assert JsonSettingsStore(path).load() == ConnectionTarget("192.168.1.20", 9001)
    assert not path.with_name("settings.json.tmp").exists()


def test_corrupt_file_yields_defaults(tmp_path: Path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonSettingsStore(path).load() == ConnectionTarget("", 9000)


@pytest.mark.parametrize("port", [0, "9000", True, None])
def test_unusable_port_falls_back_to_default(tmp_path: Path, port: object):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"host": "vr-pc", "port": port}), encoding="utf-8")

    assert JsonSettingsStore(path).load() == ConnectionTarget("vr-pc", 9000)


def test_non_object_document_yields_defaults(tmp_path: Path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert JsonSettingsStore(path).load() == ConnectionTarget("", 9000)

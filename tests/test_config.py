from __future__ import annotations

from pathlib import Path

import pytest

from dupsweep.core.config import ConfigError, load_settings


def test_defaults_match_the_command_line_tool(tmp_path: Path) -> None:
    settings = load_settings(database_path=(tmp_path / "deduplicate.db").as_posix())

    assert settings.scan_root is None
    assert settings.worker_count == 10
    assert settings.effective_queue_capacity == 40
    assert settings.hash_algorithm == "sha256"
    assert settings.quarantine_dir_name == "duplicate_to_be_deleted"
    assert settings.dry_run is False
    assert settings.effective_database_url == f"sqlite:///{(tmp_path / 'deduplicate.db').resolve().as_posix()}"


def test_require_scan_root_raises_config_error(tmp_path: Path) -> None:
    settings = load_settings(database_path=(tmp_path / "index.db").as_posix())
    with pytest.raises(ConfigError):
        settings.require_scan_root()


def test_environment_variables_are_read(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DUPSWEEP_SCAN_ROOT", tmp_path.as_posix())
    monkeypatch.setenv("DUPSWEEP_WORKER_COUNT", "3")
    monkeypatch.setenv("DUPSWEEP_HASH_ALGORITHM", " Blake3 ")

    settings = load_settings(database_path=(tmp_path / "index.db").as_posix())

    assert settings.require_scan_root() == tmp_path.resolve()
    assert settings.worker_count == 3
    assert settings.effective_queue_capacity == 12
    assert settings.hash_algorithm == "blake3"


def test_explicit_values_override_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DUPSWEEP_WORKER_COUNT", "3")
    settings = load_settings(worker_count=7, queue_capacity=2, database_path=(tmp_path / "index.db").as_posix())
    assert settings.worker_count == 7
    assert settings.effective_queue_capacity == 2


@pytest.mark.parametrize(
    "overrides",
    [
        {"hash_algorithm": "md5"},
        {"quarantine_dir_name": "nested/dir"},
        {"quarantine_dir_name": ".."},
        {"worker_count": 0},
        {"log_level": "chatty"},
        {"default_page_size": 500, "max_page_size": 100},
        {"database_path": "$HOME/index.db"},
        {"database_path": "~/index.db"},
    ],
)
def test_invalid_settings_raise_config_error(tmp_path: Path, overrides: dict[str, object]) -> None:
    values: dict[str, object] = {"database_path": (tmp_path / "index.db").as_posix()}
    values.update(overrides)
    with pytest.raises(ConfigError):
        load_settings(**values)


def test_scan_root_must_be_an_existing_directory(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_settings(scan_root=(tmp_path / "missing").as_posix(), database_path=(tmp_path / "i.db").as_posix())

    plain_file = tmp_path / "file.txt"
    plain_file.write_text("x")
    with pytest.raises(ConfigError):
        load_settings(scan_root=plain_file.as_posix(), database_path=(tmp_path / "i.db").as_posix())


def test_database_path_must_not_be_a_directory(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_settings(database_path=tmp_path.as_posix())

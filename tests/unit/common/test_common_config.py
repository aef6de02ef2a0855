"""Tests for common.config module."""

from pathlib import Path

import pytest

from common.config import ConfigSingleton, env_flag, env_number, read_config_file, resolve_config_path


class TestResolveConfigPath:
    def test_explicit_name(self, tmp_path: Path) -> None:
        (tmp_path / "dev.yaml").write_text("a: 1\n")
        assert resolve_config_path(tmp_path, "dev") == tmp_path / "dev.yaml"

    def test_env_var_then_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "prod.yaml").write_text("")
        (tmp_path / "stage.yaml").write_text("")
        monkeypatch.delenv("MY_CONFIG", raising=False)
        assert resolve_config_path(tmp_path, env_var="MY_CONFIG").name == "prod.yaml"
        monkeypatch.setenv("MY_CONFIG", "stage")
        assert resolve_config_path(tmp_path, env_var="MY_CONFIG").name == "stage.yaml"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            resolve_config_path(tmp_path, "nope")


class TestReadConfigFile:
    def test_loads_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("listener:\n  min_posts: 3\n")
        assert read_config_file(path) == {"listener": {"min_posts": 3}}

    def test_empty_file_is_empty_dict(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("")
        assert read_config_file(path) == {}

    def test_non_mapping_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            read_config_file(path)


class TestEnvHelpers:
    def test_env_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FLAG", raising=False)
        assert env_flag("FLAG") is True
        assert env_flag("FLAG", default=False) is False
        monkeypatch.setenv("FLAG", " False ")
        assert env_flag("FLAG") is False
        monkeypatch.setenv("FLAG", "0")
        assert env_flag("FLAG") is True

    def test_env_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NUM", raising=False)
        assert env_number("NUM", 10) == 10
        monkeypatch.setenv("NUM", "")
        assert env_number("NUM", 10) == 10
        monkeypatch.setenv("NUM", "2.5")
        assert env_number("NUM", 1.0, cast=float) == 2.5

    def test_env_number_invalid(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NUM", "abc")
        with pytest.raises(ValueError):
            env_number("NUM", 10)


class TestConfigSingleton:
    def test_lazy_load_once(self) -> None:
        calls = []

        def loader() -> dict:
            calls.append(1)
            return {"loaded": True}

        manager = ConfigSingleton(loader)
        assert manager.get() == {"loaded": True}
        manager.get()
        assert len(calls) == 1

    def test_no_loader_raises(self) -> None:
        with pytest.raises(RuntimeError):
            ConfigSingleton().get()

import argparse
from pathlib import Path

import pytest

from kraken_exporter import cli
from kraken_exporter.config import ExporterConfig


@pytest.fixture
def no_config_file(tmp_path: Path) -> Path:
    return tmp_path / "config.yaml"


def _args(config: Path, port=None, timeout=None, mode=None) -> argparse.Namespace:
    return argparse.Namespace(config=config, port=port, timeout=timeout, mode=mode)


@pytest.mark.parametrize("value, expected", [("9100", 9100), ("1", 1), ("65535", 65535)])
def test_parse_port_valid(value, expected):
    assert cli.parse_port(value) == expected


@pytest.mark.parametrize("value", ["0", "65536", "-1", "http", ""])
def test_parse_port_invalid_falls_back_with_warning(value, capsys):
    assert cli.parse_port(value) == 8080
    assert "setting to 8080" in capsys.readouterr().err


@pytest.mark.parametrize("value, expected", [("60", 60.0), ("1.5", 1.5)])
def test_parse_timeout_valid(value, expected):
    assert cli.parse_timeout(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["0", "-5", "soon", "nan", "inf"])
def test_parse_timeout_invalid_falls_back_with_warning(value, capsys):
    assert cli.parse_timeout(value) == 60.0
    assert "defaulting to 60" in capsys.readouterr().err


def test_environment_values_used(no_config_file):
    config = cli.resolve_config(
        _args(no_config_file),
        environ={"RUST_API_LISTEN_PORT": "9300", "RUST_API_TIMEOUT": "7"},
    )

    assert config.port == 9300
    assert config.timeout == 7.0


def test_command_line_overrides_environment(no_config_file):
    config = cli.resolve_config(
        _args(no_config_file, port="9400", timeout="3", mode="lazy"),
        environ={"RUST_API_LISTEN_PORT": "9300", "RUST_API_TIMEOUT": "7"},
    )

    assert config.port == 9400
    assert config.timeout == 3.0
    assert config.mode == "lazy"


def test_defaults_without_overrides(no_config_file):
    config = cli.resolve_config(_args(no_config_file), environ={})

    assert config.port == 8080
    assert config.timeout == 60.0


def test_main_parses_short_flags_and_runs(monkeypatch, no_config_file):
    captured = {}

    def fake_run(config: ExporterConfig) -> int:
        captured["config"] = config
        return 0

    monkeypatch.setattr(cli, "run", fake_run)
    monkeypatch.delenv("RUST_API_LISTEN_PORT", raising=False)
    monkeypatch.delenv("RUST_API_TIMEOUT", raising=False)

    exit_code = cli.main(["-p", "9500", "-t", "2", "-c", str(no_config_file)])

    assert exit_code == 0
    assert captured["config"].port == 9500
    assert captured["config"].timeout == 2.0


def test_main_propagates_run_exit_code(monkeypatch, no_config_file):
    monkeypatch.setattr(cli, "run", lambda config: 1)

    assert cli.main(["--config", str(no_config_file)]) == 1

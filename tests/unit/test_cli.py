"""Smoke tests for the command line entry point."""

import yaml

from blackbook.__main__ import main


def test_init_writes_config_template(tmp_path) -> None:
    data_dir = tmp_path / "data"

    assert main(["init", "--data-dir", str(data_dir)]) == 0

    config = yaml.safe_load((data_dir / "config.yaml").read_text())
    assert set(config) == {"feed", "betting", "ledger", "coingecko"}
    assert config["betting"]["permitted_durations"] == [60, 900]
    assert config["ledger"]["mode"] == "paper"


def test_init_keeps_existing_config(tmp_path) -> None:
    (tmp_path / "config.yaml").write_text("feed:\n  assets: [SOL]\n")

    assert main(["init", "--data-dir", str(tmp_path)]) == 0
    assert (tmp_path / "config.yaml").read_text() == "feed:\n  assets: [SOL]\n"


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out

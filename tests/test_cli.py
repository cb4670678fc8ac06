"""Tests for the site-autoenhance command-line interface."""

from __future__ import annotations

import json

import pytest
import yaml

from site_autoenhance import __version__
from site_autoenhance.cli import main
from site_autoenhance.infrastructure.config import MAINTENANCE_PLACEHOLDER


@pytest.fixture
def site(tmp_path, style_css: str, index_html: str):
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "style.css").write_text(style_css, encoding="utf-8")
    (tmp_path / "index.html").write_text(index_html, encoding="utf-8")
    return tmp_path


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


class TestBasics:
    def test_version(self, capsys) -> None:
        assert _exit_code(["--version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys) -> None:
        assert _exit_code([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_missing_config_file(self, tmp_path, capsys) -> None:
        code = _exit_code(["--config", str(tmp_path / "nope.yaml"), "status"])
        assert code == 1
        assert "Error" in capsys.readouterr().err


class TestRunAndHistory:
    def test_run_mutates_stylesheet(self, site, capsys) -> None:
        assert _exit_code(["--root", str(site), "--no-publish", "run"]) == 0
        assert "mutated" in capsys.readouterr().out

        entries = json.loads((site / "enhancement-log.json").read_text(encoding="utf-8"))
        assert len(entries) == 1
        assert entries[0]["artifact"] == "css/style.css"

    def test_history_json(self, site, capsys) -> None:
        _exit_code(["--root", str(site), "--no-publish", "run"])
        capsys.readouterr()

        assert _exit_code(["--root", str(site), "history", "--format", "json"]) == 0
        entries = json.loads(capsys.readouterr().out)
        assert [e["artifact"] for e in entries] == ["css/style.css"]

    def test_history_empty_table(self, site, capsys) -> None:
        assert _exit_code(["--root", str(site), "history"]) == 0
        assert "No enhancements recorded yet" in capsys.readouterr().out

    def test_start_with_max_cycles(self, site, capsys) -> None:
        argv = ["--root", str(site), "--no-publish", "start", "--interval", "0.01", "--max-cycles", "2"]
        assert _exit_code(argv) == 0
        assert "Ran 2 cycle(s)" in capsys.readouterr().out
        entries = json.loads((site / "enhancement-log.json").read_text(encoding="utf-8"))
        assert 1 <= len(entries) <= 2

    def test_config_file(self, site, capsys) -> None:
        config = site / "enhancer.yaml"
        config.write_text(
            yaml.safe_dump(
                {
                    "artifacts": [{"path": "index.html"}],
                    "categories": [{"name": "seo", "applies_to": ["markup"]}],
                    "publisher": {"kind": "none"},
                }
            ),
            encoding="utf-8",
        )
        assert _exit_code(["--config", str(config), "run"]) == 0
        assert '<meta name="description"' in (site / "index.html").read_text(encoding="utf-8")


class TestStatusAndMaintenance:
    def test_status(self, site, capsys) -> None:
        assert _exit_code(["--root", str(site), "status"]) == 0
        out = capsys.readouterr().out
        assert "normal" in out
        assert "0 / 5" in out

    def test_maintenance_round_trip(self, site, index_html: str, capsys) -> None:
        assert _exit_code(["--root", str(site), "--no-publish", "maintenance", "on"]) == 0
        assert (site / "index.html").read_text(encoding="utf-8") == MAINTENANCE_PLACEHOLDER
        assert (site / "index.backup.html").read_text(encoding="utf-8") == index_html

        assert _exit_code(["--root", str(site), "--no-publish", "maintenance", "on"]) == 0
        assert "already" in capsys.readouterr().out

        assert _exit_code(["--root", str(site), "--no-publish", "maintenance", "off"]) == 0
        assert (site / "index.html").read_text(encoding="utf-8") == index_html
        assert not (site / "index.backup.html").exists()

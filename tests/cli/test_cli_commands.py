"""Tests for the scrapegnome CLI commands.

The metadata provider is replaced through ``build_resolver`` so no command
touches the network; config and environment are isolated per test.
"""

import json
import logging
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from scrapegnome.__about__ import __version__
from scrapegnome.cli import commands
from scrapegnome.core.resolver import MediaResolver, ResolverConfig
from scrapegnome.metadata.settings import Settings
from tests.helpers.fakes import FakeProvider, season, tv

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("SCRAPEGNOME_NO_RICH", "1")
    monkeypatch.setenv("SCRAPEGNOME_QUEUE_POLL_INTERVAL", "0.01")
    monkeypatch.setenv("SCRAPEGNOME_QUEUE_RETRY_DELAY", "0.01")
    for var in ("TMDB_API_KEY", "TMDB_LANGUAGE", "USE_LLM", "SCRAPEGNOME_LANGUAGE"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        commands, "setup_logger", lambda *args: logging.getLogger("scrapegnome")
    )


@pytest.fixture
def built(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    """Replace build_resolver with one backed by FakeProvider."""
    captured: dict[str, Any] = {}
    provider = FakeProvider(
        tv_shows={"Show Name": [tv(100, "Show Name", 2019)]},
        seasons={(100, 1): season(1, "Pilot", "Second")},
    )

    def fake_build_resolver(
        settings: Settings, *, use_llm: bool, llm_model: str, language: str
    ) -> MediaResolver:
        captured.update(use_llm=use_llm, llm_model=llm_model, language=language)
        return MediaResolver(provider, ResolverConfig(language=language))

    monkeypatch.setattr(commands, "build_resolver", fake_build_resolver)
    captured["provider"] = provider
    return captured


def test_version() -> None:
    result = runner.invoke(commands.app, ["version"])
    assert result.exit_code == 0
    assert f"ScrapeGnome version: {__version__}" in result.stdout


def test_no_rich_flag_is_accepted() -> None:
    result = runner.invoke(commands.app, ["--no-rich", "version"])
    assert result.exit_code == 0
    assert "\x1b[" not in result.stdout


class TestIdentify:
    def test_json_output(self, built: dict[str, Any]) -> None:
        result = runner.invoke(
            commands.app, ["identify", "Show Name S01E02.mkv", "--json"]
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["kind"] == "tv"
        assert payload["external_id"] == 100
        assert payload["episode"] == 2
        assert payload["episode_title"] == "Second"

    def test_table_output(self, built: dict[str, Any]) -> None:
        result = runner.invoke(commands.app, ["identify", "Show Name", "--dir"])
        assert result.exit_code == 0, result.output
        assert "Show Name" in result.stdout
        assert "100" in result.stdout

    def test_unresolvable_name_fails(self, built: dict[str, Any]) -> None:
        result = runner.invoke(commands.app, ["identify", "Nothing S01E01.mkv"])
        assert result.exit_code == 1
        assert "Could not identify" in result.stdout

    def test_defaults_come_from_settings(self, built: dict[str, Any]) -> None:
        runner.invoke(commands.app, ["identify", "Show Name S01E01.mkv"])
        assert built["use_llm"] is False
        assert built["llm_model"] == "qwen2.5"
        assert built["language"] == "zh-CN"

    def test_env_and_cli_precedence(
        self, built: dict[str, Any], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SCRAPEGNOME_LANGUAGE", "ja-JP")
        runner.invoke(commands.app, ["identify", "Show Name S01E01.mkv"])
        assert built["language"] == "ja-JP"
        runner.invoke(
            commands.app,
            ["identify", "Show Name S01E01.mkv", "-l", "en-US", "--llm", "--llm-model", "llama3"],
        )
        assert built["language"] == "en-US"
        assert built["use_llm"] is True
        assert built["llm_model"] == "llama3"

    def test_missing_api_key(self) -> None:
        result = runner.invoke(commands.app, ["identify", "Show Name S01E01.mkv"])
        assert result.exit_code == 1
        assert "Missing required API key" in result.stdout


class TestScrape:
    @pytest.fixture
    def media_dir(self, tmp_path: Path) -> Path:
        show = tmp_path / "media" / "Show Name"
        show.mkdir(parents=True)
        (show / "Show Name S01E02.mkv").touch()
        (show / "notes.txt").touch()
        return show

    def test_json_report(self, built: dict[str, Any], media_dir: Path) -> None:
        result = runner.invoke(
            commands.app,
            ["scrape", str(media_dir / "Show Name S01E02.mkv"), str(media_dir), "--json"],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["stats"]["completed"] == 2
        file_task, dir_task = payload["tasks"]
        assert file_task["status"] == "completed"
        assert file_task["result"]["media"]["episode"] == 2
        assert dir_task["is_directory"] is True
        assert dir_task["result"]["media"]["episode"] is None

    def test_table_report_and_skipped_files(
        self, built: dict[str, Any], media_dir: Path
    ) -> None:
        result = runner.invoke(
            commands.app,
            ["scrape", str(media_dir / "Show Name S01E02.mkv"), str(media_dir / "notes.txt")],
        )
        assert result.exit_code == 0, result.output
        assert "Skipping non-video file" in result.stdout
        assert "Completed: 1" in result.stdout

    def test_failed_task_sets_exit_code(
        self, built: dict[str, Any], tmp_path: Path
    ) -> None:
        unknown = tmp_path / "Unknown Show S01E01.mkv"
        unknown.touch()
        result = runner.invoke(
            commands.app, ["scrape", str(unknown), "--max-retries", "1", "--json"]
        )
        assert result.exit_code == 1
        [task] = json.loads(result.stdout)["tasks"]
        assert task["status"] == "failed"
        assert task["retry_count"] == 1
        assert "Unknown Show" in task["last_error"]

    def test_nothing_to_scrape(self, built: dict[str, Any], media_dir: Path) -> None:
        result = runner.invoke(commands.app, ["scrape", str(media_dir / "notes.txt")])
        assert result.exit_code == 0
        assert "Nothing to scrape" in result.stdout

    def test_missing_path_is_rejected(self, built: dict[str, Any]) -> None:
        result = runner.invoke(commands.app, ["scrape", "does-not-exist.mkv"])
        assert result.exit_code != 0


def test_collect_tasks(tmp_path: Path) -> None:
    folder = tmp_path / "Show"
    folder.mkdir()
    video = tmp_path / "a.MKV"
    video.touch()
    other = tmp_path / "a.nfo"
    other.touch()
    tasks, skipped = commands.collect_tasks([folder, video, other])
    assert [(t.file_name, t.is_directory) for t in tasks] == [("Show", True), ("a.MKV", False)]
    assert skipped == [other]


def test_default_model_roundtrip(tmp_path: Path) -> None:
    result = runner.invoke(commands.app, ["default-model"])
    assert result.exit_code == 0
    assert "Default LLM model: qwen2.5" in result.stdout

    result = runner.invoke(commands.app, ["default-model", "llama3"])
    assert result.exit_code == 0
    assert (tmp_path / "config" / "scrapegnome" / "config.toml").exists()

    result = runner.invoke(commands.app, ["default-model"])
    assert "Default LLM model: llama3" in result.stdout

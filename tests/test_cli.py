# File: tests/test_cli.py
"""Tests for the CLI (`bizscout.cli`) using click.testing.CliRunner.
Cover the `crawl` and `config` commands, `--version` and error handling.
"""
import json
from datetime import datetime, timezone

import pytest
from click.testing import CliRunner

import bizscout.cli as cli_module
from bizscout.cli import cli
from bizscout.crawler.models import PageData
from bizscout.crawler.strategies import StrategyChain
from bizscout.engine import Engine
from conftest import BUSINESS_HTML, StubStrategy

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def cfg_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "runtime_mode: test\nfirecrawl_api_key: secret-key\nmin_request_interval: 0\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def patch_engine(monkeypatch):
    """Replace the engine factory with one backed by a stub strategy."""

    def install(*strategies):
        def fake_build(cfg, job_store):
            return Engine(cfg, chain=StrategyChain(strategies), job_store=job_store, clock=lambda: NOW)

        monkeypatch.setattr(cli_module, "build_engine", fake_build)

    return install


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "BizScout" in result.output


def test_show_config_masks_keys(cfg_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "CRITICAL", "--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["runtime_mode"] == "test"
    assert data["firecrawl_api_key"] == "***"
    assert "secret-key" not in result.output


def test_invalid_config_exits(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("runtime_mode: staging\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(bad), "config"])
    assert result.exit_code == 1
    assert "Failed to load configuration" in result.output


def test_crawl_stdout(cfg_file, patch_engine):
    url = "https://sunrisebakery.com/"
    patch_engine(StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]))

    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "CRITICAL", "--config", str(cfg_file), "crawl", url, "--pretty"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["success"] is True
    assert data["url"] == url
    assert data["data"]["name"] == "Sunrise Bakery"
    assert data["data"]["location"]["postalCode"] == "78701"


def test_crawl_json_file(cfg_file, patch_engine, tmp_path):
    url = "https://sunrisebakery.com/"
    patch_engine(StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]))
    out = tmp_path / "reports" / "result.json"

    runner = CliRunner()
    result = runner.invoke(
        cli, ["--log-level", "CRITICAL", "--config", str(cfg_file), "crawl", url, "--json", str(out)]
    )

    assert result.exit_code == 0
    assert "JSON report:" in result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["data"]["phone"] == "(512) 555-0199"


def test_crawl_reports_job_progress(cfg_file, patch_engine):
    url = "https://sunrisebakery.com/"
    patch_engine(StubStrategy("direct", [PageData(url=url, html=BUSINESS_HTML)]))

    runner = CliRunner()
    result = runner.invoke(
        cli, ["--log-level", "CRITICAL", "--config", str(cfg_file), "crawl", url, "--job-id", "42"]
    )

    assert result.exit_code == 0
    assert "Job 42: 100%" in result.output


def test_crawl_failure_exits_nonzero(cfg_file, patch_engine):
    patch_engine(StubStrategy("direct", error="HTTP 503"))

    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "CRITICAL", "--config", str(cfg_file), "crawl", "https://down.example/"])

    assert result.exit_code == 1
    assert '"success": false' in result.output
    assert "Crawl failed" in result.output


def test_crawl_invalid_url(cfg_file, patch_engine):
    strategy = StubStrategy("direct", [PageData(url="x", html=BUSINESS_HTML)])
    patch_engine(strategy)

    runner = CliRunner()
    result = runner.invoke(cli, ["--log-level", "CRITICAL", "--config", str(cfg_file), "crawl", "not-a-url"])

    assert result.exit_code == 1
    assert "Invalid URL" in result.output
    assert strategy.calls == []

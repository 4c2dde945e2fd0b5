"""Tests for the command-line front end."""

import io
import json
from unittest.mock import patch

import pytest
from rich.console import Console

from config.settings import Settings
from ui.cli import CLI, EXIT_ISSUES, EXIT_OK, EXIT_VAULT_FAIL, build_parser


@pytest.fixture
def settings(project_root):
    return Settings(project_root=project_root, check_git_history=False)


@pytest.fixture
def run(settings):
    def _run(*argv):
        buffer = io.StringIO()
        console = Console(file=buffer, width=200, color_system=None)
        code = CLI(settings=settings, console=console).run(build_parser().parse_args(list(argv)))
        return code, buffer.getvalue()

    return _run


@pytest.fixture
def saved(vault, sample_credentials):
    vault.save("shop-a", sample_credentials)


class TestAuditCommand:

    def test_text_report(self, run, saved):
        code, out = run("audit")
        assert code == EXIT_ISSUES
        assert "Security Audit Report" in out
        assert "shop-a" in out

    def test_clean_audit_exits_zero(self, run, saved, ignore_file):
        ignore_file.write_text("shops/credentials/\n")
        code, out = run("audit")
        assert code == EXIT_OK
        assert "No issues detected" in out

    def test_json_report(self, run, saved):
        code, out = run("audit", "--json")
        data = json.loads(out)
        assert {shop["shopId"] for shop in data["shops"]} == {"shop-a"}


class TestCredentialCommands:

    def test_token(self, run, saved):
        code, out = run("token", "shop-a", "production")
        assert code == EXIT_OK
        assert out.strip() == "prod-token-123"

    def test_token_missing_shop(self, run):
        code, _ = run("token", "shop-z", "staging")
        assert code == EXIT_ISSUES

    def test_show_masks_tokens(self, run, saved):
        code, out = run("show", "shop-a")
        assert code == EXIT_OK
        assert "prod-tok******" in out
        assert "prod-token-123" not in out

    def test_show_hostile_id(self, run):
        code, out = run("show", "../../etc/passwd")
        assert code == EXIT_VAULT_FAIL
        assert "invalid characters" in out

    def test_list(self, run, saved):
        code, out = run("list")
        assert code == EXIT_OK
        assert "shop-a" in out

    def test_save_prompts(self, run, vault):
        answers = ["Jane", "", "tkat_production_01", "tkat_staging_0002"]
        with patch("ui.cli.Prompt.ask", side_effect=answers):
            code, out = run("save", "shop-new")
        assert code == EXIT_OK
        assert vault.get_token("shop-new", "staging").value == "tkat_staging_0002"
        assert vault.load("shop-new").value.notes is None

    def test_save_rejects_short_token(self, run, vault):
        answers = ["Jane", "", "short", "tkat_staging_0002"]
        with patch("ui.cli.Prompt.ask", side_effect=answers):
            code, out = run("save", "shop-new")
        assert code == EXIT_VAULT_FAIL
        assert vault.load("shop-new").value is None

    def test_delete(self, run, saved, vault):
        assert run("delete", "shop-a")[0] == EXIT_OK
        assert vault.exists("shop-a").value is False
        assert run("delete", "shop-a")[0] == EXIT_ISSUES

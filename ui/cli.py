"""Command-line interface for the shop credential vault."""

from __future__ import annotations

import argparse
import json
import logging
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from config.settings import Settings, get_settings
from security.audit import SecurityAuditor
from security.errors import VaultError
from security.models import ENVIRONMENTS, PRODUCTION, STAGING, ShopCredentials, StoreCredential
from security.report import format_report
from security.validation import AUTH_METHODS, AUTH_THEME_ACCESS_APP, token_prefix_hint
from security.vault import CredentialVault

EXIT_OK         = 0
EXIT_ISSUES     = 1
EXIT_VAULT_FAIL = 2


class CLI:
    """Thin terminal front end: every command is one vault or auditor call."""

    def __init__(self, settings: Optional[Settings] = None, console: Optional[Console] = None):
        self.settings = settings or get_settings()
        self.console = console or Console(highlight=False)
        self.vault = CredentialVault(
            self.settings.credentials_path,
            logger=logging.getLogger("multishop.security.vault"),
        )

    def _raw(self, text: str) -> None:
        """Print verbatim: no markup, emoji codes, highlighting or wrapping."""
        self.console.print(text, markup=False, emoji=False, highlight=False, soft_wrap=True)

    def run(self, args: argparse.Namespace) -> int:
        handler = getattr(self, f"_cmd_{args.command}")
        try:
            return handler(args)
        except VaultError as e:
            self.console.print(f"[bold red]Error:[/] {escape(str(e))}")
            return EXIT_VAULT_FAIL

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _cmd_audit(self, args: argparse.Namespace) -> int:
        auditor = SecurityAuditor(
            rotation_age_days=self.settings.rotation_age_days,
            check_git_history=self.settings.check_git_history,
            logger=logging.getLogger("multishop.security.audit"),
        )
        report = auditor.run(self.settings.credentials_path, self.settings.ignore_file_path, fix=args.fix)
        if args.json:
            self._raw(report.to_json())
        else:
            self._raw(format_report(report))
        return EXIT_ISSUES if report.has_errors() else EXIT_OK

    def _cmd_list(self, args: argparse.Namespace) -> int:
        shop_ids = self.vault.list_shop_ids().unwrap()
        if not shop_ids:
            self.console.print("[yellow]No shops configured.[/]")
        for shop_id in shop_ids:
            self._raw(shop_id)
        return EXIT_OK

    def _cmd_show(self, args: argparse.Namespace) -> int:
        loaded = self.vault.load(args.shop)
        if loaded.value is None:
            loaded.unwrap()  # raises unless the shop simply has no file
            self.console.print(f"[yellow]No credentials saved for shop '{args.shop}'.[/]")
            return EXIT_ISSUES
        masked = self.vault.sanitize_for_display(loaded.value)
        self._raw(json.dumps(masked.to_dict(), indent=2))
        if not loaded.ok:
            self.console.print(f"[bold red]Warning:[/] {escape(loaded.error.message)}")
            return EXIT_VAULT_FAIL
        return EXIT_OK

    def _cmd_token(self, args: argparse.Namespace) -> int:
        token = self.vault.get_token(args.shop, args.environment).unwrap()
        if token is None:
            self.console.print(f"[yellow]No {args.environment} token saved for shop '{args.shop}'.[/]")
            return EXIT_ISSUES
        self._raw(token)
        return EXIT_OK

    def _cmd_save(self, args: argparse.Namespace) -> int:
        developer = Prompt.ask("Developer name", console=self.console)
        notes = Prompt.ask("Notes (optional)", default="", console=self.console)
        tokens = {}
        for env in ENVIRONMENTS:
            tokens[env] = Prompt.ask(f"{env.capitalize()} theme token", password=True, console=self.console)
            hint = token_prefix_hint(tokens[env], args.auth_method)
            if hint:
                self.console.print(f"[dim]Note: {hint}[/]")

        credentials = ShopCredentials(
            developer=developer.strip(),
            production=StoreCredential(tokens[PRODUCTION].strip()),
            staging=StoreCredential(tokens[STAGING].strip()),
            notes=notes.strip() or None,
        )
        self.vault.save(args.shop, credentials, auth_method=args.auth_method).unwrap()
        self.console.print(f"[green]Saved credentials for shop '{args.shop}'.[/]")
        return EXIT_OK

    def _cmd_delete(self, args: argparse.Namespace) -> int:
        if self.vault.delete(args.shop).unwrap():
            self.console.print(f"[green]Deleted credentials for shop '{args.shop}'.[/]")
            return EXIT_OK
        self.console.print(f"[yellow]No credentials saved for shop '{args.shop}'.[/]")
        return EXIT_ISSUES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multi-shop-vault",
        description="Per-shop theme token vault and security audit.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    audit = sub.add_parser("audit", help="Audit the credentials directory.")
    audit.add_argument("--fix",  action="store_true", help="chmod files and directory where possible.")
    audit.add_argument("--json", action="store_true", help="Output the report as JSON.")

    sub.add_parser("list", help="List shops with saved credentials.")

    show = sub.add_parser("show", help="Show a shop's credentials with tokens masked.")
    show.add_argument("shop")

    token = sub.add_parser("token", help="Print one environment's theme token.")
    token.add_argument("shop")
    token.add_argument("environment", choices=ENVIRONMENTS)

    save = sub.add_parser("save", help="Prompt for and save a shop's credentials.")
    save.add_argument("shop")
    save.add_argument("--auth-method", choices=AUTH_METHODS, default=AUTH_THEME_ACCESS_APP)

    delete = sub.add_parser("delete", help="Delete a shop's credentials.")
    delete.add_argument("shop")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return CLI().run(args)

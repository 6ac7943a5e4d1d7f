"""Console output for the fortify-setup CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from fortify_setup.actions import CacheStatus
    from fortify_setup.config import PersistedConfig
    from fortify_setup.types import BootstrapResult


class ConsoleOutput:
    """Formats messages and tables for the CLI.

    Errors, warnings and hints go to stderr so that ``env`` output on stdout
    can be sourced or piped unchanged.
    """

    def __init__(self, console: Console | None = None, err_console: Console | None = None) -> None:
        """Initialize console output.

        Args:
            console: Console for regular output. Defaults to stdout.
            err_console: Console for diagnostics. Defaults to stderr.
        """
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def show_success(self, message: str) -> None:
        """Show success message.

        Args:
            message: Success message.
        """
        self.console.print(f"[green]✓[/green] {message}")

    def show_error(self, message: str) -> None:
        """Show error message.

        Args:
            message: Error message.
        """
        self.err_console.print(f"[red]✗[/red] {message}")

    def show_warning(self, message: str) -> None:
        """Show warning message.

        Args:
            message: Warning message.
        """
        self.err_console.print(f"[yellow]![/yellow] {message}")

    def show_info(self, message: str) -> None:
        """Show info message.

        Args:
            message: Info message.
        """
        self.console.print(f"[blue]i[/blue] {message}")

    def show_raw(self, text: str, err: bool = False) -> None:
        """Print text exactly as given: no markup, highlighting or wrapping."""
        console = self.err_console if err else self.console
        console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True, end="")

    def show_config(self, config: PersistedConfig, title: str = "Configuration") -> None:
        """Display the persisted configuration.

        Args:
            config: Configuration to display.
            title: Table title.
        """
        table = Table(title=title, show_header=False)
        table.add_column("Setting", style="cyan")
        table.add_column("Value")

        if config.fcli_url:
            table.add_row("fcli-url", config.fcli_url)
        if config.fcli_rsa_sha256_url:
            table.add_row("fcli-rsa-sha256-url", config.fcli_rsa_sha256_url)
        table.add_row("verify-signature", str(config.verify_signature).lower())
        if config.fcli_path:
            table.add_row("fcli-path", config.fcli_path)

        self.console.print(table)
        self.console.print(
            "[dim]Environment variables (FCLI_URL, FCLI_PATH, etc.) override these settings.[/dim]"
        )

    def show_bootstrap(self, result: BootstrapResult) -> None:
        """Show which fcli is being used."""
        self.err_console.print(
            f"[green]✓[/green] Using fcli {result.version} "
            f"(source: {result.source}, location: {result.binary_path})"
        )

    def show_cache_status(self, status: CacheStatus) -> None:
        """Display the outcome of a cache action.

        Args:
            status: Result of manage_cache.
        """
        if status.action == "clear":
            if status.removed:
                self.show_success("Cache cleared")
            else:
                self.show_info("Cache is already empty")
            return

        if status.binary_path is None:
            self.show_info("No cached fcli found")
            self.show_info("Run 'fortify-setup install ...' to create the cache.")
            return

        if status.action == "refresh":
            self.show_success(f"Cached fcli refreshed to {status.version}")
            self.console.print(f"  Path: {status.binary_path}")
            return

        table = Table(title="Cached fcli", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Version", status.version or "unknown")
        table.add_row("Path", str(status.binary_path))
        if status.url:
            table.add_row("Downloaded from", status.url)
        if status.downloaded_at:
            table.add_row("Downloaded at", status.downloaded_at.strftime("%Y-%m-%d %H:%M"))
        self.console.print(table)

    def show_troubleshooting(self, context: str, hints: list[str]) -> None:
        """Show a failure headline followed by troubleshooting hints.

        Args:
            context: What failed.
            hints: Suggestions, one per line.
        """
        self.show_error(context)
        self.err_console.print("Troubleshooting suggestions:")
        for hint in hints:
            self.err_console.print(f"  • {hint}")

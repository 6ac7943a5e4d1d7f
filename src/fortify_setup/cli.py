"""CLI commands using Typer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Annotated, TypeVar

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from fortify_setup import __version__
from fortify_setup.actions import (
    INIT_SUBCOMMAND,
    bootstrap_fcli,
    invoke_env,
    manage_cache,
    reset_configuration,
    troubleshooting_hints,
)
from fortify_setup.config import configure
from fortify_setup.console import ConsoleOutput
from fortify_setup.context import create_context
from fortify_setup.errors import FortifySetupError

if TYPE_CHECKING:
    from fortify_setup.context import AppContext
    from fortify_setup.types import BootstrapResult, InvocationResult

app = typer.Typer(
    name="fortify-setup",
    help="Bootstrap fcli and set up Fortify tools in CI/CD pipelines",
    no_args_is_help=True,
)

cache_app = typer.Typer(help="Manage the downloaded fcli cache")

app.add_typer(cache_app, name="cache")

output = ConsoleOutput()

# Exit code for failures before fcli is invoked
BOOTSTRAP_FAILURE_EXIT_CODE = 3

PASSTHROUGH_SETTINGS = {"allow_extra_args": True, "ignore_unknown_options": True}

T = TypeVar("T")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        output.console.print(f"fortify-setup v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Show debug logging on stderr")
    ] = False,
) -> None:
    """Bootstrap fcli and set up Fortify tools in CI/CD pipelines."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _guarded(operation: Callable[[], T]) -> T:
    """Run an operation, turning setup errors into the bootstrap exit code."""
    try:
        return operation()
    except FortifySetupError as e:
        output.show_error(str(e))
        raise typer.Exit(BOOTSTRAP_FAILURE_EXIT_CODE) from e


# ============================================================================
# Config Command
# ============================================================================


@app.command("config")
def config_command(
    fcli_url: Annotated[
        str | None,
        typer.Option("--fcli-url", help="Full URL to the platform-specific fcli archive"),
    ] = None,
    fcli_rsa_sha256_url: Annotated[
        str | None,
        typer.Option(
            "--fcli-rsa-sha256-url",
            help="Full URL to the RSA SHA256 signature (default: <fcli-url>.rsa_sha256)",
        ),
    ] = None,
    fcli_path: Annotated[
        str | None,
        typer.Option("--fcli-path", help="Use a preinstalled fcli binary (3.14.0 or later)"),
    ] = None,
    verify_signature: Annotated[
        bool | None,
        typer.Option(
            "--verify-signature/--no-verify-signature",
            help="Verify RSA signatures on downloads",
        ),
    ] = None,
    reset: Annotated[bool, typer.Option("--reset", help="Reset configuration to defaults")] = False,
    show: Annotated[bool, typer.Option("--show", help="Display current configuration")] = False,
    _context=None,
) -> None:
    """Configure fcli bootstrap settings.

    Specifying any setting resets all others to their defaults, so only one
    download or path method is active at a time.
    """
    ctx = _context or create_context()
    settings = (fcli_url, fcli_rsa_sha256_url, fcli_path, verify_signature)

    if show or (not reset and all(value is None for value in settings)):
        output.show_config(ctx.store.load(), title="Current configuration")
        return

    if reset:
        _guarded(lambda: reset_configuration(ctx))
        output.show_success("Configuration reset to defaults")
        return

    saved = _guarded(
        lambda: configure(
            ctx.store,
            fcli_url=fcli_url,
            fcli_rsa_sha256_url=fcli_rsa_sha256_url,
            fcli_path=fcli_path,
            verify_signature=verify_signature,
        )
    )
    output.show_success("Configuration saved")
    output.show_config(saved, title="Current settings")


# ============================================================================
# Tool Env Commands
# ============================================================================


def _bootstrap(ctx: AppContext) -> BootstrapResult:
    """Resolve fcli, showing a spinner while it may be downloading."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=output.err_console,
        transient=True,
    ) as progress:
        progress.add_task("Bootstrapping fcli...", total=None)
        return _guarded(lambda: bootstrap_fcli(ctx))


def _report_failure(result: InvocationResult, context: str) -> None:
    """Show captured error output and troubleshooting hints."""
    if result.error_output:
        output.show_raw(result.error_output, err=True)
    source = result.bootstrap.source if result.bootstrap else None
    output.show_troubleshooting(
        f"{context} failed with exit code {result.exit_code}",
        troubleshooting_hints(source),
    )


@app.command("install", context_settings=PASSTHROUGH_SETTINGS)
def install(
    args: Annotated[
        list[str] | None,
        typer.Argument(help="Options passed to fcli tool env init, e.g. --tools=sc-client"),
    ] = None,
    _context=None,
) -> None:
    """Install and register Fortify tools (fcli tool env init)."""
    ctx = _context or create_context()
    bootstrap = _bootstrap(ctx)
    output.show_bootstrap(bootstrap)

    result = invoke_env(ctx, bootstrap, [INIT_SUBCOMMAND, *(args or [])], verbose=True)
    if not result.success:
        _report_failure(result, "fcli tool env init")
        raise typer.Exit(result.exit_code)


@app.command("env", context_settings=PASSTHROUGH_SETTINGS)
def env(
    args: Annotated[
        list[str],
        typer.Argument(help="Output type (shell, github, ado, gitlab, ...) and fcli options"),
    ],
    _context=None,
) -> None:
    """Generate environment variables for installed Fortify tools."""
    ctx = _context or create_context()
    bootstrap = _bootstrap(ctx)

    result = invoke_env(ctx, bootstrap, list(args))
    if not result.success:
        _report_failure(result, "fcli tool env")
        raise typer.Exit(result.exit_code)
    output.show_raw(result.output or "")


# ============================================================================
# Cache Commands
# ============================================================================


@cache_app.command("refresh")
def cache_refresh(
    _context=None,
) -> None:
    """Re-download fcli into the cache."""
    ctx = _context or create_context()
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=output.err_console,
        transient=True,
    ) as progress:
        progress.add_task("Refreshing cached fcli...", total=None)
        status = _guarded(lambda: manage_cache(ctx, "refresh"))
    output.show_cache_status(status)


@cache_app.command("clear")
def cache_clear(
    _context=None,
) -> None:
    """Remove the downloaded fcli."""
    ctx = _context or create_context()
    output.show_cache_status(manage_cache(ctx, "clear"))


@cache_app.command("info")
def cache_info(
    _context=None,
) -> None:
    """Show information about the cached fcli."""
    ctx = _context or create_context()
    output.show_cache_status(manage_cache(ctx, "info"))


if __name__ == "__main__":
    app()

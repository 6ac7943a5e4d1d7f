"""Programmatic API for running fcli ``tool env`` commands.

``run_env`` bootstraps fcli when needed (reusing a cached download when the
configuration still matches) and then runs either the ``init`` subcommand,
which installs and registers tools, or a format subcommand (``shell``,
``github``, ``ado``, ...), which prints environment variable definitions.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from fortify_setup.bootstrap import probe_version
from fortify_setup.config import MIN_FCLI_VERSION, ConfigOptions
from fortify_setup.context import AppContext
from fortify_setup.types import BootstrapResult, BootstrapSource, InvocationResult

logger = logging.getLogger(__name__)

INIT_SUBCOMMAND = "init"
TOOL_ENV_COMMAND = ("-Xwrapped", "tool", "env")
CACHE_ACTIONS = ("refresh", "clear", "info")


@dataclass(frozen=True)
class CacheStatus:
    """Outcome of a cache management action.

    Attributes:
        action: Action that was run.
        binary_path: Cached executable, if any.
        version: Version of the cached executable.
        url: URL the cached executable was downloaded from.
        downloaded_at: Download timestamp.
        removed: True if ``clear`` removed something.
    """

    action: str
    binary_path: Path | None = None
    version: str | None = None
    url: str | None = None
    downloaded_at: datetime | None = None
    removed: bool = False


def is_init(args: Sequence[str]) -> bool:
    """Check whether the arguments select the ``init`` subcommand."""
    return bool(args) and args[0] == INIT_SUBCOMMAND


def build_env_argv(binary_path: Path, args: Sequence[str]) -> list[str]:
    """Build the fcli argument vector for a ``tool env`` subcommand.

    ``init`` receives ``--self=<path>`` so fcli can register the executable
    that is running it.

    Args:
        binary_path: Resolved fcli executable.
        args: Subcommand followed by user-supplied arguments.

    Returns:
        Argument vector, one element per argument.
    """
    if is_init(args):
        return [*TOOL_ENV_COMMAND, INIT_SUBCOMMAND, f"--self={binary_path}", *args[1:]]
    return [*TOOL_ENV_COMMAND, *args]


def bootstrap_fcli(ctx: AppContext, options: ConfigOptions | None = None) -> BootstrapResult:
    """Resolve fcli for the current configuration.

    Args:
        ctx: Application context.
        options: Call-time configuration overrides.

    Returns:
        BootstrapResult for the fcli to run.

    Raises:
        FortifySetupError: If configuration or bootstrap fails.
    """
    bootstrap = ctx.bootstrapper.bootstrap(ctx.effective_config(options))
    logger.debug(
        "Using fcli %s (source: %s, location: %s)",
        bootstrap.version,
        bootstrap.source,
        bootstrap.binary_path,
    )
    return bootstrap


def invoke_env(
    ctx: AppContext,
    bootstrap: BootstrapResult,
    args: Sequence[str],
    verbose: bool = False,
) -> InvocationResult:
    """Run ``fcli tool env`` using an already resolved fcli.

    Args:
        ctx: Application context.
        bootstrap: Resolved fcli.
        args: Subcommand (``init`` or an output format) and its arguments.
        verbose: Relay fcli output for ``init`` instead of capturing it.

    Returns:
        InvocationResult carrying the bootstrap result.
    """
    return ctx.invoker.invoke(
        bootstrap.binary_path,
        build_env_argv(bootstrap.binary_path, args),
        relay_output=verbose and is_init(args),
        bootstrap=bootstrap,
    )


def run_env(
    ctx: AppContext,
    args: Sequence[str],
    options: ConfigOptions | None = None,
    verbose: bool = False,
) -> InvocationResult:
    """Run ``fcli tool env`` with the given arguments.

    Args:
        ctx: Application context.
        args: Subcommand (``init`` or an output format) and its arguments.
        options: Call-time configuration overrides.
        verbose: Relay fcli output for ``init`` instead of capturing it.

    Returns:
        InvocationResult carrying the bootstrap result.

    Raises:
        FortifySetupError: If configuration or bootstrap fails.
    """
    return invoke_env(ctx, bootstrap_fcli(ctx, options), args, verbose)


def troubleshooting_hints(source: BootstrapSource | None) -> list[str]:
    """Suggestions shown when an fcli command fails.

    A user-supplied fcli that fails is most likely too old, so those sources
    get an additional compatibility hint.

    Args:
        source: Source of the fcli that failed.

    Returns:
        Hint lines, most general first.
    """
    hints = ["Verify your options are correct"]
    if source is not None and source.is_user_supplied:
        hints.append(
            f"Your custom fcli may be too old or incompatible "
            f"(requires fcli {MIN_FCLI_VERSION} or later)"
        )
        hints.append("Try using the default version: fortify-setup config --reset")
    return hints


def reset_configuration(ctx: AppContext) -> bool:
    """Reset configuration to defaults and drop the cached download.

    Returns:
        True if a stored configuration was removed.
    """
    removed = ctx.store.reset()
    ctx.cache.clear()
    return removed


def _refresh(ctx: AppContext, options: ConfigOptions | None) -> CacheStatus:
    result: BootstrapResult = ctx.bootstrapper.refresh(ctx.effective_config(options))
    return CacheStatus(action="refresh", binary_path=result.binary_path, version=result.version)


def _clear(ctx: AppContext) -> CacheStatus:
    return CacheStatus(action="clear", removed=ctx.cache.clear())


def _info(ctx: AppContext) -> CacheStatus:
    binary_path = ctx.cache.cached_binary()
    if binary_path is None:
        return CacheStatus(action="info")

    metadata = ctx.cache.load_metadata()
    version = probe_version(binary_path) or (metadata.version if metadata else None)
    return CacheStatus(
        action="info",
        binary_path=binary_path,
        version=version,
        url=metadata.url if metadata else None,
        downloaded_at=metadata.downloaded_at if metadata else None,
    )


def manage_cache(
    ctx: AppContext, action: str, options: ConfigOptions | None = None
) -> CacheStatus:
    """Manage the downloaded fcli cache.

    Args:
        ctx: Application context.
        action: ``refresh`` (re-download), ``clear`` or ``info``.
        options: Call-time configuration overrides for ``refresh``.

    Returns:
        CacheStatus describing the outcome.

    Raises:
        ValueError: If the action is unknown.
    """
    if action == "refresh":
        return _refresh(ctx, options)
    if action == "clear":
        return _clear(ctx)
    if action == "info":
        return _info(ctx)
    raise ValueError(
        f"Unknown cache action: {action}. Valid actions: {', '.join(CACHE_ACTIONS)}"
    )

"""Application context for dependency injection.

This module separates object creation from object use, enabling testability
and reducing coupling in CLI commands and library entry points.

Services are typed using Protocols rather than concrete implementations, so
tests can inject an in-memory config store, a fake downloader or a recording
invoker without touching the file system or the network.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from fortify_setup.config import ConfigOptions, EffectiveConfig, resolve_config
from fortify_setup.protocols import BinaryResolver, ConfigStore, ProcessInvoker

if TYPE_CHECKING:
    from fortify_setup.cache import BinaryCache


def _default_invoker() -> ProcessInvoker:
    """Create the default subprocess invoker."""
    from fortify_setup.invoke import ActionInvoker
    return ActionInvoker.create_default()


@dataclass
class AppContext:
    """Container for application dependencies.

    Provides a single injection point for all services used by the actions
    and CLI commands.
    """

    store: ConfigStore
    cache: BinaryCache
    bootstrapper: BinaryResolver
    invoker: ProcessInvoker = field(default_factory=_default_invoker)
    environ: Mapping[str, str] | None = None

    def effective_config(self, options: ConfigOptions | None = None) -> EffectiveConfig:
        """Resolve the effective configuration for one call.

        Args:
            options: Call-time overrides.

        Returns:
            Merged EffectiveConfig.
        """
        return resolve_config(self.store.load(), options, self.environ)


def create_context(
    config_dir: Path | None = None,
    cache_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppContext:
    """Factory for application dependencies.

    Creates all services with proper wiring. Use this in production code.
    For tests, construct AppContext directly with test doubles.

    Args:
        config_dir: Override config directory (for testing).
        cache_dir: Override binary cache directory (for testing).
        environ: Override the process environment (for testing). Used for
            both config resolution and the preinstalled fcli lookup.

    Returns:
        Configured AppContext with all dependencies.
    """
    from fortify_setup.bootstrap import Bootstrapper
    from fortify_setup.cache import BinaryCache
    from fortify_setup.config import JsonConfigStore
    from fortify_setup.invoke import ActionInvoker

    store = JsonConfigStore.create(config_dir) if config_dir else JsonConfigStore.create_default()
    cache = BinaryCache.create(cache_dir) if cache_dir else BinaryCache.create_default()
    bootstrapper = Bootstrapper.create(cache, environ=environ)

    return AppContext(
        store=store,
        cache=cache,
        bootstrapper=bootstrapper,
        invoker=ActionInvoker.create_default(),
        environ=environ,
    )

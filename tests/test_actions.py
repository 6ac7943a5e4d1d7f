"""Tests for the programmatic tool env API."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from fortify_setup.actions import (
    build_env_argv,
    is_init,
    manage_cache,
    reset_configuration,
    run_env,
    troubleshooting_hints,
)
from fortify_setup.cache import BinaryCache, CacheMetadata
from fortify_setup.config import ConfigOptions, InMemoryConfigStore, PersistedConfig
from fortify_setup.context import AppContext
from fortify_setup.errors import ConfigurationError
from fortify_setup.types import BootstrapResult, BootstrapSource, InvocationResult

FCLI = Path("/cache/bin/fcli")


@pytest.fixture
def bootstrap_result() -> BootstrapResult:
    return BootstrapResult(FCLI, "v3.14.1", BootstrapSource.DOWNLOADED)


@pytest.fixture
def ctx(binary_cache: BinaryCache, bootstrap_result: BootstrapResult) -> AppContext:
    """Context with a stubbed bootstrapper and invoker."""
    bootstrapper = MagicMock()
    bootstrapper.bootstrap.return_value = bootstrap_result
    bootstrapper.refresh.return_value = bootstrap_result
    invoker = MagicMock()
    invoker.invoke.return_value = InvocationResult(exit_code=0, output="", bootstrap=bootstrap_result)
    return AppContext(
        store=InMemoryConfigStore(),
        cache=binary_cache,
        bootstrapper=bootstrapper,
        invoker=invoker,
        environ={},
    )


class TestBuildEnvArgv:
    """Tests for argument vector construction."""

    def test_init_gets_self_path(self) -> None:
        argv = build_env_argv(FCLI, ["init", "--tools=sc-client"])
        assert argv == [
            "-Xwrapped",
            "tool",
            "env",
            "init",
            f"--self={FCLI}",
            "--tools=sc-client",
        ]

    def test_format_subcommand(self) -> None:
        argv = build_env_argv(FCLI, ["github", "--tools=sc-client"])
        assert argv == ["-Xwrapped", "tool", "env", "github", "--tools=sc-client"]

    def test_is_init(self) -> None:
        assert is_init(["init"]) is True
        assert is_init(["shell"]) is False
        assert is_init([]) is False


class TestRunEnv:
    """Tests for run_env."""

    def test_captures_by_default(self, ctx: AppContext, bootstrap_result: BootstrapResult) -> None:
        result = run_env(ctx, ["shell"])

        assert result.success
        ctx.invoker.invoke.assert_called_once_with(
            FCLI,
            ["-Xwrapped", "tool", "env", "shell"],
            relay_output=False,
            bootstrap=bootstrap_result,
        )

    def test_verbose_init_relays_output(self, ctx: AppContext) -> None:
        run_env(ctx, ["init"], verbose=True)
        assert ctx.invoker.invoke.call_args.kwargs["relay_output"] is True

    def test_verbose_format_still_captures(self, ctx: AppContext) -> None:
        run_env(ctx, ["github"], verbose=True)
        assert ctx.invoker.invoke.call_args.kwargs["relay_output"] is False

    def test_options_reach_bootstrapper(self, ctx: AppContext) -> None:
        run_env(ctx, ["shell"], ConfigOptions(fcli_url="https://mirror.example.com/fcli-linux.tgz"))

        config = ctx.bootstrapper.bootstrap.call_args.args[0]
        assert config.binary_url == "https://mirror.example.com/fcli-linux.tgz"

    def test_invalid_options_fail_before_bootstrap(self, ctx: AppContext) -> None:
        with pytest.raises(ConfigurationError):
            run_env(ctx, ["shell"], ConfigOptions(fcli_url="bogus"))

        ctx.bootstrapper.bootstrap.assert_not_called()
        ctx.invoker.invoke.assert_not_called()

    def test_nonzero_exit_returned(self, ctx: AppContext) -> None:
        ctx.invoker.invoke.return_value = InvocationResult(exit_code=4, error_output="bad")

        result = run_env(ctx, ["shell"])

        assert result.exit_code == 4


class TestTroubleshootingHints:
    """Tests for troubleshooting_hints."""

    def test_downloaded_fcli(self) -> None:
        assert troubleshooting_hints(BootstrapSource.DOWNLOADED) == ["Verify your options are correct"]

    @pytest.mark.parametrize("source", [BootstrapSource.CONFIGURED, BootstrapSource.PREINSTALLED])
    def test_user_supplied_fcli(self, source: BootstrapSource) -> None:
        hints = troubleshooting_hints(source)
        assert any("3.14.0" in hint for hint in hints)
        assert any("config --reset" in hint for hint in hints)


class TestResetConfiguration:
    """Tests for reset_configuration."""

    def test_clears_store_and_cache(self, ctx: AppContext) -> None:
        ctx.store.save(PersistedConfig(fcli_path="/opt/fcli/bin/fcli"))
        ctx.cache.ensure_cache_dir()

        assert reset_configuration(ctx) is True
        assert ctx.store.load() == PersistedConfig()
        assert not ctx.cache.cache_dir.exists()


class TestManageCache:
    """Tests for manage_cache."""

    def test_refresh(self, ctx: AppContext) -> None:
        status = manage_cache(ctx, "refresh")

        assert status.action == "refresh"
        assert status.binary_path == FCLI
        assert status.version == "v3.14.1"
        ctx.bootstrapper.refresh.assert_called_once()

    def test_clear_empty(self, ctx: AppContext) -> None:
        status = manage_cache(ctx, "clear")
        assert status.removed is False

    def test_info_empty(self, ctx: AppContext) -> None:
        status = manage_cache(ctx, "info")
        assert status.binary_path is None

    def test_info_populated(self, ctx: AppContext) -> None:
        staging = ctx.cache.staging_dir()
        (staging / "fcli").write_text("not runnable")
        ctx.cache.install(
            staging,
            CacheMetadata(url="https://example.com/fcli-linux.tgz", version="v3.14.1", config_hash="x"),
        )

        status = manage_cache(ctx, "info")

        assert status.binary_path == ctx.cache.binary_path
        assert status.version == "v3.14.1"
        assert status.url == "https://example.com/fcli-linux.tgz"
        assert status.downloaded_at is not None

    def test_unknown_action(self, ctx: AppContext) -> None:
        with pytest.raises(ValueError, match="Unknown cache action"):
            manage_cache(ctx, "purge")

"""Tests for BotLifecycle, signal wiring and the process entry point."""

import asyncio
import signal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import chatbridge.__main__ as entry
from chatbridge.commands import COMMANDS, CommandRegistry, RegistrationError
from chatbridge.dispatcher import InteractionDispatcher
from chatbridge.domain.models import CommandDefinition
from chatbridge.lifecycle import BotLifecycle, LifecycleState, install_signal_handlers
from chatbridge.ports.outbound import GatewayConnectionError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.open = AsyncMock()
    gateway.close = AsyncMock()
    gateway.create_command = AsyncMock(side_effect=lambda d, guild_id: f"id-{d.name}")
    gateway.delete_command = AsyncMock()
    return gateway


def _make_lifecycle(gateway=None, definitions=COMMANDS) -> BotLifecycle:
    completion = MagicMock()
    completion.close = AsyncMock()
    return BotLifecycle(
        gateway or _make_gateway(),
        CommandRegistry(definitions),
        InteractionDispatcher(completion),
    )


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

class TestStart:
    @pytest.mark.asyncio
    async def test_start_reaches_serving(self):
        lifecycle = _make_lifecycle()
        assert lifecycle.state == LifecycleState.UNAUTHENTICATED

        await lifecycle.start()

        assert lifecycle.state == LifecycleState.SERVING
        lifecycle.gateway.open.assert_awaited_once()
        assert lifecycle.registry.registered == ["chat"]

    @pytest.mark.asyncio
    async def test_connection_failure_propagates(self):
        gateway = _make_gateway()
        gateway.open.side_effect = GatewayConnectionError("Cannot open the session")
        lifecycle = _make_lifecycle(gateway)

        with pytest.raises(GatewayConnectionError):
            await lifecycle.start()

        assert lifecycle.state == LifecycleState.UNAUTHENTICATED
        gateway.create_command.assert_not_called()

    @pytest.mark.asyncio
    async def test_registration_failure_closes_gateway(self):
        gateway = _make_gateway()
        gateway.create_command.side_effect = RuntimeError("403")
        lifecycle = _make_lifecycle(gateway)

        with pytest.raises(RegistrationError):
            await lifecycle.start()

        gateway.close.assert_awaited_once()
        assert lifecycle.state == LifecycleState.CLOSED

    @pytest.mark.asyncio
    async def test_partial_registration_is_rolled_back(self):
        gateway = _make_gateway()

        def create(d, guild_id):
            if d.name == "chat":
                raise RuntimeError("403 Missing Access")
            return f"id-{d.name}"

        gateway.create_command.side_effect = create
        definitions = [CommandDefinition(name="imagine", description="x")] + list(COMMANDS)
        lifecycle = _make_lifecycle(gateway, definitions=definitions)
        lifecycle.dispatcher.validate = MagicMock()

        with pytest.raises(RegistrationError, match="'chat'"):
            await lifecycle.start()

        gateway.delete_command.assert_awaited_once_with("id-imagine", None)
        gateway.close.assert_awaited_once()
        assert lifecycle.registry.registered == []

    @pytest.mark.asyncio
    async def test_unhandled_definition_fails_before_connecting(self):
        definitions = list(COMMANDS) + [CommandDefinition(name="imagine", description="x")]
        lifecycle = _make_lifecycle(definitions=definitions)

        with pytest.raises(RegistrationError, match="imagine"):
            await lifecycle.start()

        lifecycle.gateway.open.assert_not_called()


# ---------------------------------------------------------------------------
# Shutdown
# ---------------------------------------------------------------------------

class TestShutdown:
    @pytest.mark.asyncio
    async def test_run_until_stop_then_cleans_up(self):
        lifecycle = _make_lifecycle()
        stop = asyncio.Event()

        task = asyncio.create_task(lifecycle.run(stop))
        await asyncio.sleep(0)
        assert not task.done()

        stop.set()
        await asyncio.wait_for(task, timeout=1)

        lifecycle.gateway.delete_command.assert_awaited_once_with("id-chat", None)
        lifecycle.gateway.close.assert_awaited_once()
        assert lifecycle.state == LifecycleState.CLOSED

    @pytest.mark.asyncio
    async def test_delete_failure_does_not_block_close(self):
        gateway = _make_gateway()
        gateway.delete_command.side_effect = RuntimeError("404")
        lifecycle = _make_lifecycle(gateway)
        await lifecycle.start()

        await lifecycle.shutdown()

        gateway.close.assert_awaited_once()
        assert lifecycle.state == LifecycleState.CLOSED

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self):
        lifecycle = _make_lifecycle()
        await lifecycle.start()

        await lifecycle.shutdown()
        await lifecycle.shutdown()

        lifecycle.gateway.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_before_start_touches_nothing(self):
        lifecycle = _make_lifecycle()
        await lifecycle.shutdown()
        lifecycle.gateway.close.assert_not_called()
        assert lifecycle.state == LifecycleState.CLOSED


class TestSignalHandlers:
    def test_sigint_and_sigterm_set_stop_event(self):
        loop = MagicMock()
        stop = MagicMock()

        install_signal_handlers(loop, stop)

        loop.add_signal_handler.assert_any_call(signal.SIGINT, stop.set)
        loop.add_signal_handler.assert_any_call(signal.SIGTERM, stop.set)


# ---------------------------------------------------------------------------
# Entry point exit codes
# ---------------------------------------------------------------------------

class TestMain:
    @pytest.fixture(autouse=True)
    def _no_dotenv(self):
        with patch("chatbridge.config.load_dotenv"):
            yield

    def test_missing_token_exits_non_zero(self, monkeypatch, capsys):
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)
        assert entry.main([]) == 1
        assert "Token cannot be empty" in capsys.readouterr().err

    def test_registration_failure_exits_non_zero(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "bot-token")
        with patch.object(entry, "_run", AsyncMock(side_effect=RegistrationError("Cannot create 'chat'"))):
            assert entry.main([]) == 1

    def test_connection_failure_exits_non_zero(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "bot-token")
        with patch.object(entry, "_run", AsyncMock(side_effect=GatewayConnectionError("down"))):
            assert entry.main([]) == 1

    def test_graceful_shutdown_exits_zero(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "bot-token")
        run = AsyncMock()
        with patch.object(entry, "_run", run):
            assert entry.main(["--guild", "42"]) == 0
        config = run.await_args.args[0]
        assert config.guild_id == 42

    def test_build_lifecycle_wires_config(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "bot-token")
        monkeypatch.setenv("COMPLETION_TRIM_LEADING_CHAR", "false")
        config = entry.load_config(["-guild", "7"])

        lifecycle = entry.build_lifecycle(config)

        assert lifecycle.registry.guild_id == 7
        assert lifecycle.dispatcher.trim_leading_char is False
        assert lifecycle.state == LifecycleState.UNAUTHENTICATED

"""ChatClient lifecycle tests driven by an in-memory scripted transport."""

from __future__ import annotations

import asyncio

import pytest

from tests.fixtures.sample_lines import (
    KEEPALIVE_PING,
    LOGIN_FAILED_NOTICE,
    PRIVMSG_PLAIN,
    SERVER_RECONNECT,
    WELCOME_LINE,
    privmsg,
)
from tests.fixtures.transport import ScriptedTransport, eventually
from tmichat.chat.client import ChatClient, ClientState
from tmichat.errors import CredentialsRejected, TransportFailure
from tmichat.irc.models import EventType


async def _stop(client: ChatClient, task: asyncio.Task) -> None:
    client.stop()
    await asyncio.wait_for(task, timeout=1.0)


class TestHandshake:
    @pytest.mark.asyncio
    async def test_frame_order_on_connect(self, make_config):
        """PASS and NICK go first, then capabilities, then channel joins."""
        transport = ScriptedTransport([])
        config = make_config(initial_channels=["chan", "other"], capabilities=["tags"])
        client = ChatClient(config, transport)
        task = asyncio.create_task(client.connect())
        await eventually(lambda: client.state is ClientState.STREAMING)
        assert transport.sent == [
            "PASS oauth:secret",
            "NICK botname",
            "CAP REQ :twitch.tv/tags",
            "JOIN #chan",
            "JOIN #other",
        ]
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_on_connect_actions_flushed_before_streaming(self, make_config):
        transport = ScriptedTransport([KEEPALIVE_PING])

        def on_connect(session):
            session.tag_capabilities()
            session.say("chan", "hello")

        client = ChatClient(make_config(), transport, on_connect=on_connect)
        task = asyncio.create_task(client.connect())
        await eventually(lambda: "PONG :tmi.example.com" in transport.sent)
        assert transport.sent == [
            "PASS oauth:secret",
            "NICK botname",
            "JOIN #chan",
            "CAP REQ :twitch.tv/tags",
            "PRIVMSG #chan :hello",
            "PONG :tmi.example.com",
        ]
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_async_on_connect(self, make_config):
        transport = ScriptedTransport([])

        async def on_connect(session):
            await asyncio.sleep(0)
            session.join("late")

        client = ChatClient(make_config(), transport)
        task = asyncio.create_task(client.connect(on_connect=on_connect))
        await eventually(lambda: "JOIN #late" in transport.sent)
        assert "late" in client.channels
        await _stop(client, task)


class TestStreaming:
    @pytest.mark.asyncio
    async def test_keepalive_answered_without_callback(self, make_config):
        transport = ScriptedTransport([KEEPALIVE_PING])
        received = []
        client = ChatClient(
            make_config(), transport, on_message=lambda s, e: received.append(e)
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: "PONG :tmi.example.com" in transport.sent)
        await asyncio.sleep(0.01)
        assert received == []
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_events_dispatched_in_order(self, make_config):
        lines = [privmsg("alice", "chan", "one"), privmsg("bob", "chan", "two")]
        transport = ScriptedTransport(lines)
        received = []
        client = ChatClient(make_config(), transport)
        client.add_message_handler(lambda s, e: received.append((e.user, e.text)))
        task = asyncio.create_task(client.connect())
        await eventually(lambda: len(received) == 2)
        assert received == [("alice", "one"), ("bob", "two")]
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_replies_flushed_per_event(self, make_config):
        lines = [privmsg("alice", "chan", "one"), privmsg("bob", "chan", "two")]
        transport = ScriptedTransport(lines)

        async def echo(session, event):
            session.say(event.channel, f"re: {event.text}")

        client = ChatClient(make_config(), transport, on_message=echo)
        task = asyncio.create_task(client.connect())
        await eventually(lambda: "PRIVMSG #chan :re: two" in transport.sent)
        replies = [f for f in transport.sent if f.startswith("PRIVMSG")]
        assert replies == ["PRIVMSG #chan :re: one", "PRIVMSG #chan :re: two"]
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_multi_line_frame_is_split(self, make_config):
        frame = f"{KEEPALIVE_PING}\r\n{PRIVMSG_PLAIN}\r\n"
        transport = ScriptedTransport([frame])
        received = []
        client = ChatClient(
            make_config(), transport, on_message=lambda s, e: received.append(e)
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: len(received) == 1)
        assert "PONG :tmi.example.com" in transport.sent
        assert received[0].text == "hello"
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_unparseable_lines_are_dropped(self, make_config):
        transport = ScriptedTransport(["justSomeText", PRIVMSG_PLAIN])
        received = []
        client = ChatClient(
            make_config(), transport, on_message=lambda s, e: received.append(e)
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: len(received) == 1)
        assert received[0].type is EventType.PRIVMSG
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_self_messages_filtered(self, make_config):
        lines = [privmsg("BotName", "chan", "mine"), privmsg("alice", "chan", "x")]
        transport = ScriptedTransport(lines)
        received = []
        client = ChatClient(
            make_config(filter_self_messages=True),
            transport,
            on_message=lambda s, e: received.append(e.user),
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: received == ["alice"])
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_self_messages_kept_by_default(self, make_config):
        transport = ScriptedTransport([privmsg("botname", "chan", "mine")])
        received = []
        client = ChatClient(
            make_config(), transport, on_message=lambda s, e: received.append(e.user)
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: received == ["botname"])
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_stream(self, make_config):
        lines = [privmsg("alice", "chan", "one"), privmsg("bob", "chan", "two")]
        transport = ScriptedTransport(lines)
        received = []

        def boom(session, event):
            raise RuntimeError("handler failed")

        client = ChatClient(
            make_config(),
            transport,
            on_message=[boom, lambda s, e: received.append(e.text)],
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: received == ["one", "two"])
        assert client.state is ClientState.STREAMING
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_per_call_handler_replaces_defaults(self, make_config):
        transport = ScriptedTransport([PRIVMSG_PLAIN])
        default, override = [], []
        client = ChatClient(
            make_config(), transport, on_message=lambda s, e: default.append(e)
        )
        task = asyncio.create_task(
            client.connect(on_message=lambda s, e: override.append(e))
        )
        await eventually(lambda: len(override) == 1)
        assert default == []
        await _stop(client, task)


class TestReceive:
    @pytest.mark.asyncio
    async def test_transform_yields_flush_actions(self, make_config):
        transport = ScriptedTransport([PRIVMSG_PLAIN])

        async def transform(session, events):
            async for event in events:
                session.say(event.channel, f"echo {event.text}")
                yield event

        client = ChatClient(make_config(), transport)
        task = asyncio.create_task(client.receive(transform=transform))
        await eventually(lambda: "PRIVMSG #chan :echo hello" in transport.sent)
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_awaitable_transform(self, make_config):
        transport = ScriptedTransport([PRIVMSG_PLAIN])

        async def consume(session, events):
            async for event in events:
                session.say("chan", f"seen {event.user}")

        client = ChatClient(make_config(), transport)
        task = asyncio.create_task(client.receive(transform=consume))
        await eventually(lambda: "PRIVMSG #chan :seen alice" in transport.sent)
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_transform_error_propagates(self, make_config):
        transport = ScriptedTransport([PRIVMSG_PLAIN])

        async def broken(session, events):
            async for _ in events:
                raise ValueError("bad transform")
                yield  # pragma: no cover

        client = ChatClient(make_config(), transport)
        with pytest.raises(ValueError, match="bad transform"):
            await asyncio.wait_for(client.receive(transform=broken), timeout=1.0)
        assert client.state is ClientState.CLOSED


    @pytest.mark.asyncio
    async def test_finished_transform_ends_lifecycle(self, make_config):
        transport = ScriptedTransport([PRIVMSG_PLAIN, PRIVMSG_PLAIN])
        seen = []

        async def first_only(session, events):
            async for event in events:
                seen.append(event.text)
                session.say("chan", "got one")
                return

        client = ChatClient(make_config(), transport)
        await asyncio.wait_for(client.receive(transform=first_only), timeout=1.0)
        assert seen == ["hello"]
        assert "PRIVMSG #chan :got one" in transport.sent
        assert transport.connect_calls == 1
        assert transport.all_closed
        assert client.state is ClientState.CLOSED


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_reaches_every_joined_channel(self, make_config):
        transport = ScriptedTransport([])
        client = ChatClient(
            make_config(), transport, on_connect=lambda s: s.join("two")
        )
        client.publish("announcement")
        task = asyncio.create_task(client.connect())
        await eventually(lambda: "PRIVMSG #two :announcement" in transport.sent)
        assert "PRIVMSG #chan :announcement" in transport.sent
        await _stop(client, task)


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_closes_connection(self, make_config):
        transport = ScriptedTransport([])
        client = ChatClient(make_config(), transport)
        task = asyncio.create_task(client.connect())
        await eventually(lambda: client.state is ClientState.STREAMING)
        await _stop(client, task)
        assert transport.all_closed
        assert client.state is ClientState.CLOSED
        assert client.is_running is False

    @pytest.mark.asyncio
    async def test_closed_client_cannot_run_again(self, make_config):
        client = ChatClient(make_config(), ScriptedTransport([]))
        client.stop()
        assert client.state is ClientState.CLOSED
        with pytest.raises(RuntimeError, match="closed"):
            await client.connect()

    @pytest.mark.asyncio
    async def test_second_concurrent_run_rejected(self, make_config):
        client = ChatClient(make_config(), ScriptedTransport([]))
        task = asyncio.create_task(client.connect())
        await eventually(lambda: client.state is ClientState.STREAMING)
        with pytest.raises(RuntimeError, match="already running"):
            await client.connect()
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_stop_interrupts_backoff(self, make_config):
        transport = ScriptedTransport([], connect_failures=100)
        config = make_config(
            max_reconnect_attempts=10,
            reconnect_base_delay=30.0,
            reconnect_max_delay=30.0,
        )
        client = ChatClient(config, transport)
        task = asyncio.create_task(client.connect())
        await eventually(lambda: client.state is ClientState.RECONNECTING)
        await _stop(client, task)
        assert transport.connect_calls == 1


class TestReconnect:
    @pytest.mark.asyncio
    async def test_recovers_after_connect_failures(self, make_config):
        transport = ScriptedTransport([PRIVMSG_PLAIN], connect_failures=2)
        received = []
        client = ChatClient(
            make_config(), transport, on_message=lambda s, e: received.append(e)
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: len(received) == 1)
        assert transport.connect_calls == 3
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_last_failure(self, make_config):
        transport = ScriptedTransport([], connect_failures=100)
        client = ChatClient(make_config(max_reconnect_attempts=3), transport)
        with pytest.raises(TransportFailure, match="connection refused"):
            await asyncio.wait_for(client.connect(), timeout=1.0)
        assert transport.connect_calls == 3
        assert client.state is ClientState.CLOSED

    @pytest.mark.asyncio
    async def test_stream_loss_rejoins_live_channels(self, make_config):
        """Channels joined at runtime are rejoined after the connection drops."""
        transport = ScriptedTransport([WELCOME_LINE], [PRIVMSG_PLAIN])
        received = []

        def handler(session, event):
            received.append(event)
            if event.type is EventType.UNKNOWN:
                session.join("other")

        client = ChatClient(make_config(), transport, on_message=handler)
        task = asyncio.create_task(client.connect())
        await eventually(lambda: len(received) == 2)
        assert transport.connect_calls == 2
        assert "JOIN #other" in transport.handles[0].sent
        second = transport.handles[1].sent
        assert second[:4] == [
            "PASS oauth:secret",
            "NICK botname",
            "JOIN #chan",
            "JOIN #other",
        ]
        assert transport.handles[0].closed.is_set()
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_stable_stream_loss_starts_fresh_retry_budget(self, make_config):
        scripts = [[WELCOME_LINE] for _ in range(4)]
        transport = ScriptedTransport(*scripts, [PRIVMSG_PLAIN])
        received = []
        client = ChatClient(
            make_config(max_reconnect_attempts=2, stable_stream_window=0.0),
            transport,
            on_message=lambda s, e: received.append(e.type),
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: EventType.PRIVMSG in received)
        assert transport.connect_calls == 5
        await _stop(client, task)

    @pytest.mark.asyncio
    async def test_flapping_connection_exhausts_budget(self, make_config):
        """Short-lived streams count against the reconnect budget."""
        transport = ScriptedTransport(*([WELCOME_LINE] for _ in range(10)))
        client = ChatClient(make_config(max_reconnect_attempts=2), transport)
        with pytest.raises(TransportFailure, match="closed by server"):
            await asyncio.wait_for(client.connect(), timeout=1.0)
        assert transport.connect_calls == 2
        assert transport.all_closed
        assert client.state is ClientState.CLOSED

    @pytest.mark.asyncio
    async def test_server_reconnect_request(self, make_config):
        transport = ScriptedTransport([SERVER_RECONNECT], [PRIVMSG_PLAIN])
        received = []
        client = ChatClient(
            make_config(), transport, on_message=lambda s, e: received.append(e.type)
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: received == [EventType.PRIVMSG])
        assert transport.connect_calls == 2
        await _stop(client, task)


class TestCredentials:
    @pytest.mark.asyncio
    async def test_silent_close_after_auth_is_rejection(self, make_config):
        transport = ScriptedTransport([], hold_last=False)
        client = ChatClient(make_config(), transport)
        with pytest.raises(CredentialsRejected) as exc_info:
            await asyncio.wait_for(client.connect(), timeout=1.0)
        assert exc_info.value.data["username"] == "botname"
        assert transport.connect_calls == 1
        assert client.state is ClientState.CLOSED

    @pytest.mark.asyncio
    async def test_login_failure_notice(self, make_config):
        transport = ScriptedTransport([LOGIN_FAILED_NOTICE])
        client = ChatClient(make_config(), transport)
        with pytest.raises(CredentialsRejected, match="Login authentication failed"):
            await asyncio.wait_for(client.connect(), timeout=1.0)
        assert transport.connect_calls == 1
        assert transport.all_closed

    @pytest.mark.asyncio
    async def test_silent_close_outside_window_is_retried(self, make_config):
        transport = ScriptedTransport([], [PRIVMSG_PLAIN])
        received = []
        client = ChatClient(
            make_config(credentials_reject_window=0.0),
            transport,
            on_message=lambda s, e: received.append(e),
        )
        task = asyncio.create_task(client.connect())
        await eventually(lambda: len(received) == 1)
        assert transport.connect_calls == 2
        await _stop(client, task)

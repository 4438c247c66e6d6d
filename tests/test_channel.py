"""Realtime channel manager: one live connection per session."""

from portal.models.events import MessageReceived, SendMessage, TypingStart
from portal.services.realtime import ChannelManager, ChannelState

from .fakes import SOCKET_URL, make_identity, message_payload


async def test_opens_for_eligible_role_with_credential(channel, socket_factory):
    channel.on_session_changed(make_identity("pharmacy"), "tok-1")
    await channel.settle()

    client = socket_factory.last
    assert channel.connected
    assert channel.state == ChannelState.CONNECTED
    assert client.connect_args == {
        "url": SOCKET_URL,
        "auth": {"token": "tok-1"},
        "transports": ["websocket", "polling"],
    }


async def test_admin_gets_no_channel(channel, socket_factory):
    channel.on_session_changed(make_identity("admin"), "tok-1")
    await channel.settle()

    assert socket_factory.clients == []
    assert channel.client is None
    assert not channel.connected


async def test_same_session_does_not_reconnect(channel, socket_factory):
    identity = make_identity("patient")
    channel.on_session_changed(identity, "tok-1")
    channel.on_session_changed(identity, "tok-1")
    await channel.settle()

    assert len(socket_factory.clients) == 1


async def test_identity_change_tears_down_before_opening(channel, socket_factory):
    channel.on_session_changed(make_identity("patient", "u1"), "tok-1")
    await channel.settle()
    first = socket_factory.last

    channel.on_session_changed(make_identity("doctor", "u2"), "tok-2")
    await channel.settle()
    second = socket_factory.last

    assert first is not second
    assert first.disconnect_calls == 1
    assert socket_factory.open_clients == [second]
    assert second.connect_args["auth"] == {"token": "tok-2"}


async def test_rapid_identity_changes_leave_one_connection(channel, socket_factory):
    for index in range(5):
        channel.on_session_changed(make_identity("patient", f"u{index}"), f"tok-{index}")
    await channel.settle()

    assert len(socket_factory.open_clients) <= 1
    assert channel.client is socket_factory.open_clients[0]
    assert channel.client.connect_args["auth"] == {"token": "tok-4"}


async def test_logout_drops_events_from_old_connection(connected_channel, socket_factory):
    client = socket_factory.last
    received = []
    connected_channel.subscribe(MessageReceived, received.append)

    connected_channel.on_session_changed(None, None)
    # Delivered before the scheduled teardown has run
    await client.deliver("message:received", message_payload("m1"))
    await connected_channel.settle()
    await client.deliver("message:received", message_payload("m2"))

    assert received == []
    assert client.disconnect_calls == 1
    assert connected_channel.client is None
    assert connected_channel.state == ChannelState.DISCONNECTED


async def test_inbound_events_are_dispatched_typed(connected_channel, socket_factory):
    received = []
    unsubscribe = connected_channel.subscribe(MessageReceived, received.append)

    await socket_factory.last.deliver("message:received", message_payload("m1", content="hi"))
    unsubscribe()
    await socket_factory.last.deliver("message:received", message_payload("m2"))

    assert len(received) == 1
    assert received[0].message.id == "m1"
    assert received[0].message.content == "hi"


async def test_malformed_inbound_event_is_dropped(connected_channel, socket_factory):
    received = []
    connected_channel.subscribe(MessageReceived, received.append)

    await socket_factory.last.deliver("message:received", {"content": "missing ids"})
    assert received == []


async def test_handler_failure_does_not_stop_other_handlers(connected_channel, socket_factory):
    received = []

    async def broken(event):
        raise RuntimeError("boom")

    connected_channel.subscribe(MessageReceived, broken)
    connected_channel.subscribe(MessageReceived, received.append)
    await socket_factory.last.deliver("message:received", message_payload("m1"))

    assert len(received) == 1


async def test_emit_uses_wire_names_and_payloads(connected_channel, socket_factory):
    assert await connected_channel.emit(SendMessage(chat_id="c1", content="hello"))
    assert await connected_channel.emit(TypingStart(chat_id="c1"))

    assert socket_factory.last.emitted == [
        ("message:send", {"chatId": "c1", "content": "hello"}),
        ("typing:start", {"chatId": "c1"}),
    ]


async def test_emit_without_connection_reports_failure(channel):
    assert not await channel.emit(TypingStart(chat_id="c1"))


async def test_connect_failure_is_logged_not_raised(channel, socket_factory):
    socket_factory.fail_connect = True
    channel.on_session_changed(make_identity("patient"), "tok-1")
    await channel.settle()

    assert channel.client is None
    assert channel.state == ChannelState.DISCONNECTED


async def test_transport_disconnect_clears_connected_flag(connected_channel, socket_factory):
    socket_factory.last.handlers["disconnect"]()
    assert not connected_channel.connected
    assert connected_channel.client is not None


async def test_close_tears_down(socket_factory):
    manager = ChannelManager(SOCKET_URL, client_factory=socket_factory)
    manager.on_session_changed(make_identity("doctor"), "tok-1")
    await manager.settle()

    await manager.close()
    assert socket_factory.open_clients == []
    assert manager.get_status()["connected"] is False

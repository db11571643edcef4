import pytest
from starlette.websockets import WebSocketState

from fakes import FakeWebSocket
from meshmeet.rooms import DuplicateLinkError


async def connect(relay, *conn_ids):
    sockets = {}
    for conn_id in conn_ids:
        sockets[conn_id] = FakeWebSocket()
        relay.attach(conn_id, sockets[conn_id])
    return sockets


async def test_nth_join_reaches_n_minus_one_members(relay, registry):
    sockets = await connect(relay, "c0", "c1", "c2", "c3")
    for n in range(4):
        assert await relay.join(f"c{n}", "r1", f"l{n}", f"user{n}")

    assert registry.count("r1") == 4
    joins_seen = {c: ws.types().count("user-connected") for c, ws in sockets.items()}
    # c0 saw three arrivals, c3 none
    assert joins_seen == {"c0": 3, "c1": 2, "c2": 1, "c3": 0}


async def test_joiner_gets_room_state(relay):
    sockets = await connect(relay, "a", "b")
    await relay.join("a", "r1", "a1", "Ann")
    await relay.join("b", "r1", "b1", "Bob")

    state = sockets["b"].sent[0]
    assert state["type"] == "room-state"
    assert state["participants"] == [{"linkId": "a1", "name": "Ann"}]
    assert sockets["a"].sent[-1] == {"type": "user-connected", "linkId": "b1", "name": "Bob"}


async def test_duplicate_join_sends_nothing(relay):
    sockets = await connect(relay, "a", "b")
    await relay.join("a", "r1", "a1", "Ann")
    await relay.join("b", "r1", "b1", "Bob")
    before = list(sockets["a"].sent)

    assert not await relay.join("b", "r1", "b1", "Bob")
    assert sockets["a"].sent == before


async def test_blank_name_gets_pseudonym(relay, registry):
    await connect(relay, "a")
    await relay.join("a", "r1", "a1", "  ")
    assert registry.members("r1")[0].name.startswith("User_")


async def test_joining_another_room_leaves_the_first(relay, registry):
    sockets = await connect(relay, "a", "b")
    await relay.join("a", "r1", "a1", "Ann")
    await relay.join("b", "r1", "b1", "Bob")

    await relay.join("b", "r2", "b1", "Bob")
    assert registry.room_of("b") == "r2"
    assert registry.count("r1") == 1
    assert sockets["a"].sent[-1] == {"type": "user-disconnected", "linkId": "b1", "name": "Bob"}


async def test_detach_broadcasts_single_leave(relay, registry):
    sockets = await connect(relay, "a", "b", "c")
    for conn_id in ("a", "b", "c"):
        await relay.join(conn_id, "r1", conn_id + "1", conn_id)

    await relay.detach("b")
    await relay.detach("b")

    assert registry.count("r1") == 2
    assert not relay.is_attached("b")
    for conn_id in ("a", "c"):
        leaves = [m for m in sockets[conn_id].sent if m["type"] == "user-disconnected"]
        assert leaves == [{"type": "user-disconnected", "linkId": "b1", "name": "b"}]


async def test_chat_not_echoed_to_sender(relay):
    sockets = await connect(relay, "a", "b", "c")
    for conn_id in ("a", "b", "c"):
        await relay.join(conn_id, "r1", conn_id + "1", conn_id)

    delivered = await relay.relay_chat("r1", "a", "hi", "Ann")

    assert delivered == 2
    assert "receive-message" not in sockets["a"].types()
    for conn_id in ("b", "c"):
        chats = [m for m in sockets[conn_id].sent if m["type"] == "receive-message"]
        assert len(chats) == 1
        assert chats[0]["text"] == "hi"
        assert chats[0]["senderConnId"] == "a"
        assert chats[0]["name"] == "Ann"
        assert "timestamp" in chats[0]


async def test_chat_from_non_member_is_dropped(relay):
    sockets = await connect(relay, "a", "b")
    await relay.join("a", "r1", "a1", "Ann")
    assert await relay.relay_chat("r1", "b", "hi") == 0
    assert "receive-message" not in sockets["a"].types()


async def test_dead_recipient_is_skipped(relay):
    sockets = await connect(relay, "a", "b", "c")
    for conn_id in ("a", "b", "c"):
        await relay.join(conn_id, "r1", conn_id + "1", conn_id)
    sockets["b"].client_state = WebSocketState.DISCONNECTED
    sockets["c"].fail = True

    assert await relay.relay_chat("r1", "a", "anyone?") == 0
    assert "receive-message" not in sockets["b"].types()


async def test_refused_room_move_keeps_the_old_room(relay, registry):
    sockets = await connect(relay, "a", "b", "c")
    await relay.join("a", "r1", "a1", "Ann")
    await relay.join("b", "r1", "b1", "Bob")
    await relay.join("c", "r2", "b1", "Cy")

    with pytest.raises(DuplicateLinkError):
        await relay.join("b", "r2", "b1", "Bob")

    assert registry.room_of("b") == "r1"
    assert registry.count("r1") == 2
    assert "user-disconnected" not in sockets["a"].types()
    assert "user-connected" not in sockets["c"].types()

import pytest

from meshmeet.rooms import DuplicateLinkError, Participant


def participant(n):
    return Participant(conn_id=f"c{n}", link_id=f"l{n}", name=f"user{n}")


def test_join_creates_room_and_counts_members(registry):
    for n in range(5):
        assert registry.join("r1", participant(n))
    assert registry.count("r1") == 5
    assert [p.conn_id for p in registry.members("r1")] == [f"c{n}" for n in range(5)]
    assert registry.room_of("c3") == "r1"


def test_duplicate_join_is_noop(registry):
    assert registry.join("r1", participant(1))
    assert not registry.join("r1", participant(1))
    assert registry.count("r1") == 1


def test_link_id_unique_within_room(registry):
    registry.join("r1", Participant(conn_id="c1", link_id="same", name="a"))
    with pytest.raises(DuplicateLinkError):
        registry.join("r1", Participant(conn_id="c2", link_id="same", name="b"))
    # another room may reuse it
    assert registry.join("r2", Participant(conn_id="c2", link_id="same", name="b"))


def test_connection_in_one_room_at_a_time(registry):
    registry.join("r1", participant(1))
    with pytest.raises(ValueError):
        registry.join("r2", participant(1))


def test_leave_drops_empty_room(registry):
    registry.join("r1", participant(1))
    registry.join("r1", participant(2))

    left = registry.leave("r1", "c1")
    assert left.link_id == "l1"
    assert registry.count("r1") == 1
    assert registry.room_of("c1") is None

    registry.leave("r1", "c2")
    assert "r1" not in registry
    assert registry.rooms() == []


def test_leave_unknown_is_noop(registry):
    assert registry.leave("nowhere", "c1") is None
    registry.join("r1", participant(1))
    assert registry.leave("r1", "c9") is None
    assert registry.count("r1") == 1


def test_link_in_use_ignores_the_asking_connection(registry):
    registry.join("r1", participant(1))
    assert registry.link_in_use("r1", "l1")
    assert not registry.link_in_use("r1", "l1", conn_id="c1")
    assert not registry.link_in_use("r1", "l2")
    assert not registry.link_in_use("r9", "l1")

import pytest
from sqlalchemy import text

from encodenote.services import sync
from encodenote.services.vault_store import MissingFieldsError, StorageError, get_vault

PAYLOAD = {"salt": "s", "iv": "i", "ciphertext": "c"}


def test_join_acknowledges_and_notifies_others(hub, make_connection) -> None:
    a, b = make_connection("a"), make_connection("b")
    sync.join_vault(hub, a, "abc123")
    sync.join_vault(hub, b, "abc123")

    assert a.events == [{"type": "joined", "users": 1}, {"type": "users", "count": 2}]
    assert b.events == [{"type": "joined", "users": 2}]


def test_disconnect_notifies_remaining(hub, make_connection) -> None:
    a, b = make_connection("a"), make_connection("b")
    sync.join_vault(hub, a, "abc123")
    sync.join_vault(hub, b, "abc123")
    a.events.clear()

    assert sync.disconnect(hub, b) == "abc123"
    assert sync.disconnect(hub, b) is None

    assert a.events == [{"type": "users", "count": 1}]
    assert b.is_open is False


def test_rejoin_after_everyone_left_starts_from_one(hub, make_connection) -> None:
    first = [make_connection(str(i)) for i in range(3)]
    for conn in first:
        sync.join_vault(hub, conn, "abc123")
    for conn in first:
        sync.disconnect(hub, conn)

    assert sync.join_vault(hub, make_connection("late"), "abc123") == 1


def test_write_fans_out_to_vault_subscribers_only(db, hub, make_connection) -> None:
    a, b, other = make_connection("a"), make_connection("b"), make_connection("other")
    sync.join_vault(hub, a, "abc123")
    sync.join_vault(hub, b, "abc123")
    sync.join_vault(hub, other, "fff000")
    for conn in (a, b, other):
        conn.events.clear()

    vault = sync.write_vault(db, hub, "abc123", PAYLOAD)

    assert vault.ciphertext == "c"
    assert a.events == [{"type": "updated"}]
    assert b.events == [{"type": "updated"}]
    assert other.events == []


def test_write_broadcasts_to_sanitized_hash(db, hub, make_connection) -> None:
    a = make_connection("a")
    sync.join_vault(hub, a, "abc123")
    a.events.clear()

    sync.write_vault(db, hub, "abc-123", PAYLOAD)

    assert a.events == [{"type": "updated"}]
    assert get_vault(db, "abc123") is not None


def test_rejected_write_does_not_broadcast(db, hub, make_connection) -> None:
    a = make_connection("a")
    sync.join_vault(hub, a, "abc123")
    a.events.clear()

    with pytest.raises(MissingFieldsError):
        sync.write_vault(db, hub, "abc123", {"salt": "s", "iv": "i"})

    assert a.events == []
    assert get_vault(db, "abc123") is None


def test_failed_write_does_not_broadcast(db, hub, make_connection) -> None:
    a = make_connection("a")
    sync.join_vault(hub, a, "abc123")
    a.events.clear()
    db.execute(text("DROP TABLE vaults"))
    db.commit()

    with pytest.raises(StorageError):
        sync.write_vault(db, hub, "abc123", PAYLOAD)

    assert a.events == []


def test_handle_message_joins_on_valid_frame(hub, make_connection) -> None:
    a = make_connection("a")
    sync.handle_message(hub, a, '{"type": "join", "hash": "ABC-123"}')
    assert hub.subscription_of(a) == "ABC123"
    assert a.events == [{"type": "joined", "users": 1}]


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "not json",
        b"\xff\xfe",
        "[1, 2, 3]",
        '{"type": "join"}',
        '{"type": "join", "hash": ""}',
        '{"type": "join", "hash": "zzz"}',
        '{"type": "join", "hash": 12}',
        '{"type": "leave", "hash": "abc123"}',
        '{"hash": "abc123"}',
    ],
)
def test_handle_message_ignores_malformed_frames(hub, make_connection, raw) -> None:
    a = make_connection("a")
    sync.handle_message(hub, a, raw)
    assert hub.subscription_of(a) is None
    assert a.events == []

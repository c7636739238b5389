import re

from sellkit.clock import ManualClock
from sellkit.identity import SESSION_KEY, IdentityManager, new_session_id
from sellkit.storage import InMemoryPersistence

HOUR = 3600.0


class CountingPersistence(InMemoryPersistence):
    def __init__(self):
        super().__init__()
        self.durable_writes = 0

    def _write_durable(self, key, value):
        self.durable_writes += 1
        super()._write_durable(key, value)


def test_new_session_id_format():
    assert re.fullmatch(r"msk_1700000000000_[0-9a-f]{9}", new_session_id(1_700_000_000.0))
    assert new_session_id(1.0, diagnostic=True).startswith("msk_debug_1000_")


def test_first_call_mints_and_stores_identity():
    storage = CountingPersistence()
    clock = ManualClock()

    session_id = IdentityManager(storage, clock, ttl_seconds=24 * HOUR).get_session_id()

    assert session_id.startswith("msk_")
    assert storage.get_durable(SESSION_KEY) == {"id": session_id, "created_at": clock.now()}
    assert storage.durable_writes == 1


def test_valid_identity_is_reused_without_writing():
    storage = CountingPersistence()
    clock = ManualClock()
    first = IdentityManager(storage, clock, ttl_seconds=24 * HOUR).get_session_id()

    clock.advance(23 * HOUR)
    second = IdentityManager(storage, clock, ttl_seconds=24 * HOUR).get_session_id()

    assert second == first
    assert storage.durable_writes == 1


def test_expired_identity_is_replaced():
    storage = InMemoryPersistence()
    clock = ManualClock()
    first = IdentityManager(storage, clock, ttl_seconds=24 * HOUR).get_session_id()

    clock.advance(24 * HOUR + 1)
    second = IdentityManager(storage, clock, ttl_seconds=24 * HOUR).get_session_id()

    assert second != first
    assert storage.get_durable(SESSION_KEY)["created_at"] == clock.now()


def test_unreadable_identity_is_replaced():
    storage = InMemoryPersistence()
    storage.set_durable(SESSION_KEY, "garbage")

    session_id = IdentityManager(storage, ManualClock()).get_session_id()

    assert storage.get_durable(SESSION_KEY)["id"] == session_id


def test_diagnostic_identity_never_touches_storage():
    storage = CountingPersistence()
    clock = ManualClock()

    first = IdentityManager(storage, clock, diagnostic=True)
    second = IdentityManager(storage, clock, diagnostic=True)

    assert first.get_session_id().startswith("msk_debug_")
    assert first.get_session_id() == first.get_session_id()
    assert second.get_session_id() != first.get_session_id()
    assert storage.durable_writes == 0
    assert storage.get_durable(SESSION_KEY) is None

from datetime import datetime, timedelta, timezone

from courseware.identity_access.stores import SessionStore


class _Clock:
    def __init__(self):
        self.now = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def test_session_resolves_until_expiry():
    clock = _Clock()
    store = SessionStore(clock=clock)
    rec = store.create(sub="learner-1", roles=["student"], ttl_seconds=60)

    assert store.get(rec.session_id).roles == ("student",)
    clock.now += timedelta(seconds=61)
    assert store.get(rec.session_id) is None


def test_delete_and_unknown_ids():
    store = SessionStore()
    rec = store.create(sub="admin-1", roles=["admin"])
    store.delete(rec.session_id)
    store.delete("never-issued")
    assert store.get(rec.session_id) is None
    assert store.get("never-issued") is None

from app.metrics import CART_MIRROR_FAILURES
from app.services.cart_mirror import CartMirror, MirrorWrite


class Recorder:
    def __init__(self, fail_on=()):
        self.writes = []
        self.fail_on = set(fail_on)

    def __call__(self, write):
        if write.product_id in self.fail_on:
            raise RuntimeError("storage unavailable")
        self.writes.append(write)


def test_latest_write_per_key_wins():
    rec = Recorder()
    mirror = CartMirror(rec)
    mirror.upsert("u1", "p1", 1)
    mirror.upsert("u1", "p1", 2)
    mirror.upsert("u1", "p2", 1)
    mirror.delete("u1", "p1")

    assert mirror.flush() == 2
    assert rec.writes == [
        MirrorWrite("upsert", "u1", "p2", 1),
        MirrorWrite("delete", "u1", "p1", 0),
    ]
    assert mirror.pending() == []


def test_flush_can_target_one_user():
    rec = Recorder()
    mirror = CartMirror(rec)
    mirror.upsert("u1", "p1", 1)
    mirror.upsert("u2", "p1", 3)

    assert mirror.flush("u2") == 1
    assert [w.user_id for w in rec.writes] == ["u2"]
    assert [w.user_id for w in mirror.pending()] == ["u1"]


def test_discard_drops_only_that_users_writes():
    mirror = CartMirror(Recorder())
    mirror.upsert("u1", "p1", 1)
    mirror.upsert("u1", "p2", 1)
    mirror.upsert("u2", "p1", 1)

    assert mirror.discard("u1") == 2
    assert mirror.pending("u1") == []
    assert len(mirror.pending("u2")) == 1


def test_failed_dispatch_is_logged_counted_and_swallowed(caplog):
    rec = Recorder(fail_on={"p1"})
    mirror = CartMirror(rec)
    before = CART_MIRROR_FAILURES.labels("upsert")._value.get()
    mirror.upsert("u1", "p1", 1)
    mirror.upsert("u1", "p2", 1)

    caplog.set_level("WARNING")
    assert mirror.flush() == 1
    assert [w.product_id for w in rec.writes] == ["p2"]
    assert CART_MIRROR_FAILURES.labels("upsert")._value.get() == before + 1
    assert any("Cart mirror upsert failed" in r.getMessage() for r in caplog.records)
    # Failed writes are not retried from the queue
    assert mirror.pending() == []

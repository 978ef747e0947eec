"""
Concurrency Tests

Covers:
- The keyed lock registry (exclusion per key, weak entries)
- Competing make_offer / place_bid calls from separate threads
- A failed unit of work stays rolled back while another key commits
"""

import gc
import threading

import pytest
import sqlalchemy as sa

from bazaar.config import TestConfig
from bazaar.errors import ConflictError, InvalidInputError, MarketplaceError
from bazaar.extensions import db
from bazaar.services.concurrency import KeyedLocks
from bazaar.stores.base import shares_one_connection

from conftest import BUYER, CHAIR, LAMP, OPERATOR, OTHER_BUYER


def _race(app, *calls):
    """Run each call in its own thread and app context, released together."""
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def worker(index, call):
        with app.app_context():
            barrier.wait(timeout=5)
            try:
                outcomes[index] = ("ok", call())
            except MarketplaceError as e:
                outcomes[index] = ("error", e)
            except Exception as e:
                outcomes[index] = ("crash", e)

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    assert not any(thread.is_alive() for thread in threads)
    return outcomes


class TestKeyedLocks:

    def test_same_key_returns_same_lock(self):
        locks = KeyedLocks()
        first = locks._lock_for("offer", "l1")
        assert locks._lock_for("offer", "l1") is first
        assert locks._lock_for("likes", "l1") is not first

    def test_same_key_is_exclusive(self):
        locks = KeyedLocks()
        entered = threading.Event()

        def contender():
            with locks.hold("offer", "l1"):
                entered.set()

        with locks.hold("offer", "l1"):
            worker = threading.Thread(target=contender)
            worker.start()
            # Still held here, so the worker cannot get in
            assert not entered.wait(timeout=0.2)

        worker.join(timeout=2)
        assert entered.is_set()

    def test_different_keys_do_not_block(self):
        locks = KeyedLocks()
        entered = threading.Event()

        def other_listing():
            with locks.hold("offer", "l2"):
                entered.set()

        with locks.hold("offer", "l1"):
            worker = threading.Thread(target=other_listing)
            worker.start()
            assert entered.wait(timeout=2)

        worker.join(timeout=2)

    def test_numeric_keys_share_lock_with_strings(self):
        locks = KeyedLocks()
        lock = locks._lock_for("offer", "7")
        with locks.hold("offer", 7):
            assert lock.locked()
        assert not lock.locked()

    def test_lock_released_on_error(self):
        locks = KeyedLocks()
        lock = locks._lock_for("auction", "current")
        with pytest.raises(RuntimeError):
            with locks.hold("auction", "current"):
                raise RuntimeError("boom")
        assert not lock.locked()

    def test_unused_locks_are_dropped(self):
        locks = KeyedLocks()
        for i in range(100):
            with locks.hold("likes", f"user-{i}"):
                pass
        gc.collect()
        assert len(locks._locks) == 0


class TestServiceSerialization:

    def test_competing_offers_one_wins(self, app, services, actor):
        outcomes = _race(
            app,
            lambda: services.offers.make_offer(actor(BUYER), LAMP, 8000),
            lambda: services.offers.make_offer(actor(OTHER_BUYER), LAMP, 8500),
        )

        kinds = sorted(kind for kind, _ in outcomes)
        assert kinds == ["error", "ok"]
        error = next(value for kind, value in outcomes if kind == "error")
        winner = next(value for kind, value in outcomes if kind == "ok")
        assert isinstance(error, ConflictError)

        stored = services.offers.store.get(LAMP)
        assert stored.buyer_id == winner["offer"]["buyerId"]
        assert stored.offer_id == winner["offer"]["offerId"]

    def test_equal_bids_one_accepted(self, app, services, actor):
        services.auctions.start(actor(OPERATOR), {
            "listingId": LAMP,
            "auctionId": "auction-race",
            "startTimeISO": "2026-03-01T11:00:00Z",
            "endTimeISO": "2026-03-01T13:00:00Z",
        })

        outcomes = _race(
            app,
            lambda: services.auctions.place_bid(actor(BUYER), 5),
            lambda: services.auctions.place_bid(actor(OTHER_BUYER), 5),
        )

        kinds = sorted(kind for kind, _ in outcomes)
        assert kinds == ["error", "ok"]
        error = next(value for kind, value in outcomes if kind == "error")
        assert isinstance(error, InvalidInputError)
        assert str(error) == "Bid must be at least 6"

        store = services.auctions.store
        assert [b.amount for b in store.bids(store.current())] == [5]


class TestUnitOfWorkIsolation:

    def test_failed_like_not_committed_by_other_key(self, app, services, actor, gateway, monkeypatch):
        """A commit for another listing must not carry a like whose profile write failed."""
        result = {}

        def offer_on_other_listing():
            with app.app_context():
                result["offer"] = services.offers.make_offer(actor(BUYER), CHAIR, 4000)

        worker = threading.Thread(target=offer_on_other_listing)

        def failing_write(*args, **kwargs):
            # The like row is flushed by now; let the other request try to commit
            worker.start()
            worker.join(timeout=0.3)
            raise RuntimeError("profile service unavailable")

        monkeypatch.setattr(gateway, "write_user_private_field", failing_write)

        with pytest.raises(RuntimeError):
            services.likes.toggle(actor(BUYER), LAMP, "like")

        worker.join(timeout=5)
        assert not worker.is_alive()
        assert result["offer"]["offer"]["listingId"] == CHAIR
        assert services.likes.store.count(LAMP) == 0
        assert services.offers.store.get(CHAIR) is not None

    def test_in_memory_engine_shares_one_connection(self, app_ctx, tmp_path):
        assert shares_one_connection(db.engine)
        assert not shares_one_connection(sa.create_engine(f"sqlite:///{tmp_path / 'bazaar.db'}"))

    def test_in_memory_engine_keeps_open_transactions(self):
        assert TestConfig.SQLALCHEMY_ENGINE_OPTIONS == {"pool_reset_on_return": None}

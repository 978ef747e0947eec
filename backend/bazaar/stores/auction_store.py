# Overview: Auction Store, the single auction slot plus its append-only bid ledger.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..models import Auction, Bid, CURRENT_SLOT
from ..services.concurrency import lock_for_update
from .base import SqlStore


class AuctionStore(SqlStore):

    def current(self) -> Optional[Auction]:
        return self.session.query(Auction).filter_by(slot=CURRENT_SLOT).first()

    def current_for_update(self) -> Optional[Auction]:
        return lock_for_update(
            self.session.query(Auction).filter_by(slot=CURRENT_SLOT)
        ).first()

    def install(self, **fields) -> Auction:
        """
        Occupy the slot.

        Args:
            **fields: Auction columns other than slot

        Returns:
            The flushed Auction

        Raises:
            ConflictError: An auction is already there, or another writer took
                the unique slot first
        """
        if self.current() is not None:
            raise ConflictError("Another auction is already active")

        auction = Auction(slot=CURRENT_SLOT, **fields)
        self.session.add(auction)
        try:
            self.session.flush()
        except IntegrityError:
            # Lost the race on the unique slot column
            self.session.rollback()
            raise ConflictError("Another auction is already active")
        return auction

    def append_bid(self, auction: Auction, *, user_id: str, amount: int, created_at: datetime) -> Bid:
        bid = Bid(auction=auction, user_id=user_id, amount=amount, created_at=created_at)
        self.session.add(bid)
        self.session.flush()
        return bid

    def last_bid(self, auction: Auction) -> Optional[Bid]:
        return (
            self.session.query(Bid)
            .filter_by(auction_pk=auction.id)
            .order_by(Bid.id.desc())
            .first()
        )

    def bids(self, auction: Auction, limit: Optional[int] = None) -> list[Bid]:
        """The most recent `limit` bids (all when None), oldest first."""
        query = (
            self.session.query(Bid)
            .filter_by(auction_pk=auction.id)
            .order_by(Bid.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return list(reversed(query.all()))

    def bid_count(self, auction: Auction) -> int:
        return self.session.query(Bid).filter_by(auction_pk=auction.id).count()

    def extend(self, auction: Auction, new_end: datetime) -> Auction:
        auction.end_time = new_end
        self.session.flush()
        return auction

    def clear(self, auction: Auction) -> None:
        """Free the slot. The bid ledger goes with it (delete-orphan cascade)."""
        self.session.delete(auction)
        self.session.flush()

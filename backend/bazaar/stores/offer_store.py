# Overview: Offer Store, the one-record-per-listing mapping behind the offer state machine.

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa

from ..models import Offer, OfferStatus
from ..services.concurrency import lock_for_update
from .base import SqlStore


def generate_offer_id() -> str:
    return f"offer_{uuid.uuid4().hex}"


class OfferStore(SqlStore):

    def get(self, listing_id: str) -> Optional[Offer]:
        return self.session.query(Offer).filter_by(listing_id=listing_id).first()

    def get_for_update(self, listing_id: str) -> Optional[Offer]:
        return lock_for_update(
            self.session.query(Offer).filter_by(listing_id=listing_id)
        ).first()

    def replace(
        self,
        listing_id: str,
        *,
        buyer_id: str,
        seller_id: str,
        original_price: int,
        offer_price: int,
        now: datetime,
    ) -> Offer:
        """
        Install a fresh pending offer for the listing, overwriting whatever
        record was there. The row is reused; identity, prices and timestamps
        all start over.
        """
        offer = self.get_for_update(listing_id)
        if offer is None:
            offer = Offer(listing_id=listing_id)
            self.session.add(offer)

        offer.offer_id = generate_offer_id()
        offer.buyer_id = buyer_id
        offer.seller_id = seller_id
        offer.original_price = original_price
        offer.offer_price = offer_price
        offer.counter_price = None
        offer.status = OfferStatus.PENDING.value
        offer.created_at = now
        offer.updated_at = now
        self.session.flush()
        return offer

    def update(self, offer: Offer, *, now: datetime, **changes) -> Offer:
        for key, value in changes.items():
            if not hasattr(Offer, key):
                raise AttributeError(f"Offer has no field {key}")
            if isinstance(value, OfferStatus):
                value = value.value
            setattr(offer, key, value)
        offer.updated_at = now
        self.session.flush()
        return offer

    def all(self) -> list[Offer]:
        return (
            self.session.query(Offer)
            .order_by(Offer.updated_at.desc(), Offer.id.desc())
            .all()
        )

    def for_participant(self, user_id: str) -> list[Offer]:
        """Offers where user_id is the buyer or the seller, most recently updated first."""
        return (
            self.session.query(Offer)
            .filter(sa.or_(Offer.buyer_id == user_id, Offer.seller_id == user_id))
            .order_by(Offer.updated_at.desc(), Offer.id.desc())
            .all()
        )

    def delete(self, listing_id: str) -> bool:
        offer = self.get_for_update(listing_id)
        if offer is None:
            return False
        self.session.delete(offer)
        self.session.flush()
        return True

from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class OfferStatus(str, enum.Enum):
    PENDING = "pending"  # buyer made an offer, waiting for the seller
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"  # seller proposed counter_price, waiting for the buyer
    COUNTER_ACCEPTED = "counter_accepted"
    COUNTER_DECLINED = "counter_declined"


TERMINAL_STATUSES = frozenset({
    OfferStatus.ACCEPTED,
    OfferStatus.REJECTED,
    OfferStatus.COUNTER_ACCEPTED,
    OfferStatus.COUNTER_DECLINED,
})


class Offer(db.Model):
    """
    The single negotiation record for a listing.

    listing_id is unique: a fresh offer overwrites the previous record
    in place instead of appending a new row.
    """
    __tablename__ = "offers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    offer_id = db.Column(db.String(64), nullable=False, unique=True)
    listing_id = db.Column(db.String(64), nullable=False, unique=True, index=True)

    buyer_id = db.Column(db.String(64), nullable=False, index=True)
    seller_id = db.Column(db.String(64), nullable=False, index=True)

    original_price = db.Column(db.Integer, nullable=False, default=0)  # listing price snapshot at creation
    offer_price = db.Column(db.Integer, nullable=False)
    counter_price = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(32), nullable=False, default=OfferStatus.PENDING.value, index=True)

    created_at = db.Column(db.DateTime, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, index=True)

    def to_dict(self):
        return {
            "offerId": self.offer_id,
            "listingId": self.listing_id,
            "buyerId": self.buyer_id,
            "sellerId": self.seller_id,
            "originalPrice": self.original_price,
            "offerPrice": self.offer_price,
            "counterPrice": self.counter_price,
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

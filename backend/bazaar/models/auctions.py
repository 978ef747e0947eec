from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


CURRENT_SLOT = "current"


def anonymize_bidder(user_id: str | None) -> str:
    """Public bidder label: 'User***' plus the last two characters of the id."""
    if not user_id:
        return "User***"
    return f"User***{user_id[-2:]}"


class Auction(db.Model):
    """
    The process-wide auction slot.

    `slot` is unique and always CURRENT_SLOT, so the table can never hold
    two auctions at once.
    """
    __tablename__ = "auctions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    slot = db.Column(db.String(16), nullable=False, unique=True, default=CURRENT_SLOT)

    auction_id = db.Column(db.String(64), nullable=False)
    listing_id = db.Column(db.String(64), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=True)
    seller_id = db.Column(db.String(64), nullable=True)

    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)  # moves forward on anti-sniping extensions

    starting_bid = db.Column(db.Integer, nullable=False, default=1)
    min_increment = db.Column(db.Integer, nullable=False, default=1)
    reserve_price = db.Column(db.Integer, nullable=True)  # informational only

    created_at = db.Column(db.DateTime, nullable=False)

    bids = db.relationship(
        "Bid",
        back_populates="auction",
        order_by="Bid.id",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def to_dict(self):
        return {
            "auctionId": self.auction_id,
            "listingId": self.listing_id,
            "title": self.title,
            "sellerId": self.seller_id,
            "startTimeISO": to_utc_z(self.start_time),
            "endTimeISO": to_utc_z(self.end_time),
            "startingBid": self.starting_bid,
            "minIncrement": self.min_increment,
            "reservePrice": self.reserve_price,
        }


class Bid(db.Model):
    """Append-only bid ledger entry. Primary key order is arrival order."""
    __tablename__ = "bids"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    auction_pk = db.Column(db.Integer, db.ForeignKey("auctions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    auction = db.relationship("Auction", back_populates="bids")

    def to_dict(self):
        # Internal shape, includes the bidder id. Only operators see this.
        return {
            "userId": self.user_id,
            "amount": self.amount,
            "createdAtISO": to_utc_z(self.created_at),
        }

    def to_public_dict(self):
        return {
            "amount": self.amount,
            "createdAtISO": to_utc_z(self.created_at),
            "bidder": anonymize_bidder(self.user_id),
        }

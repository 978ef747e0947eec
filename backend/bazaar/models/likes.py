from __future__ import annotations

from ..extensions import db


class ListingLike(db.Model):
    """One row per (listing, user) like. Authoritative source for like counts."""
    __tablename__ = "listing_likes"
    __table_args__ = (
        db.UniqueConstraint("listing_id", "user_id", name="uq_listing_likes_listing_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    listing_id = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False)

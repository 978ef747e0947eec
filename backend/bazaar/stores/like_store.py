# Overview: Like Store, the listing -> liking users mapping used for like counts.

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa

from ..models import ListingLike
from .base import SqlStore


class LikeStore(SqlStore):

    def has(self, listing_id: str, user_id: str) -> bool:
        return (
            self.session.query(ListingLike.id)
            .filter_by(listing_id=listing_id, user_id=user_id)
            .first()
            is not None
        )

    def add(self, listing_id: str, user_id: str, *, now: datetime) -> bool:
        """Returns False when the like already existed."""
        if self.has(listing_id, user_id):
            return False
        self.session.add(ListingLike(listing_id=listing_id, user_id=user_id, created_at=now))
        self.session.flush()
        return True

    def remove(self, listing_id: str, user_id: str) -> bool:
        deleted = (
            self.session.query(ListingLike)
            .filter_by(listing_id=listing_id, user_id=user_id)
            .delete(synchronize_session=False)
        )
        self.session.flush()
        return deleted > 0

    def count(self, listing_id: str) -> int:
        return self.session.query(ListingLike).filter_by(listing_id=listing_id).count()

    def counts(self, listing_ids: list[str]) -> dict[str, int]:
        """Like count per listing id; listings nobody liked map to 0."""
        result = {listing_id: 0 for listing_id in listing_ids}
        if not listing_ids:
            return result
        rows = (
            self.session.query(ListingLike.listing_id, sa.func.count(ListingLike.id))
            .filter(ListingLike.listing_id.in_(listing_ids))
            .group_by(ListingLike.listing_id)
            .all()
        )
        for listing_id, count in rows:
            result[listing_id] = count
        return result

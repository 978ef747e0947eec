# Overview: Listing likes; keeps the Like Store and each user's profile list in step.

"""
Two read models hold likes:

- the Like Store: (listing, user) rows, the only source for like COUNTS
- the user's profile private field "likedListings", a list of listing ids

Whether a user has liked a listing is the union of both. Counts always come
from the store, so they can differ from the length of a profile list.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from flask import current_app

from ..errors import InvalidInputError, NotFoundError
from ..gateway import Actor, MarketplaceGateway
from ..stores import LikeStore
from ..time_utils import utcnow
from ..validation import parse_id_list
from .concurrency import KeyedLocks


LIKED_LISTINGS_FIELD = "likedListings"
LIKE = "like"
UNLIKE = "unlike"


class LikeService:

    def __init__(
        self,
        store: LikeStore,
        gateway: MarketplaceGateway,
        locks: KeyedLocks,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.gateway = gateway
        self.locks = locks
        self.clock = clock

    def _profile_likes(self, user_id: str) -> list[str]:
        value = self.gateway.read_user_private_field(user_id, LIKED_LISTINGS_FIELD)
        if not isinstance(value, list):
            return []
        return [str(v) for v in value]

    def toggle(self, actor: Actor, listing_id, action) -> dict:
        """
        Like or unlike. Repeating an action is a successful no-op flagged with
        wasAlreadyLiked / wasNotLiked, and leaves the profile untouched.

        Args:
            actor: The user liking; only their own profile is written
            listing_id: Listing to like or unlike
            action: "like" or "unlike"

        Returns:
            {"success", "action", "listingId", "likeCount", "isLiked",
             "wasAlreadyLiked", "wasNotLiked"}

        Raises:
            InvalidInputError: Missing listing_id/action, or unknown action
            NotFoundError: The gateway does not know the actor

        WHY: The store change and the profile write share one unit of work;
        if the profile write fails the store change is rolled back.
        """
        if not listing_id or not action:
            raise InvalidInputError("Missing required parameters: listingId and action")
        if action not in (LIKE, UNLIKE):
            raise InvalidInputError('Invalid action. Must be "like" or "unlike"')
        listing_id = str(listing_id)

        was_already_liked = False
        was_not_liked = False

        # The profile list is read-modify-write, so serialize per user
        with self.locks.hold("likes", actor.id), self.store.unit_of_work():
            liked = self._profile_likes(actor.id)
            already = listing_id in liked or self.store.has(listing_id, actor.id)

            updated = None
            if action == LIKE:
                if already:
                    was_already_liked = True
                else:
                    self.store.add(listing_id, actor.id, now=self.clock())
                    updated = liked + [listing_id]
            else:
                if already:
                    self.store.remove(listing_id, actor.id)
                    updated = [lid for lid in liked if lid != listing_id]
                else:
                    was_not_liked = True

            if updated is not None:
                self.gateway.write_user_private_field(actor.id, LIKED_LISTINGS_FIELD, updated)
                current_app.logger.info("User %s %sd listing %s", actor.id, action, listing_id)

            final_list = updated if updated is not None else liked
            is_liked = listing_id in final_list or self.store.has(listing_id, actor.id)

        return {
            "success": True,
            "action": action,
            "listingId": listing_id,
            "likeCount": self.store.count(listing_id),
            "isLiked": is_liked,
            "wasAlreadyLiked": was_already_liked,
            "wasNotLiked": was_not_liked,
        }

    def liked_listings(self, user_id) -> dict:
        """Listing documents from a user's profile list; unavailable listings are skipped."""
        if not user_id:
            raise InvalidInputError("Missing required parameter: userId")
        user_id = str(user_id)

        listings = []
        for listing_id in self._profile_likes(user_id):
            try:
                listings.append(self.gateway.resolve_listing(listing_id).to_dict())
            except NotFoundError:
                current_app.logger.debug("Liked listing %s of user %s is unavailable", listing_id, user_id)

        return {
            "success": True,
            "userId": user_id,
            "likedListings": listings,
            "totalCount": len(listings),
        }

    def check_liked(self, actor: Actor, listing_ids) -> dict:
        listing_ids = parse_id_list(listing_ids)
        liked = set(self._profile_likes(actor.id))
        counts = self.store.counts(listing_ids)

        status = {}
        for listing_id in listing_ids:
            status[listing_id] = {
                "isLiked": listing_id in liked or self.store.has(listing_id, actor.id),
                "likeCount": counts[listing_id],
            }
        return {"success": True, "likeStatusMap": status}

    def like_counts(self, listing_ids) -> dict:
        listing_ids = parse_id_list(listing_ids)
        return {"success": True, "likeCounts": self.store.counts(listing_ids)}

# Overview: Offer negotiation state machine; validates actions against the Offer Store.

"""
Offer negotiation between a buyer and the seller of a listing.

================================================================================
STATE MACHINE
================================================================================

    pending ──> accepted            (seller)
            ──> rejected            (seller)
            ──> countered ──> counter_accepted   (buyer)
                          ──> counter_declined   (buyer)

accepted, rejected, counter_accepted and counter_declined are terminal:
nothing leaves them. A listing holds one offer record at a time. A buyer may
open a new offer (overwriting the record) unless the current one is pending.

The two accept paths do NOT create a transaction. They return
shouldCreateTransaction=True plus the agreed price; acting on that is the
caller's job.

RULES:
1. Price validation runs before any lookup of the stored offer
2. Then existence (NotFound), then role (Forbidden), then state (InvalidState)
3. A rejected action writes nothing
4. Every write stamps updated_at
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from flask import current_app

from ..errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from ..gateway import Actor, MarketplaceGateway
from ..models import Offer, OfferStatus, TERMINAL_STATUSES
from ..stores import OfferStore
from ..time_utils import utcnow
from ..validation import parse_positive_int
from .concurrency import KeyedLocks


MAKE_OFFER = "make_offer"
ACCEPT_OFFER = "accept_offer"
REJECT_OFFER = "reject_offer"
COUNTER_OFFER = "counter_offer"
ACCEPT_COUNTER = "accept_counter"
DECLINE_COUNTER = "decline_counter"

VALID_ACTIONS = (MAKE_OFFER, ACCEPT_OFFER, REJECT_OFFER, COUNTER_OFFER, ACCEPT_COUNTER, DECLINE_COUNTER)

ALLOWED_TRANSITIONS: dict[OfferStatus, frozenset[OfferStatus]] = {
    OfferStatus.PENDING: frozenset({OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.COUNTERED}),
    OfferStatus.COUNTERED: frozenset({OfferStatus.COUNTER_ACCEPTED, OfferStatus.COUNTER_DECLINED}),
}


@dataclass(frozen=True)
class Transition:
    """How one action moves an existing offer."""
    source: OfferStatus
    target: OfferStatus
    party: str  # "seller" or "buyer"
    forbidden_message: str
    state_message: str
    success_message: str
    price_field: Optional[str] = None  # set on the accept paths


TRANSITIONS: dict[str, Transition] = {
    ACCEPT_OFFER: Transition(
        source=OfferStatus.PENDING,
        target=OfferStatus.ACCEPTED,
        party="seller",
        forbidden_message="Only the listing owner can accept offers",
        state_message="Offer is not in pending state",
        success_message="Offer accepted",
        price_field="offer_price",
    ),
    REJECT_OFFER: Transition(
        source=OfferStatus.PENDING,
        target=OfferStatus.REJECTED,
        party="seller",
        forbidden_message="Only the listing owner can reject offers",
        state_message="Offer is not in pending state",
        success_message="Offer rejected",
    ),
    COUNTER_OFFER: Transition(
        source=OfferStatus.PENDING,
        target=OfferStatus.COUNTERED,
        party="seller",
        forbidden_message="Only the listing owner can make counter offers",
        state_message="Offer is not in pending state",
        success_message="Counter offer sent",
    ),
    ACCEPT_COUNTER: Transition(
        source=OfferStatus.COUNTERED,
        target=OfferStatus.COUNTER_ACCEPTED,
        party="buyer",
        forbidden_message="Only the original buyer can accept counter offers",
        state_message="No counter offer to accept",
        success_message="Counter offer accepted",
        price_field="counter_price",
    ),
    DECLINE_COUNTER: Transition(
        source=OfferStatus.COUNTERED,
        target=OfferStatus.COUNTER_DECLINED,
        party="buyer",
        forbidden_message="Only the original buyer can decline counter offers",
        state_message="No counter offer to decline",
        success_message="Counter offer declined",
    ),
}


def validate_transition(current: OfferStatus, target: OfferStatus) -> None:
    """
    Check that current -> target is an edge of the state machine.

    Args:
        current: Status stored on the offer
        target: Status the action wants to move it to

    Raises:
        InvalidStateError: If current is terminal or the edge does not exist

    WHY: The per-action source check is the first gate; this keeps the
    table itself authoritative.
    """
    if current in TERMINAL_STATUSES:
        raise InvalidStateError(f"Offer is already {current.value}")
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidStateError(f"Cannot move offer from {current.value} to {target.value}")


class OfferService:

    def __init__(
        self,
        store: OfferStore,
        gateway: MarketplaceGateway,
        locks: KeyedLocks,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.gateway = gateway
        self.locks = locks
        self.clock = clock

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def perform(self, actor: Actor, payload: dict) -> dict:
        """
        Entry point for POST /make-offer: dispatch {listingId, action, ...}
        to the matching command.
        """
        payload = payload or {}
        listing_id = payload.get("listingId")
        action = payload.get("action")

        if not listing_id or not action:
            raise InvalidInputError("Missing required parameters: listingId and action")
        if action not in VALID_ACTIONS:
            raise InvalidInputError("Invalid action")

        listing_id = str(listing_id)
        if action == MAKE_OFFER:
            return self.make_offer(actor, listing_id, payload.get("offerPrice"))
        return self.transition(actor, listing_id, action, counter_price=payload.get("counterPrice"))

    def make_offer(self, actor: Actor, listing_id: str, offer_price) -> dict:
        """
        Open a pending offer on a listing, replacing any non-pending record.

        Args:
            actor: The buyer (from the session, never the request body)
            listing_id: Listing the offer is for
            offer_price: Proposed price in minor units

        Returns:
            {"success", "action", "offer", "message"}

        Raises:
            NotFoundError: Listing unknown, or its seller cannot be resolved
            InvalidInputError: offer_price is not a positive integer
            ForbiddenError: The actor sells this listing
            ConflictError: An offer on the listing is already pending

        WHY: One record per listing. The pending check runs under the listing
        lock so two buyers cannot both open an offer.
        """
        listing = self.gateway.resolve_listing(listing_id)

        price = parse_positive_int(offer_price, "offerPrice", message="Valid offer price required")

        if actor.id == listing.seller_id:
            raise ForbiddenError("Cannot make offer on your own listing")

        with self.locks.hold("offer", listing_id), self.store.unit_of_work():
            existing = self.store.get_for_update(listing_id)
            if existing is not None and existing.status == OfferStatus.PENDING.value:
                raise ConflictError("An offer is already pending for this listing")

            offer = self.store.replace(
                listing_id,
                buyer_id=actor.id,
                seller_id=listing.seller_id,
                original_price=listing.price,
                offer_price=price,
                now=self.clock(),
            )
            result = self._result(MAKE_OFFER, offer, "Offer submitted successfully")

        current_app.logger.info(
            "Offer %s opened on listing %s by buyer %s at %s",
            result["offer"]["offerId"], listing_id, actor.id, price,
        )
        return result

    def transition(self, actor: Actor, listing_id: str, action: str, *, counter_price=None) -> dict:
        """
        Apply one of the non-creating actions (accept/reject/counter/accept_counter/decline_counter).

        Args:
            actor: Seller for accept/reject/counter, original buyer for the counter replies
            listing_id: Listing whose offer moves
            action: Key of TRANSITIONS
            counter_price: Required for counter_offer only

        Returns:
            {"success", "action", "offer", "message"}, plus
            shouldCreateTransaction and transactionPrice on the accept paths

        Raises:
            InvalidInputError: Unknown action or bad counter_price
            NotFoundError: Listing unknown, or no offer stored for it
            ForbiddenError: Actor is not the party the action needs
            InvalidStateError: Offer is not in the action's source status
        """
        step = TRANSITIONS.get(action)
        if step is None:
            raise InvalidInputError("Invalid action")

        listing = self.gateway.resolve_listing(listing_id)

        changes: dict = {"status": step.target}
        if action == COUNTER_OFFER:
            changes["counter_price"] = parse_positive_int(
                counter_price, "counterPrice", message="Valid counter price required"
            )

        with self.locks.hold("offer", listing_id), self.store.unit_of_work():
            offer = self.store.get_for_update(listing_id)
            if offer is None:
                raise NotFoundError("No offer found for this listing")

            allowed_actor = listing.seller_id if step.party == "seller" else offer.buyer_id
            if actor.id != allowed_actor:
                current_app.logger.warning(
                    "Offer action %s on listing %s denied for user %s", action, listing_id, actor.id
                )
                raise ForbiddenError(step.forbidden_message)

            current = OfferStatus(offer.status)
            if current != step.source:
                raise InvalidStateError(step.state_message)
            validate_transition(current, step.target)

            offer = self.store.update(offer, now=self.clock(), **changes)
            transaction_price = getattr(offer, step.price_field) if step.price_field else None
            result = self._result(action, offer, step.success_message, transaction_price=transaction_price)

        current_app.logger.info(
            "Offer on listing %s moved %s -> %s by %s", listing_id, current.value, step.target.value, actor.id
        )
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status_for_listings(self, listing_ids: list[str], actor_id: str) -> dict:
        """
        Per-listing offer summary for listing cards. Prices are never
        included, so this is safe to show to non-participants.
        """
        statuses = {}
        for listing_id in listing_ids:
            offer = self.store.get(listing_id)
            if offer is None:
                statuses[listing_id] = {
                    "hasOffer": False,
                    "status": None,
                    "isUserBuyer": False,
                    "isUserSeller": False,
                }
            else:
                statuses[listing_id] = {
                    "hasOffer": True,
                    "status": offer.status,
                    "isUserBuyer": offer.buyer_id == actor_id,
                    "isUserSeller": offer.seller_id == actor_id,
                }
        return statuses

    def offers_for_user(self, actor_id: str) -> list[dict]:
        """Every offer the actor takes part in, newest activity first, tagged with userRole."""
        offers = []
        for offer in self.store.for_participant(actor_id):
            row = offer.to_dict()
            row["userRole"] = "buyer" if offer.buyer_id == actor_id else "seller"
            offers.append(row)
        return offers

    # ------------------------------------------------------------------

    @staticmethod
    def _result(action: str, offer: Offer, message: str, *, transaction_price: Optional[int] = None) -> dict:
        result = {
            "success": True,
            "action": action,
            "offer": offer.to_dict(),
            "message": message,
        }
        if transaction_price is not None:
            result["shouldCreateTransaction"] = True
            result["transactionPrice"] = transaction_price
        return result

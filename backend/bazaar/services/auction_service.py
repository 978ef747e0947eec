# Overview: Single-slot timed auction; lifecycle, bid floor and anti-sniping extension.

"""
Auction lifecycle and bidding.

SLOT LIFECYCLE:
    absent --start--> active --end--> absent

Only operators (scope "admin" or "operator") start or end the auction.
Any authenticated user with a verified email may bid while
start_time <= now <= end_time.

BID FLOOR:
    current_high = last accepted bid, or max(starting_bid, 1) before any bid
    min_next     = current_high + min_increment
A bid below min_next is rejected, so accepted amounts strictly increase and
the last bid in the ledger is always the highest.

ANTI-SNIPING:
A bid accepted with <= AUCTION_SNIPE_WINDOW_SECONDS left pushes end_time out
by AUCTION_SNIPE_EXTENSION_SECONDS. The window is measured against the
current (possibly already extended) end time, so late bids keep ratcheting it.

reserve_price is informational. It is reported as met/unmet and never blocks
a bid.
"""

from __future__ import annotations

from datetime import datetime, timedelta
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
from ..models import CURRENT_SLOT, Auction, anonymize_bidder
from ..stores import AuctionStore
from ..time_utils import utcnow
from ..validation import (
    parse_optional_positive_int,
    parse_positive_int,
    parse_required_datetime,
    require_fields,
)
from .concurrency import KeyedLocks


DEFAULT_SNIPE_WINDOW_SECONDS = 60
DEFAULT_SNIPE_EXTENSION_SECONDS = 20
DEFAULT_FEED_BID_LIMIT = 50
DEFAULT_HISTORY_BID_LIMIT = 100

REQUIRED_START_FIELDS = ["listingId", "auctionId", "startTimeISO", "endTimeISO"]


def require_operator(actor: Actor) -> None:
    if not actor.is_operator:
        current_app.logger.warning("Auction lifecycle change denied for user %s", actor.id)
        raise ForbiddenError("Forbidden: operator or admin scope required")


def minimum_next_bid(auction: Auction, current_high: Optional[int]) -> int:
    if current_high is None:
        current_high = max(auction.starting_bid or 1, 1)
    return current_high + (auction.min_increment or 1)


class AuctionService:

    def __init__(
        self,
        store: AuctionStore,
        gateway: MarketplaceGateway,
        locks: KeyedLocks,
        clock: Callable[[], datetime] = utcnow,
        *,
        snipe_window_seconds: int = DEFAULT_SNIPE_WINDOW_SECONDS,
        snipe_extension_seconds: int = DEFAULT_SNIPE_EXTENSION_SECONDS,
        feed_bid_limit: int = DEFAULT_FEED_BID_LIMIT,
        history_bid_limit: int = DEFAULT_HISTORY_BID_LIMIT,
    ):
        self.store = store
        self.gateway = gateway
        self.locks = locks
        self.clock = clock
        self.snipe_window = timedelta(seconds=snipe_window_seconds)
        self.snipe_extension = timedelta(seconds=snipe_extension_seconds)
        self.feed_bid_limit = feed_bid_limit
        self.history_bid_limit = history_bid_limit

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, actor: Actor, params: dict) -> dict:
        """
        Install a new auction in the slot.

        Args:
            actor: Must carry the admin or operator scope
            params: {listingId, auctionId, startTimeISO, endTimeISO,
                     startingBid?, minIncrement?, reservePrice?}

        Returns:
            {"success": True, "auction": {...}}

        Raises:
            ForbiddenError: Actor lacks both scopes
            ConflictError: An auction already occupies the slot
            InvalidInputError: Missing fields, bad datetimes, end <= start,
                or a non-positive numeric field
            NotFoundError: Listing unknown or without a seller

        WHY: Title and seller are copied from the listing at start so the
        auction reads never call the gateway.
        """
        require_operator(actor)

        if self.store.current() is not None:
            raise ConflictError("Another auction is already active")

        params = params or {}
        require_fields(params, REQUIRED_START_FIELDS)

        start_time = parse_required_datetime(params["startTimeISO"], "startTimeISO")
        end_time = parse_required_datetime(params["endTimeISO"], "endTimeISO")
        if end_time <= start_time:
            raise InvalidInputError("endTimeISO must be after startTimeISO")

        starting_bid = parse_optional_positive_int(params.get("startingBid"), "startingBid", default=1)
        min_increment = parse_optional_positive_int(params.get("minIncrement"), "minIncrement", default=1)
        reserve_price = parse_optional_positive_int(params.get("reservePrice"), "reservePrice", default=None)

        listing_id = str(params["listingId"])
        listing = self.gateway.resolve_listing(listing_id)

        with self.locks.hold("auction", CURRENT_SLOT), self.store.unit_of_work():
            auction = self.store.install(
                auction_id=str(params["auctionId"]),
                listing_id=listing_id,
                title=listing.title,
                seller_id=listing.seller_id,
                start_time=start_time,
                end_time=end_time,
                starting_bid=starting_bid,
                min_increment=min_increment,
                reserve_price=reserve_price,
                created_at=self.clock(),
            )
            snapshot = auction.to_dict()

        current_app.logger.info(
            "Auction %s started on listing %s by %s (%s -> %s)",
            snapshot["auctionId"], listing_id, actor.id, snapshot["startTimeISO"], snapshot["endTimeISO"],
        )
        return {"success": True, "auction": snapshot}

    def end(self, actor: Actor) -> dict:
        """
        Close the active auction. The winner is the last (and so highest) bid.
        The auction and its whole bid ledger are discarded.

        Returns:
            {"success": True, "auction": None} when the slot is empty, else
            {"success", "auctionEnded", "auction", "winner"} where winner is
            the last bid (userId, amount, createdAtISO) or None

        Raises:
            ForbiddenError: Actor lacks the admin and operator scopes
        """
        require_operator(actor)

        with self.locks.hold("auction", CURRENT_SLOT), self.store.unit_of_work():
            auction = self.store.current_for_update()
            if auction is None:
                return {"success": True, "auction": None}

            snapshot = auction.to_dict()
            highest = self.store.last_bid(auction)
            winner = highest.to_dict() if highest else None
            self.store.clear(auction)

        current_app.logger.info(
            "Auction %s ended by %s, winner=%s",
            snapshot["auctionId"], actor.id, winner["userId"] if winner else None,
        )
        return {"success": True, "auctionEnded": True, "auction": snapshot, "winner": winner}

    # ------------------------------------------------------------------
    # Bidding
    # ------------------------------------------------------------------

    def place_bid(self, actor: Actor, amount) -> dict:
        """
        Append a bid to the active auction's ledger.

        Args:
            actor: Bidder; must have a verified email
            amount: Bid in minor units

        Returns:
            {"success", "auction", "highBid", "highBidder", "minNextBid",
             "reserveMet", "bidsCount"}

        Raises:
            NotFoundError: No active auction
            InvalidInputError: amount invalid, or below the bid floor
            InvalidStateError: Before start or after end (end is inclusive)
            ForbiddenError: Email not verified

        WHY: The floor check, the append and the anti-sniping extension
        happen under the slot lock, so two equal bids cannot both be
        accepted and a rejected bid never moves the end time.
        """
        with self.locks.hold("auction", CURRENT_SLOT), self.store.unit_of_work():
            auction = self.store.current_for_update()
            if auction is None:
                raise NotFoundError("No active auction")

            amount = parse_positive_int(amount, "amount", message="Invalid amount")

            now = self.clock()
            if now < auction.start_time:
                raise InvalidStateError("Auction not started")
            if now > auction.end_time:
                raise InvalidStateError("Auction ended")

            if not actor.email_verified:
                raise ForbiddenError("Email not verified")

            last = self.store.last_bid(auction)
            min_next = minimum_next_bid(auction, last.amount if last else None)
            if amount < min_next:
                raise InvalidInputError(f"Bid must be at least {min_next}")

            self.store.append_bid(auction, user_id=actor.id, amount=amount, created_at=now)

            extended = False
            if auction.end_time - now <= self.snipe_window:
                self.store.extend(auction, auction.end_time + self.snipe_extension)
                extended = True

            reserve_met = amount >= auction.reserve_price if auction.reserve_price else True
            result = {
                "success": True,
                "auction": auction.to_dict(),
                "highBid": amount,
                "highBidder": anonymize_bidder(actor.id),
                "minNextBid": minimum_next_bid(auction, amount),
                "reserveMet": reserve_met,
                "bidsCount": self.store.bid_count(auction),
            }

        current_app.logger.info(
            "Bid %s accepted on auction %s from %s", amount, result["auction"]["auctionId"], actor.id
        )
        if extended:
            current_app.logger.info(
                "Auction %s extended to %s (late bid)",
                result["auction"]["auctionId"], result["auction"]["endTimeISO"],
            )
        return result

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    def current_auction(self) -> dict:
        auction = self.store.current()
        if auction is None:
            return {"success": True, "auction": None, "bids": []}
        bids = self.store.bids(auction, limit=self.feed_bid_limit)
        return {
            "success": True,
            "auction": auction.to_dict(),
            "bids": [b.to_public_dict() for b in bids],
        }

    def bid_history(self, limit: Optional[int] = None) -> dict:
        auction = self.store.current()
        if auction is None:
            return {"success": True, "bids": []}
        if limit is None or limit > self.history_bid_limit:
            limit = self.history_bid_limit
        bids = self.store.bids(auction, limit=limit)
        return {"success": True, "bids": [b.to_public_dict() for b in bids]}

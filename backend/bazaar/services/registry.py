# Overview: Wires stores, gateway and locks into the services held by the Flask app.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from flask import Flask, current_app

from ..gateway import MarketplaceGateway
from ..stores import AuctionStore, LikeStore, OfferStore
from ..time_utils import utcnow
from .auction_service import AuctionService
from .concurrency import KeyedLocks
from .like_service import LikeService
from .offer_service import OfferService


EXTENSION_KEY = "bazaar"


@dataclass
class ServiceRegistry:
    gateway: MarketplaceGateway
    locks: KeyedLocks
    offers: OfferService
    auctions: AuctionService
    likes: LikeService


def init_services(
    app: Flask,
    gateway: MarketplaceGateway,
    clock: Callable[[], datetime] = utcnow,
) -> ServiceRegistry:
    """Build one instance of each service for the app; they share a lock registry."""
    locks = KeyedLocks()
    registry = ServiceRegistry(
        gateway=gateway,
        locks=locks,
        offers=OfferService(OfferStore(), gateway, locks, clock),
        auctions=AuctionService(
            AuctionStore(),
            gateway,
            locks,
            clock,
            snipe_window_seconds=app.config["AUCTION_SNIPE_WINDOW_SECONDS"],
            snipe_extension_seconds=app.config["AUCTION_SNIPE_EXTENSION_SECONDS"],
            feed_bid_limit=app.config["AUCTION_FEED_BID_LIMIT"],
            history_bid_limit=app.config["AUCTION_HISTORY_BID_LIMIT"],
        ),
        likes=LikeService(LikeStore(), gateway, locks, clock),
    )
    app.extensions[EXTENSION_KEY] = registry
    return registry


def get_services() -> ServiceRegistry:
    return current_app.extensions[EXTENSION_KEY]

# backend/bazaar/routes/auctions.py
"""
Auction API routes.

- GET  /api/get-current-auction - active auction + 50 most recent bids (anonymized)
- GET  /api/get-bids            - up to 100 most recent bids (anonymized), ?limit=
- POST /api/place-bid           - {amount}; authenticated, email-verified users
- POST /api/start-auction       - operators only
- POST /api/end-auction         - operators only

Clients poll the two GET routes; nothing is pushed.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_any_scope
from ..errors import MarketplaceError
from ..gateway import OPERATOR_SCOPES
from ..services.registry import get_services
from ..validation import parse_optional_positive_int


auctions_bp = Blueprint("auctions", __name__, url_prefix="/api")

_OPERATOR_SCOPES = tuple(sorted(OPERATOR_SCOPES))


@auctions_bp.get("/get-current-auction")
def get_current_auction_route():
    try:
        return jsonify(get_services().auctions.current_auction()), 200
    except Exception:
        current_app.logger.exception("Failed to load current auction")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@auctions_bp.get("/get-bids")
def get_bids_route():
    try:
        limit = parse_optional_positive_int(request.args.get("limit"), "limit", default=None)
        return jsonify(get_services().auctions.bid_history(limit)), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load bids")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@auctions_bp.post("/place-bid")
@require_actor
def place_bid_route():
    """
    Place a bid on the active auction.

    Response:
        {
            "success": true,
            "auction": {...},        // endTimeISO may have moved (late bid)
            "highBid": 20,
            "highBidder": "User***ab",
            "minNextBid": 25,
            "reserveMet": true,
            "bidsCount": 3
        }
    """
    payload = request.get_json(silent=True) or {}
    try:
        result = get_services().auctions.place_bid(g.current_actor, payload.get("amount"))
        return jsonify(result), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to place bid")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@auctions_bp.post("/start-auction")
@require_actor
@require_any_scope(*_OPERATOR_SCOPES)
def start_auction_route():
    """
    Start the auction.

    Body: {listingId, auctionId, startTimeISO, endTimeISO, startingBid?, minIncrement?, reservePrice?}

    Error responses:
        403: actor lacks admin/operator scope
        409: an auction is already active
    """
    payload = request.get_json(silent=True) or {}
    try:
        result = get_services().auctions.start(g.current_actor, payload)
        return jsonify(result), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to start auction")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@auctions_bp.post("/end-auction")
@require_actor
@require_any_scope(*_OPERATOR_SCOPES)
def end_auction_route():
    """End the active auction. Returns {"success": true, "auction": null} when none is running."""
    try:
        result = get_services().auctions.end(g.current_actor)
        return jsonify(result), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to end auction")
        return jsonify({"success": False, "error": "Internal server error"}), 500

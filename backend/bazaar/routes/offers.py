# backend/bazaar/routes/offers.py
"""
Offer negotiation API routes.

- POST /api/make-offer   - every offer action: {listingId, action, offerPrice?, counterPrice?}
- GET  /api/get-offers   - ?type=listing&listingIds=... or ?type=user

SECURITY:
- All routes require an authenticated actor
- Buyer/seller identity comes from the session (g.current_actor), NOT from the body
- Listing cards (type=listing) never expose prices
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import MarketplaceError, InvalidInputError
from ..services.registry import get_services


offers_bp = Blueprint("offers", __name__, url_prefix="/api")


def _listing_ids_from_query() -> list[str]:
    """Accept ?listingIds=a&listingIds=b as well as ?listingIds=a,b."""
    ids = []
    for raw in request.args.getlist("listingIds"):
        ids.extend(part.strip() for part in raw.split(",") if part.strip())
    return ids


@offers_bp.post("/make-offer")
@require_actor
def make_offer_route():
    """
    Apply one offer action.

    Actions: make_offer, accept_offer, reject_offer, counter_offer,
    accept_counter, decline_counter.

    Response:
        {
            "success": true,
            "action": "...",
            "offer": {...},
            "message": "...",
            "shouldCreateTransaction": true,   // accept paths only
            "transactionPrice": 8000           // accept paths only
        }

    Error responses ({"success": false, "error": ..., "reason": ...}):
        400: invalid input / invalid state
        401: not authenticated
        403: actor is not the seller/buyer the action needs
        404: listing or offer not found
        409: an offer is already pending
    """
    payload = request.get_json(silent=True) or {}
    try:
        result = get_services().offers.perform(g.current_actor, payload)
        return jsonify(result), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process offer action")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@offers_bp.get("/get-offers")
@require_actor
def get_offers_route():
    """
    Offer summaries.

    type=listing: {"success", "type": "listing", "offerStatuses": {id: {hasOffer, status, isUserBuyer, isUserSeller}}}
    type=user:    {"success", "type": "user", "offers": [{...offer, userRole}]}
    """
    offer_type = request.args.get("type")
    try:
        offers = get_services().offers
        actor = g.current_actor

        if offer_type == "listing":
            listing_ids = _listing_ids_from_query()
            if not listing_ids:
                raise InvalidInputError("listingIds parameter required for listing type")
            return jsonify({
                "success": True,
                "type": "listing",
                "offerStatuses": offers.status_for_listings(listing_ids, actor.id),
            }), 200

        if offer_type == "user":
            return jsonify({
                "success": True,
                "type": "user",
                "offers": offers.offers_for_user(actor.id),
            }), 200

        raise InvalidInputError('Invalid type parameter. Must be "listing" or "user"')

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load offers")
        return jsonify({"success": False, "error": "Internal server error"}), 500

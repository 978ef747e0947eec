# backend/bazaar/routes/likes.py
"""
Listing like API routes.

- POST /api/like-listing          - {listingId, action: like|unlike}
- GET  /api/get-liked-listings    - ?userId=
- POST /api/check-liked-listings  - {listingIds: [...]}, for the current user
- POST /api/get-listing-likes     - {listingIds: [...]}, public counts
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..errors import MarketplaceError
from ..services.registry import get_services


likes_bp = Blueprint("likes", __name__, url_prefix="/api")


@likes_bp.post("/like-listing")
@require_actor
def like_listing_route():
    payload = request.get_json(silent=True) or {}
    try:
        result = get_services().likes.toggle(
            g.current_actor, payload.get("listingId"), payload.get("action")
        )
        return jsonify(result), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update like")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@likes_bp.get("/get-liked-listings")
def get_liked_listings_route():
    try:
        result = get_services().likes.liked_listings(request.args.get("userId"))
        return jsonify(result), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load liked listings")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@likes_bp.post("/check-liked-listings")
@require_actor
def check_liked_listings_route():
    payload = request.get_json(silent=True) or {}
    try:
        result = get_services().likes.check_liked(g.current_actor, payload.get("listingIds"))
        return jsonify(result), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to check liked listings")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@likes_bp.post("/get-listing-likes")
def get_listing_likes_route():
    payload = request.get_json(silent=True) or {}
    try:
        result = get_services().likes.like_counts(payload.get("listingIds"))
        return jsonify(result), 200

    except MarketplaceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load like counts")
        return jsonify({"success": False, "error": "Internal server error"}), 500

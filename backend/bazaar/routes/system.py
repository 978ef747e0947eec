# backend/bazaar/routes/system.py
"""
System health and version endpoints.

Health checks query each store table; version reports deployment details
without exposing secrets.
"""

import sys
import time
from flask import Blueprint, current_app

from ..extensions import db
from ..models import Offer, Auction, Bid, ListingLike
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_store_health(name: str, *models) -> dict:
    """
    Round-trip each table of one store. Returns dict with status and row counts.
    """
    start_time = time.time()
    try:
        details = {
            model.__tablename__: db.session.query(model).count()
            for model in models
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("%s store health check failed", name)
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Health check for the offer, auction and like stores.

    Returns:
    - 200: all stores reachable
    - 503: one or more stores unreachable
    """
    start_time = time.time()

    checks = {
        "offers": check_store_health("offer", Offer),
        "auctions": check_store_health("auction", Auction, Bid),
        "likes": check_store_health("like", ListingLike),
    }

    unhealthy = any(check["status"] == "unhealthy" for check in checks.values())
    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": checks,
    }
    return response, 503 if unhealthy else 200


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }

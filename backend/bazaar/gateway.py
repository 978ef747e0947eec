# Overview: Identity & Listing Gateway, the narrow boundary to the marketplace platform.

"""
The offer, auction and like services never talk to the marketplace platform
directly. They go through a MarketplaceGateway, which answers four questions:

- who is the current actor (id, email verification, scopes)?
- who sells a listing, at what price, under what title?
- what is stored in a user's private profile field?
- please store this value in a user's private profile field.

InMemoryGateway is the implementation the app ships with. It is also the one
the test suite seeds with users, sessions and listings.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import NotFoundError, UnauthenticatedError


OPERATOR_SCOPES = frozenset({"admin", "operator"})


@dataclass(frozen=True)
class Actor:
    id: str
    email_verified: bool = False
    scopes: frozenset[str] = field(default_factory=frozenset)

    def has_any_scope(self, *scopes: str) -> bool:
        # Exact, case-sensitive match against the flat scope set
        return any(s in self.scopes for s in scopes)

    @property
    def is_operator(self) -> bool:
        return self.has_any_scope(*OPERATOR_SCOPES)


@dataclass(frozen=True)
class ListingInfo:
    id: str
    seller_id: str
    price: int
    title: Optional[str]
    document: dict

    def to_dict(self) -> dict:
        return self.document


def _dig(document: Any, *path: str) -> Any:
    node = document
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def extract_seller_id(document: dict) -> Optional[str]:
    """
    Resolve the seller id from a listing document.

    Listing payloads reach us in a few shapes (author included inline, or
    only referenced through relationships, with ids either wrapped in
    {"uuid": ...} or plain). Returns None when no shape yields an id.
    """
    candidates = (
        _dig(document, "author", "id", "uuid"),
        _dig(document, "author", "id"),
        _dig(document, "relationships", "author", "data", "id", "uuid"),
        _dig(document, "relationships", "author", "data", "id"),
    )
    for candidate in candidates:
        if isinstance(candidate, (str, int)) and not isinstance(candidate, bool) and str(candidate):
            return str(candidate)
    return None


def extract_price(document: dict) -> int:
    """Listing price amount in minor units; 0 when the listing has none."""
    amount = _dig(document, "attributes", "price", "amount")
    if amount is None:
        amount = document.get("price") if isinstance(document, dict) else None
    if isinstance(amount, dict):
        amount = amount.get("amount")
    try:
        return int(amount or 0)
    except (TypeError, ValueError):
        return 0


def extract_title(document: dict) -> Optional[str]:
    return _dig(document, "attributes", "title") or document.get("title")


def listing_id_of(document: dict) -> Optional[str]:
    raw = document.get("id")
    if isinstance(raw, dict):
        raw = raw.get("uuid")
    return str(raw) if raw else None


class MarketplaceGateway:
    """Interface the services depend on. Subclasses talk to a real platform."""

    def resolve_current_actor(self, token: Optional[str]) -> Actor:
        raise NotImplementedError

    def resolve_listing(self, listing_id: str) -> ListingInfo:
        raise NotImplementedError

    def read_user_private_field(self, user_id: str, field_name: str) -> Any:
        raise NotImplementedError

    def write_user_private_field(self, user_id: str, field_name: str, value: Any) -> None:
        raise NotImplementedError

    def _listing_from_document(self, listing_id: str, document: dict) -> ListingInfo:
        seller_id = extract_seller_id(document)
        if not seller_id:
            raise NotFoundError("Could not find listing owner")
        return ListingInfo(
            id=listing_id,
            seller_id=seller_id,
            price=extract_price(document),
            title=extract_title(document),
            document=document,
        )


class InMemoryGateway(MarketplaceGateway):
    """
    Process-local stand-in for the marketplace platform.

    Users carry an email verification flag, a scope set and private profile
    data. Sessions map bearer tokens to user ids. Listings are kept as the raw
    documents the platform would return.
    """

    def __init__(self):
        self._users: dict[str, dict] = {}
        self._sessions: dict[str, str] = {}
        self._listings: dict[str, dict] = {}

    # -- seeding ---------------------------------------------------------

    def add_user(
        self,
        user_id: str,
        *,
        email_verified: bool = True,
        scopes: Optional[list[str]] = None,
        private_data: Optional[dict] = None,
        token: Optional[str] = None,
    ) -> None:
        self._users[user_id] = {
            "email_verified": bool(email_verified),
            "scopes": frozenset(scopes or []),
            "private_data": dict(private_data or {}),
        }
        if token:
            self._sessions[token] = user_id

    def add_session(self, token: str, user_id: str) -> None:
        if user_id not in self._users:
            raise NotFoundError(f"User {user_id} not found")
        self._sessions[token] = user_id

    def add_listing(self, document: dict) -> str:
        listing_id = listing_id_of(document)
        if not listing_id:
            raise ValueError("Listing document needs an id")
        self._listings[listing_id] = copy.deepcopy(document)
        return listing_id

    def remove_listing(self, listing_id: str) -> None:
        self._listings.pop(listing_id, None)

    @classmethod
    def from_seed_file(cls, path: str) -> "InMemoryGateway":
        """
        Load users, sessions and listings from a JSON file:

            {"users": [{"id": "u1", "emailVerified": true, "scopes": ["admin"],
                        "token": "t1", "privateData": {}}],
             "listings": [{"id": "l1", "author": {"id": "u1"}, ...}]}
        """
        with open(path, encoding="utf-8") as fh:
            seed = json.load(fh)

        gateway = cls()
        for user in seed.get("users", []):
            gateway.add_user(
                str(user["id"]),
                email_verified=user.get("emailVerified", True),
                scopes=user.get("scopes"),
                private_data=user.get("privateData"),
                token=user.get("token"),
            )
        for document in seed.get("listings", []):
            gateway.add_listing(document)
        return gateway

    # -- MarketplaceGateway ----------------------------------------------

    def resolve_current_actor(self, token: Optional[str]) -> Actor:
        user_id = self._sessions.get(token) if token else None
        if not user_id or user_id not in self._users:
            raise UnauthenticatedError("Authentication required")
        user = self._users[user_id]
        return Actor(id=user_id, email_verified=user["email_verified"], scopes=user["scopes"])

    def resolve_listing(self, listing_id: str) -> ListingInfo:
        document = self._listings.get(str(listing_id))
        if document is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        return self._listing_from_document(str(listing_id), copy.deepcopy(document))

    def read_user_private_field(self, user_id: str, field_name: str) -> Any:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return copy.deepcopy(user["private_data"].get(field_name))

    def write_user_private_field(self, user_id: str, field_name: str, value: Any) -> None:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        user["private_data"][field_name] = copy.deepcopy(value)

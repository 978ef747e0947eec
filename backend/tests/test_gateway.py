# Overview: Listing document parsing and the in-memory marketplace gateway.

import json

import pytest

from bazaar.errors import NotFoundError, UnauthenticatedError
from bazaar.gateway import (
    Actor,
    InMemoryGateway,
    extract_price,
    extract_seller_id,
    extract_title,
    listing_id_of,
)

from conftest import BUYER, CHAIR, LAMP, OPERATOR, ORPHAN, SELLER, TOKENS


class TestDocumentParsing:

    @pytest.mark.parametrize("document", [
        {"author": {"id": {"uuid": "u-1"}}},
        {"author": {"id": "u-1"}},
        {"relationships": {"author": {"data": {"id": {"uuid": "u-1"}}}}},
        {"relationships": {"author": {"data": {"id": "u-1"}}}},
    ])
    def test_seller_id_shapes(self, document):
        assert extract_seller_id(document) == "u-1"

    def test_inline_author_wins(self):
        document = {
            "author": {"id": "inline"},
            "relationships": {"author": {"data": {"id": "related"}}},
        }
        assert extract_seller_id(document) == "inline"

    @pytest.mark.parametrize("document", [{}, {"author": {}}, {"author": {"id": ""}}, {"author": "u-1"}])
    def test_seller_id_missing(self, document):
        assert extract_seller_id(document) is None

    def test_price(self):
        assert extract_price({"attributes": {"price": {"amount": 2500}}}) == 2500
        assert extract_price({"price": {"amount": 700}}) == 700
        assert extract_price({"attributes": {}}) == 0

    def test_title(self):
        assert extract_title({"attributes": {"title": "Lamp"}}) == "Lamp"
        assert extract_title({"title": "Chair"}) == "Chair"
        assert extract_title({}) is None

    def test_listing_id(self):
        assert listing_id_of({"id": {"uuid": "l-1"}}) == "l-1"
        assert listing_id_of({"id": "l-2"}) == "l-2"
        assert listing_id_of({}) is None


class TestInMemoryGateway:

    def test_resolve_actor(self, gateway):
        actor = gateway.resolve_current_actor(TOKENS[OPERATOR])

        assert actor.id == OPERATOR
        assert actor.email_verified is True
        assert actor.is_operator

    @pytest.mark.parametrize("token", [None, "", "unknown"])
    def test_resolve_actor_unauthenticated(self, gateway, token):
        with pytest.raises(UnauthenticatedError):
            gateway.resolve_current_actor(token)

    def test_resolve_listing(self, gateway):
        lamp = gateway.resolve_listing(LAMP)
        chair = gateway.resolve_listing(CHAIR)

        assert (lamp.seller_id, lamp.price, lamp.title) == (SELLER, 10000, "Brass Desk Lamp")
        assert (chair.seller_id, chair.price, chair.title) == (SELLER, 4500, "Oak Chair")

    def test_listing_without_owner(self, gateway):
        with pytest.raises(NotFoundError, match="Could not find listing owner"):
            gateway.resolve_listing(ORPHAN)

    def test_unknown_listing(self, gateway):
        with pytest.raises(NotFoundError):
            gateway.resolve_listing("listing-x")

    def test_private_fields_are_copied(self, gateway):
        gateway.write_user_private_field(BUYER, "likedListings", [LAMP])

        value = gateway.read_user_private_field(BUYER, "likedListings")
        value.append(CHAIR)

        assert gateway.read_user_private_field(BUYER, "likedListings") == [LAMP]

    def test_private_field_unknown_user(self, gateway):
        with pytest.raises(NotFoundError):
            gateway.read_user_private_field("nobody", "likedListings")
        with pytest.raises(NotFoundError):
            gateway.write_user_private_field("nobody", "likedListings", [])

    def test_add_session(self, gateway):
        gateway.add_session("second-buyer-token", BUYER)
        assert gateway.resolve_current_actor("second-buyer-token").id == BUYER

        with pytest.raises(NotFoundError):
            gateway.add_session("t", "nobody")

    def test_from_seed_file(self, tmp_path):
        seed = {
            "users": [
                {"id": "u1", "token": "t1", "scopes": ["admin"], "privateData": {"likedListings": ["l1"]}},
                {"id": "u2", "token": "t2", "emailVerified": False},
            ],
            "listings": [
                {"id": "l1", "author": {"id": "u1"}, "attributes": {"title": "Kettle", "price": {"amount": 900}}},
            ],
        }
        path = tmp_path / "seed.json"
        path.write_text(json.dumps(seed), encoding="utf-8")

        gw = InMemoryGateway.from_seed_file(str(path))

        assert gw.resolve_current_actor("t1") == Actor(id="u1", email_verified=True, scopes=frozenset({"admin"}))
        assert gw.resolve_current_actor("t2").email_verified is False
        assert gw.resolve_listing("l1").seller_id == "u1"
        assert gw.read_user_private_field("u1", "likedListings") == ["l1"]


class TestActor:

    def test_scopes_are_case_sensitive(self):
        actor = Actor(id="u", scopes=frozenset({"Admin"}))
        assert not actor.has_any_scope("admin")
        assert not actor.is_operator

    def test_any_scope(self):
        actor = Actor(id="u", scopes=frozenset({"operator", "reader"}))
        assert actor.has_any_scope("admin", "operator")
        assert actor.is_operator

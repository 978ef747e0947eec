"""
HTTP tests for the auction routes.

The clock fixture starts at 12:00 UTC; auctions below run 11:00 to 13:00.
"""

import pytest

from conftest import ADMIN, BUYER, LAMP, OPERATOR, OTHER_BUYER, SELLER, UNVERIFIED


START = "2026-03-01T11:00:00Z"
END = "2026-03-01T13:00:00Z"


def _start_body(**overrides):
    body = {
        "listingId": LAMP,
        "auctionId": "auction-001",
        "startTimeISO": START,
        "endTimeISO": END,
        "startingBid": 10,
        "minIncrement": 5,
    }
    body.update(overrides)
    return body


@pytest.fixture
def running(client, headers):
    """An auction on the lamp, started by the operator."""
    response = client.post("/api/start-auction", json=_start_body(), headers=headers(OPERATOR))
    assert response.status_code == 200
    return response.json["auction"]


def _bid(client, headers, user_id, amount):
    return client.post("/api/place-bid", json={"amount": amount}, headers=headers(user_id))


class TestStartAuctionRoute:

    def test_operator_starts(self, client, headers):
        response = client.post("/api/start-auction", json=_start_body(), headers=headers(OPERATOR))

        assert response.status_code == 200
        auction = response.json["auction"]
        assert auction["auctionId"] == "auction-001"
        assert auction["listingId"] == LAMP
        assert auction["sellerId"] == SELLER
        assert auction["title"] == "Brass Desk Lamp"
        assert auction["startTimeISO"] == "2026-03-01T11:00:00.000Z"
        assert auction["endTimeISO"] == "2026-03-01T13:00:00.000Z"

    def test_admin_starts(self, client, headers):
        response = client.post("/api/start-auction", json=_start_body(), headers=headers(ADMIN))
        assert response.status_code == 200

    def test_regular_user_forbidden(self, client, headers):
        response = client.post("/api/start-auction", json=_start_body(), headers=headers(SELLER))

        assert response.status_code == 403
        assert response.json["reason"] == "forbidden"
        assert set(response.json["required_scopes"]) == {"admin", "operator"}

    def test_requires_authentication(self, client):
        assert client.post("/api/start-auction", json=_start_body()).status_code == 401

    def test_second_auction_conflicts(self, client, headers, running):
        response = client.post(
            "/api/start-auction", json=_start_body(auctionId="auction-002"), headers=headers(ADMIN)
        )
        assert response.status_code == 409
        assert response.json["reason"] == "conflict"

    def test_missing_fields(self, client, headers):
        response = client.post("/api/start-auction", json={"listingId": LAMP}, headers=headers(OPERATOR))

        assert response.status_code == 400
        assert "auctionId" in response.json["error"]
        assert "startTimeISO" in response.json["error"]

    def test_end_before_start(self, client, headers):
        response = client.post(
            "/api/start-auction", json=_start_body(endTimeISO=START), headers=headers(OPERATOR)
        )
        assert response.status_code == 400

    def test_unknown_listing(self, client, headers):
        response = client.post(
            "/api/start-auction", json=_start_body(listingId="listing-x"), headers=headers(OPERATOR)
        )
        assert response.status_code == 404


class TestPlaceBidRoute:

    def test_no_auction(self, client, headers):
        response = _bid(client, headers, BUYER, 10)
        assert response.status_code == 404
        assert response.json["error"] == "No active auction"

    def test_bid(self, client, headers, running):
        response = _bid(client, headers, BUYER, 15)

        assert response.status_code == 200
        body = response.json
        assert body["highBid"] == 15
        assert body["highBidder"] == "User***42"
        assert body["minNextBid"] == 20
        assert body["bidsCount"] == 1
        assert body["reserveMet"] is True

    def test_below_floor(self, client, headers, running):
        _bid(client, headers, BUYER, 15)
        response = _bid(client, headers, OTHER_BUYER, 19)

        assert response.status_code == 400
        assert response.json["error"] == "Bid must be at least 20"

    def test_unverified_email(self, client, headers, running):
        response = _bid(client, headers, UNVERIFIED, 15)
        assert response.status_code == 403
        assert response.json["error"] == "Email not verified"

    def test_after_end(self, client, headers, clock, running):
        clock.advance(hours=2)
        response = _bid(client, headers, BUYER, 15)

        assert response.status_code == 400
        assert response.json["reason"] == "invalid_state"

    @pytest.mark.parametrize("amount", [None, "ten", 0, 12.5, True])
    def test_invalid_amount(self, client, headers, running, amount):
        response = _bid(client, headers, BUYER, amount)
        assert response.status_code == 400
        assert response.json["error"] == "Invalid amount"

    def test_requires_authentication(self, client, running):
        assert client.post("/api/place-bid", json={"amount": 10}).status_code == 401

    def test_late_bid_extends(self, client, headers, clock, running):
        clock.advance(minutes=59, seconds=30)
        response = _bid(client, headers, BUYER, 15)

        assert response.json["auction"]["endTimeISO"] == "2026-03-01T13:00:20.000Z"


class TestReadRoutes:

    def test_current_auction_empty(self, client):
        response = client.get("/api/get-current-auction")
        assert response.status_code == 200
        assert response.json == {"success": True, "auction": None, "bids": []}

    def test_current_auction_is_public_and_anonymized(self, client, headers, running):
        _bid(client, headers, BUYER, 15)
        _bid(client, headers, OTHER_BUYER, 20)

        response = client.get("/api/get-current-auction")

        assert response.status_code == 200
        assert response.json["auction"]["auctionId"] == "auction-001"
        bids = response.json["bids"]
        assert [b["amount"] for b in bids] == [15, 20]
        assert [b["bidder"] for b in bids] == ["User***42", "User***77"]
        assert all("userId" not in b for b in bids)

    def test_get_bids_limit(self, client, headers, running):
        for amount in (15, 20, 25, 30):
            _bid(client, headers, BUYER, amount)

        response = client.get("/api/get-bids?limit=2")

        assert response.status_code == 200
        assert [b["amount"] for b in response.json["bids"]] == [25, 30]

    def test_get_bids_bad_limit(self, client):
        response = client.get("/api/get-bids?limit=abc")
        assert response.status_code == 400


class TestEndAuctionRoute:

    def test_end_reports_winner(self, client, headers, running):
        _bid(client, headers, BUYER, 15)
        _bid(client, headers, OTHER_BUYER, 20)

        response = client.post("/api/end-auction", headers=headers(OPERATOR))

        assert response.status_code == 200
        assert response.json["auctionEnded"] is True
        assert response.json["winner"]["userId"] == OTHER_BUYER
        assert response.json["winner"]["amount"] == 20
        assert client.get("/api/get-current-auction").json["auction"] is None

    def test_end_without_auction(self, client, headers):
        response = client.post("/api/end-auction", headers=headers(ADMIN))
        assert response.status_code == 200
        assert response.json == {"success": True, "auction": None}

    def test_regular_user_forbidden(self, client, headers, running):
        response = client.post("/api/end-auction", headers=headers(BUYER))
        assert response.status_code == 403
        assert client.get("/api/get-current-auction").json["auction"] is not None

    def test_slot_free_after_end(self, client, headers, running):
        client.post("/api/end-auction", headers=headers(OPERATOR))
        response = client.post(
            "/api/start-auction", json=_start_body(auctionId="auction-002"), headers=headers(OPERATOR)
        )

        assert response.status_code == 200
        assert client.get("/api/get-bids").json["bids"] == []

"""Tests for the /api/v1/listings routes."""

from tests.conftest import SELLER_ID, auth_headers

LISTINGS_URL = "/api/v1/listings"


def test_list_active_only(client, make_listing):
    active = make_listing(price_cents=100)
    make_listing(price_cents=200, status="sold")
    make_listing(price_cents=300, status="cancelled")

    response = client.get(LISTINGS_URL)

    assert response.status_code == 200
    assert [listing["id"] for listing in response.json()] == [active["id"]]


def test_get_listing_not_found(client):
    response = client.get(f"{LISTINGS_URL}/missing")

    assert response.status_code == 404
    assert response.json()["detail"] == "Listing not found"


def test_my_listings_include_every_state(client, make_listing):
    make_listing(status="active")
    make_listing(status="sold")

    response = client.get(f"{LISTINGS_URL}/mine", headers=auth_headers("seller-token"))

    assert response.status_code == 200
    assert sorted(listing["status"] for listing in response.json()) == ["active", "sold"]


def test_create_listing(client, vision, fake_db):
    response = client.post(
        LISTINGS_URL,
        json={"visualization_id": vision["id"], "price_cents": 1500},
        headers=auth_headers("seller-token"),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "active"
    assert body["seller_id"] == SELLER_ID
    assert body["price_cents"] == 1500
    assert len(fake_db.tables["visualization_listings"]) == 1


def test_create_free_listing_allowed(client, vision):
    response = client.post(
        LISTINGS_URL,
        json={"visualization_id": vision["id"], "price_cents": 0},
        headers=auth_headers("seller-token"),
    )

    assert response.status_code == 201
    assert response.json()["price_cents"] == 0


def test_create_listing_rejects_price_below_minimum(client, vision):
    response = client.post(
        LISTINGS_URL,
        json={"visualization_id": vision["id"], "price_cents": 50},
        headers=auth_headers("seller-token"),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Price must be at least $1.00"


def test_create_listing_requires_ownership(client, vision):
    response = client.post(
        LISTINGS_URL,
        json={"visualization_id": vision["id"], "price_cents": 500},
        headers=auth_headers("buyer-token"),
    )

    assert response.status_code == 403


def test_create_listing_requires_premium(client, vision, fake_db):
    fake_db.premium_users.discard(SELLER_ID)

    response = client.post(
        LISTINGS_URL,
        json={"visualization_id": vision["id"], "price_cents": 500},
        headers=auth_headers("seller-token"),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Premium membership required"
    assert fake_db.mutations == []


def test_create_listing_rejects_second_active_listing(client, vision, make_listing):
    make_listing()

    response = client.post(
        LISTINGS_URL,
        json={"visualization_id": vision["id"], "price_cents": 500},
        headers=auth_headers("seller-token"),
    )

    assert response.status_code == 409


def test_create_listing_respects_transfer_limit(client, vision, fake_db):
    fake_db.remaining_transfers[vision["id"]] = 0

    response = client.post(
        LISTINGS_URL,
        json={"visualization_id": vision["id"], "price_cents": 500},
        headers=auth_headers("seller-token"),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Transfer limit reached (max 3 per 24 hours)"


def test_update_price(client, make_listing, fake_db):
    listing = make_listing(price_cents=500)

    response = client.patch(
        f"{LISTINGS_URL}/{listing['id']}",
        json={"price_cents": 750},
        headers=auth_headers("seller-token"),
    )

    assert response.status_code == 200
    assert fake_db.row("visualization_listings", listing["id"])["price_cents"] == 750


def test_update_price_only_by_seller(client, make_listing):
    listing = make_listing(price_cents=500)

    response = client.patch(
        f"{LISTINGS_URL}/{listing['id']}",
        json={"price_cents": 750},
        headers=auth_headers("buyer-token"),
    )

    assert response.status_code == 403


def test_cancel_listing(client, make_listing, fake_db):
    listing = make_listing()

    response = client.post(f"{LISTINGS_URL}/{listing['id']}/cancel", headers=auth_headers("seller-token"))

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert fake_db.row("visualization_listings", listing["id"])["status"] == "cancelled"


def test_cannot_cancel_sold_listing(client, make_listing):
    listing = make_listing(status="sold")

    response = client.post(f"{LISTINGS_URL}/{listing['id']}/cancel", headers=auth_headers("seller-token"))

    assert response.status_code == 400
    assert response.json()["detail"] == "Listing is sold"

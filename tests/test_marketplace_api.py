"""
tests.test_marketplace_api

End-to-end flows through the HTTP API: login, role gates, ownership, query shaping,
stale credentials and reviews.
"""

from __future__ import annotations

from datetime import timedelta

import httpx
import pytest
from fastapi import FastAPI

from helpers import bearer, create_admin, login, product_payload, register
from marketplace_api.db.models import utcnow
from marketplace_api.db.repositories.users import UserRepo
from marketplace_api.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"
    assert r.headers["x-request-id"]


@pytest.mark.asyncio
async def test_login_then_role_gate(client: httpx.AsyncClient) -> None:
    await register(client, email="cli@example.com", role="client", password="client-pass")
    await register(client, email="sel@example.com", role="seller", password="seller-pass")

    r = await client.post(
        "/api/auth/login", json={"email": "cli@example.com", "password": "wrong-pass"}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "invalid_credentials"
    assert r.headers["www-authenticate"] == "Bearer"

    client_token = await login(client, email="cli@example.com", password="client-pass")
    r = await client.post("/api/product", json=product_payload(), headers=bearer(client_token))
    assert r.status_code == 403

    seller_token = await login(client, email="SEL@example.com ", password="seller-pass")
    r = await client.post("/api/product", json=product_payload(), headers=bearer(seller_token))
    assert r.status_code == 201, r.text
    product = r.json()["data"]["product"]
    assert product["slug"] == "batik-shirt"
    assert product["seller_location"] == "unknown"
    assert "version" not in product


@pytest.mark.asyncio
async def test_login_requires_both_fields(client: httpx.AsyncClient) -> None:
    r = await client.post("/api/auth/login", json={"email": "a@example.com"})
    assert r.status_code == 400
    assert r.json()["detail"] == "email_and_password_required"


@pytest.mark.asyncio
async def test_register_rejects_admin_and_duplicates(client: httpx.AsyncClient) -> None:
    r = await client.post(
        "/api/auth",
        json={"name": "Eve", "email": "eve@example.com", "password": "pw-123456", "role": "admin"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "invalid_role"

    body = await register(client, email="eve@example.com", role="seller", name="Eve")
    assert body["user"]["seller_info"]["business_name"] == "Eve's Business"
    r = await client.post(
        "/api/auth",
        json={"name": "Eve", "email": "eve@example.com", "password": "pw-123456"},
    )
    assert r.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Token abc"}, {"Authorization": "Bearer not-a-jwt"}],
)
async def test_protected_routes_require_bearer_token(
    client: httpx.AsyncClient, headers: dict[str, str]
) -> None:
    r = await client.get("/api/product", headers=headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_and_logout(client: httpx.AsyncClient) -> None:
    token = (await register(client, email="me@example.com", name="Dewi"))["token"]

    r = await client.get("/api/auth/me", headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["name"] == "Dewi"
    assert "password_hash" not in r.json()

    r = await client.get("/api/auth/logout", headers=bearer(token))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_collection_read_applies_query_features(client: httpx.AsyncClient) -> None:
    token = (await register(client, email="shop@example.com", role="seller"))["token"]
    for name, price, category in [
        ("Rice Crackers", 40, "food"),
        ("Rattan Basket", 150, "craft"),
        ("Batik Shirt", 250, "fashion"),
        ("Silver Ring", 400, "fashion"),
    ]:
        r = await client.post(
            "/api/product",
            json=product_payload(name=name, price=price, category=category),
            headers=bearer(token),
        )
        assert r.status_code == 201, r.text

    r = await client.get(
        "/api/product",
        params={
            "price[gte]": "100",
            "price[ne]": "150",
            "sort": "-price,name",
            "fields": "name,price",
            "page": "1",
            "limit": "2",
        },
        headers=bearer(token),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["results"] == 2
    rows = body["data"]["products"]
    assert [row["name"] for row in rows] == ["Silver Ring", "Batik Shirt"]
    assert set(rows[0]) == {"id", "name", "price"}

    r = await client.get(
        "/api/product",
        params={"category": "fashion", "sort": "price", "page": "2", "limit": "1"},
        headers=bearer(token),
    )
    assert [row["name"] for row in r.json()["data"]["products"]] == ["Silver Ring"]

    r = await client.get("/api/product/product-top", headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["results"] == 4


@pytest.mark.asyncio
async def test_strict_mode_rejects_unknown_operator(
    settings: Settings, client: httpx.AsyncClient
) -> None:
    token = (await register(client, email="strict@example.com"))["token"]
    settings.query_strict = True

    r = await client.get("/api/product", params={"price[ne]": "1"}, headers=bearer(token))
    assert r.status_code == 400
    assert r.json()["detail"].startswith("unsupported_filter_operator")


@pytest.mark.asyncio
async def test_ownership_on_update_and_delete(app: FastAPI, client: httpx.AsyncClient) -> None:
    owner = (await register(client, email="owner@example.com", role="seller"))["token"]
    other = (await register(client, email="other@example.com", role="seller"))["token"]
    buyer = (await register(client, email="buyer@example.com", role="client"))["token"]
    await create_admin(app, email="root@example.com")
    admin = await login(client, email="root@example.com", password="admin-pass")

    r = await client.post("/api/product", json=product_payload(), headers=bearer(owner))
    product_id = r.json()["data"]["product"]["id"]
    url = f"/api/product/{product_id}"

    r = await client.patch(url, json={"stock": 1}, headers=bearer(other))
    assert r.status_code == 403

    r = await client.patch(url, json={"discount_price": 200}, headers=bearer(owner))
    assert r.status_code == 200
    assert r.json()["data"]["product"]["discount_percentage"] == 20

    r = await client.patch(url, json={"discount_price": 300}, headers=bearer(owner))
    assert r.status_code == 400

    r = await client.patch(url, json={"is_featured": True}, headers=bearer(admin))
    assert r.status_code == 200
    assert r.json()["data"]["product"]["is_featured"] is True

    r = await client.delete(url, headers=bearer(buyer))
    assert r.status_code == 403
    r = await client.delete(url, headers=bearer(other))
    assert r.status_code == 403

    missing = "/api/product/00000000-0000-0000-0000-000000000000"
    r = await client.patch(missing, json={"stock": 1}, headers=bearer(owner))
    assert r.status_code == 404
    r = await client.delete(missing, headers=bearer(owner))
    assert r.status_code == 404
    r = await client.delete("/api/product/not-a-uuid", headers=bearer(owner))
    assert r.status_code == 404

    r = await client.delete(url, headers=bearer(owner))
    assert r.status_code == 204
    r = await client.get(url, headers=bearer(owner))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_may_delete_any_product(app: FastAPI, client: httpx.AsyncClient) -> None:
    owner = (await register(client, email="o2@example.com", role="seller"))["token"]
    await create_admin(app, email="root2@example.com")
    admin = await login(client, email="root2@example.com", password="admin-pass")

    r = await client.post("/api/product", json=product_payload(), headers=bearer(owner))
    product_id = r.json()["data"]["product"]["id"]

    r = await client.delete(f"/api/product/{product_id}", headers=bearer(admin))
    assert r.status_code == 204


@pytest.mark.asyncio
async def test_password_change_invalidates_older_tokens(
    app: FastAPI, client: httpx.AsyncClient
) -> None:
    old = (await register(client, email="pw@example.com", password="first-pass"))["token"]

    r = await client.patch(
        "/api/auth/password",
        json={"current_password": "nope-nope", "new_password": "second-pass"},
        headers=bearer(old),
    )
    assert r.status_code == 401

    r = await client.patch(
        "/api/auth/password",
        json={"current_password": "first-pass", "new_password": "second-pass"},
        headers=bearer(old),
    )
    assert r.status_code == 200
    fresh = r.json()["token"]
    assert (await client.get("/api/auth/me", headers=bearer(fresh))).status_code == 200
    await login(client, email="pw@example.com", password="second-pass")

    # Move the change stamp past the old token's issue second so the check is deterministic.
    async with app.state.sessionmaker() as session:
        user = await UserRepo(session).find_by_email("pw@example.com")
        user.password_changed_at = utcnow() + timedelta(seconds=5)
        await session.commit()

    r = await client.get("/api/auth/me", headers=bearer(old))
    assert r.status_code == 401
    assert r.json()["detail"] == "credential_changed"


@pytest.mark.asyncio
async def test_upgrade_to_seller(client: httpx.AsyncClient) -> None:
    token = (await register(client, email="up@example.com", name="Budi"))["token"]

    r = await client.post(
        "/api/auth/upgrade-to-seller",
        json={"business_name": "Budi Crafts", "business_address": {"city": "Bandung"}},
        headers=bearer(token),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["role"] == "seller"
    assert body["user"]["seller_info"]["business_name"] == "Budi Crafts"

    r = await client.post("/api/product", json=product_payload(), headers=bearer(body["token"]))
    assert r.status_code == 201
    assert r.json()["data"]["product"]["seller_location"] == "Bandung"

    r = await client.post("/api/auth/upgrade-to-seller", json={}, headers=bearer(body["token"]))
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_reviews_update_rating(client: httpx.AsyncClient) -> None:
    seller = (await register(client, email="rs@example.com", role="seller"))["token"]
    a = (await register(client, email="ra@example.com"))["token"]
    b = (await register(client, email="rb@example.com"))["token"]

    r = await client.post("/api/product", json=product_payload(), headers=bearer(seller))
    url = f"/api/product/{r.json()['data']['product']['id']}"

    r = await client.post(f"{url}/reviews", json={"rating": 5}, headers=bearer(a))
    assert r.status_code == 201
    r = await client.post(f"{url}/reviews", json={"rating": 2}, headers=bearer(b))
    assert r.status_code == 201
    r = await client.post(f"{url}/reviews", json={"rating": 4}, headers=bearer(a))
    assert r.status_code == 409

    product = (await client.get(url, headers=bearer(a))).json()["data"]["product"]
    assert product["num_reviews"] == 2
    assert product["rating"] == pytest.approx(3.5)


@pytest.mark.asyncio
async def test_user_admin_endpoints(app: FastAPI, client: httpx.AsyncClient) -> None:
    client_token = (await register(client, email="u1@example.com"))["token"]
    await register(client, email="u2@example.com", role="seller")
    await create_admin(app, email="boss@example.com")
    admin = await login(client, email="boss@example.com", password="admin-pass")

    r = await client.get("/api/users", headers=bearer(client_token))
    assert r.status_code == 403

    r = await client.get("/api/users", params={"role": "seller"}, headers=bearer(admin))
    assert r.status_code == 200
    users = r.json()["data"]["users"]
    assert [u["email"] for u in users] == ["u2@example.com"]
    assert "password_hash" not in users[0]

    r = await client.get(f"/api/users/{users[0]['id']}", headers=bearer(admin))
    assert r.status_code == 200
    missing = "/api/users/00000000-0000-0000-0000-000000000000"
    r = await client.get(missing, headers=bearer(admin))
    assert r.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "changes",
    [{"name": None}, {"price": None}, {"category": None}, {"images": None}, {"stock": None}],
)
async def test_update_rejects_null_for_required_fields(
    client: httpx.AsyncClient, changes: dict[str, None]
) -> None:
    token = (await register(client, email="nul@example.com", role="seller"))["token"]
    r = await client.post("/api/product", json=product_payload(), headers=bearer(token))
    url = f"/api/product/{r.json()['data']['product']['id']}"

    r = await client.patch(url, json=changes, headers=bearer(token))
    assert r.status_code == 400
    assert r.json()["detail"] == f"field_not_nullable:{next(iter(changes))}"

    product = (await client.get(url, headers=bearer(token))).json()["data"]["product"]
    assert product["name"] == "Batik Shirt"
    assert product["price"] == 250


@pytest.mark.asyncio
async def test_clearing_discount_resets_percentage(client: httpx.AsyncClient) -> None:
    token = (await register(client, email="disc@example.com", role="seller"))["token"]
    r = await client.post(
        "/api/product", json=product_payload(discount_price=200), headers=bearer(token)
    )
    product = r.json()["data"]["product"]
    assert product["discount_percentage"] == 20
    url = f"/api/product/{product['id']}"

    r = await client.patch(url, json={"discount_price": None}, headers=bearer(token))
    assert r.status_code == 200
    product = r.json()["data"]["product"]
    assert product["discount_price"] is None
    assert product["discount_percentage"] is None

    r = await client.patch(url, json={"sub_category": None, "price": 300}, headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["data"]["product"]["discount_percentage"] is None


@pytest.mark.asyncio
async def test_products_by_seller(client: httpx.AsyncClient) -> None:
    first = await register(client, email="s1@example.com", role="seller")
    second = await register(client, email="s2@example.com", role="seller")
    for name in ("Teak Bowl", "Teak Spoon"):
        await client.post(
            "/api/product", json=product_payload(name=name), headers=bearer(first["token"])
        )
    await client.post(
        "/api/product", json=product_payload(name="Clay Pot"), headers=bearer(second["token"])
    )

    r = await client.get(
        f"/api/product/seller/{first['user']['id']}", headers=bearer(second["token"])
    )
    assert r.status_code == 200
    body = r.json()
    assert body["results"] == 2
    assert {p["name"] for p in body["data"]["products"]} == {"Teak Bowl", "Teak Spoon"}
    assert {p["seller_id"] for p in body["data"]["products"]} == {first["user"]["id"]}

    r = await client.get(
        "/api/product/seller/00000000-0000-0000-0000-000000000000",
        headers=bearer(second["token"]),
    )
    assert r.json()["results"] == 0


@pytest.mark.asyncio
async def test_oversized_page_does_not_overflow_offset(
    settings: Settings, client: httpx.AsyncClient
) -> None:
    token = (await register(client, email="pg@example.com", role="seller"))["token"]
    await client.post("/api/product", json=product_payload(), headers=bearer(token))
    params = {"page": "100000000000000000000", "limit": "10"}

    r = await client.get("/api/product", params=params, headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["results"] == 1

    settings.query_strict = True
    r = await client.get("/api/product", params=params, headers=bearer(token))
    assert r.status_code == 400
    assert r.json()["detail"] == "invalid_page"

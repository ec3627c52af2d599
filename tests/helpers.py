"""
tests.helpers

Request helpers shared by the API tests.
"""

from __future__ import annotations

from typing import Any

import httpx
from fastapi import FastAPI

from marketplace_api.auth.models import Role
from marketplace_api.db.repositories.users import UserRepo


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register(
    client: httpx.AsyncClient,
    *,
    email: str,
    role: str = "client",
    name: str = "Test User",
    password: str = "s3cret-pass",
) -> dict[str, Any]:
    r = await client.post(
        "/api/auth",
        json={"name": name, "email": email, "password": password, "role": role},
    )
    assert r.status_code == 201, r.text
    return r.json()


async def create_admin(app: FastAPI, *, email: str, password: str = "admin-pass") -> None:
    # Admins cannot self-register; seed one straight through the credential store.
    async with app.state.sessionmaker() as session:
        await UserRepo(session).create(
            name="Admin", email=email, password=password, role=Role.admin
        )
        await session.commit()


async def login(client: httpx.AsyncClient, *, email: str, password: str) -> str:
    r = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def product_payload(**overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "name": "Batik Shirt",
        "description": "Hand-stamped cotton batik.",
        "category": "fashion",
        "price": 250.0,
        "weight": 300,
        "stock": 10,
        "images": ["https://img.example/batik.jpg"],
    }
    body.update(overrides)
    return body

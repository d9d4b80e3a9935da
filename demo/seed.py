#!/usr/bin/env python3
"""
Demo seed script: populates a running server with sample users.

!! NOT FOR PRODUCTION !!
This script creates users with known passwords. It is intended ONLY for
local demos and frontend development.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Login credentials after seeding:
    ┌───────────┬───────────────────┬─────────┐
    │ Username  │ Password          │ Role    │
    ├───────────┼───────────────────┼─────────┤
    │ admin     │ AdminDemo123!     │ ADMIN   │
    │ alice     │ AliceDemo123!     │ DEFAULT │
    │ bob       │ BobDemo123!       │ DEFAULT │
    │ carol     │ CarolDemo123!     │ DEFAULT │
    │ reporting │ ReportDemo123!    │ SERVICE │
    └───────────┴───────────────────┴─────────┘
"""

import argparse
import asyncio
import sys

import httpx

from create_admin import create_admin

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

ADMIN = {"username": "admin", "password": "AdminDemo123!"}

USERS = [
    {
        "username": "alice",
        "password": "AliceDemo123!",
        "role": "DEFAULT",
        "settings": {"email_address": "alice.chen@example.com", "email_receive": True},
    },
    {
        "username": "bob",
        "password": "BobDemo123!",
        "role": "DEFAULT",
        "settings": {"email_address": "bob.martinez@example.com", "email_receive": False},
    },
    {
        "username": "carol",
        "password": "CarolDemo123!",
        "role": "DEFAULT",
        "settings": None,
        # Expired account: login is refused
        "expiration_date": "2020-01-01",
    },
    {
        "username": "reporting",
        "password": "ReportDemo123!",
        "role": "SERVICE",
        "settings": None,
    },
]


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def login(client: httpx.AsyncClient, username: str, password: str) -> str:
    resp = await client.post(
        f"{BASE_URL}/auth/login",
        json={"username": username, "password": password},
    )
    resp.raise_for_status()
    return resp.json()["token"]["token"]


async def add_user(client: httpx.AsyncClient, token: str, user: dict) -> bool:
    """Create a LOCAL user; False if the user already exists."""
    resp = await client.put(
        f"{BASE_URL}/users",
        json={k: user[k] for k in ("username", "password", "role")},
        headers=auth_header(token),
    )
    if resp.status_code == 409:
        return False
    resp.raise_for_status()
    return True


async def edit_user(client: httpx.AsyncClient, token: str, changes: dict) -> None:
    resp = await client.patch(
        f"{BASE_URL}/users",
        json={"realm": "LOCAL", **changes},
        headers=auth_header(token),
    )
    resp.raise_for_status()


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED: NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn userhub.main:app --reload\n")
            sys.exit(1)

        print("Creating admin user...")
        create_admin(ADMIN["username"], ADMIN["password"])
        admin_token = await login(client, ADMIN["username"], ADMIN["password"])
        log(f"Admin: {ADMIN['username']} / {ADMIN['password']}")

        for user in USERS:
            print(f"\nCreating {user['username']}...")
            if not await add_user(client, admin_token, user):
                log("Already exists, skipping")
                continue
            log(f"Login: {user['username']} / {user['password']} ({user['role']})")

            if user["settings"]:
                # Users edit their own settings
                token = await login(client, user["username"], user["password"])
                await edit_user(
                    client, token,
                    {"username": user["username"], "settings": user["settings"]},
                )
                log(f"  Email: {user['settings']['email_address']}")

            if user.get("expiration_date"):
                await edit_user(
                    client, admin_token,
                    {"username": user["username"], "expiration_date": user["expiration_date"]},
                )
                log(f"  Expired on {user['expiration_date']}")

        resp = await client.get(f"{BASE_URL}/users", headers=auth_header(admin_token))
        resp.raise_for_status()
        print(f"\nDone: {len(resp.json())} users across all realms.\n")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo users")
    parser.add_argument("--base-url", default=BASE_URL, help="API server URL")
    args = parser.parse_args()
    asyncio.run(seed(args.base_url))


if __name__ == "__main__":
    main()

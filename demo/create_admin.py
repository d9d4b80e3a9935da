#!/usr/bin/env python3
"""
Create (or reset) a LOCAL admin user directly in the database.

There is no self-service way to become an admin: PUT /users itself
requires an admin token. Provisioning the first admin is an operator
action, so this script writes through the store instead of the API.

Usage:
    python demo/create_admin.py admin 'AdminDemo123!'
"""

import argparse
import sys

import userhub.models  # noqa: F401
from userhub.database import Base, SessionLocal, engine
from userhub.exceptions import UserNotFoundError
from userhub.identity.credential import Credential
from userhub.identity.factories import build_default_registry
from userhub.identity.roles import Realm, UserRole
from userhub.stores.sql import SqlUserStore


def create_admin(username: str, password: str) -> None:
    Base.metadata.create_all(bind=engine)
    factories = build_default_registry()
    with SessionLocal() as session:
        store = SqlUserStore(session, factories)
        try:
            user = store.find_by_username_and_realm(username, Realm.LOCAL)
            user.role = UserRole.ADMIN
            user.active = True
            user.change_password(password)
            action = "Promoted"
        except UserNotFoundError:
            user = factories.get_factory(Realm.LOCAL).create(
                username, Credential.hash(password), UserRole.ADMIN, True
            )
            action = "Created"
        store.upsert(user)
        session.commit()
    engine.dispose()
    print(f"{action} admin {username}@{Realm.LOCAL.value}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a LOCAL admin user")
    parser.add_argument("username")
    parser.add_argument("password")
    args = parser.parse_args()
    if len(args.password) < 8:
        print("Password must be at least 8 characters")
        sys.exit(1)
    create_admin(args.username, args.password)


if __name__ == "__main__":
    main()

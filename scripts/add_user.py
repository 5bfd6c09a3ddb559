#!/usr/bin/env python3
"""
Create a user account (with default avatar) directly in the database.

Usage:
  python scripts/add_user.py --email ana@example.com --password secret \
      --firstname Ana --lastname Souza --gender female --birthday 1990-04-01 [--role admin]
"""
from __future__ import annotations

import argparse

from pydantic import ValidationError as PydanticValidationError

from socialapp.core.errors import AppError
from socialapp.core.logging import configure_logging
from socialapp.db import create_all, seed_roles
from socialapp.repositories.sql_repository import SQLRepository
from socialapp.schemas import RegisterRequest
from socialapp.services.user_service import UserService


def main() -> None:
    ap = argparse.ArgumentParser(description="Create a user account")
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--firstname", required=True)
    ap.add_argument("--lastname", required=True)
    ap.add_argument("--gender", required=True)
    ap.add_argument("--birthday", required=True, help="YYYY-MM-DD")
    ap.add_argument("--role", help="Extra role slug to attach (e.g. admin)")
    args = ap.parse_args()

    configure_logging()
    create_all()
    seed_roles()

    try:
        payload = RegisterRequest(
            firstname=args.firstname,
            lastname=args.lastname,
            gender=args.gender,
            birthday=args.birthday,
            email=args.email,
            password=args.password,
        )
    except PydanticValidationError as exc:
        raise SystemExit(f"Invalid input: {exc}") from exc

    repo = SQLRepository()
    try:
        user = UserService(repository=repo).register(payload)
    except AppError as exc:
        raise SystemExit(f"Could not create user: {exc.message}") from exc

    if args.role:
        repo.attach_role(user.id, args.role.strip())
    print("OK: user created")
    print(f"  ID: {user.id}")
    print(f"  Email: {user.email}")
    print(f"  Roles: {', '.join(repo.get_user_roles(user.id))}")


if __name__ == "__main__":
    main()

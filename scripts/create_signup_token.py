#!/usr/bin/env python3
"""
Mint a signup invitation (STWT).

    python scripts/create_signup_token.py --type ADMIN

Prints the signup URL query parameter to hand to the invitee.
"""
from __future__ import annotations

import argparse
import asyncio

from medaccess.app import models  # noqa: F401
from medaccess.app.core.config import get_settings
from medaccess.app.core.logging import setup_logging
from medaccess.app.db.session import AsyncSessionLocal
from medaccess.app.models import UserType
from medaccess.app.services.auth_service import AuthService
from medaccess.app.services.denylist import close_token_denylist, get_token_denylist


async def create(type: UserType) -> str:
    settings = get_settings()
    async with AsyncSessionLocal() as db:
        auth = AuthService(db, settings, get_token_denylist(settings))
        result = await auth.create_stwt(type)
    await close_token_denylist()
    if not result.success:
        raise SystemExit(f"Failed: {result.message}")
    return result.data.token


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--type", choices=[t.value for t in UserType], default=UserType.ADMIN.value)
    args = parser.parse_args()

    setup_logging(get_settings())
    token = asyncio.run(create(UserType(args.type)))
    print(f"OK -> ?stwt={token}")


if __name__ == "__main__":
    main()

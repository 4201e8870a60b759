#!/usr/bin/env python3
"""Grant a global role to an existing account.

RUN:  DATABASE_URL=postgresql+asyncpg://... python scripts/grant_role.py admin@example.com super-admin

Role administration over HTTP needs the bypass role, so the first
super-admin has to be granted here, directly against the database.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from clubhouse.db.engine import async_session_factory
from clubhouse.repos.store import pg_store
from clubhouse.services.account_service import assignable_roles, normalize_email


async def grant(email: str, role: str) -> list[str]:
    async with async_session_factory() as session:
        store = pg_store(session)
        account = await store.accounts.get_by_email(normalize_email(email))
        if account is None:
            raise SystemExit(f"No account with email {email!r}")
        await store.accounts.add_role(account.id, role)
        roles = await store.accounts.list_roles(account.id)
        await session.commit()
        return roles


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("role", choices=sorted(assignable_roles()))
    args = parser.parse_args()

    if async_session_factory is None:
        print("DATABASE_URL is not set; nothing to grant against.", file=sys.stderr)
        sys.exit(1)

    roles = asyncio.run(grant(args.email, args.role))
    print(f"{args.email}: {', '.join(roles)}")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Create an AllyNet admin account.

Usage:
    python scripts/create_admin.py --name "Site Admin" --email admin@allynet.dev --password s3cret!
    python scripts/create_admin.py --name Root --email root@allynet.dev --password s3cret! --role superadmin
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.config import settings  # noqa: E402
from app.core.database import close_db, get_session_local, init_db  # noqa: E402
from app.core.security import get_password_hash  # noqa: E402
from app.models.principal import Admin, AdminRole, PrincipalKind  # noqa: E402
from app.services.principal_repository import PrincipalRepository, normalize_email  # noqa: E402


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create an AllyNet admin account")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument(
        "--role",
        choices=[role.value for role in AdminRole],
        default=AdminRole.ADMIN.value,
    )
    return parser.parse_args(argv)


async def create_admin(name: str, email: str, password: str, role: str) -> bool:
    """Insert the admin; returns False if the email is already taken"""
    await init_db()

    session_local = get_session_local()
    async with session_local() as db:
        repository = PrincipalRepository(db)

        if await repository.email_exists(PrincipalKind.ADMIN, email):
            print(f"[CreateAdmin] Admin {normalize_email(email)} already exists, nothing to do")
            return False

        principal = await repository.add(Admin(
            name=name.strip(),
            email=email,
            hashed_password=get_password_hash(password, settings.BCRYPT_ROUNDS),
            role=AdminRole(role),
        ))
        print(f"[CreateAdmin] Created {principal.role} {principal.email} ({principal.id})")
        return True


async def main(argv=None) -> int:
    args = parse_args(argv)
    if len(args.password) < settings.PASSWORD_MIN_LENGTH:
        print(f"[CreateAdmin] Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
        return 1

    try:
        created = await create_admin(args.name, args.email, args.password, args.role)
    finally:
        await close_db()
    return 0 if created else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

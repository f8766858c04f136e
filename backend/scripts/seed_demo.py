"""
Seed demo data for the client portal – idempotent.

Creates:
- 1 Super Admin (admin@dealerportal.dev / admin123)
- 2 Dealerships, each with an admin and a salesperson
- A handful of client accounts per dealership, some with a portal login

Usage (from backend directory, with .env pointing to target DB):
    python -m scripts.seed_demo
"""

import asyncio

from sqlalchemy import select

from dealer_portal.core.permissions import UserRole
from dealer_portal.core.security import get_password_hash
from dealer_portal.db.database import async_session_maker
from dealer_portal.models import ClientAccount, ClientAccountStatus, Dealership, User


SUPER_ADMIN_EMAIL = "admin@dealerportal.dev"
DEMO_PASSWORD = "admin123"
CLIENT_PASSWORD = "client123"

DEALERSHIPS = [
    ("Northside Motors", "northside"),
    ("Harbor Auto Group", "harbor"),
]

CLIENTS = [
    ("Ada Lovelace", "+1 555 0100", True),
    ("Grace Hopper", "+1 555 0101", True),
    ("Alan Turing", None, False),
]


async def _get_or_create_user(session, email, **fields):
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user, False
    user = User(email=email, password_hash=get_password_hash(DEMO_PASSWORD), **fields)
    session.add(user)
    return user, True


async def seed_demo():
    async with async_session_maker() as session:
        _, created = await _get_or_create_user(
            session,
            SUPER_ADMIN_EMAIL,
            first_name="System",
            last_name="Administrator",
            role=UserRole.SUPER_ADMIN,
        )
        print(f"{'Created' if created else 'Found'} Super Admin: {SUPER_ADMIN_EMAIL}")

        for name, slug in DEALERSHIPS:
            result = await session.execute(select(Dealership).where(Dealership.slug == slug))
            dealership = result.scalar_one_or_none()
            if not dealership:
                dealership = Dealership(name=name, slug=slug, email=f"info@{slug}.dev")
                session.add(dealership)
                await session.flush()
                print(f"Created dealership: {name}")

            await _get_or_create_user(
                session,
                f"admin@{slug}.dev",
                first_name=name.split()[0],
                last_name="Admin",
                role=UserRole.DEALERSHIP_ADMIN,
                dealership_id=dealership.id,
            )
            await _get_or_create_user(
                session,
                f"sales@{slug}.dev",
                first_name=name.split()[0],
                last_name="Sales",
                role=UserRole.SALESPERSON,
                dealership_id=dealership.id,
            )

            for index, (client_name, phone, has_login) in enumerate(CLIENTS, start=1):
                client_id = f"{slug}-client-{index}"
                existing = await session.get(ClientAccount, client_id)
                if existing:
                    continue
                email = f"{client_name.split()[0].lower()}@{slug}-clients.dev"
                session.add(ClientAccount(
                    id=client_id,
                    dealership_id=dealership.id,
                    name=client_name,
                    email=email,
                    phone=phone,
                    password_hash=get_password_hash(CLIENT_PASSWORD) if has_login else None,
                    status=ClientAccountStatus.ACTIVE if has_login else ClientAccountStatus.PENDING,
                ))
                print(f"  Created client {client_id} ({email})")

        await session.commit()

    print()
    print(f"Staff password: {DEMO_PASSWORD}  Client password: {CLIENT_PASSWORD}")


if __name__ == "__main__":
    asyncio.run(seed_demo())

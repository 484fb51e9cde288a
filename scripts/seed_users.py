"""
Seed demo users, one per role.
Run: python -m scripts.seed_users (from the project root, with DB reachable).
Requests identify as one of these through the X-User-Id / X-User-Role headers.
"""
import asyncio
import os
import sys

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from database import AsyncSessionLocal, init_db
from models import User
from services.authorization import UserRole


USERS_DATA = [
    {
        "id": "user-admin",
        "email": "admin@example.com",
        "full_name": "Loan Administrator",
        "role": UserRole.ADMIN,
    },
    {
        "id": "user-processor",
        "email": "processor@example.com",
        "full_name": "Loan Processor",
        "role": UserRole.PROCESSOR,
    },
    {
        "id": "user-viewer",
        "email": "viewer@example.com",
        "full_name": "Branch Viewer",
        "role": UserRole.VIEWER,
    },
]


async def seed():
    await init_db()
    async with AsyncSessionLocal() as session:
        for data in USERS_DATA:
            existing = await session.execute(select(User).where(User.id == data["id"]))
            if existing.scalar_one_or_none():
                print(f"User {data['id']} already exists, skipping")
                continue
            session.add(
                User(
                    id=data["id"],
                    email=data["email"],
                    full_name=data["full_name"],
                    role=data["role"].value,
                )
            )
            print(f"Seeded user: {data['email']} ({data['role'].value})")
        await session.commit()
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())

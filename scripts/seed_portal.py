"""
Seed letter packages, branding and the staff/doctor accounts needed to walk the workflow.
Run: python -m scripts.seed_portal (from the project root).
"""
import asyncio
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from database import AsyncSessionLocal, init_db
from models import Package, SiteConfig, User
from models.site_config import DEFAULT_ROLE_NAMES
from services.site_settings import CONFIG_ID

ESA_FIELDS = [
    {"name": "fullName", "type": "text", "required": True},
    {"name": "dateOfBirth", "type": "date", "required": True},
    {"name": "petType", "type": "select", "required": True, "options": ["Dog", "Cat", "Other"]},
    {"name": "petName", "type": "text", "required": False},
    {"name": "conditions", "type": "textarea", "required": True},
]

PACKAGES_DATA = [
    {
        "id": "esa-housing",
        "name": "ESA Letter - Housing",
        "description": "Emotional support animal letter for housing",
        "price": Decimal("129.00"),
        "form_fields": ESA_FIELDS,
        "requires_level2_interaction": True,
        "sort_order": 1,
    },
    {
        "id": "esa-housing-travel",
        "name": "ESA Letter - Housing and Travel",
        "description": "Emotional support animal letter for housing and travel",
        "price": Decimal("179.00"),
        "form_fields": ESA_FIELDS,
        "requires_level2_interaction": True,
        "sort_order": 2,
    },
    {
        "id": "doctors-note",
        "name": "Doctor's Note",
        "description": "Work or school absence note",
        "price": Decimal("39.00"),
        "form_fields": [
            {"name": "fullName", "type": "text", "required": True},
            {"name": "absenceStart", "type": "date", "required": True},
            {"name": "absenceEnd", "type": "date", "required": True},
            {"name": "reason", "type": "textarea", "required": True},
        ],
        "sort_order": 3,
    },
]

USERS_DATA = [
    {"id": "owner-1", "email": "owner@example.com", "first_name": "Olivia", "last_name": "Owner", "role": "owner"},
    {"id": "admin-1", "email": "admin@example.com", "first_name": "Adam", "last_name": "Admin", "role": "admin"},
    {"id": "agent-1", "email": "agent@example.com", "first_name": "Ava", "last_name": "Agent", "role": "agent"},
    {"id": "reviewer-1", "email": "reviewer@example.com", "first_name": "Riley", "last_name": "Reviewer", "role": "reviewer"},
    {"id": "doctor-1", "email": "doctor@example.com", "first_name": "Dana", "last_name": "Doctor", "role": "doctor"},
]


async def seed():
    await init_db()
    async with AsyncSessionLocal() as session:
        if await session.get(SiteConfig, CONFIG_ID) is None:
            session.add(SiteConfig(id=CONFIG_ID, role_names=dict(DEFAULT_ROLE_NAMES)))
            print("Seeded site config")

        for data in PACKAGES_DATA:
            if await session.get(Package, data["id"]):
                print(f"Package {data['id']} already exists, skipping")
                continue
            session.add(Package(**data))
            print(f"Seeded package: {data['name']}")

        for data in USERS_DATA:
            existing = await session.execute(select(User).where(User.email == data["email"]))
            if existing.scalar_one_or_none():
                print(f"User {data['email']} already exists, skipping")
                continue
            session.add(User(**data))
            print(f"Seeded {data['role']}: {data['email']}")
        await session.commit()
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())

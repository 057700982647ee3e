"""
Shared fixtures for the service and API tests: a fresh SQLite database per test case,
row builders, and a scripted payment gateway.
"""
import unittest
from decimal import Decimal
from typing import Optional

from database import build_engine, build_sessionmaker, init_db
from models import Application, Package, User
from services import workflow
from services.payments import ChargeResult
from utils import new_id

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


class FakeGateway:
    """Records every charge; declines when `approve` is False."""

    def __init__(self, approve: bool = True, message: str = "This transaction has been declined."):
        self.approve = approve
        self.message = message
        self.charges = []

    async def charge(self, amount_cents, payment_token, *, order_id=None, description=None):
        self.charges.append({"amount_cents": amount_cents, "payment_token": payment_token, "order_id": order_id})
        if not self.approve:
            return ChargeResult(success=False, message=self.message)
        return ChargeResult(success=True, transaction_id=f"txn-{len(self.charges)}", message="ok")


async def make_user(session, role: str = "applicant", **overrides) -> User:
    user_id = overrides.pop("id", None) or new_id(role[:3])
    user = User(
        id=user_id,
        email=overrides.pop("email", f"{user_id}@example.com"),
        first_name=overrides.pop("first_name", role.title()),
        last_name=overrides.pop("last_name", "Test"),
        role=role,
        is_active=overrides.pop("is_active", True),
        **overrides,
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


async def make_package(session, price: str = "0", form_fields: Optional[list] = None, **overrides) -> Package:
    package = Package(
        id=overrides.pop("id", None) or new_id("pkg"),
        name=overrides.pop("name", "ESA Letter"),
        price=Decimal(price),
        form_fields=form_fields if form_fields is not None else [{"name": "fullName", "type": "text", "required": True}],
        is_active=overrides.pop("is_active", True),
        **overrides,
    )
    session.add(package)
    await session.flush()
    await session.refresh(package)
    return package


FORM = {"fullName": "Jane Doe", "petName": "Biscuit", "hasLease": True, "age": 34}


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Each test gets its own in-memory database and an open session on it."""

    database_url = MEMORY_URL

    async def asyncSetUp(self):
        self.engine = build_engine(self.database_url)
        await init_db(self.engine)
        self.sessionmaker = build_sessionmaker(self.engine)
        self.session = self.sessionmaker()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def submitted(self, price: str = "0", applicant: Optional[User] = None, **kwargs) -> Application:
        applicant = applicant or await make_user(self.session, "applicant")
        package = await make_package(self.session, price=price)
        return await workflow.submit(self.session, applicant, package, dict(FORM), **kwargs)

    async def in_work(self) -> Application:
        """An unclaimed application sitting in the agent work queue."""
        app = await self.submitted()
        reviewer = await make_user(self.session, "reviewer")
        return await workflow.reviewer_decision(self.session, app.id, reviewer, True, "spoke with applicant")

"""Shared fixtures for the service and API tests."""
import os
import tempfile
import unittest
from datetime import datetime, timezone

from sqlalchemy import event

from database import Base, build_engine, build_sessionmaker
from models import LoanApplication, ORCRReceipt
from services import applications, wizard
from services.authorization import CurrentUser, UserRole
from services.identifiers import SequentialNumberGenerator

ADMIN = CurrentUser(id="user-admin", role=UserRole.ADMIN)
PROCESSOR = CurrentUser(id="user-processor", role=UserRole.PROCESSOR)
VIEWER = CurrentUser(id="user-viewer", role=UserRole.VIEWER)

NOW = datetime(2025, 6, 15, 9, 30, tzinfo=timezone.utc)

# One valid payload per wizard step, camelCase as the form sends it
WIZARD_DATA = {
    1: {"applicationType": "NEW", "referralSource": "Walk-in"},
    2: {"loanProductType": "PERSONAL", "loanAmount": 50000, "loanTermMonths": 12, "loanPurpose": "Store expansion"},
    3: {
        "firstName": "Maria",
        "lastName": "Santos",
        "mobileNumber": "09171234567",
        "emailAddress": "maria.santos@example.com",
        "civilStatus": "MARRIED",
        "presentCity": "Quezon City",
        "presentProvince": "Metro Manila",
    },
    4: {"primaryIdType": "PhilSys", "primaryIdNumber": "1234-5678-9012"},
    5: {"collateralType": "NONE"},
    6: {"residenceOwnership": "OWNED", "residenceYears": 8},
    7: {"spouseFirstName": "Jose", "spouseLastName": "Santos", "numberOfDependents": 2},
    8: {"primaryIncomeSource": "EMPLOYMENT", "employerName": "Acme Trading", "monthlyNetSalary": 35000},
    9: {"hasCoBorrower": False},
    10: {"characterReferences": [{"name": "Ana Cruz", "contact": "09181112222"}]},
    11: {"undertakingSigned": True, "privacyNoticeSigned": True},
    12: {},
}


def _enforce_foreign_keys(dbapi_connection, connection_record):
    # SQLite leaves foreign keys unchecked unless asked, unlike PostgreSQL
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def application_columns(app: LoanApplication) -> dict:
    return {c.key: getattr(app, c.key) for c in LoanApplication.__table__.columns}


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Runs each test against a fresh SQLite file so separate sessions use separate connections."""

    async def asyncSetUp(self):
        fd, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        self.engine = build_engine(f"sqlite+aiosqlite:///{self.db_path}")
        event.listen(self.engine.sync_engine, "connect", _enforce_foreign_keys)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.Session = build_sessionmaker(self.engine)
        self.numbers = SequentialNumberGenerator(start=42)

    async def asyncTearDown(self):
        await self.engine.dispose()
        os.unlink(self.db_path)

    async def in_session(self, fn, *args, **kwargs):
        """Run one service call in its own committed transaction, like a request."""
        async with self.Session() as session:
            try:
                result = await fn(session, *args, **kwargs)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise

    async def reload(self, application_id: str) -> LoanApplication:
        async with self.Session() as session:
            return await session.get(LoanApplication, application_id)

    async def reload_receipt(self, receipt_id: str) -> ORCRReceipt:
        async with self.Session() as session:
            return await session.get(ORCRReceipt, receipt_id)

    async def create_draft(self, fields=None, actor=PROCESSOR) -> LoanApplication:
        return await self.in_session(wizard.create_draft, actor, fields or {}, numbers=self.numbers, now=NOW)

    async def save(self, application_id: str, step: int, fields: dict, actor=PROCESSOR) -> LoanApplication:
        return await self.in_session(wizard.save_step, application_id, step, fields, actor, now=NOW)

    async def transition(self, application_id: str, action: str, payload=None, actor=ADMIN) -> LoanApplication:
        return await self.in_session(
            applications.transition_application, application_id, action, payload, actor, now=NOW
        )

    async def completed_draft(self) -> LoanApplication:
        app = await self.create_draft()
        for step, fields in WIZARD_DATA.items():
            app = await self.save(app.id, step, fields)
        return app

    async def submitted_application(self) -> LoanApplication:
        app = await self.completed_draft()
        return await self.transition(app.id, "submit", actor=PROCESSOR)

    async def approved_application(self, **payload) -> LoanApplication:
        app = await self.submitted_application()
        return await self.transition(app.id, "approve", payload)

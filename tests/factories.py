"""
Test data factories for the procedure tracker tests.

These factories create real database records through the test session.
"""

import random
import string
from datetime import date
from typing import Dict
from uuid import UUID

from httpx import AsyncClient
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from procedure_tracker.models.acknowledgment import Acknowledgment
from procedure_tracker.models.procedure import Procedure, ProcedureStatus
from procedure_tracker.models.profile import Profile, ProfileRole

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DEFAULT_PASSWORD = "testpassword123"


def random_string(length: int = 8) -> str:
    """Generate a random string for unique identifiers."""
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def random_email() -> str:
    """Generate a random email address."""
    return f"user_{random_string()}@test.com"


class ProfileFactory:
    """Factory for creating Profile records."""

    @staticmethod
    async def create(
        session: AsyncSession,
        email: str = None,
        full_name: str = None,
        role: ProfileRole = ProfileRole.STAFF,
        password: str = DEFAULT_PASSWORD,
    ) -> Profile:
        """Create a profile with optional customization."""
        profile = Profile(
            email=email or random_email(),
            full_name=full_name or f"Test User {random_string(4)}",
            hashed_password=pwd_context.hash(password),
            role=role,
        )
        session.add(profile)
        await session.flush()
        return profile

    @staticmethod
    async def create_staff(session: AsyncSession, **kwargs) -> Profile:
        """Create a staff profile."""
        return await ProfileFactory.create(session, role=ProfileRole.STAFF, **kwargs)

    @staticmethod
    async def create_admin(session: AsyncSession, **kwargs) -> Profile:
        """Create an admin profile."""
        return await ProfileFactory.create(session, role=ProfileRole.ADMIN, **kwargs)


class ProcedureFactory:
    """Factory for creating Procedure records."""

    SAMPLE_TITLES = [
        "New EFT Process",
        "Expense receipts",
        "Visitor sign-in",
        "Laptop return checklist",
        "Incident escalation",
    ]

    @staticmethod
    async def create(
        session: AsyncSession,
        created_by: UUID = None,
        title: str = None,
        description: str = "",
        source: str = "",
        source_link: str = "",
        effective_date: date = None,
        status: ProcedureStatus = ProcedureStatus.ACTIVE,
    ) -> Procedure:
        """Create a procedure with optional customization."""
        procedure = Procedure(
            title=title or random.choice(ProcedureFactory.SAMPLE_TITLES),
            description=description,
            source=source,
            source_link=source_link,
            effective_date=effective_date or date(2024, 1, 15),
            status=status,
            created_by=created_by,
        )
        session.add(procedure)
        await session.flush()
        return procedure


class AcknowledgmentFactory:
    """Factory for creating Acknowledgment records."""

    @staticmethod
    async def create(session: AsyncSession, procedure_id: UUID, user_id: UUID) -> Acknowledgment:
        ack = Acknowledgment(procedure_id=procedure_id, user_id=user_id)
        session.add(ack)
        await session.flush()
        return ack


async def auth_headers(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD) -> Dict[str, str]:
    """Sign in through the API and return Authorization headers."""
    response = await client.post(
        "/api/v1/auth/login",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}

"""Customer identity resolution and account operations."""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, ConflictError, NotFoundError
from app.core.security import get_password_hash, verify_password
from app.domain.customer_match import (
    FieldConflict,
    ResolutionOutcome,
    classify_match,
    diff_customer,
)
from app.models.customer import Customer
from app.schemas.customer import CustomerDetails, CustomerUpdate
from app.services.notification_service import notification_service

logger = logging.getLogger(__name__)

NO_PASSWORD = "NO_PASSWORD"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"


@dataclass
class CustomerResolution:
    """Resolved customer plus how it was resolved."""

    customer: Customer
    outcome: ResolutionOutcome
    conflicts: list[FieldConflict] = field(default_factory=list)

    def conflict_dicts(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.conflicts]


def customer_summary(customer: Customer) -> dict[str, Any]:
    """Stored contact details shown next to a conflict (no credential)."""
    return {
        "email": customer.email,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "phone": customer.phone,
        "date_of_birth": customer.date_of_birth.isoformat() if customer.date_of_birth else None,
        "has_password": customer.has_password,
    }


def raise_for_resolution(resolution: CustomerResolution) -> None:
    """Turn a non-reusable outcome into a ConflictError for the caller to present."""
    if resolution.outcome == ResolutionOutcome.CONFLICT:
        raise ConflictError(
            detail="Email already exists with different information",
            conflict_type=ConflictError.DATA_CONFLICT,
            conflicts=resolution.conflict_dicts(),
            existing_customer=customer_summary(resolution.customer),
        )
    if resolution.outcome == ResolutionOutcome.EXACT_MATCH:
        raise ConflictError(
            detail="An account with this email and these details already exists",
            conflict_type=ConflictError.EXACT_MATCH,
            existing_customer=customer_summary(resolution.customer),
        )


class CustomerService:
    """Finds, creates and upgrades customer identities."""

    async def get_customer(self, db: AsyncSession, customer_id: UUID) -> Customer:
        customer = await db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError("Customer", str(customer_id))
        return customer

    async def find_by_email(self, db: AsyncSession, email: str) -> Customer | None:
        result = await db.execute(select(Customer).where(Customer.email == email))
        return result.scalar_one_or_none()

    async def get_by_email(self, db: AsyncSession, email: str) -> Customer:
        customer = await self.find_by_email(db, email)
        if not customer:
            raise NotFoundError("Customer")
        return customer

    async def resolve(self, db: AsyncSession, details: CustomerDetails) -> CustomerResolution:
        """Find or create the customer for submitted details.

        Returns Created, Upgraded, ExactMatch or Conflict; never raises for a
        conflict, the caller decides how to present it.
        """
        existing = await self.find_by_email(db, details.email)

        if existing is None:
            created = await self._create(db, details)
            if created is not None:
                logger.info(f"Customer created: {created.email} (guest={not created.has_password})")
                notification_service.notify_welcome(db, created.email, created.full_name)
                return CustomerResolution(created, ResolutionOutcome.CREATED)
            # Lost a race with a concurrent registration for the same email
            existing = await self.get_by_email(db, details.email)

        conflicts = diff_customer(
            existing,
            first_name=details.first_name,
            last_name=details.last_name,
            phone=details.phone,
            date_of_birth=details.date_of_birth,
        )
        outcome = classify_match(existing, conflicts, details.password)

        if outcome == ResolutionOutcome.UPGRADED:
            await self._store_password(db, existing, details.password)
            logger.info(f"Guest customer upgraded: {existing.email}")
            notification_service.notify_account_upgraded(db, existing.email, existing.full_name)
        elif outcome == ResolutionOutcome.CONFLICT:
            logger.info(
                f"Customer data conflict for {existing.email}: "
                f"{', '.join(c.field for c in conflicts)}"
            )

        return CustomerResolution(existing, outcome, conflicts)

    async def _create(self, db: AsyncSession, details: CustomerDetails) -> Customer | None:
        customer = Customer(
            email=details.email,
            first_name=details.first_name,
            last_name=details.last_name,
            phone=details.phone,
            date_of_birth=details.date_of_birth,
            address=details.address,
            password_hash=get_password_hash(details.password) if details.password else None,
            verified=False,
        )
        try:
            async with db.begin_nested():
                db.add(customer)
                await db.flush()
        except IntegrityError:
            return None
        await db.refresh(customer)
        return customer

    async def _store_password(self, db: AsyncSession, customer: Customer, password: str) -> None:
        customer.password_hash = get_password_hash(password)
        customer.verified = True
        await db.flush()
        await db.refresh(customer)

    async def update_customer(
        self, db: AsyncSession, customer_id: UUID, data: CustomerUpdate
    ) -> Customer:
        """Apply the submitted values to the stored record (accept-and-update)."""
        customer = await self.get_customer(db, customer_id)

        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if value is None and key in ("first_name", "last_name", "phone"):
                continue
            setattr(customer, key, value)

        await db.flush()
        await db.refresh(customer)
        logger.info(f"Customer {customer.email} updated: {sorted(changes)}")
        return customer

    async def set_password(self, db: AsyncSession, email: str, password: str) -> Customer:
        """Give a guest account a password.

        Raises:
            NotFoundError: No customer with this email
            ConflictError: The account already has a password
        """
        customer = await self.get_by_email(db, email)
        if customer.has_password:
            raise ConflictError(
                detail="Account already has a password. Please log in instead.",
                conflict_type=ConflictError.CREDENTIAL_EXISTS,
            )

        await self._store_password(db, customer, password)
        logger.info(f"Password set for guest customer {customer.email}")
        notification_service.notify_account_upgraded(db, customer.email, customer.full_name)
        return customer

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> Customer:
        """Check credentials.

        Raises:
            AuthenticationError: Unknown email, wrong password, or a guest account (type NO_PASSWORD)
        """
        customer = await self.find_by_email(db, email)
        if not customer:
            raise AuthenticationError("Invalid email or password", error_type=INVALID_CREDENTIALS)
        if not customer.has_password:
            raise AuthenticationError(
                "This account has no password yet. Set one to log in.",
                error_type=NO_PASSWORD,
            )
        if not verify_password(password, customer.password_hash):
            raise AuthenticationError("Invalid email or password", error_type=INVALID_CREDENTIALS)
        return customer


# Singleton instance
customer_service = CustomerService()

"""
Tests for customer identity resolution and account operations.
"""

from datetime import date

import pytest
from pydantic import ValidationError as SchemaValidationError

from app.core.exceptions import AuthenticationError, ConflictError
from app.database import commit_and_notify
from app.domain.customer_match import (
    FieldConflict,
    ResolutionOutcome,
    classify_match,
    diff_customer,
)
from app.models.customer import Customer
from app.schemas.customer import CustomerDetails, CustomerUpdate
from app.services.customer_service import NO_PASSWORD, customer_service, raise_for_resolution
from app.services.notification_service import notification_service


def details(**overrides) -> CustomerDetails:
    data = {
        "email": "anne@example.com",
        "first_name": "Anne",
        "last_name": "Georgiou",
        "phone": "+35799111111",
    }
    data.update(overrides)
    return CustomerDetails(**data)


# ==================== MATCHING ====================


def test_diff_ignores_name_case_and_whitespace():
    stored = Customer(first_name="Anne", last_name="Georgiou", phone="+35799111111")

    assert diff_customer(stored, " anne ", "GEORGIOU", "+35799111111") == []


def test_diff_reports_each_differing_field():
    stored = Customer(
        first_name="Anne",
        last_name="Georgiou",
        phone="+35799111111",
        date_of_birth=date(1990, 5, 1),
    )

    conflicts = diff_customer(stored, "Ann", "Georgiou", "+35799000000", date(1991, 5, 1))

    assert [c.field for c in conflicts] == ["firstName", "phone", "dateOfBirth"]
    assert conflicts[2].to_dict() == {
        "field": "dateOfBirth",
        "existing": "1990-05-01",
        "new": "1991-05-01",
    }


def test_diff_skips_date_of_birth_when_one_side_is_missing():
    stored = Customer(first_name="Anne", last_name="Georgiou", phone="1", date_of_birth=None)

    assert diff_customer(stored, "Anne", "Georgiou", "1", date(1990, 5, 1)) == []


def test_classify_match():
    guest = Customer(first_name="Anne", last_name="Georgiou", phone="1", password_hash=None)
    member = Customer(first_name="Anne", last_name="Georgiou", phone="1", password_hash="x")
    conflict = [FieldConflict("phone", "1", "2")]

    assert classify_match(guest, conflict, "secret123") == ResolutionOutcome.CONFLICT
    assert classify_match(guest, [], "secret123") == ResolutionOutcome.UPGRADED
    assert classify_match(guest, [], None) == ResolutionOutcome.EXACT_MATCH
    assert classify_match(member, [], "secret123") == ResolutionOutcome.EXACT_MATCH


def test_short_password_is_rejected():
    with pytest.raises(SchemaValidationError):
        details(password="abc")


def test_empty_password_means_guest():
    assert details(password="").password is None


# ==================== RESOLUTION ====================


@pytest.mark.asyncio
async def test_resolve_creates_guest(db_session, sent_notifications):
    """Unknown email without password creates an unverified guest."""
    resolution = await customer_service.resolve(db_session, details(email="new@example.com"))
    # Nothing goes out before commit
    assert sent_notifications == []
    await commit_and_notify(db_session)

    assert resolution.outcome == ResolutionOutcome.CREATED
    assert resolution.customer.verified is False
    assert resolution.customer.has_password is False
    assert sent_notifications[-1]["kind"] == "welcome"
    assert sent_notifications[-1]["to"] == "new@example.com"


@pytest.mark.asyncio
async def test_resolve_creates_account_with_password(db_session):
    resolution = await customer_service.resolve(
        db_session, details(email="member@example.com", password="secret123")
    )

    assert resolution.outcome == ResolutionOutcome.CREATED
    assert resolution.customer.has_password is True
    assert resolution.customer.password_hash != "secret123"


@pytest.mark.asyncio
async def test_resolve_exact_match(db_session, customer, sent_notifications):
    """Same details for an existing guest resolve to that record."""
    resolution = await customer_service.resolve(db_session, details(first_name="ANNE"))

    assert resolution.outcome == ResolutionOutcome.EXACT_MATCH
    assert resolution.customer.id == customer.id
    assert sent_notifications == []


@pytest.mark.asyncio
async def test_resolve_conflict_on_first_name(db_session, customer):
    resolution = await customer_service.resolve(db_session, details(first_name="Ann"))

    assert resolution.outcome == ResolutionOutcome.CONFLICT
    assert resolution.customer.id == customer.id
    assert resolution.conflict_dicts() == [
        {"field": "firstName", "existing": "Anne", "new": "Ann"}
    ]
    # Stored record untouched
    assert customer.first_name == "Anne"


@pytest.mark.asyncio
async def test_resolve_conflict_on_phone(db_session, customer):
    resolution = await customer_service.resolve(db_session, details(phone="+35799222222"))

    assert resolution.outcome == ResolutionOutcome.CONFLICT
    assert resolution.conflict_dicts() == [
        {"field": "phone", "existing": "+35799111111", "new": "+35799222222"}
    ]


@pytest.mark.asyncio
async def test_resolve_upgrades_guest(db_session, customer, sent_notifications):
    """Matching details plus a password turn a guest into a verified account."""
    resolution = await customer_service.resolve(db_session, details(password="secret123"))
    await commit_and_notify(db_session)

    assert resolution.outcome == ResolutionOutcome.UPGRADED
    assert resolution.customer.id == customer.id
    assert resolution.customer.has_password is True
    assert resolution.customer.verified is True
    assert sent_notifications[-1]["kind"] == "account_upgraded"


@pytest.mark.asyncio
async def test_rolled_back_registration_sends_nothing(db_session, sent_notifications):
    await customer_service.resolve(db_session, details(email="new@example.com"))
    await db_session.rollback()
    notification_service.discard(db_session)
    await commit_and_notify(db_session)

    assert sent_notifications == []
    assert await customer_service.find_by_email(db_session, "new@example.com") is None


@pytest.mark.asyncio
async def test_conflict_resolution_raises_with_diff(db_session, customer):
    resolution = await customer_service.resolve(db_session, details(last_name="Georgiadou"))

    with pytest.raises(ConflictError) as exc_info:
        raise_for_resolution(resolution)

    error = exc_info.value
    assert error.status_code == 409
    assert error.extra["type"] == ConflictError.DATA_CONFLICT
    assert error.extra["conflicts"][0]["field"] == "lastName"
    assert error.extra["existing_customer"]["email"] == "anne@example.com"
    assert "password_hash" not in error.extra["existing_customer"]


@pytest.mark.asyncio
async def test_created_resolution_does_not_raise(db_session):
    resolution = await customer_service.resolve(db_session, details(email="fresh@example.com"))

    raise_for_resolution(resolution)


# ==================== ACCOUNT OPERATIONS ====================


@pytest.mark.asyncio
async def test_update_customer_accepts_new_values(db_session, customer):
    updated = await customer_service.update_customer(
        db_session, customer.id, CustomerUpdate(first_name="Ann", phone="+35799222222")
    )

    assert updated.first_name == "Ann"
    assert updated.phone == "+35799222222"
    assert updated.last_name == "Georgiou"


@pytest.mark.asyncio
async def test_set_password_on_guest(db_session, customer):
    updated = await customer_service.set_password(db_session, customer.email, "secret123")

    assert updated.has_password is True
    assert updated.verified is True


@pytest.mark.asyncio
async def test_set_password_twice_conflicts(db_session, customer):
    await customer_service.set_password(db_session, customer.email, "secret123")

    with pytest.raises(ConflictError) as exc_info:
        await customer_service.set_password(db_session, customer.email, "another123")

    assert exc_info.value.conflict_type == ConflictError.CREDENTIAL_EXISTS


@pytest.mark.asyncio
async def test_authenticate_guest_reports_no_password(db_session, customer):
    with pytest.raises(AuthenticationError) as exc_info:
        await customer_service.authenticate(db_session, customer.email, "whatever")

    assert exc_info.value.error_type == NO_PASSWORD


@pytest.mark.asyncio
async def test_authenticate_checks_password(db_session, customer):
    await customer_service.set_password(db_session, customer.email, "secret123")

    authenticated = await customer_service.authenticate(db_session, customer.email, "secret123")
    assert authenticated.id == customer.id

    with pytest.raises(AuthenticationError):
        await customer_service.authenticate(db_session, customer.email, "wrong-password")

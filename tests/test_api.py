"""
End-to-end tests through the HTTP API.
"""

import pytest
from httpx import AsyncClient

from app.core.exceptions import GatewayError, GatewayErrorKind


async def create_online_booking(client: AsyncClient, booking_payload) -> dict:
    response = await client.post("/api/v1/bookings", json=booking_payload("Online"))
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Process-Time" in response.headers
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_book_pay_and_look_up(client: AsyncClient, booking_payload, customer, sent_notifications):
    """Online booking, gateway order, verification, then invoice lookup."""
    booking = await create_online_booking(client, booking_payload)
    assert (booking["status"], booking["payment_status"]) == ("Pending", "Pending")

    order = await client.post("/api/v1/payments/create-order", json={"booking_id": booking["id"]})
    assert order.status_code == 200
    order_data = order.json()
    assert order_data["external_order_id"] == "ord-1"
    assert order_data["payment_url"].startswith("https://gateway.test/")

    verify = await client.post(
        "/api/v1/payments/verify",
        json={"booking_id": booking["id"], "external_order_id": order_data["external_order_id"]},
    )
    assert verify.status_code == 200
    result = verify.json()
    assert result["status"] == "Confirmed"
    assert result["payment_status"] == "Paid"
    assert result["invoice_no"] == "P000001"
    assert result["already_processed"] is False
    assert sent_notifications[-1]["kind"] == "payment_confirmation"

    lookup = await client.post(
        "/api/v1/bookings/lookup",
        json={"invoice_no": "p000001", "email": customer.email},
    )
    assert lookup.status_code == 200
    assert lookup.json()["id"] == booking["id"]

    wrong_email = await client.post(
        "/api/v1/bookings/lookup",
        json={"invoice_no": "P000001", "email": "someone@example.com"},
    )
    assert wrong_email.status_code == 404


@pytest.mark.asyncio
async def test_return_redirect_is_idempotent(client: AsyncClient, booking_payload, gateway):
    booking = await create_online_booking(client, booking_payload)
    order = (await client.post("/api/v1/payments/create-order", json={"booking_id": booking["id"]})).json()
    params = {"orderId": order["external_order_id"], "bookingId": booking["id"]}

    first = await client.get("/api/v1/payments/return", params=params)
    second = await client.get("/api/v1/payments/return", params=params)

    assert first.status_code == second.status_code == 200
    assert first.json()["already_processed"] is False
    assert second.json()["already_processed"] is True
    assert second.json()["invoice_no"] == first.json()["invoice_no"] == "P000001"
    assert gateway.verified == [order["external_order_id"]]


@pytest.mark.asyncio
async def test_create_order_failure_is_logged(client: AsyncClient, booking_payload, gateway):
    """Gateway failure answers 502 without detail and still leaves a ledger entry."""
    booking = await create_online_booking(client, booking_payload)
    gateway.create_error = GatewayError(GatewayErrorKind.TRANSPORT, "connect timeout")

    response = await client.post(
        "/api/v1/payments/create-order",
        json={"booking_id": booking["id"]},
        headers={"User-Agent": "pytest-browser", "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )

    assert response.status_code == 502
    assert "connect timeout" not in response.text

    attempts = await client.get(f"/api/v1/payments/bookings/{booking['id']}/attempts")
    assert attempts.status_code == 200
    entries = attempts.json()
    assert len(entries) == 1
    assert entries[0]["status"] == "failed"
    assert entries[0]["error_kind"] == "transport"
    assert entries[0]["ip_address"] == "203.0.113.9"


@pytest.mark.asyncio
async def test_create_order_for_paid_booking(client: AsyncClient, booking_payload):
    booking = await create_online_booking(client, booking_payload)
    order = (await client.post("/api/v1/payments/create-order", json={"booking_id": booking["id"]})).json()
    await client.post(
        "/api/v1/payments/verify",
        json={"booking_id": booking["id"], "external_order_id": order["external_order_id"]},
    )

    response = await client.post("/api/v1/payments/create-order", json={"booking_id": booking["id"]})

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_create_order_for_on_arrival_booking(client: AsyncClient, booking_payload):
    booking = (await client.post("/api/v1/bookings", json=booking_payload())).json()

    response = await client.post("/api/v1/payments/create-order", json={"booking_id": booking["id"]})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_verify_unknown_order(client: AsyncClient, booking_payload):
    booking = await create_online_booking(client, booking_payload)

    response = await client.post(
        "/api/v1/payments/verify",
        json={"booking_id": booking["id"], "external_order_id": "not-ours"},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_verify_with_gateway_down(client: AsyncClient, booking_payload, gateway):
    booking = await create_online_booking(client, booking_payload)
    order = (await client.post("/api/v1/payments/create-order", json={"booking_id": booking["id"]})).json()
    gateway.fail_verification(GatewayErrorKind.FORMAT)

    response = await client.post(
        "/api/v1/payments/verify",
        json={"booking_id": booking["id"], "external_order_id": order["external_order_id"]},
    )

    assert response.status_code == 200
    result = response.json()
    assert result["payment_status"] == "Failed"
    assert result["invoice_no"] is None
    assert result["error_kind"] == "format"


# ==================== CUSTOMERS ====================


@pytest.mark.asyncio
async def test_register_guest(client: AsyncClient):
    response = await client.post(
        "/api/v1/customers/register",
        json={
            "email": "maria@example.com",
            "first_name": "Maria",
            "last_name": "Ioannou",
            "phone": "+35799333333",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["outcome"] == "Created"
    assert data["customer"]["has_password"] is False
    assert "password_hash" not in data["customer"]


@pytest.mark.asyncio
async def test_register_existing_email_conflict(client: AsyncClient, customer):
    response = await client.post(
        "/api/v1/customers/register",
        json={
            "email": customer.email,
            "first_name": "Ann",
            "last_name": "Georgiou",
            "phone": customer.phone,
        },
    )

    assert response.status_code == 409
    body = response.json()
    assert body["type"] == "DATA_CONFLICT"
    assert body["conflicts"] == [{"field": "firstName", "existing": "Anne", "new": "Ann"}]
    assert body["existing_customer"]["email"] == customer.email


@pytest.mark.asyncio
async def test_register_exact_match(client: AsyncClient, customer):
    response = await client.post(
        "/api/v1/customers/register",
        json={
            "email": customer.email,
            "first_name": "Anne",
            "last_name": "Georgiou",
            "phone": customer.phone,
        },
    )

    assert response.status_code == 409
    assert response.json()["type"] == "EXACT_MATCH"


@pytest.mark.asyncio
async def test_accept_and_update_resolves_conflict(client: AsyncClient, customer):
    response = await client.patch(
        f"/api/v1/customers/{customer.id}",
        json={"first_name": "Ann"},
    )
    assert response.status_code == 200
    assert response.json()["first_name"] == "Ann"

    retry = await client.post(
        "/api/v1/customers/find",
        json={"email": customer.email},
    )
    assert retry.json()["first_name"] == "Ann"


@pytest.mark.asyncio
async def test_guest_login_needs_password(client: AsyncClient, customer):
    response = await client.post(
        "/api/v1/customers/login",
        json={"email": customer.email, "password": "secret123"},
    )

    assert response.status_code == 401
    assert response.json()["type"] == "NO_PASSWORD"


@pytest.mark.asyncio
async def test_set_password_then_login(client: AsyncClient, customer):
    upgraded = await client.post(
        "/api/v1/customers/set-password",
        json={"email": customer.email, "password": "secret123"},
    )
    assert upgraded.status_code == 200
    assert upgraded.json()["verified"] is True

    login = await client.post(
        "/api/v1/customers/login",
        json={"email": customer.email, "password": "secret123"},
    )
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = await client.get("/api/v1/customers/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == customer.email

    again = await client.post(
        "/api/v1/customers/set-password",
        json={"email": customer.email, "password": "another123"},
    )
    assert again.status_code == 409
    assert again.json()["type"] == "CREDENTIAL_EXISTS"

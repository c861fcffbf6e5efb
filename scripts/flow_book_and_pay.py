#!/usr/bin/env python3
"""
Complete booking and payment flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_pay.py --vehicle-id <UUID> --start 2026-11-01T10:00+02:00 --end 2026-11-04T10:00+02:00
    python scripts/flow_book_and_pay.py --vehicle-id <UUID> --start ... --end ... --on-arrival
    python scripts/flow_book_and_pay.py --verify --booking-id <UUID> --order-id <JCC orderId>

Flow (online):
    1. Create booking with guest customer details
    2. Create gateway order
    3. Open the payment URL in a browser and pay with a test card
    4. Re-run with --verify to apply the payment
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"

# Test customer
CUSTOMER = {
    "email": "guest@example.com",
    "first_name": "Anne",
    "last_name": "Georgiou",
    "phone": "+35799000000",
}


def api_request(method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make API request."""
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, timeout=40.0, follow_redirects=True)
    elif method == "POST":
        response = httpx.post(url, json=data or {}, timeout=40.0, follow_redirects=True)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def verify(booking_id: str, order_id: str):
    print_step(1, "Verify payment")
    result = api_request("POST", "/api/v1/payments/verify", {
        "booking_id": booking_id,
        "external_order_id": order_id,
    })
    if not print_result(result):
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Complete booking and payment flow")
    parser.add_argument("--vehicle-id", help="Vehicle UUID")
    parser.add_argument("--start", help="Pick-up date/time (ISO 8601 with UTC offset)")
    parser.add_argument("--end", help="Drop-off date/time (ISO 8601 with UTC offset)")
    parser.add_argument("--price", default="150.00", help="Total price in EUR")
    parser.add_argument("--on-arrival", action="store_true", help="Pay on arrival instead of online")
    parser.add_argument("--verify", action="store_true", help="Only verify an existing gateway order")
    parser.add_argument("--booking-id", help="Booking UUID (with --verify)")
    parser.add_argument("--order-id", help="Gateway order id (with --verify)")
    args = parser.parse_args()

    if args.verify:
        if not args.booking_id or not args.order_id:
            parser.error("--verify needs --booking-id and --order-id")
        verify(args.booking_id, args.order_id)
        return

    if not (args.vehicle_id and args.start and args.end):
        parser.error("--vehicle-id, --start and --end are required")

    # Step 1: Create booking
    print_step(1, "Create booking")
    booking_data = {
        "customer": CUSTOMER,
        "vehicle_id": args.vehicle_id,
        "start_date": args.start,
        "end_date": args.end,
        "total_price": args.price,
        "payment_type": "OnArrival" if args.on_arrival else "Online",
        "extras": [],
    }
    booking_result = api_request("POST", "/api/v1/bookings", booking_data)

    # Known customer from an earlier run: book by id instead
    if booking_result["status"] == 409 and booking_result["data"].get("type") == "EXACT_MATCH":
        found = api_request("POST", "/api/v1/customers/find", {"email": CUSTOMER["email"]})
        if not print_result(found, ["id", "email"]):
            sys.exit(1)
        del booking_data["customer"]
        booking_data["customer_id"] = found["data"]["id"]
        booking_result = api_request("POST", "/api/v1/bookings", booking_data)
    if not print_result(booking_result, ["id", "order_number", "invoice_no", "status", "payment_status"]):
        sys.exit(1)

    booking_id = booking_result["data"]["id"]
    order_number = booking_result["data"]["order_number"]
    print(f"\nBooking created: {order_number}")

    if args.on_arrival:
        print("\n" + "="*60)
        print("FLOW COMPLETE (pay on arrival)")
        print("="*60)
        return

    # Step 2: Create gateway order
    print_step(2, "Create gateway order")
    order_result = api_request("POST", "/api/v1/payments/create-order", {"booking_id": booking_id})
    if not print_result(order_result):
        sys.exit(1)

    print("\n" + "="*60)
    print("OPEN THE PAYMENT PAGE, PAY, THEN VERIFY")
    print("="*60)
    print(f"Payment URL: {order_result['data']['payment_url']}")
    print(
        f"Verify with: python scripts/flow_book_and_pay.py --verify "
        f"--booking-id {booking_id} --order-id {order_result['data']['external_order_id']}"
    )


if __name__ == "__main__":
    main()

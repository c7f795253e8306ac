#!/usr/bin/env python3
"""
Complete quote, checkout and settlement flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Requires the backend and scripts/mock_smoobu.py to be running, with the
backend's STRIPE_WEBHOOK_SECRET matching the mock's.

Usage:
    python scripts/flow_book_and_pay.py --property-id <UUID> --check-in 2026-04-01 --check-out 2026-04-04

Flow:
    1. Fetch nightly rates
    2. Request a quote
    3. Start checkout
    4. Deliver checkout.session.completed (via the mock)
    5. Deliver it again to show idempotent settlement
"""

import argparse
import json
import os
import sys

import httpx

BASE_URL = os.environ.get("BACKEND_URL", "http://localhost:8000")
MOCK_URL = os.environ.get("MOCK_SMOOBU_URL", "http://localhost:4200")


def api_request(method: str, url: str, data: dict | None = None, params: dict | None = None) -> dict:
    """Make an unauthenticated API request."""
    if method == "GET":
        response = httpx.get(url, params=params, timeout=10.0, follow_redirects=True)
    elif method == "POST":
        response = httpx.post(url, json=data or {}, timeout=30.0, follow_redirects=True)
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


def main():
    parser = argparse.ArgumentParser(description="Complete quote, checkout and settlement flow")
    parser.add_argument("--property-id", required=True, help="Property UUID")
    parser.add_argument("--check-in", required=True, help="Check-in date (YYYY-MM-DD)")
    parser.add_argument("--check-out", required=True, help="Check-out date (YYYY-MM-DD)")
    parser.add_argument("--adults", type=int, default=2, help="Number of adults")
    parser.add_argument("--email", default="guest@example.com", help="Guest email")
    args = parser.parse_args()

    property_url = f"{BASE_URL}/api/v1/properties/{args.property_id}"

    # Step 1: Rates
    print_step(1, "Fetch nightly rates")
    rates_result = api_request("GET", f"{property_url}/rates", params={
        "start": args.check_in,
        "end": args.check_out,
    })
    if not print_result(rates_result, ["currency", "start", "end"]):
        sys.exit(1)

    # Step 2: Quote
    print_step(2, "Request quote")
    quote_result = api_request("POST", f"{property_url}/quote", {
        "check_in": args.check_in,
        "check_out": args.check_out,
        "guests": args.adults,
    })
    if not print_result(quote_result, ["nights", "base_total_cents", "city_tax_cents", "total_cents"]):
        sys.exit(1)

    quote = quote_result["data"]
    print("\nPricing Summary:")
    print(f"  Total:          {quote['total_cents']:,} cents")
    print(f"  Platform fee:   {quote['platform_fee_cents']:,} cents ({quote['fee_percent']}%)")
    print(f"  Broker net:     {quote['broker_net_cents']:,} cents")

    # Step 3: Checkout
    print_step(3, "Start checkout")
    checkout_result = api_request("POST", f"{BASE_URL}/api/v1/checkout", {
        "property_id": args.property_id,
        "check_in": args.check_in,
        "check_out": args.check_out,
        "adults": args.adults,
        "guest": {"first_name": "Flow", "last_name": "Script", "email": args.email},
        "expected_total_cents": quote["total_cents"],
    })
    if not print_result(checkout_result, ["booking_id", "booking_number", "session_id", "checkout_url"]):
        sys.exit(1)

    session_id = checkout_result["data"]["session_id"]
    booking_number = checkout_result["data"]["booking_number"]

    # Step 4: Settlement
    print_step(4, "Deliver checkout.session.completed")
    webhook_result = api_request("POST", f"{MOCK_URL}/mock/trigger-webhook", {"sessionId": session_id})
    if not print_result(webhook_result):
        sys.exit(1)

    # Step 5: Redelivery
    print_step(5, "Redeliver the same event")
    replay_result = api_request("POST", f"{MOCK_URL}/mock/trigger-webhook", {"sessionId": session_id})
    if not print_result(replay_result):
        sys.exit(1)

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)
    print(f"Booking:        {booking_number}")
    print(f"Total Paid:     {quote['total_cents']:,} cents")


if __name__ == "__main__":
    main()

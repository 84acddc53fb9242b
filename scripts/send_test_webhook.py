# scripts/send_test_webhook.py
# Sends a signed sample order webhook to a running receiver.
#
#   python scripts/send_test_webhook.py --event order-updated --number 1001

import argparse
import json
import os
from datetime import datetime, timezone

import httpx
from dotenv import load_dotenv

from app.woocommerce.signature import SIGNATURE_HEADER, compute_signature

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", "app", ".env"))

SECRET_VARS = {
    "order-created": "WC_ORDER_CREATED_SECRET",
    "order-updated": "WC_ORDER_UPDATED_SECRET",
}


def sample_order(number: str) -> dict:
    now = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "id": int(number) if number.isdigit() else 0,
        "number": number,
        "status": "processing",
        "currency": "GBP",
        "currency_symbol": "£",
        "date_created": now,
        "date_modified": now,
        "date_paid": now,
        "total": "42.50",
        "customer_id": 7,
        "billing": {
            "first_name": "Test",
            "last_name": "Customer",
            "email": "test@example.com",
            "phone": "0123456789",
        },
        "payment_method": "stripe",
        "payment_method_title": "Credit Card",
        "line_items": [{"id": 1, "name": "Sample product", "quantity": 2, "total": "42.50"}],
    }


def main():
    parser = argparse.ArgumentParser(description="Send a signed sample WooCommerce order webhook")
    parser.add_argument("--url", default=os.getenv("RECEIVER_URL", "http://127.0.0.1:3000"))
    parser.add_argument("--source", default="woocommerce")
    parser.add_argument("--event", choices=sorted(SECRET_VARS), default="order-created")
    parser.add_argument("--number", default="1001")
    parser.add_argument("--bad-signature", action="store_true", help="send a wrong signature")
    args = parser.parse_args()

    # Signed bytes must be exactly the bytes sent
    data = json.dumps(sample_order(args.number), indent=2).encode("utf-8")
    secret = os.getenv(SECRET_VARS[args.event], "")
    signature = compute_signature(secret, data)
    if args.bad_signature:
        signature = compute_signature(secret + "x", data)

    resp = httpx.post(
        f"{args.url.rstrip('/')}/webhooks/{args.source}/{args.event}",
        content=data,
        headers={
            SIGNATURE_HEADER: signature,
            "X-WC-Webhook-Topic": args.event.replace("-", "."),
            "Content-Type": "application/json",
        },
        timeout=10.0,
    )
    print("Status:", resp.status_code)
    print("Response:", resp.text)


if __name__ == "__main__":
    main()

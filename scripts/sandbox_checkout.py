"""Drive one estimate through approval and payment against a running billing API."""

import argparse
import json
from uuid import uuid4

import httpx


def main() -> None:
    """CLI entrypoint: create estimate, approve it, pay it, print the payment."""

    parser = argparse.ArgumentParser(description="Create, approve and pay one estimate end to end.")
    parser.add_argument("--billing-url", default="http://localhost:8080")
    parser.add_argument("--order-id", default=None, help="service order id (random when omitted)")
    parser.add_argument("--price", type=float, default=150.0)
    parser.add_argument("--payment-method", default="pix")
    parser.add_argument("--payer-email", default="")
    args = parser.parse_args()

    order_id = args.order_id or f"os-{uuid4()}"
    order = {"service_order_id": order_id, "services": [{"name": "checkout", "price": args.price}]}

    with httpx.Client(base_url=args.billing_url, timeout=15.0) as client:
        created = client.post("/v1/estimates", json=order)
        created.raise_for_status()
        estimate_id = created.json()["estimate_id"]

        client.patch("/v1/estimates/approve", json={"service_order_id": order_id}).raise_for_status()

        payload = {"payment_method_id": args.payment_method}
        if args.payer_email:
            payload["payer"] = {"email": args.payer_email}
        paid = client.post(f"/v1/payments/{estimate_id}", json={"mp_payload": payload})
        if paid.status_code >= 400:
            print(json.dumps({"status_code": paid.status_code, "error": paid.json()}, indent=2))
            raise SystemExit(1)
        print(json.dumps(paid.json(), indent=2))


if __name__ == "__main__":
    main()

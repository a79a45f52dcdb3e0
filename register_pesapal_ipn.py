#!/usr/bin/env python3
"""
Register the IPN URL with Pesapal and print the ipn_id to put in PESAPAL_IPN_ID.
Reuses an existing registration for the same URL.

    python register_pesapal_ipn.py [--url https://.../api/v1/webhooks/pesapal] [--method POST|GET] [--list]
"""
import argparse
import sys

from app.core.config import settings
from app.services.pesapal_client import PesapalClient, PesapalConfig, PesapalError


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Register the Pesapal IPN URL")
    parser.add_argument("--url", default=settings.PESAPAL_IPN_URL, help="IPN URL (default: PESAPAL_IPN_URL)")
    parser.add_argument("--method", default="POST", choices=["POST", "GET"], help="How Pesapal should call the IPN")
    parser.add_argument("--list", action="store_true", help="Only list registered IPNs")
    args = parser.parse_args(argv)

    print(f"[pesapal] API URL: {settings.PESAPAL_API_URL}")
    try:
        client = PesapalClient(PesapalConfig(
            api_url=settings.PESAPAL_API_URL,
            consumer_key=settings.PESAPAL_CONSUMER_KEY,
            consumer_secret=settings.PESAPAL_CONSUMER_SECRET,
            ipn_url=args.url,
            timeout=settings.PAYMENT_PROVIDER_TIMEOUT_SECONDS,
        ))
        existing = client.list_ipns()
        print(f"[pesapal] {len(existing)} IPN(s) registered")
        for ipn in existing:
            print(f"  {ipn.get('ipn_id')}  {ipn.get('ipn_notification_type_description') or ''}  {ipn.get('url')}")
        if args.list:
            return 0

        if not args.url:
            print("[pesapal] No IPN URL given (set PESAPAL_IPN_URL or pass --url)")
            return 1

        match = next((i for i in existing if i.get("url") == args.url), None)
        if match:
            print("[pesapal] IPN already registered")
            ipn_id = match.get("ipn_id")
        else:
            ipn_id = client.register_ipn(args.url, notification_type=args.method)["ipn_id"]
            print("[pesapal] IPN registered")
    except PesapalError as e:
        print(f"[pesapal] {e}")
        return 1

    print(f"\nAdd this to your .env:\n  PESAPAL_IPN_ID={ipn_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Thin client for the parts of the Paystack API this app talks to."""
import hashlib
import hmac
import random
import string
import time
from urllib.parse import quote

import requests
from flask import current_app

SIGNATURE_HEADER = "x-paystack-signature"


class PaystackUnavailable(Exception):
    """Paystack could not be reached."""


def generate_payment_reference():
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=7))
    return f"TOS-{int(time.time() * 1000)}-{suffix}"


def compute_signature(raw_body, secret):
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def is_valid_signature(raw_body, signature, secret):
    """Check a webhook signature against the exact bytes that were received."""
    if not secret or not signature:
        return False
    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(expected, signature.strip().lower())


def verify_transaction(reference, secret):
    """Ask Paystack for the authoritative state of ``reference``.

    Returns ``(ok, data, error)``. ``ok`` is True only when Paystack reports
    the transaction as successful. Raises PaystackUnavailable when the API
    cannot be reached.
    """
    if not secret:
        current_app.logger.error("PAYSTACK_SECRET_KEY is not configured")
        return False, None, "Payment system not configured. Please contact administrator."

    base_url = current_app.config.get("PAYSTACK_BASE_URL", "https://api.paystack.co")
    headers = {"Authorization": f"Bearer {secret}"}

    try:
        response = requests.get(
            f"{base_url}/transaction/verify/{quote(reference, safe='')}",
            headers=headers,
            timeout=current_app.config.get("PAYSTACK_TIMEOUT", 10),
        )
    except requests.exceptions.RequestException as e:
        current_app.logger.error(f"Could not reach Paystack: {e}")
        raise PaystackUnavailable(str(e)) from e

    if response.status_code != 200:
        current_app.logger.error(f"Paystack API error: {response.status_code} {response.text}")
        return False, None, f"Payment verification failed: {response.status_code}"

    try:
        result = response.json()
    except ValueError:
        return False, None, "Invalid Paystack response"

    data = result.get("data")
    if result.get("status") and isinstance(data, dict) and data.get("status") == "success":
        return True, data, None
    if result.get("status") and data is None:
        # Paystack said yes but sent nothing to reconcile against
        return True, None, None

    return False, None, result.get("message") or "Payment verification failed"

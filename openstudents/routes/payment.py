import json
from flask import Blueprint, request, jsonify, current_app
from openstudents.helpers.enrollment import find_by_reference, mark_payment_failed, reconcile_payment
from openstudents.helpers.settings_cache import get_paystack_secret
from openstudents.models.enrollment import PAYMENT_COMPLETED
from openstudents.utils.db import connect_db_with_retry
from openstudents.utils.paystack import (
    SIGNATURE_HEADER,
    PaystackUnavailable,
    is_valid_signature,
    verify_transaction,
)

bp = Blueprint("payments", __name__)


@bp.route("/webhook", methods=["POST"])
def paystack_webhook():
    """Paystack event receiver.

    Always answers 200 for anything we could authenticate, so Paystack's own
    retry policy only kicks in for real failures.
    """
    secret = get_paystack_secret()
    if not secret:
        current_app.logger.error("Webhook received but PAYSTACK_SECRET_KEY is not configured")
        return jsonify({"success": False, "error": "Payment system not configured"}), 500

    # signature is over the bytes exactly as received
    raw_body = request.get_data(cache=True)
    signature = request.headers.get(SIGNATURE_HEADER, "")
    if not is_valid_signature(raw_body, signature, secret):
        current_app.logger.warning("Rejected Paystack webhook with invalid signature")
        return jsonify({"success": False, "error": "Invalid signature"}), 401

    try:
        event = json.loads(raw_body)
    except ValueError:
        return jsonify({"success": False, "error": "Malformed payload"}), 400

    if not isinstance(event, dict) or event.get("event") != "charge.success":
        return jsonify({"success": True}), 200

    data = event.get("data") or {}
    reference = data.get("reference") if isinstance(data, dict) else None
    if not reference:
        return jsonify({"success": True}), 200

    enrollment = find_by_reference(reference)
    if not enrollment:
        current_app.logger.info(f"Webhook for unknown reference {reference}, ignoring")
        return jsonify({"success": True}), 200

    reconcile_payment(enrollment, data.get("amount"), data.get("currency"))
    return jsonify({"success": True}), 200


@bp.route("/verify", methods=["POST"])
def verify_payment():
    data = request.get_json(silent=True) or {}
    reference = str(data.get("reference") or "").strip()
    if not reference:
        return jsonify({"success": False, "error": "Reference is required"}), 400

    current_app.logger.info(f"Verifying payment reference: {reference}")

    try:
        ok, trx_data, error = verify_transaction(reference, get_paystack_secret())
    except PaystackUnavailable:
        return jsonify({"success": False, "error": "Could not reach Paystack. Try again."}), 503

    if not ok:
        current_app.logger.error(f"Payment verification failed for {reference}: {error}")
        return jsonify({"success": False, "error": error}), 400

    if not connect_db_with_retry():
        return jsonify({"success": False, "error": "Database unavailable"}), 503

    enrollment = find_by_reference(reference)
    if not enrollment:
        current_app.logger.error(f"Enrollment not found for reference: {reference}")
        return jsonify({"success": False, "error": "Enrollment not found"}), 404

    if not trx_data:
        mark_payment_failed(enrollment)
        return jsonify({"success": False, "error": "Verification missing payment data"}), 400

    matched = reconcile_payment(enrollment, trx_data.get("amount"), trx_data.get("currency"))
    if not matched:
        return jsonify({"success": False, "error": "Payment mismatch detected"}), 400
    if enrollment.payment_status != PAYMENT_COMPLETED:
        # failed enrollments are never revived
        return jsonify({"success": False, "error": "Payment already marked as failed"}), 400

    return jsonify({"success": True, "data": trx_data}), 200

"""POST/GET /api/v1/webhooks/flutterwave."""

from decimal import Decimal

from conftest import charge_event, post_flutterwave

from app.models.agent_earning import AgentEarning
from app.models.audit_log import AuditLog
from app.services.flutterwave_client import FlutterwaveError
from app.services.idempotency_guard import notification_guard


def test_get_reports_endpoint_active(client):
    r = client.get("/api/v1/webhooks/flutterwave")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_successful_charge_confirms_booking(client, db, booking, payment, fake_flw, dispatched):
    fake_flw.approve(123, "TX1")

    r = post_flutterwave(client, charge_event())

    assert r.status_code == 200
    assert r.json() == {"status": "success", "message": "Webhook processed for tx_ref: TX1"}
    db.refresh(payment)
    db.refresh(booking)
    assert payment.status == "COMPLETED"
    assert payment.method == "CARD"
    assert payment.card_last_four == "2950"
    assert payment.provider_tracking_id == "123"
    assert booking.status == "CONFIRMED"
    assert booking.payment_status == "COMPLETED"
    earning = db.query(AgentEarning).one()
    assert earning.amount == Decimal("880.00")
    assert [a.action for a in db.query(AuditLog).all()] == ["PAYMENT_COMPLETED"]
    assert dispatched == [booking.id]


def test_redelivery_is_already_processed(client, db, booking, payment, fake_flw, dispatched):
    fake_flw.approve(123, "TX1")
    post_flutterwave(client, charge_event())

    # Within the dedup window the in-process guard answers.
    r = post_flutterwave(client, charge_event())
    assert r.json() == {"status": "already_processed"}
    assert len(fake_flw.calls) == 1

    # After it, the database state does.
    notification_guard.clear()
    r = post_flutterwave(client, charge_event())
    assert r.status_code == 200
    assert r.json() == {"status": "already_processed"}

    assert db.query(AgentEarning).count() == 1
    assert dispatched == [booking.id]


def test_bad_signature_changes_nothing(client, db, booking, payment, fake_flw):
    fake_flw.approve(123, "TX1")

    for verif_hash in ("wrong-hash", None):
        r = post_flutterwave(client, charge_event(), verif_hash=verif_hash)
        assert r.status_code == 401

    db.refresh(payment)
    assert payment.status == "PENDING"
    assert db.query(AuditLog).count() == 0
    assert fake_flw.calls == []


def test_unconfigured_secret_hash_rejects(client, payment, monkeypatch):
    monkeypatch.setattr("app.api.v1.routes.webhooks.settings.FLW_SECRET_HASH", "")
    r = post_flutterwave(client, charge_event(), verif_hash="")
    assert r.status_code == 401


def test_malformed_payload(client, payment):
    assert post_flutterwave(client, b"{not json").status_code == 400
    assert post_flutterwave(client, {"event": "charge.completed", "data": {"id": 1}}).status_code == 400


def test_non_charge_events_are_ignored(client, db, payment, fake_flw):
    r = post_flutterwave(client, charge_event(event="transfer.completed"))
    assert r.json() == {"status": "ignored"}
    assert fake_flw.calls == []


def test_unknown_tx_ref_is_404(client, db, payment, fake_flw):
    r = post_flutterwave(client, charge_event(tx_ref="NOPE"))
    assert r.status_code == 404
    assert fake_flw.calls == []
    db.refresh(payment)
    assert payment.status == "PENDING"


def test_verification_failure_is_500_and_audited(client, db, booking, payment, fake_flw):
    fake_flw.error = FlutterwaveError("Flutterwave GET /v3/transactions/123/verify failed: timeout")

    r = post_flutterwave(client, charge_event())

    assert r.status_code == 500
    db.refresh(payment)
    assert payment.status == "PENDING"
    assert db.query(AgentEarning).count() == 0
    assert [a.action for a in db.query(AuditLog).all()] == ["WEBHOOK_ERROR"]


def test_verified_status_wins_over_webhook_body(client, db, booking, payment, fake_flw, dispatched):
    """A forged 'successful' body cannot complete a payment the provider reports as failed."""
    fake_flw.approve(123, "TX1", status="failed")

    r = post_flutterwave(client, charge_event(status="successful"))

    assert r.status_code == 200
    db.refresh(payment)
    db.refresh(booking)
    assert payment.status == "FAILED"
    assert booking.payment_status == "FAILED"
    assert booking.status == "PENDING"
    assert dispatched == []


def test_verified_tx_ref_mismatch_is_rejected(client, db, payment, fake_flw):
    fake_flw.approve(123, "SOMEONE-ELSES-REF")

    r = post_flutterwave(client, charge_event())

    assert r.status_code == 400
    db.refresh(payment)
    assert payment.status == "PENDING"


def test_balance_payment_via_webhook(client, db, make_booking, make_payment, fake_flw, dispatched):
    b = make_booking("BK200", status="CONFIRMED", payment_status="COMPLETED", payment_type="DEPOSIT")
    make_payment(b, provider_ref="TX2-BAL", amount="500.00")
    fake_flw.approve(777, "TX2-BAL", amount=500)

    r = post_flutterwave(client, charge_event(tx_ref="TX2-BAL", tx_id=777, amount=500))

    assert r.status_code == 200
    db.refresh(b)
    assert b.status == "CONFIRMED"
    assert b.balance_paid_at is not None
    assert db.query(AgentEarning).one().amount == Decimal("440.00")
    assert dispatched == []


def test_sandbox_uses_signed_webhook_data(client, db, booking, payment, fake_flw, monkeypatch):
    monkeypatch.setattr("app.services.payment_verification.settings.PAYMENTS_SANDBOX", True)

    r = post_flutterwave(client, charge_event())

    assert r.status_code == 200
    assert fake_flw.calls == []
    db.refresh(payment)
    assert payment.status == "COMPLETED"


def test_sandbox_still_checks_signature(client, payment, monkeypatch):
    monkeypatch.setattr("app.services.payment_verification.settings.PAYMENTS_SANDBOX", True)
    assert post_flutterwave(client, charge_event(), verif_hash="wrong").status_code == 401


def test_underpaid_charge_is_rejected(client, db, booking, payment, fake_flw, dispatched):
    fake_flw.approve(123, "TX1", amount=1)

    r = post_flutterwave(client, charge_event())

    assert r.status_code == 400
    db.refresh(payment)
    db.refresh(booking)
    assert payment.status == "PENDING"
    assert booking.status == "PENDING"
    assert db.query(AgentEarning).count() == 0
    assert db.query(AuditLog).count() == 0
    assert dispatched == []


def test_charge_in_other_currency_is_rejected(client, db, payment, fake_flw):
    fake_flw.approve(123, "TX1")
    fake_flw.transactions["123"]["currency"] = "KES"

    r = post_flutterwave(client, charge_event())

    assert r.status_code == 400
    db.refresh(payment)
    assert payment.status == "PENDING"


def test_overpaid_charge_completes(client, db, payment, fake_flw):
    fake_flw.approve(123, "TX1", amount=1000.5)

    assert post_flutterwave(client, charge_event()).status_code == 200
    db.refresh(payment)
    assert payment.status == "COMPLETED"


def test_failed_charge_skips_amount_check(client, db, payment, fake_flw):
    fake_flw.approve(123, "TX1", status="failed", amount=0)

    assert post_flutterwave(client, charge_event(status="failed")).status_code == 200
    db.refresh(payment)
    assert payment.status == "FAILED"

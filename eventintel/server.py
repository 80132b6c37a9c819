"""Webhook server — receives registrations and exposes pipeline triggers."""

import hashlib
import hmac
import sys

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .errors import AttendeeNotFound, ValidationError
from .intake import register_attendee
from .notify import company_view
from .report import build_event_report
from .services import Services


def create_app(services=None):
    app = Flask(__name__)
    CORS(app)
    services = services or Services()
    app.config['SERVICES'] = services

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"success": False, "error": str(e)}), 400

    @app.errorhandler(AttendeeNotFound)
    def handle_not_found(e):
        return jsonify({"success": False, "error": "Attendee not found"}), 404

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        print(f"[server] Unhandled error on {request.path}: {e!r}", file=sys.stderr)
        return jsonify({"success": False, "error": "Internal server error"}), 500

    # ─── Registration webhook ────────────────────────────────────────────

    @app.route("/webhook/registration", methods=["POST"])
    def handle_registration():
        """
        Receive a registration from the event platform.

        Expected payload: {"name", "email", "company"?, "title"?, "event_id"?,
        "registration_id"?, "timestamp"?}. Enrichment runs in the background
        unless ?wait=1 is passed.
        """
        if not _signature_ok(services.settings.webhook_secret):
            return jsonify({"success": False, "error": "Invalid signature"}), 401

        data = request.get_json(force=True, silent=True)
        if not data:
            return jsonify({"success": False, "error": "No JSON payload"}), 400
        if not isinstance(data, dict):
            raise ValidationError("Registration payload must be a JSON object")

        user_id = _caller_identity(data)
        registration_config = services.settings.registration
        if registration_config.get('require_caller_identity') and not user_id:
            return jsonify({"success": False, "error": "Caller identity required"}), 401

        wait = request.args.get("wait", "").lower() in ("1", "true", "yes")
        try:
            attendee_id = register_attendee(
                services.db, data, user_id=user_id,
                trigger=services.orchestrator.run, wait=wait,
                default_event_id=registration_config.get('default_event_id', 'agentjam-2025'),
            )
        except ValidationError:
            raise
        except Exception as e:
            print(f"[server] Failed to insert attendee: {e}", file=sys.stderr)
            return jsonify({"success": False, "error": "Failed to insert attendee"}), 500

        return jsonify({
            "success": True,
            "attendee_id": attendee_id,
            "message": "Attendee processed and enrichment triggered",
        }), 200

    # ─── Pipeline triggers ───────────────────────────────────────────────

    @app.route("/enrich", methods=["POST"])
    def enrich():
        """Enrich and score a stored attendee ({"attendee_id"}) or inline data (dry run)."""
        data = _json_object()

        if data.get("attendee_id"):
            result = services.orchestrator.run(str(data["attendee_id"]))
        elif data.get("name") and data.get("email"):
            result = services.orchestrator.preview(
                data["name"], data["email"], company=data.get("company"), title=data.get("title"),
            )
        else:
            raise ValidationError("Missing attendee_id or required attendee data (name, email)")

        return jsonify(result), 200

    @app.route("/notify", methods=["POST"])
    def notify():
        data = _json_object()
        attendee_id = str(data.get("attendee_id") or "").strip()
        if not attendee_id:
            raise ValidationError("attendee_id is required")

        result = services.dispatcher.send(attendee_id, force=bool(data.get("force")))
        return jsonify({
            "success": result["success"],
            "notification_sent": result["sent"],
            "skipped": result.get("skipped"),
            "notification_ref": result.get("notification_ref"),
        }), 200

    @app.route("/expenses/pull", methods=["POST"])
    def pull_expenses():
        data = _json_object()
        event_id = str(data.get("event_id") or "").strip()
        if not event_id:
            raise ValidationError("event_id is required")

        try:
            result = services.expenses.pull(
                event_id, user_id=_caller_identity(data),
                start_date=data.get("start_date"), end_date=data.get("end_date"),
            )
        except Exception as e:
            print(f"[server] Expense pull failed for {event_id}: {e}", file=sys.stderr)
            return jsonify({"success": False, "error": "Failed to store expenses"}), 500

        if not result["success"]:
            return jsonify(result), 400
        return jsonify(result), 200

    # ─── Inspection ──────────────────────────────────────────────────────

    @app.route("/attendees/<attendee_id>", methods=["GET"])
    def get_attendee(attendee_id):
        attendee = services.db.get_attendee(attendee_id)
        if attendee is None:
            raise AttendeeNotFound(attendee_id)
        enrichment = services.db.get_enrichment(attendee_id)
        return jsonify({
            "attendee": attendee,
            "enrichment": enrichment,
            "company": company_view(enrichment),
            "lead_score": services.db.get_lead_score(attendee_id),
            "notifications": services.db.list_notifications(attendee_id),
        })

    @app.route("/events/<event_id>/attendees", methods=["GET"])
    def list_event_attendees(event_id):
        user_id = request.headers.get("X-User-Id") or None
        return jsonify(services.db.list_attendees(event_id, user_id))

    @app.route("/events/<event_id>/report", methods=["GET"])
    def event_report(event_id):
        user_id = request.headers.get("X-User-Id") or None
        return jsonify(build_event_report(services.db, event_id, user_id))

    @app.route("/sales-reps", methods=["GET"])
    def list_sales_reps():
        user_id = request.headers.get("X-User-Id") or None
        return jsonify(services.db.list_sales_reps(user_id))

    @app.route("/sales-reps", methods=["POST"])
    def add_sales_rep():
        data = _json_object()
        name = str(data.get("name") or "").strip()
        email = str(data.get("email") or "").strip()
        if not name or not email:
            raise ValidationError("Missing required fields: name and email")
        rep_id = services.db.add_sales_rep(_caller_identity(data), name, email,
                                           active=data.get("active", True))
        return jsonify(services.db.get_sales_rep(rep_id)), 201

    @app.route("/sales-reps/<rep_id>", methods=["PATCH"])
    def update_sales_rep(rep_id):
        data = _json_object()
        if services.db.get_sales_rep(rep_id) is None:
            return jsonify({"error": "Not found"}), 404
        if "active" in data:
            services.db.set_sales_rep_active(rep_id, bool(data["active"]))
        return jsonify(services.db.get_sales_rep(rep_id))

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    return app


def _json_object():
    """Request body as a dict. Empty or unparseable bodies read as {}."""
    data = request.get_json(force=True, silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _caller_identity(data=None):
    """Opaque owning-user id: X-User-Id header, else user_id in the body."""
    user_id = request.headers.get("X-User-Id") or (data or {}).get("user_id")
    if not user_id:
        return None
    return str(user_id).strip() or None


def _signature_ok(secret):
    """Verify X-Webhook-Signature = sha256(secret + body) when a secret is configured."""
    if not secret:
        return True
    signature = request.headers.get("X-Webhook-Signature", "")
    body = request.get_data(as_text=True)
    expected = hashlib.sha256((secret + body).encode()).hexdigest()
    return hmac.compare_digest(signature, expected)

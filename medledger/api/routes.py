"""
Flask route handlers for the REST relay.
"""

import sys
from datetime import datetime, timezone

from flask import request, jsonify

from medledger import __version__
from medledger.api.auth import (
    cleanup_expired_sessions,
    generate_token,
    sessions,
    token_required,
)
from medledger.commands import (
    AnchorRecord,
    ApproveClaim,
    CreatePrescription,
    GrantAccess,
    MarkDispensed,
    Register,
    RevokeAccess,
)
from medledger.errors import LedgerError, StorageError
from medledger.models import Role, normalize_address

STATUS_BY_KIND = {
    "NotFound": 404,
    "AlreadyRegistered": 409,
    "InvalidState": 409,
    "InvalidMedication": 400,
    "InvalidContentId": 400,
    "InvalidRole": 400,
    "NotAPatient": 403,
    "NotADoctor": 403,
    "NotAPharmacist": 403,
    "NotAnInsurer": 403,
    "NotAuthorizedDoctor": 403,
}


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _record_json(rec) -> dict:
    data = rec.to_dict()
    data["timestamp"] = _iso(rec.timestamp)
    return data


def _prescription_json(rx) -> dict:
    data = rx.to_dict()
    data["created_at"] = _iso(rx.created_at)
    data["updated_at"] = _iso(rx.updated_at)
    return data


def _rejected(kind: str, message: str):
    return jsonify({"success": False, "error": kind, "details": message}), STATUS_BY_KIND.get(kind, 400)


def _bad_request(message: str):
    return jsonify({"success": False, "error": "BadRequest", "details": message}), 400


def register_routes(app, gateway, content_store):
    """Register all relay routes on the Flask *app*."""

    def submit(command):
        outcome = gateway.submit(command)
        if not outcome.ok:
            print(f"[ledger] Rejected {command.operation} from {command.caller}: {outcome.error}")
        return outcome

    def json_body():
        if not request.is_json:
            raise ValueError("Content-Type must be application/json")
        body = request.get_json(silent=True)
        if body is None:
            return {}
        if not isinstance(body, dict):
            raise ValueError("JSON body must be an object")
        return body

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "MedLedger Relay API",
            "version": __version__,
            "status": "running",
            "endpoints": {
                "auth": "/api/auth/login",
                "register": "/api/register",
                "grants": "/api/grants",
                "records": "/api/records",
                "prescriptions": "/api/prescriptions",
                "verify": "/api/ledger/verify",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        ok, msg = gateway.verify()
        return jsonify({
            "status": "healthy" if ok else "unhealthy",
            "checks": {"commit_log": ok, "content_store": content_store is not None},
            "ledger_version": gateway.state.version,
            "active_sessions": len(sessions),
            "details": msg,
        }), 200 if ok else 503

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        try:
            address = normalize_address(json_body().get("address"))
        except ValueError as e:
            return _bad_request(str(e))

        cleanup_expired_sessions()
        token = generate_token(address)
        now = datetime.now(timezone.utc)
        sessions[token] = {"address": address, "created_at": now, "last_activity": now}
        return jsonify({
            "success": True,
            "token": token,
            "address": address,
            "role": gateway.role_of(address).value,
        }), 200

    @app.route("/api/auth/logout", methods=["POST"])
    @token_required
    def logout():
        sessions.pop(request.token, None)
        return jsonify({"success": True, "message": "Logged out successfully"}), 200

    # ── Registry ─────────────────────────────────────────────────────

    @app.route("/api/register", methods=["POST"])
    @token_required
    def register():
        try:
            role = Role.parse(json_body().get("role", ""))
        except ValueError as e:
            return _bad_request(str(e))

        outcome = submit(Register(request.caller, role))
        if not outcome.ok:
            return _rejected(outcome.error, outcome.message)
        return jsonify({"success": True, "seq": outcome.seq, "address": request.caller,
                        "role": outcome.value.value}), 201

    @app.route("/api/roles/<address>", methods=["GET"])
    def role_of(address):
        try:
            address = normalize_address(address)
        except ValueError as e:
            return _bad_request(str(e))
        return jsonify({"address": address, "role": gateway.role_of(address).value}), 200

    # ── Grants ───────────────────────────────────────────────────────

    @app.route("/api/grants", methods=["POST"])
    @token_required
    def grant():
        try:
            doctor = normalize_address(json_body().get("doctor"))
        except ValueError as e:
            return _bad_request(str(e))

        outcome = submit(GrantAccess(request.caller, doctor))
        if not outcome.ok:
            return _rejected(outcome.error, outcome.message)
        return jsonify({"success": True, "seq": outcome.seq, "patient": request.caller,
                        "doctor": doctor}), 200

    @app.route("/api/grants/<doctor>", methods=["DELETE"])
    @token_required
    def revoke(doctor):
        try:
            doctor = normalize_address(doctor)
        except ValueError as e:
            return _bad_request(str(e))

        outcome = submit(RevokeAccess(request.caller, doctor))
        if not outcome.ok:
            return _rejected(outcome.error, outcome.message)
        return jsonify({"success": True, "seq": outcome.seq, "patient": request.caller,
                        "doctor": doctor}), 200

    @app.route("/api/grants/<patient>/<doctor>", methods=["GET"])
    def has_access(patient, doctor):
        try:
            patient, doctor = normalize_address(patient), normalize_address(doctor)
        except ValueError as e:
            return _bad_request(str(e))
        return jsonify({"patient": patient, "doctor": doctor,
                        "has_access": gateway.has_access(patient, doctor)}), 200

    # ── Records ──────────────────────────────────────────────────────

    @app.route("/api/records", methods=["POST"])
    @token_required
    def anchor():
        try:
            data = json_body()
            patient = normalize_address(data.get("patient") or request.caller)
        except ValueError as e:
            return _bad_request(str(e))
        cid = data.get("cid") or ""
        if not isinstance(cid, str):
            return _bad_request("cid must be a string")
        cid = cid.strip()

        outcome = submit(AnchorRecord(request.caller, patient, cid))
        if not outcome.ok:
            return _rejected(outcome.error, outcome.message)
        return jsonify({"success": True, "seq": outcome.seq, "patient": patient,
                        "cid": cid}), 201

    @app.route("/api/records/upload", methods=["POST"])
    @token_required
    def upload():
        upload_file = request.files.get("file")
        if upload_file is None or not upload_file.filename:
            return _bad_request("file is required")
        try:
            patient = normalize_address(request.form.get("patient") or request.caller)
        except ValueError as e:
            return _bad_request(str(e))

        # Reject before pinning so nothing is stored for an unknown patient.
        if gateway.role_of(patient) is not Role.PATIENT:
            return _rejected("NotAPatient", f"{patient} is not a registered patient.")

        try:
            print(f"[storage] Pinning {upload_file.filename} for {patient}...")
            cid = content_store.pin(upload_file.read(), upload_file.filename)
            print(f"[storage] File pinned, CID: {cid}")
        except StorageError as e:
            print(f"[ERROR] Upload failed: {e}", file=sys.stderr)
            return jsonify({"success": False, "error": "StorageError", "details": str(e)}), 502

        outcome = submit(AnchorRecord(request.caller, patient, cid))
        if not outcome.ok:
            return _rejected(outcome.error, outcome.message)
        return jsonify({"success": True, "seq": outcome.seq, "patient": patient, "cid": cid}), 201

    @app.route("/api/records/<patient>", methods=["GET"])
    def records_of(patient):
        try:
            patient = normalize_address(patient)
        except ValueError as e:
            return _bad_request(str(e))
        records = [_record_json(r) for r in gateway.records_of(patient)]
        return jsonify({"patient": patient, "records": records}), 200

    # ── Prescriptions ────────────────────────────────────────────────

    @app.route("/api/prescriptions", methods=["POST"])
    @token_required
    def create_prescription():
        try:
            data = json_body()
            patient = normalize_address(data.get("patient"))
        except ValueError as e:
            return _bad_request(str(e))
        medication = data.get("medication")
        if medication is not None and not isinstance(medication, str):
            return _bad_request("medication must be a string")

        outcome = submit(CreatePrescription(request.caller, patient, medication))
        if not outcome.ok:
            return _rejected(outcome.error, outcome.message)
        return jsonify({"success": True, "seq": outcome.seq,
                        "prescription": _prescription_json(outcome.value)}), 201

    @app.route("/api/prescriptions/<int:prescription_id>/dispense", methods=["POST"])
    @token_required
    def dispense(prescription_id):
        outcome = submit(MarkDispensed(request.caller, prescription_id))
        if not outcome.ok:
            return _rejected(outcome.error, outcome.message)
        return jsonify({"success": True, "seq": outcome.seq,
                        "prescription": _prescription_json(outcome.value)}), 200

    @app.route("/api/prescriptions/<int:prescription_id>/approve", methods=["POST"])
    @token_required
    def approve(prescription_id):
        outcome = submit(ApproveClaim(request.caller, prescription_id))
        if not outcome.ok:
            return _rejected(outcome.error, outcome.message)
        return jsonify({"success": True, "seq": outcome.seq,
                        "prescription": _prescription_json(outcome.value)}), 200

    @app.route("/api/prescriptions/<int:prescription_id>", methods=["GET"])
    def prescription_of(prescription_id):
        try:
            rx = gateway.prescription_of(prescription_id)
        except LedgerError as e:
            return _rejected(e.kind, str(e))
        return jsonify({"prescription": _prescription_json(rx)}), 200

    # ── Ledger ───────────────────────────────────────────────────────

    @app.route("/api/ledger/verify", methods=["GET"])
    def verify():
        ok, msg = gateway.verify()
        return jsonify({"valid": ok, "details": msg, "commits": len(gateway.commits())}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({"error": "Upload too large", "message": str(e)}), 413

    @app.errorhandler(500)
    def internal_error(e):
        print(f"[ERROR] Unhandled error: {getattr(e, 'original_exception', e)}", file=sys.stderr)
        return jsonify({"error": "Internal server error", "message": str(e)}), 500

from __future__ import annotations

import io
import logging
from functools import wraps

from flask import Flask, g, jsonify, request, send_file, session

from ..access.model import IdentityContext
from ..core.enums import ErrorKind, PersonType, Role
from ..core.exceptions import DomainError
from ..container import Container
from ..persons.model import SubjectRef

logger = logging.getLogger(__name__)

HTTP_STATUS = {
    ErrorKind.MALFORMED_INPUT: 400,
    ErrorKind.EXPIRED: 400,
    ErrorKind.SUBJECT_INACTIVE: 400,
    ErrorKind.ALREADY_USED: 409,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.SUBJECT_NOT_FOUND: 404,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BRANCH_MISMATCH: 403,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.SCOPE_CONFIGURATION: 403,
    ErrorKind.INFRASTRUCTURE: 503,
}


def _error(message: str, status: int, *, kind: ErrorKind | None = None, retryable: bool = False):
    body = {"success": False, "message": message}
    if kind is not None:
        body["error"] = kind.value
        body["retryable"] = retryable
    return jsonify(body), status


def _domain_error(exc: DomainError):
    return _error(exc.message, HTTP_STATUS.get(exc.kind, 400), kind=exc.kind, retryable=exc.retryable)


def _subject(person_type: str, person_id: int) -> SubjectRef | None:
    try:
        return SubjectRef(PersonType(person_type), int(person_id))
    except ValueError:
        return None


def register(app: Flask, container: Container) -> None:
    def identity_required(view):
        """The external authenticator stores user_id/role/branch_id in the session."""

        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session or "role" not in session:
                return _error("User not authenticated", 401)
            try:
                role = Role(session["role"])
            except ValueError:
                return _error("Unknown role", 403, kind=ErrorKind.SCOPE_CONFIGURATION)
            branch_id = session.get("branch_id")
            g.identity = IdentityContext(
                user_id=int(session["user_id"]),
                role=role,
                branch_id=int(branch_id) if branch_id is not None else None,
            )
            return view(*args, **kwargs)

        return wrapper

    def _scan_response(payload):
        try:
            outcome = container.orchestrator.process_scan(payload, g.identity)
        except Exception:
            logger.exception("QR check-in/out error, scanner=%s", g.identity.user_id)
            return _error("Failed to process QR check", 500)
        if outcome.ok:
            return jsonify(outcome.to_dict()), 200
        return jsonify(outcome.to_dict()), HTTP_STATUS.get(outcome.error, 400)

    @app.route("/api/qr-check/in", methods=["POST"], endpoint="api_qr_check_in")
    @identity_required
    def api_qr_check_in():
        """Check a member or staff person in or out; the action follows from today's record."""
        data = request.get_json(silent=True) or {}
        qr_data = data.get("qrData")
        if not qr_data:
            return _error("QR data is required", 400, kind=ErrorKind.MALFORMED_INPUT)
        return _scan_response(qr_data)

    @app.route("/api/qr-check/in/image", methods=["POST"], endpoint="api_qr_check_in_image")
    @identity_required
    def api_qr_check_in_image():
        """Accept an uploaded image, decode the QR code, and process it like a scan."""
        # Needs the native zbar library; only loaded when an image arrives.
        from PIL import Image, UnidentifiedImageError
        from pyzbar.pyzbar import decode as pyzbar_decode

        if "image" not in request.files:
            return _error("Missing image file", 400, kind=ErrorKind.MALFORMED_INPUT)

        try:
            img = Image.open(request.files["image"].stream).convert("RGB")
        except UnidentifiedImageError:
            return _error("Unreadable image", 400, kind=ErrorKind.MALFORMED_INPUT)

        decoded = pyzbar_decode(img)
        if not decoded:
            return _error("No QR code found in image", 400, kind=ErrorKind.MALFORMED_INPUT)

        return _scan_response(decoded[0].data)

    @app.route("/api/qr-check/history", methods=["GET"], endpoint="api_qr_check_history")
    @identity_required
    def api_qr_check_history():
        branch_id = request.args.get("branchId") or g.identity.branch_id
        if branch_id is None:
            return _error("branchId is required", 400, kind=ErrorKind.MALFORMED_INPUT)
        try:
            history = container.history.get_today_history(branch_id, g.identity)
        except DomainError as e:
            return _domain_error(e)
        return jsonify({"success": True, "data": {"history": [h.to_dict() for h in history]}}), 200

    @app.route(
        "/api/qr-check/attendance/<person_type>/<int:person_id>",
        methods=["GET"],
        endpoint="api_qr_check_attendance",
    )
    @identity_required
    def api_qr_check_attendance(person_type: str, person_id: int):
        try:
            records = container.history.get_attendance_history(person_id, person_type, g.identity)
        except DomainError as e:
            return _domain_error(e)
        return jsonify({"success": True, "data": {"attendance": [r.to_dict() for r in records]}}), 200

    @app.route(
        "/api/qr-check/token/<person_type>/<int:person_id>",
        methods=["POST"],
        endpoint="api_qr_check_token",
    )
    @identity_required
    def api_qr_check_token(person_type: str, person_id: int):
        subject = _subject(person_type, person_id)
        if subject is None:
            return _error("Unknown person type", 400, kind=ErrorKind.MALFORMED_INPUT)
        try:
            token = container.issuer.issue(subject, g.identity)
        except DomainError as e:
            return _domain_error(e)
        return jsonify({"success": True, "data": {"qrData": token.to_payload()}}), 201

    @app.route(
        "/api/qr-check/token/<person_type>/<int:person_id>.png",
        methods=["GET"],
        endpoint="api_qr_check_token_image",
    )
    @identity_required
    def api_qr_check_token_image(person_type: str, person_id: int):
        """Issue a fresh token and return it as a QR code image."""
        subject = _subject(person_type, person_id)
        if subject is None:
            return _error("Unknown person type", 400, kind=ErrorKind.MALFORMED_INPUT)
        try:
            token = container.issuer.issue(subject, g.identity)
        except DomainError as e:
            return _domain_error(e)

        png = container.issuer.render_png(token)
        return send_file(io.BytesIO(png), mimetype="image/png")

import json
import logging
import time

from botocore.exceptions import ClientError

from shared.backend import get_backend
from shared.config import Settings
from shared.errors import ServiceError, InvalidArgument, NotFound, FailedPrecondition, Internal
from shared.http import (
    AUTHED_ALLOWED_HEADERS, get_http_method, parse_json_body,
    json_response, preflight_response, error_response, method_not_allowed
)
from shared.identity import authenticate_request

# --- Set up logger ---
logger = logging.getLogger()
logger.setLevel(logging.INFO)
# ---

# --- Configuration ---
SETTINGS = Settings.from_env()
REQUIRED_SETTINGS = ('otps_table_name', 'users_table_name')
# ---


def verify_university_email(event, context, settings=None, backend=None):
    """
    API: POST /api/verify-university-email
    Checks the submitted code against the caller's pending verification.

    A wrong code leaves the record alone so the caller can retry. A correct
    code, or an expired record, deletes it. On success the caller's profile
    is marked as a verified student.
    """
    settings = settings or SETTINGS

    # --- CORS Preflight Check ---
    http_method = get_http_method(event)
    if http_method == 'OPTIONS':
        logger.info("Handling OPTIONS preflight request for verify_university_email")
        return preflight_response(settings, AUTHED_ALLOWED_HEADERS)

    if http_method != 'POST':
        return method_not_allowed(settings)

    log_context = {"action": "verify_university_email"}
    try:
        settings.require(*REQUIRED_SETTINGS)
        user_id = authenticate_request(event, settings)
        log_context["user_id"] = user_id

        body = parse_json_body(event)
        otp = body.get('otp')
        if not otp or not isinstance(otp, str):
            raise InvalidArgument("Missing OTP")

        backend = backend or get_backend(settings)
        verifications = backend.verifications

        pending = verifications.get_pending(user_id)
        if not pending:
            raise NotFound("No OTP sent")

        if pending.get('otp') != otp:
            raise InvalidArgument("Invalid OTP")

        now = int(time.time())
        if now > int(pending.get('expires_at', 0)):
            # Conditional on the code we read, so a newer code issued meanwhile survives.
            verifications.consume(user_id, otp)
            raise FailedPrecondition("OTP expired")

        if not verifications.consume(user_id, otp):
            # Another request consumed this code between our read and delete.
            raise NotFound("No OTP sent")

        university_email = pending['email']
        backend.profiles.mark_student_verified(user_id, university_email, now)
        logger.info(json.dumps({**log_context, "status": "info", "message": "University email verified."}))

        return json_response(200, {"ok": True}, settings)

    except ServiceError as se:
        logger.error(json.dumps({
            **log_context,
            "status": "error",
            "error_code": se.code,
            "error_message": se.message,
            "detail": se.detail
        }))
        return error_response(se, settings)
    except ClientError as ce:
        logger.error(json.dumps({
            **log_context,
            "status": "error",
            "error_code": ce.response['Error']['Code'],
            "error_message": str(ce)
        }))
        return error_response(Internal("Database error.", detail=str(ce)), settings)
    except Exception as e:
        logger.error(json.dumps({**log_context, "status": "error", "error_message": str(e)}))
        return error_response(Internal("An unexpected error occurred.", detail=str(e)), settings)

import json
import logging
import random
import time

from botocore.exceptions import ClientError

from shared.backend import get_backend
from shared.config import Settings
from shared.errors import ServiceError, InvalidArgument, Internal
from shared.http import (
    AUTHED_ALLOWED_HEADERS, get_http_method, parse_json_body,
    json_response, preflight_response, error_response, method_not_allowed
)
from shared.identity import authenticate_request
from shared.mailer import send_otp_email

# --- Set up logger ---
logger = logging.getLogger()
logger.setLevel(logging.INFO)
# ---

# --- Configuration ---
SETTINGS = Settings.from_env()
# ---

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp():
    # Plain PRNG, uniform over [100000, 999999].
    return str(random.randint(OTP_MIN, OTP_MAX))


def is_institution_email(email, suffix):
    # Case-sensitive: 'x@LPU.IN' does not match '@lpu.in'.
    return bool(email) and isinstance(email, str) and email.endswith(suffix)


def send_verification_otp(event, context, settings=None, backend=None):
    """
    API: POST /api/send-verification-otp
    Stores a fresh 6-digit code for the caller and emails it to their university address.
    """
    settings = settings or SETTINGS

    # --- CORS Preflight Check ---
    http_method = get_http_method(event)
    if http_method == 'OPTIONS':
        logger.info("Handling OPTIONS preflight request for send_verification_otp")
        return preflight_response(settings, AUTHED_ALLOWED_HEADERS)

    if http_method != 'POST':
        return method_not_allowed(settings)

    log_context = {"action": "send_verification_otp"}
    try:
        settings.require('otps_table_name')
        user_id = authenticate_request(event, settings)
        log_context["user_id"] = user_id

        body = parse_json_body(event)
        email = body.get('email')
        if not is_institution_email(email, settings.email_suffix):
            raise InvalidArgument(f"Valid {settings.email_suffix} email required")

        backend = backend or get_backend(settings)
        code = generate_otp()
        now = int(time.time())
        record = backend.verifications.put_pending(user_id, email, code, now, settings.otp_ttl_seconds)
        logger.info(json.dumps({
            **log_context,
            "status": "info",
            "expires_at": record['expires_at'],
            "message": "Verification code stored."
        }))

        if not settings.brevo_api_key:
            logger.warning(json.dumps({**log_context, "status": "warn", "message": "BREVO_API_KEY not set; verification email not sent."}))
        else:
            # A failed send leaves the stored code in place; the caller can request a new one.
            send_otp_email(settings, email, code)
            logger.info(json.dumps({**log_context, "status": "info", "message": "Verification email sent."}))

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

import json
import logging

from shared.config import Settings
from shared.errors import ServiceError, Unauthenticated, InvalidArgument, Internal
from shared.http import (
    PUBLIC_ALLOWED_HEADERS, get_http_method, parse_json_body,
    json_response, preflight_response, error_response, method_not_allowed
)
from shared.identity import verify_session_token, mint_credential

# --- Set up logger ---
logger = logging.getLogger()
logger.setLevel(logging.INFO)
# ---

# --- Configuration (read once per container) ---
SETTINGS = Settings.from_env()
REQUIRED_SETTINGS = ('clerk_secret_key', 'token_signing_secret')
# ---


def get_custom_token(event, context, settings=None, jwks_client=None):
    """
    API: POST /api/get-custom-token
    Exchanges a Clerk session token for a backend credential with the same subject.
    """
    settings = settings or SETTINGS

    # --- CORS Preflight Check ---
    http_method = get_http_method(event)
    if http_method == 'OPTIONS':
        logger.info("Handling OPTIONS preflight request for get_custom_token")
        return preflight_response(settings, PUBLIC_ALLOWED_HEADERS)

    if http_method != 'POST':
        return method_not_allowed(settings)

    log_context = {"action": "get_custom_token"}
    try:
        body = parse_json_body(event)
        clerk_token = body.get('token')
        if not clerk_token or not isinstance(clerk_token, str):
            raise InvalidArgument("Missing token")

        # Checked before touching the token so a misconfigured deploy never looks like a bad token.
        settings.require(*REQUIRED_SETTINGS)

        claims = verify_session_token(clerk_token, settings, jwks_client=jwks_client)
        user_id = claims.get('sub')
        if not user_id:
            raise Unauthenticated("Invalid token", detail="No sub in token")

        log_context["user_id"] = user_id
        custom_token = mint_credential(user_id, settings)
        logger.info(json.dumps({**log_context, "status": "info", "message": "Issued custom token."}))

        return json_response(200, {"token": custom_token}, settings)

    except ServiceError as se:
        logger.error(json.dumps({
            **log_context,
            "status": "error",
            "error_code": se.code,
            "error_message": se.message,
            "detail": se.detail
        }))
        return error_response(se, settings)
    except Exception as e:
        logger.error(json.dumps({**log_context, "status": "error", "error_message": str(e)}))
        return error_response(Internal("An unexpected error occurred.", detail=str(e)), settings)

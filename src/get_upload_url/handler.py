import json
import logging

from botocore.exceptions import BotoCoreError, ClientError

from shared.backend import get_backend
from shared.config import Settings, STORAGE_FIELDS, ENV_VARS
from shared.errors import ServiceError, ConfigurationError, Internal
from shared.http import (
    AUTHED_ALLOWED_HEADERS, get_http_method, parse_json_body,
    json_response, preflight_response, error_response, method_not_allowed
)
from shared.identity import authenticate_request
from shared.storage import normalize_upload_path, presign_put, public_url_for

# --- Set up logger ---
logger = logging.getLogger()
logger.setLevel(logging.INFO)
# ---

# --- Configuration ---
SETTINGS = Settings.from_env()
# ---


def storage_not_configured():
    env_names = ', '.join(ENV_VARS[name] for name in STORAGE_FIELDS)
    return ConfigurationError(
        "R2 not configured",
        status_code=503,
        hint=f"Set {env_names} in the function environment"
    )


def get_upload_url(event, context, settings=None, backend=None):
    """
    API: POST /api/get-upload-url
    Returns a 5-minute pre-signed PUT URL for an object under users/<caller>/,
    plus the public URL the object will be served from.
    """
    settings = settings or SETTINGS

    # --- CORS Preflight Check ---
    http_method = get_http_method(event)
    if http_method == 'OPTIONS':
        logger.info("Handling OPTIONS preflight request for get_upload_url")
        return preflight_response(settings, AUTHED_ALLOWED_HEADERS)

    if http_method != 'POST':
        return method_not_allowed(settings)

    log_context = {"action": "get_upload_url"}
    try:
        user_id = authenticate_request(event, settings)
        log_context["user_id"] = user_id

        if not settings.storage_configured:
            raise storage_not_configured()

        body = parse_json_body(event)
        key = normalize_upload_path(body.get('path'), user_id)
        log_context["key"] = key

        backend = backend or get_backend(settings)
        try:
            upload_url = presign_put(
                backend.storage_client,
                settings.r2_bucket_name,
                key,
                settings.upload_url_ttl_seconds
            )
        except (BotoCoreError, ClientError) as e:
            raise Internal("Failed to generate upload URL", detail=str(e))

        public_url = public_url_for(settings.r2_public_url, key)
        logger.info(json.dumps({**log_context, "status": "info", "message": "Upload URL generated."}))

        return json_response(200, {"uploadUrl": upload_url, "publicUrl": public_url}, settings)

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
        return error_response(Internal("Failed to generate upload URL", detail=str(e)), settings)

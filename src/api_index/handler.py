import json
import logging

from shared.config import Settings
from shared.http import get_http_method, json_response, preflight_response, method_not_allowed, PUBLIC_ALLOWED_HEADERS

logger = logging.getLogger()
logger.setLevel(logging.INFO)

SETTINGS = Settings.from_env()

ENDPOINTS = [
    'POST /api/get-custom-token',
    'POST /api/send-verification-otp',
    'POST /api/verify-university-email',
    'POST /api/get-upload-url',
]


def api_index(event, context, settings=None):
    """API: GET /api -- lists the endpoints so the deployment root is not a 404."""
    settings = settings or SETTINGS

    http_method = get_http_method(event)
    if http_method == 'OPTIONS':
        return preflight_response(settings, PUBLIC_ALLOWED_HEADERS, allowed_methods="GET, OPTIONS")
    if http_method != 'GET':
        return method_not_allowed(settings)

    logger.info(json.dumps({"status": "info", "action": "api_index"}))
    return json_response(200, {"message": "UniDate API", "endpoints": ENDPOINTS}, settings)

import base64
import binascii
import json
import logging

from shared.errors import InvalidArgument, MethodNotAllowed

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# --- CORS Headers ---
PUBLIC_ALLOWED_HEADERS = "Content-Type"
AUTHED_ALLOWED_HEADERS = "Content-Type, Authorization"


def options_cors_headers(settings, allowed_headers, allowed_methods="POST, OPTIONS"):
    return {
        "Access-Control-Allow-Origin": settings.cors_origin,
        "Access-Control-Allow-Methods": allowed_methods,
        "Access-Control-Allow-Headers": allowed_headers,
    }


def response_headers(settings):
    return {
        "Access-Control-Allow-Origin": settings.cors_origin,
        "Content-Type": "application/json",
    }
# ---


def get_http_method(event):
    """REST API (v1) events carry httpMethod, HTTP API (v2) events carry requestContext.http.method."""
    method = event.get('httpMethod')
    if not method:
        method = ((event.get('requestContext') or {}).get('http') or {}).get('method', '')
    return (method or '').upper()


def get_header(event, name):
    headers = event.get('headers') or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def get_bearer_token(event):
    """Returns the token from 'Authorization: Bearer <token>', or None for a missing/malformed header."""
    auth_header = get_header(event, 'Authorization')
    if not auth_header or not isinstance(auth_header, str) or not auth_header.startswith('Bearer '):
        return None
    token = auth_header[len('Bearer '):].strip()
    return token or None


def parse_json_body(event):
    raw = event.get('body')
    if raw is None or raw == '':
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        if event.get('isBase64Encoded'):
            raw = base64.b64decode(raw).decode('utf-8')
        body = json.loads(raw or '{}')
    except (ValueError, binascii.Error, UnicodeDecodeError) as e:
        raise InvalidArgument("Invalid JSON body", detail=str(e))
    if not isinstance(body, dict):
        raise InvalidArgument("Invalid JSON body", detail="Body must be a JSON object.")
    return body


# --- Responses ---
def json_response(status_code, payload, settings):
    return {
        "statusCode": status_code,
        "headers": response_headers(settings),
        "body": json.dumps(payload)
    }


def preflight_response(settings, allowed_headers, allowed_methods="POST, OPTIONS"):
    return {
        "statusCode": 204,
        "headers": options_cors_headers(settings, allowed_headers, allowed_methods),
        "body": ""
    }


def error_response(error, settings):
    return json_response(error.status_code, error.to_body(), settings)


def method_not_allowed(settings):
    return error_response(MethodNotAllowed("Method not allowed"), settings)
# ---

"""
Trust bridging between the external session-token issuer (Clerk) and the
backend trust domain.

Session tokens from the issuer are RS256 JWTs verified against the issuer's
JWKS. Credentials in the backend domain are HS256 JWTs signed with
TOKEN_SIGNING_SECRET; the same secret verifies them on the way back in as
bearer credentials.
"""
import json
import logging
import time

import jwt

from shared.errors import Unauthenticated
from shared.http import get_bearer_token

logger = logging.getLogger()
logger.setLevel(logging.INFO)

CLOCK_SKEW_SECONDS = 5

# --- JWKS client (one per process) ---
_jwks_client = None
_jwks_client_key = None


def get_jwks_client(settings):
    global _jwks_client, _jwks_client_key
    key = (settings.clerk_jwks_url, settings.clerk_secret_key)
    if _jwks_client is None or _jwks_client_key != key:
        _jwks_client = jwt.PyJWKClient(
            settings.clerk_jwks_url,
            headers={"Authorization": f"Bearer {settings.clerk_secret_key}"},
        )
        _jwks_client_key = key
    return _jwks_client
# ---


def verify_session_token(token, settings, jwks_client=None):
    """
    Verifies a session token from the external issuer and returns its claims.

    Raises Unauthenticated for any verification failure: bad signature,
    expired or not-yet-valid token, unknown key id, unreachable JWKS, or an
    azp that is not one of the authorized parties.
    """
    client = jwks_client or get_jwks_client(settings)
    try:
        signing_key = client.get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            leeway=CLOCK_SKEW_SECONDS,
            options={"require": ["exp"], "verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Invalid Clerk token", detail="Token has expired.")
    except jwt.PyJWTError as exc:
        raise Unauthenticated("Invalid Clerk token", detail=f"Token validation failed: {exc}")

    azp = claims.get('azp')
    if azp and settings.clerk_authorized_parties and azp not in settings.clerk_authorized_parties:
        raise Unauthenticated("Invalid Clerk token", detail=f"Invalid azp claim: {azp}")
    return claims


def mint_credential(subject, settings, now=None):
    """Issues a backend-domain credential for subject."""
    issued_at = int(now if now is not None else time.time())
    payload = {
        "iss": settings.token_issuer,
        "aud": settings.token_audience,
        "sub": subject,
        "uid": subject,
        "iat": issued_at,
        "exp": issued_at + settings.token_ttl_seconds,
    }
    return jwt.encode(payload, settings.token_signing_secret, algorithm="HS256")


def introspect_bearer(token, settings):
    """
    Returns the subject id carried by a backend-domain credential, or None
    when the token is missing or fails verification.

    Callers must have checked that token_signing_secret is configured.
    """
    if not token:
        return None
    try:
        claims = jwt.decode(
            token,
            settings.token_signing_secret,
            algorithms=["HS256"],
            audience=settings.token_audience,
            issuer=settings.token_issuer,
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as exc:
        logger.warning(json.dumps({
            "status": "warn",
            "action": "introspect_bearer",
            "message": "Bearer credential rejected.",
            "error_message": str(exc)
        }))
        return None
    return claims.get('sub') or None


def authenticate_request(event, settings):
    """Resolves the caller's user id from the Authorization header or raises Unauthenticated."""
    settings.require('token_signing_secret')
    user_id = introspect_bearer(get_bearer_token(event), settings)
    if not user_id:
        raise Unauthenticated("Unauthorized")
    return user_id

import json
import time
from dataclasses import replace

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.exceptions import PyJWKClientError

from get_custom_token.handler import get_custom_token
from conftest import SIGNING_SECRET, StubJWKSClient


def test_preflight_allows_content_type_only(settings, api_event):
    response = get_custom_token(api_event(method='OPTIONS'), {}, settings=settings)

    assert response['statusCode'] == 204
    assert response['headers']['Access-Control-Allow-Origin'] == '*'
    assert response['headers']['Access-Control-Allow-Methods'] == 'POST, OPTIONS'
    assert response['headers']['Access-Control-Allow-Headers'] == 'Content-Type'


def test_rejects_non_post(settings, api_event):
    response = get_custom_token(api_event(method='GET'), {}, settings=settings)

    assert response['statusCode'] == 405
    assert json.loads(response['body'])['error'] == 'Method not allowed'


@pytest.mark.parametrize("body", [{}, {"token": ""}, {"token": 123}])
def test_missing_token(settings, api_event, jwks_client, body):
    response = get_custom_token(api_event(body=body), {}, settings=settings, jwks_client=jwks_client)

    assert response['statusCode'] == 400
    assert json.loads(response['body'])['error'] == 'Missing token'


def test_invalid_json_body(settings, api_event, jwks_client):
    response = get_custom_token(api_event(raw_body='{not json'), {}, settings=settings, jwks_client=jwks_client)

    assert response['statusCode'] == 400
    assert json.loads(response['body'])['code'] == 'invalid_argument'


def test_exchanges_valid_token(settings, api_event, jwks_client, clerk_token):
    """
    Tests the "happy path": the minted credential carries the Clerk subject.
    """
    event = api_event(body={"token": clerk_token(sub='user_2abc')})

    response = get_custom_token(event, {}, settings=settings, jwks_client=jwks_client)

    assert response['statusCode'] == 200
    minted = json.loads(response['body'])['token']
    claims = jwt.decode(
        minted, SIGNING_SECRET, algorithms=["HS256"],
        audience=settings.token_audience, issuer=settings.token_issuer
    )
    assert claims['sub'] == 'user_2abc'
    assert claims['uid'] == 'user_2abc'
    assert claims['exp'] - claims['iat'] == settings.token_ttl_seconds


def test_token_without_sub_is_unauthenticated(settings, api_event, jwks_client, clerk_token):
    event = api_event(body={"token": clerk_token(sub=None)})

    response = get_custom_token(event, {}, settings=settings, jwks_client=jwks_client)

    assert response['statusCode'] == 401
    body = json.loads(response['body'])
    assert body['code'] == 'unauthenticated'
    assert 'token' not in body


def test_expired_token(settings, api_event, jwks_client, clerk_token):
    now = int(time.time())
    event = api_event(body={"token": clerk_token(iat=now - 600, nbf=now - 600, exp=now - 60)})

    response = get_custom_token(event, {}, settings=settings, jwks_client=jwks_client)

    assert response['statusCode'] == 401
    assert json.loads(response['body'])['error'] == 'Invalid Clerk token'


def test_token_signed_by_another_key(settings, api_event, jwks_client, clerk_token):
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    event = api_event(body={"token": clerk_token(key=other_key)})

    response = get_custom_token(event, {}, settings=settings, jwks_client=jwks_client)

    assert response['statusCode'] == 401


def test_unauthorized_party(settings, api_event, jwks_client, clerk_token):
    event = api_event(body={"token": clerk_token(azp='https://evil.example.com')})

    response = get_custom_token(event, {}, settings=settings, jwks_client=jwks_client)

    assert response['statusCode'] == 401
    assert 'azp' in json.loads(response['body'])['detail']


def test_allow_listed_party(settings, api_event, jwks_client, clerk_token):
    event = api_event(body={"token": clerk_token(azp='https://re-uni.vercel.app')})

    response = get_custom_token(event, {}, settings=settings, jwks_client=jwks_client)

    assert response['statusCode'] == 200


def test_unreachable_jwks_is_unauthenticated(settings, api_event, issuer_key, clerk_token):
    failing_client = StubJWKSClient(issuer_key.public_key(), error=PyJWKClientError("Fail to fetch data from the url"))
    event = api_event(body={"token": clerk_token()})

    response = get_custom_token(event, {}, settings=settings, jwks_client=failing_client)

    assert response['statusCode'] == 401


@pytest.mark.parametrize("missing", ['clerk_secret_key', 'token_signing_secret'])
def test_missing_secret_is_config_error_not_auth_error(settings, api_event, jwks_client, missing):
    """
    A misconfigured deploy must never look like a bad token, even when the
    token itself is garbage.
    """
    misconfigured = replace(settings, **{missing: None})
    event = api_event(body={"token": "not-a-jwt"})

    response = get_custom_token(event, {}, settings=misconfigured, jwks_client=jwks_client)

    assert response['statusCode'] == 500
    body = json.loads(response['body'])
    assert body['code'] == 'configuration_error'
    assert body['error'] == 'Backend config error'

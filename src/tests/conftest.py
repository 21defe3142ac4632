import base64
import json
import time

import boto3
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from moto import mock_aws

from shared.backend import Backend, reset_backend
from shared.config import Settings
from shared.identity import mint_credential
from shared.stores import TTL_ATTRIBUTE

SIGNING_SECRET = 'test-signing-secret-with-at-least-32-bytes!'
OTPS_TABLE = 'test-verification-otps'
USERS_TABLE = 'test-users'


@pytest.fixture(autouse=True)
def set_mock_aws_credentials(monkeypatch):
    """Mocks AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    reset_backend()
    yield
    reset_backend()


@pytest.fixture
def settings():
    return Settings(
        clerk_secret_key='sk_test_123',
        clerk_authorized_parties=('http://localhost:3000', 'https://re-uni.vercel.app'),
        token_signing_secret=SIGNING_SECRET,
        otps_table_name=OTPS_TABLE,
        users_table_name=USERS_TABLE,
    )


@pytest.fixture
def mock_db():
    """Mocks DynamoDB and creates the verification and user tables."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')
        for table_name in (OTPS_TABLE, USERS_TABLE):
            dynamodb.create_table(
                TableName=table_name,
                KeySchema=[{'AttributeName': 'user_id', 'KeyType': 'HASH'}],
                AttributeDefinitions=[{'AttributeName': 'user_id', 'AttributeType': 'S'}],
                BillingMode='PAY_PER_REQUEST'
            )
        dynamodb.meta.client.update_time_to_live(
            TableName=OTPS_TABLE,
            TimeToLiveSpecification={'Enabled': True, 'AttributeName': TTL_ATTRIBUTE}
        )
        yield dynamodb


@pytest.fixture
def backend(settings, mock_db):
    return Backend(settings, dynamodb=mock_db)


@pytest.fixture
def bearer(settings):
    """Builds an Authorization header value for a backend credential."""
    def _bearer(user_id, signing_settings=None):
        return f"Bearer {mint_credential(user_id, signing_settings or settings)}"
    return _bearer


@pytest.fixture
def api_event():
    """Builds an API Gateway proxy event."""
    def _create_event(method='POST', body=None, authorization=None, raw_body=None, base64_body=False):
        headers = {"Content-Type": "application/json"}
        if authorization:
            headers["Authorization"] = authorization
        if raw_body is None and body is not None:
            raw_body = json.dumps(body)
        if base64_body and raw_body is not None:
            raw_body = base64.b64encode(raw_body.encode('utf-8')).decode('ascii')
        return {
            "httpMethod": method,
            "headers": headers,
            "body": raw_body,
            "isBase64Encoded": base64_body
        }
    return _create_event


# --- External issuer (Clerk) test doubles ---
class StubSigningKey:
    def __init__(self, key):
        self.key = key


class StubJWKSClient:
    """Stands in for PyJWKClient: always hands back the same public key."""
    def __init__(self, public_key, error=None):
        self.public_key = public_key
        self.error = error

    def get_signing_key_from_jwt(self, token):
        if self.error:
            raise self.error
        return StubSigningKey(self.public_key)


@pytest.fixture(scope='session')
def issuer_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks_client(issuer_key):
    return StubJWKSClient(issuer_key.public_key())


@pytest.fixture
def clerk_token(issuer_key):
    """Signs a Clerk-style session token. Pass sub=None to drop the claim."""
    def _clerk_token(sub='user_2abc', key=None, **claims):
        now = int(time.time())
        payload = {
            "iss": "https://working-turtle-74.clerk.accounts.dev",
            "sub": sub,
            "azp": "http://localhost:3000",
            "iat": now,
            "nbf": now,
            "exp": now + 60,
        }
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        return jwt.encode(payload, key or issuer_key, algorithm="RS256", headers={"kid": "ins_test"})
    return _clerk_token
# ---

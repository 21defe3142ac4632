import os
from dataclasses import dataclass

from shared.errors import ConfigurationError

# --- Defaults ---
# Clerk sets azp to the browser origin. Flutter web picks a random port on each run.
DEFAULT_AUTHORIZED_PARTIES = (
    'http://localhost:3000', 'http://localhost:8080', 'http://localhost:5173',
    'http://localhost:51806', 'http://localhost:55926', 'http://localhost:57188',
    'http://localhost:52297', 'http://localhost:58633', 'https://localhost',
    'https://working-turtle-74.accounts.dev', 'https://working-turtle-74.clerk.accounts.dev',
    'https://re-uni.vercel.app',
)
DEFAULT_JWKS_URL = 'https://api.clerk.com/v1/jwks'
DEFAULT_EMAIL_SUFFIX = '@lpu.in'
# ---


def parse_csv(raw):
    """Split a comma separated env value, dropping blanks and duplicates."""
    values = []
    for part in (raw or '').split(','):
        value = part.strip()
        if value and value not in values:
            values.append(value)
    return tuple(values)


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, read once from the environment.

    Fields map 1:1 onto environment variables (see ENV_VARS). Handlers call
    require() with the fields they need so a missing secret is reported as a
    configuration error instead of surfacing later as an auth failure.
    """
    cors_origin: str = '*'

    clerk_secret_key: str = None
    clerk_authorized_parties: tuple = DEFAULT_AUTHORIZED_PARTIES
    clerk_jwks_url: str = DEFAULT_JWKS_URL

    token_signing_secret: str = None
    token_issuer: str = 'unidate-api'
    token_audience: str = 'unidate'
    token_ttl_seconds: int = 3600

    otps_table_name: str = None
    users_table_name: str = None
    email_suffix: str = DEFAULT_EMAIL_SUFFIX
    otp_ttl_seconds: int = 600

    brevo_api_key: str = None
    email_sender_name: str = 'UniDate'
    email_sender_address: str = 'noreply@unidate.app'

    r2_account_id: str = None
    r2_access_key_id: str = None
    r2_secret_access_key: str = None
    r2_bucket_name: str = None
    r2_public_url: str = None
    upload_url_ttl_seconds: int = 300

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        values = {}
        for name, env_var in ENV_VARS.items():
            raw = environ.get(env_var)
            if raw is None or str(raw).strip() == '':
                continue
            if name == 'clerk_authorized_parties':
                parties = parse_csv(raw)
                if parties:
                    values[name] = parties
            else:
                values[name] = str(raw).strip()
        return cls(**values)

    def missing(self, *names):
        return [name for name in names if not getattr(self, name)]

    def require(self, *names):
        """Raises ConfigurationError naming every unset environment variable."""
        missing = self.missing(*names)
        if missing:
            env_names = [ENV_VARS[name] for name in missing]
            raise ConfigurationError(
                "Backend config error",
                detail=f"{', '.join(env_names)} not configured"
            )
        return self

    @property
    def storage_configured(self):
        return not self.missing(*STORAGE_FIELDS)


ENV_VARS = {
    'cors_origin': 'CORS_ORIGIN',
    'clerk_secret_key': 'CLERK_SECRET_KEY',
    'clerk_authorized_parties': 'CLERK_AUTHORIZED_PARTIES',
    'clerk_jwks_url': 'CLERK_JWKS_URL',
    'token_signing_secret': 'TOKEN_SIGNING_SECRET',
    'token_issuer': 'TOKEN_ISSUER',
    'token_audience': 'TOKEN_AUDIENCE',
    'otps_table_name': 'VERIFICATION_OTPS_TABLE_NAME',
    'users_table_name': 'USERS_TABLE_NAME',
    'email_suffix': 'INSTITUTION_EMAIL_SUFFIX',
    'brevo_api_key': 'BREVO_API_KEY',
    'email_sender_name': 'EMAIL_SENDER_NAME',
    'email_sender_address': 'EMAIL_SENDER_ADDRESS',
    'r2_account_id': 'R2_ACCOUNT_ID',
    'r2_access_key_id': 'R2_ACCESS_KEY_ID',
    'r2_secret_access_key': 'R2_SECRET_ACCESS_KEY',
    'r2_bucket_name': 'R2_BUCKET_NAME',
    'r2_public_url': 'R2_PUBLIC_URL',
}

STORAGE_FIELDS = (
    'r2_account_id', 'r2_access_key_id', 'r2_secret_access_key',
    'r2_bucket_name', 'r2_public_url',
)

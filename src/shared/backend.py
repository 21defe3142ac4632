import json
import logging

import boto3
from botocore.config import Config

from shared.stores import ProfileStore, VerificationStore

logger = logging.getLogger()
logger.setLevel(logging.INFO)


class Backend:
    """
    Client handle for the managed services the handlers talk to.

    Built once per process by get_backend(), or constructed directly and
    passed to a handler (tests do this inside a moto mock).
    """

    def __init__(self, settings, dynamodb=None, s3_client=None):
        self.settings = settings
        self._dynamodb = dynamodb
        self._s3_client = s3_client

    @property
    def dynamodb(self):
        if self._dynamodb is None:
            self._dynamodb = boto3.resource('dynamodb')
        return self._dynamodb

    @property
    def verifications(self):
        return VerificationStore(self.dynamodb.Table(self.settings.otps_table_name))

    @property
    def profiles(self):
        return ProfileStore(self.dynamodb.Table(self.settings.users_table_name))

    @property
    def storage_client(self):
        """S3 client pointed at the R2 account endpoint."""
        if self._s3_client is None:
            s = self.settings
            self._s3_client = boto3.client(
                's3',
                region_name='auto',
                endpoint_url=f"https://{s.r2_account_id}.r2.cloudflarestorage.com",
                aws_access_key_id=s.r2_access_key_id,
                aws_secret_access_key=s.r2_secret_access_key,
                config=Config(signature_version='s3v4', s3={'addressing_style': 'path'}),
            )
        return self._s3_client


# --- Process-wide handle ---
_backend = None


def get_backend(settings):
    global _backend
    if _backend is not None:
        return _backend
    _backend = Backend(settings)
    logger.info(json.dumps({"status": "info", "action": "get_backend", "message": "Backend clients initialized."}))
    return _backend


def reset_backend():
    global _backend
    _backend = None
# ---

import re

from shared.errors import InvalidArgument, PermissionDenied

PROFILE_IMAGE_PATTERN = re.compile(r'^users/[^/]+/profile/(\d+)\.webp$')
MAX_PROFILE_IMAGES = 5
UPLOAD_CONTENT_TYPE = 'image/webp'


def normalize_upload_path(raw_path, user_id):
    """
    Validates a requested object key for user_id and returns it without
    leading slashes.

    Keys must live under users/<user_id>/. Profile images are limited to
    users/<id>/profile/0.webp .. 4.webp.
    """
    path = raw_path.strip() if isinstance(raw_path, str) else ''
    if not path:
        raise InvalidArgument("Missing path")

    path = path.lstrip('/')
    prefix = f"users/{user_id}/"
    if not path.startswith(prefix):
        raise PermissionDenied("Path must start with users/<your-id>/")

    match = PROFILE_IMAGE_PATTERN.match(path)
    if match and not 0 <= int(match.group(1)) < MAX_PROFILE_IMAGES:
        raise InvalidArgument(f"Profile index must be 0-{MAX_PROFILE_IMAGES - 1}")
    return path


def public_url_for(public_base_url, key):
    if public_base_url.endswith('/'):
        return public_base_url + key
    return f"{public_base_url}/{key}"


def presign_put(s3_client, bucket, key, expires_in):
    return s3_client.generate_presigned_url(
        ClientMethod='put_object',
        Params={'Bucket': bucket, 'Key': key, 'ContentType': UPLOAD_CONTENT_TYPE},
        ExpiresIn=expires_in,
    )

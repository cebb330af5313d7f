"""Folder tree and upload coordinator settings."""

from server.settings.components import config

# Uploads larger than this go through a multipart session,
# smaller ones get a single pre-signed PUT URL.
DRIVE_MULTIPART_THRESHOLD_BYTES = config(
    'DRIVE_MULTIPART_THRESHOLD_BYTES',
    cast=int,
    default=5 * 1024 * 1024,
)

# Lifetime of every pre-signed URL handed to clients, in seconds
DRIVE_PRESIGNED_URL_EXPIRES = config(
    'DRIVE_PRESIGNED_URL_EXPIRES',
    cast=int,
    default=3600,
)

# S3 allows part numbers 1..10000
DRIVE_MAX_UPLOAD_PARTS = config('DRIVE_MAX_UPLOAD_PARTS', cast=int, default=10000)

# Pending uploads older than this are aborted by ``abort_stale_uploads``
DRIVE_STALE_UPLOAD_HOURS = config('DRIVE_STALE_UPLOAD_HOURS', cast=int, default=24)

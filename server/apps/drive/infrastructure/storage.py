"""Custom storage backend for S3-compatible storage."""

import logging
from collections.abc import Sequence
from typing import Any, final

from django.conf import settings
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for user files.

    Extends django-storages S3Storage with the direct-upload API:
    - Pre-signed single PUT URLs
    - Multipart sessions: create, pre-signed part URLs, complete, abort

    Bytes never pass through this process. Every call logs and re-raises
    botocore errors, callers decide how to translate them.
    """

    @property
    def _client(self) -> Any:
        """Low-level boto3 client sharing the storage connection."""
        return self.bucket.meta.client

    def _expires_in(self) -> int:
        return settings.DRIVE_PRESIGNED_URL_EXPIRES

    def presign_put(self, key: str, content_type: str) -> str:
        """Issue a pre-signed URL for a whole-object PUT.

        Args:
            key: Object key.
            content_type: Content type the client must send.

        Returns:
            Pre-signed URL.
        """
        try:
            url = self._client.generate_presigned_url(
                'put_object',
                Params={
                    'Bucket': self.bucket_name,
                    'Key': key,
                    'ContentType': content_type,
                },
                ExpiresIn=self._expires_in(),
            )
        except Exception:
            logger.exception('Failed to presign PUT: %s', key)
            raise
        logger.debug('Presigned PUT for %s', key)
        return url

    def create_multipart_session(self, key: str, content_type: str) -> str:
        """Open a multipart upload.

        Args:
            key: Object key.
            content_type: Content type of the assembled object.

        Returns:
            Multipart upload ID.
        """
        try:
            logger.info('Creating multipart upload: %s', key)
            response = self._client.create_multipart_upload(
                Bucket=self.bucket_name,
                Key=key,
                ContentType=content_type,
            )
        except Exception:
            logger.exception('Failed to create multipart upload: %s', key)
            raise
        upload_id = response['UploadId']
        logger.info('Created multipart upload: %s (%s)', key, upload_id)
        return upload_id

    def presign_part(self, key: str, session_id: str, part_number: int) -> str:
        """Issue a pre-signed URL for one part of a multipart upload.

        Args:
            key: Object key.
            session_id: Multipart upload ID.
            part_number: Part number, 1-based.

        Returns:
            Pre-signed URL.
        """
        try:
            url = self._client.generate_presigned_url(
                'upload_part',
                Params={
                    'Bucket': self.bucket_name,
                    'Key': key,
                    'UploadId': session_id,
                    'PartNumber': part_number,
                },
                ExpiresIn=self._expires_in(),
            )
        except Exception:
            logger.exception(
                'Failed to presign part %d of %s',
                part_number,
                key,
            )
            raise
        logger.debug('Presigned part %d of %s', part_number, key)
        return url

    def complete_multipart(
        self,
        key: str,
        session_id: str,
        parts: Sequence[tuple[int, str]],
    ) -> dict[str, Any]:
        """Assemble a multipart upload from its parts.

        Args:
            key: Object key.
            session_id: Multipart upload ID.
            parts: (part_number, etag) pairs, already in ascending order.

        Returns:
            Store response describing the assembled object.
        """
        try:
            logger.info(
                'Completing multipart upload: %s (%d parts)',
                key,
                len(parts),
            )
            response = self._client.complete_multipart_upload(
                Bucket=self.bucket_name,
                Key=key,
                UploadId=session_id,
                MultipartUpload={
                    'Parts': [
                        {'PartNumber': part_number, 'ETag': etag}
                        for part_number, etag in parts
                    ],
                },
            )
        except Exception:
            logger.exception('Failed to complete multipart upload: %s', key)
            raise
        logger.info('Completed multipart upload: %s', key)
        return response

    def abort_multipart(self, key: str, session_id: str) -> None:
        """Abort a multipart upload and drop its uploaded parts.

        Args:
            key: Object key.
            session_id: Multipart upload ID.
        """
        try:
            logger.info('Aborting multipart upload: %s (%s)', key, session_id)
            self._client.abort_multipart_upload(
                Bucket=self.bucket_name,
                Key=key,
                UploadId=session_id,
            )
        except Exception:
            logger.exception('Failed to abort multipart upload: %s', key)
            raise
        logger.info('Aborted multipart upload: %s', key)

"""Business logic for direct-to-storage uploads.

Upload state machine of a File row::

    PENDING --(parts uploaded by the client, out of band)--> PENDING
    PENDING --(complete_upload)--> FINISHED
    PENDING --(abort_upload, or store failure at initiation)--> FAILED

Bytes never pass through this process: clients PUT them to pre-signed
URLs. Small files get one URL for the whole object, larger ones get a
multipart session whose parts are assembled by ``complete_upload``.
The multipart session id is kept on the File row, so no separate
session state exists.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from operator import attrgetter
from typing import TYPE_CHECKING, Any, final

from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.files.storage import default_storage
from django.db import transaction

from server.apps.drive.exceptions import (
    InvalidStateError,
    NotFoundError,
    StoreRejectedError,
    StoreUnavailableError,
)
from server.apps.drive.infrastructure.metadata import (
    build_object_key,
    resolve_mime_type,
    validate_entry_name,
)
from server.apps.drive.logic.file_operations import get_file
from server.apps.drive.models import File, UploadStatus

if TYPE_CHECKING:
    from server.apps.drive.infrastructure.storage import FileStorage

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def _get_storage() -> 'FileStorage':
    """Get the configured default storage backend.

    Returns:
        FileStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]


@final
@dataclass(frozen=True)
class UploadPart:
    """One uploaded part, as acknowledged by the object store."""

    part_number: int
    etag: str

    @classmethod
    def from_value(cls, value: 'UploadPart | Mapping[str, Any]') -> 'UploadPart':
        """Build a part from a mapping sent by the client.

        Accepts ``partNumber``/``part_number`` and ``eTag``/``etag``/``ETag``.

        Raises:
            InvalidStateError: If a key is missing or malformed.
        """
        if isinstance(value, UploadPart):
            return value
        number = value.get('part_number', value.get('partNumber'))
        etag = value.get('etag', value.get('eTag', value.get('ETag')))
        if not isinstance(number, int) or isinstance(number, bool) or not etag:
            raise InvalidStateError(f'Malformed upload part: {dict(value)!r}')
        return cls(part_number=number, etag=str(etag))


@final
@dataclass(frozen=True)
class UploadSession:
    """Multipart session of one file, rebuilt for every request."""

    file_id: int
    session_id: str
    parts: tuple[UploadPart, ...] = ()

    @classmethod
    def from_file(
        cls,
        file_instance: File,
        parts: Iterable['UploadPart | Mapping[str, Any]'] = (),
    ) -> 'UploadSession':
        """Combine a file row with the parts reported by the client."""
        return cls(
            file_id=file_instance.id,
            session_id=file_instance.upload_session_id,
            parts=tuple(UploadPart.from_value(part) for part in parts),
        )

    def ordered_parts(self) -> list[tuple[int, str]]:
        """Return parts sorted by number, checked to be exactly 1..N.

        Parts may arrive in any order, since chunks complete
        independently. Gaps, duplicates and an empty list are refused.

        Raises:
            InvalidStateError: If the part list cannot be assembled.
        """
        if not self.parts:
            raise InvalidStateError(
                f'No parts given for multipart upload of file {self.file_id}',
            )
        ordered = sorted(self.parts, key=attrgetter('part_number'))
        numbers = [part.part_number for part in ordered]
        if numbers != list(range(1, len(ordered) + 1)):
            raise InvalidStateError(
                f'Parts of file {self.file_id} must be numbered 1..N '
                f'without gaps or duplicates, got {numbers}',
            )
        return [(part.part_number, part.etag) for part in ordered]


@final
@dataclass(frozen=True)
class UploadTarget:
    """Where the client sends bytes after ``initiate_upload``.

    Exactly one of ``session_id`` (multipart) and ``put_url``
    (single PUT) is set.
    """

    file: File
    session_id: str | None = None
    put_url: str | None = None

    @property
    def is_multipart(self) -> bool:
        return self.session_id is not None


@contextmanager
def _object_store_call(action: str, file_id: int) -> Iterator[None]:
    """Translate botocore failures into drive errors."""
    try:
        yield
    except ClientError as error:
        logger.warning(
            'Object store rejected %s for file %d: %s',
            action,
            file_id,
            error,
        )
        raise StoreRejectedError(f'{action} rejected: {error}') from error
    except BotoCoreError as error:
        raise StoreUnavailableError(f'{action} failed: {error}') from error


def _get_pending_file(file_id: int, owner: _User) -> File:
    file_instance = get_file(file_id, owner)
    if file_instance.upload_status != UploadStatus.PENDING:
        raise InvalidStateError(
            f'File {file_id} is {file_instance.upload_status}, not PENDING',
        )
    return file_instance


def _mark_failed(file_instance: File) -> None:
    file_instance.upload_status = UploadStatus.FAILED
    file_instance.upload_session_id = ''
    file_instance.save(
        update_fields=['upload_status', 'upload_session_id', 'updated_at'],
    )


def initiate_upload(  # noqa: WPS211
    owner: _User,
    name: str,
    mime_type: str,
    size_bytes: int,
    folder_id: int | None = None,
) -> UploadTarget:
    """Create a PENDING file and open an upload target for it.

    The File row is inserted first, so the object key and the session
    are always tied to a file id.

    Args:
        owner: Owner of the new file.
        name: File name.
        mime_type: Content type; guessed from name when empty.
        size_bytes: Declared size, decides single PUT vs multipart.
        folder_id: Containing folder. None or 0 means root.

    Returns:
        UploadTarget with a multipart session id or a PUT URL.

    Raises:
        ValidationError: If name is invalid.
        InvalidStateError: If size is negative.
        StoreUnavailableError: If storage is unreachable; the file is
            marked FAILED.
        StoreRejectedError: If storage refuses the session; the file is
            marked FAILED.
    """
    if size_bytes < 0:
        raise InvalidStateError(f'File size cannot be negative: {size_bytes}')

    cleaned_name = validate_entry_name(name)
    content_type = resolve_mime_type(cleaned_name, mime_type)

    with transaction.atomic():
        file_instance = File.all_objects.create(
            owner=owner,
            folder_id=folder_id or None,
            name=cleaned_name,
            mime_type=content_type,
            size_bytes=size_bytes,
            upload_status=UploadStatus.PENDING,
        )
        file_instance.object_key = build_object_key(
            file_instance.owner_id,
            file_instance.id,
        )
        file_instance.save(update_fields=['object_key'])

    storage = _get_storage()
    multipart = size_bytes > settings.DRIVE_MULTIPART_THRESHOLD_BYTES

    try:
        with _object_store_call('initiate', file_instance.id):
            if multipart:
                session_id = storage.create_multipart_session(
                    file_instance.object_key,
                    content_type,
                )
            else:
                put_url = storage.presign_put(
                    file_instance.object_key,
                    content_type,
                )
    except (StoreRejectedError, StoreUnavailableError):
        logger.warning(
            'Upload initiation failed, marking file FAILED: ID=%d',
            file_instance.id,
        )
        _mark_failed(file_instance)
        raise

    if multipart:
        file_instance.upload_session_id = session_id
        file_instance.save(update_fields=['upload_session_id', 'updated_at'])
        target = UploadTarget(file=file_instance, session_id=session_id)
    else:
        target = UploadTarget(file=file_instance, put_url=put_url)

    logger.info(
        'Upload initiated: %s (ID: %d, size: %d, multipart: %s)',
        file_instance.name,
        file_instance.id,
        size_bytes,
        multipart,
    )
    return target


def get_chunk_upload_target(
    file_id: int,
    owner: _User,
    part_number: int,
) -> str:
    """Issue a pre-signed URL for one part of a multipart upload.

    Safe to call concurrently for different parts of the same file.

    Args:
        file_id: File being uploaded.
        owner: Owner of the file.
        part_number: Part number, 1-based.

    Returns:
        Pre-signed upload URL.

    Raises:
        NotFoundError: If the file is not the owner's.
        InvalidStateError: If the file is not a PENDING multipart upload
            or the part number is out of range.
    """
    file_instance = _get_pending_file(file_id, owner)
    if not file_instance.is_multipart:
        raise InvalidStateError(f'File {file_id} is not a multipart upload')

    max_parts = settings.DRIVE_MAX_UPLOAD_PARTS
    if not 1 <= part_number <= max_parts:
        raise InvalidStateError(
            f'Part number must be between 1 and {max_parts}, got {part_number}',
        )

    with _object_store_call('presign part', file_id):
        return _get_storage().presign_part(
            file_instance.object_key,
            file_instance.upload_session_id,
            part_number,
        )


def complete_upload(
    file_id: int,
    owner: _User,
    parts: Iterable['UploadPart | Mapping[str, Any]'] = (),
) -> File:
    """Assemble the uploaded object and mark the file FINISHED.

    Parts are sorted by number before being sent to storage and must
    then form 1..N. Completing a FINISHED file returns it unchanged
    without calling storage again. On any storage error the file stays
    PENDING, so the same request can be retried.

    For single PUT uploads ``parts`` must be empty and the object must
    already exist in storage.

    Args:
        file_id: File being uploaded.
        owner: Owner of the file.
        parts: Parts acknowledged by storage, in any order.

    Returns:
        FINISHED File instance.

    Raises:
        NotFoundError: If the file is not the owner's.
        InvalidStateError: If the file FAILED, or the part list is bad.
        StoreRejectedError: If storage refuses to assemble the parts.
        StoreUnavailableError: If storage is unreachable.
    """
    file_instance = get_file(file_id, owner)
    if file_instance.upload_status == UploadStatus.FINISHED:
        logger.info('Upload already finished: ID=%d', file_id)
        return file_instance
    if file_instance.upload_status != UploadStatus.PENDING:
        raise InvalidStateError(
            f'File {file_id} is {file_instance.upload_status}, not PENDING',
        )

    session = UploadSession.from_file(file_instance, parts)
    storage = _get_storage()

    if file_instance.is_multipart:
        ordered_parts = session.ordered_parts()
        with _object_store_call('complete', file_id):
            storage.complete_multipart(
                file_instance.object_key,
                session.session_id,
                ordered_parts,
            )
    else:
        if session.parts:
            raise InvalidStateError(
                f'File {file_id} was uploaded with a single PUT, '
                'parts are not accepted',
            )
        with _object_store_call('confirm', file_id):
            uploaded = storage.exists(file_instance.object_key)
        if not uploaded:
            raise InvalidStateError(
                f'Content of file {file_id} has not been uploaded yet',
            )

    with transaction.atomic():
        file_instance = File.all_objects.select_for_update().get(id=file_id)
        if file_instance.upload_status == UploadStatus.FINISHED:
            return file_instance
        if file_instance.upload_status != UploadStatus.PENDING:
            raise InvalidStateError(
                f'File {file_id} became {file_instance.upload_status} '
                'while completing',
            )
        file_instance.upload_status = UploadStatus.FINISHED
        file_instance.upload_session_id = ''
        file_instance.save(
            update_fields=['upload_status', 'upload_session_id', 'updated_at'],
        )

    logger.info(
        'Upload finished: %s (ID: %d, parts: %d)',
        file_instance.name,
        file_id,
        len(session.parts),
    )
    return file_instance


def abort_upload(file_id: int, owner: _User) -> File:
    """Cancel an upload.

    FINISHED and FAILED files are returned unchanged. For a PENDING file
    the multipart session is released on a best-effort basis: storage
    errors are logged and never raised. Parts already being uploaded by
    the client are not interrupted, they just can no longer be completed.

    Args:
        file_id: File being uploaded.
        owner: Owner of the file.

    Returns:
        File instance, FAILED if it was PENDING.

    Raises:
        NotFoundError: If the file is not the owner's.
    """
    return _abort_pending(get_file(file_id, owner))


def abort_stale_upload(file_id: int) -> File:
    """Cancel an abandoned upload on behalf of maintenance jobs.

    Unlike ``abort_upload`` the lookup ignores ownership and trash, so
    pending uploads swept into trash by a folder cascade still have
    their multipart session released.

    Raises:
        NotFoundError: If the row no longer exists.
    """
    try:
        file_instance = File.all_objects.get(id=file_id)
    except File.DoesNotExist as error:
        raise NotFoundError('File', file_id) from error
    return _abort_pending(file_instance)


def _abort_pending(file_instance: File) -> File:
    file_id = file_instance.id
    if file_instance.upload_status != UploadStatus.PENDING:
        logger.debug(
            'Abort ignored, file %d is %s',
            file_id,
            file_instance.upload_status,
        )
        return file_instance

    if file_instance.is_multipart:
        try:
            _get_storage().abort_multipart(
                file_instance.object_key,
                file_instance.upload_session_id,
            )
        except (BotoCoreError, ClientError):
            # Orphaned parts are left to the bucket lifecycle rules
            logger.exception(
                'Failed to release multipart upload (orphaned): ID=%d',
                file_id,
            )

    with transaction.atomic():
        file_instance = File.all_objects.select_for_update().get(id=file_id)
        if file_instance.upload_status != UploadStatus.PENDING:
            return file_instance
        _mark_failed(file_instance)

    logger.info('Upload aborted: %s (ID: %d)', file_instance.name, file_id)
    return file_instance

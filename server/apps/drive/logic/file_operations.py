"""Business logic for file metadata: listing, search and trash."""

import logging
from collections.abc import Collection
from typing import Any

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models import QuerySet
from django.utils import timezone

from server.apps.drive.exceptions import InvalidStateError, NotFoundError
from server.apps.drive.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def _require_atomic(using: str) -> None:
    """Ensure the caller holds a transaction on ``using``.

    Raises:
        TransactionManagementError: If no atomic block is active.
    """
    if not transaction.get_connection(using).in_atomic_block:
        raise transaction.TransactionManagementError(
            'Folder cascades must run inside transaction.atomic()',
        )


def soft_delete_by_folder_ids(
    folder_ids: Collection[int],
    owner: _User,
    using: str = DEFAULT_DB_ALIAS,
) -> int:
    """Move every file inside the given folders to trash.

    Part of a folder cascade: must be called inside the caller's
    transaction on ``using``. Pending uploads are trashed as well.

    Args:
        folder_ids: Folders whose files are deleted.
        owner: Owner of the files.
        using: Database alias of the caller's transaction.

    Returns:
        Number of files newly deleted.
    """
    _require_atomic(using)
    affected = File.all_objects.using(using).filter(
        owner=owner,
        folder_id__in=list(folder_ids),
        is_deleted=False,
    ).update(is_deleted=True, updated_at=timezone.now())
    logger.debug('Soft-deleted %d files in %d folders', affected, len(folder_ids))
    return affected


def restore_by_folder_ids(
    folder_ids: Collection[int],
    owner: _User,
    using: str = DEFAULT_DB_ALIAS,
) -> int:
    """Restore every file directly inside the given folders.

    Args:
        folder_ids: Folders whose files are restored.
        owner: Owner of the files.
        using: Database alias of the caller's transaction.

    Returns:
        Number of files restored.
    """
    _require_atomic(using)
    affected = File.all_objects.using(using).filter(
        owner=owner,
        folder_id__in=list(folder_ids),
        is_deleted=True,
    ).update(is_deleted=False, updated_at=timezone.now())
    logger.debug('Restored %d files in %d folders', affected, len(folder_ids))
    return affected


def get_files_with_folder_id(
    owner: _User,
    folder_id: int | None = None,
) -> QuerySet[File]:
    """List visible files directly inside a folder.

    Args:
        owner: Owner of the files.
        folder_id: Folder ID. None or 0 lists the root.

    Returns:
        QuerySet of finished, non-deleted files.
    """
    return File.objects.filter(owner=owner, folder_id=folder_id or None)


def search_files_by_name_fragment(owner: _User, fragment: str) -> QuerySet[File]:
    """Case-insensitive substring search over visible files.

    Args:
        owner: Owner of the files.
        fragment: Substring to look for.

    Returns:
        QuerySet of matching files, from every folder.
    """
    return File.objects.filter(owner=owner, name__icontains=fragment)


def get_file(file_id: int, owner: _User) -> File:
    """Get a non-deleted file of any upload status.

    Args:
        file_id: File ID.
        owner: Expected owner.

    Returns:
        File instance.

    Raises:
        NotFoundError: If file is missing, deleted or not owned by owner.
    """
    try:
        return File.all_objects.get(id=file_id, owner=owner, is_deleted=False)
    except File.DoesNotExist as error:
        raise NotFoundError('File', file_id) from error


def _folder_is_deleted(folder_id: int | None, owner: _User) -> bool:
    if folder_id is None:
        return False
    return Folder.all_objects.filter(
        id=folder_id,
        owner=owner,
        is_deleted=True,
    ).exists()


def soft_delete_file(file_id: int, owner: _User) -> File:
    """Move a single file to trash.

    Args:
        file_id: File ID.
        owner: Owner of the file.

    Returns:
        Updated File instance.

    Raises:
        NotFoundError: If file is missing, already deleted or foreign.
    """
    file_instance = get_file(file_id, owner)
    file_instance.is_deleted = True
    file_instance.save(update_fields=['is_deleted', 'updated_at'])
    logger.info('File moved to trash: %s (ID: %d)', file_instance.name, file_id)
    return file_instance


def restore_file(file_id: int, owner: _User) -> File:
    """Restore a single file from trash.

    A file whose folder is still in trash cannot come back on its own,
    the folder has to be restored first.

    Args:
        file_id: File ID.
        owner: Owner of the file.

    Returns:
        Updated File instance.

    Raises:
        NotFoundError: If file is not in owner's trash.
        InvalidStateError: If the containing folder is deleted.
    """
    try:
        file_instance = File.all_objects.get(
            id=file_id,
            owner=owner,
            is_deleted=True,
        )
    except File.DoesNotExist as error:
        raise NotFoundError('File', file_id) from error

    if _folder_is_deleted(file_instance.folder_id, owner):
        raise InvalidStateError(
            f'File {file_id} is inside deleted folder '
            f'{file_instance.folder_id}',
        )

    file_instance.is_deleted = False
    file_instance.save(update_fields=['is_deleted', 'updated_at'])
    logger.info('File restored: %s (ID: %d)', file_instance.name, file_id)
    return file_instance

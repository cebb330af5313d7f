"""Business logic for the folder tree.

Folders form a forest per owner, linked by ``parent_folder_id``.
Deleting a folder cascades down to every descendant folder and every
file inside them, in one transaction. Restoring does not cascade: only
the given folders and the files directly inside them come back.
"""

import logging
from collections.abc import Collection
from typing import Any

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models import QuerySet
from django.utils import timezone

from server.apps.drive.exceptions import ConstraintViolationError, NotFoundError
from server.apps.drive.infrastructure.metadata import validate_entry_name
from server.apps.drive.logic import file_operations
from server.apps.drive.models import Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def create_folder(
    owner: _User,
    name: str,
    parent_folder_id: int | None = None,
) -> Folder:
    """Create a folder under a parent, or in the owner's root.

    The parent is not looked up: a dangling or foreign parent id is
    stored as given.

    Args:
        owner: Owner of the new folder.
        name: Folder name.
        parent_folder_id: Parent folder ID. None or 0 means root.

    Returns:
        Created Folder instance.

    Raises:
        ValidationError: If name is invalid.
    """
    folder = Folder.objects.create(
        owner=owner,
        name=validate_entry_name(name),
        parent_folder_id=parent_folder_id or None,
    )
    logger.info(
        'Folder created: %s (ID: %d, parent: %s)',
        folder.name,
        folder.id,
        folder.parent_folder_id,
    )
    return folder


def get_folder(folder_id: int, owner: _User) -> Folder:
    """Get a non-deleted folder.

    Raises:
        NotFoundError: If folder is missing, deleted or not owned by owner.
    """
    try:
        return Folder.objects.get(id=folder_id, owner=owner)
    except Folder.DoesNotExist as error:
        raise NotFoundError('Folder', folder_id) from error


def list_children(
    owner: _User,
    parent_folder_id: int | None = None,
) -> QuerySet[Folder]:
    """List non-deleted direct children of a folder.

    Args:
        owner: Owner of the folders.
        parent_folder_id: Parent folder ID. None or 0 lists the root.

    Returns:
        QuerySet of child folders.
    """
    return Folder.objects.filter(
        owner=owner,
        parent_folder_id=parent_folder_id or None,
    )


def search_by_name_fragment(owner: _User, fragment: str) -> QuerySet[Folder]:
    """Case-insensitive substring search over non-deleted folders.

    Args:
        owner: Owner of the folders.
        fragment: Substring to look for.

    Returns:
        QuerySet of matching folders, anywhere in the tree.
    """
    return Folder.objects.filter(owner=owner, name__icontains=fragment)


def resolve_subtree(root_folder_id: int, owner: _User) -> set[int]:
    """Resolve a folder and all of its descendants.

    Args:
        root_folder_id: Subtree root.
        owner: Owner of the folders.

    Returns:
        Set of folder ids including the root. Empty if the root is not
        an owner folder.
    """
    return resolve_subtree_for_many([root_folder_id], owner)


def resolve_subtree_for_many(
    root_folder_ids: Collection[int],
    owner: _User,
    using: str = DEFAULT_DB_ALIAS,
) -> set[int]:
    """Resolve the union of several subtrees.

    Args:
        root_folder_ids: Subtree roots.
        owner: Owner of the folders.
        using: Database alias to read from.

    Returns:
        Set of folder ids including the roots.
    """
    return Folder.all_objects.using(using).resolve_descendants(
        root_folder_ids,
        owner,
    )


def rename_or_reparent(
    folder_id: int,
    owner: _User,
    new_name: str | None = None,
    new_parent_folder_id: int | None = None,
) -> int:
    """Rename and/or move a folder.

    Only supplied fields change. Moving to 0 puts the folder in the
    owner's root. A move into the folder's own subtree is refused.

    Args:
        folder_id: Folder to update.
        owner: Owner of the folder.
        new_name: New name, None keeps the current one.
        new_parent_folder_id: New parent, None keeps the current one.

    Returns:
        Number of updated folders: 0 if the folder is not the owner's
        or nothing was supplied, 1 otherwise.

    Raises:
        ValidationError: If new name is invalid.
        ConstraintViolationError: If the move would create a cycle.
    """
    fields: dict[str, Any] = {}
    if new_name is not None:
        fields['name'] = validate_entry_name(new_name)

    if new_parent_folder_id is not None:
        if new_parent_folder_id:
            subtree = resolve_subtree(folder_id, owner)
            if new_parent_folder_id in subtree:
                logger.warning(
                    'Refused cyclic move of folder %d under %d',
                    folder_id,
                    new_parent_folder_id,
                )
                raise ConstraintViolationError(folder_id, new_parent_folder_id)
        fields['parent_folder_id'] = new_parent_folder_id or None

    if not fields:
        return 0
    fields['updated_at'] = timezone.now()

    with transaction.atomic():
        affected = Folder.all_objects.filter(
            id=folder_id,
            owner=owner,
        ).update(**fields)

    logger.info(
        'Folder updated: ID=%d, fields=%s, affected=%d',
        folder_id,
        sorted(fields),
        affected,
    )
    return affected


def cascade_soft_delete(
    root_folder_ids: Collection[int],
    owner: _User,
    using: str = DEFAULT_DB_ALIAS,
) -> int:
    """Move folders, their whole subtrees and all their files to trash.

    Resolution and both updates run in one transaction on ``using``;
    any failure rolls back the entire cascade.

    Args:
        root_folder_ids: Folders selected for deletion.
        owner: Owner of the folders.
        using: Database alias holding the transaction.

    Returns:
        Number of folders newly marked deleted.
    """
    with transaction.atomic(using=using):
        folder_ids = resolve_subtree_for_many(root_folder_ids, owner, using)
        if not folder_ids:
            logger.info('Nothing to delete for roots %s', sorted(root_folder_ids))
            return 0

        affected = Folder.all_objects.using(using).filter(
            owner=owner,
            id__in=list(folder_ids),
            is_deleted=False,
        ).update(is_deleted=True, updated_at=timezone.now())
        files_affected = file_operations.soft_delete_by_folder_ids(
            folder_ids,
            owner,
            using,
        )

    logger.info(
        'Folders moved to trash: roots=%s, folders=%d, files=%d',
        sorted(root_folder_ids),
        affected,
        files_affected,
    )
    return affected


def cascade_restore(
    folder_ids: Collection[int],
    owner: _User,
    using: str = DEFAULT_DB_ALIAS,
) -> int:
    """Restore exactly the given folders and the files directly in them.

    Descendants are not restored: callers list every folder they want
    back.

    Args:
        folder_ids: Folders to restore.
        owner: Owner of the folders.
        using: Database alias holding the transaction.

    Returns:
        Number of folders restored.
    """
    with transaction.atomic(using=using):
        owned_ids = set(
            Folder.all_objects.using(using).filter(
                owner=owner,
                id__in=list(folder_ids),
            ).values_list('id', flat=True),
        )
        affected = Folder.all_objects.using(using).filter(
            id__in=list(owned_ids),
            is_deleted=True,
        ).update(is_deleted=False, updated_at=timezone.now())
        files_affected = file_operations.restore_by_folder_ids(
            owned_ids,
            owner,
            using,
        )

    logger.info(
        'Folders restored: folders=%d, files=%d',
        affected,
        files_affected,
    )
    return affected

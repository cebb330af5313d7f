"""Database models for drive app."""

import logging
from collections.abc import Iterable
from typing import Any, ClassVar, Final, final, override

from django.conf import settings
from django.db import models

logger = logging.getLogger(__name__)

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_OBJECT_KEY_MAX_LENGTH: Final = 1024
_SESSION_ID_MAX_LENGTH: Final = 1024


class FolderQuerySet(models.QuerySet['Folder']):
    """Folder queries, including the subtree traversal."""

    def resolve_descendants(
        self,
        seed_ids: Iterable[int],
        owner: Any,
    ) -> set[int]:
        """Resolve the inclusive descendant closure of the seed folders.

        Fixed-point walk over the parent -> child edge: the accepted set
        starts with the owner's seed folders, then every owner folder whose
        parent is in the frontier is added, until a pass adds nothing.

        Both the seeds and every expansion step are filtered by owner,
        so a folder of another owner whose ``parent_folder_id`` happens
        to point into this tree is never collected. Already accepted ids
        are excluded at each step, which makes the walk terminate even on
        corrupt data containing a cycle.

        Args:
            seed_ids: Root folder ids of the subtrees.
            owner: Owner of the folders (user instance or id).

        Returns:
            Set of folder ids, seeds included. Unknown or foreign seeds
            are silently dropped.
        """
        frontier = set(
            self.filter(
                owner=owner,
                id__in=list(seed_ids),
            ).values_list('id', flat=True),
        )
        accepted = set(frontier)

        depth = 0
        while frontier:
            children = set(
                self.filter(
                    owner=owner,
                    parent_folder_id__in=list(frontier),
                ).exclude(
                    id__in=list(accepted),
                ).values_list('id', flat=True),
            )
            accepted |= children
            frontier = children
            depth += 1

        logger.debug(
            'Resolved %d folders in %d passes',
            len(accepted),
            depth,
        )
        return accepted


class LiveFolderManager(models.Manager['Folder']):
    """Manager hiding soft-deleted folders."""

    @override
    def get_queryset(self) -> FolderQuerySet:
        """Exclude folders in trash."""
        return FolderQuerySet(self.model, using=self._db).filter(
            is_deleted=False,
        )


@final
class Folder(models.Model):
    """Folder in a user's tree.

    ``parent_folder_id`` is a weak reference rather than a foreign key:
    NULL means the folder sits in the owner's root, and a dangling id is
    stored as given. Folders are only ever soft-deleted.
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    parent_folder_id = models.BigIntegerField(
        null=True,
        blank=True,
        db_index=True,
        help_text='Parent folder ID, empty for the root',
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    is_deleted = models.BooleanField(default=False, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LiveFolderManager()
    all_objects = FolderQuerySet.as_manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name', 'id']

        indexes: ClassVar[list[models.Index]] = [
            # Optimize directory listing and subtree expansion
            models.Index(
                fields=['owner', 'parent_folder_id'],
                name='drive_folder_owner_parent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.name} (ID: {self.id})'

    @property
    def is_root_child(self) -> bool:
        """Whether the folder sits directly in the owner's root."""
        return not self.parent_folder_id


class UploadStatus(models.TextChoices):
    """Lifecycle of an uploaded file."""

    PENDING = 'PENDING', 'Pending'
    FINISHED = 'FINISHED', 'Finished'
    FAILED = 'FAILED', 'Failed'


class VisibleFileManager(models.Manager['File']):
    """Manager returning only files users can see.

    A file is visible once its upload finished and while it is not
    in trash.
    """

    @override
    def get_queryset(self) -> models.QuerySet['File']:
        """Keep finished, non-deleted files."""
        return super().get_queryset().filter(
            upload_status=UploadStatus.FINISHED,
            is_deleted=False,
        )


@final
class File(models.Model):
    """File whose content lives in S3-compatible storage.

    The row is created in PENDING state when an upload is initiated and
    becomes FINISHED only after the object store confirms the object.
    Content is stored under ``object_key`` ({owner_id}/{file_id}).
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    folder_id = models.BigIntegerField(
        null=True,
        blank=True,
        db_index=True,
        help_text='Containing folder ID, empty for the root',
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='MIME type sent by the client or guessed from the name',
    )

    size_bytes = models.BigIntegerField(
        help_text='Declared file size in bytes',
    )

    upload_status = models.CharField(
        max_length=16,
        choices=UploadStatus.choices,
        default=UploadStatus.PENDING,
        db_index=True,
    )

    object_key = models.CharField(
        max_length=_OBJECT_KEY_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Key in storage: {owner_id}/{file_id}',
    )

    upload_session_id = models.CharField(
        max_length=_SESSION_ID_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Open multipart upload ID, empty for single PUT uploads',
    )

    is_deleted = models.BooleanField(default=False, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = VisibleFileManager()
    all_objects = models.Manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name', 'id']

        indexes: ClassVar[list[models.Index]] = [
            # Optimize directory listing queries
            models.Index(
                fields=['owner', 'folder_id'],
                name='drive_file_owner_folder_idx',
            ),
        ]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='drive_file_size_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.name} (ID: {self.id})'

    @property
    def is_multipart(self) -> bool:
        """Whether the upload goes through a multipart session."""
        return bool(self.upload_session_id)

"""Exceptions for drive app."""


class DriveError(Exception):
    """Base class for folder and upload errors."""


class NotFoundError(DriveError):
    """Raised when an entity is absent or belongs to another owner.

    Both cases produce the same error so callers cannot probe for
    other owners' ids.
    """

    def __init__(self, entity: str, entity_id: int) -> None:
        """Initialize NotFoundError.

        Args:
            entity: Entity kind, e.g. 'File' or 'Folder'.
            entity_id: Requested ID.
        """
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f'{entity} not found: {entity_id}')


class InvalidStateError(DriveError):
    """Raised when an operation does not fit the current upload state.

    Also covers malformed part lists (gaps, duplicates, bad numbers) and
    restoring a file whose folder is still deleted.
    """


class ConstraintViolationError(DriveError):
    """Raised when a folder would be moved inside its own subtree."""

    def __init__(self, folder_id: int, new_parent_folder_id: int) -> None:
        """Initialize ConstraintViolationError.

        Args:
            folder_id: Folder being moved.
            new_parent_folder_id: Requested parent.
        """
        self.folder_id = folder_id
        self.new_parent_folder_id = new_parent_folder_id
        super().__init__(
            f'Cannot move folder {folder_id} under {new_parent_folder_id}: '
            'target is inside the folder subtree',
        )


class ObjectStoreError(DriveError):
    """Base class for object store failures."""


class StoreUnavailableError(ObjectStoreError):
    """Raised when the object store cannot be reached."""


class StoreRejectedError(ObjectStoreError):
    """Raised when the object store refuses a request.

    Typical causes: ETag mismatch, missing part, expired or unknown
    multipart session.
    """

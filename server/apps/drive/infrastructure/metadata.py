"""Metadata helpers for files and folders."""

import mimetypes
from pathlib import PurePosixPath
from typing import Final

from django.core.exceptions import ValidationError

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_NAME_MAX_LENGTH: Final = 255


def build_object_key(owner_id: int, file_id: int) -> str:
    """Build storage key for a file.

    Keys are derived from ids only, so renaming or moving a file
    never touches storage.

    Args:
        owner_id: Owner's user ID.
        file_id: File ID.

    Returns:
        Object key (e.g., '7/120').
    """
    return f'{owner_id}/{file_id}'


def resolve_mime_type(filename: str, mime_type: str = '') -> str:
    """Return the client MIME type, or guess one from the filename.

    Args:
        filename: Filename with extension.
        mime_type: MIME type sent by the client, may be empty.

    Returns:
        MIME type string. Returns 'application/octet-stream' if type
        cannot be determined.
    """
    if mime_type:
        return mime_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or _DEFAULT_MIME_TYPE


def validate_entry_name(name: str) -> str:
    """Validate a file or folder name.

    Args:
        name: Proposed name.

    Returns:
        Name with surrounding whitespace stripped.

    Raises:
        ValidationError: If name is empty, too long or contains a path.
    """
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError('Name cannot be empty')
    if len(cleaned) > _NAME_MAX_LENGTH:
        raise ValidationError(
            f'Name is longer than {_NAME_MAX_LENGTH} characters',
        )
    if cleaned in {'.', '..'} or PurePosixPath(cleaned).name != cleaned:
        raise ValidationError(f'Name must not contain a path: {name!r}')
    return cleaned


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = PurePosixPath(filename).suffix
    return extension.lstrip('.').lower()

"""Tests for file metadata business logic."""

import pytest
from django.db import transaction

from server.apps.drive.exceptions import InvalidStateError, NotFoundError
from server.apps.drive.logic.file_operations import (
    get_file,
    get_files_with_folder_id,
    restore_by_folder_ids,
    restore_file,
    search_files_by_name_fragment,
    soft_delete_by_folder_ids,
    soft_delete_file,
)
from server.apps.drive.logic.folder_operations import (
    cascade_restore,
    cascade_soft_delete,
)
from server.apps.drive.models import File, UploadStatus


def _make_file(owner, name, folder_id=None, status=UploadStatus.FINISHED):
    return File.all_objects.create(
        owner=owner,
        folder_id=folder_id,
        name=name,
        mime_type='text/plain',
        size_bytes=10,
        upload_status=status,
    )


@pytest.mark.django_db
class TestListing:
    """Tests for get_files_with_folder_id and search."""

    def test_root_listing(self, user):
        """Test None and 0 both list root files."""
        in_root = _make_file(user, 'root.txt')
        _make_file(user, 'nested.txt', folder_id=3)

        assert list(get_files_with_folder_id(user)) == [in_root]
        assert list(get_files_with_folder_id(user, 0)) == [in_root]

    def test_listing_hides_unfinished(self, user):
        """Test pending and failed uploads are invisible."""
        finished = _make_file(user, 'a.txt', folder_id=3)
        _make_file(user, 'b.txt', folder_id=3, status=UploadStatus.PENDING)
        _make_file(user, 'c.txt', folder_id=3, status=UploadStatus.FAILED)

        assert list(get_files_with_folder_id(user, 3)) == [finished]

    def test_listing_hides_deleted(self, user):
        """Test trashed files are invisible."""
        trashed = _make_file(user, 'a.txt', folder_id=3)
        soft_delete_file(trashed.id, user)

        assert not get_files_with_folder_id(user, 3).exists()

    def test_listing_is_owner_scoped(self, user, other_user):
        """Test files of other owners never appear."""
        _make_file(other_user, 'foreign.txt', folder_id=3)

        assert not get_files_with_folder_id(user, 3).exists()

    def test_search_case_insensitive(self, user):
        """Test search matches any case and any folder."""
        report = _make_file(user, 'Annual-Report.pdf', folder_id=8)
        _make_file(user, 'notes.txt')

        assert list(search_files_by_name_fragment(user, 'report')) == [report]

    def test_search_hides_pending(self, user):
        """Test search skips files still uploading."""
        _make_file(user, 'report.pdf', status=UploadStatus.PENDING)

        assert not search_files_by_name_fragment(user, 'report').exists()


@pytest.mark.django_db
class TestGetFile:
    """Tests for get_file function."""

    def test_get_pending_file(self, user):
        """Test files of any upload status can be read by the owner."""
        pending = _make_file(user, 'a.txt', status=UploadStatus.PENDING)

        assert get_file(pending.id, user) == pending

    def test_get_foreign_file(self, user, other_user):
        """Test foreign file raises NotFoundError."""
        foreign = _make_file(other_user, 'a.txt')

        with pytest.raises(NotFoundError):
            get_file(foreign.id, user)

    def test_get_deleted_file(self, user):
        """Test trashed file raises NotFoundError."""
        trashed = _make_file(user, 'a.txt')
        soft_delete_file(trashed.id, user)

        with pytest.raises(NotFoundError):
            get_file(trashed.id, user)


@pytest.mark.django_db
class TestSingleFileTrash:
    """Tests for soft_delete_file and restore_file."""

    def test_soft_delete_sets_flag(self, user):
        """Test soft delete tombstones the file."""
        file_instance = _make_file(user, 'a.txt')

        result = soft_delete_file(file_instance.id, user)

        assert result.is_deleted is True
        assert File.all_objects.filter(id=file_instance.id).exists()

    def test_soft_delete_foreign(self, user, other_user):
        """Test other owner cannot delete the file."""
        file_instance = _make_file(user, 'a.txt')

        with pytest.raises(NotFoundError):
            soft_delete_file(file_instance.id, other_user)

    def test_restore_clears_flag(self, user):
        """Test restore makes the file visible again."""
        file_instance = _make_file(user, 'a.txt')
        soft_delete_file(file_instance.id, user)

        result = restore_file(file_instance.id, user)

        assert result.is_deleted is False
        assert list(get_files_with_folder_id(user)) == [file_instance]

    def test_restore_live_file(self, user):
        """Test restoring a file not in trash raises NotFoundError."""
        file_instance = _make_file(user, 'a.txt')

        with pytest.raises(NotFoundError):
            restore_file(file_instance.id, user)

    def test_restore_inside_deleted_folder(self, user, docs_tree):
        """Test file stays in trash while its folder is deleted."""
        cascade_soft_delete([5], user)

        with pytest.raises(InvalidStateError):
            restore_file(100, user)

        assert not get_files_with_folder_id(user, 14).exists()
        assert File.all_objects.get(id=100).is_deleted is True

    def test_restore_after_folder_restored(self, user, docs_tree):
        """Test file can come back once its folder is live again."""
        cascade_soft_delete([5], user)
        cascade_restore([14], user)
        soft_delete_file(100, user)

        restore_file(100, user)

        assert list(get_files_with_folder_id(user, 14)) == [docs_tree['file']]

    def test_restore_with_dangling_folder(self, user):
        """Test unknown folder ids do not block restore."""
        file_instance = _make_file(user, 'a.txt', folder_id=404)
        soft_delete_file(file_instance.id, user)

        assert restore_file(file_instance.id, user).is_deleted is False


@pytest.mark.django_db
class TestFolderCollaborator:
    """Tests for the bulk helpers used by folder cascades."""

    def test_soft_delete_by_folder_ids(self, user, other_user):
        """Test every owner file in the folders is trashed."""
        _make_file(user, 'a.txt', folder_id=1)
        _make_file(user, 'b.txt', folder_id=2, status=UploadStatus.PENDING)
        keep = _make_file(user, 'c.txt', folder_id=3)
        foreign = _make_file(other_user, 'd.txt', folder_id=1)

        with transaction.atomic():
            affected = soft_delete_by_folder_ids({1, 2}, user)

        assert affected == 2
        keep.refresh_from_db()
        foreign.refresh_from_db()
        assert keep.is_deleted is False
        assert foreign.is_deleted is False

    def test_restore_by_folder_ids(self, user):
        """Test files in the folders come back."""
        _make_file(user, 'a.txt', folder_id=1)
        with transaction.atomic():
            soft_delete_by_folder_ids({1}, user)
            affected = restore_by_folder_ids({1}, user)

        assert affected == 1
        assert get_files_with_folder_id(user, 1).count() == 1


@pytest.mark.django_db(transaction=True)
def test_collaborator_requires_transaction(user):
    """Test cascade helpers refuse to run in autocommit mode."""
    with pytest.raises(transaction.TransactionManagementError):
        soft_delete_by_folder_ids({1}, user)

    with pytest.raises(transaction.TransactionManagementError):
        restore_by_folder_ids({1}, user)

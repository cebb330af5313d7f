"""Shared fixtures for drive app tests."""

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.drive.models import File, Folder, UploadStatus

User = get_user_model()

_BUCKET = 'drive'


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with drive bucket.

    Yields:
        boto3 S3 resource with drive bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=_BUCKET)
        yield conn


@pytest.fixture
def s3_client(mock_s3):
    """Low-level client on the mocked S3 service.

    Returns:
        boto3 S3 client.
    """
    return mock_s3.meta.client


@pytest.fixture
def upload_settings(settings):
    """Pin upload thresholds used by the tests.

    Returns:
        pytest-django settings fixture.
    """
    settings.DRIVE_MULTIPART_THRESHOLD_BYTES = 5 * 1024 * 1024
    settings.DRIVE_MAX_UPLOAD_PARTS = 10000
    settings.DRIVE_PRESIGNED_URL_EXPIRES = 600
    return settings


@pytest.fixture
def docs_tree(user):
    """Build root -> Docs(5) -> 2024(9) -> Tax(14) with file 100 in Tax.

    Returns:
        Dictionary of created folders and the file.
    """
    docs = Folder.objects.create(id=5, owner=user, name='Docs')
    year = Folder.objects.create(
        id=9,
        owner=user,
        name='2024',
        parent_folder_id=docs.id,
    )
    tax = Folder.objects.create(
        id=14,
        owner=user,
        name='Tax',
        parent_folder_id=year.id,
    )
    tax_return = File.all_objects.create(
        id=100,
        owner=user,
        folder_id=tax.id,
        name='return.pdf',
        mime_type='application/pdf',
        size_bytes=2048,
        upload_status=UploadStatus.FINISHED,
        object_key=f'{user.id}/100',
    )
    return {'docs': docs, 'year': year, 'tax': tax, 'file': tax_return}

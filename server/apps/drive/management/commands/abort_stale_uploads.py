"""Management command to abort uploads that were never completed."""

import logging
from datetime import timedelta
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.logic.upload_operations import abort_stale_upload
from server.apps.drive.models import File, UploadStatus

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Abort PENDING uploads older than ``DRIVE_STALE_UPLOAD_HOURS``.

    Releases their multipart sessions, so abandoned parts stop
    occupying storage. Trashed uploads are included: a folder cascade
    moves pending files to trash without touching their sessions.
    """

    help = 'Abort uploads left pending for too long'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be aborted without aborting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max uploads to process (default: {_DEFAULT_BATCH_SIZE})',
        )
        parser.add_argument(
            '--hours',
            type=int,
            default=None,
            help='Age threshold in hours (default: DRIVE_STALE_UPLOAD_HOURS)',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the abort command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        hours = options['hours'] or settings.DRIVE_STALE_UPLOAD_HOURS

        cutoff = timezone.now() - timedelta(hours=hours)

        self.stdout.write(
            f'Looking for uploads started before {cutoff} '
            f'(older than {hours} hours)',
        )

        stale_files = File.all_objects.filter(
            upload_status=UploadStatus.PENDING,
            created_at__lte=cutoff,
        ).select_related('owner').order_by('created_at')[:batch_size]

        count = 0
        for file_instance in stale_files:
            if dry_run:
                self.stdout.write(
                    f'Would abort: {file_instance.name} '
                    f'(ID: {file_instance.id}, '
                    f'owner: {file_instance.owner.get_username()}, '
                    f'started: {file_instance.created_at})',
                )
                count += 1
                continue

            try:
                abort_stale_upload(file_instance.id)
            except NotFoundError:
                logger.warning(
                    'Stale upload vanished before abort: ID=%d',
                    file_instance.id,
                )
                continue
            count += 1
            logger.info(
                'Aborted stale upload: %s (ID: %d)',
                file_instance.name,
                file_instance.id,
            )

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would abort {count} stale uploads'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(f'Aborted {count} stale uploads'),
            )

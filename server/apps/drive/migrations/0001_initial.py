import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('parent_folder_id', models.BigIntegerField(blank=True, db_index=True, help_text='Parent folder ID, empty for the root', null=True)),
                ('name', models.CharField(max_length=255)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='folders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['name', 'id'],
                'indexes': [models.Index(fields=['owner', 'parent_folder_id'], name='drive_folder_owner_parent_idx')],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('folder_id', models.BigIntegerField(blank=True, db_index=True, help_text='Containing folder ID, empty for the root', null=True)),
                ('name', models.CharField(max_length=255)),
                ('mime_type', models.CharField(help_text='MIME type sent by the client or guessed from the name', max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='Declared file size in bytes')),
                ('upload_status', models.CharField(choices=[('PENDING', 'Pending'), ('FINISHED', 'Finished'), ('FAILED', 'Failed')], db_index=True, default='PENDING', max_length=16)),
                ('object_key', models.CharField(blank=True, default='', help_text='Key in storage: {owner_id}/{file_id}', max_length=1024)),
                ('upload_session_id', models.CharField(blank=True, default='', help_text='Open multipart upload ID, empty for single PUT uploads', max_length=1024)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['name', 'id'],
                'indexes': [models.Index(fields=['owner', 'folder_id'], name='drive_file_owner_folder_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('size_bytes__gte', 0)), name='drive_file_size_non_negative')],
            },
        ),
    ]

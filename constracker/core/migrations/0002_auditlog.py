# AuditLog points at projects.Project, so it is created after the projects app

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
        ('projects', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('create', 'Create'), ('edit', 'Edit'), ('delete', 'Delete'), ('approved', 'Approved'), ('declined', 'Declined'), ('requests', 'Material Request'), ('submitted', 'Request Submitted'), ('ordered', 'Request Ordered'), ('delivered', 'Delivery Recorded'), ('verified', 'Delivery Verified'), ('reviewed', 'Request Reviewed'), ('adjusted', 'Stock Adjusted')], max_length=30)),
                ('entity_type', models.CharField(max_length=50)),
                ('object_id', models.CharField(max_length=100)),
                ('object_name', models.CharField(blank=True, help_text='Human-readable description shown in the activity feed', max_length=255)),
                ('changes', models.JSONField(blank=True, default=list, help_text='List of {field, before, after} pairs for edits')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('project', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='logs', to='projects.project')),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.PROTECT, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'logs',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['-created_at'], name='logs_created_2b1f0e_idx'),
                    models.Index(fields=['action'], name='logs_action_7c9d4a_idx'),
                    models.Index(fields=['entity_type'], name='logs_entity__e3a5b1_idx'),
                ],
            },
        ),
    ]

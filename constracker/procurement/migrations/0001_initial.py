import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('catalog', '0001_initial'),
        ('projects', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='MaterialRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('request_type', models.CharField(choices=[('supplier', 'Supplier'), ('main_inventory', 'Main Inventory')], max_length=20)),
                ('current_stage', models.CharField(choices=[('DRAFT', 'Draft'), ('requested', 'Requested'), ('approved', 'Approved'), ('ordered', 'Ordered'), ('verifying', 'Verifying'), ('partially_verified', 'Partially Verified'), ('disputed', 'Disputed'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='requested', max_length=30)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=20)),
                ('priority_level', models.CharField(choices=[('low', 'Low'), ('normal', 'Normal'), ('high', 'High'), ('urgent', 'Urgent')], default='normal', max_length=10)),
                ('remarks', models.TextField(blank=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_material_requests', to=settings.AUTH_USER_MODEL)),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='material_requests', to='projects.project')),
                ('requested_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='material_requests', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='material_requests', to='catalog.supplier')),
            ],
            options={
                'db_table': 'material_requests',
                'ordering': ['-created_at', '-id'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('request_type', 'supplier'), ('supplier__isnull', False)), models.Q(('request_type', 'main_inventory'), ('supplier__isnull', True)), _connector='OR'), name='material_request_supplier_matches_type'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MaterialRequestItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('requested_quantity', models.PositiveIntegerField()),
                ('received_quantity', models.PositiveIntegerField(default=0)),
                ('accepted_quantity', models.PositiveIntegerField(default=0)),
                ('rejected_quantity', models.PositiveIntegerField(default=0)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='request_lines', to='catalog.item')),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='procurement.materialrequest')),
            ],
            options={
                'db_table': 'material_request_items',
                'ordering': ['id'],
                'unique_together': {('request', 'item')},
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('requested_quantity__gt', 0)), name='material_request_item_quantity_positive'),
                    models.CheckConstraint(condition=models.Q(('received_quantity', models.F('accepted_quantity') + models.F('rejected_quantity'))), name='material_request_item_received_is_sum'),
                    models.CheckConstraint(condition=models.Q(('received_quantity__lte', models.F('requested_quantity'))), name='material_request_item_not_over_received'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MaterialRequestAction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('create', 'Created'), ('submit', 'Submitted'), ('approve', 'Approved'), ('decline', 'Declined'), ('order', 'Ordered'), ('delivery', 'Delivery Recorded'), ('verify', 'Verified'), ('review', 'Reviewed')], max_length=20)),
                ('from_stage', models.CharField(blank=True, max_length=30)),
                ('to_stage', models.CharField(blank=True, max_length=30)),
                ('remarks', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('performed_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.PROTECT, related_name='material_request_actions', to=settings.AUTH_USER_MODEL)),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='actions', to='procurement.materialrequest')),
            ],
            options={
                'db_table': 'material_request_actions',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='MaterialDelivery',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delivered_by', models.CharField(max_length=200)),
                ('delivery_date', models.DateField()),
                ('delivery_status', models.CharField(choices=[('partial', 'Partial'), ('complete', 'Complete')], max_length=10)),
                ('remarks', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('acknowledged_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.PROTECT, related_name='acknowledged_deliveries', to=settings.AUTH_USER_MODEL)),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='deliveries', to='procurement.materialrequest')),
            ],
            options={
                'db_table': 'material_deliveries',
                'ordering': ['-delivery_date', '-id'],
                'verbose_name_plural': 'material deliveries',
            },
        ),
        migrations.CreateModel(
            name='MaterialVerification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('accepted_quantity', models.PositiveIntegerField(default=0)),
                ('rejected_quantity', models.PositiveIntegerField(default=0)),
                ('remarks', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='verifications', to='procurement.materialrequest')),
                ('request_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='verifications', to='procurement.materialrequestitem')),
                ('verified_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.PROTECT, related_name='material_verifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'material_verifications',
                'ordering': ['created_at', 'id'],
            },
        ),
    ]

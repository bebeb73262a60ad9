# Generated manually for stage templates, production orders and stages

import datetime
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion

import production_flow.models.production_order


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StageTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_type', models.CharField(max_length=50, unique=True)),
                ('name', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Stage Template',
                'verbose_name_plural': 'Stage Templates',
                'ordering': ['product_type'],
            },
        ),
        migrations.CreateModel(
            name='StageDefinition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage_number', models.PositiveIntegerField()),
                ('stage_type', models.CharField(choices=[
                    ('grey_fabric_inward', 'Grey Fabric Inward'),
                    ('pre_processing', 'Pre-Processing (Desizing/Bleaching)'),
                    ('bleaching', 'Bleaching'),
                    ('after_bleaching', 'After Bleaching'),
                    ('dyeing', 'Dyeing'),
                    ('printing', 'Printing'),
                    ('hazer_silicate_curing', 'Hazer / Silicate Curing'),
                    ('washing', 'Washing'),
                    ('fixing', 'Color Fixing'),
                    ('felt', 'Felt'),
                    ('finishing', 'Finishing'),
                    ('folding_checking', 'Folding & Checking'),
                    ('quality_control', 'Quality Control'),
                    ('cutting_packing', 'Cutting & Packing'),
                    ('dispatch_invoice', 'Dispatch & Invoice'),
                ], max_length=40)),
                ('stage_name', models.CharField(blank=True, max_length=100)),
                ('quality_check_required', models.BooleanField(default=False)),
                ('planned_duration_minutes', models.PositiveIntegerField(
                    default=0, help_text='Expected processing time, used only for overdue reporting'
                )),
                ('template', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='stages',
                    to='production_flow.stagetemplate'
                )),
            ],
            options={
                'verbose_name': 'Stage Definition',
                'verbose_name_plural': 'Stage Definitions',
                'ordering': ['template', 'stage_number'],
                'unique_together': {('template', 'stage_number')},
            },
        ),
        migrations.CreateModel(
            name='ProductionOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_number', models.CharField(max_length=50)),
                ('company_id', models.CharField(db_index=True, max_length=64)),
                ('product_type', models.CharField(max_length=50)),
                ('customer_ref', models.CharField(blank=True, max_length=64)),
                ('lot_number', models.CharField(blank=True, max_length=50)),
                ('party_name', models.CharField(blank=True, max_length=200)),
                ('order_quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('unit', models.CharField(
                    choices=[('meter', 'Meter'), ('kg', 'Kilogram'), ('piece', 'Piece')],
                    default=production_flow.models.production_order.default_unit,
                    max_length=10
                )),
                ('priority', models.CharField(
                    choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')],
                    default='medium', max_length=10
                )),
                ('approval_status', models.CharField(
                    choices=[('pending', 'Pending Approval'), ('approved', 'Approved'), ('rejected', 'Rejected')],
                    default='pending', max_length=20
                )),
                ('flow_status', models.CharField(
                    choices=[
                        ('not_initialized', 'Not Initialized'),
                        ('not_started', 'Not Started'),
                        ('in_progress', 'In Progress'),
                        ('on_hold', 'On Hold'),
                        ('completed', 'Completed'),
                    ],
                    default='not_initialized', max_length=20
                )),
                ('flow_initialized_at', models.DateTimeField(blank=True, null=True)),
                ('completed_quantity', models.DecimalField(
                    decimal_places=3, default=Decimal('0'), help_text='Good output of the final stage', max_digits=12
                )),
                ('rejected_quantity', models.DecimalField(
                    decimal_places=3, default=Decimal('0'),
                    help_text='Sum of defect quantities over all completed stages', max_digits=12
                )),
                ('planned_end_date', models.DateTimeField(blank=True, null=True)),
                ('actual_start_date', models.DateTimeField(blank=True, null=True)),
                ('actual_end_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('flow_initialized_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='initialized_production_flows',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'Production Order',
                'verbose_name_plural': 'Production Orders',
                'ordering': ['-created_at'],
                'unique_together': {('company_id', 'order_number')},
                'indexes': [
                    models.Index(fields=['company_id', 'flow_status'], name='pf_order_company_status_idx'),
                    models.Index(fields=['company_id', 'updated_at'], name='pf_order_company_updated_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProductionStage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage_number', models.PositiveIntegerField()),
                ('stage_type', models.CharField(max_length=40)),
                ('stage_name', models.CharField(blank=True, max_length=100)),
                ('quality_check_required', models.BooleanField(default=False)),
                ('planned_duration_minutes', models.PositiveIntegerField(default=0)),
                ('status', models.CharField(
                    choices=[
                        ('pending', 'Pending'),
                        ('in_progress', 'In Progress'),
                        ('held', 'Held'),
                        ('completed', 'Completed'),
                        ('skipped', 'Skipped'),
                    ],
                    default='pending', max_length=20
                )),
                ('planned_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('actual_quantity', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('defect_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('byproduct_quantity', models.DecimalField(
                    decimal_places=3, default=Decimal('0'),
                    help_text='Shrinkage/reclaimed quantity moved to longation stock', max_digits=12
                )),
                ('quality_grade', models.CharField(
                    blank=True,
                    choices=[('A+', 'A+'), ('A', 'A'), ('B+', 'B+'), ('B', 'B'), ('C', 'C'), ('Reject', 'Reject')],
                    max_length=10
                )),
                ('quality_notes', models.TextField(blank=True)),
                ('images', models.JSONField(blank=True, default=list)),
                ('notes', models.TextField(blank=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('hold_reason', models.TextField(blank=True)),
                ('held_at', models.DateTimeField(blank=True, null=True)),
                ('resumed_at', models.DateTimeField(blank=True, null=True)),
                ('held_duration', models.DurationField(default=datetime.timedelta(0))),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='stages',
                    to='production_flow.productionorder'
                )),
                ('started_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='started_production_stages',
                    to=settings.AUTH_USER_MODEL
                )),
                ('completed_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='completed_production_stages',
                    to=settings.AUTH_USER_MODEL
                )),
                ('held_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='held_production_stages',
                    to=settings.AUTH_USER_MODEL
                )),
                ('resumed_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='resumed_production_stages',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'Production Stage',
                'verbose_name_plural': 'Production Stages',
                'ordering': ['order', 'stage_number'],
                'unique_together': {('order', 'stage_number')},
                'indexes': [
                    models.Index(fields=['stage_type', 'status'], name='pf_stage_type_status_idx'),
                    models.Index(fields=['status', 'completed_at'], name='pf_stage_status_done_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StageHoldLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reason_code', models.CharField(
                    choices=[
                        ('machine_breakdown', 'Machine Breakdown / Repair'),
                        ('power_cut', 'Power Cut'),
                        ('maintenance', 'Maintenance'),
                        ('material_shortage', 'Material Shortage'),
                        ('quality_issue', 'Quality Issue'),
                        ('others', 'Others'),
                    ],
                    default='others', max_length=30
                )),
                ('reason', models.TextField()),
                ('held_at', models.DateTimeField()),
                ('is_resumed', models.BooleanField(default=False)),
                ('resumed_at', models.DateTimeField(blank=True, null=True)),
                ('resume_notes', models.TextField(blank=True)),
                ('downtime_minutes', models.PositiveIntegerField(default=0)),
                ('stage', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='hold_logs',
                    to='production_flow.productionstage'
                )),
                ('order', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='hold_logs',
                    to='production_flow.productionorder'
                )),
                ('held_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='stage_holds_created',
                    to=settings.AUTH_USER_MODEL
                )),
                ('resumed_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='stage_holds_resumed',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'Stage Hold Log',
                'verbose_name_plural': 'Stage Hold Logs',
                'ordering': ['-held_at'],
                'indexes': [
                    models.Index(fields=['stage', 'is_resumed'], name='pf_hold_stage_resumed_idx'),
                    models.Index(fields=['order', 'held_at'], name='pf_hold_order_held_idx'),
                ],
            },
        ),
    ]

# Generated manually for the longation stock ledger

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('production_flow', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='LongationStockEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entry_number', models.CharField(
                    editable=False, help_text='Auto-generated: LS-YYYYMMDD-XXXX', max_length=30
                )),
                ('company_id', models.CharField(db_index=True, max_length=64)),
                ('source_stage_number', models.PositiveIntegerField()),
                ('source_module', models.CharField(help_text='Stage type that produced this stock', max_length=40)),
                ('lot_number', models.CharField(blank=True, max_length=50)),
                ('party_name', models.CharField(blank=True, max_length=200)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('unit', models.CharField(
                    choices=[('meter', 'Meter'), ('kg', 'Kilogram'), ('piece', 'Piece')],
                    default='meter', max_length=10
                )),
                ('available_quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('source_order', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='longation_entries',
                    to='production_flow.productionorder'
                )),
                ('created_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='longation_entries_created',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'Longation Stock Entry',
                'verbose_name_plural': 'Longation Stock Entries',
                'ordering': ['-created_at'],
                'unique_together': {('source_order', 'source_stage_number'), ('company_id', 'entry_number')},
                'indexes': [
                    models.Index(fields=['company_id', 'source_module'], name='ls_entry_company_module_idx'),
                    models.Index(fields=['company_id', 'created_at'], name='ls_entry_company_created_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(available_quantity__gte=0),
                        name='longation_available_not_negative',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(available_quantity__lte=models.F('quantity')),
                        name='longation_available_within_quantity',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='LongationAllocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('allocation_number', models.CharField(
                    editable=False, help_text='Auto-generated: LA-YYYYMMDD-XXXX', max_length=30
                )),
                ('company_id', models.CharField(db_index=True, max_length=64)),
                ('consumer_order_ref', models.CharField(help_text='Order consuming this stock', max_length=64)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('status', models.CharField(
                    choices=[('allocated', 'Allocated'), ('used', 'Used'), ('cancelled', 'Cancelled')],
                    default='allocated', max_length=20
                )),
                ('allocated_at', models.DateTimeField(auto_now_add=True)),
                ('used_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancel_reason', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('entry', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='allocations',
                    to='longation.longationstockentry'
                )),
                ('allocated_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='longation_allocations_created',
                    to=settings.AUTH_USER_MODEL
                )),
                ('used_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='longation_allocations_used',
                    to=settings.AUTH_USER_MODEL
                )),
                ('cancelled_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='longation_allocations_cancelled',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'Longation Allocation',
                'verbose_name_plural': 'Longation Allocations',
                'ordering': ['-allocated_at'],
                'unique_together': {('company_id', 'allocation_number')},
                'indexes': [
                    models.Index(fields=['entry', 'status'], name='ls_alloc_entry_status_idx'),
                    models.Index(fields=['company_id', 'status'], name='ls_alloc_company_status_idx'),
                    models.Index(fields=['consumer_order_ref'], name='ls_alloc_consumer_idx'),
                ],
            },
        ),
    ]

"""
Management command to seed the default textile stage templates

Usage:
    python manage.py seed_stage_templates
    python manage.py seed_stage_templates --product-type=textile_fabric --force
    python manage.py seed_stage_templates --dry-run
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
import logging

from production_flow.models import StageTemplate, StageDefinition

logger = logging.getLogger(__name__)

# (stage_type, stage_name, quality_check_required, planned_duration_minutes)
DEFAULT_TEMPLATES = {
    'textile_fabric': {
        'name': 'Textile Fabric Processing',
        'description': 'Grey fabric inward through dyeing/printing, finishing and dispatch',
        'stages': [
            ('grey_fabric_inward', 'Grey Fabric Inward (GRN Entry)', True, 60),
            ('pre_processing', 'Pre-Processing (Desizing/Bleaching)', False, 240),
            ('dyeing', 'Dyeing Process', True, 480),
            ('printing', 'Printing Process', True, 360),
            ('washing', 'Washing Process', False, 180),
            ('fixing', 'Color Fixing', False, 120),
            ('finishing', 'Finishing Process (Stenter, Coating)', False, 300),
            ('quality_control', 'Quality Control (Pass/Hold/Reject)', True, 60),
            ('cutting_packing', 'Cutting & Packing (Labels & Cartons)', False, 120),
            ('dispatch_invoice', 'Dispatch & Invoice (Stock Deduction)', False, 30),
        ],
    },
    'saree_processing': {
        'name': 'Saree Processing',
        'description': 'Bleaching line with curing, washing and felt; each step can yield longation stock',
        'stages': [
            ('bleaching', 'Bleaching', False, 240),
            ('after_bleaching', 'After Bleaching', True, 120),
            ('hazer_silicate_curing', 'Hazer / Silicate Curing', False, 180),
            ('washing', 'Washing', False, 180),
            ('felt', 'Felt', True, 120),
            ('folding_checking', 'Folding & Checking', True, 60),
        ],
    },
}


class Command(BaseCommand):
    help = 'Create or update the default stage templates per product type'

    def add_arguments(self, parser):
        parser.add_argument(
            '--product-type',
            type=str,
            help=f'Seed only this template ({", ".join(DEFAULT_TEMPLATES)})',
        )
        parser.add_argument(
            '--force',
            action='store_true',
            help='Replace the stages of templates that already exist',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be created without saving',
        )

    def handle(self, *args, **options):
        product_type = options.get('product_type')
        force = options.get('force', False)
        dry_run = options.get('dry_run', False)

        if product_type:
            if product_type not in DEFAULT_TEMPLATES:
                raise CommandError(f"Unknown product type '{product_type}'")
            templates = {product_type: DEFAULT_TEMPLATES[product_type]}
        else:
            templates = DEFAULT_TEMPLATES

        if dry_run:
            self.stdout.write(self.style.WARNING('DRY RUN MODE - No changes will be saved'))

        created_count = 0
        updated_count = 0
        skipped_count = 0

        for key, config in templates.items():
            existing = StageTemplate.objects.filter(product_type=key).first()

            if existing and not force:
                self.stdout.write(f'  Skipped {key}: template exists (use --force to replace its stages)')
                skipped_count += 1
                continue

            self.stdout.write(f'  {"Updating" if existing else "Creating"} {key} ({len(config["stages"])} stages)')
            for number, (stage_type, stage_name, qc, minutes) in enumerate(config['stages'], start=1):
                self.stdout.write(f'    {number}. {stage_name} [{stage_type}] {minutes} min{" QC" if qc else ""}')

            if dry_run:
                continue

            with transaction.atomic():
                template, created = StageTemplate.objects.update_or_create(
                    product_type=key,
                    defaults={
                        'name': config['name'],
                        'description': config['description'],
                        'is_active': True,
                    }
                )
                template.stages.all().delete()
                StageDefinition.objects.bulk_create([
                    StageDefinition(
                        template=template,
                        stage_number=number,
                        stage_type=stage_type,
                        stage_name=stage_name,
                        quality_check_required=qc,
                        planned_duration_minutes=minutes,
                    )
                    for number, (stage_type, stage_name, qc, minutes) in enumerate(config['stages'], start=1)
                ])

            if created:
                created_count += 1
            else:
                updated_count += 1
            logger.info(f'Seeded stage template {key} with {len(config["stages"])} stages')

        self.stdout.write(self.style.SUCCESS(
            f'Done: {created_count} created, {updated_count} updated, {skipped_count} skipped'
        ))

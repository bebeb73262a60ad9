from decimal import Decimal

from django.contrib.auth import get_user_model

from production_flow.models import ProductionOrder, StageTemplate, StageDefinition
from utils.enums import ApprovalStatusChoices

User = get_user_model()

SAREE_STAGES = ['bleaching', 'washing', 'felt']


class FlowFixturesMixin:
    """Template, order and user builders shared by the flow and ledger tests"""

    def create_user(self, username='operator'):
        return User.objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password='testpass123',
            first_name='Test',
            last_name='Operator'
        )

    def create_template(self, product_type='saree', stage_types=None, is_active=True):
        template = StageTemplate.objects.create(
            product_type=product_type,
            name=f'{product_type.title()} Processing',
            is_active=is_active
        )
        for number, stage_type in enumerate(stage_types or SAREE_STAGES, start=1):
            StageDefinition.objects.create(
                template=template,
                stage_number=number,
                stage_type=stage_type,
                quality_check_required=stage_type == 'felt',
                planned_duration_minutes=60
            )
        return template

    def create_order(self, order_number='PO-001', company_id='c1', product_type='saree',
                     quantity=Decimal('100'), approval_status=ApprovalStatusChoices.APPROVED, **extra):
        return ProductionOrder.objects.create(
            order_number=order_number,
            company_id=company_id,
            product_type=product_type,
            order_quantity=quantity,
            approval_status=approval_status,
            lot_number=extra.pop('lot_number', 'LOT-7'),
            party_name=extra.pop('party_name', 'Shree Textiles'),
            **extra
        )

    def completion(self, actual=100, defect=0, byproduct=0, grade='A', **extra):
        data = {
            'actual_quantity': actual,
            'defect_quantity': defect,
            'byproduct_quantity': byproduct,
            'quality_grade': grade,
        }
        data.update(extra)
        return data

"""
Stage Template Registry
Resolves a product type to its ordered stage definitions
"""

from production_flow.models import StageTemplate, StageDefinition
from production_flow.exceptions import TemplateNotFound


class StageTemplateRegistry:
    """
    Read-only lookup over the configured stage templates
    """

    def resolve(self, product_type):
        """
        Ordered stage definitions for a product type

        Raises TemplateNotFound when no active template exists or it has no stages.
        """
        try:
            template = StageTemplate.objects.get(product_type=product_type, is_active=True)
        except StageTemplate.DoesNotExist:
            raise TemplateNotFound(f"No stage template configured for product type '{product_type}'")

        definitions = list(
            StageDefinition.objects.filter(template=template).order_by('stage_number')
        )
        if not definitions:
            raise TemplateNotFound(f"Stage template for '{product_type}' has no stages")

        return definitions

    def available_product_types(self):
        return list(
            StageTemplate.objects.filter(is_active=True)
            .order_by('product_type')
            .values_list('product_type', flat=True)
        )

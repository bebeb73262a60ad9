"""
Stage Template Models
Per product type, the fixed ordered list of processing stages
"""
from django.db import models

from utils.enums import StageTypeChoices


class StageTemplate(models.Model):
    """
    Ordered stage sequence for one product type
    Orders take a frozen copy of it when their flow is initialized
    """
    product_type = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Stage Template'
        verbose_name_plural = 'Stage Templates'
        ordering = ['product_type']

    def __str__(self):
        return f"{self.product_type} - {self.name}"

    @property
    def stage_count(self):
        return self.stages.count()


class StageDefinition(models.Model):
    """One step of a stage template"""
    template = models.ForeignKey(StageTemplate, on_delete=models.CASCADE, related_name='stages')

    stage_number = models.PositiveIntegerField()
    stage_type = models.CharField(max_length=40, choices=StageTypeChoices.choices)
    stage_name = models.CharField(max_length=100, blank=True)
    quality_check_required = models.BooleanField(default=False)
    planned_duration_minutes = models.PositiveIntegerField(
        default=0,
        help_text="Expected processing time, used only for overdue reporting"
    )

    class Meta:
        verbose_name = 'Stage Definition'
        verbose_name_plural = 'Stage Definitions'
        ordering = ['template', 'stage_number']
        unique_together = [['template', 'stage_number']]

    def __str__(self):
        return f"{self.template.product_type} #{self.stage_number} {self.display_name}"

    @property
    def display_name(self):
        return self.stage_name or self.get_stage_type_display()

"""
Shared Models
Per-company document number sequences
"""
from django.db import models


class DocumentSequence(models.Model):
    """
    Running counter per company and document prefix (LS, LA, ...)
    Incremented with a conditional F() update, never read-modify-write
    """
    company_id = models.CharField(max_length=64)
    prefix = models.CharField(max_length=10)
    last_number = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Document Sequence'
        verbose_name_plural = 'Document Sequences'
        unique_together = [['company_id', 'prefix']]
        ordering = ['company_id', 'prefix']

    def __str__(self):
        return f"{self.company_id} / {self.prefix} #{self.last_number}"

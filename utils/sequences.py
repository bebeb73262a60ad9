"""
Per-company document number generator
Produces numbers like LS-20250101-0001
"""
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from utils.models import DocumentSequence


class DocumentSequenceGenerator:
    """
    Atomic sequence source, injected into the services that issue document numbers
    """

    def next_value(self, company_id, prefix):
        with transaction.atomic():
            sequence = self._get_or_create(company_id, prefix)
            DocumentSequence.objects.filter(pk=sequence.pk).update(
                last_number=F('last_number') + 1
            )
            sequence.refresh_from_db(fields=['last_number'])
            return sequence.last_number

    def next_number(self, company_id, prefix):
        value = self.next_value(company_id, prefix)
        date_str = timezone.now().strftime('%Y%m%d')
        return f"{prefix}-{date_str}-{value:04d}"

    def _get_or_create(self, company_id, prefix):
        try:
            with transaction.atomic():
                sequence, _ = DocumentSequence.objects.get_or_create(
                    company_id=str(company_id), prefix=prefix
                )
        except IntegrityError:
            # Lost the creation race to another request
            sequence = DocumentSequence.objects.get(company_id=str(company_id), prefix=prefix)
        return sequence

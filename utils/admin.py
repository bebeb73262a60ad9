from django.contrib import admin

from .models import DocumentSequence


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    list_display = ('company_id', 'prefix', 'last_number', 'updated_at')
    list_filter = ('prefix',)
    search_fields = ('company_id',)
    readonly_fields = ('last_number', 'created_at', 'updated_at')

from django.contrib import admin
from .models import PartnerSettlement, SettlementApproval


class SettlementApprovalInline(admin.StackedInline):
    model = SettlementApproval
    extra = 0
    can_delete = False


@admin.register(PartnerSettlement)
class PartnerSettlementAdmin(admin.ModelAdmin):
    list_display = ['id', 'student', 'mode', 'month_key', 'hours', 'amount', 'status', 'created_at']
    list_filter = ['mode', 'status']
    search_fields = ['student__name']
    raw_id_fields = ['student', 'package']
    inlines = [SettlementApprovalInline]

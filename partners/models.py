"""
Partner billing: settlements owed by a partner organisation for its students,
and the manager/finance sign-off required before a settlement is exported.
"""
from django.conf import settings
from django.db import models


class PartnerSettlement(models.Model):
    MODE_ONLINE_PACKAGE_END = 'ONLINE_PACKAGE_END'
    MODE_OFFLINE_MONTHLY = 'OFFLINE_MONTHLY'
    MODE_CHOICES = [
        (MODE_ONLINE_PACKAGE_END, 'Online (package end)'),
        (MODE_OFFLINE_MONTHLY, 'Offline (monthly)'),
    ]

    STATUS_PENDING = 'PENDING'
    STATUS_INVOICED = 'INVOICED'
    STATUS_PAID = 'PAID'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_INVOICED, 'Invoiced'),
        (STATUS_PAID, 'Paid'),
    ]

    student = models.ForeignKey('students.Student', on_delete=models.PROTECT, related_name='partner_settlements')
    package = models.ForeignKey(
        'packages.CoursePackage',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='partner_settlements',
    )
    mode = models.CharField(max_length=24, choices=MODE_CHOICES)
    month_key = models.CharField(max_length=7, blank=True, null=True, help_text="YYYY-MM for monthly settlements")
    hours = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    amount = models.IntegerField(default=0)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    online_snapshot_total_minutes = models.IntegerField(null=True, blank=True)
    note = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'partner_settlements'
        verbose_name = 'Partner Settlement'
        verbose_name_plural = 'Partner Settlements'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['package', 'online_snapshot_total_minutes'], name='settlement_pkg_snapshot_idx'),
        ]

    def __str__(self):
        return f"Settlement {self.pk} {self.mode} {self.amount}"


class SettlementApproval(models.Model):
    """Approver emails are stored normalized (lower-case)."""
    settlement = models.OneToOneField(PartnerSettlement, on_delete=models.CASCADE, related_name='approval')
    manager_approved_by = models.JSONField(default=list, blank=True)
    finance_approved_by = models.JSONField(default=list, blank=True)
    manager_rejected_by = models.CharField(max_length=254, blank=True, null=True)
    manager_rejected_at = models.DateTimeField(null=True, blank=True)
    manager_reject_reason = models.TextField(blank=True, null=True)
    finance_rejected_by = models.CharField(max_length=254, blank=True, null=True)
    finance_rejected_at = models.DateTimeField(null=True, blank=True)
    finance_reject_reason = models.TextField(blank=True, null=True)
    exported_at = models.DateTimeField(null=True, blank=True)
    exported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'partner_settlement_approvals'
        verbose_name = 'Settlement Approval'
        verbose_name_plural = 'Settlement Approvals'

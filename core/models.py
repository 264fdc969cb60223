"""
Core models: runtime key/value settings and the audit trail.
"""
from django.db import models


class AppSetting(models.Model):
    """
    Admin-editable runtime setting (approver email lists, partner rates,
    conflict-audit cache). Values are plain text; JSON where noted by the caller.
    """
    key = models.CharField(max_length=128, unique=True)
    value = models.TextField(blank=True, default='')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'app_settings'
        verbose_name = 'App Setting'
        verbose_name_plural = 'App Settings'
        ordering = ['key']

    def __str__(self):
        return self.key


class AuditLog(models.Model):
    """Who did what to which entity. Actor is denormalized so rows survive user deletion."""
    actor_email = models.CharField(max_length=255, db_index=True)
    actor_name = models.CharField(max_length=255, blank=True, null=True)
    actor_role = models.CharField(max_length=32, blank=True, null=True)
    module = models.CharField(max_length=64, db_index=True)
    action = models.CharField(max_length=64)
    entity_type = models.CharField(max_length=64, blank=True, null=True)
    entity_id = models.CharField(max_length=64, blank=True, null=True)
    meta = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'audit_logs'
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['module', 'action'], name='audit_module_action_idx'),
            models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
        ]

    def __str__(self):
        return f"{self.module}.{self.action} by {self.actor_email}"

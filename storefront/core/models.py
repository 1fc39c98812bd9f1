from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model: phone-based login with an application role"""
    ROLE_ADMIN = 'ADMIN'
    ROLE_CLIENT = 'CLIENT'
    ROLE_GRUZCHIK = 'GRUZCHIK'
    ROLE_PROVIDER = 'PROVIDER'
    ROLE_EXPORT_MANAGER = 'EXPORT_MANAGER'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_CLIENT, 'Client'),
        (ROLE_GRUZCHIK, 'Gruzchik'),
        (ROLE_PROVIDER, 'Provider'),
        (ROLE_EXPORT_MANAGER, 'Export manager'),
    ]

    phone = models.CharField(max_length=20, unique=True, blank=True, null=True)
    name = models.CharField(max_length=200, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CLIENT, db_index=True)
    label = models.CharField(max_length=100, blank=True, null=True)  # admin-assigned client label
    provider = models.ForeignKey('catalog.Provider', on_delete=models.SET_NULL, null=True, blank=True, related_name='users')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name or self.phone or self.username

    @property
    def is_admin_role(self):
        return self.role == self.ROLE_ADMIN

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for back-office operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('draft_approve', 'Draft Approved'),
        ('draft_convert', 'Draft Converted'),
        ('order_create', 'Order Created'),
        ('order_update', 'Order Updated'),
        ('replacement_create', 'Replacement Proposed'),
        ('purchase_export', 'Purchase Exported'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., category name, order number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_9c2e1f_idx'),
            models.Index(fields=['action'], name='audit_logs_action_5d8b3a_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_7a1f4c_idx'),
        ]

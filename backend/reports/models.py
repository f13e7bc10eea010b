from django.conf import settings
from django.db import models


class SavedReport(models.Model):
    """Named report configuration (grouping + filters) a user can re-run"""
    GROUP_BY_CHOICES = [
        ('day', 'Day'),
        ('week', 'Week'),
        ('month', 'Month'),
    ]

    business = models.ForeignKey('workspaces.Business', on_delete=models.CASCADE, related_name='saved_reports')
    name = models.CharField(max_length=200)
    group_by = models.CharField(max_length=10, choices=GROUP_BY_CHOICES, default='day')
    filters_json = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='saved_reports')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'saved_reports'
        ordering = ['-created_at']

from django.contrib import admin

from .models import SavedReport


@admin.register(SavedReport)
class SavedReportAdmin(admin.ModelAdmin):
    list_display = ['name', 'business', 'group_by', 'created_by', 'created_at']
    list_filter = ['group_by']
    search_fields = ['name', 'business__name']

from django.contrib import admin
from .models import Business, BusinessMember, Invitation, SuperAdmin


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'created_by', 'status', 'plan_type', 'is_lifetime_deal', 'manual_payment_status', 'created_at']
    list_filter = ['status', 'plan_type', 'is_lifetime_deal', 'manual_payment_status']
    search_fields = ['name', 'slug', 'created_by__email']
    ordering = ['-created_at']


@admin.register(BusinessMember)
class BusinessMemberAdmin(admin.ModelAdmin):
    list_display = ['business', 'user', 'role', 'status', 'created_at']
    list_filter = ['role', 'status']
    search_fields = ['business__name', 'user__email']


@admin.register(Invitation)
class InvitationAdmin(admin.ModelAdmin):
    list_display = ['email', 'business', 'role', 'expires_at', 'accepted_at']
    list_filter = ['role']
    search_fields = ['email', 'business__name']


@admin.register(SuperAdmin)
class SuperAdminAdmin(admin.ModelAdmin):
    list_display = ['user', 'created_at']
    search_fields = ['user__email']

from django.contrib import admin
from core.models import Organization, Membership, StoreSettings

@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name","slug","ncc","created_at")
    search_fields = ("name","slug","ncc")

@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ("organization","user","role","created_at")
    search_fields = ("organization__name","organization__slug","user__email")

@admin.register(StoreSettings)
class StoreSettingsAdmin(admin.ModelAdmin):
    list_display = ("organization","currency","tax_rate","loyalty_enabled","stamp_duty_amount")

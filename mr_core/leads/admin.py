from django.contrib import admin

from mr_core.leads.models import Lead, LeadStatusHistory


class LeadStatusHistoryInline(admin.TabularInline):
    model = LeadStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "status", "changed_by", "comment", "changed_at")


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ("patient_name", "doctor", "city_name", "status", "assigned_equipment", "submission_date")
    list_filter = ("status", "city")
    search_fields = ("patient_name", "parent_name", "parent_email", "phone")
    ordering = ("-submission_date",)
    # lifecycle + equipment go through LeadService (history, inventory, settlement)
    readonly_fields = ("status", "assigned_equipment", "city")
    inlines = [LeadStatusHistoryInline]

    def has_delete_permission(self, request, obj=None):
        return False

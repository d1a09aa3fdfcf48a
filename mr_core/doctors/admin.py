from django.contrib import admin

from mr_core.doctors.models import CommissionHistory, Doctor


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "clinic_name", "city", "commission_rate", "status", "created_at")
    list_filter = ("status", "city")
    search_fields = ("user__username", "user__email", "clinic_name", "phone")
    ordering = ("-created_at",)
    # rate changes must go through DoctorService so history is written
    readonly_fields = ("commission_rate",)


@admin.register(CommissionHistory)
class CommissionHistoryAdmin(admin.ModelAdmin):
    list_display = ("doctor", "old_rate", "new_rate", "effective_date", "changed_by", "reason")
    list_filter = ("effective_date",)
    ordering = ("-effective_date",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

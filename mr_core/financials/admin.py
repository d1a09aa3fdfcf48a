from django.contrib import admin

from mr_core.financials.models import Financial, Rental


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    list_display = ("lead", "equipment", "days_used", "status", "start_datetime", "end_datetime")
    list_filter = ("status",)


@admin.register(Financial)
class FinancialAdmin(admin.ModelAdmin):
    list_display = (
        "lead",
        "rental_amount",
        "gst_amount",
        "commission_rate_applied",
        "doctor_commission",
        "net_profit",
        "payment_status",
        "created_at",
    )
    list_filter = ("payment_status",)
    search_fields = ("lead__patient_name",)
    readonly_fields = ("commission_rate_applied", "doctor_commission", "net_profit")

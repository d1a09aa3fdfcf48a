from django.contrib import admin

from mr_core.payouts.models import Payout


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = ("doctor", "amount", "period_start", "period_end", "status", "payment_date", "processed_by")
    list_filter = ("status", "payment_method")
    search_fields = ("doctor__user__username", "transaction_id")
    ordering = ("-created_at",)
    readonly_fields = ("processed_by",)

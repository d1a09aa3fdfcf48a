from django.contrib import admin

from mr_core.equipment.models import Equipment, EquipmentRentalPrice, EquipmentReservation


@admin.register(Equipment)
class EquipmentAdmin(admin.ModelAdmin):
    list_display = ("name", "model_number", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "model_number")
    ordering = ("name",)


@admin.register(EquipmentRentalPrice)
class EquipmentRentalPriceAdmin(admin.ModelAdmin):
    list_display = ("equipment", "city", "price_per_day", "quantity", "quantity_in_use", "updated_at")
    list_filter = ("city",)
    search_fields = ("equipment__name", "city__name")
    # counter is owned by InventoryService
    readonly_fields = ("quantity_in_use",)


@admin.register(EquipmentReservation)
class EquipmentReservationAdmin(admin.ModelAdmin):
    list_display = ("lead", "pricing", "reserved_at", "released_at", "release_reason")
    list_filter = ("release_reason",)
    ordering = ("-reserved_at",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

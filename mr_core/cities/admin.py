from django.contrib import admin

from mr_core.cities.models import City


@admin.register(City)
class CityAdmin(admin.ModelAdmin):
    list_display = ("name", "state", "is_active", "created_at")
    list_filter = ("is_active", "state")
    search_fields = ("name", "state")
    ordering = ("name",)

# mr_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from mr_core.cities.api.views import CityViewSet
from mr_core.doctors.api.views import DoctorRegisterView, DoctorViewSet
from mr_core.equipment.api.views import EquipmentViewSet, InventoryStatsView, PricingViewSet
from mr_core.financials.api.views import FinancialViewSet
from mr_core.iam.api.auth import LoginView, RefreshView
from mr_core.iam.api.me import MeView
from mr_core.leads.api.views import LeadViewSet
from mr_core.payouts.api.views import PayoutViewSet

router = DefaultRouter()

router.register(r"cities", CityViewSet, basename="cities")
router.register(r"doctors", DoctorViewSet, basename="doctors")
router.register(r"equipment", EquipmentViewSet, basename="equipment")
router.register(r"pricing", PricingViewSet, basename="pricing")
router.register(r"leads", LeadViewSet, basename="leads")
router.register(r"financials", FinancialViewSet, basename="financials")
router.register(r"payouts", PayoutViewSet, basename="payouts")

urlpatterns = [
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/register/", DoctorRegisterView.as_view(), name="doctor-register"),
    path("me/", MeView.as_view(), name="me"),
    path("inventory/stats/", InventoryStatsView.as_view(), name="inventory-stats"),

    # Router URLs last (so explicit paths win if ever overlapping)
    *router.urls,
]

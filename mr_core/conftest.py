# mr_core/conftest.py
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from mr_core.cities.models import City
from mr_core.common.actor import Actor
from mr_core.common.permissions import ROLE_DOCTOR, ROLE_SUB_ADMIN, ROLE_SUPER_ADMIN
from mr_core.doctors.models import Doctor
from mr_core.equipment.models import Equipment, EquipmentRentalPrice


def _user(username, role):
    User = get_user_model()
    user = User.objects.create_user(username=username, password="testpass", is_active=True)
    group, _ = Group.objects.get_or_create(name=role)
    user.groups.add(group)
    return user


@pytest.fixture
def mumbai(db):
    return City.objects.create(name="Mumbai", state="Maharashtra")


@pytest.fixture
def pune(db):
    return City.objects.create(name="Pune", state="Maharashtra")


@pytest.fixture
def ventilator(db):
    return Equipment.objects.create(name="Infant Ventilator", model_number="IV-200")


@pytest.fixture
def phototherapy(db):
    return Equipment.objects.create(name="Phototherapy Unit", model_number="PT-10")


@pytest.fixture
def ventilator_mumbai(ventilator, mumbai):
    """300.00/day, a single unit."""
    return EquipmentRentalPrice.objects.create(
        equipment=ventilator,
        city=mumbai,
        price_per_day=Decimal("300.00"),
        quantity=1,
    )


@pytest.fixture
def phototherapy_mumbai(phototherapy, mumbai):
    return EquipmentRentalPrice.objects.create(
        equipment=phototherapy,
        city=mumbai,
        price_per_day=Decimal("150.00"),
        quantity=2,
    )


@pytest.fixture
def super_admin_user(db):
    return _user("root", ROLE_SUPER_ADMIN)


@pytest.fixture
def sub_admin_user(db):
    return _user("ops", ROLE_SUB_ADMIN)


@pytest.fixture
def doctor(db, mumbai):
    """Doctor at 15% commission."""
    user = _user("dr_mehta", ROLE_DOCTOR)
    return Doctor.objects.create(user=user, clinic_name="Mehta Clinic", city=mumbai, commission_rate=Decimal("15.00"))


@pytest.fixture
def other_doctor(db):
    user = _user("dr_rao", ROLE_DOCTOR)
    return Doctor.objects.create(user=user, clinic_name="Rao Clinic", commission_rate=Decimal("10.00"))


@pytest.fixture
def super_admin(super_admin_user):
    return Actor(user_id=super_admin_user.pk, role=ROLE_SUPER_ADMIN)


@pytest.fixture
def sub_admin(sub_admin_user):
    return Actor(user_id=sub_admin_user.pk, role=ROLE_SUB_ADMIN)


@pytest.fixture
def doctor_actor(doctor):
    return Actor(user_id=doctor.user_id, role=ROLE_DOCTOR, doctor_id=doctor.id)


@pytest.fixture
def other_doctor_actor(other_doctor):
    return Actor(user_id=other_doctor.user_id, role=ROLE_DOCTOR, doctor_id=other_doctor.id)


@pytest.fixture
def make_lead(doctor_actor):
    from mr_core.leads.services import LeadService

    def _make(city="Mumbai", actor=None, patient_name="Baby Sharma"):
        return LeadService.create_lead(
            actor=actor or doctor_actor,
            patient_name=patient_name,
            parent_name="Priya Sharma",
            parent_email="priya@example.com",
            phone="+919800000000",
            location="Andheri West",
            city=city,
        )

    return _make


@pytest.fixture
def admin_client(sub_admin_user):
    c = APIClient()
    c.force_authenticate(user=sub_admin_user)
    return c


@pytest.fixture
def super_client(super_admin_user):
    c = APIClient()
    c.force_authenticate(user=super_admin_user)
    return c


@pytest.fixture
def doctor_client(doctor):
    c = APIClient()
    c.force_authenticate(user=doctor.user)
    return c

# mr_core/equipment/tests/test_inventory_reservation.py
import random
import threading

import pytest
from django.core.management import call_command
from django.db import connection, transaction

from mr_core.cities.services import CityService
from mr_core.common.api.exceptions import AuthorizationError, CapacityError, NotAvailableError, NotFoundError
from mr_core.equipment.models import EquipmentRentalPrice, EquipmentReservation, EquipmentStatus, ReleaseReason
from mr_core.equipment.services import InventoryService
from mr_core.leads.services import LeadService

pytestmark = pytest.mark.django_db


def _in_use(pricing):
    pricing.refresh_from_db()
    return pricing.quantity_in_use


def _open_count(pricing):
    return EquipmentReservation.objects.filter(pricing=pricing, released_at__isnull=True).count()


def test_assign_reserves_one_unit(make_lead, ventilator, ventilator_mumbai, sub_admin):
    lead = make_lead()

    LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)

    assert _in_use(ventilator_mumbai) == 1
    lead.refresh_from_db()
    assert lead.assigned_equipment_id == ventilator.id

    reservation = EquipmentReservation.objects.get(lead=lead)
    assert reservation.is_open
    assert reservation.pricing_id == ventilator_mumbai.id
    assert reservation.reserved_by_id == sub_admin.user_id

    ventilator.refresh_from_db()
    assert ventilator.status == EquipmentStatus.IN_USE


def test_last_unit_goes_to_first_caller(make_lead, ventilator, ventilator_mumbai, sub_admin):
    first = make_lead(patient_name="Baby A")
    second = make_lead(patient_name="Baby B")

    LeadService.assign_equipment(lead_id=first.id, equipment_id=ventilator.id, actor=sub_admin)
    with pytest.raises(CapacityError):
        LeadService.assign_equipment(lead_id=second.id, equipment_id=ventilator.id, actor=sub_admin)

    assert _in_use(ventilator_mumbai) == 1
    second.refresh_from_db()
    assert second.assigned_equipment_id is None
    assert not EquipmentReservation.objects.filter(lead=second).exists()


def test_same_equipment_again_is_a_no_op(make_lead, ventilator, ventilator_mumbai, sub_admin):
    lead = make_lead()

    LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)
    LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)

    assert _in_use(ventilator_mumbai) == 1
    assert EquipmentReservation.objects.filter(lead=lead).count() == 1


def test_reassignment_moves_the_unit(
    make_lead, ventilator, phototherapy, ventilator_mumbai, phototherapy_mumbai, sub_admin
):
    lead = make_lead()

    LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)
    LeadService.assign_equipment(lead_id=lead.id, equipment_id=phototherapy.id, actor=sub_admin)

    assert _in_use(ventilator_mumbai) == 0
    assert _in_use(phototherapy_mumbai) == 1

    old = EquipmentReservation.objects.get(lead=lead, pricing=ventilator_mumbai)
    assert old.release_reason == ReleaseReason.REASSIGNED
    assert old.released_at is not None
    assert EquipmentReservation.objects.get(lead=lead, released_at__isnull=True).pricing_id == phototherapy_mumbai.id


def test_failed_reassignment_keeps_previous_unit(
    make_lead, ventilator, phototherapy, ventilator_mumbai, phototherapy_mumbai, sub_admin
):
    holder = make_lead(patient_name="Holder")
    lead = make_lead(patient_name="Mover")

    LeadService.assign_equipment(lead_id=holder.id, equipment_id=ventilator.id, actor=sub_admin)
    LeadService.assign_equipment(lead_id=lead.id, equipment_id=phototherapy.id, actor=sub_admin)

    with pytest.raises(CapacityError):
        LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)

    lead.refresh_from_db()
    assert lead.assigned_equipment_id == phototherapy.id
    assert _in_use(phototherapy_mumbai) == 1
    assert _in_use(ventilator_mumbai) == 1


def test_unknown_city_is_not_found(make_lead, ventilator, ventilator_mumbai, sub_admin):
    lead = make_lead(city="Atlantis")
    assert lead.city_id is None

    with pytest.raises(NotFoundError):
        LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)
    assert _in_use(ventilator_mumbai) == 0


def test_equipment_without_pricing_in_city_is_not_available(make_lead, pune, ventilator, ventilator_mumbai, sub_admin):
    lead = make_lead(city="  pune ")
    assert lead.city_id == pune.id

    with pytest.raises(NotAvailableError):
        LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)


def test_unassign_releases_the_unit(make_lead, ventilator, ventilator_mumbai, sub_admin):
    lead = make_lead()
    LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)

    LeadService.assign_equipment(lead_id=lead.id, equipment_id=None, actor=sub_admin)

    lead.refresh_from_db()
    assert lead.assigned_equipment_id is None
    assert _in_use(ventilator_mumbai) == 0
    assert EquipmentReservation.objects.get(lead=lead).release_reason == ReleaseReason.UNASSIGNED


def test_doctor_cannot_assign(make_lead, ventilator, ventilator_mumbai, doctor_actor):
    lead = make_lead()
    with pytest.raises(AuthorizationError):
        LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=doctor_actor)


def test_release_without_open_reservation_leaves_counter(make_lead, ventilator, ventilator_mumbai, sub_admin):
    holder = make_lead(patient_name="Holder")
    idle = make_lead(patient_name="Idle")
    LeadService.assign_equipment(lead_id=holder.id, equipment_id=ventilator.id, actor=sub_admin)

    assert InventoryService.release_for_lead(lead=idle, reason=ReleaseReason.CANCELLED) is None
    assert _in_use(ventilator_mumbai) == 1

    InventoryService.release_for_lead(lead=holder, reason=ReleaseReason.CANCELLED)
    InventoryService.release_for_lead(lead=holder, reason=ReleaseReason.CANCELLED)
    assert _in_use(ventilator_mumbai) == 0


def test_random_interleaving_keeps_counter_equal_to_open_reservations(
    make_lead, ventilator, phototherapy, ventilator_mumbai, phototherapy_mumbai, sub_admin
):
    leads = [make_lead(patient_name=f"Baby {i}") for i in range(6)]
    choices = [ventilator.id, phototherapy.id, None]
    rng = random.Random(20240611)

    for _ in range(80):
        lead = rng.choice(leads)
        equipment_id = rng.choice(choices)
        try:
            LeadService.assign_equipment(lead_id=lead.id, equipment_id=equipment_id, actor=sub_admin)
        except CapacityError:
            pass

        for pricing in (ventilator_mumbai, phototherapy_mumbai):
            in_use = _in_use(pricing)
            assert in_use == _open_count(pricing)
            assert 0 <= in_use <= pricing.quantity

    for lead in leads:
        lead.refresh_from_db()
        open_rows = EquipmentReservation.objects.filter(lead=lead, released_at__isnull=True)
        if lead.assigned_equipment_id is None:
            assert not open_rows.exists()
        else:
            assert open_rows.get().pricing.equipment_id == lead.assigned_equipment_id


def test_reconcile_fixes_drifted_counter(make_lead, ventilator, ventilator_mumbai, sub_admin):
    lead = make_lead()
    LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)
    EquipmentRentalPrice.objects.filter(id=ventilator_mumbai.id).update(quantity_in_use=0)

    drift = InventoryService.reconcile()

    assert drift == [{"pricing_id": ventilator_mumbai.id, "recorded": 0, "expected": 1}]
    assert _in_use(ventilator_mumbai) == 1


def test_reconcile_command_reports_consistent_inventory(ventilator_mumbai, capsys):
    call_command("reconcile_inventory")
    assert "Inventory consistent." in capsys.readouterr().out


def test_stale_read_of_last_unit_cannot_overbook(make_lead, ventilator, ventilator_mumbai, sub_admin):
    first = make_lead(patient_name="Baby A")
    make_lead(patient_name="Baby B")

    with transaction.atomic():
        # second caller read the row while the unit was still free
        seen = EquipmentRentalPrice.objects.get(id=ventilator_mumbai.id)
        assert seen.available == 1

        LeadService.assign_equipment(lead_id=first.id, equipment_id=ventilator.id, actor=sub_admin)

        assert seen.available == 1
        with pytest.raises(CapacityError):
            InventoryService._reserve_unit(seen.id)

    assert _in_use(ventilator_mumbai) == 1
    assert _open_count(ventilator_mumbai) == 1


def test_assignment_after_city_is_added(make_lead, ventilator, sub_admin):
    lead = make_lead(city="Nagpur")
    assert lead.city_id is None

    nagpur = CityService.create_city(name="nagpur", state="Maharashtra")
    pricing = EquipmentRentalPrice.objects.create(equipment=ventilator, city=nagpur, price_per_day=200, quantity=1)

    LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)

    lead.refresh_from_db()
    assert lead.city_id == nagpur.id
    assert lead.assigned_equipment_id == ventilator.id
    assert _in_use(pricing) == 1


@pytest.mark.skipif(connection.vendor != "postgresql", reason="row locks across connections")
@pytest.mark.django_db(transaction=True)
def test_concurrent_callers_share_one_last_unit(make_lead, ventilator, ventilator_mumbai, sub_admin):
    leads = [make_lead(patient_name=f"Baby {i}") for i in range(4)]
    barrier = threading.Barrier(len(leads))
    outcomes = []

    def _assign(lead):
        try:
            barrier.wait()
            LeadService.assign_equipment(lead_id=lead.id, equipment_id=ventilator.id, actor=sub_admin)
            outcomes.append("assigned")
        except CapacityError:
            outcomes.append("capacity")
        finally:
            connection.close()

    threads = [threading.Thread(target=_assign, args=(lead,)) for lead in leads]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["assigned", "capacity", "capacity", "capacity"]
    assert _in_use(ventilator_mumbai) == 1
    assert _open_count(ventilator_mumbai) == 1

# mr_core/doctors/services.py
from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from mr_core.cities.models import City
from mr_core.cities.selectors import find_city_by_name
from mr_core.common.actor import Actor, require_admin, require_super_admin
from mr_core.common.api.exceptions import ConflictError, NotFoundError
from mr_core.common.money import to_decimal
from mr_core.common.permissions import ROLE_DOCTOR
from mr_core.doctors.models import CommissionHistory, Doctor, DoctorStatus

logger = logging.getLogger(__name__)

RATE_MIN = Decimal("0.00")
RATE_MAX = Decimal("100.00")

_UNSET = object()


def _validate_rate(value) -> Decimal:
    rate = to_decimal(value, "commission_rate").quantize(Decimal("0.01"))
    if rate < RATE_MIN or rate > RATE_MAX:
        raise ValidationError({"commission_rate": "Commission rate must be between 0 and 100."})
    return rate


class DoctorService:
    @staticmethod
    @transaction.atomic
    def create_doctor(
        *,
        actor: Actor,
        user,
        commission_rate=None,
        city_id: UUID | None = None,
        clinic_name: str = "",
        phone: str = "",
        status: str = DoctorStatus.ACTIVE,
    ) -> Doctor:
        """
        Attach a Doctor profile to an existing auth user and put the user in the DOCTOR group.
        """
        require_admin(actor)

        if Doctor.objects.filter(user=user).exists():
            raise ConflictError("User already has a doctor profile.")

        rate = _validate_rate(
            commission_rate if commission_rate is not None else settings.MR_DEFAULT_COMMISSION_RATE
        )

        doctor = Doctor.objects.create(
            user=user,
            commission_rate=rate,
            city_id=city_id,
            clinic_name=clinic_name or "",
            phone=phone or "",
            status=status,
        )

        group, _ = Group.objects.get_or_create(name=ROLE_DOCTOR)
        user.groups.add(group)

        logger.info("Doctor %s created for user %s at %s%%", doctor.id, user.pk, rate)
        return doctor

    @staticmethod
    @transaction.atomic
    def update_commission_rate(
        *,
        doctor_id: UUID,
        new_rate,
        actor: Actor,
        reason: str = "",
    ) -> Doctor:
        """
        Changes the doctor's CURRENT rate. Writes exactly one CommissionHistory row
        per distinct change; same-rate calls are no-ops. Settled Financial rows keep
        their commission_rate_applied snapshot and are never recalculated.
        """
        require_super_admin(actor)

        rate = _validate_rate(new_rate)

        try:
            doctor = Doctor.objects.select_for_update().get(id=doctor_id)
        except Doctor.DoesNotExist:
            raise NotFoundError("Doctor not found.")

        old_rate = doctor.commission_rate
        if rate == old_rate:
            return doctor

        CommissionHistory.objects.create(
            doctor=doctor,
            old_rate=old_rate,
            new_rate=rate,
            effective_date=timezone.now(),
            changed_by_id=actor.user_id,
            reason=reason or f"Commission rate updated from {old_rate}% to {rate}%",
        )

        doctor.commission_rate = rate
        doctor.save(update_fields=["commission_rate", "updated_at"])

        logger.info("Doctor %s commission rate %s%% -> %s%% by user %s", doctor.id, old_rate, rate, actor.user_id)
        return doctor

    @staticmethod
    @transaction.atomic
    def register_doctor(
        *,
        username: str,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        phone: str = "",
        city: str = "",
        clinic_name: str = "",
    ) -> Doctor:
        """
        Public sign-up. Creates the auth user and a PENDING Doctor profile at 0%
        commission in one transaction; an admin activates it and sets the rate.
        """
        User = get_user_model()
        username = (username or "").strip()
        email = (email or "").strip().lower()

        missing = [name for name, value in (("username", username), ("email", email), ("password", password)) if not value]
        if missing:
            raise ValidationError({name: "This field is required." for name in missing})

        if User.objects.filter(username__iexact=username).exists():
            raise ConflictError("Username is already taken.")
        if User.objects.filter(email__iexact=email).exists():
            raise ConflictError("A user with this email already exists.")

        try:
            validate_password(password, user=User(username=username, email=email))
        except DjangoValidationError as exc:
            raise ValidationError({"password": list(exc.messages)})

        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            first_name=(first_name or "").strip(),
            last_name=(last_name or "").strip(),
        )
        group, _ = Group.objects.get_or_create(name=ROLE_DOCTOR)
        user.groups.add(group)

        doctor = Doctor.objects.create(
            user=user,
            commission_rate=RATE_MIN,
            city=find_city_by_name(city),
            clinic_name=(clinic_name or "").strip(),
            phone=(phone or "").strip(),
            status=DoctorStatus.PENDING,
        )

        logger.info("Doctor %s registered (user %s), awaiting approval", doctor.id, user.pk)
        return doctor

    @staticmethod
    @transaction.atomic
    def update_doctor(
        *,
        actor: Actor,
        doctor_id: UUID,
        clinic_name: str | None = None,
        phone: str | None = None,
        city_id=_UNSET,
        notes: str | None = None,
        status: str | None = None,
        commission_rate=None,
        reason: str = "",
    ) -> Doctor:
        """
        Profile edit and approval (PENDING -> ACTIVE). A rate change goes through
        update_commission_rate so it is recorded in the history.
        """
        require_super_admin(actor)

        try:
            doctor = Doctor.objects.select_for_update().get(id=doctor_id)
        except Doctor.DoesNotExist:
            raise NotFoundError("Doctor not found.")

        update_fields = []
        if clinic_name is not None:
            doctor.clinic_name = clinic_name.strip()
            update_fields.append("clinic_name")
        if phone is not None:
            doctor.phone = phone.strip()
            update_fields.append("phone")
        if notes is not None:
            doctor.notes = notes
            update_fields.append("notes")
        if city_id is not _UNSET:
            if city_id is not None and not City.objects.filter(id=city_id).exists():
                raise NotFoundError("City not found.")
            doctor.city_id = city_id
            update_fields.append("city")
        if status is not None and status != doctor.status:
            if status not in DoctorStatus.values:
                raise ValidationError({"status": f"Unknown doctor status '{status}'."})
            logger.info("Doctor %s status %s -> %s by user %s", doctor.id, doctor.status, status, actor.user_id)
            doctor.status = status
            update_fields.append("status")

        if update_fields:
            doctor.save(update_fields=[*update_fields, "updated_at"])

        if commission_rate is not None:
            doctor = DoctorService.update_commission_rate(
                doctor_id=doctor.id,
                new_rate=commission_rate,
                actor=actor,
                reason=reason,
            )
        return doctor

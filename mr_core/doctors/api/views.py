# mr_core/doctors/api/views.py
from __future__ import annotations

from django.contrib.auth import get_user_model
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from mr_core.common.api.exceptions import NotFoundError
from mr_core.common.api.pagination import paginate
from mr_core.common.api.params import path_uuid
from mr_core.common.permissions import DoctorPermission
from mr_core.doctors.api.serializers import (
    CommissionHistorySerializer,
    CommissionRateSerializer,
    DoctorCreateSerializer,
    DoctorRegisterSerializer,
    DoctorSerializer,
    DoctorStatsSerializer,
    DoctorUpdateSerializer,
)
from mr_core.doctors.models import Doctor
from mr_core.doctors.selectors import commission_history as history_for_doctor
from mr_core.doctors.selectors import doctor_stats, doctors_qs, get_doctor
from mr_core.doctors.services import DoctorService
from mr_core.iam.actor import actor_from_request


class DoctorViewSet(viewsets.GenericViewSet):
    serializer_class = DoctorSerializer
    queryset = Doctor.objects.none()
    permission_classes = [DoctorPermission]

    @extend_schema(tags=["Doctors"], responses={200: DoctorSerializer(many=True)})
    def list(self, request):
        qs = doctors_qs()
        status_q = request.query_params.get("status")
        if status_q:
            qs = qs.filter(status=status_q)
        return paginate(request, qs, DoctorSerializer)

    @extend_schema(tags=["Doctors"], responses={200: DoctorSerializer})
    def retrieve(self, request, pk=None):
        doctor = get_doctor(doctor_id=path_uuid(pk))
        data = DoctorSerializer(doctor).data
        data["stats"] = DoctorStatsSerializer(doctor_stats(doctor_id=doctor.id)).data
        return Response(data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Doctors"], request=DoctorCreateSerializer, responses={201: DoctorSerializer})
    def create(self, request):
        actor = actor_from_request(request)

        ser = DoctorCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        user = get_user_model().objects.filter(pk=data["user"]).first()
        if user is None:
            raise NotFoundError("User not found.")

        doctor = DoctorService.create_doctor(
            actor=actor,
            user=user,
            commission_rate=data.get("commission_rate"),
            city_id=data.get("city"),
            clinic_name=data["clinic_name"],
            phone=data["phone"],
            status=data["status"],
        )
        return Response(DoctorSerializer(get_doctor(doctor_id=doctor.id)).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Doctors"], request=DoctorUpdateSerializer, responses={200: DoctorSerializer})
    def partial_update(self, request, pk=None):
        actor = actor_from_request(request)

        ser = DoctorUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        kwargs = {key: data[key] for key in ("clinic_name", "phone", "notes", "status", "commission_rate") if key in data}
        if "city" in data:
            kwargs["city_id"] = data["city"]

        doctor = DoctorService.update_doctor(
            actor=actor,
            doctor_id=path_uuid(pk),
            reason=data.get("reason", ""),
            **kwargs,
        )
        return Response(DoctorSerializer(get_doctor(doctor_id=doctor.id)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Doctors"], request=CommissionRateSerializer, responses={200: DoctorSerializer})
    @action(detail=True, methods=["post"], url_path="commission_rate")
    def commission_rate(self, request, pk=None):
        actor = actor_from_request(request)

        ser = CommissionRateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        doctor = DoctorService.update_commission_rate(
            doctor_id=path_uuid(pk),
            new_rate=ser.validated_data["commission_rate"],
            actor=actor,
            reason=ser.validated_data["reason"],
        )
        return Response(DoctorSerializer(get_doctor(doctor_id=doctor.id)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Doctors"], responses={200: CommissionHistorySerializer(many=True)})
    @action(detail=True, methods=["get"], url_path="commission_history")
    def commission_history(self, request, pk=None):
        doctor = get_doctor(doctor_id=path_uuid(pk))
        return paginate(request, history_for_doctor(doctor_id=doctor.id), CommissionHistorySerializer)


class DoctorRegisterView(APIView):
    """
    Public doctor sign-up; the profile stays PENDING until an admin approves it.
    """
    permission_classes = [AllowAny]

    @extend_schema(tags=["Doctors"], request=DoctorRegisterSerializer, responses={201: DoctorSerializer})
    def post(self, request):
        ser = DoctorRegisterSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        doctor = DoctorService.register_doctor(**ser.validated_data)
        return Response(DoctorSerializer(get_doctor(doctor_id=doctor.id)).data, status=status.HTTP_201_CREATED)

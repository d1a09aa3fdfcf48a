# mr_core/payouts/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from mr_core.common.api.pagination import paginate
from mr_core.common.api.params import apply_filters, path_uuid, uuid_or_none
from mr_core.common.permissions import PayoutPermission
from mr_core.doctors.selectors import get_doctor
from mr_core.iam.actor import actor_from_request
from mr_core.payouts.api.serializers import (
    OutstandingQuerySerializer,
    PayoutCreateSerializer,
    PayoutMarkPaidSerializer,
    PayoutSerializer,
    PayoutUpdateSerializer,
)
from mr_core.payouts.filters import PayoutFilter
from mr_core.payouts.models import Payout
from mr_core.payouts.selectors import get_payout_for_actor, outstanding_commission, payout_totals, payouts_visible_to
from mr_core.payouts.services import PayoutService


class PayoutViewSet(viewsets.GenericViewSet):
    """
    Doctor payouts:
    - list/retrieve (doctors: own only), list carries totals
    - create / partial_update (cancel, metadata) / mark_paid (admin)
    - outstanding: commission not yet covered by payouts
    """
    serializer_class = PayoutSerializer
    queryset = Payout.objects.none()
    permission_classes = [PayoutPermission]

    @extend_schema(
        tags=["Payouts"],
        responses={200: PayoutSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="doctor", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        actor = actor_from_request(request)
        qs = payouts_visible_to(
            actor=actor,
            doctor_id=uuid_or_none(request.query_params.get("doctor"), "doctor"),
        )
        qs = apply_filters(PayoutFilter, request, qs)
        return paginate(request, qs, PayoutSerializer, extra={"totals": payout_totals(qs)})

    @extend_schema(tags=["Payouts"], responses={200: PayoutSerializer})
    def retrieve(self, request, pk=None):
        actor = actor_from_request(request)
        payout = get_payout_for_actor(payout_id=path_uuid(pk), actor=actor)
        return Response(PayoutSerializer(payout).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Payouts"], request=PayoutCreateSerializer, responses={201: PayoutSerializer})
    def create(self, request):
        actor = actor_from_request(request)

        ser = PayoutCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        payout = PayoutService.create_payout(
            actor=actor,
            doctor_id=data["doctor"],
            amount=data.get("amount"),
            period_start=data["period_start"],
            period_end=data["period_end"],
            notes=data["notes"],
        )
        return Response(PayoutSerializer(payout).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Payouts"], request=PayoutUpdateSerializer, responses={200: PayoutSerializer})
    def partial_update(self, request, pk=None):
        actor = actor_from_request(request)

        ser = PayoutUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        payout = PayoutService.update_payout(actor=actor, payout_id=path_uuid(pk), **ser.validated_data)
        return Response(PayoutSerializer(payout).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Payouts"], request=PayoutMarkPaidSerializer, responses={200: PayoutSerializer})
    @action(detail=True, methods=["post"], url_path="mark_paid")
    def mark_paid(self, request, pk=None):
        actor = actor_from_request(request)

        ser = PayoutMarkPaidSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        payout = PayoutService.mark_paid(actor=actor, payout_id=path_uuid(pk), **ser.validated_data)
        return Response(PayoutSerializer(payout).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Payouts"],
        parameters=[OutstandingQuerySerializer],
        responses={200: OpenApiTypes.OBJECT},
    )
    @action(detail=False, methods=["get"], url_path="outstanding")
    def outstanding(self, request):
        ser = OutstandingQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        doctor = get_doctor(doctor_id=data["doctor"])
        amount = outstanding_commission(
            doctor_id=doctor.id,
            period_start=data.get("period_start"),
            period_end=data.get("period_end"),
        )
        return Response(
            {
                "doctor": str(doctor.id),
                "period_start": data.get("period_start"),
                "period_end": data.get("period_end"),
                "outstanding": amount,
            },
            status=status.HTTP_200_OK,
        )

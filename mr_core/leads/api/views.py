# mr_core/leads/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from mr_core.common.api.pagination import paginate
from mr_core.common.api.params import apply_filters, path_uuid
from mr_core.common.permissions import LeadPermission
from mr_core.iam.actor import actor_from_request
from mr_core.leads.api.serializers import (
    AssignEquipmentSerializer,
    LeadCreateSerializer,
    LeadDetailSerializer,
    LeadSerializer,
    LeadStatusUpdateSerializer,
)
from mr_core.leads.filters import LeadFilter
from mr_core.leads.models import Lead
from mr_core.leads.selectors import get_lead_for_actor, leads_visible_to
from mr_core.leads.services import LeadService


def _status_update_kwargs(data: dict) -> dict:
    kwargs = {
        "status": data.get("status"),
        "comment": data.get("comment", ""),
        "days_used": data.get("days_used"),
        "shipping_cost": data.get("shipping_cost"),
        "notes": data.get("notes"),
    }
    # absent key = leave equipment alone, explicit null = unassign
    if "assigned_equipment" in data:
        kwargs["assigned_equipment_id"] = data["assigned_equipment"]
    return kwargs


class LeadViewSet(viewsets.GenericViewSet):
    """
    Leads:
    - list/retrieve (doctors: own only)
    - create (doctor)
    - partial_update / status (admin): notes, equipment, lifecycle
    - assign_equipment (admin)
    """
    serializer_class = LeadSerializer
    queryset = Lead.objects.none()
    permission_classes = [LeadPermission]

    @extend_schema(
        tags=["Leads"],
        responses={200: LeadSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="doctor", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="city", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        actor = actor_from_request(request)
        qs = leads_visible_to(actor=actor, status=request.query_params.get("status"))
        qs = apply_filters(LeadFilter, request, qs)
        return paginate(request, qs, LeadSerializer)

    @extend_schema(tags=["Leads"], responses={200: LeadDetailSerializer})
    def retrieve(self, request, pk=None):
        actor = actor_from_request(request)
        lead = get_lead_for_actor(lead_id=path_uuid(pk), actor=actor)
        return Response(LeadDetailSerializer(lead).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Leads"], request=LeadCreateSerializer, responses={201: LeadSerializer})
    def create(self, request):
        actor = actor_from_request(request)

        ser = LeadCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        lead = LeadService.create_lead(actor=actor, **ser.validated_data)
        return Response(LeadSerializer(lead).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Leads"], request=LeadStatusUpdateSerializer, responses={200: LeadDetailSerializer})
    def partial_update(self, request, pk=None):
        return self._update(request, pk)

    @extend_schema(tags=["Leads"], request=LeadStatusUpdateSerializer, responses={200: LeadDetailSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        return self._update(request, pk)

    def _update(self, request, pk):
        actor = actor_from_request(request)

        ser = LeadStatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        LeadService.update_status(lead_id=path_uuid(pk), actor=actor, **_status_update_kwargs(ser.validated_data))
        lead = get_lead_for_actor(lead_id=path_uuid(pk), actor=actor)
        return Response(LeadDetailSerializer(lead).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Leads"], request=AssignEquipmentSerializer, responses={200: LeadSerializer})
    @action(detail=True, methods=["post"], url_path="assign_equipment")
    def assign_equipment(self, request, pk=None):
        actor = actor_from_request(request)

        ser = AssignEquipmentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        lead = LeadService.assign_equipment(
            lead_id=path_uuid(pk),
            equipment_id=ser.validated_data["equipment"],
            actor=actor,
        )
        return Response(LeadSerializer(lead).data, status=status.HTTP_200_OK)

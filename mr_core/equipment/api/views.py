# mr_core/equipment/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from mr_core.common.api.pagination import paginate
from mr_core.common.api.params import path_uuid
from mr_core.common.permissions import EquipmentPermission
from mr_core.equipment.api.serializers import (
    EquipmentSerializer,
    EquipmentWriteSerializer,
    RentalPriceCreateSerializer,
    RentalPriceSerializer,
    RentalPriceUpdateSerializer,
)
from mr_core.equipment.models import Equipment, EquipmentRentalPrice
from mr_core.equipment.selectors import equipment_qs, get_equipment, get_pricing, inventory_stats, pricing_for_equipment
from mr_core.equipment.services import EquipmentService, PricingService
from mr_core.iam.actor import actor_from_request


class EquipmentViewSet(viewsets.GenericViewSet):
    """
    Equipment catalogue + per-city rental prices.
    """
    serializer_class = EquipmentSerializer
    queryset = Equipment.objects.none()
    permission_classes = [EquipmentPermission]

    @extend_schema(tags=["Equipment"], responses={200: EquipmentSerializer(many=True)})
    def list(self, request):
        qs = equipment_qs()
        status_q = request.query_params.get("status")
        if status_q:
            qs = qs.filter(status=status_q)
        return paginate(request, qs, EquipmentSerializer)

    @extend_schema(tags=["Equipment"], responses={200: EquipmentSerializer})
    def retrieve(self, request, pk=None):
        equipment = get_equipment(equipment_id=path_uuid(pk))
        return Response(EquipmentSerializer(equipment).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Equipment"], request=EquipmentWriteSerializer, responses={201: EquipmentSerializer})
    def create(self, request):
        actor = actor_from_request(request)

        ser = EquipmentWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        equipment = EquipmentService.create_equipment(actor=actor, **ser.validated_data)
        return Response(EquipmentSerializer(equipment).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Equipment"], request=EquipmentWriteSerializer, responses={200: EquipmentSerializer})
    def partial_update(self, request, pk=None):
        actor = actor_from_request(request)

        ser = EquipmentWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        equipment = EquipmentService.update_equipment(actor=actor, equipment_id=path_uuid(pk), **ser.validated_data)
        return Response(EquipmentSerializer(equipment).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Equipment"], responses={204: None})
    def destroy(self, request, pk=None):
        EquipmentService.delete_equipment(actor=actor_from_request(request), equipment_id=path_uuid(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Equipment"],
        request=RentalPriceCreateSerializer,
        responses={200: RentalPriceSerializer(many=True), 201: RentalPriceSerializer},
    )
    @action(detail=True, methods=["get", "post"], url_path="rental_prices")
    def rental_prices(self, request, pk=None):
        equipment = get_equipment(equipment_id=path_uuid(pk))

        if request.method == "GET":
            qs = pricing_for_equipment(equipment_id=equipment.id)
            return Response(RentalPriceSerializer(qs, many=True).data, status=status.HTTP_200_OK)

        actor = actor_from_request(request)
        ser = RentalPriceCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        pricing = PricingService.create_pricing(
            actor=actor,
            equipment_id=equipment.id,
            city_id=ser.validated_data["city"],
            price_per_day=ser.validated_data["price_per_day"],
            quantity=ser.validated_data["quantity"],
        )
        return Response(RentalPriceSerializer(get_pricing(pricing_id=pricing.id)).data, status=status.HTTP_201_CREATED)


class PricingViewSet(viewsets.GenericViewSet):
    serializer_class = RentalPriceSerializer
    queryset = EquipmentRentalPrice.objects.none()
    permission_classes = [EquipmentPermission]

    @extend_schema(tags=["Equipment"], responses={200: RentalPriceSerializer})
    def retrieve(self, request, pk=None):
        return Response(RentalPriceSerializer(get_pricing(pricing_id=path_uuid(pk))).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Equipment"], request=RentalPriceUpdateSerializer, responses={200: RentalPriceSerializer})
    def partial_update(self, request, pk=None):
        actor = actor_from_request(request)

        ser = RentalPriceUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        pricing = PricingService.update_pricing(
            actor=actor,
            pricing_id=path_uuid(pk),
            price_per_day=ser.validated_data.get("price_per_day"),
            quantity=ser.validated_data.get("quantity"),
        )
        return Response(RentalPriceSerializer(get_pricing(pricing_id=pricing.id)).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Equipment"], responses={204: None})
    def destroy(self, request, pk=None):
        PricingService.delete_pricing(actor=actor_from_request(request), pricing_id=path_uuid(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


class InventoryStatsView(APIView):
    permission_classes = [EquipmentPermission]

    @extend_schema(tags=["Equipment"], responses={200: OpenApiTypes.OBJECT})
    def get(self, request):
        return Response(inventory_stats(), status=status.HTTP_200_OK)

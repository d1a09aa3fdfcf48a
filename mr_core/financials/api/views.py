# mr_core/financials/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.response import Response

from mr_core.common.api.pagination import paginate
from mr_core.common.api.params import apply_filters, path_uuid
from mr_core.common.permissions import FinancialPermission
from mr_core.financials.api.serializers import (
    FinancialCreateSerializer,
    FinancialSerializer,
    FinancialUpdateSerializer,
)
from mr_core.financials.filters import FinancialFilter
from mr_core.financials.models import Financial
from mr_core.financials.selectors import financial_totals, financials_qs, get_financial
from mr_core.financials.services import FinancialService
from mr_core.iam.actor import actor_from_request


def _expenses(items):
    if items is None:
        return None
    return [{"description": i.get("description", ""), "amount": i["amount"]} for i in items]


class FinancialViewSet(viewsets.GenericViewSet):
    """
    Financial records: settled automatically on lead close, or entered manually.
    List responses carry totals for the filtered set.
    """
    serializer_class = FinancialSerializer
    queryset = Financial.objects.none()
    permission_classes = [FinancialPermission]

    @extend_schema(
        tags=["Financials"],
        responses={200: FinancialSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="payment_status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="doctor", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        qs = apply_filters(FinancialFilter, request, financials_qs())
        return paginate(request, qs, FinancialSerializer, extra={"totals": financial_totals(qs)})

    @extend_schema(tags=["Financials"], responses={200: FinancialSerializer})
    def retrieve(self, request, pk=None):
        return Response(FinancialSerializer(get_financial(financial_id=path_uuid(pk))).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Financials"], request=FinancialCreateSerializer, responses={201: FinancialSerializer})
    def create(self, request):
        actor = actor_from_request(request)

        ser = FinancialCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        financial = FinancialService.create_manual(
            actor=actor,
            lead_id=data["lead"],
            rental_amount=data["rental_amount"],
            shipping_cost=data.get("shipping_cost"),
            gst_amount=data.get("gst_amount"),
            other_expenses=_expenses(data.get("other_expenses")),
            payment_status=data["payment_status"],
        )
        return Response(
            FinancialSerializer(get_financial(financial_id=financial.id)).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Financials"], request=FinancialUpdateSerializer, responses={200: FinancialSerializer})
    def partial_update(self, request, pk=None):
        actor = actor_from_request(request)

        ser = FinancialUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        financial = FinancialService.update_financial(
            actor=actor,
            financial_id=path_uuid(pk),
            rental_amount=data.get("rental_amount"),
            shipping_cost=data.get("shipping_cost"),
            gst_amount=data.get("gst_amount"),
            other_expenses=_expenses(data.get("other_expenses")),
            payment_status=data.get("payment_status"),
        )
        return Response(FinancialSerializer(get_financial(financial_id=financial.id)).data, status=status.HTTP_200_OK)

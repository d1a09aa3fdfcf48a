# mr_core/cities/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.response import Response

from mr_core.cities.api.serializers import CityCreateSerializer, CitySerializer, CityUpdateSerializer
from mr_core.cities.models import City
from mr_core.cities.selectors import cities_qs, get_city
from mr_core.cities.services import CityService
from mr_core.common.actor import require_admin
from mr_core.common.api.pagination import paginate
from mr_core.common.api.params import path_uuid
from mr_core.common.permissions import CityPermission
from mr_core.iam.actor import actor_from_request


class CityViewSet(viewsets.GenericViewSet):
    serializer_class = CitySerializer
    queryset = City.objects.none()
    permission_classes = [CityPermission]

    @extend_schema(tags=["Cities"], responses={200: CitySerializer(many=True)})
    def list(self, request):
        actor = actor_from_request(request)
        return paginate(request, cities_qs(active_only=not actor.is_admin), CitySerializer)

    @extend_schema(tags=["Cities"], request=CityCreateSerializer, responses={201: CitySerializer})
    def create(self, request):
        require_admin(actor_from_request(request))

        ser = CityCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        city = CityService.create_city(**ser.validated_data)
        return Response(CitySerializer(city).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Cities"], responses={200: CitySerializer})
    def retrieve(self, request, pk=None):
        actor = actor_from_request(request)
        city = get_city(city_id=path_uuid(pk), active_only=not actor.is_admin)
        return Response(CitySerializer(city).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Cities"], request=CityUpdateSerializer, responses={200: CitySerializer})
    def partial_update(self, request, pk=None):
        ser = CityUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        city = CityService.update_city(actor=actor_from_request(request), city_id=path_uuid(pk), **ser.validated_data)
        return Response(CitySerializer(city).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Cities"], responses={204: None})
    def destroy(self, request, pk=None):
        CityService.delete_city(actor=actor_from_request(request), city_id=path_uuid(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

# mr_core/iam/api/auth.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema, inline_serializer
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer

TokenPairResponse = inline_serializer(
    name="TokenPairResponse",
    fields={"access": serializers.CharField(), "refresh": serializers.CharField()},
)


class LoginView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        request=TokenObtainPairSerializer,
        responses={200: TokenPairResponse},
        tags=["IAM"],
    )
    def post(self, request):
        serializer = TokenObtainPairSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return Response(
            {
                "access": serializer.validated_data["access"],
                "refresh": serializer.validated_data["refresh"],
            },
            status=status.HTTP_200_OK,
        )


class RefreshView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        request=TokenRefreshSerializer,
        responses={200: TokenPairResponse},
        tags=["IAM"],
    )
    def post(self, request):
        serializer = TokenRefreshSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        access = serializer.validated_data["access"]
        refresh = serializer.validated_data.get("refresh", request.data.get("refresh"))
        return Response({"access": access, "refresh": refresh}, status=status.HTTP_200_OK)

# mr_core/iam/api/me.py

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from mr_core.common.permissions import primary_role, user_roles


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        """
        Returns user info, roles and the doctor profile id (if any).
        """
        roles = user_roles(request.user)
        profile = getattr(request.user, "doctor_profile", None)

        return Response(
            {
                "user": {
                    "id": request.user.id,
                    "username": getattr(request.user, "username", None),
                    "email": getattr(request.user, "email", None),
                    "is_superuser": bool(getattr(request.user, "is_superuser", False)),
                },
                "roles": sorted(roles),
                "role": primary_role(roles),
                "doctor_id": str(profile.id) if profile is not None else None,
            },
            status=status.HTTP_200_OK,
        )

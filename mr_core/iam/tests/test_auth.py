import pytest
from rest_framework.test import APIClient

from mr_core.common.actor import Actor
from mr_core.common.api.exceptions import AuthorizationError
from mr_core.iam.actor import actor_from_user

pytestmark = pytest.mark.django_db


def test_actor_for_doctor_carries_profile(doctor):
    assert actor_from_user(doctor.user) == Actor(user_id=doctor.user_id, role="DOCTOR", doctor_id=doctor.id)


def test_superuser_is_super_admin(django_user_model):
    user = django_user_model.objects.create_superuser(username="boss", password="x", email="b@example.com")
    assert actor_from_user(user).is_super_admin


def test_user_without_role_is_rejected(django_user_model):
    user = django_user_model.objects.create_user(username="nobody", password="x")
    with pytest.raises(AuthorizationError):
        actor_from_user(user)


def test_login_refresh_and_me(doctor):
    client = APIClient()

    r = client.post("/api/v1/auth/login/", {"username": "dr_mehta", "password": "testpass"}, format="json")
    assert r.status_code == 200, r.content
    access, refresh = r.data["access"], r.data["refresh"]

    r = client.post("/api/v1/auth/refresh/", {"refresh": refresh}, format="json")
    assert r.status_code == 200
    assert r.data["access"]

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    r = client.get("/api/v1/me/")
    assert r.status_code == 200
    assert r.data["role"] == "DOCTOR"
    assert r.data["doctor_id"] == str(doctor.id)


def test_bad_credentials_are_401():
    r = APIClient().post("/api/v1/auth/login/", {"username": "ghost", "password": "nope"}, format="json")
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "authentication_failed"

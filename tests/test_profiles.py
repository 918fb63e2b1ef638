"""Tests for profile and operator endpoints."""

import json
from uuid import uuid4

import pytest
from httpx import AsyncClient

from conftest import TEST_PASSWORD, bearer

SECRET_KEYS = {"password", "passwordHash", "otpHash", "otpExpiresAt"}


@pytest.mark.asyncio
class TestUserProfile:
    """Tests for user profile endpoints."""

    async def test_user_profile_hides_secrets(self, client: AsyncClient, user_headers, test_user):
        """The profile never exposes hashes or challenge state."""
        response = await client.get("/api/v1/user/profile", headers=user_headers)
        assert response.status_code == 200
        profile = response.json()["profile"]
        assert profile["email"] == test_user["email"]
        assert profile["name"] == "Pat Patient"
        assert SECRET_KEYS.isdisjoint(profile)

    async def test_update_user_profile(self, client: AsyncClient, blob_store, user_headers):
        """Test updating profile fields with an image."""
        response = await client.put(
            "/api/v1/user/profile",
            data={
                "name": "Pat Renamed",
                "phone": "+15550100",
                "dob": "1990-04-01",
                "gender": "Female",
                "address": json.dumps({"line1": "1 Main St", "line2": "Springfield"}),
            },
            files={"image": ("me.png", b"\x89PNG fake", "image/png")},
            headers=user_headers,
        )
        assert response.status_code == 200
        profile = response.json()["profile"]
        assert profile["name"] == "Pat Renamed"
        assert profile["address"] == {"line1": "1 Main St", "line2": "Springfield"}
        assert profile["imageUrl"] == "https://storage.test/user_profiles/me.png"
        assert blob_store.objects["user_profiles/me.png"] == b"\x89PNG fake"

        response = await client.get("/api/v1/user/profile", headers=user_headers)
        assert response.json()["profile"]["phone"] == "+15550100"

    async def test_update_user_profile_missing_fields(self, client: AsyncClient, user_headers):
        """Test update without the required fields."""
        response = await client.put(
            "/api/v1/user/profile", data={"name": "Only Name"}, headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_update_user_profile_bad_address(self, client: AsyncClient, user_headers):
        """Test address that is not valid JSON."""
        response = await client.put(
            "/api/v1/user/profile",
            data={
                "name": "Pat",
                "phone": "1",
                "dob": "1990-04-01",
                "gender": "F",
                "address": "{oops",
            },
            headers=user_headers,
        )
        assert response.status_code == 400

    async def test_update_profile_rejects_non_image(
        self, client: AsyncClient, blob_store, user_headers
    ):
        """Non-image uploads are refused and nothing is stored."""
        response = await client.put(
            "/api/v1/user/profile",
            data={"name": "Pat", "phone": "1", "dob": "1990-04-01", "gender": "F"},
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=user_headers,
        )
        assert response.status_code == 400
        assert blob_store.objects == {}


@pytest.mark.asyncio
class TestDoctorProfile:
    """Tests for doctor profile endpoints."""

    async def test_doctor_profile_hides_secrets(self, client: AsyncClient, doctor_headers):
        """The doctor profile reports completion and hides secrets."""
        response = await client.get("/api/v1/doctor/profile", headers=doctor_headers)
        profile = response.json()["profile"]
        assert profile["available"] is True
        assert profile["profileComplete"] is False
        assert profile["profileStatus"] == "incomplete"
        assert SECRET_KEYS.isdisjoint(profile)

    async def test_doctor_profile_completion(
        self, client: AsyncClient, doctor_headers, test_doctor
    ):
        """Supplying a professional field marks the profile complete."""
        response = await client.put(
            "/api/v1/doctor/profile", data={"name": "Dr. Dana Renamed"}, headers=doctor_headers
        )
        assert response.json()["profile"]["profileComplete"] is False

        response = await client.put(
            "/api/v1/doctor/profile",
            data={"degree": "MBBS", "experience": "5 Years", "fees": "40", "about": "GP"},
            headers=doctor_headers,
        )
        profile = response.json()["profile"]
        assert profile["profileComplete"] is True
        assert profile["fees"] == 40

        response = await client.post(
            "/api/v1/doctor/login",
            json={"email": test_doctor["email"], "password": TEST_PASSWORD},
        )
        assert response.json()["profileStatus"] == "complete"

    async def test_doctor_can_go_unavailable(
        self, client: AsyncClient, doctor_headers, user_headers, test_doctor
    ):
        """An unavailable doctor cannot be chatted with."""
        response = await client.put(
            "/api/v1/doctor/profile", data={"available": "false"}, headers=doctor_headers
        )
        assert response.json()["profile"]["available"] is False

        response = await client.post(
            "/api/v1/user/chat/start",
            json={"doctorId": str(test_doctor["id"])},
            headers=user_headers,
        )
        assert response.json()["success"] is False


@pytest.mark.asyncio
class TestAdminEndpoints:
    """Tests for operator endpoints."""

    async def test_admin_toggles_availability(self, client: AsyncClient, settings, test_doctor):
        """The operator flips a doctor's availability back and forth."""
        response = await client.post(
            "/api/v1/admin/login",
            json={"email": settings.admin_email, "password": settings.admin_password},
        )
        data = response.json()
        assert data["success"] is True
        headers = {"Authorization": f"Bearer {data['token']}"}

        response = await client.post(
            "/api/v1/admin/change-availability",
            json={"doctorId": str(test_doctor["id"])},
            headers=headers,
        )
        assert response.json() == {
            "success": True,
            "message": "Availability changed.",
            "available": False,
        }

        response = await client.post(
            "/api/v1/admin/change-availability",
            json={"doctorId": str(test_doctor["id"])},
            headers=headers,
        )
        assert response.json()["available"] is True

    async def test_admin_login_wrong_password(self, client: AsyncClient, settings):
        """Test operator login with the wrong password."""
        response = await client.post(
            "/api/v1/admin/login", json={"email": settings.admin_email, "password": "guess"}
        )
        assert response.json() == {"success": False, "message": "Invalid credentials"}

    async def test_change_availability_requires_admin(
        self, client: AsyncClient, settings, test_doctor
    ):
        """A doctor token cannot change availability through the operator route."""
        headers = bearer(settings, test_doctor["id"], "doctor")
        response = await client.post(
            "/api/v1/admin/change-availability",
            json={"doctorId": str(test_doctor["id"])},
            headers=headers,
        )
        assert response.status_code == 401

    async def test_change_availability_unknown_doctor(self, client: AsyncClient, settings):
        """Test toggling a doctor that does not exist."""
        headers = bearer(settings, settings.admin_email, "admin")
        response = await client.post(
            "/api/v1/admin/change-availability",
            json={"doctorId": str(uuid4())},
            headers=headers,
        )
        assert response.status_code == 404


@pytest.mark.asyncio
class TestHealthEndpoints:
    """Tests for liveness endpoints."""

    async def test_ping(self, client: AsyncClient):
        """Test ping endpoint."""
        response = await client.get("/api/v1/ping")
        assert response.json() == {"message": "pong"}

"""DB-backed tests for the HTTP layer over an in-memory SQLite database."""

from datetime import UTC, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import dental_clinic.models  # noqa: F401 - register tables
from dental_clinic.api.deps import get_current_user
from dental_clinic.core.db import get_session
from dental_clinic.core.security import hash_password
from dental_clinic.main import app
from dental_clinic.models.patient import Patient
from dental_clinic.models.user import User, UserRole
from dental_clinic.services.auth_service import create_user

DAY = "2024-01-10"
THIS_YEAR = datetime.now(UTC).year
ADMIN_PASSWORD_HASH = hash_password("secret123")


# ---------------------------------------------------------------------------
# Fixtures: in-memory SQLite engine + session override
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def seed(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        admin = User(email="admin@dentalclinic.com", first_name="Ada", last_name="Admin",
                     role=UserRole.ADMIN, hashed_password=ADMIN_PASSWORD_HASH)
        assistant = User(email="assist@dentalclinic.com", first_name="Sam", last_name="Helper",
                         role=UserRole.ASSISTANT, hashed_password="x")
        john = User(email="john@dentalclinic.com", first_name="John", last_name="Smith",
                    role=UserRole.DENTIST, hashed_password="x")
        ana = User(email="ana@dentalclinic.com", first_name="Ana", last_name="Silva",
                   role=UserRole.DENTIST, hashed_password="x")
        patient = Patient(patient_code=f"PAT-{THIS_YEAR}-0001", first_name="Jane", last_name="Doe")
        session.add_all([admin, assistant, john, ana, patient])
        await session.commit()
        return {"admin": admin, "assistant": assistant, "john": john, "ana": ana, "patient": patient}


@pytest_asyncio.fixture
async def anon_client(engine, seed):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_session():
        async with factory() as sess:
            try:
                yield sess
                await sess.commit()
            except Exception:
                await sess.rollback()
                raise

    app.dependency_overrides[get_session] = _override_get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(anon_client, seed):
    app.dependency_overrides[get_current_user] = lambda: seed["admin"]
    yield anon_client


def _body(seed, start="2:00 PM", end="2:30 PM", **extra) -> dict:
    body = {
        "patientId": seed["patient"].id,
        "dentistId": seed["john"].id,
        "appointmentDate": DAY,
        "startTime": start,
        "endTime": end,
    }
    body.update(extra)
    return body


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------

class TestBooking:
    @pytest.mark.asyncio
    async def test_create_appointment(self, client: AsyncClient, seed):
        resp = await client.post("/api/v1/appointments", json=_body(seed, toothNumbers=[16]))
        assert resp.status_code == 201
        data = resp.json()
        assert data["startTime"] == "14:00"
        assert data["endTime"] == "14:30"
        assert data["status"] == "CONFIRMED"
        assert data["type"] == "CONSULTATION"
        assert data["toothNumbers"] == [16]
        assert data["createdById"] == seed["admin"].id

    @pytest.mark.asyncio
    async def test_conflict_returns_suggestions(self, client: AsyncClient, seed):
        await client.post("/api/v1/appointments", json=_body(seed))
        resp = await client.post("/api/v1/appointments", json=_body(seed, start="14:00", end="14:30"))
        assert resp.status_code == 409
        data = resp.json()
        assert data["success"] is False
        assert data["message"] == "Time slot conflicts with an existing appointment"
        assert data["conflict"]["existingAppointment"] == {"patientName": "Jane Doe", "time": "14:00 - 14:30"}
        suggestions = data["suggestions"]
        assert suggestions["alternativeDoctors"] == [
            {"id": seed["ana"].id, "name": "Dr. Ana Silva", "available": True}
        ]
        assert [s["startTime"] for s in suggestions["availableTimeSlots"]] == [
            "09:00", "09:30", "10:00", "10:30", "11:00"
        ]
        assert suggestions["nextAvailableSlot"] == {"startTime": "09:00", "endTime": "09:30"}

    @pytest.mark.asyncio
    async def test_touching_slot_is_accepted(self, client: AsyncClient, seed):
        await client.post("/api/v1/appointments", json=_body(seed))
        resp = await client.post("/api/v1/appointments", json=_body(seed, start="14:30", end="15:00"))
        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_cancelled_slot_can_be_rebooked(self, client: AsyncClient, seed):
        first = (await client.post("/api/v1/appointments", json=_body(seed))).json()
        resp = await client.delete(f"/api/v1/appointments/{first['id']}")
        assert resp.status_code == 200
        assert resp.json()["status"] == "CANCELLED"
        resp = await client.post("/api/v1/appointments", json=_body(seed))
        assert resp.status_code == 201

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "start,end,fragment",
        [
            ("25:00", "10:00", "Invalid time format"),
            ("10:00", "9:30 AM", "End time must be after start time"),
        ],
    )
    async def test_bad_times_are_rejected(self, client: AsyncClient, seed, start, end, fragment):
        resp = await client.post("/api/v1/appointments", json=_body(seed, start=start, end=end))
        assert resp.status_code == 400
        assert fragment in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_bad_tooth_numbers_are_rejected(self, client: AsyncClient, seed):
        resp = await client.post("/api/v1/appointments", json=_body(seed, toothNumbers=[11, 99]))
        assert resp.status_code == 400
        assert "99" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_unknown_patient_and_non_dentist(self, client: AsyncClient, seed):
        resp = await client.post("/api/v1/appointments", json=_body(seed, patientId=999))
        assert resp.status_code == 404
        resp = await client.post("/api/v1/appointments", json=_body(seed, dentistId=seed["admin"].id))
        assert resp.status_code == 400


class TestUpdates:
    @pytest.mark.asyncio
    async def test_reschedule_own_appointment(self, client: AsyncClient, seed):
        created = (await client.post("/api/v1/appointments", json=_body(seed))).json()
        resp = await client.put(
            f"/api/v1/appointments/{created['id']}",
            json={"startTime": "14:15", "endTime": "14:45", "status": "RESCHEDULED"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert (data["startTime"], data["endTime"], data["status"]) == ("14:15", "14:45", "RESCHEDULED")

    @pytest.mark.asyncio
    async def test_null_clears_reason(self, client: AsyncClient, seed):
        created = (await client.post("/api/v1/appointments", json=_body(seed, reason="Cleaning", notes="x"))).json()
        resp = await client.put(f"/api/v1/appointments/{created['id']}", json={"reason": None})
        assert resp.status_code == 200
        data = resp.json()
        assert data["reason"] is None
        assert data["notes"] == "x"

    @pytest.mark.asyncio
    async def test_update_into_taken_slot_conflicts(self, client: AsyncClient, seed):
        await client.post("/api/v1/appointments", json=_body(seed))
        other = (await client.post("/api/v1/appointments", json=_body(seed, start="16:00", end="16:30"))).json()
        resp = await client.put(f"/api/v1/appointments/{other['id']}", json={"startTime": "14:00", "endTime": "14:30"})
        assert resp.status_code == 409
        stored = (await client.get(f"/api/v1/appointments/{other['id']}")).json()
        assert stored["startTime"] == "16:00"

    @pytest.mark.asyncio
    async def test_status_update(self, client: AsyncClient, seed):
        created = (await client.post("/api/v1/appointments", json=_body(seed))).json()
        resp = await client.put(f"/api/v1/appointments/{created['id']}/status", json={"status": "COMPLETED"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "COMPLETED"

    @pytest.mark.asyncio
    async def test_missing_appointment(self, client: AsyncClient):
        resp = await client.put("/api/v1/appointments/999", json={"startTime": "10:00"})
        assert resp.status_code == 404


class TestListing:
    @pytest.mark.asyncio
    async def test_list_with_filters_and_meta(self, client: AsyncClient, seed):
        await client.post("/api/v1/appointments", json=_body(seed))
        await client.post("/api/v1/appointments", json=_body(seed, start="15:00", end="15:30"))
        await client.post("/api/v1/appointments", json=_body(seed, dentistId=seed["ana"].id))
        resp = await client.get(
            "/api/v1/appointments",
            params={"dentistId": seed["john"].id, "startDate": DAY, "endDate": DAY, "limit": 1},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["meta"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}
        assert data["data"][0]["startTime"] == "14:00"


class TestSlots:
    @pytest.mark.asyncio
    async def test_available_grid(self, client: AsyncClient, seed):
        await client.post("/api/v1/appointments", json=_body(seed))
        resp = await client.get("/api/v1/slots/available", params={"dentistId": seed["john"].id, "date": DAY})
        assert resp.status_code == 200
        slots = resp.json()["slots"]
        assert len(slots) == 18
        busy = [s["startTime"] for s in slots if not s["available"]]
        assert busy == ["14:00"]

    @pytest.mark.asyncio
    async def test_suggestions(self, client: AsyncClient, seed):
        await client.post("/api/v1/appointments", json=_body(seed, start="09:00", end="09:30"))
        resp = await client.get(
            "/api/v1/slots/suggestions",
            params={"dentistId": seed["john"].id, "date": DAY, "startTime": "9:00 AM", "endTime": "9:30 AM"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert [s["startTime"] for s in data["availableTimeSlots"]] == ["09:30", "10:00", "10:30", "11:00", "11:30"]
        assert data["nextAvailableSlot"] == {"startTime": "09:30", "endTime": "10:00"}
        assert [d["name"] for d in data["alternativeDoctors"]] == ["Dr. Ana Silva"]


class TestAuth:
    @pytest.mark.asyncio
    async def test_login_and_me(self, anon_client: AsyncClient):
        resp = await anon_client.post(
            "/api/v1/auth/login", json={"email": "admin@dentalclinic.com", "password": "secret123"}
        )
        assert resp.status_code == 200
        token = resp.json()["access_token"]
        me = await anon_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["role"] == "ADMIN"

    @pytest.mark.asyncio
    async def test_wrong_password(self, anon_client: AsyncClient):
        resp = await anon_client.post(
            "/api/v1/auth/login", json={"email": "admin@dentalclinic.com", "password": "nope"}
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_requires_token(self, anon_client: AsyncClient):
        resp = await anon_client.get("/api/v1/appointments")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_assistant_cannot_book(self, anon_client: AsyncClient, seed):
        app.dependency_overrides[get_current_user] = lambda: seed["assistant"]
        resp = await anon_client.post("/api/v1/appointments", json=_body(seed))
        assert resp.status_code == 403
        resp = await anon_client.get("/api/v1/appointments")
        assert resp.status_code == 200


class TestPatients:
    @pytest.mark.asyncio
    async def test_register_assigns_next_code(self, client: AsyncClient):
        resp = await client.post("/api/v1/patients", json={"firstName": "Tom", "lastName": "Hardy"})
        assert resp.status_code == 201
        code = resp.json()["patientCode"]
        assert code == f"PAT-{THIS_YEAR}-0002"
        search = await client.get("/api/v1/patients", params={"search": "Hard"})
        assert [p["lastName"] for p in search.json()] == ["Hardy"]


@pytest.mark.asyncio
async def test_health(anon_client: AsyncClient):
    resp = await anon_client.get("/health")
    assert resp.json() == {"status": "ok", "database": "ok"}


class TestDentists:
    @pytest.mark.asyncio
    async def test_lists_active_dentists_only(self, client: AsyncClient, engine):
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as session:
            await create_user(
                session, "gone@dentalclinic.com", "pw", "Old", "Timer",
                role=UserRole.DENTIST, is_active=False,
            )
            await create_user(session, "new@dentalclinic.com", "pw12345", "Zoe", "Adams", role=UserRole.DENTIST)
            await session.commit()
        resp = await client.get("/api/v1/dentists")
        assert resp.status_code == 200
        assert [d["last_name"] for d in resp.json()] == ["Adams", "Silva", "Smith"]

    @pytest.mark.asyncio
    async def test_listing_requires_token(self, anon_client: AsyncClient):
        resp = await anon_client.get("/api/v1/dentists")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_listing_checks_appointment_read_permission(self, anon_client: AsyncClient, seed, monkeypatch):
        app.dependency_overrides[get_current_user] = lambda: seed["assistant"]
        resp = await anon_client.get("/api/v1/dentists")
        assert resp.status_code == 200

        checked = []

        def deny(role, module, action):
            checked.append((role, module, action))
            return False

        monkeypatch.setattr("dental_clinic.api.deps.has_permission", deny)
        resp = await anon_client.get("/api/v1/dentists")
        assert resp.status_code == 403
        assert checked == [(UserRole.ASSISTANT, "appointments", "read")]

    @pytest.mark.asyncio
    async def test_created_user_can_log_in(self, anon_client: AsyncClient, engine):
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as session:
            await create_user(session, "desk@dentalclinic.com", "frontdesk1", "Rita", "Desk")
            await session.commit()
        resp = await anon_client.post(
            "/api/v1/auth/login", json={"email": "desk@dentalclinic.com", "password": "frontdesk1"}
        )
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

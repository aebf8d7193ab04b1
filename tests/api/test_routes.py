import pytest
from collections.abc import Callable

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from vetbook.models.provider import PetOwner, Provider
from vetbook.models.slot import SlotStatus
from tests.constants import CONSULTATION_FEE, DAY_AFTER, TODAY, TOMORROW

A = SlotStatus.AVAILABLE
B = SlotStatus.BOOKED

API = "/api/v1"


@pytest.mark.anyio
class TestHealth:

    async def test_health(self, client: httpx.AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


@pytest.mark.anyio
class TestSlotsAPI:
    """Availability editing and listing endpoints."""

    async def test_list_slots_paginates_and_filters(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        make_slots: Callable,
    ):
        await make_slots(
            provider.id,
            TOMORROW,
            [("09:00", "09:30", A), ("09:30", "10:00", B), ("10:00", "10:30", A)],
        )
        params = {"start_date": str(TODAY), "end_date": str(DAY_AFTER), "limit": 2}

        response = await client.get(f"{API}/slots/providers/{provider.id}", params=params)
        assert response.status_code == 200, response.json()
        body = response.json()
        assert body["meta"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}
        assert [s["start_time"] for s in body["slots"]] == ["09:00", "09:30"]

        response = await client.get(
            f"{API}/slots/providers/{provider.id}", params={**params, "status": "BOOKED"}
        )
        body = response.json()
        assert body["meta"]["total"] == 1
        assert body["slots"][0]["status"] == "BOOKED"

    async def test_list_rejects_unknown_status(self, client: httpx.AsyncClient, provider: Provider):
        """ALL is a query convention, never a status value."""
        response = await client.get(
            f"{API}/slots/providers/{provider.id}",
            params={"start_date": str(TODAY), "end_date": str(TODAY), "status": "ALL"},
        )
        assert response.status_code == 422

    async def test_add_period(self, client: httpx.AsyncClient, provider: Provider):
        response = await client.post(
            f"{API}/slots/periods",
            json={
                "provider_id": provider.id,
                "date": str(TOMORROW),
                "start_time": "09:00",
                "end_time": "10:00",
                "slot_duration": 20,
            },
        )
        assert response.status_code == 201, response.json()
        assert response.json()["created"] == 3

    async def test_replace_period(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        make_slots: Callable,
    ):
        booked, available = await make_slots(
            provider.id, TOMORROW, [("10:00", "10:30", B), ("09:00", "09:30", A)]
        )
        response = await client.put(
            f"{API}/slots/periods",
            json={
                "provider_id": provider.id,
                "slot_ids": [available.id],
                "start_time": "09:00",
                "end_time": "11:00",
            },
        )
        assert response.status_code == 200, response.json()
        body = response.json()
        assert body["success"] is True
        assert body["preserved_booked"] == 1
        assert body["deleted_available_or_disabled"] == 1
        assert body["created_new_slots"] == 3

    async def test_replace_period_errors(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        make_slots: Callable,
    ):
        (slot,) = await make_slots(provider.id, TOMORROW, [("09:00", "09:30", A)])
        base = {"provider_id": provider.id, "slot_ids": [slot.id], "start_time": "09:00", "end_time": "11:00"}

        response = await client.put(f"{API}/slots/periods", json={**base, "slot_ids": []})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error_code": "INVALID_REQUEST",
            "message": "slot_ids must contain at least one slot id",
            "field": "slot_ids",
        }

        response = await client.put(f"{API}/slots/periods", json={**base, "end_time": "9pm"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TIME_FORMAT"

        response = await client.put(f"{API}/slots/periods", json={**base, "end_time": "08:00"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PERIOD"

        response = await client.put(f"{API}/slots/periods", json={**base, "slot_ids": [999]})
        assert response.status_code == 404
        assert response.json()["error_code"] == "NO_MATCHING_SLOTS"

        response = await client.put(f"{API}/slots/periods", json={**base, "slot_duration": 0})
        assert response.status_code == 422

    async def test_delete_slots_reports_protected(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        make_slots: Callable,
    ):
        available, booked = await make_slots(provider.id, TOMORROW, [("09:00", "09:30", A), ("10:00", "10:30", B)])

        response = await client.request(
            "DELETE",
            f"{API}/slots",
            json={"provider_id": provider.id, "slot_ids": [available.id, booked.id]},
        )
        assert response.status_code == 409
        assert response.json()["deleted"] == 1
        assert response.json()["protected_slot_ids"] == [booked.id]

    async def test_generate_for_range(self, client: httpx.AsyncClient, provider: Provider):
        response = await client.post(
            f"{API}/slots/periods/range",
            json={
                "provider_id": provider.id,
                "start_date": str(TOMORROW),
                "end_date": str(DAY_AFTER),
                "periods": [
                    {"start_time": "09:00", "end_time": "10:00"},
                    {"start_time": "14:00", "end_time": "15:00"},
                ],
            },
        )
        assert response.status_code == 201, response.json()
        body = response.json()
        assert body["created"] == 8
        assert [d["slot_date"] for d in body["days"]] == [str(TOMORROW), str(DAY_AFTER)]

        response = await client.post(
            f"{API}/slots/periods/range",
            json={
                "provider_id": provider.id,
                "start_date": str(DAY_AFTER),
                "end_date": str(TOMORROW),
                "periods": [{"start_time": "09:00", "end_time": "10:00"}],
            },
        )
        assert response.status_code == 400
        assert response.json()["field"] == "end_date"

    async def test_delete_period_and_bulk(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        make_slots: Callable,
    ):
        _, booked = await make_slots(provider.id, TOMORROW, [("09:00", "09:30", A), ("09:30", "10:00", B)])
        await make_slots(provider.id, DAY_AFTER, [("09:00", "09:30", A), ("15:00", "15:30", A)])
        booked_id = booked.id

        response = await client.request(
            "DELETE",
            f"{API}/slots/periods",
            json={"provider_id": provider.id, "date": str(TOMORROW), "start_time": "09:00", "end_time": "10:00"},
        )
        assert response.status_code == 200, response.json()
        assert response.json()["deleted"] == 1
        assert response.json()["protected_slot_ids"] == [booked_id]

        response = await client.request(
            "DELETE",
            f"{API}/slots/periods/bulk",
            json={
                "provider_id": provider.id,
                "periods": [
                    {"date": str(DAY_AFTER), "start_time": "08:00", "end_time": "10:00"},
                    {"date": str(DAY_AFTER), "start_time": "15:00", "end_time": "16:00", "timezone": "UTC"},
                ],
            },
        )
        assert response.status_code == 200, response.json()
        assert response.json()["total_deleted"] == 2

        response = await client.request(
            "DELETE",
            f"{API}/slots/periods",
            json={"provider_id": provider.id, "date": str(TOMORROW), "start_time": "10:00", "end_time": "09:00"},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PERIOD"

    async def test_first_available(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        make_slots: Callable,
    ):
        (slot,) = await make_slots(provider.id, TOMORROW, [("09:00", "09:30", A)])
        slot_id = slot.id

        response = await client.get(f"{API}/slots/providers/{provider.id}/first-available")
        assert response.status_code == 200, response.json()
        body = response.json()
        assert body["has_availability"] is True
        assert body["slot"]["id"] == slot_id

        response = await client.get(f"{API}/slots/providers/404/first-available")
        assert response.status_code == 404


@pytest.mark.anyio
class TestAppointmentsAPI:
    """Booking, reading, rescheduling and cancelling through HTTP."""

    async def _book(self, client: httpx.AsyncClient, slot_id: int, owner_id: int) -> httpx.Response:
        return await client.post(
            f"{API}/appointments",
            json={"slot_id": slot_id, "pet_owner_id": owner_id, "pet_id": 5, "pet_name": "Pepper"},
        )

    async def test_book_read_reschedule_cancel(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        pet_owner: PetOwner,
        make_slots: Callable,
    ):
        first, second = await make_slots(provider.id, TOMORROW, [("09:00", "09:30", A), ("15:00", "15:30", A)])

        response = await self._book(client, first.id, pet_owner.id)
        assert response.status_code == 201, response.json()
        booking = response.json()
        appointment_id = booking["appointment"]["id"]
        assert booking["new_slot"]["status"] == "BOOKED"
        assert booking["appointment"]["fee_usd"] == CONSULTATION_FEE

        response = await client.get(f"{API}/appointments/{appointment_id}")
        assert response.status_code == 200
        assert response.json()["slot_id"] == first.id

        response = await client.post(
            f"{API}/appointments/{appointment_id}/reschedule", json={"target_slot_id": second.id}
        )
        assert response.status_code == 200, response.json()
        moved = response.json()
        assert moved["appointment"]["slot_id"] == second.id
        assert moved["appointment"]["status"] == "RESCHEDULED"
        assert moved["new_appointment_date"].startswith("2026-03-11T15:00")

        response = await client.delete(f"{API}/appointments/{appointment_id}")
        assert response.status_code == 204

        response = await client.get(f"{API}/appointments/{appointment_id}")
        assert response.status_code == 404
        assert response.json()["error_code"] == "APPOINTMENT_NOT_FOUND"

    async def test_double_booking_conflict(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        pet_owner: PetOwner,
        make_slots: Callable,
    ):
        (slot,) = await make_slots(provider.id, TOMORROW, [("09:00", "09:30", A)])
        assert (await self._book(client, slot.id, pet_owner.id)).status_code == 201

        response = await self._book(client, slot.id, pet_owner.id)
        assert response.status_code == 409
        assert response.json()["error_code"] == "SLOT_NOT_AVAILABLE"

    async def test_reschedule_into_the_past(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        pet_owner: PetOwner,
        make_slots: Callable,
    ):
        (future,) = await make_slots(provider.id, TOMORROW, [("09:00", "09:30", A)])
        (earlier_today,) = await make_slots(provider.id, TODAY, [("08:00", "08:30", A)])
        appointment_id = (await self._book(client, future.id, pet_owner.id)).json()["appointment"]["id"]

        response = await client.post(
            f"{API}/appointments/{appointment_id}/reschedule", json={"target_slot_id": earlier_today.id}
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "PAST_TIME_SLOT"
        assert response.json()["field"] == "slot_id"


@pytest.mark.anyio
class TestStatisticsAPI:

    async def test_slot_statistics(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        make_slots: Callable,
    ):
        await make_slots(
            provider.id,
            TOMORROW,
            [("09:00", "09:30", A), ("09:30", "10:00", B), ("11:00", "11:30", A)],
        )
        response = await client.get(
            f"{API}/providers/{provider.id}/slot-statistics",
            params={"start_date": str(TODAY), "end_date": str(TOMORROW)},
        )
        assert response.status_code == 200, response.json()
        body = response.json()
        assert body["total_slots"] == 3
        assert body["total_periods"] == 2
        assert body["utilization_rate"] == 0.3333
        day = body["daily_stats"][0]
        assert day["available_times"] == [
            {"from": "09:00", "to": "10:00"},
            {"from": "11:00", "to": "11:30"},
        ]

    async def test_unknown_provider(self, client: httpx.AsyncClient):
        response = await client.get(
            f"{API}/providers/404/slot-statistics",
            params={"start_date": str(TODAY), "end_date": str(TOMORROW)},
        )
        assert response.status_code == 404
        assert response.json()["error_code"] == "PROVIDER_NOT_FOUND"

    async def test_period_summary(
        self,
        client: httpx.AsyncClient,
        provider: Provider,
        make_slots: Callable,
    ):
        await make_slots(provider.id, TOMORROW, [("09:00", "09:30", A), ("09:30", "10:00", B), ("13:00", "13:30", A)])
        response = await client.get(
            f"{API}/providers/{provider.id}/period-summary",
            params={"start_date": str(TODAY), "end_date": str(DAY_AFTER)},
        )
        assert response.status_code == 200, response.json()
        (day,) = response.json()
        assert day["date"] == str(TOMORROW)
        assert day["number_of_periods"] == 2
        assert day["periods"][0] == {
            "start_time": "09:00",
            "end_time": "10:00",
            "total_hours": 1.0,
            "slot_count": 2,
            "has_available": True,
        }

"""Tests for listing endpoints: drafts, edits, deletion, activation quota, boosts and verification."""

import uuid

import pytest
from httpx import AsyncClient

from equimarket.billing.plans import PlanName
from equimarket.clock import FixedClock

from conftest import FakeMediaStore, RecordingAuditSink

pytestmark = pytest.mark.asyncio


# ---------------------------------------------------------------------------
# POST /api/v1/listings
# ---------------------------------------------------------------------------


class TestCreateListing:
    async def test_creates_draft(
        self, client: AsyncClient, make_seller, audit_sink: RecordingAuditSink
    ) -> None:
        _, seller, headers = await make_seller()
        response = await client.post(
            "/api/v1/listings",
            json={
                "name": "Badal",
                "breed": "Kathiawari",
                "age": {"years": 5},
                "gender": "Mare",
                "price": 450000,
                "location": {"state": "Gujarat", "city": "Rajkot"},
            },
            headers=headers,
        )

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["seller_id"] == str(seller.id)
        assert data["listing_status"] == "draft"
        assert data["verification_status"] == "unverified"
        assert data["images"] == []
        assert data["age"] == {"years": 5, "months": 0}
        assert audit_sink.actions() == ["listing_update"]

    async def test_invalid_gender_rejected(self, client: AsyncClient, make_seller) -> None:
        _, _, headers = await make_seller()
        response = await client.post(
            "/api/v1/listings", json={"name": "Badal", "gender": "Colt"}, headers=headers
        )
        assert response.status_code == 422

    async def test_listing_status_cannot_be_supplied(self, client: AsyncClient, make_seller) -> None:
        _, _, headers = await make_seller()
        response = await client.post(
            "/api/v1/listings", json={"name": "Badal", "listing_status": "active"}, headers=headers
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# GET /api/v1/listings/{id}
# ---------------------------------------------------------------------------


class TestGetListing:
    async def test_owner_can_read(self, client: AsyncClient, make_seller, make_listing) -> None:
        _, seller, headers = await make_seller()
        listing = await make_listing(seller)
        response = await client.get(f"/api/v1/listings/{listing.id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Sultan"

    async def test_other_sellers_listing_forbidden(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, owner, _ = await make_seller()
        _, _, intruder_headers = await make_seller()
        listing = await make_listing(owner)
        response = await client.get(f"/api/v1/listings/{listing.id}", headers=intruder_headers)
        assert response.status_code == 403

    async def test_unknown_listing(self, client: AsyncClient, make_seller) -> None:
        _, _, headers = await make_seller()
        response = await client.get(f"/api/v1/listings/{uuid.uuid4()}", headers=headers)
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# POST /api/v1/listings/{id}/activate
# ---------------------------------------------------------------------------


class TestActivateListing:
    async def test_activates_within_quota(
        self,
        client: AsyncClient,
        make_seller,
        make_listing,
        clock: FixedClock,
        audit_sink: RecordingAuditSink,
    ) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller)

        response = await client.post(f"/api/v1/listings/{listing.id}/activate", headers=headers)

        assert response.status_code == 200
        assert response.json()["listing_status"] == "active"
        assert response.json()["activated_at"] == clock.now().isoformat()
        assert "listing_activate" in audit_sink.actions()

    async def test_quota_exhausted(self, client: AsyncClient, make_seller, make_listing) -> None:
        _, seller, headers = await make_seller(PlanName.FREE)
        await make_listing(seller, status="active")
        draft = await make_listing(seller)

        response = await client.post(f"/api/v1/listings/{draft.id}/activate", headers=headers)

        assert response.status_code == 402
        detail = response.json()["detail"]
        assert detail["reason"] == "quota_exceeded"
        assert detail["limit"] == 1
        assert detail["current"] == 1
        assert detail["upgrade_url"] == "/api/v1/subscription/plans"

    async def test_drafts_and_expired_do_not_count(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, seller, headers = await make_seller(PlanName.FREE)
        await make_listing(seller, status="expired")
        await make_listing(seller)
        draft = await make_listing(seller)

        response = await client.post(f"/api/v1/listings/{draft.id}/activate", headers=headers)
        assert response.status_code == 200

    async def test_no_plan(self, client: AsyncClient, make_seller, make_listing) -> None:
        _, seller, headers = await make_seller()
        listing = await make_listing(seller)
        response = await client.post(f"/api/v1/listings/{listing.id}/activate", headers=headers)
        assert response.status_code == 402
        assert response.json()["detail"]["reason"] == "feature_unavailable"

    async def test_lapsed_plan(
        self, client: AsyncClient, make_seller, make_listing, clock: FixedClock
    ) -> None:
        _, seller, headers = await make_seller(PlanName.ROYAL_STALLION)
        listing = await make_listing(seller)
        clock.advance(days=31)
        response = await client.post(f"/api/v1/listings/{listing.id}/activate", headers=headers)
        assert response.status_code == 402

    async def test_already_active(self, client: AsyncClient, make_seller, make_listing) -> None:
        _, seller, headers = await make_seller(PlanName.GALLOP)
        listing = await make_listing(seller, status="active")
        response = await client.post(f"/api/v1/listings/{listing.id}/activate", headers=headers)
        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "already_active"

    async def test_cannot_activate_someone_elses(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, owner, _ = await make_seller(PlanName.GALLOP)
        _, _, intruder_headers = await make_seller(PlanName.GALLOP)
        listing = await make_listing(owner)
        response = await client.post(
            f"/api/v1/listings/{listing.id}/activate", headers=intruder_headers
        )
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# POST /api/v1/listings/{id}/boost
# ---------------------------------------------------------------------------


class TestBoostListing:
    async def test_trot_cannot_boost(self, client: AsyncClient, make_seller, make_listing) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller, status="active")

        response = await client.post(f"/api/v1/listings/{listing.id}/boost", headers=headers)

        assert response.status_code == 402
        assert response.json()["detail"]["reason"] == "feature_unavailable"

    async def test_gallop_boost_runs_five_days(
        self, client: AsyncClient, make_seller, make_listing, clock: FixedClock
    ) -> None:
        _, seller, headers = await make_seller(PlanName.GALLOP)
        listing = await make_listing(seller, status="active")

        response = await client.post(f"/api/v1/listings/{listing.id}/boost", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["is_boosted"] is True
        assert data["boost_start_date"] == clock.now().isoformat()
        assert data["boost_end_date"] == clock.advance(days=5).isoformat()

    async def test_running_boost_is_not_extended(
        self, client: AsyncClient, make_seller, make_listing, clock: FixedClock
    ) -> None:
        _, seller, headers = await make_seller(PlanName.GALLOP)
        listing = await make_listing(seller, status="active")
        first = await client.post(f"/api/v1/listings/{listing.id}/boost", headers=headers)

        clock.advance(days=2)
        second = await client.post(f"/api/v1/listings/{listing.id}/boost", headers=headers)

        assert second.status_code == 409
        assert listing.boost_end_date.isoformat() == first.json()["boost_end_date"]

    async def test_boost_renewable_after_it_ends(
        self, client: AsyncClient, make_seller, make_listing, clock: FixedClock
    ) -> None:
        _, seller, headers = await make_seller(PlanName.GALLOP)
        listing = await make_listing(seller, status="active")
        await client.post(f"/api/v1/listings/{listing.id}/boost", headers=headers)

        clock.advance(days=5, seconds=1)
        expired_view = await client.get(f"/api/v1/listings/{listing.id}", headers=headers)
        assert expired_view.json()["is_boosted"] is False

        renewed = await client.post(f"/api/v1/listings/{listing.id}/boost", headers=headers)
        assert renewed.status_code == 200
        assert renewed.json()["boost_start_date"] == clock.now().isoformat()


# ---------------------------------------------------------------------------
# POST /api/v1/listings/{id}/verify
# ---------------------------------------------------------------------------


class TestVerification:
    async def test_incomplete_listing_lists_missing_fields(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller, complete=False)

        response = await client.post(
            f"/api/v1/listings/{listing.id}/verify", json={}, headers=headers
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["reason"] == "missing_fields"
        assert set(detail["fields"]) == {
            "breed",
            "age",
            "gender",
            "color",
            "price",
            "description",
            "location",
            "specifications",
            "images",
        }

    async def test_complete_listing_goes_pending(
        self, client: AsyncClient, make_seller, make_listing, clock: FixedClock
    ) -> None:
        user, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller, images=2)

        response = await client.post(
            f"/api/v1/listings/{listing.id}/verify",
            json={"documents": ["https://docs.test/passport.pdf"], "notes": "Vet cert attached"},
            headers=headers,
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["verification_status"] == "pending"
        assert data["verification_details"]["submitted_by"] == str(user.id)
        assert data["verification_details"]["submitted_at"] == clock.now().isoformat()
        assert data["verification_details"]["documents"] == ["https://docs.test/passport.pdf"]

        status_view = await client.get(f"/api/v1/listings/{listing.id}/verification", headers=headers)
        assert status_view.json()["verification_status"] == "pending"

    async def test_pending_request_not_resubmitted(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller, images=1)
        await client.post(f"/api/v1/listings/{listing.id}/verify", json={}, headers=headers)

        response = await client.post(f"/api/v1/listings/{listing.id}/verify", json={}, headers=headers)
        assert response.status_code == 409


# ---------------------------------------------------------------------------
# GET /api/v1/listings/limits
# ---------------------------------------------------------------------------


class TestLimits:
    async def test_reports_quota_usage(self, client: AsyncClient, make_seller, make_listing) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        await make_listing(seller, status="active")
        await make_listing(seller, status="active")
        await make_listing(seller)

        response = await client.get("/api/v1/listings/limits", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["plan"] == "Trot"
        assert data["max_listings"] == 5
        assert data["active_listings"] == 2
        assert data["remaining"] == 3
        assert data["listing_duration_days"] == 30
        assert data["boost_duration_days"] == 0

    async def test_lapsed_plan_has_no_room(
        self, client: AsyncClient, make_seller, clock: FixedClock
    ) -> None:
        _, _, headers = await make_seller(PlanName.GALLOP)
        clock.advance(days=31)
        data = (await client.get("/api/v1/listings/limits", headers=headers)).json()
        assert data["status"] == "expired"
        assert data["max_listings"] == 0
        assert data["remaining"] == 0


# ---------------------------------------------------------------------------
# PATCH /api/v1/listings/{listing_id}
# ---------------------------------------------------------------------------


class TestUpdateListing:
    async def test_updates_only_sent_fields(
        self, client: AsyncClient, make_seller, make_listing, audit_sink: RecordingAuditSink
    ) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller)

        response = await client.patch(
            f"/api/v1/listings/{listing.id}",
            json={"price": 900000, "location": {"state": "Punjab", "city": "Ludhiana"}},
            headers=headers,
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["price"] == 900000
        assert data["location"]["city"] == "Ludhiana"
        assert data["breed"] == "Marwari"
        assert data["name"] == "Sultan"
        assert audit_sink.events[-1].action == "listing_update"
        assert audit_sink.events[-1].details == {"fields": ["location", "price"]}

    @pytest.mark.parametrize(
        "field,value",
        [
            ("listing_status", "active"),
            ("boost_end_date", "2030-01-01T00:00:00"),
            ("verification_status", "verified"),
            ("featured_active", True),
        ],
    )
    async def test_managed_fields_cannot_be_set(
        self, client: AsyncClient, make_seller, make_listing, field: str, value
    ) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller)

        response = await client.patch(f"/api/v1/listings/{listing.id}", json={field: value}, headers=headers)

        assert response.status_code == 422
        assert listing.listing_status == "draft"

    async def test_name_cannot_be_cleared(self, client: AsyncClient, make_seller, make_listing) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller)

        response = await client.patch(f"/api/v1/listings/{listing.id}", json={"name": None}, headers=headers)

        assert response.status_code == 422
        assert listing.name == "Sultan"

    async def test_other_sellers_listing_forbidden(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, owner, _ = await make_seller(PlanName.TROT)
        _, _, intruder_headers = await make_seller(PlanName.TROT)
        listing = await make_listing(owner)

        response = await client.patch(
            f"/api/v1/listings/{listing.id}", json={"price": 1}, headers=intruder_headers
        )

        assert response.status_code == 403
        assert listing.price == 850000

    async def test_filling_missing_fields_allows_verification(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller, images=1, complete=False)

        response = await client.patch(
            f"/api/v1/listings/{listing.id}",
            json={
                "breed": "Kathiawari",
                "age": {"years": 4},
                "gender": "Mare",
                "color": "Grey",
                "price": 300000,
                "description": "Calm mare, good with children.",
                "location": {"state": "Gujarat", "city": "Rajkot"},
                "specifications": {"height_hands": 14.3},
            },
            headers=headers,
        )
        assert response.status_code == 200, response.text

        verify = await client.post(f"/api/v1/listings/{listing.id}/verify", json={}, headers=headers)
        assert verify.status_code == 200, verify.text
        assert verify.json()["verification_status"] == "pending"


# ---------------------------------------------------------------------------
# DELETE /api/v1/listings/{listing_id}
# ---------------------------------------------------------------------------


class TestDeleteListing:
    async def test_removes_listing_and_its_photos(
        self,
        client: AsyncClient,
        make_seller,
        make_listing,
        media_store: FakeMediaStore,
        audit_sink: RecordingAuditSink,
    ) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listing = await make_listing(seller, images=2, status="active")
        listing_id = listing.id

        response = await client.delete(f"/api/v1/listings/{listing_id}", headers=headers)

        assert response.status_code == 200, response.text
        assert response.json() == {"message": "Listing deleted"}
        assert media_store.deleted == ["horse-photos/existing-0", "horse-photos/existing-1"]
        assert audit_sink.events[-1].action == "listing_delete"
        assert audit_sink.events[-1].details == {"images_removed": 2}

        gone = await client.get(f"/api/v1/listings/{listing_id}", headers=headers)
        assert gone.status_code == 404

    async def test_frees_an_active_listing_slot(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, seller, headers = await make_seller(PlanName.TROT)
        listings = [await make_listing(seller, status="active") for _ in range(5)]

        await client.delete(f"/api/v1/listings/{listings[0].id}", headers=headers)

        data = (await client.get("/api/v1/listings/limits", headers=headers)).json()
        assert data["active_listings"] == 4
        assert data["remaining"] == 1

    async def test_other_sellers_listing_forbidden(
        self, client: AsyncClient, make_seller, make_listing, media_store: FakeMediaStore
    ) -> None:
        _, owner, headers = await make_seller(PlanName.TROT)
        _, _, intruder_headers = await make_seller(PlanName.TROT)
        listing = await make_listing(owner, images=1)

        response = await client.delete(f"/api/v1/listings/{listing.id}", headers=intruder_headers)

        assert response.status_code == 403
        assert media_store.deleted == []
        still_there = await client.get(f"/api/v1/listings/{listing.id}", headers=headers)
        assert still_there.status_code == 200

    async def test_unknown_listing(self, client: AsyncClient, make_seller) -> None:
        _, _, headers = await make_seller(PlanName.TROT)
        response = await client.delete(f"/api/v1/listings/{uuid.uuid4()}", headers=headers)
        assert response.status_code == 404

    async def test_spotlight_still_counts_after_delete(
        self, client: AsyncClient, make_seller, make_listing
    ) -> None:
        _, seller, headers = await make_seller(PlanName.GALLOP)
        first, second, third = [await make_listing(seller, status="active") for _ in range(3)]

        assert (await client.post(f"/api/v1/visibility/spotlight/{first.id}", headers=headers)).status_code == 201
        assert (await client.delete(f"/api/v1/listings/{first.id}", headers=headers)).status_code == 200
        assert (await client.post(f"/api/v1/visibility/spotlight/{second.id}", headers=headers)).status_code == 201

        third_spotlight = await client.post(f"/api/v1/visibility/spotlight/{third.id}", headers=headers)
        assert third_spotlight.status_code == 402
        assert third_spotlight.json()["detail"]["reason"] == "quota_exceeded"

        featured = (await client.get("/api/v1/visibility/featured")).json()
        assert [item["id"] for item in featured["items"]] == [str(second.id)]

"""
API tests: routing, authentication and error mapping of every module.
"""
import uuid

import pytest

from app.core.exceptions import PersistenceError
from app.models.courier import DeliveryStatus
from app.services.delivery_proof_service import DeliveryProofService

API = "/api/v1"
PHOTO = ("proof.jpg", b"\xff\xd8\xff\xe0jpeg-bytes", "image/jpeg")


@pytest.fixture
async def courier(make_courier):
    return await make_courier()


@pytest.fixture
async def delivery(courier, make_delivery):
    return await make_delivery(courier, recipient_name="Marie", dropoff_address="Cocody")


@pytest.fixture
def headers(courier, auth_headers):
    return auth_headers(courier.id)


# =============================================================================
# TEST: APP
# =============================================================================

class TestApp:

    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "connected"
        assert response.json()["jobs"] == []


# =============================================================================
# TEST: COURIERS
# =============================================================================

class TestCourierEndpoints:

    async def test_trust_tiers(self, client):
        response = await client.get(f"{API}/couriers/trust-tiers")

        assert response.status_code == 200
        tiers = response.json()
        assert [t["tier"] for t in tiers] == ["bronze", "silver", "gold", "platinum", "diamond"]
        assert tiers[-1]["min_score"] == 91

    async def test_reliability_computed_on_first_read(self, client, courier):
        response = await client.get(f"{API}/couriers/{courier.id}/reliability")

        assert response.status_code == 200
        data = response.json()
        assert data["overall_score"] == 85
        assert data["trust_tier"] == "platinum"

        summary = await client.get(f"{API}/couriers/{courier.id}")
        assert summary.json()["reliability_score"] == 85

    async def test_unknown_courier(self, client):
        response = await client.get(f"{API}/couriers/{uuid.uuid4()}/reliability")
        assert response.status_code == 404

    async def test_recompute_requires_token(self, client, courier):
        response = await client.post(f"{API}/couriers/{courier.id}/reliability/recompute")
        assert response.status_code in (401, 403)

    async def test_invalid_token(self, client, courier):
        response = await client.post(
            f"{API}/couriers/{courier.id}/reliability/recompute",
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert response.status_code == 401

    async def test_delivery_outcome(self, client, courier, delivery, headers):
        response = await client.post(
            f"{API}/couriers/{courier.id}/deliveries/{delivery.id}/outcome",
            json={"status": DeliveryStatus.DELIVERED.value, "customer_rating": 5},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["successful_deliveries"] == 1
        assert {b["id"] for b in data["badges"]} == {"first_delivery"}

    async def test_rating_out_of_range(self, client, courier, delivery, headers):
        response = await client.post(
            f"{API}/couriers/{courier.id}/deliveries/{delivery.id}/outcome",
            json={"status": "delivered", "customer_rating": 6},
            headers=headers,
        )
        assert response.status_code == 422

    async def test_incident(self, client, courier, headers):
        response = await client.post(
            f"{API}/couriers/{courier.id}/incidents",
            json={"incident_type": "complaint", "description": "Rude at hand-over"},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["courier_id"] == str(courier.id)

    async def test_verification(self, client, courier, headers):
        response = await client.put(
            f"{API}/couriers/{courier.id}/verification",
            json={"is_identity_verified": True},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["overall_score"] == 95


# =============================================================================
# TEST: INSURANCE
# =============================================================================

class TestInsuranceEndpoints:

    async def test_plans(self, client):
        response = await client.get(f"{API}/insurance/plans")

        assert response.status_code == 200
        assert [p["tier"] for p in response.json()] == ["basic", "standard", "premium"]

    async def test_quote(self, client):
        response = await client.get(f"{API}/insurance/quote", params={"declared_value": 50_000})

        standard = response.json()[1]
        assert standard["premium"] == 2_500
        assert standard["coverage"] == 40_000

    async def test_negative_value_rejected(self, client):
        response = await client.get(f"{API}/insurance/quote", params={"declared_value": -1})
        assert response.status_code == 422

    async def test_policy_and_claim(self, client, delivery, headers, courier):
        response = await client.post(
            f"{API}/insurance/policies",
            json={"delivery_id": str(delivery.id), "declared_value": 50_000, "plan_tier": "standard"},
            headers=headers,
        )
        assert response.status_code == 201
        policy = response.json()
        assert policy["premium_amount"] == 2_500

        response = await client.post(
            f"{API}/insurance/policies/{policy['id']}/claims",
            json={"claim_type": "loss", "description": "Never arrived", "claimed_amount": 40_000},
            headers=headers,
        )
        assert response.status_code == 201
        claim = response.json()
        assert claim["status"] == "pending"
        assert claim["filer_id"] == str(courier.id)
        assert claim["delivery_id"] == str(delivery.id)

        response = await client.get(f"{API}/insurance/policies/{policy['id']}/claims", headers=headers)
        assert [c["id"] for c in response.json()] == [claim["id"]]

    async def test_claim_on_unknown_policy(self, client, headers):
        response = await client.post(
            f"{API}/insurance/policies/{uuid.uuid4()}/claims",
            json={"claim_type": "loss", "description": "Lost", "claimed_amount": 1},
            headers=headers,
        )
        assert response.status_code == 404


# =============================================================================
# TEST: TRACKING
# =============================================================================

class TestTrackingEndpoints:

    async def _share(self, client, delivery, headers, **options):
        response = await client.post(
            f"{API}/tracking/share",
            json={"delivery_id": str(delivery.id), **options},
            headers=headers,
        )
        assert response.status_code == 201
        return response.json()

    async def test_public_view(self, client, delivery, headers):
        await client.post(
            f"{API}/tracking/{delivery.id}/positions",
            json={"latitude": 5.35, "longitude": -3.99, "eta_minutes": 9},
            headers=headers,
        )
        link = await self._share(client, delivery, headers, show_driver_name=False)

        first = await client.get(f"{API}/tracking/public/{link['share_code']}")
        second = await client.get(f"{API}/tracking/public/{link['share_code']}")

        assert first.status_code == 200
        assert first.json()["link"]["view_count"] == 1
        data = second.json()
        assert data["link"]["view_count"] == 2
        assert data["courier"]["full_name"] is None
        assert data["courier"]["phone"] is None
        assert data["delivery"]["recipient_name"] == "Marie"
        assert data["updates"][0]["eta_minutes"] == 9

    async def test_unknown_code(self, client):
        response = await client.get(f"{API}/tracking/public/ZZZZZZ")
        assert response.status_code == 404

    async def test_revoke(self, client, delivery, headers):
        link = await self._share(client, delivery, headers)

        response = await client.delete(f"{API}/tracking/share/{link['share_code']}", headers=headers)
        assert response.status_code == 204

        response = await client.get(f"{API}/tracking/public/{link['share_code']}")
        assert response.status_code == 404

    async def test_share_foreign_delivery(self, client, delivery, make_courier, auth_headers):
        other = await make_courier(full_name="Yao Kouame")

        response = await client.post(
            f"{API}/tracking/share",
            json={"delivery_id": str(delivery.id)},
            headers=auth_headers(other.id),
        )
        assert response.status_code == 404

    async def test_share_message(self, client):
        response = await client.post(
            f"{API}/tracking/share-message",
            json={"share_url": "https://track.test/track/ABC234", "recipient_phone": "0701020304"},
        )

        assert response.status_code == 200
        assert response.json()["link"].startswith("https://wa.me/2250701020304?text=")


# =============================================================================
# TEST: PROOF OF DELIVERY
# =============================================================================

class TestDeliveryProofEndpoints:

    async def test_submit_package_only(self, client, delivery, headers):
        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/submit",
            files={"package_photo": PHOTO},
            data={"latitude": "5.35", "longitude": "-3.99"},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["step"] == "done"
        assert data["completed_steps"] == ["package"]
        assert data["artifacts"][0]["latitude"] == 5.35

    async def test_missing_required_evidence(self, client, delivery, headers):
        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/submit",
            files={"package_photo": PHOTO},
            data={"require_recipient_photo": "true"},
            headers=headers,
        )
        assert response.status_code == 422

    async def test_partial_failure(self, client, delivery, headers, storage):
        storage.fail_on = {"recipient"}

        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/submit",
            files={"package_photo": PHOTO, "recipient_photo": PHOTO},
            data={"require_recipient_photo": "true"},
            headers=headers,
        )

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["failed_step"] == "recipient"
        assert detail["completed_steps"] == ["package"]

        response = await client.get(f"{API}/delivery-proofs/{delivery.id}", headers=headers)
        assert [a["photo_type"] for a in response.json()] == ["package"]

    async def test_empty_optional_recipient_photo_ignored(self, client, delivery, headers):
        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/submit",
            files={"package_photo": PHOTO, "recipient_photo": ("empty.jpg", b"", "image/jpeg")},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["completed_steps"] == ["package"]

    async def test_empty_required_recipient_photo(self, client, delivery, headers):
        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/submit",
            files={"package_photo": PHOTO, "recipient_photo": ("empty.jpg", b"", "image/jpeg")},
            data={"require_recipient_photo": "true"},
            headers=headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "Recipient photo is required"

    async def test_step_log_failure_is_bad_gateway(self, client, delivery, headers, monkeypatch):
        async def broken_steps(self, delivery_id):
            raise PersistenceError("database is locked")

        monkeypatch.setattr(DeliveryProofService, "get_completed_steps", broken_steps)

        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/submit",
            files={"package_photo": PHOTO},
            headers=headers,
        )

        assert response.status_code == 502
        assert response.json()["detail"] == "database is locked"

    async def test_submit_with_signature(self, client, delivery, headers):
        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/submit",
            files={"package_photo": PHOTO},
            data={
                "require_signature": "true",
                "signature_data": "data:image/png;base64,iVBORw0KGgo=",
                "signer_name": "Marie",
            },
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["completed_steps"] == ["package", "signature"]

    async def test_single_photo_upload(self, client, delivery, headers):
        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/photos",
            files={"file": PHOTO},
            data={"photo_type": "location"},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["photo_type"] == "location"
        assert response.json()["is_verified"] is True

    async def test_signature(self, client, delivery, headers):
        response = await client.post(
            f"{API}/delivery-proofs/{delivery.id}/signature",
            json={"signature_data": "data:image/png;base64,AAA", "signer_name": "Marie"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["signer_name"] == "Marie"

    async def test_foreign_delivery(self, client, delivery, make_courier, auth_headers):
        other = await make_courier(full_name="Yao Kouame")

        response = await client.get(
            f"{API}/delivery-proofs/{delivery.id}",
            headers=auth_headers(other.id),
        )
        assert response.status_code == 404

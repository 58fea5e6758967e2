"""
Tests for shareable tracking links.

1. Share code format
2. WhatsApp message formatting
3. Link lifecycle: create, resolve (views, expiry, redaction), revoke
"""
import uuid
from datetime import datetime, timedelta, timezone
from urllib.parse import unquote

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import NotFoundError, PersistenceError
from app.models.tracking import TrackingUpdate
from app.services.tracking_share_service import (
    SHARE_CODE_ALPHABET,
    SHARE_CODE_LENGTH,
    ShareLinkOptions,
    TrackingShareService,
    build_share_message,
    format_share_message,
    generate_share_code,
)


# =============================================================================
# TEST: SHARE CODES
# =============================================================================

class TestShareCodes:

    def test_alphabet_excludes_ambiguous_characters(self):
        assert len(SHARE_CODE_ALPHABET) == 32
        for ch in "0O1I":
            assert ch not in SHARE_CODE_ALPHABET

    def test_generated_codes(self):
        for _ in range(1000):
            code = generate_share_code()
            assert len(code) == SHARE_CODE_LENGTH == 6
            assert set(code) <= set(SHARE_CODE_ALPHABET)


# =============================================================================
# TEST: SHARE MESSAGES
# =============================================================================

class TestShareMessage:
    URL = "https://track.test/track/ABC234"

    def test_without_phone(self):
        link = format_share_message(self.URL)

        assert link.startswith("https://wa.me/?text=")
        assert unquote(link.split("?text=", 1)[1]) == build_share_message(self.URL)

    def test_phone_gets_country_code(self):
        link = format_share_message(self.URL, "07 01-02 03 04")
        assert link.startswith("https://wa.me/2250701020304?text=")

    def test_country_code_not_duplicated(self):
        link = format_share_message(self.URL, "+225 07 01 02 03 04")
        assert link.startswith("https://wa.me/2250701020304?text=")

    def test_message_is_component_encoded(self):
        link = format_share_message(self.URL)
        text = link.split("?text=", 1)[1]

        assert "%0A%0A" in text
        assert "https%3A%2F%2Ftrack.test%2Ftrack%2FABC234" in text
        assert " " not in text


# =============================================================================
# TEST: LINK LIFECYCLE
# =============================================================================

class TestTrackingShareService:

    async def _delivery(self, make_courier, make_delivery):
        courier = await make_courier()
        delivery = await make_delivery(
            courier,
            recipient_name="Marie",
            dropoff_address="Cocody, Abidjan",
            estimated_arrival=datetime.now(timezone.utc) + timedelta(minutes=20),
        )
        return courier, delivery

    async def test_create_link(self, db, make_courier, make_delivery):
        _, delivery = await self._delivery(make_courier, make_delivery)

        link = await TrackingShareService(db).create_link(delivery.id)

        assert link.is_active is True
        assert link.view_count == 0
        assert link.share_url.endswith(f"/track/{link.share_code}")
        assert link.expires_at - link.created_at < timedelta(hours=24, seconds=1)

    async def test_resolve_counts_views(self, db, make_courier, make_delivery):
        _, delivery = await self._delivery(make_courier, make_delivery)
        service = TrackingShareService(db)
        link = await service.create_link(delivery.id)

        await service.resolve(link.share_code)
        view = await service.resolve(link.share_code)

        assert view.link.view_count == 2
        assert view.delivery["id"] == delivery.id
        assert view.delivery["recipient_name"] == "Marie"

    async def test_unknown_code(self, db):
        with pytest.raises(NotFoundError):
            await TrackingShareService(db).resolve("ZZZZZZ")

    async def test_expired_link_not_found(self, db, make_courier, make_delivery):
        """Still active in the store, but past expires_at."""
        _, delivery = await self._delivery(make_courier, make_delivery)
        service = TrackingShareService(db)
        link = await service.create_link(delivery.id, ShareLinkOptions(expires_in_hours=1))

        later = datetime.now(timezone.utc) + timedelta(hours=2)
        with pytest.raises(NotFoundError):
            await service.resolve(link.share_code, now=later)

        assert link.is_active is True
        assert link.view_count == 0

    async def test_redaction(self, db, make_courier, make_delivery):
        courier, delivery = await self._delivery(make_courier, make_delivery)
        service = TrackingShareService(db)
        await service.record_position(delivery.id, 5.35, -3.99, eta_minutes=12, distance_remaining=3.4)

        options = ShareLinkOptions(
            show_driver_name=False,
            show_driver_phone=False,
            show_driver_photo=True,
            show_eta=False,
        )
        link = await service.create_link(delivery.id, options)
        view = await service.resolve(link.share_code)

        assert view.courier["full_name"] is None
        assert view.courier["phone"] is None
        assert view.courier["avatar_url"] == courier.avatar_url
        assert view.delivery["estimated_arrival"] is None
        assert view.updates[0]["eta_minutes"] is None
        assert view.updates[0]["distance_remaining"] is None
        assert view.updates[0]["latitude"] == 5.35

    async def test_visible_fields(self, db, make_courier, make_delivery):
        courier, delivery = await self._delivery(make_courier, make_delivery)
        service = TrackingShareService(db)
        await service.record_position(delivery.id, 5.35, -3.99, eta_minutes=12)

        options = ShareLinkOptions(show_driver_phone=True)
        link = await service.create_link(delivery.id, options)
        view = await service.resolve(link.share_code)

        assert view.courier["full_name"] == courier.full_name
        assert view.courier["phone"] == courier.phone
        assert view.delivery["estimated_arrival"] is not None
        assert view.updates[0]["eta_minutes"] == 12

    async def test_revoke(self, db, make_courier, make_delivery):
        courier, delivery = await self._delivery(make_courier, make_delivery)
        service = TrackingShareService(db)
        link = await service.create_link(delivery.id)

        await service.revoke_link(link.share_code, courier.id)

        with pytest.raises(NotFoundError):
            await service.resolve(link.share_code)

    async def test_revoke_requires_owner(self, db, make_courier, make_delivery):
        _, delivery = await self._delivery(make_courier, make_delivery)
        service = TrackingShareService(db)
        link = await service.create_link(delivery.id)

        with pytest.raises(NotFoundError):
            await service.revoke_link(link.share_code, uuid.uuid4())

    async def test_resolve_returns_latest_positions_newest_first(self, db, make_courier, make_delivery):
        _, delivery = await self._delivery(make_courier, make_delivery)
        start = datetime.now(timezone.utc) - timedelta(hours=1)
        for i in range(55):
            db.add(TrackingUpdate(
                delivery_id=delivery.id,
                latitude=float(i),
                longitude=-3.99,
                created_at=start + timedelta(seconds=i),
            ))
        await db.commit()

        service = TrackingShareService(db)
        link = await service.create_link(delivery.id)
        view = await service.resolve(link.share_code)

        assert len(view.updates) == 50
        assert view.updates[0]["latitude"] == 54.0
        assert view.updates[-1]["latitude"] == 5.0
        latitudes = [u["latitude"] for u in view.updates]
        assert latitudes == sorted(latitudes, reverse=True)

    async def test_create_link_store_failure(self, db, make_courier, make_delivery, monkeypatch):
        _, delivery = await self._delivery(make_courier, make_delivery)

        async def broken_commit():
            raise OperationalError("INSERT INTO shared_tracking_links", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "commit", broken_commit)

        with pytest.raises(PersistenceError, match="database is locked"):
            await TrackingShareService(db).create_link(delivery.id)

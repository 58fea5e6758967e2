"""
Shareable Tracking Service

Mints short public tracking codes for a delivery, resolves them for the
public tracking page and formats WhatsApp share links.

Links expire at read time: an active link past expires_at resolves as not
found. Every successful resolve counts one view.
"""
import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any
from urllib.parse import quote

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.clock import utc_now, as_utc
from app.core.exceptions import NotFoundError, PersistenceError
from app.models.courier import Courier, Delivery
from app.models.tracking import SharedTrackingLink, TrackingUpdate

logger = logging.getLogger(__name__)


# Excludes 0, O, 1 and I
SHARE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SHARE_CODE_LENGTH = 6

# Characters left unescaped in the message component
_URI_COMPONENT_SAFE = "-_.!~*'()"


def generate_share_code() -> str:
    """Random 6-character code from the 32-symbol alphabet."""
    return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(SHARE_CODE_LENGTH))


def build_share_message(share_url: str) -> str:
    return f"📦 Track your delivery in real time!\n\n🔗 {share_url}"


def format_share_message(share_url: str, recipient_phone: Optional[str] = None) -> str:
    """
    WhatsApp share link for a tracking URL.

    With a phone number, non-digits are stripped and the country code is
    prefixed unless already present.
    """
    message = quote(build_share_message(share_url), safe=_URI_COMPONENT_SAFE)

    if recipient_phone:
        clean_phone = "".join(ch for ch in recipient_phone if ch.isdigit())
        country_code = settings.SHARE_COUNTRY_CODE
        full_phone = clean_phone if clean_phone.startswith(country_code) else f"{country_code}{clean_phone}"
        return f"https://wa.me/{full_phone}?text={message}"

    return f"https://wa.me/?text={message}"


@dataclass(frozen=True)
class ShareLinkOptions:
    """Visibility and lifetime of a new link."""
    show_driver_name: bool = True
    show_driver_phone: bool = False
    show_driver_photo: bool = True
    show_eta: bool = True
    expires_in_hours: Optional[int] = None


@dataclass
class PublicTrackingView:
    """Resolved link with redacted delivery and courier snapshots."""
    link: SharedTrackingLink
    delivery: Dict[str, Any]
    courier: Optional[Dict[str, Any]]
    updates: List[Dict[str, Any]] = field(default_factory=list)


def _delivery_snapshot(delivery: Delivery, show_eta: bool) -> Dict[str, Any]:
    return {
        "id": delivery.id,
        "status": delivery.status,
        "recipient_name": delivery.recipient_name,
        "pickup_address": delivery.pickup_address,
        "dropoff_address": delivery.dropoff_address,
        "dropoff_latitude": delivery.dropoff_latitude,
        "dropoff_longitude": delivery.dropoff_longitude,
        "estimated_arrival": delivery.estimated_arrival if show_eta else None,
        "delivered_at": delivery.delivered_at,
    }


def _courier_snapshot(courier: Optional[Courier], link: SharedTrackingLink) -> Optional[Dict[str, Any]]:
    if courier is None:
        return None
    return {
        "full_name": courier.full_name if link.show_driver_name else None,
        "phone": courier.phone if link.show_driver_phone else None,
        "avatar_url": courier.avatar_url if link.show_driver_photo else None,
        "reliability_score": courier.reliability_score,
        "trust_tier": courier.trust_tier,
    }


def _update_snapshot(item: TrackingUpdate, show_eta: bool) -> Dict[str, Any]:
    return {
        "id": item.id,
        "delivery_id": item.delivery_id,
        "latitude": item.latitude,
        "longitude": item.longitude,
        "accuracy": item.accuracy,
        "status": item.status,
        "eta_minutes": item.eta_minutes if show_eta else None,
        "distance_remaining": item.distance_remaining if show_eta else None,
        "created_at": item.created_at,
    }


class TrackingShareService:
    """Issues and resolves public tracking links."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_link(
        self,
        delivery_id: uuid.UUID,
        options: Optional[ShareLinkOptions] = None,
    ) -> SharedTrackingLink:
        """
        Mint a new link for a delivery.

        Codes are not checked for collisions; the unique index rejects a
        duplicate and the insert fails with PersistenceError.
        """
        options = options or ShareLinkOptions()
        hours = options.expires_in_hours or settings.SHARE_LINK_DEFAULT_HOURS

        share_code = generate_share_code()
        link = SharedTrackingLink(
            delivery_id=delivery_id,
            share_code=share_code,
            share_url=f"{settings.PUBLIC_TRACKING_BASE_URL.rstrip('/')}/track/{share_code}",
            show_driver_name=options.show_driver_name,
            show_driver_phone=options.show_driver_phone,
            show_driver_photo=options.show_driver_photo,
            show_eta=options.show_eta,
            is_active=True,
            expires_at=utc_now() + timedelta(hours=hours),
            view_count=0,
        )

        try:
            self.db.add(link)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error creating share link for delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Share link {share_code} created for delivery {delivery_id} ({hours}h)")
        return link

    async def resolve(self, share_code: str, now: Optional[datetime] = None) -> PublicTrackingView:
        """
        Resolve a public code.

        Raises NotFoundError for unknown, revoked or expired codes. On
        success the view counter is incremented in place.
        """
        now = now or utc_now()

        try:
            result = await self.db.execute(
                select(SharedTrackingLink)
                .options(
                    selectinload(SharedTrackingLink.delivery)
                    .selectinload(Delivery.courier)
                    .selectinload(Courier.reliability)
                )
                .where(
                    SharedTrackingLink.share_code == share_code,
                    SharedTrackingLink.is_active == True,
                )
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error looking up tracking code {share_code}: {e}")
            raise PersistenceError(str(e)) from e
        link = result.scalar_one_or_none()

        if link is None:
            logger.warning(f"Tracking code {share_code} not found")
            raise NotFoundError(f"Tracking code {share_code} not found")

        if now > as_utc(link.expires_at):
            logger.warning(f"Tracking code {share_code} expired at {link.expires_at}")
            raise NotFoundError(f"Tracking code {share_code} has expired")

        try:
            await self.db.execute(
                update(SharedTrackingLink)
                .where(SharedTrackingLink.id == link.id)
                .values(view_count=SharedTrackingLink.view_count + 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error counting view of {share_code}: {e}")
            raise PersistenceError(str(e)) from e

        await self.db.refresh(link, attribute_names=["view_count"])

        try:
            updates_result = await self.db.execute(
                select(TrackingUpdate)
                .where(TrackingUpdate.delivery_id == link.delivery_id)
                .order_by(TrackingUpdate.created_at.desc())
                .limit(settings.TRACKING_UPDATES_LIMIT)
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error reading positions of delivery {link.delivery_id}: {e}")
            raise PersistenceError(str(e)) from e
        updates = updates_result.scalars().all()

        delivery = link.delivery
        return PublicTrackingView(
            link=link,
            delivery=_delivery_snapshot(delivery, link.show_eta),
            courier=_courier_snapshot(delivery.courier, link),
            updates=[_update_snapshot(item, link.show_eta) for item in updates],
        )

    async def revoke_link(self, share_code: str, courier_id: uuid.UUID) -> SharedTrackingLink:
        """Deactivate a link on one of the courier's own deliveries."""
        result = await self.db.execute(
            select(SharedTrackingLink)
            .join(Delivery, Delivery.id == SharedTrackingLink.delivery_id)
            .where(
                SharedTrackingLink.share_code == share_code,
                Delivery.courier_id == courier_id,
            )
        )
        link = result.scalar_one_or_none()
        if link is None:
            raise NotFoundError(f"Tracking code {share_code} not found")

        try:
            link.is_active = False
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error revoking {share_code}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Share link {share_code} revoked by courier {courier_id}")
        return link

    async def record_position(
        self,
        delivery_id: uuid.UUID,
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
        eta_minutes: Optional[int] = None,
        distance_remaining: Optional[float] = None,
        status: Optional[str] = None,
    ) -> TrackingUpdate:
        """Append a courier position to the delivery's feed."""
        position = TrackingUpdate(
            delivery_id=delivery_id,
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            status=status,
            eta_minutes=eta_minutes,
            distance_remaining=distance_remaining,
        )

        try:
            self.db.add(position)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error recording position for delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e

        return position

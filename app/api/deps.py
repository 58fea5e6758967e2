from typing import Annotated
import uuid
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.core.security import verify_access_token
from app.core.storage import StorageBackend, get_storage
from app.models.courier import Courier, Delivery
from app.services.evidence_service import EvidenceAnalyzer, get_evidence_analyzer


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_courier(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Courier:
    """
    Dependency to get the current authenticated courier.
    Validates the JWT token and returns the courier object.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = credentials.credentials
    courier_id = verify_access_token(token)

    if courier_id is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise credentials_exception

    try:
        courier_uuid = uuid.UUID(courier_id)
    except ValueError:
        logger.warning(f"Invalid courier_id in token: {courier_id}")
        raise credentials_exception

    result = await db.execute(select(Courier).where(Courier.id == courier_uuid))
    courier = result.scalar_one_or_none()

    if courier is None:
        logger.warning(f"Courier {courier_id} not found")
        raise credentials_exception

    return courier


async def get_courier_delivery(
    db: AsyncSession,
    delivery_id: uuid.UUID,
    courier: Courier,
) -> Delivery:
    """Load a delivery assigned to the courier, 404 otherwise."""
    delivery = await db.get(Delivery, delivery_id)
    if delivery is None or delivery.courier_id != courier.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Delivery {delivery_id} not found"
        )
    return delivery


# Type aliases for cleaner endpoint signatures
DB = Annotated[AsyncSession, Depends(get_db)]
CurrentCourier = Annotated[Courier, Depends(get_current_courier)]
Storage = Annotated[StorageBackend, Depends(get_storage)]
Analyzer = Annotated[EvidenceAnalyzer, Depends(get_evidence_analyzer)]

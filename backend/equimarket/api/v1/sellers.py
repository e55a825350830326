"""Seller profile API routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.api.deps import (
    get_audit_sink,
    get_current_user,
    get_current_seller,
    get_db,
    get_subscription_machine,
)
from equimarket.billing.subscription import SubscriptionState, SubscriptionStateMachine
from equimarket.models.seller import Seller
from equimarket.models.user import User
from equimarket.schemas.seller import SellerProfileCreate, SellerResponse
from equimarket.schemas.subscription import SubscriptionResponse
from equimarket.services import subscription_service
from equimarket.services.audit import AuditSink

router = APIRouter(prefix="/api/v1/sellers", tags=["sellers"])


def _seller_response(seller: Seller, state: SubscriptionState) -> SellerResponse:
    return SellerResponse(
        id=seller.id,
        user_id=seller.user_id,
        business_name=seller.business_name,
        description=seller.description,
        location=seller.location,
        contact_details=seller.contact_details,
        subscription=SubscriptionResponse.from_state(state),
    )


@router.post(
    "/profile",
    response_model=SellerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register the current user as a seller",
)
async def create_profile(
    body: SellerProfileCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SellerResponse:
    seller = await subscription_service.create_seller_profile(db, current_user, body)
    return _seller_response(seller, seller.subscription_state)


@router.get("/me", response_model=SellerResponse, summary="Get the current seller profile")
async def get_me(
    db: AsyncSession = Depends(get_db),
    seller: Seller = Depends(get_current_seller),
    machine: SubscriptionStateMachine = Depends(get_subscription_machine),
    audit: AuditSink = Depends(get_audit_sink),
) -> SellerResponse:
    state = await subscription_service.reconcile_subscription(db, seller, machine, audit)
    return _seller_response(seller, state)

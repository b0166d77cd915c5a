"""Organization catalogue endpoints: locations, payment methods, access check."""
from fastapi import APIRouter, Depends

from ..core.errors import NotFoundError
from ..services.organization_service import get_active_organization, get_bookable_organization
from ..services.store import SqlBookingStore, get_store

router = APIRouter()


@router.get("/locations")
async def list_locations(slug: str, store: SqlBookingStore = Depends(get_store)):
    """Active pickup/dropoff locations in display order."""
    org = await get_bookable_organization(store, slug)
    locations = await store.list_locations(org.id)
    return {"locations": [location.to_dict() for location in locations]}


@router.get("/payment-methods")
async def list_payment_methods(slug: str, store: SqlBookingStore = Depends(get_store)):
    """Online payment methods; pay-on-arrival cash is never offered here."""
    org = await get_active_organization(store, slug)
    methods = await store.list_payment_methods(org.id)
    return {"payment_methods": [method.to_dict() for method in methods]}


@router.get("/validate")
async def validate_organization(slug: str, store: SqlBookingStore = Depends(get_store)):
    """Access status for the WordPress plugin; 404 when the slug is unknown."""
    access = await store.validate_organization_access(slug)
    if access is None:
        raise NotFoundError("Organization not found")
    return access.to_dict()

"""Tenant lookup and booking eligibility."""
import logging

from ..core.config import settings
from ..core.errors import ForbiddenError, NotFoundError
from ..records import OrganizationRecord

logger = logging.getLogger(__name__)


async def get_active_organization(store, slug: str) -> OrganizationRecord:
    """Active organization for ``slug``.

    Raises:
        NotFoundError: If no active organization has this slug
    """
    org = await store.get_organization(slug)
    if org is None or not org.is_active:
        raise NotFoundError("Organization not found or inactive")
    return org


async def get_bookable_organization(store, slug: str) -> OrganizationRecord:
    """Active organization whose subscription allows public bookings.

    Raises:
        NotFoundError: If no active organization has this slug
        ForbiddenError: If the subscription is not in an allowed status
    """
    org = await get_active_organization(store, slug)
    if org.subscription_status not in settings.allowed_subscription_statuses:
        logger.info(
            "Organization subscription blocks bookings",
            extra={"slug": slug, "subscription_status": org.subscription_status},
        )
        raise ForbiddenError()
    return org

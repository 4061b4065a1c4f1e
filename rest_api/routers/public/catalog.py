"""
Public storefront endpoints (no authentication).
- Menu with complement groups
- Store configuration
- Delivery zones
- Cart quote
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.schemas import (
    CartQuoteOutput,
    CartQuoteRequest,
    DeliveryZonePublicOutput,
    MenuOutput,
    StoreConfigPublicOutput,
)
from rest_api.services.domain import (
    CartService,
    ConfigService,
    DeliveryZoneService,
    MenuItemService,
)


router = APIRouter(prefix="/api/public", tags=["public-catalog"])


@router.get("/menu", response_model=MenuOutput)
def get_menu(db: Session = Depends(get_db)) -> MenuOutput:
    """Visible categories and available items, featured items first."""
    return MenuItemService(db).storefront_menu()


@router.get("/config", response_model=StoreConfigPublicOutput)
def get_store_config(db: Session = Depends(get_db)) -> StoreConfigPublicOutput:
    return ConfigService(db).get_public()


@router.get("/delivery-zones", response_model=list[DeliveryZonePublicOutput])
def list_delivery_zones(db: Session = Depends(get_db)) -> list[DeliveryZonePublicOutput]:
    return [
        DeliveryZonePublicOutput.model_validate(zone)
        for zone in DeliveryZoneService(db).list_available()
    ]


@router.post("/cart/quote", response_model=CartQuoteOutput)
def quote_cart(body: CartQuoteRequest, db: Session = Depends(get_db)) -> CartQuoteOutput:
    """
    Re-price a storefront cart against the current catalog.

    Client prices are ignored; lines with the same item, notes and
    complement options are merged.
    """
    return CartService(db).quote(body)

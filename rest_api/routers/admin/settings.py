"""
Restaurant configuration and delivery zone endpoints.
"""

from rest_api.routers.admin._base import (
    APIRouter, AuthorizationSession, Depends, Permissions, Session, status,
    current_user, get_db, get_user_email, get_user_id, require_permission,
)
from shared.utils.admin_schemas import (
    DeliveryZoneCreate,
    DeliveryZoneOutput,
    DeliveryZoneUpdate,
    RestaurantConfigOutput,
    RestaurantConfigUpdate,
)
from rest_api.services.domain import ConfigService, DeliveryZoneService


router = APIRouter(tags=["admin-settings"])

require_config = require_permission(Permissions.MANAGE_CONFIG)


# =============================================================================
# Restaurant Config
# =============================================================================


@router.get("/config", response_model=RestaurantConfigOutput)
def get_config(
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_config),
) -> RestaurantConfigOutput:
    """Current configuration, or defaults when none was saved yet."""
    return ConfigService(db).get_admin()


@router.put("/config", response_model=RestaurantConfigOutput)
def save_config(
    body: RestaurantConfigUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_config),
) -> RestaurantConfigOutput:
    """Upsert the single configuration row (last write wins)."""
    return ConfigService(db).upsert(body, get_user_id(user), get_user_email(user))


# =============================================================================
# Delivery Zones
# =============================================================================


@router.get("/delivery-zones", response_model=list[DeliveryZoneOutput])
def list_delivery_zones(
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_config),
) -> list[DeliveryZoneOutput]:
    return DeliveryZoneService(db).list_ordered(include_inactive=include_deleted)


@router.post("/delivery-zones", response_model=DeliveryZoneOutput, status_code=status.HTTP_201_CREATED)
def create_delivery_zone(
    body: DeliveryZoneCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_config),
) -> DeliveryZoneOutput:
    return DeliveryZoneService(db).create(body.model_dump(), get_user_id(user), get_user_email(user))


@router.patch("/delivery-zones/{zone_id}", response_model=DeliveryZoneOutput)
def update_delivery_zone(
    zone_id: int,
    body: DeliveryZoneUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_config),
) -> DeliveryZoneOutput:
    return DeliveryZoneService(db).update(
        zone_id,
        body.model_dump(exclude_unset=True),
        get_user_id(user),
        get_user_email(user),
    )


@router.delete("/delivery-zones/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_delivery_zone(
    zone_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_config),
) -> None:
    DeliveryZoneService(db).delete(zone_id, get_user_id(user), get_user_email(user))

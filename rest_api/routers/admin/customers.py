"""
Customer management endpoints.
"""

from typing import Optional

from rest_api.routers.admin._base import (
    APIRouter, AuthorizationSession, Depends, Pagination, Permissions, Session, status,
    current_user, get_db, get_pagination, get_user_email, get_user_id, require_permission,
)
from shared.utils.admin_schemas import (
    CustomerCreate,
    CustomerOutput,
    CustomerUpdate,
    CustomerWithOrdersOutput,
)
from shared.utils.schemas import OrderOutput
from rest_api.services.domain import CustomerService, OrderService, to_order_output


router = APIRouter(tags=["admin-customers"])

require_customers = require_permission(Permissions.MANAGE_CUSTOMERS)


@router.get("/customers", response_model=list[CustomerWithOrdersOutput])
def list_customers(
    q: Optional[str] = None,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_customers),
) -> list[CustomerWithOrdersOutput]:
    """Search by name or phone digits; includes order count and last order."""
    return CustomerService(db).search(q, limit=pagination.limit, offset=pagination.offset)


@router.get("/customers/{customer_id}", response_model=CustomerOutput)
def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_customers),
) -> CustomerOutput:
    return CustomerService(db).get_by_id(customer_id)


@router.get("/customers/{customer_id}/orders", response_model=list[OrderOutput])
def list_customer_orders(
    customer_id: int,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_customers),
) -> list[OrderOutput]:
    CustomerService(db).get_entity_or_404(customer_id)
    orders = OrderService(db).list_orders(
        customer_id=customer_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return [to_order_output(o) for o in orders]


@router.post("/customers", response_model=CustomerOutput, status_code=status.HTTP_201_CREATED)
def create_customer(
    body: CustomerCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_customers),
) -> CustomerOutput:
    """Register a customer by hand. The WhatsApp number must be unused."""
    return CustomerService(db).create(body.model_dump(), get_user_id(user), get_user_email(user))


@router.patch("/customers/{customer_id}", response_model=CustomerOutput)
def update_customer(
    customer_id: int,
    body: CustomerUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_customers),
) -> CustomerOutput:
    return CustomerService(db).update(
        customer_id,
        body.model_dump(exclude_unset=True),
        get_user_id(user),
        get_user_email(user),
    )


@router.delete("/customers/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_customers),
) -> None:
    """Soft delete. Past orders keep pointing at the customer row."""
    CustomerService(db).delete(customer_id, get_user_id(user), get_user_email(user))

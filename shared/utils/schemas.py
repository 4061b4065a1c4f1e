"""
Shared Pydantic schemas used across the application.
Public storefront, checkout, tracking and authentication payloads.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, EmailStr


# =============================================================================
# Common Types
# =============================================================================

Role = Literal["admin", "gerente", "atendente", "cozinha"]
OrderStatusValue = Literal["pendente", "em_preparo", "enviado", "concluido", "cancelado"]
ComplementModeValue = Literal["single", "multiple"]
DeliveryType = Literal["entrega", "retirada"]
StoreStatusValue = Literal["aberto", "fechado"]
ServiceModeValue = Literal["entrega", "retirada", "ambos"]


# =============================================================================
# Authentication Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class UserInfo(BaseModel):
    """Authenticated staff member with effective grants."""

    id: int
    email: str
    nome: str | None = None
    role: Role | None = None
    is_admin: bool = False
    permissions: list[str] = Field(default_factory=list)


class LoginResponse(BaseModel):
    """Login response with JWT token."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds
    user: UserInfo


class SetupStatusOutput(BaseModel):
    needs_setup: bool


class SetupRequest(BaseModel):
    """First-run creation of the initial admin account."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    nome: str = Field(min_length=2, max_length=100)


# =============================================================================
# Storefront Catalog Schemas
# =============================================================================


class ComplementOptionOutput(BaseModel):
    id: int
    nome: str
    additional_price_cents: int
    ordem: int = 0

    class Config:
        from_attributes = True


class ComplementGroupOutput(BaseModel):
    id: int
    nome: str
    tipo: ComplementModeValue
    obrigatorio: bool
    ordem: int = 0
    options: list[ComplementOptionOutput] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CategoryPublicOutput(BaseModel):
    id: int
    nome: str
    ordem: int

    class Config:
        from_attributes = True


class MenuItemPublicOutput(BaseModel):
    """Menu item as shown on the storefront."""

    id: int
    nome: str
    descricao: str | None = None
    price_cents: int
    image_url: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    category_id: int | None = None
    destaque: bool = False
    complement_groups: list[ComplementGroupOutput] = Field(default_factory=list)


class MenuOutput(BaseModel):
    categories: list[CategoryPublicOutput]
    items: list[MenuItemPublicOutput]


class StoreConfigPublicOutput(BaseModel):
    """Storefront view of the restaurant configuration."""

    nome_restaurante: str
    endereco: str
    cidade: str | None = None
    estado: str | None = None
    whatsapp_oficial: str
    status_funcionamento: StoreStatusValue
    modo_atendimento: ServiceModeValue
    tempo_entrega: str | None = None
    cor_primaria: str | None = None
    cor_secundaria: str | None = None
    logo_url: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    valor_pedido_minimo_cents: int
    valor_frete_gratis_cents: int
    taxa_entrega_cents: int
    aceitar_loja_fechada: bool
    habilitar_whatsapp: bool
    accepting_orders: bool

    class Config:
        from_attributes = True


class DeliveryZonePublicOutput(BaseModel):
    id: int
    nome: str
    cidade: str | None = None
    estado: str | None = None
    taxa_entrega_cents: int
    pedido_minimo_cents: int

    class Config:
        from_attributes = True


# =============================================================================
# Cart / Checkout Schemas
# =============================================================================


class CartLineInput(BaseModel):
    """One cart line as sent by the storefront."""

    menu_item_id: int
    quantity: int = Field(default=1, ge=1, le=99)
    notes: str = Field(default="", max_length=400)
    option_ids: list[int] = Field(default_factory=list, max_length=50)


class CartQuoteRequest(BaseModel):
    items: list[CartLineInput] = Field(default_factory=list, max_length=50)
    tipo_entrega: DeliveryType = "entrega"
    delivery_zone_id: int | None = None


class SelectedComplementOutput(BaseModel):
    group_name: str
    option_name: str
    additional_price_cents: int

    class Config:
        from_attributes = True


class CartLineOutput(BaseModel):
    menu_item_id: int
    nome: str
    quantity: int
    notes: str
    unit_price_cents: int
    line_total_cents: int
    complements: list[SelectedComplementOutput] = Field(default_factory=list)


class CartQuoteOutput(BaseModel):
    """Cart re-priced against the current catalog."""

    lines: list[CartLineOutput]
    subtotal_cents: int
    delivery_fee_cents: int
    total_cents: int
    minimum_order_cents: int
    meets_minimum: bool


class CheckoutRequest(CartQuoteRequest):
    """Order submission: cart plus customer identification."""

    nome: str = Field(min_length=2, max_length=100)
    whatsapp: str = Field(min_length=10, max_length=30)
    endereco: str | None = Field(default=None, max_length=300)
    notes: str | None = Field(default=None, max_length=400)
    data_nascimento: date | None = None


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItemOutput(BaseModel):
    id: int
    menu_item_id: int | None = None
    menu_item_name: str
    unit_price_cents: int
    quantity: int
    notes: str | None = None
    line_total_cents: int
    complements: list[SelectedComplementOutput] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CustomerSummary(BaseModel):
    id: int
    nome: str
    whatsapp: str
    endereco: str | None = None

    class Config:
        from_attributes = True


class StatusHistoryOutput(BaseModel):
    id: int
    status: OrderStatusValue
    changed_at: datetime
    changed_by: int | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class OrderOutput(BaseModel):
    id: str
    short_ref: str
    status: OrderStatusValue
    tipo_entrega: DeliveryType
    delivery_address: str | None = None
    notes: str | None = None
    subtotal_cents: int
    delivery_fee_cents: int
    total_cents: int
    created_at: datetime
    customer: CustomerSummary | None = None
    items: list[OrderItemOutput] = Field(default_factory=list)

    class Config:
        from_attributes = True


class OrderTrackingOutput(BaseModel):
    """Initial load of the tracking page: order plus full history ascending."""

    order: OrderOutput
    history: list[StatusHistoryOutput]


class CheckoutResponse(BaseModel):
    order: OrderOutput
    tracking_url: str
    customer_whatsapp_link: str | None = None
    store_whatsapp_link: str | None = None

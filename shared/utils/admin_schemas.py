"""
Pydantic schemas for admin API endpoints.
Centralized to avoid circular imports between routers and domain services.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from shared.utils.schemas import (
    ComplementModeValue,
    ComplementOptionOutput,
    CustomerSummary,
    OrderOutput,
    OrderStatusValue,
    Role,
    ServiceModeValue,
    StatusHistoryOutput,
    StoreStatusValue,
)


# =============================================================================
# Category Schemas
# =============================================================================


class CategoryOutput(BaseModel):
    id: int
    nome: str
    ordem: int
    ativo: bool
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    ordem: Optional[int] = None
    ativo: bool = True


class CategoryUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=100)
    ordem: Optional[int] = None
    ativo: Optional[bool] = None


# =============================================================================
# Menu Item Schemas
# =============================================================================


class MenuItemOutput(BaseModel):
    id: int
    nome: str
    descricao: Optional[str] = None
    price_cents: int
    image_url: Optional[str] = None
    image_urls: list[str] = Field(default_factory=list)
    category_id: Optional[int] = None
    ativo: bool
    destaque: bool
    ordem: int
    complement_group_ids: list[int] = Field(default_factory=list)
    created_at: datetime


class MenuItemCreate(BaseModel):
    nome: str = Field(min_length=1, max_length=120)
    descricao: Optional[str] = Field(default=None, max_length=1000)
    price_cents: int = Field(gt=0)
    image_url: Optional[str] = None
    image_urls: list[str] = Field(default_factory=list, max_length=10)
    category_id: Optional[int] = None
    ativo: bool = True
    destaque: bool = False
    ordem: Optional[int] = Field(default=None, ge=0)
    complement_group_ids: list[int] = Field(default_factory=list)


class MenuItemUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=120)
    descricao: Optional[str] = Field(default=None, max_length=1000)
    price_cents: Optional[int] = Field(default=None, gt=0)
    image_url: Optional[str] = None
    image_urls: Optional[list[str]] = Field(default=None, max_length=10)
    category_id: Optional[int] = None
    ativo: Optional[bool] = None
    destaque: Optional[bool] = None
    ordem: Optional[int] = None
    complement_group_ids: Optional[list[int]] = None


# =============================================================================
# Complement Schemas
# =============================================================================


class ComplementOptionInput(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    additional_price_cents: int = Field(default=0, ge=0)
    ordem: Optional[int] = Field(default=None, ge=0)


class ComplementGroupAdminOutput(BaseModel):
    id: int
    nome: str
    tipo: ComplementModeValue
    obrigatorio: bool
    ordem: int
    options: list[ComplementOptionOutput] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True


class ComplementGroupCreate(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    tipo: ComplementModeValue = "single"
    obrigatorio: bool = False
    ordem: Optional[int] = Field(default=None, ge=0)
    options: list[ComplementOptionInput] = Field(default_factory=list)


class ComplementGroupUpdate(BaseModel):
    """Options, when given, replace the group's current options."""

    nome: Optional[str] = Field(default=None, min_length=1, max_length=100)
    tipo: Optional[ComplementModeValue] = None
    obrigatorio: Optional[bool] = None
    ordem: Optional[int] = None
    options: Optional[list[ComplementOptionInput]] = None


# =============================================================================
# Customer Schemas
# =============================================================================


class CustomerOutput(BaseModel):
    id: int
    nome: str
    whatsapp: str
    whatsapp_digits: str
    endereco: Optional[str] = None
    data_nascimento: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerCreate(BaseModel):
    nome: str = Field(min_length=2, max_length=100)
    whatsapp: str = Field(min_length=10, max_length=30)
    endereco: Optional[str] = Field(default=None, max_length=300)
    data_nascimento: Optional[date] = None


class CustomerUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=2, max_length=100)
    whatsapp: Optional[str] = Field(default=None, min_length=10, max_length=30)
    endereco: Optional[str] = Field(default=None, max_length=300)
    data_nascimento: Optional[date] = None


# =============================================================================
# User Schemas
# =============================================================================


class UserOutput(BaseModel):
    id: int
    email: str
    nome: Optional[str] = None
    role: Optional[Role] = None
    permissions: list[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime


class UserCreate(BaseModel):
    """Permissions default to the role template when omitted."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    nome: str = Field(min_length=2, max_length=100)
    role: Role
    permissions: Optional[list[str]] = None


class UserUpdate(BaseModel):
    """Role and permissions, when given, replace the current grants."""

    nome: Optional[str] = Field(default=None, min_length=2, max_length=100)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    role: Optional[Role] = None
    permissions: Optional[list[str]] = None


# =============================================================================
# Restaurant Config Schemas
# =============================================================================


class RestaurantConfigOutput(BaseModel):
    nome_restaurante: str
    endereco: str
    cidade: Optional[str] = None
    estado: Optional[str] = None
    telefone: Optional[str] = None
    whatsapp_oficial: str
    status_funcionamento: StoreStatusValue
    modo_atendimento: ServiceModeValue
    tempo_entrega: Optional[str] = None
    cor_primaria: Optional[str] = None
    cor_secundaria: Optional[str] = None
    logo_url: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    valor_pedido_minimo_cents: int
    valor_frete_gratis_cents: int
    taxa_entrega_cents: int
    aceitar_loja_fechada: bool
    habilitar_whatsapp: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RestaurantConfigUpdate(BaseModel):
    """Full-row upsert of the configuration (last write wins)."""

    nome_restaurante: str = Field(min_length=1, max_length=120)
    endereco: str = Field(default="", max_length=300)
    cidade: Optional[str] = None
    estado: Optional[str] = None
    telefone: Optional[str] = None
    whatsapp_oficial: str = Field(default="", max_length=30)
    status_funcionamento: StoreStatusValue = "aberto"
    modo_atendimento: ServiceModeValue = "ambos"
    tempo_entrega: Optional[str] = None
    cor_primaria: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    cor_secundaria: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    logo_url: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    valor_pedido_minimo_cents: int = Field(default=0, ge=0)
    valor_frete_gratis_cents: int = Field(default=0, ge=0)
    taxa_entrega_cents: int = Field(default=0, ge=0)
    aceitar_loja_fechada: bool = False
    habilitar_whatsapp: bool = True


# =============================================================================
# Delivery Zone Schemas
# =============================================================================


class DeliveryZoneOutput(BaseModel):
    id: int
    nome: str
    cidade: Optional[str] = None
    estado: Optional[str] = None
    taxa_entrega_cents: int
    pedido_minimo_cents: int
    ativo: bool
    ordem: int

    class Config:
        from_attributes = True


class DeliveryZoneCreate(BaseModel):
    nome: str = Field(min_length=1, max_length=100)
    cidade: Optional[str] = None
    estado: Optional[str] = None
    taxa_entrega_cents: int = Field(default=0, ge=0)
    pedido_minimo_cents: int = Field(default=0, ge=0)
    ativo: bool = True
    ordem: Optional[int] = Field(default=None, ge=0)


class DeliveryZoneUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=100)
    cidade: Optional[str] = None
    estado: Optional[str] = None
    taxa_entrega_cents: Optional[int] = Field(default=None, ge=0)
    pedido_minimo_cents: Optional[int] = Field(default=None, ge=0)
    ativo: Optional[bool] = None
    ordem: Optional[int] = None


# =============================================================================
# Order Schemas
# =============================================================================


class OrderTransitionRequest(BaseModel):
    status: OrderStatusValue
    notes: Optional[str] = Field(default=None, max_length=400)


class WhatsAppLinkOutput(BaseModel):
    url: str
    message: str


class OrderTransitionResponse(BaseModel):
    order: OrderOutput
    notification: Optional[WhatsAppLinkOutput] = None


class CancellationMessageRequest(BaseModel):
    explanation: str = Field(min_length=3, max_length=400)


class OrderDetailOutput(BaseModel):
    order: OrderOutput
    history: list[StatusHistoryOutput]
    allowed_transitions: list[OrderStatusValue]


class OrderBoardOutput(BaseModel):
    """Orders grouped by status, newest first within each column."""

    columns: dict[str, list[OrderOutput]]
    total: int


# =============================================================================
# Dashboard Schemas
# =============================================================================


class DashboardStatsOutput(BaseModel):
    total_customers: int
    total_menu_items: int
    total_categories: int
    orders_today: int
    revenue_today_cents: int
    pending_orders: int
    recent_orders: list[OrderOutput] = Field(default_factory=list)


class CustomerWithOrdersOutput(CustomerOutput):
    order_count: int = 0
    last_order_at: Optional[datetime] = None


# =============================================================================
# Audit Schemas
# =============================================================================


class AuditLogOutput(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    table_name: str
    record_id: str
    action: str
    changes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


__all__ = [
    "CategoryOutput",
    "CategoryCreate",
    "CategoryUpdate",
    "MenuItemOutput",
    "MenuItemCreate",
    "MenuItemUpdate",
    "ComplementOptionInput",
    "ComplementGroupAdminOutput",
    "ComplementGroupCreate",
    "ComplementGroupUpdate",
    "CustomerOutput",
    "CustomerCreate",
    "CustomerUpdate",
    "CustomerSummary",
    "UserOutput",
    "UserCreate",
    "UserUpdate",
    "RestaurantConfigOutput",
    "RestaurantConfigUpdate",
    "DeliveryZoneOutput",
    "DeliveryZoneCreate",
    "DeliveryZoneUpdate",
    "OrderTransitionRequest",
    "WhatsAppLinkOutput",
    "OrderTransitionResponse",
    "CancellationMessageRequest",
    "OrderDetailOutput",
    "OrderBoardOutput",
    "DashboardStatsOutput",
    "CustomerWithOrdersOutput",
    "AuditLogOutput",
]

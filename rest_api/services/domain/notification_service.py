"""
WhatsApp notification composer.

Messages are handed off as wa.me deep links; delivery is fire-and-forget
(no confirmation, no retry). Status changes get a templated message, except
cancellation, which the operator sends with a written explanation.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

from rest_api.models import Order, RestaurantConfig
from shared.config.constants import OrderStatus
from shared.config.logging import get_logger, mask_phone
from shared.config.settings import settings
from shared.utils.exceptions import ValidationError
from shared.utils.validators import format_brl, phone_digits

logger = get_logger(__name__)


@dataclass(frozen=True)
class WhatsAppMessage:
    phone: str
    message: str
    url: str


def tracking_url(order_id: str) -> str:
    return f"{settings.storefront_base_url.rstrip('/')}/pedido/{order_id}"


def international_digits(phone: str | None) -> str:
    """Digits with the country code; national numbers (<= 11 digits) get it prefixed."""
    digits = phone_digits(phone)
    if digits and len(digits) <= 11:
        digits = f"{settings.whatsapp_country_code}{digits}"
    return digits


def whatsapp_link(phone: str | None, message: str) -> WhatsAppMessage | None:
    """Build https://wa.me/<digits>?text=<encoded>. None without a number."""
    digits = international_digits(phone)
    if not digits:
        return None
    return WhatsAppMessage(
        phone=digits,
        message=message,
        url=f"https://wa.me/{digits}?text={quote(message, safe='')}",
    )


def _signature(config: RestaurantConfig) -> str:
    return f"_{config.nome_restaurante}_"


def _ref(order: Order) -> str:
    return order.short_ref


def _delivery_line(order: Order) -> str:
    if order.tipo_entrega == "retirada":
        return "*Retirada no local*"
    return f"*Entrega:* {order.delivery_address or '-'}"


def _status_templates(order: Order, config: RestaurantConfig) -> dict[str, str]:
    nome = order.customer.nome if order.customer else "cliente"
    url = tracking_url(order.id)
    sig = _signature(config)
    return {
        OrderStatus.PREPARING: (
            f"*PEDIDO EM PREPARO!*\n\n"
            f"Olá *{nome}*! Seu pedido #{_ref(order)} está sendo preparado.\n\n"
            f"Acompanhe em tempo real:\n{url}\n\n{sig}"
        ),
        OrderStatus.SENT: (
            f"*PEDIDO A CAMINHO!*\n\n"
            f"Olá *{nome}*! Seu pedido #{_ref(order)} saiu para entrega.\n\n"
            f"{_delivery_line(order)}\n\nAcompanhe:\n{url}\n\n{sig}"
        ),
        OrderStatus.COMPLETED: (
            f"*PEDIDO CONCLUÍDO!*\n\n"
            f"Obrigado por escolher o {config.nome_restaurante}!\n\n"
            f"Pedido #{_ref(order)} foi concluído com sucesso. Até a próxima!"
        ),
    }


class NotificationService:
    """Composes customer and store messages for one restaurant configuration."""

    def __init__(self, config: RestaurantConfig):
        self._config = config

    @property
    def enabled(self) -> bool:
        return bool(self._config.habilitar_whatsapp)

    def _customer_link(self, order: Order, message: str) -> WhatsAppMessage | None:
        if not self.enabled or order.customer is None:
            return None
        return whatsapp_link(order.customer.whatsapp, message)

    def order_confirmation(self, order: Order) -> WhatsAppMessage | None:
        """Message the customer sends themself a copy of after checkout."""
        nome = order.customer.nome if order.customer else "cliente"
        eta = self._config.tempo_entrega or "30-40 min"
        message = (
            f"*PEDIDO CONFIRMADO!*\n\n"
            f"Olá *{nome}*! Seu pedido foi recebido com sucesso.\n\n"
            f"*Pedido #{_ref(order)}*\n"
            f"Previsão: {eta}\n\n"
            f"*Total: {format_brl(order.total_cents)}*\n"
            f"{_delivery_line(order)}\n\n"
            f"Acompanhe seu pedido em: {tracking_url(order.id)}\n\n"
            f"{_signature(self._config)}"
        )
        return self._customer_link(order, message)

    def store_new_order_alert(self, order: Order) -> WhatsAppMessage | None:
        """Message to the store's official number announcing a new order."""
        if not self.enabled or not self._config.whatsapp_oficial:
            return None

        customer = order.customer
        lines = [
            "*NOVO PEDIDO!*",
            "",
            f"*Cliente:* {customer.nome if customer else '-'}",
            f"{customer.whatsapp if customer else ''}",
            "",
            f"*Pedido #{_ref(order)}*",
        ]
        for item in order.items:
            lines.append(f"{item.quantity}x {item.menu_item_name} ({format_brl(item.line_total_cents)})")
            for complement in item.complements:
                lines.append(f"   + {complement.option_name}")
            if item.notes:
                lines.append(f"   Obs: {item.notes}")
        lines += [
            "",
            f"Total: {format_brl(order.total_cents)}",
            "",
            _delivery_line(order),
        ]
        if order.notes:
            lines += ["", f"*Observações:* {order.notes}"]
        return whatsapp_link(self._config.whatsapp_oficial, "\n".join(lines))

    def status_update(self, order: Order, new_status: str) -> WhatsAppMessage | None:
        """
        Templated message for a forward transition.

        Entering `cancelado` returns None: cancellation is announced through
        cancellation() with an operator-written explanation.
        """
        if new_status == OrderStatus.CANCELED:
            return None
        message = _status_templates(order, self._config).get(new_status)
        if message is None:
            return None
        return self._customer_link(order, message)

    def cancellation(self, order: Order, explanation: str) -> WhatsAppMessage | None:
        """
        Raises:
            ValidationError: If the explanation is blank.
        """
        explanation = (explanation or "").strip()
        if not explanation:
            raise ValidationError("Informe o motivo do cancelamento", field="explanation")

        nome = order.customer.nome if order.customer else "cliente"
        contact = self._config.telefone or self._config.whatsapp_oficial
        message = (
            f"*PEDIDO CANCELADO*\n\n"
            f"Olá *{nome}*, infelizmente seu pedido #{_ref(order)} foi cancelado.\n\n"
            f"*Motivo:* {explanation}\n\n"
        )
        if contact:
            message += f"Para mais informações, entre em contato: {contact}\n\n"
        message += _signature(self._config)

        link = self._customer_link(order, message)
        if link is not None:
            logger.info("Cancellation message composed", order_id=order.id, phone=mask_phone(link.phone))
        return link

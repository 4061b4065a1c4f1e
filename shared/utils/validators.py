"""
Shared validators for input sanitization.
"""

import re
from typing import Optional
from urllib.parse import urlparse

from shared.config.constants import Limits

# Internal hosts that should never appear in image URLs (SSRF prevention)
BLOCKED_HOSTS = [
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "10.",
    "192.168.",
    "169.254.",
    "::1",
    "metadata.google",
] + [f"172.{n}." for n in range(16, 32)]

BLOCKED_SCHEMES = {"javascript", "data", "file", "ftp", "mailto", "tel"}

_NON_DIGITS = re.compile(r"[^0-9]+")


def validate_image_url(url: Optional[str]) -> Optional[str]:
    """
    Validate and sanitize an image URL.

    Returns:
        The stripped URL, or None for empty input.

    Raises:
        ValueError: If the URL is invalid or points at an internal host.
    """
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None

    if len(url) > 2048:
        raise ValueError("URL muito longa (máximo 2048 caracteres)")

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme in BLOCKED_SCHEMES or scheme not in ("http", "https"):
        raise ValueError("Somente URLs HTTP/HTTPS são permitidas")

    host = (parsed.hostname or "").lower()
    if not host:
        raise ValueError("URL sem host válido")

    for blocked in BLOCKED_HOSTS:
        if host.startswith(blocked):
            raise ValueError("URL interna não permitida")

    return url


def escape_like_pattern(value: str) -> str:
    """
    Escape % and _ so user input is matched literally in LIKE queries.
    Use with `.ilike(pattern, escape="\\\\")`.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def phone_digits(phone: Optional[str]) -> str:
    """Strip everything but digits: '+55 (75) 99999-9999' -> '5575999999999'."""
    return _NON_DIGITS.sub("", phone or "")


def validate_phone(phone: Optional[str]) -> str:
    """
    Validate a WhatsApp number and return its digits.

    Raises:
        ValueError: If the number does not have 10 to 13 digits.
    """
    digits = phone_digits(phone)
    if not Limits.PHONE_MIN_DIGITS <= len(digits) <= Limits.PHONE_MAX_DIGITS:
        raise ValueError(
            f"WhatsApp inválido: informe de {Limits.PHONE_MIN_DIGITS} a "
            f"{Limits.PHONE_MAX_DIGITS} dígitos"
        )
    return digits


def sanitize_notes(notes: Optional[str], max_length: int = Limits.NOTES_MAX_LENGTH) -> str:
    """Trim free-text notes and cap their length."""
    return (notes or "").strip()[:max_length]


def validate_quantity(quantity: int, min_val: int = 1, max_val: int = Limits.MAX_ITEM_QUANTITY) -> int:
    """
    Raise quantity to at least min_val.

    Raises:
        ValueError: If quantity is not an integer or exceeds max_val.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValueError("Quantidade deve ser um número inteiro")
    if quantity > max_val:
        raise ValueError(f"Quantidade máxima por item é {max_val}")
    return max(min_val, quantity)


def format_brl(cents: int) -> str:
    """Format integer cents for messages: 2600 -> 'R$ 26.00'."""
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}R$ {cents // 100}.{cents % 100:02d}"

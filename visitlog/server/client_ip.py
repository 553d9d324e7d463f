"""Client address extraction from ASGI scopes."""
from __future__ import annotations

import ipaddress
from typing import TYPE_CHECKING

from visitlog.domain.visits.models import UNKNOWN
from visitlog.services.geolocation.client import LOCALHOST

if TYPE_CHECKING:
    from litestar.types import Scope

LOOPBACK_ADDRESSES = frozenset(
    ipaddress.ip_address(address) for address in ("127.0.0.1", "::1", "::ffff:127.0.0.1")
)


def parse_ip(value: str | None) -> str | None:
    """Return ``value`` stripped if it is an IPv4/IPv6 literal, else None."""
    value = (value or "").strip()
    if not value:
        return None
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return None
    # Zone ids ("fe80::1%eth0") are not valid in a URL path
    if getattr(address, "scope_id", None):
        return None
    return value


def forwarded_for(scope: "Scope") -> str | None:
    """Return the originating client from ``X-Forwarded-For``, if present and valid.

    The header may hold a chain ("client, proxy1, proxy2"); the first entry
    is the original client. Anything that is not an IP address is ignored.
    """
    for name, value in scope.get("headers", []):
        if name.lower() == b"x-forwarded-for":
            first = value.decode("latin-1").split(",")[0]
            return parse_ip(first)
    return None


def socket_address(scope: "Scope") -> str | None:
    client = scope.get("client")
    if client and client[0]:
        return client[0]
    return None


def normalize_ip(ip: str) -> str:
    """Collapse loopback addresses to the "localhost" sentinel."""
    try:
        loopback = ipaddress.ip_address(ip) in LOOPBACK_ADDRESSES
    except ValueError:
        return ip
    return LOCALHOST if loopback else ip


def resolve_client_ip(scope: "Scope") -> str:
    """Forwarded header first, then the socket address, else "Unknown"."""
    return normalize_ip(forwarded_for(scope) or parse_ip(socket_address(scope)) or UNKNOWN)

"""Outbound URL screening (SSRF defense).

Hostnames are matched against known internal names and prefixes. IP
literals, including the legacy decimal, octal and hex IPv4 spellings that
resolvers still accept, are parsed with :mod:`ipaddress` and rejected when
they fall in a non-public range. Nothing is resolved through DNS, so a
public name that later resolves to a private address is not caught here.
"""

from __future__ import annotations

import ipaddress
import socket
from typing import Optional, Union
from urllib.parse import urlsplit, urlunsplit

from link_preview.errors import UnsafeUrlError

ALLOWED_SCHEMES = ("http", "https")

BLOCKED_HOSTNAMES = ("localhost", "localhost.localdomain", "local", "internal")

BLOCKED_PREFIXES = (
    # IPv4 loopback and "this network"
    "127.",
    "0.",
    # IPv4 private ranges
    "10.",
    *(f"172.{octet}." for octet in range(16, 32)),
    "192.168.",
    # Link-local, cloud metadata service
    "169.254.",
    # Multicast
    "224.",
    "239.",
    # IPv6 loopback, unspecified, link-local, unique-local
    "::",
    "0:",
    "fe8",
    "fe9",
    "fea",
    "feb",
    "fc",
    "fd",
)


IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def parse_ip_literal(host: str) -> Optional[IPAddress]:
    """Parse ``host`` as an IP address, accepting inet_aton forms like ``0x7f000001``."""
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass
    if ":" in host:
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(host))
    except (OSError, ValueError):
        return None


def is_internal_address(address: IPAddress) -> bool:
    mapped = getattr(address, "ipv4_mapped", None)
    if mapped is not None:
        address = mapped
    return (
        address.is_loopback
        or address.is_private
        or address.is_link_local
        or address.is_multicast
        or address.is_unspecified
    )


def _host_of(raw: str) -> tuple[str, str]:
    try:
        parts = urlsplit(raw.strip())
        host = parts.hostname
    except ValueError as exc:
        raise UnsafeUrlError("Invalid URL format", raw) from exc
    if not parts.scheme or not parts.netloc:
        raise UnsafeUrlError("Invalid URL format", raw)
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise UnsafeUrlError("Only HTTP(S) URLs allowed", raw)
    if not host:
        raise UnsafeUrlError("Invalid URL format", raw)
    return parts.scheme.lower(), host.lower().strip("[]").rstrip(".")


def is_private_host(host: str) -> bool:
    """Return True when the hostname or IP literal points at an internal target."""
    host = host.lower().strip("[]")
    if any(host == name or host.endswith("." + name) for name in BLOCKED_HOSTNAMES):
        return True
    address = parse_ip_literal(host)
    if address is not None:
        return is_internal_address(address)
    # IPv6 literals are only ever recognised when they contain a colon, so a
    # public name such as "fdroid.org" is not mistaken for fd00::/8.
    if ":" in host:
        return host == "::1" or any(host.startswith(p) for p in BLOCKED_PREFIXES)
    return any(host.startswith(p) for p in BLOCKED_PREFIXES if "." in p)


def validate_url(raw: str) -> str:
    """Return the normalized URL or raise :class:`UnsafeUrlError`."""
    if not raw or not isinstance(raw, str):
        raise UnsafeUrlError("URL is required", raw)
    scheme, host = _host_of(raw)
    if host.endswith(".local"):
        raise UnsafeUrlError("Local URLs are not allowed", raw)
    if is_private_host(host):
        raise UnsafeUrlError("Cannot fetch private/internal URLs", raw)

    parts = urlsplit(raw.strip())
    path = parts.path or "/"
    return urlunsplit((scheme, parts.netloc.lower(), path, parts.query, parts.fragment))


def is_safe_url(raw: str) -> bool:
    try:
        validate_url(raw)
    except UnsafeUrlError:
        return False
    return True

# Overview: CSRF mitigation for cookie-authenticated mutation endpoints.

"""
Origin Guard

- No Origin header: allow (same-site navigations usually omit it).
- Origin present: normalize to scheme://host[:port] and require membership
  in the configured allow-list.
- No allow-list configured (neither ALLOWED_ORIGINS nor PUBLIC_BASE_URL):
  deny. The guard fails closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from flask import current_app


DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class OriginDecision:
    allowed: bool
    reason: str | None = None


ALLOW = OriginDecision(allowed=True)


def normalize_origin(origin: str) -> str:
    """
    Reduce a URL or Origin header to scheme://host[:port].

    Default ports are dropped; unparseable input is returned stripped.
    """
    value = origin.strip()
    try:
        parts = urlsplit(value)
        port = parts.port
    except ValueError:
        return value

    if not parts.scheme or not parts.hostname:
        return value

    scheme = parts.scheme.lower()
    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def parse_allowed_origins(allowed_origins: str | None, public_base_url: str | None = None) -> frozenset[str]:
    if allowed_origins:
        return frozenset(
            normalize_origin(item)
            for item in allowed_origins.split(",")
            if item.strip()
        )
    if public_base_url and public_base_url.strip():
        return frozenset([normalize_origin(public_base_url)])
    return frozenset()


def configured_origins() -> frozenset[str]:
    config = current_app.config
    return parse_allowed_origins(config.get("ALLOWED_ORIGINS"), config.get("PUBLIC_BASE_URL"))


def check(request_origin: str | None, allowed: frozenset[str] | None = None) -> OriginDecision:
    if not request_origin:
        return ALLOW

    if allowed is None:
        allowed = configured_origins()

    if not allowed:
        return OriginDecision(False, "Origin not allowed (no ALLOWED_ORIGINS configured)")

    if normalize_origin(request_origin) not in allowed:
        return OriginDecision(False, "Origin not allowed")

    return ALLOW

"""URL pre-checks that run before any network access.

Only public http(s) hosts are allowed.  Loopback, private, link-local and
unspecified addresses are rejected, together with hostnames that cloud
providers use for instance metadata.  The check is purely syntactic: no DNS
lookups are performed, so it never touches the network.
"""

from __future__ import annotations

import ipaddress
import re
import socket
from urllib.parse import urlsplit

from ojtgen.errors import InputValidationError

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
# "mailto:x" or "javascript:x" but not "example.com:8080"
_OPAQUE_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*:(?!\d)", re.IGNORECASE)
_NUMERIC_HOST_RE = re.compile(r"^[0-9.]+$")
# integer IPv4 spellings the resolver accepts: "2852039166", "0x7f000001", "0177.1"
_LEGACY_IPV4_RE = re.compile(r"^(?:0x[0-9a-f]*|[0-9]+)(?:\.(?:0x[0-9a-f]*|[0-9]+)){0,3}$")
_ALLOWED_SCHEMES = frozenset({"http", "https"})
_BLOCKED_HOSTNAMES = frozenset(
    {
        "localhost",
        "metadata",
        "metadata.google.internal",
        "metadata.goog",
        "metadata.azure.com",
        "instance-data",
        "instance-data.ec2.internal",
    }
)
_BLOCKED_SUFFIXES = (".localhost", ".internal")
_BLOCKED_PREFIXES = ("127.", "10.", "192.168.", "169.254.", "0.0.0.0") + tuple(
    f"172.{octet}." for octet in range(16, 32)
)


def normalize_url(url: str) -> str:
    """Trim *url* and default to https:// when no scheme was given."""

    candidate = url.strip()
    if not candidate:
        raise InputValidationError("url", "URL cannot be empty")
    if _SCHEME_RE.match(candidate):
        return candidate
    if _OPAQUE_SCHEME_RE.match(candidate):
        scheme = candidate.split(":", 1)[0]
        raise InputValidationError("url", f"Unsupported URL scheme: {scheme}")
    return f"https://{candidate}"


def parse_numeric_ipv4(hostname: str) -> ipaddress.IPv4Address | None:
    """Decode decimal, hex, octal and short dotted IPv4 spellings.

    Returns None for hosts that are not written as numbers at all; raises
    ``ValueError`` for numeric-looking hosts the resolver would not accept.
    """

    if not _LEGACY_IPV4_RE.match(hostname):
        return None
    try:
        packed = socket.inet_aton(hostname)
    except OSError as exc:
        raise ValueError(f"unparseable numeric host: {hostname}") from exc
    return ipaddress.IPv4Address(packed)


def _is_blocked_ip(hostname: str) -> bool:
    try:
        numeric = parse_numeric_ipv4(hostname)
    except ValueError:
        return True
    try:
        address = numeric if numeric is not None else ipaddress.ip_address(hostname)
    except ValueError:
        return False

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped

    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
        or address.is_multicast
    )


def is_blocked_host(hostname: str) -> bool:
    """Return True when *hostname* points at a non-public destination."""

    host = hostname.strip().lower().rstrip(".").strip("[]")
    if not host:
        return True
    if host in _BLOCKED_HOSTNAMES or host.endswith(_BLOCKED_SUFFIXES):
        return True
    if _NUMERIC_HOST_RE.match(host) and host.startswith(_BLOCKED_PREFIXES):
        return True
    return _is_blocked_ip(host)


def validate_public_url(url: str) -> str:
    """Return the normalized URL or raise ``InputValidationError``.

    A missing scheme defaults to https.  The scheme must be http or https and
    the host must not be loopback, private, link-local or a metadata service.
    """

    candidate = normalize_url(url)
    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
    except ValueError as exc:
        raise InputValidationError("url", f"Malformed URL: {exc}") from exc

    if parts.scheme.lower() not in _ALLOWED_SCHEMES:
        raise InputValidationError("url", f"Unsupported URL scheme: {parts.scheme or '(none)'}")
    if not hostname:
        raise InputValidationError("url", "URL must include a host")
    if is_blocked_host(hostname):
        raise InputValidationError("url", f"URL host is not allowed: {hostname}")

    return candidate

from __future__ import annotations

import ipaddress
from typing import Mapping

from app.core.exceptions import AddressParseError, MissingPortError

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

DEFAULT_FORWARDED_HEADER = "X-Forwarded-For"


def split_host_port(addr: str) -> tuple[str, str]:
    """Split "host:port" or "[host]:port" into host and port.

    Raises MissingPortError when the address carries no port, AddressParseError
    when it is malformed in any other way.
    """
    i = addr.rfind(":")
    if i < 0:
        raise MissingPortError(f"missing port in address: {addr!r}")

    if addr.startswith("["):
        end = addr.find("]")
        if end < 0:
            raise AddressParseError(f"missing ']' in address: {addr!r}")
        if end + 1 == len(addr):
            raise MissingPortError(f"missing port in address: {addr!r}")
        if end + 1 != i:
            if addr[end + 1] == ":":
                raise AddressParseError(f"too many colons in address: {addr!r}")
            raise MissingPortError(f"missing port in address: {addr!r}")
        host = addr[1:end]
        if "[" in addr[1:]:
            raise AddressParseError(f"unexpected '[' in address: {addr!r}")
        if "]" in addr[end + 1:]:
            raise AddressParseError(f"unexpected ']' in address: {addr!r}")
    else:
        host = addr[:i]
        if ":" in host:
            raise AddressParseError(f"too many colons in address: {addr!r}")
        if "[" in addr:
            raise AddressParseError(f"unexpected '[' in address: {addr!r}")
        if "]" in addr:
            raise AddressParseError(f"unexpected ']' in address: {addr!r}")

    return host, addr[i + 1:]


def format_peer_address(host: str | None, port: int | None = None) -> str:
    if not host:
        return ""
    if port is None:
        return host
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def normalize_ip(ip: IPAddress) -> IPAddress:
    # ::ffff:a.b.c.d and a.b.c.d are the same client
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def parse_ip(value: str) -> IPAddress:
    try:
        ip = ipaddress.ip_address(value)
    except ValueError:
        raise AddressParseError(f"unable to parse address: {value!r}") from None
    # Zoned literals (fe80::1%eth0) are not client addresses.
    if getattr(ip, "scope_id", None):
        raise AddressParseError(f"unable to parse address: {value!r}")
    return normalize_ip(ip)


def resolve_client_ip(
    headers: Mapping[str, str],
    remote_addr: str,
    forwarded_header: str = DEFAULT_FORWARDED_HEADER,
) -> IPAddress:
    """Return the originating client address of a request.

    The first entry of the forwarding header wins when the header is present,
    the proxy chain is trusted as-is. Otherwise the transport peer address is
    used with its port stripped.
    """
    forwarded = headers.get(forwarded_header) if forwarded_header else None
    if forwarded:
        candidate = forwarded.split(",", 1)[0].strip()
    else:
        try:
            candidate, _port = split_host_port(remote_addr)
        except MissingPortError:
            candidate = remote_addr
    return parse_ip(candidate)

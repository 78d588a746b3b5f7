"""
Browser/network fingerprint used to detect hijacked session cookies.

The digest covers Accept-Language, Accept, User-Agent and the resolved remote
address. Accept-Encoding is left out: some browsers send a different value on
GET and POST within the same session.
"""

from __future__ import annotations

import hashlib
import ipaddress
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict


WILDCARD = "*"

_Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class RequestMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    accept_language: Optional[str] = None
    accept: Optional[str] = None
    user_agent: Optional[str] = None
    remote_addr: str = ""
    method: str = "GET"
    path: str = "/"

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        *,
        peer_addr: Optional[str],
        trusted_proxies: Iterable[str] = (),
        method: str = "GET",
        path: str = "/",
    ) -> "RequestMetadata":
        h = {str(k).lower(): v for k, v in headers.items()}
        return cls(
            accept_language=h.get("accept-language"),
            accept=h.get("accept"),
            user_agent=h.get("user-agent"),
            remote_addr=resolve_remote_addr(peer_addr, h.get("x-forwarded-for"), trusted_proxies),
            method=str(method or "GET").upper(),
            path=str(path or "/"),
        )


def _networks(trusted_proxies: Iterable[str]) -> List[_Network]:
    return [ipaddress.ip_network(str(p), strict=False) for p in trusted_proxies]


def _parse_ip(value: str) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    try:
        return ipaddress.ip_address(str(value).strip())
    except ValueError:
        return None


def _is_trusted(addr, networks: List[_Network]) -> bool:  # noqa: ANN001
    return any(addr.version == n.version and addr in n for n in networks)


def resolve_remote_addr(peer_addr: Optional[str], forwarded_for: Optional[str], trusted_proxies: Iterable[str] = ()) -> str:
    """
    Client address as seen through trusted proxies.

    X-Forwarded-For is only honoured when the direct peer is a trusted proxy.
    The chain is then walked from the right and the first address that is not
    itself a trusted proxy wins.
    """
    peer = str(peer_addr or "").strip()
    networks = _networks(trusted_proxies)
    peer_ip = _parse_ip(peer)
    if not forwarded_for or peer_ip is None or not _is_trusted(peer_ip, networks):
        return peer
    for hop in reversed(str(forwarded_for).split(",")):
        ip = _parse_ip(hop)
        if ip is None:
            continue
        if not _is_trusted(ip, networks):
            return str(ip)
    return peer


def _or_wildcard(value: Optional[str]) -> str:
    return WILDCARD if value is None else str(value)


def compute_fingerprint(request: RequestMetadata) -> str:
    raw = (
        _or_wildcard(request.accept_language)
        + _or_wildcard(request.accept)
        + _or_wildcard(request.user_agent)
        + str(request.remote_addr or "")
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()

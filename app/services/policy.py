from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Iterable

from app.core.exceptions import AddressParseError, PolicyConfigError
from app.services.client_ip import IPAddress, parse_ip

_LIST_SEPARATOR = re.compile(r"[\s,]+")


class Verdict(str, enum.Enum):
    PERMIT = "permit"
    DENY = "deny"


def split_list(raw: str | None) -> list[str]:
    return [item for item in _LIST_SEPARATOR.split(raw or "") if item]


def _canonical_ips(entries: Iterable[str]) -> frozenset[str]:
    ips = set()
    for entry in entries:
        try:
            ips.add(str(parse_ip(entry)))
        except AddressParseError:
            raise PolicyConfigError(f"invalid IP address in geoip rule list: {entry!r}") from None
    return frozenset(ips)


@dataclass(frozen=True)
class PolicyConfig:
    """Allow/block rules, built once at startup and shared by all requests.

    Country codes match case-sensitively. IP entries are stored in canonical
    text form and compared against the canonical form of the client address.
    """

    block_countries: frozenset[str] = field(default_factory=frozenset)
    block_ips: frozenset[str] = field(default_factory=frozenset)
    allow_countries: frozenset[str] = field(default_factory=frozenset)
    allow_ips: frozenset[str] = field(default_factory=frozenset)
    allow_only: bool = False

    @classmethod
    def build(
        cls,
        *,
        block_countries: Iterable[str] = (),
        block_ips: Iterable[str] = (),
        allow_countries: Iterable[str] = (),
        allow_ips: Iterable[str] = (),
        allow_only: bool = False,
    ) -> "PolicyConfig":
        return cls(
            block_countries=frozenset(block_countries),
            block_ips=_canonical_ips(block_ips),
            allow_countries=frozenset(allow_countries),
            allow_ips=_canonical_ips(allow_ips),
            allow_only=bool(allow_only),
        )

    @classmethod
    def from_settings(cls, settings) -> "PolicyConfig":
        return cls.build(
            block_countries=split_list(settings.GEOIP_BLOCK_COUNTRIES),
            block_ips=split_list(settings.GEOIP_BLOCK_IPS),
            allow_countries=split_list(settings.GEOIP_ALLOW_COUNTRIES),
            allow_ips=split_list(settings.GEOIP_ALLOW_IPS),
            allow_only=settings.GEOIP_ALLOW_ONLY,
        )

    @property
    def is_restrictive(self) -> bool:
        return self.allow_only or bool(self.block_countries or self.block_ips)


def _is_blocked(country_code: str, ip_text: str | None, policy: PolicyConfig) -> bool:
    if country_code in policy.block_countries:
        return True
    return ip_text is not None and ip_text in policy.block_ips


def _is_allowed(country_code: str, ip_text: str | None, policy: PolicyConfig) -> bool:
    if country_code in policy.allow_countries:
        return True
    return ip_text is not None and ip_text in policy.allow_ips


def evaluate(country_code: str, client_ip: IPAddress | None, policy: PolicyConfig) -> Verdict:
    """Decide whether a request may proceed.

    In allow-only mode the block list is skipped and only allow-list matches
    pass. Otherwise a request that matches no block rule passes, and a blocked
    request still passes when the allow list matches it.
    """
    ip_text = str(client_ip) if client_ip is not None else None

    if not policy.allow_only and not _is_blocked(country_code, ip_text, policy):
        return Verdict.PERMIT

    if _is_allowed(country_code, ip_text, policy):
        return Verdict.PERMIT
    return Verdict.DENY

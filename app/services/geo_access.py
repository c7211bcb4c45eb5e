from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping

from app.core.exceptions import AddressParseError
from app.services.client_ip import DEFAULT_FORWARDED_HEADER, IPAddress, resolve_client_ip
from app.services.geoip import GeoRecord, GeoResolver
from app.services.policy import PolicyConfig, Verdict, evaluate

_PLACEHOLDER = re.compile(r"\{geoip_([a-z_]+)\}")


@dataclass(frozen=True)
class RequestContext:
    client_ip: IPAddress | None
    record: GeoRecord
    verdict: Verdict

    @property
    def permitted(self) -> bool:
        return self.verdict is Verdict.PERMIT

    def attributes(self) -> dict[str, str]:
        return self.record.attributes()


def render_placeholders(template: str, attributes: Mapping[str, str]) -> str:
    def _sub(match: re.Match) -> str:
        value = attributes.get(match.group(1))
        return match.group(0) if value is None else value

    return _PLACEHOLDER.sub(_sub, template)


def parse_header_templates(raw: str | None) -> dict[str, str]:
    """Parse "Name={geoip_x};Other=..." into {name: template}."""
    templates: dict[str, str] = {}
    for item in (raw or "").split(";"):
        name, sep, template = item.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        templates[name] = template.strip()
    return templates


class GeoAccessEngine:
    """Per-request pipeline: client address, geo record, verdict.

    Holds only startup state (resolver, policy). Everything derived from a
    request lives in the RequestContext returned by evaluate().
    """

    def __init__(
        self,
        resolver: GeoResolver,
        policy: PolicyConfig,
        forwarded_header: str = DEFAULT_FORWARDED_HEADER,
        logger: logging.Logger | None = None,
    ):
        self.resolver = resolver
        self.policy = policy
        self.forwarded_header = forwarded_header
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings, logger: logging.Logger | None = None) -> "GeoAccessEngine":
        logger = logger or logging.getLogger(__name__)
        policy = PolicyConfig.from_settings(settings)
        resolver = GeoResolver.open(settings.GEOIP_DB_PATH, logger=logger)
        logger.info(
            "GeoIP policy: allow_only=%s allow_countries=%d allow_ips=%d block_countries=%d block_ips=%d",
            policy.allow_only,
            len(policy.allow_countries),
            len(policy.allow_ips),
            len(policy.block_countries),
            len(policy.block_ips),
        )
        if not policy.is_restrictive:
            logger.warning("GeoIP policy has no block rules and allow_only is off, every request is permitted")
        return cls(resolver, policy, forwarded_header=settings.GEOIP_FORWARDED_HEADER, logger=logger)

    def evaluate(self, headers: Mapping[str, str], remote_addr: str) -> RequestContext:
        client_ip = None
        try:
            client_ip = resolve_client_ip(headers, remote_addr, self.forwarded_header)
        except AddressParseError as exc:
            self.logger.warning("Client address unresolved: %s", exc)

        record = self.resolver.resolve(client_ip)
        verdict = evaluate(record.country_code, client_ip, self.policy)
        return RequestContext(client_ip=client_ip, record=record, verdict=verdict)

    def close(self) -> None:
        self.resolver.close()

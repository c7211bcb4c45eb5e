from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import geoip2.database
import geoip2.errors
import pygeohash
from maxminddb import InvalidDatabaseError

from app.core.exceptions import DatabaseOpenError, LookupWarning
from app.services.client_ip import IPAddress

LOOPBACK_COUNTRY_CODE = "**"
UNKNOWN_COUNTRY_CODE = "!!"

GEOHASH_PRECISION = 12
NAME_LOCALE = "en"


@dataclass(frozen=True)
class GeoRecord:
    country_code: str
    country_name: str = ""
    city_name: str = ""
    country_geoname_id: int = 0
    city_geoname_id: int = 0
    is_in_european_union: bool = False
    latitude: float = 0.0
    longitude: float = 0.0
    time_zone: str = ""
    geohash: str = ""

    def attributes(self) -> dict[str, str]:
        return {
            "country_code": self.country_code,
            "country_name": self.country_name,
            "country_eu": "true" if self.is_in_european_union else "false",
            "country_geoname_id": str(self.country_geoname_id),
            "city_name": self.city_name,
            "city_geoname_id": str(self.city_geoname_id),
            "latitude": f"{self.latitude:.6f}",
            "longitude": f"{self.longitude:.6f}",
            "geohash": self.geohash,
            "time_zone": self.time_zone,
        }


def _english_name(entity: Any) -> str:
    names = getattr(entity, "names", None) or {}
    return names.get(NAME_LOCALE) or ""


def _lookup_method_for(database_type: str) -> str | None:
    # First match wins.
    for marker, method in (("Enterprise", "enterprise"), ("City", "city"), ("Country", "country")):
        if marker in database_type:
            return method
    return None


class GeoResolver:
    """Resolves client addresses to GeoRecords against an opened MaxMind database.

    The reader is shared read-only across requests. Lookups never raise: a
    missing or broken entry degrades to a sentinel record ("**" for loopback,
    "!!" for anything else) and is reported on the injected logger.
    """

    def __init__(self, reader, logger: logging.Logger | None = None, lookup_method: str = "city"):
        self.reader = reader
        self.logger = logger or logging.getLogger(__name__)
        self._lookup = getattr(reader, lookup_method)

    @classmethod
    def open(cls, path: str, logger: logging.Logger | None = None) -> "GeoResolver":
        try:
            reader = geoip2.database.Reader(path, locales=[NAME_LOCALE])
        except (OSError, ValueError, InvalidDatabaseError) as exc:
            raise DatabaseOpenError(path, str(exc)) from exc

        database_type = reader.metadata().database_type or ""
        lookup_method = _lookup_method_for(database_type)
        if lookup_method is None:
            reader.close()
            raise DatabaseOpenError(path, f"unsupported database type {database_type or 'unknown'}")
        resolver = cls(reader, logger=logger, lookup_method=lookup_method)
        resolver.logger.info("GeoIP database loaded from %s (%s)", path, database_type or "unknown type")
        return resolver

    def close(self) -> None:
        self.reader.close()

    def _query(self, ip: IPAddress) -> dict[str, Any]:
        try:
            response = self._lookup(str(ip))
        except geoip2.errors.AddressNotFoundError as exc:
            raise LookupWarning(f"{ip} not found in database") from exc
        except (geoip2.errors.GeoIP2Error, InvalidDatabaseError, ValueError, TypeError, OSError) as exc:
            raise LookupWarning(f"{ip}: {exc}") from exc

        country = getattr(response, "country", None)
        city = getattr(response, "city", None)
        location = getattr(response, "location", None)
        return {
            "country_code": getattr(country, "iso_code", None) or "",
            "country_name": _english_name(country),
            "country_geoname_id": getattr(country, "geoname_id", None) or 0,
            "is_in_european_union": bool(getattr(country, "is_in_european_union", False)),
            "city_name": _english_name(city),
            "city_geoname_id": getattr(city, "geoname_id", None) or 0,
            "latitude": getattr(location, "latitude", None) or 0.0,
            "longitude": getattr(location, "longitude", None) or 0.0,
            "time_zone": getattr(location, "time_zone", None) or "",
        }

    def resolve(self, ip: IPAddress | None) -> GeoRecord:
        fields: dict[str, Any] = {}
        if ip is not None:
            try:
                fields = self._query(ip)
            except LookupWarning as exc:
                self.logger.warning("Lookup IP error: %s", exc)

        # Partial records keep their coordinates and ids, only the names are replaced.
        if not fields.get("country_code"):
            if ip is not None and ip.is_loopback:
                fields.update(country_code=LOOPBACK_COUNTRY_CODE, country_name="Loopback", city_name="Loopback")
            else:
                fields.update(country_code=UNKNOWN_COUNTRY_CODE, country_name="No Country", city_name="No City")

        latitude = fields.get("latitude", 0.0)
        longitude = fields.get("longitude", 0.0)
        return GeoRecord(
            **fields,
            geohash=pygeohash.encode(latitude, longitude, precision=GEOHASH_PRECISION),
        )

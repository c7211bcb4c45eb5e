import os
from types import SimpleNamespace

import geoip2.errors
from mmdb_writer import MMDBWriter
from netaddr import IPSet


def city_response(
    iso_code,
    country_name="",
    city_name="",
    *,
    latitude=None,
    longitude=None,
    time_zone=None,
    eu=False,
    country_geoname_id=None,
    city_geoname_id=None,
):
    return SimpleNamespace(
        country=SimpleNamespace(
            iso_code=iso_code,
            names={"en": country_name} if country_name else {},
            geoname_id=country_geoname_id,
            is_in_european_union=eu,
        ),
        city=SimpleNamespace(
            names={"en": city_name} if city_name else {},
            geoname_id=city_geoname_id,
        ),
        location=SimpleNamespace(latitude=latitude, longitude=longitude, time_zone=time_zone),
    )


def country_response(iso_code, country_name=""):
    return SimpleNamespace(
        country=SimpleNamespace(
            iso_code=iso_code,
            names={"en": country_name} if country_name else {},
            geoname_id=None,
            is_in_european_union=False,
        ),
    )


class FakeReader:
    """Stands in for geoip2.database.Reader, keyed by address text."""

    def __init__(self, records=None, errors=None):
        self.records = dict(records or {})
        self.errors = dict(errors or {})
        self.calls = []
        self.closed = False

    def _get(self, ip):
        self.calls.append(ip)
        if ip in self.errors:
            raise self.errors[ip]
        if ip not in self.records:
            raise geoip2.errors.AddressNotFoundError(f"The address {ip} is not in the database.")
        return self.records[ip]

    def city(self, ip):
        return self._get(ip)

    def country(self, ip):
        return self._get(ip)

    def close(self):
        self.closed = True


# Taiwan, United States, Sweden addresses used by the policy scenarios.
SCENARIO_RECORDS = {
    "120.100.100.0": city_response("TW", "Taiwan", "Taipei", latitude=25.0478, longitude=121.5319,
                                   time_zone="Asia/Taipei", country_geoname_id=1668284, city_geoname_id=1668341),
    "35.100.100.0": city_response("US", "United States", latitude=37.751, longitude=-97.822,
                                  time_zone="America/Chicago", country_geoname_id=6252001),
    "212.100.100.0": city_response("SE", "Sweden", latitude=59.3247, longitude=18.056,
                                   time_zone="Europe/Stockholm", eu=True, country_geoname_id=2661886),
}


def write_mmdb(directory, database_type, networks):
    """Write a small IPv4 MaxMind database; networks maps CIDR -> record dict."""
    writer = MMDBWriter(
        ip_version=4,
        database_type=database_type,
        languages=["en"],
        description=f"{database_type} test database",
    )
    for cidr, record in networks.items():
        writer.insert_network(IPSet([cidr]), record)
    path = os.path.join(directory, f"{database_type}.mmdb")
    writer.to_db_file(path)
    return path


CHICAGO_RECORD = {
    "country": {
        "iso_code": "US",
        "names": {"en": "United States"},
        "geoname_id": 6252001,
        "is_in_european_union": False,
    },
    "city": {"names": {"en": "Chicago"}, "geoname_id": 4887398},
    "location": {"latitude": 41.5, "longitude": -87.625, "time_zone": "America/Chicago"},
}

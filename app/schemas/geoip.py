from pydantic import BaseModel


class GeoAttributes(BaseModel):
    country_code: str
    country_name: str
    country_eu: str
    country_geoname_id: str
    city_name: str
    city_geoname_id: str
    latitude: str
    longitude: str
    geohash: str
    time_zone: str


class GeoLookupResponse(BaseModel):
    client_ip: str | None
    verdict: str
    attributes: GeoAttributes


class DecisionEntry(BaseModel):
    timestamp: str
    verdict: str
    client_ip: str | None
    method: str
    path: str
    attributes: dict[str, str]


class DecisionListResponse(BaseModel):
    enabled: bool
    items: list[DecisionEntry]
    count: int


class DeniedCountry(BaseModel):
    country_code: str
    count: int


class DecisionSummaryResponse(BaseModel):
    since: str
    permit: int
    deny: int
    top_denied_countries: list[DeniedCountry]

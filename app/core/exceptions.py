class GeoIPError(Exception):
    pass


class DatabaseOpenError(GeoIPError):
    """The GeoIP database could not be opened. Fatal at startup."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Can't open GeoIP database: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class AddressParseError(GeoIPError, ValueError):
    pass


class MissingPortError(AddressParseError):
    pass


class LookupWarning(GeoIPError):
    """Database query failed or had no entry for the address. Never fatal."""


class PolicyConfigError(GeoIPError, ValueError):
    pass

#!/usr/bin/env python3
"""Dry-run the GeoIP access policy for one or more client addresses.

Examples:
    python scripts/check_access.py --db data/GeoLite2-City.mmdb 8.8.8.8 127.0.0.1
    python scripts/check_access.py --allow-only --allow-country US 120.100.100.0
"""

from __future__ import annotations

import argparse
import logging
import sys

from app.core.config import settings
from app.core.exceptions import AddressParseError, GeoIPError
from app.services.client_ip import parse_ip
from app.services.geoip import GeoResolver
from app.services.policy import PolicyConfig, evaluate, split_list


def build_policy(args: argparse.Namespace) -> PolicyConfig:
    if not (args.allow_only or args.allow_country or args.allow_ip or args.block_country or args.block_ip):
        return PolicyConfig.from_settings(settings)
    return PolicyConfig.build(
        allow_only=args.allow_only,
        allow_countries=args.allow_country,
        allow_ips=args.allow_ip,
        block_countries=args.block_country,
        block_ips=args.block_ip,
    )


def main() -> int:
    p = argparse.ArgumentParser()
    p.add_argument("addresses", nargs="+", help="client IP addresses to evaluate")
    p.add_argument("--db", default=settings.GEOIP_DB_PATH, help="path to a MaxMind .mmdb database")
    p.add_argument("--allow-only", action="store_true")
    p.add_argument("--allow-country", action="append", default=[])
    p.add_argument("--allow-ip", action="append", default=[])
    p.add_argument("--block-country", action="append", default=[])
    p.add_argument("--block-ip", action="append", default=[])
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s | %(name)s | %(message)s",
    )

    try:
        policy = build_policy(args)
        resolver = GeoResolver.open(args.db, logger=logging.getLogger("check_access"))
    except GeoIPError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    exit_code = 0
    try:
        for raw in args.addresses:
            for candidate in split_list(raw):
                try:
                    ip = parse_ip(candidate)
                except AddressParseError as exc:
                    print(f"{candidate}: {exc}", file=sys.stderr)
                    ip = None
                    exit_code = 1
                record = resolver.resolve(ip)
                verdict = evaluate(record.country_code, ip, policy)
                print(f"{candidate}\t{verdict.value}")
                for key, value in record.attributes().items():
                    print(f"  geoip_{key}={value}")
    finally:
        resolver.close()
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())

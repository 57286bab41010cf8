"""API-X Python CLI."""

from __future__ import annotations

import argparse
import json
import os
import sys

from apix.errors import DecryptionError
from apix.security.encryption import ALGORITHMS, SymmetricEncryptionService
from apix.signing import canonical_message, generate_nonce, http_date, normalize_url, sign_request

APP_KEY_ENV = "APIX_APP_KEY"
ENCRYPTION_KEY_ENV = "APIX_ENCRYPTION_KEY"
ENCRYPTION_PROFILE_ENV = "APIX_ENCRYPTION_PROFILE"
DEFAULT_ENCRYPTION_PROFILE = "secure"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="apix", description="API-X client CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sign_parser = subparsers.add_parser("sign", help="Compute the signature headers for a request")
    sign_parser.add_argument("url")
    sign_parser.add_argument("--method", default="GET")
    sign_parser.add_argument("--body", default=None, help="JSON object body")
    sign_parser.add_argument("--nonce", default=None)
    sign_parser.add_argument("--date", default=None)
    sign_parser.add_argument("--app-key", default=None)
    sign_parser.add_argument("--json", action="store_true")

    for name, help_text in (("encrypt", "Encrypt text into an envelope"), ("decrypt", "Decrypt an envelope")):
        crypt_parser = subparsers.add_parser(name, help=help_text)
        crypt_parser.add_argument("value")
        crypt_parser.add_argument("--key", default=None)
        crypt_parser.add_argument("--profile", choices=ALGORITHMS, default=None)

    return parser


def _require(parser: argparse.ArgumentParser, value: str | None, env: str, flag: str) -> str:
    resolved = value or os.environ.get(env)
    if not resolved:
        parser.error(f"{flag} or {env} is required")
    return resolved


def _sign(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    app_key = _require(parser, args.app_key, APP_KEY_ENV, "--app-key")
    try:
        url = normalize_url(args.url)
        body = json.loads(args.body) if args.body else None
    except ValueError as error:
        parser.error(str(error))
    if body is not None and not isinstance(body, dict):
        parser.error("--body must be a JSON object")

    nonce = args.nonce or generate_nonce()
    date = args.date or http_date()
    signed = sign_request(url, args.method, body, app_key, nonce=nonce, date=date)
    message = canonical_message(url, args.method, nonce, date, body)

    if args.json:
        print(
            json.dumps(
                {
                    "command": "sign",
                    "method": args.method.upper(),
                    "url": url,
                    "nonce": signed.nonce,
                    "date": signed.date,
                    "message": message,
                    "signature": signed.signature,
                },
                sort_keys=True,
            )
        )
        return 0
    print(f"message: {message}")
    print(f"x-signature-nonce: {signed.nonce}")
    print(f"date: {signed.date}")
    print(f"x-signature: {signed.signature}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "sign":
        return _sign(parser, args)

    if args.command in ("encrypt", "decrypt"):
        key = _require(parser, args.key, ENCRYPTION_KEY_ENV, "--key")
        profile = args.profile or os.environ.get(ENCRYPTION_PROFILE_ENV) or DEFAULT_ENCRYPTION_PROFILE
        if profile not in ALGORITHMS:
            parser.error(f"Unknown encryption profile: {profile}")
        service = SymmetricEncryptionService(profile)
        if args.command == "encrypt":
            print(service.encrypt(args.value, key))
            return 0
        try:
            print(service.decrypt(args.value, key))
        except DecryptionError as error:
            print(f"error: {error}", file=sys.stderr)
            return 1
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""
QR Connect command line.

Usage:
    qrconnect serve [--host 0.0.0.0] [--port 3001]
    qrconnect onboard [--name "Clinic One"] [--phone 41999999999] [--qr-out qr.png]
    qrconnect status --token <token>
    qrconnect login --token <token>
"""
import argparse
import asyncio
import base64
import binascii
import logging
import sys
from typing import Optional

import httpx

from qrconnect.client.api import CONNECTED, ProxyAPIClient
from qrconnect.config import PORT, QRCONNECT_API_URL, STATE_BACKEND
from qrconnect.exceptions import QRConnectError
from qrconnect.onboarding import (
    DASHBOARD_ROUTE,
    OnboardingStep,
    OnboardingStore,
    OnboardingWizard,
    SessionStore,
    create_storage,
    login,
)
from qrconnect.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

# Failures reported as a message and exit status 1
CLI_ERRORS = (QRConnectError, httpx.HTTPError)


class ConsoleNotifier:
    def success(self, message: str) -> None:
        print(f"✓ {message}")

    def error(self, message: str) -> None:
        print(f"✗ {message}", file=sys.stderr)


def write_qr_image(qr_base64: str, path: str) -> bool:
    """Decode a (possibly data-URI) base64 QR image to a file."""
    if not qr_base64:
        return False
    payload = qr_base64.split(",", 1)[1] if qr_base64.startswith("data:") else qr_base64
    try:
        image = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"QR payload is not valid base64: {e}")
        return False
    with open(path, "wb") as f:
        f.write(image)
    return True


def _message(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


async def _prompt(message: str) -> str:
    return (await asyncio.to_thread(input, message)).strip()


async def run_onboarding(args) -> int:
    storage = create_storage(args.backend)
    store = OnboardingStore(storage)
    session = SessionStore(storage)
    arrived = asyncio.Event()

    def navigate(route: str) -> None:
        if route == DASHBOARD_ROUTE:
            arrived.set()

    try:
        async with ProxyAPIClient(args.api_url) as api:
            wizard = OnboardingWizard(api, store, session, notifier=ConsoleNotifier(), navigate=navigate)
            async with wizard:
                if args.restart:
                    await wizard.reset()

                if wizard.step == OnboardingStep.NAMING_INSTANCE:
                    await wizard.set_instance_name(args.name or await _prompt("Instance name: "))
                    token = await wizard.create_instance()
                    print(f"Instance {wizard.sanitized_name} created, token: {token}")

                if wizard.step == OnboardingStep.ENTERING_PHONE:
                    await wizard.set_phone(args.phone or await _prompt("Phone (area code + number): "))
                    await wizard.submit_phone()

                if write_qr_image(wizard.state.qr_base64, args.qr_out):
                    print(f"QR code written to {args.qr_out}")
                print(f"Pairing code: {wizard.state.pairing_code or '(not available yet)'}")
                print("Waiting for the phone to connect...")

                try:
                    await asyncio.wait_for(arrived.wait(), timeout=args.timeout)
                except asyncio.TimeoutError:
                    print(f"Not connected after {args.timeout:.0f}s; run again to resume.")
                    return 1
    except CLI_ERRORS as e:
        print(f"Error: {_message(e)}", file=sys.stderr)
        return 1
    finally:
        await storage.close()

    print("Connected. Opening dashboard.")
    return 0


async def run_status(args) -> int:
    try:
        async with ProxyAPIClient(args.api_url) as api:
            status = await api.get_instance_status(args.token)
    except CLI_ERRORS as e:
        print(f"Status check failed: {_message(e)}", file=sys.stderr)
        return 1
    print(status)
    return 0 if status == CONNECTED else 2


async def run_login(args) -> int:
    storage = create_storage(args.backend)
    try:
        async with ProxyAPIClient(args.api_url) as api:
            status = await login(api, SessionStore(storage), args.token)
    except CLI_ERRORS as e:
        print(f"Login failed: {_message(e)}", file=sys.stderr)
        return 1
    finally:
        await storage.close()
    print(f"Logged in ({status})")
    return 0


def run_server(args) -> int:
    import uvicorn

    uvicorn.run("qrconnect.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrconnect", description="WhatsApp instance onboarding")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the proxy server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=PORT)
    serve.add_argument("--reload", action="store_true")

    def client_options(p: argparse.ArgumentParser) -> None:
        p.add_argument("--api-url", default=QRCONNECT_API_URL, help="Proxy base URL")
        p.add_argument("--backend", default=STATE_BACKEND, choices=["file", "redis", "memory"])

    onboard = sub.add_parser("onboard", help="Create and pair an instance")
    client_options(onboard)
    onboard.add_argument("--name", help="Instance name")
    onboard.add_argument("--phone", help="Phone number with area code")
    onboard.add_argument("--qr-out", default="qrcode.png", help="Where to write the QR image")
    onboard.add_argument("--timeout", type=float, default=300.0, help="Seconds to wait for connection")
    onboard.add_argument("--restart", action="store_true", help="Discard saved progress first")

    status = sub.add_parser("status", help="Print an instance's connection status")
    client_options(status)
    status.add_argument("--token", required=True)

    login_cmd = sub.add_parser("login", help="Validate and store an instance token")
    client_options(login_cmd)
    login_cmd.add_argument("--token", required=True)

    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "serve":
        return run_server(args)
    if args.command == "onboard":
        return asyncio.run(run_onboarding(args))
    if args.command == "status":
        return asyncio.run(run_status(args))
    if args.command == "login":
        return asyncio.run(run_login(args))
    return 2


if __name__ == "__main__":
    sys.exit(main())

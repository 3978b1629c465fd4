#!/usr/bin/env python3
"""
Command-line interface for checkoutbridge.

Runs the payment flows end to end against the sandbox capability and
manages bridge configuration files.

Copyright 2025 Firefly Software Solutions Inc
Licensed under the Apache License, Version 2.0
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from checkoutbridge import __version__
from checkoutbridge.config.bridge_config import (
    DEFAULT_ENV_PREFIX,
    BridgeConfig,
    ConfigurationManager,
    LoggingConfig,
)
from checkoutbridge.config.session_config import (
    AppearanceConfig,
    ColorTokens,
    GooglePayConfig,
    SessionConfig,
)
from checkoutbridge.core.errors import BridgeError
from checkoutbridge.integration.correlator import SOURCE_CARD, SOURCE_WALLET
from checkoutbridge.logging import setup_bridge_logging, shutdown_bridge_logging
from checkoutbridge.native.simulated import (
    CardInput,
    SimulatedCardCapability,
    SimulatedWalletCapability,
)
from checkoutbridge.notifications import NotificationPresenter, PaymentNotification
from checkoutbridge.session import BridgeSession

DEMO_SESSION = SessionConfig(
    paymentSessionID="ps_demo1a2b3c4d5e6f7g8h9i0j",
    paymentSessionSecret="pss_demo-0000-0000-0000-000000000000",
    publicKey="pk_sbox_demo0public0key0000000000",
    environment="sandbox",
    appearance=AppearanceConfig(
        borderRadius=8,
        colorTokens=ColorTokens(
            colorAction=0xFF00639E,
            colorPrimary=0xFF111111,
            colorBorder=0xFFCCCCCC,
            colorFormBorder=0xFFCCCCCC,
        ),
    ),
)


def print_notification(notification: PaymentNotification) -> None:
    marker = "✅" if notification.is_success else "❌"
    print(f"{marker} {notification.title}")
    for line in notification.message.splitlines():
        print(f"   {line}")


def setup_logging(level: str = "WARNING", format_type: str = "text") -> None:
    """Configure logging for the CLI."""
    config = BridgeConfig(
        logging=LoggingConfig(level=level, format=format_type, native_log_level=level)
    )
    setup_bridge_logging(config, stream=sys.stderr)


def load_config(config_file: Optional[str]) -> BridgeConfig:
    return ConfigurationManager.load_config(config_file, env_prefix=DEFAULT_ENV_PREFIX)


async def run_demo(flow: str, config: BridgeConfig, card_number: str, wallet_outcome: str) -> int:
    """Run one payment flow against the sandbox capability."""
    notifications: List[PaymentNotification] = []

    def sink(notification: PaymentNotification) -> None:
        notifications.append(notification)
        print_notification(notification)

    card = CardInput(number=card_number, expiry_month=12, expiry_year=2030,
                     cvv="1000" if card_number.startswith(("34", "37")) else "100")
    session = await BridgeSession.create(
        config,
        card_capability=SimulatedCardCapability(card=card),
        wallet_capability=SimulatedWalletCapability(outcome=wallet_outcome),
    )
    presenter = NotificationPresenter(session.client, sink).attach()
    client = session.client

    try:
        if flow == "googlepay":
            await client.init_google_pay(DEMO_SESSION, GooglePayConfig(merchantName="Demo Store"))
            if not await client.check_google_pay_availability():
                presenter.notify("Payment Error", "Google Pay is not available", False)
                return 1
            await client.launch_google_pay_sheet({"amount": 1000, "currency": "EUR"})
            await client.wait_for_result(SOURCE_WALLET, timeout=config.result_timeout_seconds)
        else:
            await client.init_card_view(DEMO_SESSION)
            if flow == "session-data":
                accepted = await presenter.request_session_data()
            else:
                accepted = await presenter.tokenize_with_validation()
            if accepted:
                await client.wait_for_result(SOURCE_CARD, timeout=config.result_timeout_seconds)
        # Let the front pump deliver the event that settled the result
        await asyncio.sleep(0.05)
    except BridgeError as e:
        presenter.report_failure(e)
    except asyncio.TimeoutError:
        presenter.notify("Payment Error", "No result before the timeout", False)
    finally:
        await session.close()

    return 0 if notifications and all(n.is_success for n in notifications) else 1


def init_config(output_path: str) -> None:
    """Write a default configuration file."""
    fmt = "yaml" if Path(output_path).suffix.lower() in (".yml", ".yaml") else "json"
    ConfigurationManager.create_default_config_file(output_path, fmt)
    print(f"Default configuration written to {output_path}")


def validate_config(config_path: str) -> int:
    try:
        config = BridgeConfig.from_file(config_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ {e}")
        return 1

    print(f"✅ {config_path} is valid")
    for warning in config.validate_configuration():
        print(f"⚠️  {warning}")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="checkoutbridge - payment bridge between a front end and a native payment component",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  checkoutbridge demo card                      # Validate and tokenize the test card
  checkoutbridge demo card --card 4000000000000002   # Declined card
  checkoutbridge demo session-data              # Retrieve session data only
  checkoutbridge demo googlepay --outcome cancel
  checkoutbridge init-config bridge.yaml        # Create default config
  checkoutbridge validate-config bridge.yaml    # Validate a config file
        """,
    )

    parser.add_argument("--version", action="version", version=f"checkoutbridge {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level",
    )
    parser.add_argument(
        "--log-format", choices=["json", "text"], default="text", help="Set log output format"
    )
    parser.add_argument("--config", help="Bridge configuration file (YAML or JSON)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    demo_parser = subparsers.add_parser("demo", help="Run a payment flow against the sandbox")
    demo_parser.add_argument("flow", choices=["card", "session-data", "googlepay"])
    demo_parser.add_argument("--card", default="4242424242424242", help="Card number to enter")
    demo_parser.add_argument(
        "--outcome",
        choices=["success", "cancel", "error"],
        default="success",
        help="What the Google Pay sheet does",
    )

    init_parser = subparsers.add_parser("init-config", help="Create default configuration file")
    init_parser.add_argument("output", help="Output configuration file path")

    validate_parser = subparsers.add_parser("validate-config", help="Validate a configuration file")
    validate_parser.add_argument("path", help="Configuration file to validate")

    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.command == "demo":
        setup_logging(args.log_level, args.log_format)
        try:
            config = load_config(args.config)
            exit_code = asyncio.run(run_demo(args.flow, config, args.card, args.outcome))
        finally:
            shutdown_bridge_logging()
        sys.exit(exit_code)

    elif args.command == "init-config":
        init_config(args.output)

    elif args.command == "validate-config":
        sys.exit(validate_config(args.path))

    elif args.command == "version":
        print(f"checkoutbridge {__version__}")

    elif args.command is None:
        parser.print_help()
        sys.exit(1)

    else:
        print(f"Unknown command: {args.command}")
        sys.exit(1)


if __name__ == "__main__":
    main()

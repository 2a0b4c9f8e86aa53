#!/usr/bin/env python3
"""
Mini-App Registry CLI

Command-line interface for listing, adding, pinning and removing mini-apps
and for inspecting the capabilities granted to them.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from common.exceptions import RegistryError
from common.logging_config import LogContext, setup_logging
from .config import RegistryConfig, build_registry
from .descriptor import NetworkContext
from .manifest import HttpManifestResolver
from .onboarding import OnboardingValidator, RISK_DISCLAIMER, ValidatorState
from .permissions import BROWSER_STORE_NAME, WALLET_STORE_NAME

logger = logging.getLogger(__name__)

DEFAULT_CHAIN = "1"


def get_config(args) -> RegistryConfig:
    return RegistryConfig.from_env(
        data_dir=args.data_dir,
        catalog_path=args.catalog,
    )


def get_network(args) -> NetworkContext:
    return NetworkContext(chain_id=args.chain, short_name=args.chain_name or "")


def _print_apps(apps, pinned_ids=frozenset()):
    for app in apps:
        marker = "*" if app.id in pinned_ids else " "
        print(f" {marker} {app.id}: {app.name} ({app.url})")


def cmd_list(args, registry, network):
    """List every app, remote and custom, sorted by name."""
    view = registry.view(network)
    if view.remote_error:
        print(f"Warning: remote catalog unavailable: {view.remote_error}", file=sys.stderr)

    if not view.all_apps:
        print("No apps available.")
        return 0

    print(f"Apps ({len(view.all_apps)}):\n")
    _print_apps(view.all_apps, view.pinned_ids)
    return 0


def cmd_pinned(args, registry, network):
    """List pinned apps."""
    apps = registry.pinned_apps(network)
    if not apps:
        print("No pinned apps.")
        return 0

    print(f"Pinned apps ({len(apps)}):\n")
    _print_apps(apps)
    return 0


def cmd_ranked(args, registry, network):
    """List apps in ranked order."""
    view = registry.view(network)
    _print_apps(view.ranked_apps, view.pinned_ids)
    return 0


def cmd_info(args, registry, network):
    """Show detailed app information."""
    app = registry.get(network, args.app_id)
    if not app:
        print(f"App not found: {args.app_id}", file=sys.stderr)
        return 1

    custom = registry.custom_app_store.get(network, app.id) is not None
    print(f"Name:        {app.name}")
    print(f"ID:          {app.id}")
    print(f"URL:         {app.url}")
    print(f"Source:      {'custom' if custom else 'catalog'}")
    if app.description:
        print(f"Description: {app.description}")
    if app.icon_url:
        print(f"Icon:        {app.icon_url}")
    if app.requested_capabilities:
        print(f"Requests:    {', '.join(app.requested_capabilities)}")
    print(f"Pinned:      {'Yes' if app.id in registry.pinned_ids(network) else 'No'}")

    for store_name, caps in registry.revoker.query_all(app.url).items():
        if caps:
            print(f"Granted ({store_name}): {', '.join(sorted(caps))}")
    return 0


async def _onboard(args, registry, network, config) -> int:
    validator = OnboardingValidator(
        registry,
        HttpManifestResolver(timeout=config.resolve_timeout),
        network,
        debounce=0,
        resolve_timeout=config.resolve_timeout,
    )
    try:
        validator.set_input(args.url)
        state = await validator.settle()

        if state == ValidatorState.INVALID:
            print(f"Invalid URL: {args.url}", file=sys.stderr)
            return 1
        if state == ValidatorState.UNSUPPORTED:
            print(validator.error.message, file=sys.stderr)
            return 1
        if validator.already_registered:
            print("This app is already registered.")
            share = validator.share_url(config.share_origin)
            if share:
                print(f"Share link: {share}")
            return 0

        if validator.requires_risk_acknowledgement:
            if not args.accept_risk:
                print(RISK_DISCLAIMER, file=sys.stderr)
                print("Re-run with --accept-risk to add it.", file=sys.stderr)
                return 1
            validator.acknowledge_risk(True)

        app = validator.submit()
        print(f"Added {app.name} ({app.url}) as {app.id}")
        return 0
    finally:
        validator.close()


def cmd_add(args, registry, network, config):
    """Add a custom app from its URL."""
    return asyncio.run(_onboard(args, registry, network, config))


def cmd_remove(args, registry, network):
    """Remove a custom app and revoke its capabilities."""
    app = registry.remove_custom_app(network, args.app_id)
    print(f"Removed {app.name} ({app.url})")
    return 0


def cmd_pin(args, registry, network):
    """Toggle the pin on an app."""
    pinned = registry.toggle_pin(network, args.app_id)
    print(f"App {args.app_id} {'pinned' if pinned else 'unpinned'}")
    return 0


def cmd_grant(args, registry, network):
    """Grant a capability to an origin."""
    registry.revoker.get_store(args.store).grant(args.origin, args.capability)
    print(f"Granted {args.store} capability '{args.capability}' to {args.origin}")
    return 0


def cmd_grants(args, registry, network):
    """Show the capabilities granted to an origin."""
    for store_name, caps in registry.revoker.query_all(args.origin).items():
        print(f"{store_name}: {', '.join(sorted(caps)) if caps else '(none)'}")
    return 0


def cmd_clear(args, registry, network):
    """Remove every custom app and pin on this chain."""
    removed = registry.clear(network)
    print(f"Removed {removed} custom app(s) and all pins.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="miniapps",
        description="Mini-app registry",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    parser.add_argument("--chain", default=DEFAULT_CHAIN, help="Chain ID (default: 1)")
    parser.add_argument("--chain-name", help="Chain short name used in share links")
    parser.add_argument("--data-dir", type=Path, help="Registry data directory")
    parser.add_argument("--catalog", type=Path, help="Remote catalog JSON file")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    list_p = subparsers.add_parser("list", help="List all apps")
    list_p.set_defaults(func=cmd_list)

    pinned_p = subparsers.add_parser("pinned", help="List pinned apps")
    pinned_p.set_defaults(func=cmd_pinned)

    ranked_p = subparsers.add_parser("ranked", help="List apps in ranked order")
    ranked_p.set_defaults(func=cmd_ranked)

    info_p = subparsers.add_parser("info", help="Show app details")
    info_p.add_argument("app_id", type=int, help="App ID")
    info_p.set_defaults(func=cmd_info)

    add_p = subparsers.add_parser("add", help="Add a custom app")
    add_p.add_argument("url", help="App URL")
    add_p.add_argument(
        "--accept-risk", action="store_true", help="Accept the third-party app disclaimer"
    )
    add_p.set_defaults(func=cmd_add)

    remove_p = subparsers.add_parser("remove", help="Remove a custom app")
    remove_p.add_argument("app_id", type=int, help="App ID")
    remove_p.set_defaults(func=cmd_remove)

    pin_p = subparsers.add_parser("pin", help="Pin or unpin an app")
    pin_p.add_argument("app_id", type=int, help="App ID")
    pin_p.set_defaults(func=cmd_pin)

    grant_p = subparsers.add_parser("grant", help="Grant a capability to an origin")
    grant_p.add_argument("origin", help="App URL")
    grant_p.add_argument("capability", help="Capability name")
    grant_p.add_argument(
        "--store", choices=[WALLET_STORE_NAME, BROWSER_STORE_NAME], default=WALLET_STORE_NAME,
    )
    grant_p.set_defaults(func=cmd_grant)

    grants_p = subparsers.add_parser("grants", help="Show capabilities of an origin")
    grants_p.add_argument("origin", help="App URL")
    grants_p.set_defaults(func=cmd_grants)

    clear_p = subparsers.add_parser("clear", help="Remove all custom apps and pins")
    clear_p.set_defaults(func=cmd_clear)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=args.log_file,
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = get_config(args)
        registry = build_registry(config)
        network = get_network(args)

        with LogContext(chain_id=network.chain_id, command=args.command):
            if args.func is cmd_add:
                return cmd_add(args, registry, network, config)
            return args.func(args, registry, network)
    except RegistryError as e:
        logger.debug(f"{args.command} failed: {e}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

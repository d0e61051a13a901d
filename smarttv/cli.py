#!/usr/bin/env python3
"""Command-line interface for smart TV discovery and control."""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from .apps import SAMSUNG_APPS, get_app
from .async_client import tv_for_host
from .config import (
    SCAN_TIMEOUT,
    TokenStorage,
    add_tv,
    get_config,
    get_config_path,
    get_default_tv,
    get_tv_config,
    list_tvs,
    remember_tv,
    set_default_tv,
)
from .context import AppContext
from .discovery import DiscoveredTV
from .keys import COMMAND_NAME_MAP, KEY_CODES
from .search import Service
from .wol import wake_tv

_LOGGER = logging.getLogger(__name__)

# Pause after the last command so the TV processes it before the close
SETTLE_DELAY = 0.3


def setup_logging(level: str = "WARNING"):
    """Set up logging configuration."""
    log_level = getattr(logging, level.upper(), logging.WARNING)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Reduce noise from websocket-client
    logging.getLogger("websocket").setLevel(logging.WARNING)


def resolve_tv(tv_id: Optional[str] = None, ip: Optional[str] = None) -> DiscoveredTV:
    """Find the TV a command targets.

    Args:
        tv_id: Device id or alias. Uses the default TV if not provided.
        ip: Override IP address (takes precedence over tv_id)

    Returns:
        DiscoveredTV for the target

    Raises:
        ValueError: If no TV could be resolved
    """
    if ip:
        return tv_for_host(ip)

    tv_config = get_tv_config(tv_id) if tv_id else get_default_tv()
    if not tv_config:
        if tv_id:
            raise ValueError(f"TV '{tv_id}' not found. Use 'smarttv config list' to see available TVs.")
        raise ValueError("No default TV configured. Use 'smarttv discover' or 'smarttv config add <ip>'.")

    host = tv_config.get("host")
    if not host:
        raise ValueError(f"TV '{tv_id or 'default'}' has no host configured.")

    tv = tv_for_host(host, name=tv_config.get("name"), mac_address=tv_config.get("mac"))
    tv.manufacturer = tv_config.get("manufacturer") or tv.manufacturer
    return tv


def run_connected(args, action) -> int:
    """Connect to the target TV, run action(ctx), then disconnect.

    Returns:
        Process exit code
    """
    try:
        tv = resolve_tv(getattr(args, "tv", None), args.ip)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    with AppContext.create() as ctx:
        print(f"Connecting to {tv.host}... (accept the prompt on the TV if asked)")
        if not ctx.connect(tv):
            print(f"Failed to connect to TV: {ctx.manager.status_message}", file=sys.stderr)
            return 1
        ok = action(ctx)
        time.sleep(SETTLE_DELAY)
    return 0 if ok else 1


def cmd_key(args):
    """Send a key press."""
    def _send(ctx):
        if not ctx.remote.send_named(args.key):
            print(f"Failed to send '{args.key}'. Use 'smarttv keys' to list keys.", file=sys.stderr)
            return False
        print(f"Sent: {args.key}")
        return True

    return run_connected(args, _send)


def cmd_keys(args):
    """List available keys."""
    print("Available keys:")
    print()
    names = {}
    for name, command in COMMAND_NAME_MAP.items():
        names.setdefault(command, []).append(name)

    for command, code in KEY_CODES.items():
        aliases = ", ".join(names.get(command, []))
        print(f"  {command.value:14} {code:14} {aliases}")
    print()
    print("Any other KEY_* code is sent as-is.")
    return 0


def cmd_nav(args):
    """Navigation shortcuts."""
    def _nav(ctx):
        ok = ctx.remote.send_named(args.action)
        print(f"Navigation: {args.action}")
        return ok

    return run_connected(args, _nav)


def cmd_volume(args):
    """Control volume."""
    def _volume(ctx):
        if args.action == "mute":
            ok = ctx.remote.mute()
            print("Mute toggled")
            return ok

        step = ctx.remote.volume_up if args.action == "up" else ctx.remote.volume_down
        ok = True
        for _ in range(args.amount):
            ok = step() and ok
            time.sleep(0.1)
        print(f"Volume {args.action} x{args.amount}")
        return ok

    return run_connected(args, _volume)


def cmd_power(args):
    """Toggle TV power."""
    def _power(ctx):
        ok = ctx.remote.power()
        print("Power command sent")
        return ok

    return run_connected(args, _power)


def cmd_text(args):
    """Type text into the TV's input field."""
    def _text(ctx):
        ok = ctx.remote.text(args.text)
        print("Text sent" if ok else "Failed to send text")
        return ok

    return run_connected(args, _text)


def cmd_app(args):
    """List or launch apps."""
    if args.name == "list":
        print("Available apps:")
        for app in SAMSUNG_APPS:
            print(f"  {app.name:20} ({app.id})")
        return 0

    app = get_app(args.name)
    if app is None:
        print(f"Unknown app '{args.name}'. Use 'smarttv app list'.", file=sys.stderr)
        return 1

    def _launch(ctx):
        # No discovery ran in this process, so address the REST service directly
        tv = ctx.manager.connected_tv
        ctx.manager.apps.connect_to_service(Service.for_host(tv.host, tv.id, tv.name))

        if args.install:
            ok = ctx.manager.install_app(app)
            print(f"Opening store page: {app.name}" if ok else f"Failed to open store page: {app.name}")
            return ok

        ok = ctx.remote.launch_app(app)
        if ok:
            print(f"Launching: {app.name}")
            # Let the auto-disconnect release the app channel
            time.sleep(ctx.manager.apps.disconnect_delay)
        else:
            print(f"Failed to launch: {app.name}", file=sys.stderr)
        return ok

    return run_connected(args, _launch)


def cmd_discover(args):
    """Discover TVs on the network."""
    config = get_config()
    timeout = args.timeout or config.get("discovery", {}).get("scan_timeout", SCAN_TIMEOUT)
    print(f"Scanning for TVs (timeout: {timeout}s)...")

    with AppContext.create(config=config) as ctx:
        if args.no_ssdp:
            ctx.scanner.search = None
        if args.no_probe:
            ctx.scanner.subnet_scan = False
        tvs = ctx.scanner.discover(timeout)

    if not tvs:
        print("No TVs found.")
        print("\nTips:")
        print("  - Make sure the TV is powered on")
        print("  - Ensure TV and computer are on the same network")
        print("  - Try a longer timeout: smarttv discover -t 15")
        return 1

    print(f"\nFound {len(tvs)} TV(s):\n")
    for tv in tvs:
        print(f"  {tv.ip_address}")
        print(f"    Name:         {tv.name}")
        print(f"    Manufacturer: {tv.manufacturer}")
        if tv.model_name:
            print(f"    Model:        {tv.model_name}")
        if tv.mac_address:
            print(f"    MAC:          {tv.mac_address}")
        if args.verbose:
            print(f"    ID:           {tv.id}")
            print(f"    Via:          {tv.source}")
        print()

    if args.save:
        for tv in tvs:
            remember_tv(tv)
        print(f"Saved {len(tvs)} TV(s) to {get_config_path() or 'config.yaml'}")
    else:
        print("To remember them: smarttv discover --save")
    return 0


def cmd_wake(args):
    """Wake TV using Wake-on-LAN."""
    mac = args.mac
    host = args.ip
    if not mac:
        try:
            tv = resolve_tv(getattr(args, "tv", None), args.ip)
        except ValueError:
            tv = None
        if tv is not None:
            mac = tv.mac_address
            host = host or tv.host

    if not mac:
        print("No MAC address specified.", file=sys.stderr)
        print("Use: smarttv wake --mac AA:BB:CC:DD:EE:FF", file=sys.stderr)
        return 1

    subnet = host.rsplit(".", 1)[0] if host and host.count(".") == 3 else None
    print(f"Sending Wake-on-LAN to {mac}...")
    if not wake_tv(mac, subnet=subnet):
        print("Failed to send Wake-on-LAN packet", file=sys.stderr)
        return 1
    return 0


def cmd_config(args):
    """View or set configuration."""
    if args.action in ("show", "list"):
        tvs = list_tvs()
        if not tvs:
            print("No TVs configured. Use 'smarttv config add <ip>' to add a TV.")
            return 0

        print("Configured TVs:")
        for tv in tvs:
            default_str = " (default)" if tv["is_default"] else ""
            alias_str = f" [{tv['alias']}]" if tv.get("alias") else ""
            if args.action == "list":
                print(f"  {tv['device_id']}{alias_str}{default_str}")
                continue
            print(f"\n  {tv['device_id']}{alias_str}{default_str}")
            print(f"    Host:         {tv.get('host') or '(not set)'}")
            print(f"    Name:         {tv.get('name') or ''}")
            print(f"    Manufacturer: {tv.get('manufacturer') or 'Unknown'}")
            if tv.get("mac"):
                print(f"    MAC:          {tv['mac']}")

    elif args.action == "add":
        if not args.value:
            print("Please provide IP address: smarttv config add 192.168.1.100", file=sys.stderr)
            return 1
        if not add_tv(args.value, args.value, alias=args.alias, mac=args.mac):
            print("Failed to save configuration", file=sys.stderr)
            return 1
        print(f"Added TV at {args.value}")

    elif args.action == "set-default":
        if not args.value:
            print("Please provide TV ID or alias: smarttv config set-default living_room", file=sys.stderr)
            return 1
        if not set_default_tv(args.value):
            print(f"TV not found: {args.value}", file=sys.stderr)
            return 1
        print(f"Default TV set to: {args.value}")

    return 0


def cmd_auth(args):
    """View or clear stored tokens."""
    token_file = get_config().get("options", {}).get("token_file")
    storage = TokenStorage(Path(token_file).expanduser() if token_file else None)

    if args.action == "status":
        tokens = storage.list_tokens()
        if not tokens:
            print("No stored tokens. Connect to a TV and accept the prompt to pair.")
            return 0
        print("Stored tokens:")
        for entry in tokens:
            host_str = f" (paired with {entry['host']})" if entry.get("host") else ""
            print(f"  {entry['key']}{host_str}")

    elif args.action == "clear":
        if args.key:
            storage.delete_token(args.key)
            print(f"Token {args.key} cleared.")
        else:
            storage.clear_all()
            print("Stored tokens cleared.")

    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="smarttv",
        description="Discover and control smart TVs from the command line",
    )
    parser.add_argument("--tv", help="TV ID or alias (uses default TV if not specified)")
    parser.add_argument("--ip", help="TV IP address (overrides --tv and config)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Discovery
    p_discover = subparsers.add_parser("discover", aliases=["scan"], help="Discover TVs on the network")
    p_discover.add_argument("--timeout", "-t", type=float, help="Scan budget in seconds")
    p_discover.add_argument("--no-ssdp", action="store_true", help="Skip the SSDP service search")
    p_discover.add_argument("--no-probe", action="store_true", help="Skip the subnet probe")
    p_discover.add_argument("--save", action="store_true", help="Remember found TVs in the config")
    p_discover.add_argument("--verbose", "-v", action="store_true", help="Show more details")
    p_discover.set_defaults(func=cmd_discover)

    # Key
    p_key = subparsers.add_parser("key", help="Send a key press")
    p_key.add_argument("key", help="Key name (e.g., power, up, ok, KEY_MENU)")
    p_key.set_defaults(func=cmd_key)

    # Keys list
    p_keys = subparsers.add_parser("keys", help="List available keys")
    p_keys.set_defaults(func=cmd_keys)

    # Navigation shortcuts
    nav_actions = ["up", "down", "left", "right", "ok", "back", "home"]
    p_nav = subparsers.add_parser("nav", help="Navigation shortcuts")
    p_nav.add_argument("action", choices=nav_actions)
    p_nav.set_defaults(func=cmd_nav)

    # Quick navigation aliases
    for nav_cmd in nav_actions:
        p = subparsers.add_parser(nav_cmd, help=f"Navigate {nav_cmd}")
        p.set_defaults(func=cmd_nav, action=nav_cmd)

    # Volume
    p_vol = subparsers.add_parser("volume", aliases=["vol"], help="Volume control")
    p_vol.add_argument("action", choices=["up", "down", "mute"], help="Volume action")
    p_vol.add_argument("amount", type=int, nargs="?", default=1, help="Steps (default: 1)")
    p_vol.set_defaults(func=cmd_volume)

    # Power
    p_power = subparsers.add_parser("power", help="Toggle TV power")
    p_power.set_defaults(func=cmd_power)

    # Text
    p_text = subparsers.add_parser("text", help="Type text into the TV's input field")
    p_text.add_argument("text", help="Text to send")
    p_text.set_defaults(func=cmd_text)

    # App
    p_app = subparsers.add_parser("app", help="Launch an app")
    p_app.add_argument("name", help="App name (youtube, netflix, disney, prime, ...) or 'list'")
    p_app.add_argument("--install", action="store_true", help="Open the app's store page instead")
    p_app.set_defaults(func=cmd_app)

    # Wake-on-LAN
    p_wake = subparsers.add_parser("wake", help="Wake TV using Wake-on-LAN")
    p_wake.add_argument("--mac", help="TV MAC address (e.g., AA:BB:CC:DD:EE:FF)")
    p_wake.set_defaults(func=cmd_wake)

    # Config
    p_cfg = subparsers.add_parser("config", help="View or set configuration")
    p_cfg.add_argument(
        "action",
        choices=["show", "list", "add", "set-default"],
        nargs="?",
        default="show",
        help="show: display all TVs, list: list TV IDs, add: add new TV, set-default: set default TV"
    )
    p_cfg.add_argument("value", nargs="?", help="Value to set")
    p_cfg.add_argument("--alias", help="Alias when adding a TV")
    p_cfg.add_argument("--mac", help="MAC address when adding a TV")
    p_cfg.set_defaults(func=cmd_config)

    # Token management
    p_auth = subparsers.add_parser("auth", help="Manage stored pairing tokens")
    p_auth.add_argument(
        "action",
        choices=["status", "clear"],
        nargs="?",
        default="status",
        help="status: list stored tokens, clear: remove all tokens"
    )
    p_auth.add_argument("key", nargs="?", help="Token key to clear (default: all)")
    p_auth.set_defaults(func=cmd_auth)

    args = parser.parse_args()

    level = "DEBUG" if args.debug else get_config().get("options", {}).get("log_level", "WARNING")
    setup_logging(level)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

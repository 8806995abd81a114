#!/usr/bin/env python3
"""
ovpn-relay CLI

Provision an OpenVPN server on this host and expose it through an frp relay.

Usage:
    sudo ovpn-relay [setup] [options]
    sudo ovpn-relay status
    sudo ovpn-relay teardown

Examples:
    sudo ovpn-relay
    sudo ovpn-relay setup --server 203.0.113.7 --token s3cret --protocol udp
    sudo ovpn-relay setup --no-serve
"""

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from rich.table import Table

from . import preflight, service
from .config import collect_options, load_settings
from .constants import APP_VERSION, FRPC_SERVICE, OPENVPN_SERVICE
from .errors import SetupError
from .provision import Provisioner
from .utils import console, get_hostname, require_root, setup_logging

logger = logging.getLogger(__name__)


COMMANDS = ("setup", "status", "teardown")


def cmd_setup(args) -> int:
    """Run the full provisioning pipeline."""
    options = collect_options(
        server=args.server,
        token=args.token,
        remote_port=args.remote_port,
        protocol=args.protocol,
    )
    result = Provisioner(args.settings, options).run(serve=not args.no_serve)
    console.print(f"\n[green]✓[/green] Setup complete: {result.client_profile}")
    return 0


def cmd_status(args) -> int:
    """Show the state of both long-lived services."""
    table = Table(title="ovpn-relay services")
    table.add_column("Service", style="cyan")
    table.add_column("State")
    for unit in (OPENVPN_SERVICE, FRPC_SERVICE):
        state = "[green]● active[/green]" if service.is_active(unit) else "[red]○ inactive[/red]"
        table.add_row(unit, state)
    console.print(table)

    if args.verbose:
        for unit in (OPENVPN_SERVICE, FRPC_SERVICE):
            console.print(service.status_text(unit), markup=False, highlight=False)
    return 0


def cmd_teardown(args) -> int:
    """Stop both services and delete everything a run created."""
    home = preflight.resolve_user_home()
    preflight.teardown(args.settings, home, get_hostname())
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", help="Verbose logging and tracebacks")
    common.add_argument("--config", type=Path, default=None, help="YAML settings file")

    parser = argparse.ArgumentParser(
        prog="ovpn-relay",
        description="OpenVPN server behind an frp relay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Commands default to 'setup' when none is given.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")

    subparsers = parser.add_subparsers(dest="command")

    setup_parser = subparsers.add_parser(
        "setup", parents=[common], help="Provision OpenVPN and frpc (default)"
    )
    setup_parser.add_argument("--server", help="FRPS server address")
    setup_parser.add_argument("--token", help="FRPS authentication token")
    setup_parser.add_argument("--remote-port", help="Port exposed on the FRPS server (default 6000)")
    setup_parser.add_argument("--protocol", help="tcp or udp (default tcp)")
    setup_parser.add_argument("--no-serve", action="store_true",
                              help="Skip the HTTP download of the client profile")
    setup_parser.set_defaults(func=cmd_setup)

    status_parser = subparsers.add_parser("status", parents=[common], help="Show service status")
    status_parser.add_argument("-v", "--verbose", action="store_true", help="Full systemctl status")
    status_parser.set_defaults(func=cmd_status)

    teardown_parser = subparsers.add_parser(
        "teardown", parents=[common], help="Remove everything a setup run created"
    )
    teardown_parser.set_defaults(func=cmd_teardown)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    argv = list(sys.argv[1:] if argv is None else argv)
    # only the first token names a command; later ones may be option values
    top_level = {"-h", "--help", "--version"}
    if not argv or (argv[0] not in COMMANDS and argv[0] not in top_level):
        argv.insert(0, "setup")

    args = build_parser().parse_args(argv)

    console.print(f"[bold]OpenVPN and FRPC Installation - Version {APP_VERSION}[/bold]")

    try:
        require_root()
        args.settings = load_settings(args.config)
        setup_logging(args.settings.log_dir, debug=args.debug)
        logger.info("ovpn-relay %s, command %s", APP_VERSION, args.command)
        return args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 1
    except SetupError as e:
        logger.error("%s", e)
        console.print(f"\n[red]✗ {e}[/red]")
        if args.debug:
            console.print("[dim]" + traceback.format_exc() + "[/dim]")
        return e.exit_code
    except Exception as e:
        logger.exception("Unexpected failure")
        console.print(f"\n[red]Fatal error: {e}[/red]")
        if args.debug:
            console.print("[dim]" + traceback.format_exc() + "[/dim]")
        return 1


if __name__ == "__main__":
    sys.exit(main())

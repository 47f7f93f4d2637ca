"""Command line handling."""

import argparse
import sys

from clusterbridge import constants
from clusterbridge.config import BridgeConfig
from clusterbridge.console import run
from clusterbridge.utils import open_console_log, print_error, print_info

# argparse dest -> config key
OPTION_KEYS = {
    "radio": "RADIO",
    "station": "STATION",
    "callsign": "CALLSIGN",
    "server": "SERVER",
    "timeout": "TIMEOUT",
    "qrt": "QRT",
    "one_per_band": "ONE_PER_BAND",
    "filter": "FILTER",
}


def build_parser():
    parser = argparse.ArgumentParser(
        description="Bridge DX cluster spots to a FlexRadio panadapter"
    )
    parser.add_argument(
        "--radio",
        metavar="ADDR",
        help="Radio IP[:port], or :discover: with optional key=value filters (default: :discover:)",
    )
    parser.add_argument(
        "--station",
        metavar="NAME",
        help="SmartSDR station name to bind to (default: Flex)",
    )
    parser.add_argument(
        "--callsign",
        metavar="CALL",
        help="Callsign for cluster login",
    )
    parser.add_argument(
        "--server",
        metavar="HOST:PORT",
        help="Cluster server to connect to (required unless saved in config)",
    )
    parser.add_argument(
        "--timeout",
        metavar="DURATION",
        help="Spot persistence timeout, e.g. 300, 90s, 5m, 1h30m (default: 5m)",
    )
    parser.add_argument(
        "--qrt",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Delete spots with QRT in the comment (default: on)",
    )
    parser.add_argument(
        "--one-per-band",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Expect a given callsign only once per band (default: on)",
    )
    parser.add_argument(
        "--filter",
        metavar="COMMAND",
        help="Filter command sent to the cluster after login",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help=f"Settings file (default: {constants.CONFIG_FILE})",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Save the given options to the settings file",
    )
    parser.add_argument(
        "-d",
        "--debug",
        nargs="?",
        type=int,
        const=2,
        default=0,
        metavar="LEVEL",
        help="Enable debug output (optional level 0-6, default: 2)",
    )
    parser.add_argument(
        "-l",
        "--log",
        nargs="?",
        const="~/.cluster-bridge.log",
        metavar="FILE",
        help="Log all console output to file (default: ~/.cluster-bridge.log)",
    )
    return parser


def apply_args(config, args):
    """Copy command line options over the loaded settings.

    Returns:
        False if any option was rejected
    """
    ok = True
    for dest, key in OPTION_KEYS.items():
        value = getattr(args, dest, None)
        if value is None:
            continue
        if isinstance(value, bool):
            value = "ON" if value else "OFF"
        if not config.set(key, value):
            ok = False
    return ok


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        constants.DEBUG_LEVEL = args.debug

    config = BridgeConfig(args.config)
    if not apply_args(config, args):
        return 2

    if not config.get("SERVER"):
        parser.print_usage(sys.stderr)
        print_error("--server is required")
        return 2

    if args.save:
        if config.save():
            print_info(f"Settings saved to {config.config_file}")

    log_file = None
    if args.log:
        log_file = open_console_log(args.log)
        print_info(f"Logging enabled to: {log_file.name}")

    try:
        return run(config)
    finally:
        if log_file:
            log_file.close()

"""Main application entry point: main, run."""

import traceback

from prompt_toolkit import HTML
from prompt_toolkit.patch_stdout import patch_stdout

from clusterbridge import constants
from clusterbridge.cluster import ClusterConnection
from clusterbridge.errors import BridgeError
from clusterbridge.pipeline import SpotPipeline
from clusterbridge.radio import connect_radio
from clusterbridge.utils import (
    print_error,
    print_header,
    print_info,
    print_pt,
)

from .terminal import ClusterConsole


def main(config):
    """Connect both ends and bridge until one of them goes away.

    Returns:
        Process exit code
    """
    print_header(f"Flex Cluster Bridge v{constants.VERSION}")
    if constants.DEBUG_LEVEL >= 3:
        config.display()

    try:
        timeout_seconds = config.timeout_seconds
    except ValueError as e:
        print_error(f"Invalid TIMEOUT setting: {e}")
        return 2

    try:
        radio = connect_radio(config.get("RADIO"))
    except BridgeError as e:
        print_error(str(e))
        return 1

    try:
        cluster = ClusterConnection.dial(config.get("SERVER"))
    except BridgeError as e:
        print_error(str(e))
        radio.close()
        return 1

    print_info(
        f"Spot lifetime {timeout_seconds:.0f}s, "
        f"QRT removal {config.get('QRT')}, one per band {config.get('ONE_PER_BAND')}"
    )

    console = ClusterConsole()
    pipeline = SpotPipeline(config, radio, cluster, console)
    try:
        pipeline.run()
    finally:
        radio.close()
        cluster.close()

    print_info(f"Stopped ({pipeline.shutdown_reason}), {len(pipeline.registry)} spot(s) were tracked")
    return 0


def run(config):
    """Entry point for the console application."""
    exit_code = 1
    with patch_stdout():
        try:
            exit_code = main(config)
        except KeyboardInterrupt:
            print_pt(HTML("\n<yellow>Interrupted by user</yellow>"))
            exit_code = 130
        except Exception as e:
            print_error(f"{type(e).__name__}: {e}")
            traceback.print_exc()

    print_pt(HTML("<gray>Goodbye!</gray>"))
    return exit_code

#!/usr/bin/env python3
"""
Flex Cluster Bridge - Entry Point

Shows DX cluster spots on a FlexRadio panadapter and keeps one spot per
station per band.
"""

import sys

from clusterbridge.cli import main


if __name__ == "__main__":
    sys.exit(main())

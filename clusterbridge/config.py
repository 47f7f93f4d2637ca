"""Bridge configuration management."""

import json
import os
import re

from prompt_toolkit import HTML

from .cluster import parse_cluster_address
from .constants import CONFIG_FILE
from .errors import ClusterConnectError
from .utils import (
    print_debug,
    print_error,
    print_header,
    print_pt,
    sanitize_for_html,
)

DURATION_PATTERN = re.compile(
    r"^(?:(?P<h>\d+(?:\.\d+)?)h)?(?:(?P<m>\d+(?:\.\d+)?)m)?(?:(?P<s>\d+(?:\.\d+)?)s)?$"
)

ON_OFF_KEYS = ("QRT", "ONE_PER_BAND")


def parse_duration(text):
    """Parse a duration such as ``90``, ``90s``, ``5m``, ``1h30m`` into seconds.

    Raises:
        ValueError: Empty, malformed or non-positive duration
    """
    text = str(text).strip().lower()
    if not text:
        raise ValueError("empty duration")

    try:
        seconds = float(text)
    except ValueError:
        match = DURATION_PATTERN.match(text)
        if match is None or not any(match.groupdict().values()):
            raise ValueError(f"invalid duration {text!r}") from None
        seconds = (
            float(match.group("h") or 0) * 3600
            + float(match.group("m") or 0) * 60
            + float(match.group("s") or 0)
        )

    if not seconds > 0:
        raise ValueError(f"duration must be positive: {text!r}")
    return seconds


class BridgeConfig:
    """Persistent settings, overridable from the command line."""

    def __init__(self, config_file=None):
        if config_file is None:
            config_file = os.path.expanduser(CONFIG_FILE)

        self.config_file = config_file

        self.settings = {
            "RADIO": ":discover:",  # Radio IP[:port] or :discover:[key=value,...]
            "STATION": "Flex",  # SmartSDR station to bind to
            "CALLSIGN": "",  # Cluster login (empty = don't log in)
            "SERVER": "",  # Cluster host:port
            "TIMEOUT": "5m",  # Spot lifetime
            "QRT": "ON",  # Remove spot when comment says QRT
            "ONE_PER_BAND": "ON",  # One spot per callsign per band (OFF = per kHz)
            "FILTER": "",  # Sent to the cluster after login
        }
        self.load()

    def load(self):
        """Load configuration from file if it exists."""
        if not os.path.exists(self.config_file):
            return
        try:
            with open(self.config_file, "r") as f:
                saved = json.load(f)
        except (OSError, ValueError) as e:
            print_error(f"Could not load config {self.config_file}: {e}")
            return

        for key, value in saved.items():
            if key.upper() in self.settings:
                self.settings[key.upper()] = str(value)
        print_debug(f"Loaded config from {self.config_file}", level=6)

    def save(self):
        """Save configuration to file."""
        try:
            with open(self.config_file, "w") as f:
                json.dump(self.settings, f, indent=2)
            print_debug(f"Saved config to {self.config_file}", level=6)
        except OSError as e:
            print_error(f"Could not save config: {e}")
            return False
        return True

    def set(self, key, value):
        """Set a configuration value after validating it.

        Returns:
            True if the value was accepted
        """
        key = key.upper()
        if key not in self.settings:
            print_error(f"Unknown setting '{key}'")
            return False

        value = str(value).strip()

        if key == "TIMEOUT":
            try:
                parse_duration(value)
            except ValueError as e:
                print_error(f"Invalid timeout '{value}': {e}")
                return False

        if key in ON_OFF_KEYS:
            value = value.upper()
            if value in ("TRUE", "YES", "1"):
                value = "ON"
            elif value in ("FALSE", "NO", "0"):
                value = "OFF"
            if value not in ("ON", "OFF"):
                print_error(f"Invalid value '{value}' for {key}: must be ON or OFF")
                return False

        if key == "SERVER" and value:
            try:
                parse_cluster_address(value)
            except ClusterConnectError as e:
                print_error(str(e))
                return False

        if key == "CALLSIGN":
            value = value.upper()

        self.settings[key] = value
        return True

    def get(self, key):
        """Get a configuration value."""
        return self.settings.get(key.upper(), "")

    def flag(self, key):
        """Get an ON/OFF setting as a bool."""
        return self.get(key).upper() == "ON"

    @property
    def timeout_seconds(self):
        return parse_duration(self.get("TIMEOUT"))

    def display(self):
        """Display all settings."""
        print_header("Bridge Configuration")
        for key in sorted(self.settings.keys()):
            value = self.settings[key]
            if value:
                print_pt(HTML(f"<b>{key:12s}</b> {sanitize_for_html(value)}"))
            else:
                print_pt(HTML(f"<gray>{key:12s} (not set)</gray>"))
        print_pt("")

"""Constants and configuration for the cluster bridge."""

# --- Version ---
VERSION = "0.3.0"

# --- Configuration ---
CONFIG_FILE = "~/.cluster_bridge.json"
DEFAULT_CLUSTER_PORT = 7300
FLEX_API_PORT = 4992
FLEX_DISCOVERY_PORT = 4992
CONNECT_TIMEOUT = 10  # seconds
DISCOVERY_TIMEOUT = 15  # seconds
STATION_BIND_TIMEOUT = 5  # seconds
LOGIN_DELAY = 1.0  # seconds after connect before sending callsign

# Radio API error codes
SPOT_NOT_FOUND_ERROR = 0x500000BC
# Not a radio code: reported to waiters when the API connection goes away
CONNECTION_CLOSED_ERROR = 0xFFFFFFFF

# The radio's command grammar is space-delimited; this stands in for a space
FIELD_SPACE = "\x7f"

# Non-spot cluster lines ending in one of these are prompts
PROMPT_SUFFIXES = (">", "> ", ":", ": ")

# Debug level system (0-6)
# 0 = No debugging
# 2 = Errors and important events
# 3 = Connection state changes, login
# 4 = Radio commands and replies
# 5 = Registry bookkeeping (refresh, sweep)
# 6 = Everything including raw radio status lines
DEBUG_LEVEL = 0

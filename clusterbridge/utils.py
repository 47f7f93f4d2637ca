"""Console output helpers for the cluster bridge.

Every diagnostic goes through these wrappers so that output from the flow
threads lands above the live prompt instead of corrupting it.
"""

import html
import os
import threading
from datetime import datetime

from prompt_toolkit import print_formatted_text as _print_pt_original
from prompt_toolkit.formatted_text import HTML, to_plain_text

from . import constants


# Console log file handle (for -l option)
_console_log_file = None
_console_log_lock = threading.Lock()

MAX_LOG_SIZE = 10 * 1024 * 1024  # 10MB


def set_console_log_file(file_handle):
    """Set the console log file handle for print_pt output."""
    global _console_log_file
    _console_log_file = file_handle


def open_console_log(path):
    """Open (and rotate if oversized) the console log file.

    Args:
        path: Log file path, ``~`` is expanded

    Returns:
        The open file handle, already registered with print_pt
    """
    log_path = os.path.expanduser(path)
    if os.path.exists(log_path) and os.path.getsize(log_path) > MAX_LOG_SIZE:
        stamp = datetime.now().strftime('%Y%m%d-%H%M%S')
        os.rename(log_path, f"{log_path}.{stamp}")

    log_file = open(log_path, 'a', buffering=1)
    set_console_log_file(log_file)
    return log_file


def print_pt(*args, **kwargs):
    """Wrapper for print_formatted_text that also logs to file if enabled."""
    # Always print to terminal
    _print_pt_original(*args, **kwargs)

    if _console_log_file and args:
        text = to_plain_text(args[0])
        stamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        with _console_log_lock:
            try:
                _console_log_file.write(f"[{stamp}] {text}\n")
            except (OSError, ValueError):
                # Log file went away (closed or disk full); terminal output still works
                pass


def _is_printable_xml_char(c):
    """True for characters HTML() can parse and the terminal can draw."""
    if c in "\n\r\t":
        return True
    code = ord(c)
    if code < 0x20 or code == 0x7F:
        return False
    # Surrogates and U+FFFE/U+FFFF are not XML characters
    return not (0xD800 <= code <= 0xDFFF or code in (0xFFFE, 0xFFFF))


def sanitize_for_html(text):
    """Replace control and non-XML characters and escape HTML entities."""
    text_str = str(text)
    filtered = "".join(
        (
            c
            if _is_printable_xml_char(c)
            else (f"\\x{ord(c):02x}" if ord(c) < 0x100 else f"\\u{ord(c):04x}")
        )
        for c in text_str
    )
    return html.escape(filtered, quote=False)


def print_header(text):
    """Print a colored header."""
    print_pt(HTML(f"\n<b><cyan>{'='*70}</cyan></b>"))
    print_pt(HTML(f"<b><cyan>{text}</cyan></b>"))
    print_pt(HTML(f"<b><cyan>{'='*70}</cyan></b>"))


def print_info(text):
    """Print info message."""
    print_pt(HTML(f"<green>[INFO]</green> {sanitize_for_html(text)}"))


def print_error(text):
    """Print error message."""
    print_pt(HTML(f"<red>[ERROR]</red> {sanitize_for_html(text)}"))


def print_status(text):
    """Print status message."""
    print_pt(HTML(f"<blue>[STATUS]</blue> {sanitize_for_html(text)}"))


def print_warning(text):
    """Print warning message."""
    print_pt(HTML(f"<orange>[WARNING]</orange> {sanitize_for_html(text)}"))


def print_debug(text, level=2):
    """Print debug message.

    Args:
        text: The message to print
        level: Debug level (default=2 for general debugging)
               3 = connection and login events
               4 = radio commands and replies
               5 = registry bookkeeping
               6 = raw radio status traffic
    """
    if constants.DEBUG_LEVEL < level:
        return

    ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]  # milliseconds
    print_pt(HTML(f"<gray>[DEBUG {ts}]</gray> {sanitize_for_html(text)}"))

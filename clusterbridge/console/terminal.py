"""Operator console: pinned prompt, spot echo and cluster passthrough."""

import asyncio
import threading

from prompt_toolkit import HTML, PromptSession

from clusterbridge.models import SpotEvent
from clusterbridge.utils import print_pt, sanitize_for_html

DEFAULT_PROMPT = "cluster"


class ClusterConsole:
    """Line console shared by the pipeline threads.

    readline() is called by the console reader thread only. The other
    methods may be called from any thread.
    """

    def __init__(self, session=None):
        self.session = session if session is not None else PromptSession()
        self.interrupted = False
        self._prompt_html = ""
        self._closed = threading.Event()
        self.set_prompt(DEFAULT_PROMPT)

    @property
    def prompt_html(self):
        return self._prompt_html

    def set_prompt(self, text):
        """Show ``text`` as the prompt, redrawing it if input is in progress."""
        self._prompt_html = f"<ansimagenta>{sanitize_for_html(text)}</ansimagenta>&gt; "
        app = self.session.app
        if app.is_running:
            app.invalidate()

    def readline(self):
        """Read one line from the operator.

        Returns:
            The line, or None on EOF, Ctrl-C or after close()
        """
        if self._closed.is_set():
            return None
        try:
            return self.session.prompt(
                lambda: HTML(self._prompt_html),
                pre_run=self._schedule_exit_check,
                handle_sigint=False,
            )
        except EOFError:
            return None
        except KeyboardInterrupt:
            self.interrupted = True
            return None

    def close(self):
        """Make the current and all later readline() calls return None."""
        self._closed.set()
        app = self.session.app
        if app.is_running and app.loop is not None:
            app.loop.call_soon_threadsafe(self._exit_if_closed)

    def _schedule_exit_check(self):
        # close() may have landed between the readline() check and the app starting
        asyncio.get_running_loop().call_soon(self._exit_if_closed)

    def _exit_if_closed(self):
        app = self.session.app
        if not self._closed.is_set() or not app.is_running:
            return
        if app.future is not None and not app.future.done():
            app.exit(exception=EOFError())

    def echo(self, text):
        """Print a cluster line as received."""
        print_pt(HTML(sanitize_for_html(text)))

    def echo_spot(self, event: SpotEvent, band: str):
        """Print a spot with highlighted fields and its band."""
        comment_color = "ansibrightred" if event.is_removal else "ansibrightcyan"
        freq = event.freq_text or f"{event.freq_khz:.1f}"
        spotter = sanitize_for_html(f"{event.spotter}:")
        print_pt(HTML(
            f"<ansibrightgreen>DX de</ansibrightgreen> "
            f"<ansiyellow>{spotter:<10}</ansiyellow>"
            f"<ansibrightblue>{sanitize_for_html(freq):>9}</ansibrightblue>  "
            f"<ansimagenta>{sanitize_for_html(event.dx_call):<12}</ansimagenta> "
            f"<{comment_color}>{sanitize_for_html(event.comment):<30}</{comment_color}> "
            f"{sanitize_for_html(event.time)} "
            f"<ansibrightgreen>{band}</ansibrightgreen>"
        ))

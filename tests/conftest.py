import pytest
from prompt_toolkit.formatted_text import to_plain_text

from clusterbridge import utils
from clusterbridge.config import BridgeConfig
from clusterbridge.constants import SPOT_NOT_FOUND_ERROR
from clusterbridge.models import CmdResult


class FakeRadio:
    """Records commands; replies come from a queue or a default handler."""

    def __init__(self):
        self.commands = []
        self.replies = []
        self.next_id = 100
        self.closed = False
        self.ran = False

    def send_and_wait(self, command):
        self.commands.append(command)
        if self.replies:
            return self.replies.pop(0)
        if command.startswith("spot add"):
            self.next_id += 1
            return CmdResult(0, str(self.next_id))
        return CmdResult(0, "")

    def run(self):
        self.ran = True

    def close(self):
        self.closed = True

    def verbs(self):
        return [" ".join(c.split()[:2]) for c in self.commands]


class FakeCluster:
    def __init__(self, lines=()):
        self._lines = list(lines)
        self.sent = []
        self.closed = False

    def lines(self):
        yield from self._lines

    def send_line(self, text):
        self.sent.append(text)
        return not self.closed

    def close(self):
        self.closed = True


class FakeConsole:
    def __init__(self, inputs=()):
        self.inputs = list(inputs)
        self.echoed = []
        self.spots = []
        self.prompts = []
        self.closed = False
        self.interrupted = False

    def readline(self):
        if self.closed or not self.inputs:
            return None
        return self.inputs.pop(0)

    def echo(self, text):
        self.echoed.append(text)

    def echo_spot(self, event, band):
        self.spots.append((event, band))

    def set_prompt(self, text):
        self.prompts.append(text)

    def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def printed(monkeypatch):
    """Capture console output as plain text instead of drawing it."""
    lines = []
    monkeypatch.setattr(
        utils, "_print_pt_original", lambda *args, **kwargs: lines.append(to_plain_text(args[0]) if args else "")
    )
    return lines


@pytest.fixture
def radio():
    return FakeRadio()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    return BridgeConfig(str(tmp_path / "bridge.json"))


def not_found():
    return CmdResult(SPOT_NOT_FOUND_ERROR, "spot not found")

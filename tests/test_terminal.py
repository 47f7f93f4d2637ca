import pytest
from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from clusterbridge.console.terminal import ClusterConsole
from clusterbridge.models import SpotEvent


@pytest.fixture
def pipe():
    with create_pipe_input() as inp:
        yield inp


@pytest.fixture
def console(pipe):
    return ClusterConsole(PromptSession(input=pipe, output=DummyOutput()))


def test_default_prompt(console):
    assert console.prompt_html == "<ansimagenta>cluster</ansimagenta>&gt; "


def test_set_prompt_escapes_markup(console):
    console.set_prompt("K1ABC de <GB7DXC>")
    assert console.prompt_html == "<ansimagenta>K1ABC de &lt;GB7DXC&gt;</ansimagenta>&gt; "


def test_readline_returns_typed_line(console, pipe):
    pipe.send_text("sh/dx 5\r")
    assert console.readline() == "sh/dx 5"


def test_readline_eof(console, pipe):
    pipe.send_text("\x04")
    assert console.readline() is None
    assert console.interrupted is False


def test_readline_ctrl_c_marks_interrupt(console, pipe):
    pipe.send_text("\x03")
    assert console.readline() is None
    assert console.interrupted is True


def test_readline_after_close(console):
    console.close()
    assert console.readline() is None


def test_echo_spot(console, printed):
    event = SpotEvent(
        spotter="K1ABC",
        freq_khz=14025.0,
        dx_call="W1XYZ",
        comment="CQ CQ DX",
        time="1234Z",
        freq_text="14025.0",
    )

    console.echo_spot(event, "20m")

    line = printed[-1]
    assert line.startswith("DX de K1ABC:")
    assert "14025.0" in line
    assert "W1XYZ" in line
    assert "CQ CQ DX" in line
    assert line.endswith("1234Z 20m")


def test_echo_escapes_control_characters(console, printed):
    console.echo("bell\x07 <tag>")
    assert printed[-1] == "bell\\x07 <tag>"

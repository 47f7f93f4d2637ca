import pytest
from prompt_toolkit.formatted_text import HTML, to_plain_text

from clusterbridge import utils
from clusterbridge.utils import sanitize_for_html


def test_sanitize_escapes_markup():
    assert sanitize_for_html("<b>W1XYZ & co</b>") == "&lt;b&gt;W1XYZ &amp; co&lt;/b&gt;"


def test_sanitize_replaces_control_characters():
    assert sanitize_for_html("CQ\x07DX\x7f") == "CQ\\x07DX\\x7f"
    assert sanitize_for_html("a\tb") == "a\tb"


@pytest.mark.parametrize("char, shown", [
    ("\ufffe", "\\ufffe"),
    ("\uffff", "\\uffff"),
    ("\ud800", "\\ud800"),
])
def test_sanitize_replaces_non_xml_characters(char, shown):
    text = sanitize_for_html(f"hello {char} world")

    assert text == f"hello {shown} world"
    assert to_plain_text(HTML(text)) == f"hello {shown} world"


def test_sanitize_keeps_non_ascii_text():
    assert sanitize_for_html("Zürich 73 ÿ") == "Zürich 73 ÿ"


def test_print_info_mirrors_to_log_file(tmp_path, printed):
    log_file = utils.open_console_log(str(tmp_path / "bridge.log"))
    try:
        utils.print_info("Connected to cluster")
    finally:
        utils.set_console_log_file(None)
        log_file.close()

    assert printed == ["[INFO] Connected to cluster"]
    assert "[INFO] Connected to cluster" in (tmp_path / "bridge.log").read_text()

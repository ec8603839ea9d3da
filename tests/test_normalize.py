import pytest
from autotagger.normalize import strip_subtitles

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:02,000
Hello <i>world</i>!

2
00:00:03,500 --> 00:00:05,000
- Are you coming?
- <font color="#ffff00">Not today.</font>
"""


def test_strip_single_cue():
    assert strip_subtitles("1\n00:00:01,000 --> 00:00:02,000\nHello <i>world</i>!\n") == "Hello world!"


def test_strip_multiple_cues():
    assert strip_subtitles(SAMPLE_SRT) == "Hello world! Are you coming? Not today."


def test_strip_windows_line_endings():
    text = "1\r\n00:00:01,000 --> 00:00:02,000\r\nHello world\r\n"
    assert strip_subtitles(text) == "Hello world"


def test_strip_removes_disallowed_characters():
    assert strip_subtitles("It's 5 o'clock; run: now") == "Its 5 oclock run now"
    assert strip_subtitles("♪ La la ♪") == "La la"


def test_strip_keeps_allowed_punctuation():
    assert strip_subtitles("Really? Yes. Well, fine!") == "Really? Yes. Well, fine!"


def test_strip_keeps_numbers_inside_dialogue():
    assert strip_subtitles("1\nWe need 42 more\n") == "We need 42 more"


def test_strip_no_matches_is_noop():
    assert strip_subtitles("plain text") == "plain text"
    assert strip_subtitles("") == ""


def test_same_dialogue_different_formatting_compares_equal():
    ocr_output = "1\n00:00:01,000 --> 00:00:02,000\nHello world!\n"
    downloaded = "5\n00:00:01,200 --> 00:00:02,100\n<b>Hello</b>\n<i>world!</i>\n"
    assert strip_subtitles(ocr_output) == strip_subtitles(downloaded)


@pytest.mark.parametrize("text", [
    SAMPLE_SRT,
    "5 \n",
    "5#\n",
    "x\n\n7\n",
    "12 34",
    "  -  leading dash\n--> stray arrow\n<a href='x'>link</a>",
    "\n\n\n",
    "a\tb\t\tc",
])
def test_strip_is_idempotent(text):
    once = strip_subtitles(text)
    assert strip_subtitles(once) == once

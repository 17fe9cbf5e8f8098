import pytest

from relay_bot.chat.commands import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    MAX_ALLOWED_TOKENS,
    MAX_TEMPERATURE,
    MIN_ALLOWED_TOKENS,
    MIN_TEMPERATURE,
    parse_commands,
    parse_directives,
)


def _settings(text):
    parsed = parse_commands(text)
    return parsed.content, parsed.max_tokens, parsed.temperature


def test_parse_directives_single():
    scan = parse_directives("!tokens=2000 Hello")
    assert scan.directives == {"!tokens": "2000"}
    assert scan.end_cursor == 13


def test_parse_directives_multiple():
    scan = parse_directives("!tokens=2000 !temp=1.5 Hello")
    assert scan.directives == {"!tokens": "2000", "!temp": "1.5"}
    assert scan.end_cursor == 23


def test_parse_directives_stops_at_content():
    text = "!tokens=2000 Hello !temp=1.5"
    scan = parse_directives(text)
    assert scan.directives == {"!tokens": "2000"}
    assert text[scan.end_cursor:].strip() == "Hello !temp=1.5"


def test_parse_directives_empty():
    assert parse_directives("") == ({}, 0)


def test_parse_directives_not_at_start():
    assert parse_directives("Hello !tokens=5") == ({}, 0)


def test_parse_directives_last_write_wins():
    assert parse_directives("!temp=0.2 !temp=0.9 hi").directives == {"!temp": "0.9"}


def test_bare_directive_is_skipped():
    scan = parse_directives("!verbose !temp=0.5 hi")
    assert scan.directives == {"!temp": "0.5"}
    assert _settings("!verbose hi") == ("hi", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE)


@pytest.mark.parametrize(
    "text",
    ["!tokens=2000 !temp=1.5 Hello", "!temp=1.5 !tokens=2000 Hello", "!temp=1.5!tokens=2000 Hello"],
)
def test_order_and_spacing_independent(text):
    assert _settings(text) == ("Hello", 2000, 1.5)


def test_single_directive_keeps_other_default():
    assert _settings("!tokens=2000 Hello") == ("Hello", 2000, DEFAULT_TEMPERATURE)
    assert _settings("!temp=1.5 Hello") == ("Hello", DEFAULT_MAX_TOKENS, 1.5)


def test_no_directives():
    assert _settings("Hello") == ("Hello", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE)


def test_glued_text_is_swallowed_by_value():
    assert _settings("!tokens=2000Hello") == ("", 2000, DEFAULT_TEMPERATURE)
    assert _settings("!temp=1.5Hello") == ("", DEFAULT_MAX_TOKENS, 1.5)
    assert _settings("!tokens=2000!temp=1.5Hello") == ("", 2000, 1.5)


def test_content_resumes_after_glued_word():
    assert _settings("!tokens=2000Hello Another content") == ("Another content", 2000, DEFAULT_TEMPERATURE)
    assert _settings("!temp=1.87Hello Another content") == ("Another content", DEFAULT_MAX_TOKENS, 1.87)
    assert _settings("!tokens=2000!temp=1.5Hello Another content") == ("Another content", 2000, 1.5)


def test_clamps_to_maximum():
    assert _settings("!tokens=10000 !temp=3.0 Hello") == ("Hello", MAX_ALLOWED_TOKENS, MAX_TEMPERATURE)


def test_clamps_negative_to_minimum():
    assert _settings("!tokens=-100 !temp=-0.5 Hello") == ("Hello", MIN_ALLOWED_TOKENS, MIN_TEMPERATURE)
    assert _settings("!tokens=-100 Hello") == ("Hello", MIN_ALLOWED_TOKENS, DEFAULT_TEMPERATURE)
    assert _settings("!temp=-0.5 Hello") == ("Hello", DEFAULT_MAX_TOKENS, MIN_TEMPERATURE)


def test_invalid_values_fall_back_to_defaults():
    assert _settings("!tokens=invalid !temp=notanumber Hello") == (
        "Hello",
        DEFAULT_MAX_TOKENS,
        DEFAULT_TEMPERATURE,
    )
    assert _settings("!tokens=2000 !temp=notanumber Hello") == ("Hello", 2000, DEFAULT_TEMPERATURE)
    assert _settings("!temp=abc Hello") == ("Hello", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE)
    assert _settings("!tokens=xyz Hello") == ("Hello", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE)
    assert _settings("!tokens= Hello") == ("Hello", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE)
    # only ASCII digits count
    assert _settings("!tokens=５ Hello") == ("Hello", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE)
    assert _settings("!tokens=٣٣ Hello") == ("Hello", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE)
    assert _settings("!temp=٠ Hello") == ("Hello", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("!tokens=1 Hello", ("Hello", 1, DEFAULT_TEMPERATURE)),
        ("!tokens=8192 Hello", ("Hello", 8192, DEFAULT_TEMPERATURE)),
        ("!tokens=0 Hello", ("Hello", MIN_ALLOWED_TOKENS, DEFAULT_TEMPERATURE)),
        ("!temp=0 Hello", ("Hello", DEFAULT_MAX_TOKENS, 0.0)),
        ("!temp=2 Hello", ("Hello", DEFAULT_MAX_TOKENS, 2.0)),
        ("!temp=0.7 Hello", ("Hello", DEFAULT_MAX_TOKENS, 0.7)),
        ("!tokens=1.9 Hello", ("Hello", 1, DEFAULT_TEMPERATURE)),
    ],
)
def test_boundaries(text, expected):
    assert _settings(text) == expected


def test_content_trimmed():
    assert _settings("!tokens=2000   Hello  ") == ("Hello", 2000, DEFAULT_TEMPERATURE)
    assert _settings("!tokens=2000") == ("", 2000, DEFAULT_TEMPERATURE)

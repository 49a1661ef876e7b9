import datetime

import pytest

from inkpages.utils import (
    calculate_reading_time,
    generate_excerpt,
    generate_post_id,
    is_html,
    ms_to_iso,
    parse_tags,
    slugify_title,
    strip_html,
    to_epoch_ms,
    truncate_text,
)


def test_reading_time_is_at_least_one_minute():
    assert calculate_reading_time("") == 1
    assert calculate_reading_time("just a few words") == 1


def test_reading_time_rounds_up():
    assert calculate_reading_time("word " * 200) == 1
    assert calculate_reading_time("word " * 201) == 2
    assert calculate_reading_time("word " * 201, words_per_minute=100) == 3


def test_reading_time_never_drops_as_words_are_added():
    times = [calculate_reading_time("word " * n) for n in range(0, 1001, 7)]
    assert times == sorted(times)
    assert times[-1] == 5


def test_strip_html_and_is_html():
    assert strip_html("<p>Hello <em>there</em></p>") == "Hello there"
    assert is_html("<p>Hello</p>") is True
    assert is_html("a < b and b > c") is False
    assert is_html("# Just markdown") is False


def test_excerpt_strips_markdown_and_keeps_short_text():
    content = "# Title\n\nSome **bold** and *italic* text with a [link](https://x.y) and `code`."
    assert generate_excerpt(content) == (
        "Title Some bold and italic text with a link and code."
    )


def test_excerpt_truncates_on_word_boundary():
    excerpt = generate_excerpt("word " * 50, max_length=20)
    assert excerpt == "word word word..."
    assert len(excerpt) <= 20


@pytest.mark.parametrize(
    "content",
    [
        "Use ``a`b`` here",
        "Plain `code` and ```fenced `tick` run``` text",
        "***both*** and **bold *nested* text**",
        "#\t# Heading\n\n*split\nacross lines*",
        "<p>Some <strong>html</strong> with a [link](https://x.y)</p>",
        "word " * 60,
        "`" + "x" * 200 + "`",
    ],
)
def test_excerpt_is_stable_when_derived_again(content):
    once = generate_excerpt(content, max_length=40)
    assert generate_excerpt(once, max_length=40) == once


def test_excerpt_strips_whole_backtick_runs():
    assert generate_excerpt("Use ``a`b`` here") == "Use a`b here"


def test_truncate_text_leaves_short_text_alone():
    assert truncate_text("short", 10) == "short"


def test_post_id_combines_timestamp_and_slug():
    assert slugify_title("  Hello, World!  ") == "hello-world"
    assert generate_post_id("Hello, World!", 1700000000000) == "1700000000000-hello-world"


def test_parse_tags_from_string_and_list():
    assert parse_tags("writing, craft,, voice ") == ["writing", "craft", "voice"]
    assert parse_tags([" a ", "", "b"]) == ["a", "b"]
    assert parse_tags(None) == []


def test_to_epoch_ms_accepts_common_forms():
    expected = int(
        datetime.datetime(2024, 11, 24, 10, 0, tzinfo=datetime.timezone.utc).timestamp() * 1000
    )
    assert to_epoch_ms("2024-11-24T10:00:00Z") == expected
    assert to_epoch_ms("2024-11-24T10:00:00+00:00") == expected
    assert to_epoch_ms(datetime.datetime(2024, 11, 24, 10, 0)) == expected
    assert to_epoch_ms(str(expected)) == expected
    assert to_epoch_ms(expected) == expected


def test_to_epoch_ms_rejects_garbage():
    assert to_epoch_ms(None) is None
    assert to_epoch_ms("") is None
    assert to_epoch_ms("not a date") is None
    assert to_epoch_ms(True) is None


def test_ms_to_iso():
    assert ms_to_iso(0) == "1970-01-01T00:00:00Z"
    assert ms_to_iso(None) is None

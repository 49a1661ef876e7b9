import datetime
import math
import re
import time
from typing import Iterable, List, Optional, Union

DEFAULT_WORDS_PER_MINUTE = 200
DEFAULT_EXCERPT_LENGTH = 150
ELLIPSIS = "..."

_HTML_TAG = re.compile(r"<[^>]*>")
_HTML_ELEMENT = re.compile(r"<([a-z][a-z0-9]*)\b[^>]*>", re.IGNORECASE)
_MD_HEADER = re.compile(r"#{1,6}\s+")
_MD_BOLD = re.compile(r"\*\*(.*?)\*\*")
_MD_ITALIC = re.compile(r"\*(.*?)\*")
_MD_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_MD_CODE = re.compile(r"(`+)(.+?)\1")
_WHITESPACE = re.compile(r"\s+")
_TRAILING_PARTIAL_WORD = re.compile(r"\s+\S*$")


def now_ms() -> int:
    return int(time.time() * 1000)


def calculate_reading_time(
    text: str, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE
) -> int:
    words = (text or "").split()
    return max(1, math.ceil(len(words) / words_per_minute))


def strip_html(content: str) -> str:
    return _HTML_TAG.sub("", content or "")


def is_html(content: str) -> bool:
    """Content counts as HTML when it contains at least one element tag."""
    return bool(_HTML_ELEMENT.search(content or ""))


def strip_markup(content: str) -> str:
    """Plain text from HTML or Markdown. Stripping again changes nothing."""
    text, previous = content or "", None
    while text != previous:
        previous = text
        text = strip_html(text)
        text = _MD_HEADER.sub("", text)
        text = _MD_BOLD.sub(r"\1", text)
        text = _MD_ITALIC.sub(r"\1", text)
        text = _MD_LINK.sub(r"\1", text)
        text = _MD_CODE.sub(r"\2", text)
        text = _WHITESPACE.sub(" ", text)
    return text.strip()


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    # the ellipsis counts towards max_length
    cut = text[: max(0, max_length - len(ELLIPSIS))]
    return _TRAILING_PARTIAL_WORD.sub("", cut) + ELLIPSIS


def generate_excerpt(content: str, max_length: int = DEFAULT_EXCERPT_LENGTH) -> str:
    return truncate_text(strip_markup(content), max_length)


def slugify_title(title: str) -> str:
    slug = (title or "").lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def generate_post_id(title: str, timestamp_ms: Optional[int] = None) -> str:
    timestamp = timestamp_ms if timestamp_ms is not None else now_ms()
    return f"{timestamp}-{slugify_title(title)}"


def parse_tags(value: Union[str, Iterable[str], None]) -> List[str]:
    if not value:
        return []
    items = value.split(",") if isinstance(value, str) else value
    return [str(tag).strip() for tag in items if tag and str(tag).strip()]


def to_epoch_ms(value) -> Optional[int]:
    """
    Normalise a timestamp (epoch ms, ISO string, date or datetime)
    into integer epoch milliseconds. Unparseable values become None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, datetime.date):
        return to_epoch_ms(datetime.datetime(value.year, value.month, value.day))
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_epoch_ms(datetime.datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def ms_to_iso(value: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    dt = datetime.datetime.fromtimestamp(value / 1000, tz=datetime.timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")

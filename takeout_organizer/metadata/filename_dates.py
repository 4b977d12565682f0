"""
Date extraction from media filenames.

Three parser families are tried in order and the first one that yields a
valid datetime wins:

  numeric   IMG_20140512_1000.jpg, 2019-05-03 14.22.01.png, PXL_20240710_200842123.jpg
  phrase    스크린샷 2019년 5월 3일 오후 3시 12분.png
  epoch     1589302100123.jpg (milliseconds), 1589302100.mp4 (seconds)
"""
import re
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .. import config

_NUMERIC_RE = re.compile(
    r'(?<!\d)(19\d{2}|20\d{2})[-_.]?(0[1-9]|1[0-2])[-_.]?(0[1-9]|[12]\d|3[01])'
    r'(?:[-_. T]?([01]\d|2[0-3])[-_.:]?([0-5]\d)(?:[-_.:]?([0-5]\d))?)?'
)

_PHRASE_RE = re.compile(
    r'(\d{4})\s*년\s*(\d{1,2})\s*월\s*(\d{1,2})\s*일'
    r'(?:\s*(오전|오후)?\s*(\d{1,2})\s*(?:시|[:.])\s*(?:(\d{1,2})\s*(?:분|[:.])?\s*)?(?:(\d{1,2})\s*초?)?)?'
)

_EPOCH_MS_RE = re.compile(r'(?<!\d)(\d{13})(?!\d)')
_EPOCH_S_RE = re.compile(r'(?<!\d)(\d{10})(?!\d)')


def _build(year, month, day, hour=0, minute=0, second=0) -> Optional[datetime]:
    try:
        return datetime(int(year), int(month), int(day), int(hour or 0), int(minute or 0), int(second or 0))
    except ValueError:
        return None


def parse_numeric(name: str) -> Optional[datetime]:
    for m in _NUMERIC_RE.finditer(name):
        dt = _build(*m.groups())
        if dt:
            return dt
    return None


def _to_24h(marker: Optional[str], hour: int) -> int:
    if marker == '오후' and hour < 12:
        return hour + 12
    if marker == '오전' and hour == 12:
        return 0
    return hour


def parse_phrase(name: str) -> Optional[datetime]:
    m = _PHRASE_RE.search(name)
    if not m:
        return None
    year, month, day, marker, hour, minute, second = m.groups()
    hour = _to_24h(marker, int(hour)) if hour else 0
    return _build(year, month, day, hour, minute, second)


def parse_epoch(name: str, current_year: int) -> Optional[datetime]:
    m = _EPOCH_MS_RE.search(name)
    if m:
        try:
            return datetime.fromtimestamp(int(m.group(1)) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            pass

    # 10-digit runs are often plain IDs; only accept plausible capture years
    for m in _EPOCH_S_RE.finditer(name):
        try:
            dt = datetime.fromtimestamp(int(m.group(1)), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            continue
        if config.EPOCH_MIN_YEAR <= dt.year <= current_year + 1:
            return dt
    return None


def date_from_filename(name: str, current_year: int) -> Optional[datetime]:
    parsers: List[Callable[[str], Optional[datetime]]] = [
        parse_numeric,
        parse_phrase,
        lambda n: parse_epoch(n, current_year),
    ]
    for parser in parsers:
        dt = parser(name)
        if dt:
            return dt
    return None

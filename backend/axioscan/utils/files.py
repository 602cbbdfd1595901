# backend/axioscan/utils/files.py
import re
import time
from datetime import datetime
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import UploadFile
from ..config import settings

# Characters that are unsafe in file names on at least one target platform
_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\?%*|"<>]')

DEFAULT_FILENAME = "Document"


def sanitize_filename(name: str) -> str:
    """Replace path-unsafe characters and trim surrounding whitespace"""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name or "").strip()
    return cleaned or DEFAULT_FILENAME


def cache_busted_url(url: str, timestamp: int | None = None) -> str:
    """Return url with its `t` query parameter replaced by the current time.

    Intermediate caches key on the full URL, so a fresh `t` forces them to
    fetch the newest bytes while the origin ignores the parameter.
    """
    parts = urlsplit(url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != "t"]
    query.append(("t", str(timestamp if timestamp is not None else int(time.time()))))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def public_url(locator: str | None) -> str | None:
    """Client-facing, cache-busted URL for a blob locator"""
    if not locator:
        return None
    return cache_busted_url(f"{settings.PUBLIC_BASE_URL}/storage/{locator}")


def get_relative_path(absolute_path: Path, base_path: Path) -> str:
    """Convert absolute path to a forward-slash path relative to base_path"""
    absolute_path = Path(absolute_path).absolute()
    base_path = Path(base_path).absolute()
    return absolute_path.relative_to(base_path).as_posix()


async def read_upload_files(upload_files: list[UploadFile]) -> list[bytes]:
    """Read uploaded files fully, preserving their order"""
    contents = []
    for upload_file in upload_files:
        contents.append(await upload_file.read())
    return contents


def display_timestamp(moment: datetime | None = None) -> str:
    """Medium date with short time, e.g. 'Oct 19, 2026 at 3:04 PM'"""
    moment = moment or datetime.now()
    hour = moment.strftime("%I").lstrip("0")
    return f"{moment:%b} {moment.day}, {moment.year} at {hour}:{moment:%M %p}"

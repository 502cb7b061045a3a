"""Connection string parsing.

Grammar: ``xls:<absolute-uri>[?option(&option)*]`` where an option is ``key``
or ``key=value``, both percent-encoded. A bare key is recorded with the
``"true"`` sentinel.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import unquote_plus, urlsplit
from urllib.request import url2pathname

from . import URL_SCHEME
from .errors import InvalidOption, InvalidUrl

READ_STREAMING = "readStreaming"
WRITE_STREAMING = "writeStreaming"
HEADLINE = "headLine"
FIRST_COL = "firstColumn"
TRUE = "true"

_URI_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:.+", re.DOTALL)
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class Transport(str, Enum):
    LOCAL_FILE = "local-file"
    REMOTE = "remote"


@dataclass(frozen=True)
class ResourceLocator:
    uri: str
    scheme: str
    transport: Transport
    path: Optional[str] = None  # decoded filesystem path, local-file only

    @property
    def is_local(self) -> bool:
        return self.transport is Transport.LOCAL_FILE


def accepts(raw: Any) -> bool:
    """True when ``raw`` names this driver's scheme. Never raises."""
    if not isinstance(raw, str):
        return False
    return raw.strip().lower().startswith(URL_SCHEME)


def has(options: Mapping[str, str], key: str) -> bool:
    """True when ``key`` is set to the true sentinel."""
    return options.get(key) == TRUE


def parse(raw: str, overlay: Optional[Mapping[str, Any]] = None) -> Tuple[ResourceLocator, Mapping[str, str]]:
    """Split ``raw`` into a locator and a read-only option map.

    ``overlay`` values are applied first; options from the URL overwrite them.
    """
    if not raw.lower().startswith(URL_SCHEME):
        raise InvalidUrl(f"URL is not {URL_SCHEME} ({raw})", url=raw)
    options = {str(k): _stringify(v) for k, v in (overlay or {}).items()}
    target = raw
    question = raw.find("?")
    if question >= 0:
        options.update(parse_options(raw[question + 1:]))
        target = raw[:question]
    locator = parse_locator(target[len(URL_SCHEME):])
    return locator, MappingProxyType(options)


def parse_options(query: str) -> dict:
    options = {}
    for token in query.split("&"):
        if not token:
            continue
        parts = token.split("=")
        if len(parts) == 2:
            options[_decode(parts[0], token)] = _decode(parts[1], token)
        elif len(parts) == 1:
            options[_decode(parts[0], token)] = TRUE
        else:
            raise InvalidOption(f"Invalid property: {token}", token=token)
    return options


def parse_locator(candidate: str) -> ResourceLocator:
    if not _URI_SCHEME_RE.match(candidate):
        raise InvalidUrl(f"Not an absolute URI: {candidate!r}", url=candidate)
    parts = urlsplit(candidate)
    scheme = parts.scheme.lower()
    if scheme == "file":
        if not parts.path:
            raise InvalidUrl(f"file URI without a path: {candidate!r}", url=candidate)
        return ResourceLocator(candidate, scheme, Transport.LOCAL_FILE, url2pathname(parts.path))
    return ResourceLocator(candidate, scheme, Transport.REMOTE)


def _decode(text: str, token: str) -> str:
    if _BAD_ESCAPE_RE.search(text):
        raise InvalidOption(f"Malformed percent-encoding in option: {token}", token=token)
    try:
        return unquote_plus(text, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise InvalidOption(f"Option is not valid UTF-8: {token}", token=token) from e


def _stringify(value: Any) -> str:
    if value is True:
        return TRUE
    if value is False:
        return "false"
    return str(value)

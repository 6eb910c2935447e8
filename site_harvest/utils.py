# File: site_harvest/utils.py
"""site_harvest.utils: нормализация и валидация URL, проверка стартового адреса."""

from __future__ import annotations

import re
from typing import Collection, Iterable, List, Pattern, Sequence
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from site_harvest.exceptions import SeedValidationError
from site_harvest.logger import logger

__all__: Sequence[str] = (
    "DEFAULT_EXCLUDE_PATTERNS",
    "TRACKING_PARAMS",
    "compile_patterns",
    "validate_seed",
    "normalize_url",
    "is_valid_url",
    "extract_domain",
    "same_site",
    "remove_duplicates",
)

TRACKING_PARAMS = frozenset(
    {"fbclid", "gclid", "msclkid", "mc_cid", "mc_eid", "_ga", "yclid", "igshid"}
)
_TRACKING_PREFIXES = ("utm_",)
_DEFAULT_PORTS = {"http": "80", "https": "443"}

DEFAULT_EXCLUDE_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\.(css|js|png|jpe?g|gif|svg|ico|webp|pdf|zip|exe|dmg|woff2?|ttf|eot|mp4|mp3)(\?|$)",
        r"/(admin|login|wp-admin|dashboard|account|checkout|cart|api|ajax)(/|\?|$)",
        r"^(javascript|mailto|tel|ftp):",
        r"/search\?",
    )
)


def compile_patterns(patterns: Iterable[str]) -> List[Pattern[str]]:
    """Компилирует пользовательские regex-исключения (регистр не учитывается)."""
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def validate_seed(url: object) -> str:
    """Проверяет стартовый URL и приводит его к виду ``scheme://host/path``.

    Пустые строки, не-строки, адреса без хоста и не-http(s) схемы дают
    :class:`SeedValidationError`. Если схема не указана, подставляется ``https://``.
    """
    if not isinstance(url, str):
        raise SeedValidationError(url, "URL must be a string")
    clean = url.strip().lstrip("@#").strip()
    if not clean:
        raise SeedValidationError(url, "URL is empty")
    if "://" not in clean:
        clean = "https://" + clean
    try:
        parsed = urlparse(clean)
        parsed.port  # noqa: B018 - проверка корректности порта
    except ValueError as exc:
        raise SeedValidationError(url, str(exc)) from exc
    if parsed.scheme.lower() not in ("http", "https"):
        raise SeedValidationError(url, f"unsupported scheme {parsed.scheme!r}")
    if not parsed.hostname or " " in parsed.netloc:
        raise SeedValidationError(url, "URL has no valid host")
    return normalize_url(clean)


def _is_tracking(key: str) -> bool:
    k = key.lower()
    return k in TRACKING_PARAMS or k.startswith(_TRACKING_PREFIXES)


def normalize_url(url: str) -> str:
    """Каноническая форма URL.

    Схема и хост в нижнем регистре, порт по умолчанию убран, фрагмент и
    трекинговые параметры (``utm_*``, ``fbclid``, ``gclid`` …) удалены, порядок
    остальных параметров сохранён, пустой путь заменён на ``/``.
    """
    parsed = urlparse(url.strip())
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    try:
        port = parsed.port
    except ValueError:
        port = None
    if port is not None and str(port) != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{port}"
    if parsed.username:
        auth = parsed.username + (f":{parsed.password}" if parsed.password else "")
        netloc = f"{auth}@{netloc}"

    path = parsed.path or "/"
    query_pairs = [
        (k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if not _is_tracking(k)
    ]
    query = urlencode(query_pairs, doseq=True)
    normalized = urlunparse((scheme, netloc, path, parsed.params, query, ""))
    return normalized


def extract_domain(url: str) -> str:
    """Возвращает хост из URL в нижнем регистре без дополнительных проверок."""
    return (urlparse(url).hostname or "").lower()


def same_site(host: str, base_domain: str) -> bool:
    """Хосты считаются одним сайтом с точностью до префикса ``www.``."""
    return host.removeprefix("www.") == base_domain.removeprefix("www.")


def is_valid_url(
    url: str,
    base_domain: str,
    *,
    follow_external: bool = False,
    exclude_patterns: Collection[Pattern[str]] = DEFAULT_EXCLUDE_PATTERNS,
) -> bool:
    """Проверяет схему http(s), принадлежность домену и шаблоны исключений."""
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except ValueError as exc:
        logger.debug("URL validation error %s: %s", url, exc)
        return False
    if parsed.scheme not in ("http", "https") or not host:
        return False
    if not follow_external and not same_site(host, base_domain):
        return False
    if any(p.search(url) for p in exclude_patterns):
        logger.debug("URL excluded by pattern: %s", url)
        return False
    return True


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique

# site_harvest/crawler/robots.py
"""
Parser and checker for robots.txt rules (RFC 9309) and ``Sitemap:`` directives.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin

__all__ = ("RobotsTxtRules",)


@dataclass
class _Group:
    agents: List[str] = field(default_factory=list)
    directives: List[Tuple[str, str]] = field(default_factory=list)
    crawl_delay: Optional[float] = None

    @property
    def has_rules(self) -> bool:
        return bool(self.directives) or self.crawl_delay is not None


class RobotsTxtRules:
    """
    Парсит robots.txt (RFC 9309).
    Пустое Disallow считается разрешением всех путей.
    ``Sitemap:`` не привязан к группе и собирается в :attr:`sitemaps`.
    """

    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str, base_url: str = "") -> None:
        self._groups: List[_Group] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self.sitemaps: List[str] = []
        self._base_url = base_url
        self._parse(text)

    def can_fetch(self, user_agent: str, path: str) -> bool:
        group = self._match_group(user_agent)
        if group is None:
            return True
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group.directives:
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow" and allow is False):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        group = self._match_group(user_agent)
        return None if group is None else group.crawl_delay

    def _current(self, current: Optional[_Group]) -> _Group:
        if current is None:
            current = _Group(agents=["*"])
            self._groups.append(current)
        return current

    def _parse(self, text: str) -> None:
        current: Optional[_Group] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "user-agent":
                if current is None or (current.agents and current.has_rules):
                    current = _Group()
                    self._groups.append(current)
                current.agents.append(val.lower())
            elif key == "allow":
                current = self._current(current)
                current.directives.append(("allow", val))
            elif key == "disallow":
                # пустой Disallow разрешает все, пропускаем
                if val == "":
                    continue
                current = self._current(current)
                current.directives.append(("disallow", val))
            elif key == "crawl-delay":
                current = self._current(current)
                try:
                    current.crawl_delay = float(val)
                except ValueError:
                    pass
            elif key == "sitemap" and val:
                location = urljoin(self._base_url, val) if self._base_url else val
                if location not in self.sitemaps:
                    self.sitemaps.append(location)

    def _match_group(self, user_agent: str) -> Optional[_Group]:
        ua = user_agent.lower()
        for group in self._groups:
            if any(a != "*" and ua.startswith(a) for a in group.agents):
                return group
        for group in self._groups:
            if "*" in group.agents:
                return group
        return None

    def _match_path(self, path: str, pattern: str) -> bool:
        if pattern not in self._regex_cache:
            esc = re.escape(pattern).replace(r"\*", ".*")
            if pattern.endswith("$"):
                esc = esc[:-2] + "$"
            else:
                esc += ".*"
            self._regex_cache[pattern] = re.compile(f"^{esc}")
        return bool(self._regex_cache[pattern].match(path))

    @classmethod
    def _rule_len(cls, pattern: str) -> int:
        return len(cls._WILDCARD_RE.sub("", pattern))

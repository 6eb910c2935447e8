# File: site_harvest/storage.py
"""site_harvest.storage: приёмники ContentDocument.

Ядру нужен только метод ``put(key, document)``; конкретное хранилище
подставляется снаружи.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Protocol, Union, runtime_checkable
from urllib.parse import quote

from site_harvest.crawler.models import ContentDocument
from site_harvest.exceptions import StoreError
from site_harvest.logger import logger
from site_harvest.parser.chunker import content_hash

__all__ = ("ContentStore", "MemoryContentStore", "FileContentStore", "document_key")

_KEY_PREFIX = "scraped-content"
_MAX_NAME = 200


@runtime_checkable
class ContentStore(Protocol):
    """Минимальный контракт хранилища контента."""

    def put(self, key: str, document: ContentDocument) -> None: ...


def document_key(url: str) -> str:
    """Ключ документа: ``scraped-content/<url в percent-encoding>.json``.

    Слишком длинные имена укорачиваются и дополняются хешем URL.
    """
    encoded = quote(url, safe="")
    if len(encoded) > _MAX_NAME:
        encoded = f"{encoded[:_MAX_NAME - 17]}-{content_hash(url)[:16]}"
    return f"{_KEY_PREFIX}/{encoded}.json"


class MemoryContentStore:
    """Хранилище в памяти; удобно для тестов и встраивания."""

    def __init__(self) -> None:
        self.documents: Dict[str, ContentDocument] = {}

    def put(self, key: str, document: ContentDocument) -> None:
        self.documents[key] = document

    def __len__(self) -> int:
        return len(self.documents)


class FileContentStore:
    """Пишет каждый документ отдельным JSON-файлом в каталог *root*."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).expanduser()

    def put(self, key: str, document: ContentDocument) -> None:
        target = self.root / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("w", encoding="utf-8") as f:
                json.dump(document.to_dict(), f, ensure_ascii=False, indent=2)
        except OSError as exc:
            raise StoreError(key, str(exc)) from exc
        logger.debug("Stored %s (%d chunks)", target, len(document.chunks))

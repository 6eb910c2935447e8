# === FILE: site_harvest/config.py ===
"""
Модуль для загрузки и валидации конфигурации краулера SiteHarvest.
Используется Pydantic для описания схемы и проверки данных.
Ключи принимаются как в snake_case, так и в camelCase (``maxPages``, ``delayMs`` …).
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

__all__ = ("CrawlConfig", "load_config")

_DEFAULT_SITEMAP_UA = "Mozilla/5.0 (compatible; SiteHarvest/1.0)"


class CrawlConfig(BaseModel):
    """Конфигурация для одного запуска обхода сайта."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    seed_url: Optional[str] = Field(None, description="Стартовый URL (аргумент CLI имеет приоритет).")

    # Параметры из публичного интерфейса
    max_pages: int = Field(15000, ge=1, description="Жесткий лимит по числу загруженных страниц.")
    max_depth: int = Field(5, ge=0, description="Максимальная глубина обхода ссылок.")
    delay_ms: int = Field(1000, ge=0, description="Базовая пауза между запросами (мс).")
    concurrency: int = Field(3, ge=1, description="Размер пула воркеров в фазе категорий.")
    enable_pagination: bool = Field(True, description="Синтезировать URL пагинации.")
    enable_category_traversal: bool = Field(True, description="Обходить страницы категорий.")
    enable_dynamic_discovery: bool = Field(False, description="Искать динамически загружаемые URL.")
    follow_external_links: bool = Field(False, description="Разрешить ссылки на другие домены.")

    # Обнаружение
    max_pagination_pages: int = Field(50, ge=2, le=500, description="Верхняя граница синтеза страниц.")
    pagination_templates: Optional[List[str]] = Field(
        None, description="Имена шаблонов пагинации (None — все)."
    )
    dynamic_sample_size: int = Field(20, ge=0, description="Сколько категорий проверять на AJAX.")
    bfs_concurrency: int = Field(1, ge=1, description="Параллелизм финального BFS.")
    respect_robots: bool = Field(False, description="Отбрасывать URL, запрещённые robots.txt.")
    exclude_patterns: List[str] = Field(
        default_factory=list, description="Дополнительные regex-исключения."
    )
    max_sitemap_depth: int = Field(5, ge=1, description="Глубина рекурсии sitemap-index.")

    # Сеть и браузер
    user_agent: str = Field(_DEFAULT_SITEMAP_UA, min_length=1, description="UA для sitemap/robots.")
    navigation_timeout: float = Field(30.0, gt=0, le=90, description="Таймаут навигации (секунд).")
    sitemap_timeout: float = Field(15.0, gt=0, description="Таймаут загрузки sitemap (секунд).")
    robots_timeout: float = Field(5.0, gt=0, description="Таймаут загрузки robots.txt (секунд).")
    headless: bool = Field(True, description="Запускать браузер без окна.")

    # Повторы и темп
    max_attempts: int = Field(3, ge=1, description="Число полных попыток загрузки страницы.")
    backoff_base: float = Field(5.0, ge=0, description="База экспоненциальной задержки (секунд).")
    backoff_cap: float = Field(30.0, ge=0, description="Потолок экспоненциальной задержки.")
    backoff_jitter: float = Field(5.0, ge=0, description="Случайная добавка к задержке.")
    block_reload_delay: Tuple[float, float] = Field(
        (5.0, 15.0), description="Диапазон паузы перед перезагрузкой заблокированной страницы."
    )
    pacing_step: float = Field(0.1, ge=0, description="Прирост паузы за каждый запрос (секунд).")
    pacing_cap: float = Field(5.0, ge=0, description="Потолок прироста по числу запросов.")
    session_pacing_step: float = Field(0.1, ge=0, description="Прирост паузы за минуту сессии.")
    session_pacing_cap: float = Field(3.0, ge=0, description="Потолок прироста по возрасту сессии.")

    # Извлечение контента
    chunk_size: int = Field(2000, ge=1, description="Размер окна чанка (символов).")
    chunk_overlap: int = Field(200, ge=0, description="Перекрытие соседних чанков.")
    min_chunk_length: int = Field(100, ge=1, description="Минимальная длина чанка.")
    min_content_length: int = Field(200, ge=0, description="Порог для выбора контейнера контента.")

    @field_validator("seed_url", mode="before")
    def _strip_seed(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("block_reload_delay")
    def _ordered_delay(cls, v: Tuple[float, float]) -> Tuple[float, float]:
        low, high = v
        if low < 0 or high < low:
            raise ValueError("block_reload_delay must be (low, high) with 0 <= low <= high")
        return v

    @model_validator(mode="after")
    def _check_chunking(self) -> CrawlConfig:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        if self.min_chunk_length > self.chunk_size:
            raise ValueError("min_chunk_length cannot exceed chunk_size")
        return self

    @property
    def delay(self) -> float:
        """Пауза между пачками запросов в секундах."""
        return self.delay_ms / 1000.0


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> CrawlConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return CrawlConfig(**data)

# === FILE: site_harvest/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска краулера SiteHarvest через командную строку.

Команды:
  crawl SEED  Обойти сайт, сохранить извлечённый контент и вывести/сохранить отчёт
  config      Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (по умолчанию встроенные значения)
  --limit INT         Макс. число страниц (override max_pages)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования (e.g. "%(asctime)s %(levelname)s %(message)s")

Команда crawl опции:
  --json PATH          Сохранить JSON-отчёт в файл
  --html PATH          Сохранить HTML-отчёт в файл
  --template DIR       Папка с шаблоном report.html.j2
  --pretty             Преформатировать JSON-вывод (отступ 2)
  --output-dir DIR     Каталог для документов scraped-content/*.json
  --crawl-timeout SEC  Таймаут всего обхода (секунд)

Дополнительно:
  --version, -v       Показать версию SiteHarvest

Пример:
  site-harvest --limit 200 crawl https://shop.example.com --json report.json --pretty
"""
import asyncio
import sys
from pathlib import Path

import click
from jinja2 import TemplateError
from pydantic import ValidationError

from site_harvest import __version__
from site_harvest.config import CrawlConfig, load_config
from site_harvest.engine import start_crawl
from site_harvest.exceptions import SeedValidationError
from site_harvest.logger import init_logging, logger
from site_harvest.report.html_report import render_html
from site_harvest.report.json_report import render_json
from site_harvest.storage import FileContentStore

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="SiteHarvest, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Путь к файлу конфигурации YAML или JSON.",
)
@click.option(
    "--limit", "-l", "limit",
    type=click.IntRange(min=1),
    default=None,
    help="Макс. число страниц для обхода (override max_pages)",
)
@click.option(
    "--log-level", "log_level",
    default="INFO", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Уровень логирования",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Путь к файлу логов (stderr, если не указан)",
)
@click.option(
    "--log-format", "log_format",
    default="%(asctime)s %(levelname)s %(message)s",
    show_default=True,
    help="Строка формата для логов",
)
@click.pass_context
def cli(ctx, config_path, limit, log_level, log_file, log_format):
    """Группа команд SiteHarvest CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
    )
    try:
        cfg = load_config(config_path) if config_path else CrawlConfig()
    except (OSError, ValueError, TypeError, ValidationError) as e:
        print_error(f"Ошибка загрузки конфигурации: {e}")
    if limit is not None:
        cfg = cfg.model_copy(update={"max_pages": limit})
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command("crawl", context_settings=CONTEXT_SETTINGS)
@click.argument("seed", required=False)
@click.option(
    "--json", "-j", "json_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить JSON-отчёт в файл",
)
@click.option(
    "--html", "-h", "html_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить HTML-отчёт в файл",
)
@click.option(
    "--template", "-t", "template_dir",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Папка с Jinja2-шаблоном report.html.j2",
)
@click.option("--pretty", is_flag=True, help="Преформатировать JSON-вывод (отступ 2)")
@click.option(
    "--output-dir", "-o", "output_dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Каталог для сохранения извлечённых документов",
)
@click.option(
    "--crawl-timeout", "crawl_timeout",
    type=float,
    default=None,
    help="Таймаут всего обхода (секунд)",
)
@click.pass_context
def crawl(ctx, seed, json_output, html_output, template_dir, pretty, output_dir, crawl_timeout):
    """Обойти сайт начиная с SEED и сгенерировать отчёты."""
    cfg = ctx.obj["config"]
    seed = seed or cfg.seed_url
    if not seed:
        print_error("Не указан стартовый URL (аргумент SEED или seed_url в конфиге)")
    logger.debug("Starting crawl: %s", seed)
    store = FileContentStore(output_dir) if output_dir else None
    try:
        runner = start_crawl(cfg, seed, store=store)
        if crawl_timeout:
            report = asyncio.run(asyncio.wait_for(runner, timeout=crawl_timeout))
        else:
            report = asyncio.run(runner)
    except SeedValidationError as e:
        print_error(f"Некорректный стартовый URL: {e.reason}")
    except asyncio.TimeoutError:
        print_error(f"Обход не завершён за {crawl_timeout} секунд")

    # Если не сохраняем в файл — печатаем в stdout
    if not json_output and not html_output:
        click.echo(report.json(pretty=pretty))
        return

    if json_output:
        try:
            saved_json = render_json(report, json_output, pretty=pretty)
            click.echo(f"JSON report: {saved_json}")
        except OSError as e:
            print_error(f"Ошибка при сохранении JSON: {e}")

    if html_output:
        try:
            saved_html = render_html(report, template_dir, html_output)
            click.echo(f"HTML report: {saved_html}")
        except (OSError, TemplateError) as e:
            print_error(f"Ошибка при сохранении HTML: {e}")


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj["config"]
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()

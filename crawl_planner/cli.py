#!/usr/bin/env python3
"""
crawl-planner: командная строка CrawlPlanner.

  crawl-planner plan acme.io --pretty
  crawl-planner plan https://www.acme.io --json out/acme.json --html out/acme.html
  crawl-planner --config planner.yaml config
  crawl-planner serve --port 8080

Результат ``plan`` печатается в stdout как JSON, если не заданы --json/--html.
Логи идут в stderr (и в --log-file, если указан).
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click

from crawl_planner import __version__
from crawl_planner.aggregator import BuildResult
from crawl_planner.config import PlannerConfig, load_config
from crawl_planner.engine import build_plan
from crawl_planner.errors import InvalidInput
from crawl_planner.logger import DEFAULT_FORMAT, init_logging
from crawl_planner.report.html_report import render_html
from crawl_planner.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

_OUTPUT_FILE = click.Path(writable=True, dir_okay=False, path_type=Path)


def print_error(message: str) -> NoReturn:
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='CrawlPlanner, version %(version)s')
@click.option('--config', '-c', 'config_path', default=None,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML/JSON-конфиг (по умолчанию configs/default.yaml, если есть).')
@click.option('--log-level', default='WARNING', show_default=True,
              type=click.Choice(LOG_LEVELS, case_sensitive=False), help='Уровень логирования')
@click.option('--log-file', default=None, type=_OUTPUT_FILE, help='Файл логов с ротацией')
@click.option('--log-format', default=DEFAULT_FORMAT, show_default=True, help='Формат строк лога')
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Планировщик обхода сайта компании."""
    init_logging(level=log_level.upper(), log_file=log_file, log_format=log_format)
    try:
        ctx.obj = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')


def _run_plan(cfg: PlannerConfig, url: str, run_timeout: Optional[float], **kwargs) -> BuildResult:
    coro = build_plan(url, cfg, **kwargs)
    try:
        return asyncio.run(asyncio.wait_for(coro, timeout=run_timeout) if run_timeout else coro)
    except InvalidInput as e:
        print_error(f'Некорректный URL: {e}')
    except asyncio.TimeoutError:
        print_error(f'Построение плана не завершено за {run_timeout} секунд')
    except Exception as e:
        print_error(f'Ошибка при построении плана: {e}')


@cli.command('plan', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--tenant-id', default=None, help='Существующий идентификатор арендатора')
@click.option('--company-name', default=None, help='Имя компании для профиля')
@click.option('--json', '-j', 'json_output', default=None, type=_OUTPUT_FILE, help='Сохранить JSON в файл')
@click.option('--html', '-h', 'html_output', default=None, type=_OUTPUT_FILE, help='Сохранить HTML-отчёт в файл')
@click.option('--template', '-t', 'template_dir', default=None,
              type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Папка со своим report.html.j2')
@click.option('--pretty', is_flag=True, help='JSON с отступом 2')
@click.option('--timeout', 'run_timeout', type=float, default=None, help='Таймаут всего запуска (секунд)')
@click.pass_obj
def plan(cfg, url, tenant_id, company_name, json_output, html_output, template_dir, pretty, run_timeout):
    """Построить план обхода для URL компании."""
    result = _run_plan(cfg, url, run_timeout, tenant_id=tenant_id, company_name=company_name)

    if not (json_output or html_output):
        click.echo(result.json(pretty=pretty))
        return

    for label, output, write in (
        ('JSON', json_output, lambda path: render_json(result, path)),
        ('HTML', html_output, lambda path: render_html(result, template_dir, path)),
    ):
        if output is None:
            continue
        try:
            click.echo(f'{label} report: {write(output)}')
        except Exception as e:
            print_error(f'Ошибка при сохранении {label}: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_obj
def show_config(cfg):
    """Показать действующую конфигурацию (секреты скрыты)."""
    click.echo(json.dumps(cfg.public_dict(), indent=2, ensure_ascii=False))


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default='127.0.0.1', show_default=True, help='Адрес для прослушивания')
@click.option('--port', default=8080, show_default=True, type=int, help='Порт')
@click.pass_obj
def serve(cfg, host, port):
    """Запустить HTTP-сервер с POST /api/research/build-kb."""
    from aiohttp import web

    from crawl_planner.server import create_app

    web.run_app(create_app(cfg), host=host, port=port)


if __name__ == "__main__":
    cli()

import argparse
import logging
import os
import sys
from typing import List, Optional

import httpx

from openapi_codegen.config import DEFAULT_CONFIG_FILE, OpenApiConfig
from openapi_codegen.errors import ConfigurationError, GenerationError, ParseError
from openapi_codegen.generator import ApiClientGenerator
from openapi_codegen.internal.types.models import Project


def build_parser() -> argparse.ArgumentParser:
    """Аргументы командной строки; camelCase и kebab-case написания равнозначны"""
    parser = argparse.ArgumentParser(
        prog="openapi-codegen",
        description="Генерация типизированного Python клиента из OpenAPI 3",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Путь к конфиг файлу (по умолчанию {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("-i", "--input", help="Путь или URL к спецификации")
    parser.add_argument("-o", "--output", help="Директория для генерации клиента")

    for option, help_text in (
        ("include-tags", "Генерировать только эти теги (через запятую)"),
        ("exclude-tags", "Пропустить эти теги (через запятую)"),
        ("include-operations", "Генерировать только эти operationId"),
        ("exclude-operations", "Пропустить эти operationId"),
    ):
        camel = option.split("-")[0] + option.split("-")[1].capitalize()
        parser.add_argument(
            f"--{option}",
            f"--{camel}",
            dest=option.replace("-", "_"),
            help=help_text,
        )

    parser.add_argument(
        "--ignore-unused-models",
        "--ignoreUnusedModels",
        dest="ignore_unused_models",
        action="store_const",
        const=True,
        default=None,
        help="Не удалять модели, недостижимые из выбранных операций",
    )
    parser.add_argument(
        "--no-strict",
        "--noStrict",
        dest="strict",
        action="store_const",
        const=False,
        default=None,
        help="Неподдерживаемые конструкции - предупреждение вместо ошибки",
    )
    parser.add_argument(
        "--strict",
        dest="strict",
        action="store_const",
        const=True,
        help="Неподдерживаемые конструкции - ошибка (по умолчанию)",
    )
    parser.add_argument(
        "--format", choices=["json", "yaml"], help="Формат спецификации"
    )
    parser.add_argument(
        "--init-config",
        "--initConfig",
        dest="init_config",
        action="store_true",
        help="Создать конфиг файл и выйти",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Подробный вывод (DEBUG)"
    )
    return parser


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_config(args: argparse.Namespace) -> OpenApiConfig:
    """Конфиг из файла, поверх него аргументы командной строки"""
    file_config = OpenApiConfig.from_file(args.config)
    if file_config is None:
        if args.config != DEFAULT_CONFIG_FILE:
            raise ConfigurationError("конфиг файл не найден", location=args.config)
        file_config = OpenApiConfig()
    else:
        print(f"📋 Используется конфиг из {args.config}")

    return file_config.merge_with_args(args)


def read_input(source: str) -> str:
    """Текст спецификации из файла или по http(s) URL"""
    if source.startswith(("http://", "https://")):
        try:
            response = httpx.get(source, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ParseError(f"не удалось загрузить спецификацию: {e}", location=source) from e
        return response.text

    if not os.path.exists(source):
        raise ConfigurationError("файл спецификации не найден", location=source)

    with open(source, "r", encoding="utf-8") as f:
        return f.read()


def generate_project(config: OpenApiConfig) -> Project:
    """Ядро генерации клиента - только генерация без сохранения"""
    config.validate()

    print(f"🚀 Генерация клиента из {config.input}")
    print("📥 Загрузка OpenAPI спецификации...")
    text = read_input(config.input)

    print("⚙️ Генерация кода...")
    return ApiClientGenerator.from_text(text, config).generate()


def save_project_files(project: Project, target_path: str):
    """Сохранение файлов проекта"""
    print(f"💾 Сохранение {len(project.files)} файлов...")

    # Весь текст рендерится до записи первого файла
    rendered = project.render()
    for file_name, content in rendered.items():
        path = os.path.join(target_path, file_name)
        os.makedirs(os.path.dirname(path), exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

    print("✅ Генерация завершена успешно!")
    print(f"📦 Клиент создан в: {os.path.abspath(target_path)}")


def generate(argv: Optional[List[str]] = None) -> None:
    """Универсальная команда генерации OpenAPI клиента"""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args)

        if args.init_config:
            config.validate(require_input=False)
            config.save_to_file(args.config)
            print(f"✅ Создан конфиг файл {args.config}")
            return

        project = generate_project(config)
        save_project_files(project, config.output)

    except GenerationError as e:
        print(f"❌ Ошибка генерации: {e}")
        sys.exit(1)


if __name__ == "__main__":
    generate()

"""
Конфигурация для генерации API клиента
"""

import os
import re
from dataclasses import dataclass, fields
from typing import Dict, Any, List, Optional

import toml

from .errors import ConfigurationError

DEFAULT_CONFIG_FILE = "openapi.toml"
DEFAULT_OUTPUT = "src/app/api"

SUPPORTED_FORMATS = ("json", "yaml")


def normalize_option_name(name: str) -> str:
    """Приведение имени опции к snake_case

    includeTags, include-tags и include_tags - одна и та же опция.
    """
    name = name.strip().lstrip("-").replace("-", "_")
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    return name.lower()


def camel_option_name(name: str) -> str:
    """include_tags -> includeTags"""
    head, *tail = name.split("_")
    return head + "".join(part.capitalize() for part in tail)


def _as_list(value: Any, option: str) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigurationError(
        f"ожидается список строк, получено {value!r}", location=option
    )


@dataclass
class OpenApiConfig:
    """Конфигурация генератора OpenAPI клиента"""

    input: Optional[str] = None
    output: str = DEFAULT_OUTPUT

    include_tags: Optional[List[str]] = None
    exclude_tags: Optional[List[str]] = None
    include_operations: Optional[List[str]] = None
    exclude_operations: Optional[List[str]] = None

    # True отключает удаление неиспользуемых моделей
    ignore_unused_models: bool = False
    # Неподдерживаемые конструкции (серверы операций) - ошибка или предупреждение
    strict: bool = True
    format: Optional[str] = None

    _list_options = ("include_tags", "exclude_tags", "include_operations", "exclude_operations")

    @classmethod
    def option_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OpenApiConfig":
        """Создание конфигурации из словаря с любым написанием ключей"""
        known = set(cls.option_names())
        values: Dict[str, Any] = {}

        for raw_name, value in data.items():
            name = normalize_option_name(raw_name)
            if name not in known:
                raise ConfigurationError(f"неизвестная опция '{raw_name}'")
            if name in values:
                raise ConfigurationError(
                    f"опция '{raw_name}' указана несколько раз в разном написании"
                )
            if name in cls._list_options:
                value = _as_list(value, raw_name)
            values[name] = value

        return cls(**values)

    @classmethod
    def from_file(
        cls, config_path: str = DEFAULT_CONFIG_FILE, search_dir: str = None
    ) -> Optional["OpenApiConfig"]:
        """Загрузка конфигурации из файла"""
        # Если указана директория для поиска, ищем конфиг там
        if search_dir and os.path.isdir(search_dir):
            config_in_dir = os.path.join(search_dir, DEFAULT_CONFIG_FILE)
            if os.path.exists(config_in_dir):
                config_path = config_in_dir

        if not os.path.exists(config_path):
            return None

        try:
            config_data = toml.load(config_path)
        except toml.TomlDecodeError as e:
            raise ConfigurationError(
                f"некорректный TOML: {e}", location=config_path
            ) from e

        return cls.from_dict(config_data)

    def save_to_file(self, config_path: str = DEFAULT_CONFIG_FILE) -> None:
        """Сохранение конфигурации в файл"""
        config_data = {
            camel_option_name(name): value
            for name, value in self.to_dict().items()
            if value is not None
        }

        with open(config_path, "w") as f:
            toml.dump(config_data, f)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.option_names()}

    def merge_with_args(self, args) -> "OpenApiConfig":
        """Объединение с аргументами командной строки

        Аргумент со значением None не переопределяет значение из файла.
        """
        merged = self.to_dict()
        for name in self.option_names():
            value = getattr(args, name, None)
            if value is None:
                continue
            if name in self._list_options:
                value = _as_list(value, name)
            merged[name] = value

        return OpenApiConfig(**merged)

    def validate(self, require_input: bool = True) -> "OpenApiConfig":
        """Проверка согласованности опций до начала обработки спецификации"""
        if require_input and not self.input:
            raise ConfigurationError("не указан input - путь или URL спецификации")

        for axis in ("tags", "operations"):
            if getattr(self, f"include_{axis}") and getattr(self, f"exclude_{axis}"):
                raise ConfigurationError(
                    f"include{axis.capitalize()} и exclude{axis.capitalize()} "
                    "нельзя указывать одновременно"
                )

        if self.format is not None and self.format not in SUPPORTED_FORMATS:
            raise ConfigurationError(
                f"неизвестный формат '{self.format}', ожидается один из {SUPPORTED_FORMATS}"
            )

        return self

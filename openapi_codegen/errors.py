"""
Ошибки генерации клиента

Любая ошибка прерывает запуск целиком - частичная генерация не выполняется.
"""

from typing import Optional


class GenerationError(Exception):
    """Базовая ошибка генерации"""

    kind = "generation"

    def __init__(self, message: str, location: Optional[str] = None):
        self.message = message
        self.location = location
        super().__init__(
            f"[{self.kind}] {location}: {message}" if location else f"[{self.kind}] {message}"
        )


class ParseError(GenerationError):
    """Синтаксически некорректный документ"""

    kind = "parse"


class UnresolvedReferenceError(GenerationError):
    """Висячая или неразрешимая $ref ссылка"""

    kind = "reference"


class NamingConflictError(GenerationError):
    """Две разные сущности получили бы один и тот же идентификатор"""

    kind = "naming-conflict"


class SpecValidationError(GenerationError):
    """Спецификация нарушает ограничения генератора (например x-enumNames)"""

    kind = "validation"


class ConfigurationError(GenerationError):
    """Противоречивые или неизвестные опции конфигурации"""

    kind = "configuration"


class NotSupportedError(GenerationError):
    """Известная, но не поддерживаемая конструкция OpenAPI"""

    kind = "not-supported"

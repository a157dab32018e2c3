import json
import logging
from typing import Dict, Any, Optional

import yaml

from ...errors import ParseError
from ..types.schema import SpecGraph
from .resolver import SpecResolver

logger = logging.getLogger(__name__)


def detect_format(text: str) -> str:
    """JSON если документ начинается с '{', иначе YAML"""
    return "json" if text.lstrip().startswith("{") else "yaml"


def load_document(text: str, format_hint: Optional[str] = None) -> Dict[str, Any]:
    """Разбор текста спецификации в словарь"""
    fmt = format_hint or detect_format(text)

    if fmt == "json":
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(e.msg, location=f"строка {e.lineno}, столбец {e.colno}") from e
    else:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            location = (
                f"строка {mark.line + 1}, столбец {mark.column + 1}" if mark else None
            )
            problem = getattr(e, "problem", None) or str(e)
            raise ParseError(problem, location=location) from e

    if not isinstance(document, dict):
        raise ParseError(
            f"корень документа должен быть объектом, получено {type(document).__name__}",
            location="#",
        )

    logger.debug("Документ разобран как %s", fmt)
    return document


class OpenApiParser:
    """Парсер OpenAPI спецификации"""

    def __init__(self, openapi_dict: Dict[str, Any], strict: bool = True):
        self.openapi_dict = openapi_dict
        self.strict = strict

    @classmethod
    def from_text(
        cls, text: str, format_hint: Optional[str] = None, strict: bool = True
    ) -> "OpenApiParser":
        return cls(load_document(text, format_hint), strict=strict)

    def parse(self) -> SpecGraph:
        """Разрешение ссылок и построение графа схем"""
        # Новый резолвер на каждый вызов: кэш ссылок не переживает запуск
        return SpecResolver(self.openapi_dict, strict=self.strict).resolve()

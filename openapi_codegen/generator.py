"""
Главный модуль генератора - чистый интерфейс

Один запуск - это чистая функция (документ, конфигурация) -> RenderModel
или GenerationError. Каждый запуск создает свой резолвер, кэш ссылок и
реестр имен, поэтому независимые запуски не влияют друг на друга.
"""

import logging
from typing import Any, Dict, Optional

from .config import OpenApiConfig
from .internal.generator.client_generator import ClientGenerator
from .internal.generator.collector import ModelCollector
from .internal.generator.operations import OperationCompiler
from .internal.generator.render_model import RenderModel, RenderModelBuilder
from .internal.generator.selection import SelectionEngine
from .internal.parser.openapi import OpenApiParser, load_document
from .internal.types.models import Project

logger = logging.getLogger(__name__)


class ApiClientGenerator:
    """Чистый интерфейс для генерации API клиентов"""

    def __init__(
        self, openapi_spec: Dict[str, Any], config: Optional[OpenApiConfig] = None
    ):
        self.openapi_spec = openapi_spec
        self.config = config or OpenApiConfig()

    @classmethod
    def from_text(
        cls, text: str, config: Optional[OpenApiConfig] = None
    ) -> "ApiClientGenerator":
        config = config or OpenApiConfig()
        # Противоречивые опции отклоняются до разбора документа
        config.validate(require_input=False)
        return cls(load_document(text, config.format), config)

    def build(self) -> RenderModel:
        """Построение RenderModel без рендера файлов"""
        self.config.validate(require_input=False)

        graph = OpenApiParser(self.openapi_spec, strict=self.config.strict).parse()
        models = ModelCollector(graph).collect()

        selection = SelectionEngine(graph, self.config)
        tag_operations = selection.select()
        services = OperationCompiler(graph).compile(tag_operations)
        models = selection.prune(models, tag_operations)

        return RenderModelBuilder(graph, models, services).build()

    def generate(self) -> Project:
        """Генерация проекта клиента"""
        return ClientGenerator(self.build()).generate()


def generate_client(
    openapi_spec: Dict[str, Any], config: Optional[OpenApiConfig] = None
) -> Project:
    """Создание API клиента из OpenAPI спецификации"""
    return ApiClientGenerator(openapi_spec, config).generate()

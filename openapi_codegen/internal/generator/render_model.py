"""
Промежуточное представление для шаблонов

RenderModel не зависит от шаблонов: это упорядоченный список модулей моделей,
модулей сервисов и модуль регистрации, плюс ребра импортов между ними.
Два запуска на одном документе дают равные model_dump().
"""

import logging
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel

from ...errors import NamingConflictError
from ..types.schema import (
    MethodParameter,
    MethodVariant,
    SchemaKind,
    SchemaNode,
    ServiceDefinition,
    SpecGraph,
)
from ..utils import clean_parameter_name, pascal_case, snake_case

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
    "any": "Any",
}

ENUM_BASES = {"string": "str", "integer": "int", "number": "float"}


class ModelField(BaseModel):
    name: str
    wire_name: str
    type_expr: str
    required: bool = False
    description: Optional[str] = None


class EnumMember(BaseModel):
    name: str
    value: Any


class ModelModule(BaseModel):
    name: str
    module: str
    kind: str  # object, enum, alias
    description: Optional[str] = None
    deprecated: bool = False

    fields: List[ModelField] = []
    extra_allowed: bool = False

    members: List[EnumMember] = []
    enum_base: Optional[str] = None

    alias: Optional[str] = None

    imports: List[str] = []


class MethodArgument(BaseModel):
    name: str
    wire_name: str
    location: str
    type_expr: str
    required: bool = False
    description: Optional[str] = None


class ServiceMethod(BaseModel):
    name: str
    response_name: str
    operation_id: str
    http_method: str
    path: str

    arguments: List[MethodArgument] = []
    body: Optional[MethodArgument] = None

    request_content_type: Optional[str] = None
    response_content_type: Optional[str] = None
    return_type: str = "None"
    status_code: Optional[str] = None
    is_default: bool = True

    summary: Optional[str] = None
    description: Optional[str] = None
    deprecated: bool = False


class ServiceModule(BaseModel):
    tag: str
    name: str
    module: str
    attribute: str
    description: Optional[str] = None
    methods: List[ServiceMethod] = []
    imports: List[str] = []


class RegistrationModule(BaseModel):
    module: str = "client"
    services: List[str] = []
    server_url: Optional[str] = None
    title: str = "API"
    version: str = ""


class RenderModel(BaseModel):
    models: List[ModelModule] = []
    services: List[ServiceModule] = []
    registration: RegistrationModule = RegistrationModule()

    def model_by_name(self, name: str) -> Optional[ModelModule]:
        return next((m for m in self.models if m.name == name), None)

    def service_by_tag(self, tag: str) -> Optional[ServiceModule]:
        return next((s for s in self.services if s.tag == tag), None)

    def module_order(self) -> List[str]:
        """Порядок модулей: модели, сервисы, регистрация"""
        return (
            [f"models.{m.module}" for m in self.models]
            + [f"endpoints.{s.module}" for s in self.services]
            + [self.registration.module]
        )


class TypeExpressionBuilder:
    """Python выражение типа для узла схемы"""

    def __init__(self, graph: SpecGraph, model_ids: Set[int]):
        self.graph = graph
        self.model_ids = model_ids

    def expression(self, node_id: int, imports: Set[str]) -> str:
        return self._expression(node_id, imports, set())

    def body(self, node: SchemaNode, imports: Set[str]) -> str:
        """Тип самой модели (для alias модулей), без ссылки на ее имя"""
        return self._nullable(node, self._inline(node, imports, {node.id}))

    def _expression(self, node_id: int, imports: Set[str], stack: Set[int]) -> str:
        node = self.graph.arena[node_id]
        if node_id in stack:
            return "Any"
        if node_id in self.model_ids:
            imports.add(node.name)
            return self._nullable(node, node.name)
        return self._nullable(node, self._inline(node, imports, stack | {node_id}))

    def _inline(self, node: SchemaNode, imports: Set[str], stack: Set[int]) -> str:
        if node.kind == SchemaKind.ALIAS and node.target is not None:
            return self._expression(node.target, imports, stack)

        if node.kind == SchemaKind.ARRAY:
            return f"List[{self._expression(node.items, imports, stack)}]"

        if node.kind == SchemaKind.UNION:
            members = []
            for member in node.members:
                expr = self._expression(member, imports, stack)
                if expr not in members:
                    members.append(expr)
            return members[0] if len(members) == 1 else f"Union[{', '.join(members)}]"

        if node.kind == SchemaKind.OBJECT:
            if node.extra_item is not None:
                return f"Dict[str, {self._expression(node.extra_item, imports, stack)}]"
            return "Dict[str, Any]"

        if node.kind == SchemaKind.ENUM:
            # Анонимный enum вне набора моделей
            return PRIMITIVE_TYPES.get(node.primitive, "Any")

        if node.primitive == "string" and node.format == "binary":
            return "bytes"
        return PRIMITIVE_TYPES.get(node.primitive, "Any")

    @staticmethod
    def _nullable(node: SchemaNode, expr: str) -> str:
        if not node.nullable or expr in ("Any", "None") or expr.startswith("Optional["):
            return expr
        return f"Optional[{expr}]"


class RenderModelBuilder:
    """Сборка RenderModel из моделей и сервисов одного запуска"""

    def __init__(self, graph: SpecGraph, models: List[int], services: List[ServiceDefinition]):
        self.graph = graph
        self.model_ids = list(models)
        self.services = services
        self.types = TypeExpressionBuilder(graph, set(self.model_ids))

    def build(self) -> RenderModel:
        models = sorted(
            (self._model(self.graph.arena[node_id]) for node_id in self.model_ids),
            key=lambda m: m.name,
        )
        services = sorted(
            (self._service(service) for service in self.services), key=lambda s: s.tag
        )
        self._check_service_names(models, services)

        render_model = RenderModel(
            models=models,
            services=services,
            registration=RegistrationModule(
                services=[s.module for s in services],
                server_url=self.graph.server_url,
                title=self.graph.title,
                version=self.graph.version,
            ),
        )
        logger.debug(
            "RenderModel: %d моделей, %d сервисов", len(models), len(services)
        )
        return render_model

    def _model(self, node: SchemaNode) -> ModelModule:
        imports: Set[str] = set()
        module = ModelModule(
            name=node.name,
            module=snake_case(node.name),
            kind="alias",
            description=node.description,
            deprecated=node.deprecated,
        )

        if node.kind == SchemaKind.OBJECT:
            module.kind = "object"
            module.extra_allowed = node.extra_allowed
            module.fields = self._fields(node, imports)
        elif node.kind == SchemaKind.ENUM:
            module.kind = "enum"
            module.enum_base = ENUM_BASES.get(node.primitive)
            module.members = [
                EnumMember(name=name, value=value)
                for name, value in zip(node.member_names, node.enum_values)
            ]
        else:
            module.alias = self.types.body(node, imports)

        imports.discard(node.name)
        module.imports = sorted(imports)
        return module

    def _fields(self, node: SchemaNode, imports: Set[str]) -> List[ModelField]:
        fields = []
        used: Set[str] = set()
        for wire_name, prop in node.properties.items():
            name = clean_parameter_name(wire_name)
            if name in used:
                raise NamingConflictError(
                    f"свойства модели дают одно имя поля '{name}'",
                    location=f"{node.name}.{wire_name}",
                )
            used.add(name)

            fields.append(
                ModelField(
                    name=name,
                    wire_name=wire_name,
                    type_expr=self.types.expression(prop.node, imports),
                    required=prop.required,
                    description=prop.description
                    or self.graph.arena[prop.node].description,
                )
            )
        return fields

    def _service(self, service: ServiceDefinition) -> ServiceModule:
        imports: Set[str] = set()
        methods = [self._method(variant, imports) for variant in service.variants]
        return ServiceModule(
            tag=service.tag,
            name=f"{pascal_case(service.tag) or 'Default'}Endpoints",
            module=snake_case(service.tag) or "default",
            attribute=clean_parameter_name(service.tag),
            description=self.graph.tag_descriptions.get(service.tag),
            methods=methods,
            imports=sorted(imports),
        )

    def _method(self, variant: MethodVariant, imports: Set[str]) -> ServiceMethod:
        operation = variant.operation
        arguments = [self._argument(p, imports) for p in variant.parameters]
        # Обязательные аргументы идут первыми, порядок внутри групп сохраняется
        arguments.sort(key=lambda a: not a.required)

        return ServiceMethod(
            name=variant.name,
            response_name=variant.response_name,
            operation_id=operation.operation_id,
            http_method=operation.method.upper(),
            path=operation.path,
            arguments=arguments,
            body=self._argument(variant.body, imports) if variant.body else None,
            request_content_type=variant.request_content_type,
            response_content_type=variant.response_content_type,
            return_type=(
                self.types.expression(variant.response, imports)
                if variant.response is not None
                else "None"
            ),
            status_code=variant.status_code,
            is_default=variant.is_default,
            summary=operation.summary,
            description=operation.description,
            deprecated=operation.deprecated,
        )

    def _argument(self, parameter: MethodParameter, imports: Set[str]) -> MethodArgument:
        return MethodArgument(
            name=parameter.name,
            wire_name=parameter.wire_name,
            location=parameter.location,
            type_expr=self.types.expression(parameter.schema, imports),
            required=parameter.required,
            description=parameter.description,
        )

    @staticmethod
    def _check_service_names(models: List[ModelModule], services: List[ServiceModule]):
        modules: Dict[str, str] = {}
        for service in services:
            other = modules.get(service.module)
            if other is not None:
                raise NamingConflictError(
                    f"теги '{other}' и '{service.tag}' попадают в один модуль "
                    f"'{service.module}'",
                    location=service.tag,
                )
            modules[service.module] = service.tag

        model_names = {m.name for m in models}
        for service in services:
            if service.name in model_names:
                raise NamingConflictError(
                    f"класс сервиса '{service.name}' совпадает с именем модели",
                    location=service.tag,
                )

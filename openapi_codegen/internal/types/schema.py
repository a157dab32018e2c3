"""Разрешенный граф спецификации: узлы схем, операции, варианты методов"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

# Суффикс метода, возвращающего полный ответ (статус, заголовки, тело)
RESPONSE_SUFFIX = "_with_response"


class SchemaKind(str, Enum):
    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    ENUM = "enum"
    UNION = "union"
    ALIAS = "alias"


@dataclass
class SchemaProperty:
    node: int
    required: bool = False
    description: Optional[str] = None


@dataclass
class SchemaNode:
    """Узел схемы без $ref - связи с другими узлами только через id"""

    id: int
    kind: SchemaKind = SchemaKind.PRIMITIVE
    location: str = ""

    # Имя компонента из #/components/schemas, если узел оттуда
    component: Optional[str] = None
    # Каноническое имя модели, назначает ModelCollector
    name: Optional[str] = None

    primitive: str = "any"
    format: Optional[str] = None

    properties: Dict[str, SchemaProperty] = field(default_factory=dict)
    extra_allowed: bool = False
    extra_item: Optional[int] = None

    items: Optional[int] = None

    enum_values: List[Any] = field(default_factory=list)
    enum_names: Optional[List[str]] = None  # x-enumNames
    # Имена атрибутов enum, назначает ModelCollector
    member_names: List[str] = field(default_factory=list)

    members: List[int] = field(default_factory=list)
    target: Optional[int] = None
    # Участники allOf, чьи свойства слиты в этот объект
    bases: List[int] = field(default_factory=list)

    nullable: bool = False
    description: Optional[str] = None
    deprecated: bool = False

    def children(self) -> List[int]:
        """Прямые ссылки узла на другие узлы в порядке объявления"""
        result = [prop.node for prop in self.properties.values()]
        if self.extra_item is not None:
            result.append(self.extra_item)
        if self.items is not None:
            result.append(self.items)
        result.extend(self.members)
        if self.target is not None:
            result.append(self.target)
        result.extend(self.bases)
        return result

    def adopt(self, other: "SchemaNode"):
        """Принять форму анонимного узла, сохранив свое происхождение"""
        for attr in (
            "kind",
            "primitive",
            "properties",
            "extra_allowed",
            "extra_item",
            "items",
            "enum_values",
            "enum_names",
            "members",
            "target",
            "bases",
        ):
            setattr(self, attr, getattr(other, attr))
        self.format = self.format or other.format
        self.nullable = self.nullable or other.nullable
        self.description = self.description or other.description
        self.deprecated = self.deprecated or other.deprecated

    @property
    def is_free_form(self) -> bool:
        return self.kind == SchemaKind.OBJECT and not self.properties


class SchemaArena:
    """Хранилище узлов одного запуска генерации"""

    def __init__(self):
        self._nodes: List[SchemaNode] = []

    def add(self, **kwargs) -> SchemaNode:
        node = SchemaNode(id=len(self._nodes), **kwargs)
        self._nodes.append(node)
        return node

    def get(self, node_id: int) -> SchemaNode:
        return self._nodes[node_id]

    def __getitem__(self, node_id: int) -> SchemaNode:
        return self._nodes[node_id]

    def __iter__(self) -> Iterator[SchemaNode]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def unalias(self, node_id: int) -> SchemaNode:
        """Конечный узел цепочки анонимных alias"""
        node = self._nodes[node_id]
        seen = set()
        while node.kind == SchemaKind.ALIAS and node.target is not None:
            if node.id in seen:
                break
            seen.add(node.id)
            node = self._nodes[node.target]
        return node


@dataclass
class OperationParameter:
    name: str
    location: str  # path, query, header, cookie
    schema: int
    required: bool = False
    description: Optional[str] = None
    deprecated: bool = False


@dataclass
class Operation:
    operation_id: str
    method: str
    path: str
    tags: List[str] = field(default_factory=list)
    short_name: Optional[str] = None  # x-operation-name

    parameters: List[OperationParameter] = field(default_factory=list)
    request_body: Dict[str, int] = field(default_factory=dict)
    body_required: bool = False
    responses: Dict[str, Dict[str, int]] = field(default_factory=dict)

    deprecated: bool = False
    summary: Optional[str] = None
    description: Optional[str] = None

    @property
    def base_name(self) -> str:
        return self.short_name or self.operation_id

    def success_statuses(self) -> List[str]:
        """Статусы, из которых берутся типы ответа

        2xx/2XX в порядке документа, иначе default.
        """
        statuses = [status for status in self.responses if str(status).startswith("2")]
        if not statuses and "default" in self.responses:
            statuses = ["default"]
        return statuses


def operation_schema_roots(operation: Operation) -> List[int]:
    """Узлы, на которые ссылается операция: параметры, тела запросов, успешные ответы"""
    roots = [param.schema for param in operation.parameters]
    roots.extend(operation.request_body.values())
    for status in operation.success_statuses():
        roots.extend(operation.responses[status].values())
    return roots


@dataclass
class SpecGraph:
    """Результат разрешения одного документа"""

    arena: SchemaArena
    operations: List[Operation]
    components: Dict[str, int] = field(default_factory=dict)
    server_url: Optional[str] = None
    title: str = "API"
    version: str = ""
    tag_descriptions: Dict[str, str] = field(default_factory=dict)


@dataclass
class MethodParameter:
    name: str  # имя аргумента в python
    wire_name: str  # имя в запросе
    location: str  # path, query, header, cookie, body
    schema: int
    required: bool = False
    description: Optional[str] = None


@dataclass
class MethodVariant:
    """Один вызываемый метод: операция + пара content-type запроса и ответа"""

    name: str
    operation: Operation
    parameters: List[MethodParameter] = field(default_factory=list)
    body: Optional[MethodParameter] = None
    request_content_type: Optional[str] = None
    response_content_type: Optional[str] = None
    response: Optional[int] = None
    status_code: Optional[str] = None
    is_default: bool = True

    @property
    def response_name(self) -> str:
        return f"{self.name}{RESPONSE_SUFFIX}"


@dataclass
class ServiceDefinition:
    """Методы одного тега"""

    tag: str
    variants: List[MethodVariant] = field(default_factory=list)

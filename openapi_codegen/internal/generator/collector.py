import keyword
import logging
import re
from typing import Dict, Iterable, List, Set, Tuple

from ...errors import NamingConflictError
from ..types.schema import (
    Operation,
    SchemaKind,
    SchemaNode,
    SpecGraph,
    operation_schema_roots,
)
from ..utils import clean_enum_attribute_name, content_type_slug, pascal_case, snake_case

logger = logging.getLogger(__name__)


def schema_closure(graph: SpecGraph, roots: Iterable[int]) -> Set[int]:
    """Все узлы, достижимые из roots (включая сами roots)"""
    seen: Set[int] = set()
    stack = list(roots)
    while stack:
        node_id = stack.pop()
        if node_id in seen:
            continue
        seen.add(node_id)
        stack.extend(graph.arena[node_id].children())
    return seen


def is_model(node: SchemaNode) -> bool:
    """Узел рендерится отдельным модулем модели"""
    if node.component is not None:
        return True
    if node.kind == SchemaKind.OBJECT and node.properties:
        return True
    return node.kind == SchemaKind.ENUM


class ModelCollector:
    """
    Назначение имен моделям.

    Модель - это компонент из #/components/schemas, достижимый из любой
    операции, а также анонимный объект со свойствами или анонимный enum.
    Компоненты дедуплицируются по происхождению: один компонент - один узел -
    одна модель. Анонимные схемы получают имя по месту использования.
    """

    def __init__(self, graph: SpecGraph):
        self.graph = graph
        self._names: Dict[str, int] = {}
        self._modules: Dict[str, int] = {}
        self._visited: Set[int] = set()
        self.models: List[int] = []

    def collect(self) -> List[int]:
        roots = []
        for operation in self.graph.operations:
            roots.extend(operation_schema_roots(operation))
        reachable = schema_closure(self.graph, roots)

        components = sorted(
            (self.graph.arena[node_id] for node_id in reachable),
            key=lambda node: node.location,
        )
        components = [node for node in components if node.component is not None]

        # Сначала компоненты: их имена не зависят от порядка обхода
        for node in components:
            self._assign(node, pascal_case(node.component) or "Model")
        for node in components:
            self._visited.add(node.id)
            self._name_children(node, node.name)

        for operation in self.graph.operations:
            for node_id, site in self._operation_sites(operation):
                self._name_site(node_id, site)

        for node_id in self.models:
            node = self.graph.arena[node_id]
            if node.kind == SchemaKind.ENUM:
                node.member_names = self._enum_member_names(node)

        logger.debug(
            "Собрано %d моделей (%d компонентов)", len(self.models), len(components)
        )
        return list(self.models)

    def _operation_sites(self, operation: Operation) -> List[Tuple[int, str]]:
        """Корневые узлы операции и имена мест их использования"""
        base = pascal_case(operation.operation_id)
        sites = []

        for param in operation.parameters:
            sites.append((param.schema, base + pascal_case(param.name)))

        for i, (content_type, node_id) in enumerate(operation.request_body.items()):
            suffix = "" if i == 0 else pascal_case(content_type_slug(content_type))
            sites.append((node_id, f"{base}Request{suffix}"))

        for i, status in enumerate(operation.success_statuses()):
            # Код статуса как есть: 202, а не Model202
            status_code = re.sub(r"[^0-9A-Za-z]", "", status).capitalize()
            role = "Response" if i == 0 else f"Response{status_code}"
            content = operation.responses[status]
            for j, (content_type, node_id) in enumerate(content.items()):
                suffix = "" if j == 0 else pascal_case(content_type_slug(content_type))
                sites.append((node_id, f"{base}{role}{suffix}"))

        return sites

    def _name_site(self, node_id: int, site: str):
        node = self.graph.arena[node_id]
        if node.component is not None or node_id in self._visited:
            return
        self._visited.add(node_id)

        if is_model(node):
            self._assign(node, site)
        self._name_children(node, node.name or site)

    def _name_children(self, node: SchemaNode, base: str):
        for prop_name, prop in node.properties.items():
            self._name_site(prop.node, base + pascal_case(prop_name))
        if node.extra_item is not None:
            self._name_site(node.extra_item, f"{base}Value")
        if node.items is not None:
            self._name_site(node.items, f"{base}Item")
        for i, member in enumerate(node.members):
            self._name_site(member, f"{base}Option{i + 1}")
        if node.target is not None:
            self._name_site(node.target, base)

    def _assign(self, node: SchemaNode, name: str):
        other = self._names.get(name)
        if other is not None and other != node.id:
            raise NamingConflictError(
                f"имя модели '{name}' получают две схемы: "
                f"{self.graph.arena[other].location} и {node.location}",
                location=name,
            )

        module = snake_case(name)
        other = self._modules.get(module)
        if other is not None and other != node.id:
            raise NamingConflictError(
                f"модели '{self.graph.arena[other].name}' и '{name}' "
                f"попадают в один модуль '{module}'",
                location=node.location,
            )

        node.name = name
        self._names[name] = node.id
        self._modules[module] = node.id
        self.models.append(node.id)

    @staticmethod
    def _enum_member_names(node: SchemaNode) -> List[str]:
        names = []
        for i, value in enumerate(node.enum_values):
            if node.enum_names is not None:
                override = node.enum_names[i]
                if (
                    override.isidentifier()
                    and not keyword.iskeyword(override)
                    and not override.startswith("_")
                ):
                    name = override
                else:
                    name = clean_enum_attribute_name(override)
            elif isinstance(value, bool):
                name = "TRUE" if value else "FALSE"
            else:
                name = clean_enum_attribute_name(str(value))

            if name in names:
                raise NamingConflictError(
                    f"два значения enum получают имя атрибута '{name}'",
                    location=node.name or node.location,
                )
            names.append(name)
        return names

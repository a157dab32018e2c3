"""
Разрешение $ref ссылок и построение графа схем

Документ проходит через jsonref.replace_refs: каждая $ref заменяется ленивым
прокси. Резолвер обходит документ в глубину и для каждого прокси смотрит в
кэш ссылок запуска (JSON pointer -> id узла). Узел попадает в кэш до обхода
его содержимого, поэтому рекурсивные схемы замыкаются ссылкой на уже
созданный узел.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote

import jsonref

from ...errors import (
    NamingConflictError,
    NotSupportedError,
    SpecValidationError,
    UnresolvedReferenceError,
)
from ..types.schema import (
    Operation,
    OperationParameter,
    SchemaArena,
    SchemaKind,
    SchemaNode,
    SchemaProperty,
    SpecGraph,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
PARAMETER_LOCATIONS = ("path", "query", "header", "cookie")
PRIMITIVE_TYPES = ("string", "integer", "number", "boolean", "null")

COMPONENT_SCHEMA_PREFIX = "#/components/schemas/"
DEFAULT_TAG = "default"


def escape_pointer(part: Any) -> str:
    return str(part).replace("~", "~0").replace("/", "~1")


def unescape_pointer(part: str) -> str:
    return unquote(part).replace("~1", "/").replace("~0", "~")


def component_name(pointer: str) -> Optional[str]:
    """Имя компонента для '#/components/schemas/<name>', иначе None"""
    if not pointer.startswith(COMPONENT_SCHEMA_PREFIX):
        return None
    rest = pointer[len(COMPONENT_SCHEMA_PREFIX) :]
    if not rest or "/" in rest:
        return None
    return unescape_pointer(rest)


class ReferenceCache:
    """Разрешенные ссылки одного запуска: JSON pointer -> id узла"""

    def __init__(self):
        self._nodes: Dict[str, int] = {}

    def get(self, pointer: str) -> Optional[int]:
        return self._nodes.get(pointer)

    def put(self, pointer: str, node_id: int) -> None:
        self._nodes[pointer] = node_id

    def __contains__(self, pointer: str) -> bool:
        return pointer in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)


class SpecResolver:
    """Резолвер одного документа OpenAPI 3"""

    def __init__(self, document: Dict[str, Any], strict: bool = True):
        self.document = document
        self.strict = strict
        self.arena = SchemaArena()
        self.cache = ReferenceCache()
        self._root: Dict[str, Any] = {}
        self._in_progress = set()

    def resolve(self) -> SpecGraph:
        """Полное разрешение документа"""
        self._check_version()
        self._root = jsonref.replace_refs(self.document, lazy_load=True)

        info = self._deref(self._root.get("info"), "#/info") or {}
        graph = SpecGraph(
            arena=self.arena,
            operations=[],
            title=str(info.get("title") or "API"),
            version=str(info.get("version") or ""),
        )
        graph.server_url = self._server_url()

        for tag in self._deref(self._root.get("tags"), "#/tags") or []:
            tag = self._deref(tag, "#/tags")
            if tag.get("name") and tag.get("description"):
                graph.tag_descriptions[tag["name"]] = tag["description"]

        components = self._deref(self._root.get("components"), "#/components") or {}
        schemas = (
            self._deref(components.get("schemas"), "#/components/schemas") or {}
        )
        for name in schemas:
            pointer = COMPONENT_SCHEMA_PREFIX + escape_pointer(name)
            graph.components[name] = self._resolve_pointer(pointer)

        graph.operations = self._operations()

        logger.debug(
            "Разрешено %d узлов схем, %d ссылок, %d операций",
            len(self.arena),
            len(self.cache),
            len(graph.operations),
        )
        return graph

    def _check_version(self):
        version = str(self.document.get("openapi", ""))
        if version.startswith("3."):
            return
        if "swagger" in self.document:
            raise NotSupportedError(
                f"Swagger {self.document['swagger']} не поддерживается, нужен OpenAPI 3"
            )
        raise NotSupportedError(f"неподдерживаемая версия OpenAPI '{version}'")

    def _unsupported(self, message: str, location: str):
        """Неподдерживаемая конструкция: ошибка в strict режиме, иначе предупреждение"""
        if self.strict:
            raise NotSupportedError(message, location=location)
        logger.warning("%s: %s - конструкция проигнорирована", location, message)

    # Ссылки

    def _check_internal(self, pointer: str, location: str):
        if not pointer.startswith("#"):
            raise UnresolvedReferenceError(
                f"внешняя ссылка '{pointer}' не поддерживается", location=location
            )

    def _deref(self, value: Any, location: str) -> Any:
        """Прозрачное разыменование не-схемных ссылок (параметры, ответы и т.п.)"""
        if isinstance(value, jsonref.JsonRef):
            pointer = value.__reference__["$ref"]
            self._check_internal(pointer, location)
            try:
                return value.__subject__
            except jsonref.JsonRefError as e:
                raise UnresolvedReferenceError(
                    f"ссылка '{pointer}' не разрешается", location=location
                ) from e
        return value

    def _lookup(self, pointer: str, location: str) -> Any:
        """Значение по JSON pointer; конечная ссылка не разыменовывается"""
        parts = [p for p in pointer[1:].split("/")][1:] if pointer != "#" else []
        current = self._root
        for raw_part in parts:
            part = unescape_pointer(raw_part)
            current = self._deref(current, location)
            try:
                if isinstance(current, list):
                    current = current[int(part)]
                else:
                    current = current[part]
            except (KeyError, IndexError, ValueError, TypeError) as e:
                raise UnresolvedReferenceError(
                    f"ссылка '{pointer}' не найдена в документе", location=location
                ) from e
        return current

    def _resolve_pointer(self, pointer: str, referrer: Optional[str] = None) -> int:
        cached = self.cache.get(pointer)
        if cached is not None:
            return cached

        location = referrer or pointer
        self._check_internal(pointer, location)
        target = self._lookup(pointer, location)

        node = self.arena.add(location=pointer, component=component_name(pointer))
        self.cache.put(pointer, node.id)

        if isinstance(target, jsonref.JsonRef):
            node.kind = SchemaKind.ALIAS
            node.target = self._resolve_pointer(target.__reference__["$ref"], pointer)
            if self._alias_cycle(node):
                raise UnresolvedReferenceError(
                    "цепочка ссылок замыкается сама на себя", location=pointer
                )
        else:
            self._fill(node, target, pointer)

        return node.id

    def _alias_cycle(self, node: SchemaNode) -> bool:
        seen = {node.id}
        current = node
        while current.kind == SchemaKind.ALIAS and current.target is not None:
            if current.target in seen:
                return True
            seen.add(current.target)
            current = self.arena[current.target]
        return False

    # Схемы

    def _resolve_schema(self, value: Any, location: str) -> int:
        if isinstance(value, jsonref.JsonRef):
            return self._resolve_pointer(value.__reference__["$ref"], location)

        node = self.arena.add(location=location)
        self._fill(node, value, location)
        return node.id

    def _any_node(self, location: str) -> int:
        return self.arena.add(location=location).id

    def _fill(self, node: SchemaNode, spec: Any, location: str):
        if isinstance(spec, bool):
            # JSON Schema true/false - произвольное значение
            return
        if not isinstance(spec, dict):
            raise SpecValidationError(
                f"схема должна быть объектом, получено {type(spec).__name__}",
                location=location,
            )

        self._in_progress.add(node.id)
        try:
            self._fill_schema(node, spec, location)
        finally:
            self._in_progress.discard(node.id)

    def _fill_schema(self, node: SchemaNode, spec: Dict[str, Any], location: str):
        node.description = spec.get("description")
        node.deprecated = bool(spec.get("deprecated", False))
        node.format = spec.get("format")
        if spec.get("nullable"):
            node.nullable = True

        schema_type = spec.get("type")
        if isinstance(schema_type, list):
            # OpenAPI 3.1: type: [string, "null"]
            types = [t for t in schema_type if t != "null"]
            if len(types) != len(schema_type):
                node.nullable = True
            if len(types) > 1:
                node.kind = SchemaKind.UNION
                node.members = [
                    self.arena.add(location=f"{location}/type/{t}", primitive=t).id
                    for t in types
                ]
                return
            schema_type = types[0] if types else "null"

        if "allOf" in spec:
            self._fill_all_of(node, spec, location)
        elif "oneOf" in spec or "anyOf" in spec:
            self._fill_union(node, spec, location)
        elif "enum" in spec or "const" in spec:
            self._fill_enum(node, spec, schema_type, location)
        elif schema_type == "array" or "items" in spec:
            node.kind = SchemaKind.ARRAY
            items = spec.get("items")
            node.items = (
                self._resolve_schema(items, f"{location}/items")
                if items is not None
                else self._any_node(f"{location}/items")
            )
        elif (
            schema_type == "object"
            or "properties" in spec
            or "additionalProperties" in spec
        ):
            self._fill_object(node, spec, location)
        elif schema_type in PRIMITIVE_TYPES:
            node.primitive = schema_type
        elif schema_type is None:
            node.primitive = "any"
        else:
            raise SpecValidationError(
                f"неизвестный тип схемы '{schema_type}'", location=location
            )

    def _fill_object(self, node: SchemaNode, spec: Dict[str, Any], location: str):
        node.kind = SchemaKind.OBJECT
        required = set(spec.get("required") or [])

        properties = self._deref(spec.get("properties"), location) or {}
        for name, prop in properties.items():
            prop_location = f"{location}/properties/{escape_pointer(name)}"
            prop_id = self._resolve_schema(prop, prop_location)
            if isinstance(prop, jsonref.JsonRef):
                description = prop.__reference__.get("description")
            else:
                description = prop.get("description") if isinstance(prop, dict) else None
            node.properties[name] = SchemaProperty(
                node=prop_id, required=name in required, description=description
            )

        extra = spec.get("additionalProperties")
        if extra is True:
            node.extra_allowed = True
        elif extra is not None and extra is not False:
            node.extra_allowed = True
            node.extra_item = self._resolve_schema(
                extra, f"{location}/additionalProperties"
            )

    def _fill_all_of(self, node: SchemaNode, spec: Dict[str, Any], location: str):
        members = [
            self._resolve_schema(member, f"{location}/allOf/{i}")
            for i, member in enumerate(spec["allOf"])
        ]
        has_own = "properties" in spec or "additionalProperties" in spec

        if len(members) == 1 and not has_own:
            # allOf: [$ref] - обычно обертка для description/nullable
            self._wrap(node, members[0], spec["allOf"][0])
            return

        node.kind = SchemaKind.OBJECT
        owners: Dict[str, str] = {}

        for member_id in members:
            member = self.arena.unalias(member_id)
            if member_id in self._in_progress or member.id in self._in_progress:
                self._unsupported("рекурсивный allOf не поддерживается", location)
                continue
            if member.kind != SchemaKind.OBJECT:
                self._unsupported(
                    f"allOf со схемой вида '{member.kind.value}' не поддерживается",
                    location,
                )
                continue
            self._merge_members(node, member, member.component or member.location, owners, location)
            node.bases.append(member_id)

        if has_own:
            own = self.arena.add(location=location)
            self._fill_object(own, spec, location)
            self._merge_members(node, own, location, owners, location)

        for name in spec.get("required") or []:
            if name in node.properties:
                node.properties[name].required = True

    def _wrap(self, node: SchemaNode, member_id: int, source: Any):
        """
        Обертка над единственной схемой.

        Ссылка остается alias. Встроенная схема своей модели не образует,
        и узел-обертка принимает ее форму: компонент Owner из
        anyOf: [{type: object, ...}, {type: "null"}] - это объект Owner.
        """
        if isinstance(source, jsonref.JsonRef):
            node.kind = SchemaKind.ALIAS
            node.target = member_id
        else:
            node.adopt(self.arena[member_id])

    def _merge_members(
        self,
        node: SchemaNode,
        member: SchemaNode,
        contributor: str,
        owners: Dict[str, str],
        location: str,
    ):
        for name, prop in member.properties.items():
            if name in node.properties:
                if owners[name] == contributor:
                    continue
                raise NamingConflictError(
                    f"свойство '{name}' объявлено и в {owners[name]}, и в {contributor}",
                    location=location,
                )
            owners[name] = contributor
            node.properties[name] = SchemaProperty(
                node=prop.node, required=prop.required, description=prop.description
            )

        node.extra_allowed = node.extra_allowed or member.extra_allowed
        if node.extra_item is None:
            node.extra_item = member.extra_item

    def _fill_union(self, node: SchemaNode, spec: Dict[str, Any], location: str):
        variants: List[Tuple[str, Any]] = []
        for key in ("oneOf", "anyOf"):
            for i, member in enumerate(spec.get(key) or []):
                variants.append((f"{location}/{key}/{i}", member))

        members = []
        sources = []
        for member_location, member in variants:
            member_id = self._resolve_schema(member, member_location)
            member_node = self.arena[member_id]
            if (
                member_node.kind == SchemaKind.PRIMITIVE
                and member_node.primitive == "null"
                and member_node.component is None
            ):
                node.nullable = True
                continue
            members.append(member_id)
            sources.append(member)

        if not members:
            node.primitive = "null"
        elif len(members) == 1:
            # anyOf: [X, null] - nullable X
            self._wrap(node, members[0], sources[0])
        else:
            node.kind = SchemaKind.UNION
            node.members = members

    def _fill_enum(
        self,
        node: SchemaNode,
        spec: Dict[str, Any],
        schema_type: Optional[str],
        location: str,
    ):
        declared = list(spec["enum"]) if "enum" in spec else [spec["const"]]
        if not declared:
            raise SpecValidationError("enum не может быть пустым", location=location)

        names = spec.get("x-enumNames")
        if names is not None:
            if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
                raise SpecValidationError(
                    "x-enumNames должен быть списком строк", location=location
                )
            if len(names) != len(declared):
                raise SpecValidationError(
                    f"x-enumNames содержит {len(names)} имен, а enum - "
                    f"{len(declared)} значений",
                    location=location,
                )

        pairs = [
            (value, names[i] if names is not None else None)
            for i, value in enumerate(declared)
        ]
        if any(value is None for value, _ in pairs):
            node.nullable = True
            pairs = [(value, name) for value, name in pairs if value is not None]

        node.kind = SchemaKind.ENUM
        node.enum_values = [value for value, _ in pairs]
        if names is not None:
            node.enum_names = [name for _, name in pairs]
        node.primitive = (
            schema_type
            if schema_type in PRIMITIVE_TYPES and schema_type != "null"
            else self._infer_primitive(node.enum_values)
        )

    @staticmethod
    def _infer_primitive(values: List[Any]) -> str:
        if values and all(isinstance(v, bool) for v in values):
            return "boolean"
        if values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            return "integer"
        if values and all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
        ):
            return "number"
        return "string"

    # Операции

    def _server_url(self) -> Optional[str]:
        servers = self._deref(self._root.get("servers"), "#/servers") or []
        if not servers:
            return None
        if len(servers) > 1:
            logger.info(
                "В спецификации %d серверов, используется только первый", len(servers)
            )

        server = self._deref(servers[0], "#/servers/0")
        url = str(server.get("url") or "")
        variables = self._deref(server.get("variables"), "#/servers/0/variables") or {}
        for name, variable in variables.items():
            default = self._deref(variable, "#/servers/0/variables").get("default")
            if default is not None:
                url = url.replace("{" + name + "}", str(default))
        return url or None

    def _operations(self) -> List[Operation]:
        paths = self._deref(self._root.get("paths"), "#/paths") or {}
        operations = []
        seen_ids: Dict[str, str] = {}

        for path, path_item in paths.items():
            item_location = f"#/paths/{escape_pointer(path)}"
            path_item = self._deref(path_item, item_location) or {}

            if path_item.get("servers"):
                self._unsupported("servers на уровне пути не поддерживаются", path)

            shared = self._deref(path_item.get("parameters"), item_location) or []

            for method, op_spec in path_item.items():
                if method not in HTTP_METHODS:
                    continue
                op_location = f"{item_location}/{method}"
                operation = self._operation(
                    path,
                    method,
                    self._deref(op_spec, op_location) or {},
                    shared,
                    op_location,
                )

                where = f"{method.upper()} {path}"
                if operation.operation_id in seen_ids:
                    raise NamingConflictError(
                        f"operationId '{operation.operation_id}' уже используется "
                        f"операцией {seen_ids[operation.operation_id]}",
                        location=where,
                    )
                seen_ids[operation.operation_id] = where
                operations.append(operation)

        return operations

    def _operation(
        self,
        path: str,
        method: str,
        spec: Dict[str, Any],
        shared: List[Any],
        location: str,
    ) -> Operation:
        operation_id = spec.get("operationId") or self._synthesize_operation_id(
            method, path
        )
        if not isinstance(operation_id, str):
            raise SpecValidationError("operationId должен быть строкой", location=location)

        if spec.get("servers"):
            self._unsupported("servers на уровне операции не поддерживаются", operation_id)

        request_body, body_required = self._request_body(
            spec.get("requestBody"), f"{location}/requestBody"
        )

        return Operation(
            operation_id=operation_id,
            method=method,
            path=path,
            tags=list(spec.get("tags") or [DEFAULT_TAG]),
            short_name=self._operation_name(spec, operation_id),
            parameters=self._parameters(
                shared, self._deref(spec.get("parameters"), location) or [], location
            ),
            request_body=request_body,
            body_required=body_required,
            responses=self._responses(
                self._deref(spec.get("responses"), location) or {},
                f"{location}/responses",
            ),
            deprecated=bool(spec.get("deprecated", False)),
            summary=spec.get("summary"),
            description=spec.get("description"),
        )

    @staticmethod
    def _synthesize_operation_id(method: str, path: str) -> str:
        """get /users/{id} -> getUsersId"""
        parts = [p for p in re.split(r"[^a-zA-Z0-9]+", path) if p]
        return method + "".join(p[0].upper() + p[1:] for p in parts)

    @staticmethod
    def _operation_name(spec: Dict[str, Any], operation_id: str) -> Optional[str]:
        """Проверка x-operation-name при загрузке"""
        value = spec.get("x-operation-name")
        if value is None:
            return None
        if not isinstance(value, str) or not re.search(r"[a-zA-Z]", value):
            raise SpecValidationError(
                f"x-operation-name должен быть непустой строкой, получено {value!r}",
                location=operation_id,
            )
        return value.strip()

    def _parameters(
        self, shared: List[Any], own: List[Any], location: str
    ) -> List[OperationParameter]:
        merged: Dict[Tuple[str, str], OperationParameter] = {}

        for i, raw in enumerate(list(shared) + list(own)):
            param_location = f"{location}/parameters/{i}"
            param = self._deref(raw, param_location)
            name = param.get("name")
            where = param.get("in")
            if not name or where not in PARAMETER_LOCATIONS:
                raise SpecValidationError(
                    f"некорректный параметр (name={name!r}, in={where!r})",
                    location=param_location,
                )

            schema = param.get("schema")
            if schema is None and param.get("content"):
                content = self._deref(param["content"], param_location)
                media = self._deref(next(iter(content.values())), param_location) or {}
                schema = media.get("schema")

            # Параметр операции переопределяет параметр пути с тем же (name, in)
            merged[(name, where)] = OperationParameter(
                name=name,
                location=where,
                schema=(
                    self._resolve_schema(schema, f"{param_location}/schema")
                    if schema is not None
                    else self._any_node(param_location)
                ),
                required=bool(param.get("required")) or where == "path",
                description=param.get("description"),
                deprecated=bool(param.get("deprecated", False)),
            )

        return list(merged.values())

    def _content(self, content: Any, location: str) -> Dict[str, int]:
        result = {}
        for content_type, media in (self._deref(content, location) or {}).items():
            media_location = f"{location}/content/{escape_pointer(content_type)}"
            media = self._deref(media, media_location) or {}
            schema = media.get("schema")
            result[content_type] = (
                self._resolve_schema(schema, f"{media_location}/schema")
                if schema is not None
                else self._any_node(media_location)
            )
        return result

    def _request_body(self, raw: Any, location: str) -> Tuple[Dict[str, int], bool]:
        if raw is None:
            return {}, False
        body = self._deref(raw, location)
        return self._content(body.get("content"), location), bool(body.get("required"))

    def _responses(self, raw: Dict[str, Any], location: str) -> Dict[str, Dict[str, int]]:
        responses = {}
        for status, response in raw.items():
            # YAML превращает 200 в int
            status = str(status)
            status_location = f"{location}/{escape_pointer(status)}"
            response = self._deref(response, status_location) or {}
            responses[status] = self._content(response.get("content"), status_location)
        return responses

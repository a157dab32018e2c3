"""
Тесты разрешения ссылок и построения графа схем
"""

import logging

import pytest

from openapi_codegen.errors import (
    NamingConflictError,
    NotSupportedError,
    ParseError,
    SpecValidationError,
    UnresolvedReferenceError,
)
from openapi_codegen.internal.parser.openapi import OpenApiParser, load_document
from openapi_codegen.internal.parser.resolver import SpecResolver
from openapi_codegen.internal.types.schema import SchemaKind


def make_spec(schemas=None, paths=None, **extra):
    spec = {
        "openapi": "3.0.3",
        "info": {"title": "Test API", "version": "1.0.0"},
        "paths": paths or {},
        "components": {"schemas": schemas or {}},
    }
    spec.update(extra)
    return spec


def json_response(schema):
    return {
        "200": {
            "description": "OK",
            "content": {"application/json": {"schema": schema}},
        }
    }


def parse(spec, strict=True):
    return OpenApiParser(spec, strict=strict).parse()


class TestReferences:
    """$ref ссылки и рекурсивные схемы"""

    def test_recursive_schema(self):
        graph = parse(
            make_spec(
                {
                    "Node": {
                        "type": "object",
                        "properties": {
                            "children": {
                                "type": "array",
                                "items": {"$ref": "#/components/schemas/Node"},
                            }
                        },
                    }
                }
            )
        )

        node = graph.arena[graph.components["Node"]]
        children = graph.arena[node.properties["children"].node]
        assert node.kind == SchemaKind.OBJECT
        assert children.kind == SchemaKind.ARRAY
        assert children.items == node.id

    def test_mutual_recursion(self):
        graph = parse(
            make_spec(
                {
                    "A": {
                        "type": "object",
                        "properties": {"b": {"$ref": "#/components/schemas/B"}},
                    },
                    "B": {
                        "type": "object",
                        "properties": {"a": {"$ref": "#/components/schemas/A"}},
                    },
                }
            )
        )

        a = graph.arena[graph.components["A"]]
        b = graph.arena[graph.components["B"]]
        assert a.properties["b"].node == b.id
        assert b.properties["a"].node == a.id

    def test_reference_resolved_once(self):
        graph = parse(
            make_spec(
                {"User": {"type": "object", "properties": {"id": {"type": "integer"}}}},
                {
                    "/a": {
                        "get": {
                            "operationId": "a",
                            "responses": json_response({"$ref": "#/components/schemas/User"}),
                        }
                    },
                    "/b": {
                        "get": {
                            "operationId": "b",
                            "responses": json_response({"$ref": "#/components/schemas/User"}),
                        }
                    },
                },
            )
        )

        user_id = graph.components["User"]
        for operation in graph.operations:
            assert operation.responses["200"]["application/json"] == user_id
        assert sum(1 for node in graph.arena if node.component == "User") == 1

    def test_dangling_reference(self):
        spec = make_spec(
            paths={
                "/users": {
                    "get": {
                        "operationId": "listUsers",
                        "responses": json_response({"$ref": "#/components/schemas/Missing"}),
                    }
                }
            }
        )

        with pytest.raises(UnresolvedReferenceError, match="Missing"):
            parse(spec)

    def test_external_reference(self):
        spec = make_spec({"User": {"$ref": "common.yaml#/components/schemas/User"}})

        with pytest.raises(UnresolvedReferenceError, match="common.yaml"):
            parse(spec)

    def test_self_reference_alias(self):
        spec = make_spec({"Loop": {"$ref": "#/components/schemas/Loop"}})

        with pytest.raises(UnresolvedReferenceError):
            parse(spec)

    def test_alias_cycle(self):
        spec = make_spec(
            {
                "A": {"$ref": "#/components/schemas/B"},
                "B": {"$ref": "#/components/schemas/A"},
            }
        )

        with pytest.raises(UnresolvedReferenceError):
            parse(spec)

    def test_component_alias(self):
        graph = parse(
            make_spec(
                {
                    "User": {"type": "object", "properties": {"id": {"type": "integer"}}},
                    "Owner": {"$ref": "#/components/schemas/User"},
                }
            )
        )

        owner = graph.arena[graph.components["Owner"]]
        assert owner.kind == SchemaKind.ALIAS
        assert owner.target == graph.components["User"]
        assert owner.component == "Owner"

    def test_shared_parameter_and_response(self):
        spec = make_spec(
            {"Error": {"type": "object", "properties": {"code": {"type": "integer"}}}},
            {
                "/users": {
                    "get": {
                        "operationId": "listUsers",
                        "parameters": [{"$ref": "#/components/parameters/Limit"}],
                        "responses": {"200": {"$ref": "#/components/responses/Ok"}},
                    }
                }
            },
        )
        spec["components"]["parameters"] = {
            "Limit": {"name": "limit", "in": "query", "schema": {"type": "integer"}}
        }
        spec["components"]["responses"] = {
            "Ok": {
                "description": "OK",
                "content": {
                    "application/json": {"schema": {"$ref": "#/components/schemas/Error"}}
                },
            }
        }

        operation = parse(spec).operations[0]
        assert operation.parameters[0].name == "limit"
        assert operation.parameters[0].location == "query"
        assert "application/json" in operation.responses["200"]

    def test_dangling_parameter_reference(self):
        spec = make_spec(
            paths={
                "/users": {
                    "get": {
                        "operationId": "listUsers",
                        "parameters": [{"$ref": "#/components/parameters/Nope"}],
                        "responses": {"204": {"description": "empty"}},
                    }
                }
            }
        )

        with pytest.raises(UnresolvedReferenceError):
            parse(spec)

    def test_every_run_has_own_cache(self):
        spec = make_spec({"User": {"type": "object", "properties": {"id": {"type": "integer"}}}})

        first = SpecResolver(spec)
        second = SpecResolver(spec)
        first_graph = first.resolve()
        second_graph = second.resolve()

        assert first.cache is not second.cache
        first_graph.arena[first_graph.components["User"]].name = "Renamed"
        assert second_graph.arena[second_graph.components["User"]].name is None


class TestComposition:
    """allOf, oneOf, anyOf"""

    def test_all_of_merge(self):
        graph = parse(
            make_spec(
                {
                    "Base": {
                        "type": "object",
                        "properties": {"id": {"type": "integer"}},
                        "required": ["id"],
                    },
                    "Pet": {
                        "allOf": [
                            {"$ref": "#/components/schemas/Base"},
                            {
                                "type": "object",
                                "properties": {"name": {"type": "string"}},
                                "required": ["name"],
                            },
                        ]
                    },
                }
            )
        )

        pet = graph.arena[graph.components["Pet"]]
        assert pet.kind == SchemaKind.OBJECT
        assert list(pet.properties) == ["id", "name"]
        assert pet.properties["id"].required
        assert pet.properties["name"].required

    def test_all_of_own_properties_and_required(self):
        graph = parse(
            make_spec(
                {
                    "Base": {"type": "object", "properties": {"id": {"type": "integer"}}},
                    "Pet": {
                        "allOf": [{"$ref": "#/components/schemas/Base"}],
                        "properties": {"name": {"type": "string"}},
                        "required": ["id"],
                    },
                }
            )
        )

        base = graph.arena[graph.components["Base"]]
        pet = graph.arena[graph.components["Pet"]]
        assert list(pet.properties) == ["id", "name"]
        assert pet.properties["id"].required
        # Член allOf не меняется при слиянии
        assert not base.properties["id"].required

    def test_all_of_duplicate_property(self):
        spec = make_spec(
            {
                "A": {"type": "object", "properties": {"id": {"type": "integer"}}},
                "B": {"type": "object", "properties": {"id": {"type": "string"}}},
                "C": {
                    "allOf": [
                        {"$ref": "#/components/schemas/A"},
                        {"$ref": "#/components/schemas/B"},
                    ]
                },
            }
        )

        with pytest.raises(NamingConflictError, match="id"):
            parse(spec)

    def test_all_of_single_member_is_alias(self):
        graph = parse(
            make_spec(
                {
                    "Base": {"type": "object", "properties": {"id": {"type": "integer"}}},
                    "Wrapper": {
                        "allOf": [{"$ref": "#/components/schemas/Base"}],
                        "description": "Обертка",
                    },
                }
            )
        )

        wrapper = graph.arena[graph.components["Wrapper"]]
        assert wrapper.kind == SchemaKind.ALIAS
        assert wrapper.target == graph.components["Base"]

    def test_all_of_keeps_members(self):
        graph = parse(
            make_spec(
                {
                    "Pet": {"type": "object", "properties": {"id": {"type": "integer"}}},
                    "Dog": {
                        "allOf": [
                            {"$ref": "#/components/schemas/Pet"},
                            {"type": "object", "properties": {"bark": {"type": "boolean"}}},
                        ]
                    },
                }
            )
        )

        dog = graph.arena[graph.components["Dog"]]
        assert list(dog.properties) == ["id", "bark"]
        assert dog.bases[0] == graph.components["Pet"]
        assert graph.components["Pet"] in dog.children()

    def test_inline_single_member_takes_wrapper_place(self):
        graph = parse(
            make_spec(
                {
                    "Owner": {
                        "anyOf": [
                            {"type": "object", "properties": {"name": {"type": "string"}}},
                            {"type": "null"},
                        ]
                    },
                    "Status": {
                        "allOf": [{"type": "string", "enum": ["on", "off"]}],
                        "description": "Состояние",
                    },
                }
            )
        )

        owner = graph.arena[graph.components["Owner"]]
        assert owner.kind == SchemaKind.OBJECT
        assert owner.nullable
        assert list(owner.properties) == ["name"]

        status = graph.arena[graph.components["Status"]]
        assert status.kind == SchemaKind.ENUM
        assert status.enum_values == ["on", "off"]
        assert status.description == "Состояние"

    def test_all_of_non_object_member(self, caplog):
        spec = make_spec(
            {
                "Odd": {
                    "allOf": [
                        {"type": "string"},
                        {"type": "object", "properties": {"x": {"type": "integer"}}},
                    ]
                }
            }
        )

        with pytest.raises(NotSupportedError):
            parse(spec)

        with caplog.at_level(logging.WARNING):
            graph = parse(spec, strict=False)
        odd = graph.arena[graph.components["Odd"]]
        assert list(odd.properties) == ["x"]
        assert "allOf" in caplog.text

    def test_one_of_union(self):
        graph = parse(
            make_spec(
                {
                    "Cat": {"type": "object", "properties": {"meow": {"type": "boolean"}}},
                    "Dog": {"type": "object", "properties": {"bark": {"type": "boolean"}}},
                    "Pet": {
                        "oneOf": [
                            {"$ref": "#/components/schemas/Cat"},
                            {"$ref": "#/components/schemas/Dog"},
                        ]
                    },
                }
            )
        )

        pet = graph.arena[graph.components["Pet"]]
        assert pet.kind == SchemaKind.UNION
        assert pet.members == [graph.components["Cat"], graph.components["Dog"]]

    def test_any_of_with_null(self):
        graph = parse(
            make_spec(
                {
                    "Cat": {"type": "object", "properties": {"meow": {"type": "boolean"}}},
                    "MaybeCat": {
                        "anyOf": [{"$ref": "#/components/schemas/Cat"}, {"type": "null"}]
                    },
                }
            )
        )

        maybe = graph.arena[graph.components["MaybeCat"]]
        assert maybe.kind == SchemaKind.ALIAS
        assert maybe.nullable
        assert maybe.target == graph.components["Cat"]


class TestSchemaDetails:
    """Примитивы, nullable, enum и расширения"""

    def test_type_list_with_null(self):
        graph = parse(make_spec({"Name": {"type": ["string", "null"]}}))

        name = graph.arena[graph.components["Name"]]
        assert name.kind == SchemaKind.PRIMITIVE
        assert name.primitive == "string"
        assert name.nullable

    def test_nullable_flag(self):
        graph = parse(make_spec({"Name": {"type": "string", "nullable": True}}))
        assert graph.arena[graph.components["Name"]].nullable

    def test_enum_with_null(self):
        graph = parse(
            make_spec({"Status": {"type": "string", "enum": ["on", "off", None]}})
        )

        status = graph.arena[graph.components["Status"]]
        assert status.kind == SchemaKind.ENUM
        assert status.enum_values == ["on", "off"]
        assert status.nullable

    def test_integer_enum_primitive(self):
        graph = parse(make_spec({"Level": {"enum": [1, 2, 3]}}))
        assert graph.arena[graph.components["Level"]].primitive == "integer"

    def test_enum_names(self):
        graph = parse(
            make_spec(
                {
                    "Level": {
                        "type": "integer",
                        "enum": [1, 2, 3],
                        "x-enumNames": ["Low", "Medium", "High"],
                    }
                }
            )
        )

        assert graph.arena[graph.components["Level"]].enum_names == ["Low", "Medium", "High"]

    def test_enum_names_length_mismatch(self):
        spec = make_spec(
            {
                "Level": {
                    "type": "integer",
                    "enum": [1, 2, 3],
                    "x-enumNames": ["Low", "High"],
                }
            }
        )

        with pytest.raises(SpecValidationError, match="x-enumNames"):
            parse(spec)

    def test_enum_names_not_strings(self):
        spec = make_spec({"Level": {"enum": [1, 2], "x-enumNames": "Low,High"}})

        with pytest.raises(SpecValidationError):
            parse(spec)

    def test_additional_properties(self):
        graph = parse(
            make_spec(
                {
                    "Counters": {
                        "type": "object",
                        "additionalProperties": {"type": "integer"},
                    },
                    "Bag": {"type": "object", "additionalProperties": True},
                }
            )
        )

        counters = graph.arena[graph.components["Counters"]]
        bag = graph.arena[graph.components["Bag"]]
        assert counters.extra_allowed
        assert graph.arena[counters.extra_item].primitive == "integer"
        assert bag.extra_allowed and bag.extra_item is None
        assert bag.is_free_form

    def test_unknown_type(self):
        with pytest.raises(SpecValidationError, match="file"):
            parse(make_spec({"Upload": {"type": "file"}}))


class TestOperations:
    """Операции, параметры, серверы"""

    def test_openapi_version(self):
        with pytest.raises(NotSupportedError, match="Swagger"):
            parse({"swagger": "2.0", "info": {}, "paths": {}})

        with pytest.raises(NotSupportedError):
            parse({"openapi": "4.0.0", "info": {}, "paths": {}})

    def test_synthesized_operation_id_and_default_tag(self):
        graph = parse(
            make_spec(
                paths={"/users/{id}": {"get": {"responses": {"204": {"description": ""}}}}}
            )
        )

        operation = graph.operations[0]
        assert operation.operation_id == "getUsersId"
        assert operation.tags == ["default"]
        # Path параметр без объявления не добавляется
        assert operation.parameters == []

    def test_duplicate_operation_id(self):
        spec = make_spec(
            paths={
                "/a": {"get": {"operationId": "same", "responses": {}}},
                "/b": {"get": {"operationId": "same", "responses": {}}},
            }
        )

        with pytest.raises(NamingConflictError, match="same"):
            parse(spec)

    def test_path_level_parameters(self):
        graph = parse(
            make_spec(
                paths={
                    "/users/{id}": {
                        "parameters": [
                            {"name": "id", "in": "path", "schema": {"type": "string"}},
                            {
                                "name": "verbose",
                                "in": "query",
                                "description": "общий",
                                "schema": {"type": "boolean"},
                            },
                        ],
                        "get": {
                            "operationId": "getUser",
                            "parameters": [
                                {
                                    "name": "verbose",
                                    "in": "query",
                                    "description": "свой",
                                    "schema": {"type": "boolean"},
                                }
                            ],
                            "responses": {},
                        },
                    }
                }
            )
        )

        parameters = graph.operations[0].parameters
        assert [(p.name, p.location) for p in parameters] == [
            ("id", "path"),
            ("verbose", "query"),
        ]
        assert parameters[0].required  # path параметры всегда обязательны
        assert parameters[1].description == "свой"

    def test_invalid_parameter(self):
        spec = make_spec(
            paths={
                "/a": {
                    "get": {
                        "operationId": "a",
                        "parameters": [{"name": "x", "in": "body"}],
                        "responses": {},
                    }
                }
            }
        )

        with pytest.raises(SpecValidationError):
            parse(spec)

    @pytest.mark.parametrize("value", ["", "   ", 42, ["list"]])
    def test_invalid_operation_name(self, value):
        spec = make_spec(
            paths={
                "/users": {
                    "get": {
                        "operationId": "listUsers",
                        "x-operation-name": value,
                        "responses": {},
                    }
                }
            }
        )

        with pytest.raises(SpecValidationError, match="listUsers"):
            parse(spec)

    def test_operation_name(self):
        graph = parse(
            make_spec(
                paths={
                    "/users": {
                        "get": {
                            "operationId": "listUsers",
                            "x-operation-name": "list",
                            "responses": {},
                        }
                    }
                }
            )
        )

        assert graph.operations[0].short_name == "list"
        assert graph.operations[0].base_name == "list"

    def test_first_server_only(self):
        graph = parse(
            make_spec(
                servers=[
                    {
                        "url": "https://{region}.example.com/v1",
                        "variables": {"region": {"default": "eu"}},
                    },
                    {"url": "https://backup.example.com"},
                ]
            )
        )

        assert graph.server_url == "https://eu.example.com/v1"

    def test_operation_servers(self, caplog):
        spec = make_spec(
            paths={
                "/users": {
                    "get": {
                        "operationId": "listUsers",
                        "servers": [{"url": "https://other.example.com"}],
                        "responses": {},
                    }
                }
            }
        )

        with pytest.raises(NotSupportedError, match="listUsers"):
            parse(spec)

        with caplog.at_level(logging.WARNING):
            graph = parse(spec, strict=False)
        assert len(graph.operations) == 1
        assert "servers" in caplog.text

    def test_yaml_integer_status(self):
        parser = OpenApiParser.from_text(
            """
openapi: 3.0.0
info: {title: YAML, version: "1"}
paths:
  /ping:
    get:
      operationId: ping
      responses:
        200:
          description: OK
          content:
            text/plain:
              schema: {type: string}
"""
        )

        operation = parser.parse().operations[0]
        assert list(operation.responses) == ["200"]
        assert operation.success_statuses() == ["200"]


class TestLoadDocument:
    """Разбор текста документа"""

    def test_truncated_json(self):
        with pytest.raises(ParseError) as exc_info:
            load_document('{"openapi": ', "json")

        assert exc_info.value.kind == "parse"
        assert exc_info.value.location == "строка 1, столбец 13"

    def test_bad_yaml_indent(self):
        text = "openapi: 3.0.0\ninfo: x\n  title: y\n"

        with pytest.raises(ParseError) as exc_info:
            load_document(text)

        assert exc_info.value.location.startswith("строка 3, ")
        assert "mapping values" in str(exc_info.value)

    def test_root_is_not_mapping(self):
        with pytest.raises(ParseError) as exc_info:
            load_document("- a")

        assert exc_info.value.location == "#"
        assert "list" in str(exc_info.value)

    def test_format_detection(self):
        assert load_document('  {"openapi": "3.0.0"}') == {"openapi": "3.0.0"}
        assert load_document("openapi: 3.0.0") == {"openapi": "3.0.0"}

"""
Тесты сбора моделей и назначения имен
"""

import pytest

from openapi_codegen.errors import NamingConflictError
from openapi_codegen.internal.generator.collector import ModelCollector
from openapi_codegen.internal.parser.openapi import OpenApiParser


def json_content(schema):
    return {"application/json": {"schema": schema}}


def ref(name):
    return {"$ref": f"#/components/schemas/{name}"}


def make_spec(schemas=None, paths=None):
    return {
        "openapi": "3.0.3",
        "info": {"title": "Test API", "version": "1.0.0"},
        "paths": paths or {},
        "components": {"schemas": schemas or {}},
    }


def get_operation(operation_id, schema, path=None):
    return {
        path
        or f"/{operation_id}": {
            "get": {
                "operationId": operation_id,
                "responses": {"200": {"description": "OK", "content": json_content(schema)}},
            }
        }
    }


def collect(spec):
    graph = OpenApiParser(spec).parse()
    models = ModelCollector(graph).collect()
    return graph, {graph.arena[node_id].name: graph.arena[node_id] for node_id in models}


class TestComponents:
    """Компоненты из #/components/schemas"""

    def test_every_reachable_component_is_model(self):
        schemas = {
            f"Model{i}": {"type": "object", "properties": {"value": {"type": "string"}}}
            for i in range(5)
        }
        wrapper = {
            "type": "object",
            "properties": {f"m{i}": ref(f"Model{i}") for i in range(5)},
        }
        _, models = collect(make_spec(schemas, get_operation("getAll", wrapper)))

        assert {f"Model{i}" for i in range(5)} <= set(models)
        # Ссылки на компонент в разных местах не создают дублей
        assert len([name for name in models if name.startswith("Model")]) == 5

    def test_unreferenced_component_excluded(self):
        schemas = {
            "User": {"type": "object", "properties": {"id": {"type": "integer"}}},
            "Unused": {"type": "object", "properties": {"id": {"type": "integer"}}},
        }
        _, models = collect(make_spec(schemas, get_operation("getUser", ref("User"))))

        assert set(models) == {"User"}

    def test_primitive_component_is_model(self):
        schemas = {"UserId": {"type": "string", "format": "uuid"}}
        _, models = collect(make_spec(schemas, get_operation("getId", ref("UserId"))))

        assert set(models) == {"UserId"}

    def test_cyclic_components(self):
        schemas = {
            "A": {"type": "object", "properties": {"b": ref("B")}},
            "B": {"type": "object", "properties": {"a": ref("A")}},
        }
        _, models = collect(make_spec(schemas, get_operation("getA", ref("A"))))

        assert set(models) == {"A", "B"}

    def test_all_of_base_component_is_model(self):
        """Компонент из allOf генерируется, даже если на него ссылается только allOf"""
        schemas = {
            "Pet": {"type": "object", "properties": {"id": {"type": "integer"}}},
            "Dog": {
                "allOf": [
                    ref("Pet"),
                    {"type": "object", "properties": {"bark": {"type": "boolean"}}},
                ]
            },
        }
        _, models = collect(make_spec(schemas, get_operation("getDog", ref("Dog"))))

        assert sorted(models) == ["Dog", "Pet"]

    def test_nullable_object_wrapper(self):
        """anyOf со встроенным объектом и null - одна модель с именем компонента"""
        schemas = {
            "Owner": {
                "anyOf": [
                    {"type": "object", "properties": {"name": {"type": "string"}}},
                    {"type": "null"},
                ]
            }
        }
        _, models = collect(make_spec(schemas, get_operation("getOwner", ref("Owner"))))

        assert set(models) == {"Owner"}
        assert models["Owner"].kind.value == "object"
        assert models["Owner"].nullable

    def test_described_enum_wrapper(self):
        schemas = {
            "Status": {
                "allOf": [{"type": "string", "enum": ["on", "off"]}],
                "description": "Состояние",
            }
        }
        _, models = collect(make_spec(schemas, get_operation("getStatus", ref("Status"))))

        assert set(models) == {"Status"}
        assert models["Status"].member_names == ["ON", "OFF"]

    def test_names_do_not_depend_on_declaration_order(self):
        schemas = {
            "Pet": {
                "type": "object",
                "properties": {
                    "owner": {"type": "object", "properties": {"name": {"type": "string"}}},
                    "kind": ref("PetKind"),
                },
            },
            "PetKind": {"type": "string", "enum": ["cat", "dog"]},
        }
        paths = get_operation("getPet", ref("Pet"))

        _, forward = collect(make_spec(schemas, paths))
        _, backward = collect(make_spec(dict(reversed(list(schemas.items()))), paths))

        assert set(forward) == set(backward) == {"Pet", "PetKind", "PetOwner"}


class TestAnonymousNames:
    """Имена анонимных схем по месту использования"""

    def test_request_body(self):
        paths = {
            "/users": {
                "post": {
                    "operationId": "createUser",
                    "requestBody": {
                        "content": json_content(
                            {"type": "object", "properties": {"name": {"type": "string"}}}
                        )
                    },
                    "responses": {"201": {"description": "Created"}},
                }
            }
        }
        _, models = collect(make_spec(paths=paths))

        assert set(models) == {"CreateUserRequest"}

    def test_array_item(self):
        schema = {
            "type": "array",
            "items": {"type": "object", "properties": {"id": {"type": "integer"}}},
        }
        _, models = collect(make_spec(paths=get_operation("listUsers", schema)))

        assert set(models) == {"ListUsersResponseItem"}

    def test_nested_property_and_enum(self):
        schemas = {
            "Pet": {
                "type": "object",
                "properties": {
                    "owner": {"type": "object", "properties": {"name": {"type": "string"}}},
                    "status": {"type": "string", "enum": ["available", "sold"]},
                },
            }
        }
        _, models = collect(make_spec(schemas, get_operation("getPet", ref("Pet"))))

        assert set(models) == {"Pet", "PetOwner", "PetStatus"}

    def test_parameter_enum(self):
        paths = {
            "/pets": {
                "get": {
                    "operationId": "listPets",
                    "parameters": [
                        {
                            "name": "sort-order",
                            "in": "query",
                            "schema": {"type": "string", "enum": ["asc", "desc"]},
                        }
                    ],
                    "responses": {"204": {"description": "OK"}},
                }
            }
        }
        _, models = collect(make_spec(paths=paths))

        assert set(models) == {"ListPetsSortOrder"}

    def test_second_status_and_content_type(self):
        item = {"type": "object", "properties": {"id": {"type": "integer"}}}
        paths = {
            "/jobs": {
                "post": {
                    "operationId": "startJob",
                    "responses": {
                        "200": {"description": "OK", "content": json_content(item)},
                        "202": {
                            "description": "Accepted",
                            "content": {
                                "application/json": {"schema": dict(item)},
                                "application/xml": {"schema": dict(item)},
                            },
                        },
                    },
                }
            }
        }
        _, models = collect(make_spec(paths=paths))

        assert set(models) == {
            "StartJobResponse",
            "StartJobResponse202",
            "StartJobResponse202Xml",
        }


class TestNamingConflicts:
    """Конфликты имен - ошибка, а не молчаливое переименование"""

    def test_same_pascal_name(self):
        schemas = {
            "UserProfile": {"type": "object", "properties": {"a": {"type": "string"}}},
            "User_Profile": {"type": "object", "properties": {"b": {"type": "string"}}},
        }
        wrapper = {
            "type": "object",
            "properties": {"x": ref("UserProfile"), "y": ref("User_Profile")},
        }

        with pytest.raises(NamingConflictError, match="UserProfile"):
            collect(make_spec(schemas, get_operation("getBoth", wrapper)))

    def test_same_module_name(self):
        schemas = {
            "APIKey": {"type": "object", "properties": {"a": {"type": "string"}}},
            "ApiKey": {"type": "object", "properties": {"b": {"type": "string"}}},
        }
        wrapper = {
            "type": "object",
            "properties": {"x": ref("APIKey"), "y": ref("ApiKey")},
        }

        with pytest.raises(NamingConflictError, match="api_key"):
            collect(make_spec(schemas, get_operation("getKeys", wrapper)))

    def test_component_and_anonymous_name(self):
        schemas = {
            "CreateUserRequest": {
                "type": "object",
                "properties": {"name": {"type": "string"}},
            }
        }
        paths = get_operation("getRequest", ref("CreateUserRequest"))
        paths["/users"] = {
            "post": {
                "operationId": "createUser",
                "requestBody": {
                    "content": json_content(
                        {"type": "object", "properties": {"email": {"type": "string"}}}
                    )
                },
                "responses": {"201": {"description": "Created"}},
            }
        }

        with pytest.raises(NamingConflictError, match="CreateUserRequest"):
            collect(make_spec(schemas, paths))


class TestEnumMembers:
    """Имена атрибутов enum"""

    def test_cleaned_values(self):
        schemas = {"Status": {"type": "string", "enum": ["active", "in-progress", "2fa"]}}
        _, models = collect(make_spec(schemas, get_operation("getStatus", ref("Status"))))

        assert models["Status"].member_names == ["ACTIVE", "IN_PROGRESS", "VALUE_2FA"]

    def test_enum_names_extension(self):
        schemas = {
            "Level": {
                "type": "integer",
                "enum": [1, 2, 3],
                "x-enumNames": ["Low", "class", "_hidden"],
            }
        }
        _, models = collect(make_spec(schemas, get_operation("getLevel", ref("Level"))))

        # Некорректные идентификаторы очищаются как обычные значения
        assert models["Level"].member_names == ["Low", "CLASS", "HIDDEN"]

    def test_boolean_values(self):
        schemas = {"Flag": {"type": "boolean", "enum": [True, False]}}
        _, models = collect(make_spec(schemas, get_operation("getFlag", ref("Flag"))))

        assert models["Flag"].member_names == ["TRUE", "FALSE"]

    def test_duplicate_member_names(self):
        schemas = {"Mode": {"type": "string", "enum": ["a-b", "a_b"]}}

        with pytest.raises(NamingConflictError, match="A_B"):
            collect(make_spec(schemas, get_operation("getMode", ref("Mode"))))

import logging
from typing import List

from ..types.models import (
    Class,
    CodeBlock,
    CodeFile,
    Function,
    Parameter,
    Project,
    Variable,
)
from .render_model import (
    MethodArgument,
    ModelModule,
    RenderModel,
    ServiceMethod,
    ServiceModule,
)
from .templates import templates

logger = logging.getLogger(__name__)

TYPING_IMPORT = "from typing import Any, Dict, List, Optional, Union"


class ClientGenerator:
    """Рендер RenderModel в файлы клиента"""

    def __init__(self, render_model: RenderModel, project_name: str = "api"):
        self.render_model = render_model
        self.project = Project(name=project_name)

    def generate(self) -> Project:
        """Основная генерация"""
        self._create_base_files()
        self._generate_models()
        self._generate_endpoints()
        self._generate_client()
        logger.debug("Сгенерировано %d файлов", len(self.project.files))
        return self.project

    def _create_base_files(self):
        """Создание базовых файлов проекта"""
        self.project.add_file("__init__.py").add_code_block(
            CodeBlock(code=templates.package_init.strip())
        )
        self.project.add_file("common.py").add_code_block(
            CodeBlock(code=templates.aiohttp_common.strip())
        )
        self.project.add_file("constants.py").add_code_block(
            CodeBlock(code=templates.constants.strip())
        )
        self.project.add_file("utils.py").add_code_block(
            CodeBlock(code=templates.utils.strip())
        )

    # Модели

    def _generate_models(self):
        """Файл на каждую модель и models/__init__.py"""
        models_init = self.project.add_file("models/__init__.py")
        models_needing_rebuild = []

        for model in self.render_model.models:
            if model.kind == "object":
                self._generate_object_model(model)
                if model.imports:
                    models_needing_rebuild.append(model.name)
            elif model.kind == "enum":
                self._generate_enum_model(model)
            else:
                self._generate_alias_model(model)

        models_init.imports.extend(
            f"from .{model.module} import {model.name}"
            for model in sorted(self.render_model.models, key=lambda m: m.module)
        )
        models_init.add_code_block(
            CodeBlock(
                code=f"__all__ = {[model.name for model in self.render_model.models]}",
                order=10,
            )
        )

        # model_rebuild() для моделей с TYPE_CHECKING импортами
        if models_needing_rebuild:
            models_init.add_code_block(
                CodeBlock(
                    code="\n".join(f"{name}.model_rebuild()" for name in models_needing_rebuild),
                    order=0,
                )
            )

    def _model_imports(self, model: ModelModule) -> List[str]:
        lookup = {m.name: m.module for m in self.render_model.models}
        return [f"from .{lookup[name]} import {name}" for name in model.imports]

    def _generate_object_model(self, model: ModelModule):
        model_file = self.project.add_file(f"models/{model.module}.py")
        model_file.imports.extend(
            [
                "from __future__ import annotations",
                "",
                "from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union",
                "",
                "from pydantic import BaseModel, ConfigDict, Field",
            ]
        )
        # Ссылки на другие модели только для анализатора типов: модели могут
        # ссылаться друг на друга по кругу, имена разрешает model_rebuild()
        if model.imports:
            model_file.imports.append("\nif TYPE_CHECKING:")
            model_file.imports.extend(
                f"    {line}" for line in self._model_imports(model)
            )

        model_class = model_file.add_class(
            model.name, inherits=["BaseModel"], docstring=model.description
        )

        config = "populate_by_name=True"
        if model.extra_allowed:
            config += ', extra="allow"'
        model_class.add_parameter(
            "model_config", order=100, default=Variable(value=f"ConfigDict({config})")
        )
        for i, field in enumerate(model.fields):
            parameter = Parameter(name=field.name, order=-i)
            parameter.set_type(
                field.type_expr
                if field.required or field.type_expr.startswith("Optional[")
                or field.type_expr in ("Any", "None")
                else f"Optional[{field.type_expr}]"
            )

            field_args = [] if field.required else ["default=None"]
            if field.wire_name != field.name:
                field_args.append(f"alias={field.wire_name!r}")
            if field.description:
                field_args.append(f"description={field.description.strip()!r}")

            if field.wire_name != field.name or field.description:
                parameter.set_default(f"Field({', '.join(field_args)})")
            elif not field.required:
                parameter.set_default("None")

            model_class.add_parameter(parameter)

    def _generate_enum_model(self, model: ModelModule):
        model_file = self.project.add_file(f"models/{model.module}.py")
        model_file.imports.append("from enum import Enum")

        inherits = [model.enum_base, "Enum"] if model.enum_base else ["Enum"]
        enum_class = model_file.add_class(
            model.name, inherits=inherits, docstring=model.description
        )
        for member in model.members:
            enum_class.add_parameter(member.name, default=Variable(value=repr(member.value)))

    def _generate_alias_model(self, model: ModelModule):
        model_file = self.project.add_file(f"models/{model.module}.py")
        model_file.imports.append(TYPING_IMPORT)
        if model.imports:
            model_file.imports.append("")
            model_file.imports.extend(self._model_imports(model))

        code = f"{model.name} = {model.alias}"
        if model.description:
            code = f"# {model.description.strip().splitlines()[0]}\n{code}"
        model_file.add_code_block(CodeBlock(code=code))

    # Endpoints

    def _generate_endpoints(self):
        """Класс на каждый тег"""
        endpoints_init = self.project.add_file("endpoints/__init__.py")

        for service in self.render_model.services:
            self._generate_service(service)
            endpoints_init.imports.append(f"from .{service.module} import {service.name}")

        endpoints_init.add_code_block(
            CodeBlock(code=f"__all__ = {[s.name for s in self.render_model.services]}")
        )

    def _generate_service(self, service: ServiceModule):
        service_file = self.project.add_file(f"endpoints/{service.module}.py")
        service_file.imports.extend(
            [
                TYPING_IMPORT,
                "",
                "from ..common import AiohttpClient, ApiResponse",
                "from ..constants import NOTSET",
                "from ..utils import decode_response, prepare_request",
            ]
        )
        if service.imports:
            service_file.imports.append(f"from ..models import {', '.join(service.imports)}")

        service_class = service_file.add_class(service.name, docstring=service.description)
        service_class.add_function(
            "__init__",
            order=1000,
            parameters=[Parameter(name="self"), Parameter(name="client").set_type("AiohttpClient")],
            code=CodeBlock(code="self._client = client"),
        )

        for i, method in enumerate(service.methods):
            # Порядок методов в файле совпадает с порядком вариантов
            order = -2 * i
            service_class.add_function(self._response_method(method, order))
            service_class.add_function(self._payload_method(method, order - 1))

    @staticmethod
    def _signature(method: ServiceMethod) -> List[Parameter]:
        parameters = [Parameter(name="self")]
        arguments = list(method.arguments)
        if method.body:
            arguments.append(method.body)

        for argument in arguments:
            parameter = Parameter(name=argument.name)
            if argument.required:
                parameter.set_type(argument.type_expr)
            else:
                parameter.set_type(
                    argument.type_expr
                    if argument.type_expr.startswith("Optional[")
                    or argument.type_expr in ("Any", "None")
                    else f"Optional[{argument.type_expr}]"
                )
                parameter.set_default("NOTSET")
            parameters.append(parameter)

        return parameters

    @staticmethod
    def _docstring(method: ServiceMethod, arguments: List[MethodArgument]) -> str:
        lines = [method.summary or f"{method.http_method} {method.path}"]
        if method.description and method.description != method.summary:
            lines.extend(["", method.description.strip()])

        described = [a for a in arguments if a.description]
        if described:
            lines.extend(["", "Args:"])
            lines.extend(f"    {a.name}: {a.description.strip()}" for a in described)

        if method.deprecated:
            lines.extend(["", "Deprecated."])
        return "\n".join(lines)

    def _response_method(self, method: ServiceMethod, order: int) -> Function:
        arguments = list(method.arguments) + ([method.body] if method.body else [])
        parameter_rows = "".join(
            f"\n\t\t({a.location!r}, {a.wire_name!r}, {a.name}, {a.required}),"
            for a in method.arguments
        )

        request_args = [
            repr(method.http_method),
            repr(method.path),
            f"[{parameter_rows}\n\t]" if parameter_rows else "[]",
        ]
        if method.body:
            request_args.extend(
                [
                    f"body={method.body.name}",
                    f"body_required={method.body.required}",
                    f"content_type={method.request_content_type!r}",
                    "has_body=True",
                ]
            )
        request_args.append(f"accept={method.response_content_type!r}")

        response_type = "None" if method.return_type == "None" else method.return_type
        code = (
            "request = prepare_request(\n"
            + "".join(f"\t{arg},\n" for arg in request_args)
            + ")\n"
            + "response = await self._client._send_request(**request)\n"
            + "return decode_response(\n"
            + f"\tresponse, request[\"path\"], {response_type}, "
            + f"{method.response_content_type!r}\n"
            + ")"
        )

        return Function(
            name=method.response_name,
            async_def=True,
            parameters=self._signature(method),
            response=f"ApiResponse[{method.return_type}]",
            docstring=self._docstring(method, arguments) + "\n\nВозвращает полный ответ: статус, заголовки, тело.",
            code=CodeBlock(code=code),
            order=order,
        )

    def _payload_method(self, method: ServiceMethod, order: int) -> Function:
        arguments = list(method.arguments) + ([method.body] if method.body else [])
        call_args = ", ".join(f"{a.name}={a.name}" for a in arguments)
        code = (
            f"response = await self.{method.response_name}({call_args})\n"
            "return response.data"
        )

        return Function(
            name=method.name,
            async_def=True,
            parameters=self._signature(method),
            response=method.return_type,
            docstring=self._docstring(method, arguments),
            code=CodeBlock(code=code),
            order=order,
        )

    # Регистрация

    def _generate_client(self):
        """client.py с ApiClient, собирающим все endpoints"""
        registration = self.render_model.registration
        client_file = self.project.add_file(f"{registration.module}.py")
        client_file.imports.extend(
            [
                "from typing import Optional",
                "",
                "from simple_singleton import Singleton",
                "",
                "from .common import AiohttpClient",
            ]
        )
        client_file.imports.extend(
            f"from .endpoints.{s.module} import {s.name}" for s in self.render_model.services
        )

        description = registration.title
        if registration.version:
            description += f" {registration.version}"
        client_class = client_file.add_class(
            "ApiClient",
            inherits=["AiohttpClient", "metaclass=Singleton"],
            docstring=description,
        )

        lines = [
            "super().__init__()",
            f"self._api_url: Optional[str] = {registration.server_url.rstrip('/')!r}"
            if registration.server_url
            else "self._api_url: Optional[str] = None",
        ]
        lines.extend(
            f"self.{s.attribute}: {s.name} = {s.name}(self)" for s in self.render_model.services
        )

        client_class.add_function(
            "__init__",
            parameters=[Parameter(name="self")],
            code=CodeBlock(code="\n".join(lines)),
        )

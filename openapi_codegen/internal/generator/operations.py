import logging
from typing import Dict, List, Optional, Tuple

from ...errors import NamingConflictError
from ..types.schema import (
    MethodParameter,
    MethodVariant,
    Operation,
    ServiceDefinition,
    SpecGraph,
)
from ..utils import clean_parameter_name, content_type_slug

logger = logging.getLogger(__name__)

BODY_PARAMETER = "request_body"


class OperationCompiler:
    """
    Компиляция операций в методы.

    Операция раскрывается в декартово произведение content-type тела запроса
    и content-type ответа. Первая пара в порядке документа сохраняет базовое
    имя, остальные получают суффикс из content-type.
    """

    def __init__(self, graph: SpecGraph):
        self.graph = graph
        # operation_id -> варианты; варианты создаются один раз на операцию
        self._variants: Dict[str, List[MethodVariant]] = {}

    def compile(
        self, tag_operations: Dict[str, List[Operation]]
    ) -> List[ServiceDefinition]:
        services = []
        for tag, operations in tag_operations.items():
            owners: Dict[str, str] = {}
            service = ServiceDefinition(tag=tag)

            for operation in operations:
                for variant in self.variants(operation):
                    for name in (variant.name, variant.response_name):
                        other = owners.get(name)
                        if other is not None and other != operation.operation_id:
                            raise NamingConflictError(
                                f"метод '{name}' получают операции '{other}' и "
                                f"'{operation.operation_id}'",
                                location=f"тег {tag}",
                            )
                        owners[name] = operation.operation_id
                    service.variants.append(variant)

            services.append(service)

        logger.debug(
            "Скомпилировано %d методов в %d сервисах",
            sum(len(s.variants) for s in services),
            len(services),
        )
        return services

    def variants(self, operation: Operation) -> List[MethodVariant]:
        cached = self._variants.get(operation.operation_id)
        if cached is not None:
            return cached

        base = self.method_name(operation)
        parameters = self._parameters(operation)
        body_types: List[Optional[str]] = list(operation.request_body) or [None]
        response_types = self._response_types(operation)

        multiple_bodies = len(body_types) > 1
        multiple_responses = len(response_types) > 1

        variants = []
        seen: Dict[str, Tuple[Optional[str], Optional[str]]] = {}
        for i, body_type in enumerate(body_types):
            for j, (response_type, response, status) in enumerate(response_types):
                name = base
                if i or j:
                    if multiple_bodies:
                        name += "_" + content_type_slug(body_type)
                    if multiple_responses:
                        name += "_" + content_type_slug(response_type)

                if name in seen:
                    raise NamingConflictError(
                        f"content-type пары {seen[name]} и "
                        f"{(body_type, response_type)} дают одно имя метода '{name}'",
                        location=operation.operation_id,
                    )
                seen[name] = (body_type, response_type)

                body = None
                if body_type is not None:
                    body = MethodParameter(
                        name=BODY_PARAMETER,
                        wire_name="body",
                        location="body",
                        schema=operation.request_body[body_type],
                        required=operation.body_required,
                    )

                variants.append(
                    MethodVariant(
                        name=name,
                        operation=operation,
                        parameters=parameters,
                        body=body,
                        request_content_type=body_type,
                        response_content_type=response_type,
                        response=response,
                        status_code=status,
                        is_default=not (i or j),
                    )
                )

        self._variants[operation.operation_id] = variants
        return variants

    @staticmethod
    def method_name(operation: Operation) -> str:
        """x-operation-name, иначе operationId, в snake_case"""
        return clean_parameter_name(operation.base_name)

    @staticmethod
    def _response_types(
        operation: Operation,
    ) -> List[Tuple[Optional[str], Optional[int], Optional[str]]]:
        """(content-type, узел, статус) по успешным ответам в порядке документа"""
        statuses = operation.success_statuses()
        result: Dict[str, Tuple[Optional[str], Optional[int], Optional[str]]] = {}
        for status in statuses:
            for content_type, node_id in operation.responses[status].items():
                # Content-type отдается первым статусом, который его объявил
                if content_type not in result:
                    result[content_type] = (content_type, node_id, status)

        if not result:
            return [(None, None, statuses[0] if statuses else None)]
        return list(result.values())

    @staticmethod
    def _parameters(operation: Operation) -> List[MethodParameter]:
        used = {BODY_PARAMETER} if operation.request_body else set()
        parameters = []

        for param in operation.parameters:
            name = clean_parameter_name(param.name)
            if name in used:
                name = f"{name}_{param.location}"
            if name in used:
                raise NamingConflictError(
                    f"параметр '{param.name}' ({param.location}) дает имя "
                    f"аргумента '{name}', которое уже занято",
                    location=operation.operation_id,
                )
            used.add(name)

            parameters.append(
                MethodParameter(
                    name=name,
                    wire_name=param.name,
                    location=param.location,
                    schema=param.schema,
                    required=param.required,
                    description=param.description,
                )
            )

        return parameters

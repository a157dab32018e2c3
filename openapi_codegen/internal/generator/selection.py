import logging
from typing import Dict, List, Optional, Set

from ...config import OpenApiConfig
from ..types.schema import Operation, SpecGraph, operation_schema_roots
from .collector import schema_closure

logger = logging.getLogger(__name__)


class SelectionEngine:
    """Фильтры тегов и операций, отсечение неиспользуемых моделей"""

    def __init__(self, graph: SpecGraph, config: OpenApiConfig):
        self.graph = graph
        self.config = config

    def select(self) -> Dict[str, List[Operation]]:
        """Тег -> оставшиеся операции в порядке документа"""
        include_tags = self._as_set(self.config.include_tags)
        exclude_tags = self._as_set(self.config.exclude_tags)
        include_operations = self._as_set(self.config.include_operations)
        exclude_operations = self._as_set(self.config.exclude_operations)

        seen_tags: Set[str] = set()
        seen_operations: Set[str] = set()
        result: Dict[str, List[Operation]] = {}

        for operation in self.graph.operations:
            seen_tags.update(operation.tags)
            seen_operations.add(operation.operation_id)

            if (
                include_operations is not None
                and operation.operation_id not in include_operations
            ):
                continue
            if exclude_operations and operation.operation_id in exclude_operations:
                continue

            tags = [
                tag
                for tag in operation.tags
                if (include_tags is None or tag in include_tags)
                and not (exclude_tags and tag in exclude_tags)
            ]
            for tag in tags:
                result.setdefault(tag, []).append(operation)

        for option, values, known in (
            ("includeTags", include_tags, seen_tags),
            ("excludeTags", exclude_tags, seen_tags),
            ("includeOperations", include_operations, seen_operations),
            ("excludeOperations", exclude_operations, seen_operations),
        ):
            for value in sorted((values or set()) - known):
                logger.warning("%s: '%s' не найден в спецификации", option, value)

        logger.debug(
            "Отобрано %d тегов, %d операций",
            len(result),
            len({op.operation_id for ops in result.values() for op in ops}),
        )
        return result

    def prune(
        self, models: List[int], tag_operations: Dict[str, List[Operation]]
    ) -> List[int]:
        """Модели, достижимые из оставшихся операций"""
        if self.config.ignore_unused_models:
            return list(models)

        roots = []
        for operations in tag_operations.values():
            for operation in operations:
                roots.extend(operation_schema_roots(operation))
        reachable = schema_closure(self.graph, roots)

        kept = [node_id for node_id in models if node_id in reachable]
        if len(kept) != len(models):
            logger.debug("Отсечено %d неиспользуемых моделей", len(models) - len(kept))
        return kept

    @staticmethod
    def _as_set(values: Optional[List[str]]) -> Optional[Set[str]]:
        return set(values) if values else None

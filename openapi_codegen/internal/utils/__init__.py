"""Утилиты для генератора"""

from .naming import (
    snake_case,
    pascal_case,
    clean_parameter_name,
    clean_enum_attribute_name,
    content_type_slug,
)

__all__ = [
    "snake_case",
    "pascal_case",
    "clean_parameter_name",
    "clean_enum_attribute_name",
    "content_type_slug",
]

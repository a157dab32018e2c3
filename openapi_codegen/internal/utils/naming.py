"""Утилиты для работы с именами моделей, методов и параметров"""

import keyword
import re

# Имена, которые нельзя давать полям pydantic моделей и аргументам
RESERVED_NAMES = {"self", "model_config", "model_fields", "print", "exec"}


def snake_case(name: str) -> str:
    """
    Преобразование в snake_case с учетом аббревиатур.

    Examples:
        >>> snake_case("HTTPValidationError")
        'http_validation_error'
        >>> snake_case("listUsers")
        'list_users'
        >>> snake_case("user-id")
        'user_id'
    """
    name = re.sub(r"[^0-9a-zA-Z_]", "_", name)

    # Шаг 1: подчеркивание перед заглавной буквой, за которой идут строчные
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    # Шаг 2: между строчной буквой/цифрой и заглавной
    s2 = re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1)
    # Шаг 3: последовательности заглавных (HTTPError -> HTTP_Error)
    s3 = re.sub("([A-Z]+)([A-Z][a-z])", r"\1_\2", s2)
    s4 = re.sub("_+", "_", s3)
    return s4.strip("_").lower()


def pascal_case(name: str) -> str:
    """
    PascalCase без спецсимволов.

    Уже корректные PascalCase имена (LoginResponse, HTTPError) не меняются.

    Examples:
        >>> pascal_case("user_status")
        'UserStatus'
        >>> pascal_case("listUsers")
        'ListUsers'
        >>> pascal_case("Pet.Kind")
        'PetKind'
    """
    if not name:
        return ""

    parts = []
    for part in re.split(r"[^a-zA-Z0-9]+", name):
        if not part:
            continue
        parts.append(part[0].upper() + part[1:])

    result = "".join(parts)
    if result and result[0].isdigit():
        result = f"Model{result}"
    return result


def clean_parameter_name(name: str) -> str:
    """Очистка имени параметра или поля для использования в Python"""
    name = snake_case(name)
    # Если имя начинается с цифры, добавляем префикс
    if name and name[0].isdigit():
        name = f"param_{name}"
    # Если имя пустое, используем fallback
    if not name:
        name = "param"

    if keyword.iskeyword(name) or name in RESERVED_NAMES:
        name = f"{name}_field"

    return name


def clean_enum_attribute_name(value: str) -> str:
    """Очистка значения enum для использования как имя атрибута Python"""
    if not value:
        return "EMPTY"

    if value.isspace():
        return "SPACE"

    # Заменяем дефисы и спецсимволы на подчеркивания
    name = "".join(c.upper() if c.isalnum() else "_" for c in value)
    name = re.sub("_+", "_", name).strip("_")

    if name and name[0].isdigit():
        name = f"VALUE_{name}"

    if not name:
        return "VALUE"

    return name


def content_type_slug(content_type: str) -> str:
    """
    Короткое имя content-type для суффикса метода.

    Examples:
        >>> content_type_slug("application/json")
        'json'
        >>> content_type_slug("multipart/form-data")
        'multipart_form_data'
        >>> content_type_slug("application/vnd.api+json")
        'vnd_api_json'
    """
    content_type = content_type.split(";")[0].strip().lower()
    if content_type.startswith("application/"):
        content_type = content_type[len("application/") :]
    slug = re.sub(r"[^a-z0-9]+", "_", content_type).strip("_")
    return slug or "any"

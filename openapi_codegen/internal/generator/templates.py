class Templates:
    """Шаблоны для генерации файлов"""

    constants = """from typing import Any


class _NotSetType:
    def __repr__(self) -> str:
        return 'NOTSET'

    def __bool__(self) -> bool:
        return False


NOTSET: Any = _NotSetType()


def is_not_set(value: Any) -> bool:
    return value is NOTSET
"""

    package_init = """from .client import ApiClient
from .common import ApiResponse, SendRequestError
from .constants import NOTSET
from .utils import RequiredParameterError

__all__ = ["ApiClient", "ApiResponse", "SendRequestError", "NOTSET", "RequiredParameterError"]
"""

    aiohttp_common = """import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout, TCPConnector

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SendRequestError(Exception):
    def __init__(self, message, path, status_code, response_data=None):
        self.message = message
        self.path = path
        self.status_code = status_code
        self.response_data = response_data
        super().__init__(f"[{status_code}] {path}: {message}")


@dataclass
class ApiResponse(Generic[T]):
    \"\"\"Полный ответ: статус, заголовки, сырое тело и декодированные данные\"\"\"

    status: int
    headers: Dict[str, str]
    raw: bytes
    data: Optional[T] = None


class ConnectionPool:
    \"\"\"Пул соединений для эффективного управления ресурсами\"\"\"

    def __init__(self, max_connections: int = 100, max_connections_per_host: int = 10):
        self.max_connections = max_connections
        self.max_connections_per_host = max_connections_per_host
        self._connector: Optional[TCPConnector] = None

    def get_connector(self) -> TCPConnector:
        if self._connector is None or self._connector.closed:
            self._connector = TCPConnector(
                limit=self.max_connections,
                limit_per_host=self.max_connections_per_host,
                ttl_dns_cache=30,
                keepalive_timeout=60,
            )
        return self._connector

    async def close(self):
        if self._connector and not self._connector.closed:
            await self._connector.close()


class AiohttpClient:
    \"\"\"HTTP клиент на базе aiohttp с connection pooling\"\"\"

    def __init__(self):
        self._session: Optional[ClientSession] = None
        self._api_url: Optional[str] = None
        self._base_headers: Dict[str, str] = {}
        self._temp_headers: Dict[str, str] = {}
        self._timeout: int = 30
        self._retries: int = 3
        self._connection_pool = ConnectionPool()
        self._session_dirty = False
        self._session_lock = asyncio.Lock()

    @property
    def headers(self) -> Dict[str, str]:
        \"\"\"Получение текущих заголовков\"\"\"
        return {**self._base_headers, **self._temp_headers}

    @headers.setter
    def headers(self, value: Dict[str, str]):
        self._base_headers = dict(value) if value else {}
        self._session_dirty = True

    def update_headers(self, **headers):
        \"\"\"Обновление заголовков\"\"\"
        self._base_headers.update(headers)
        self._session_dirty = True
        return self

    @asynccontextmanager
    async def with_headers(self, **temp_headers):
        \"\"\"Контекстный менеджер для временных заголовков\"\"\"
        old_temp = self._temp_headers.copy()
        try:
            self._temp_headers.update(temp_headers)
            self._session_dirty = True
            yield self
        finally:
            self._temp_headers = old_temp
            self._session_dirty = True

    def set_auth_token(self, token: str):
        \"\"\"Установка Bearer токена авторизации\"\"\"
        return self.update_headers(Authorization=f"Bearer {token}")

    def remove_auth(self):
        \"\"\"Удаление авторизации\"\"\"
        if "Authorization" in self._base_headers:
            del self._base_headers["Authorization"]
            self._session_dirty = True
        return self

    async def _ensure_session(self) -> ClientSession:
        async with self._session_lock:
            if (
                self._session is not None
                and not self._session.closed
                and not self._session_dirty
            ):
                return self._session

            if self._session and not self._session.closed:
                await self._session.close()

            self._session = ClientSession(
                connector=self._connection_pool.get_connector(),
                connector_owner=False,
                timeout=ClientTimeout(total=self._timeout),
                headers=self.headers,
                trust_env=True,
            )
            self._session_dirty = False

        return self._session

    @staticmethod
    def _form_data(form: Dict[str, Any]) -> aiohttp.FormData:
        form_data = aiohttp.FormData()
        for key, value in form.items():
            for item in value if isinstance(value, list) else [value]:
                if isinstance(item, bytes):
                    form_data.add_field(key, item, filename=key)
                else:
                    form_data.add_field(key, str(item))
        return form_data

    async def _send_request(
        self,
        method: str,
        path: str,
        params: Optional[List[Tuple[str, str]]] = None,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        data: Any = None,
        form: Optional[Dict[str, Any]] = None,
        content_type: Optional[str] = None,
        accept: Optional[str] = None,
    ) -> ApiResponse:
        if not self._api_url:
            raise SendRequestError("API URL is empty", path=path, status_code=400)

        url = f"{self._api_url}{path}"
        request_headers = dict(headers or {})
        if accept:
            request_headers.setdefault("Accept", accept)
        if content_type and data is not None:
            request_headers.setdefault("Content-Type", content_type)

        retries = self._retries
        session = await self._ensure_session()

        while True:
            request_kwargs: Dict[str, Any] = {
                "method": method,
                "url": url,
                "params": params,
                "headers": request_headers,
            }
            # FormData нельзя отправить повторно, собираем на каждую попытку
            if form is not None:
                request_kwargs["data"] = self._form_data(form)
            elif json_body is not None:
                request_kwargs["json"] = json_body
            elif data is not None:
                request_kwargs["data"] = data

            try:
                logger.debug("Making %s request to %s", method, url)
                async with session.request(**request_kwargs) as response:
                    raw = await response.read()
                    logger.debug("Response status: %s", response.status)
                    return ApiResponse(
                        status=response.status,
                        headers=dict(response.headers),
                        raw=raw,
                    )
            except (ClientError, asyncio.TimeoutError) as exc:
                retries -= 1
                if retries <= 0:
                    raise SendRequestError(str(exc), path=path, status_code=503) from exc
                logger.warning("Request failed (retries left: %s): %s", retries, exc)
                await asyncio.sleep(0.5)

    def initialize(
        self,
        api_url: Optional[str] = None,
        headers: Dict[str, str] = None,
        timeout: int = 30,
        retries: int = 3,
        max_connections: int = 100,
        max_connections_per_host: int = 10,
    ) -> "AiohttpClient":
        \"\"\"Инициализация клиента с настройками\"\"\"
        if api_url:
            self._api_url = str(api_url).rstrip("/")
        if headers:
            self.headers = headers

        self._timeout = int(timeout) if timeout else 30
        self._retries = int(retries) if retries else 3
        self._connection_pool = ConnectionPool(max_connections, max_connections_per_host)
        self._session_dirty = True

        return self

    async def close(self):
        \"\"\"Закрытие клиента и освобождение ресурсов\"\"\"
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()

        await self._connection_pool.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
"""

    utils = """\"\"\"
Подготовка запросов и разбор ответов для endpoints
\"\"\"

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from pydantic import BaseModel, TypeAdapter

from .common import ApiResponse, SendRequestError
from .constants import is_not_set


class RequiredParameterError(ValueError):
    \"\"\"Не передан обязательный параметр или тело запроса\"\"\"


def serialize_value(value: Any) -> Any:
    \"\"\"Рекурсивная сериализация значений для JSON\"\"\"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    else:
        return value


def serialize_query_value(value: Any) -> str:
    \"\"\"Сериализация значения query, header или cookie параметра\"\"\"
    value = serialize_value(value)
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def is_json(content_type: Optional[str]) -> bool:
    media_type = (content_type or "").split(";")[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def prepare_request(
    method: str,
    path: str,
    parameters: List[Tuple[str, str, Any, bool]],
    body: Any = None,
    body_required: bool = False,
    content_type: Optional[str] = None,
    accept: Optional[str] = None,
    has_body: bool = False,
) -> Dict[str, Any]:
    \"\"\"
    Проверка обязательных параметров и раскладка их по частям запроса.

    parameters - список (location, имя в запросе, значение, обязательный).
    Общая часть для метода с данными и метода с полным ответом.
    \"\"\"
    params: List[Tuple[str, str]] = []
    headers: Dict[str, str] = {}
    cookies: Dict[str, str] = {}

    for location, name, value, required in parameters:
        if is_not_set(value) or value is None:
            if required and (is_not_set(value) or location == "path"):
                raise RequiredParameterError(f"параметр '{name}' ({location}) обязателен")
            continue

        if location == "path":
            path = path.replace("{" + name + "}", quote(serialize_query_value(value), safe=""))
        elif location == "query":
            for item in value if isinstance(value, (list, tuple)) else [value]:
                params.append((name, serialize_query_value(item)))
        elif location == "header":
            headers[name] = serialize_query_value(value)
        elif location == "cookie":
            cookies[name] = serialize_query_value(value)

    if cookies:
        headers["Cookie"] = "; ".join(f"{name}={value}" for name, value in cookies.items())

    request: Dict[str, Any] = {
        "method": method,
        "path": path,
        "params": params or None,
        "headers": headers or None,
        "accept": accept,
    }

    if not has_body or is_not_set(body):
        if has_body and body_required:
            raise RequiredParameterError("тело запроса обязательно")
        return request

    payload = serialize_value(body)
    media_type = (content_type or "").split(";")[0].strip().lower()

    if is_json(media_type):
        request["json_body"] = payload
    elif media_type == "multipart/form-data":
        request["form"] = payload if isinstance(payload, dict) else {"file": payload}
    elif media_type == "application/x-www-form-urlencoded" and isinstance(payload, dict):
        request["data"] = payload
    else:
        request["data"] = (
            payload if isinstance(payload, (bytes, str)) else json.dumps(payload)
        )
        request["content_type"] = content_type

    return request


def decode_response(
    response: ApiResponse,
    path: str,
    response_type: Any = None,
    content_type: Optional[str] = None,
) -> ApiResponse:
    \"\"\"Проверка статуса и декодирование тела ответа в response_type\"\"\"
    if response.status >= 400:
        raise SendRequestError(
            response.raw.decode(errors="replace"),
            path=path,
            status_code=response.status,
            response_data=response.raw,
        )

    if response_type is None or not response.raw:
        return response

    if not content_type or "*" in content_type:
        content_type = response.headers.get("Content-Type", "")

    if response_type is bytes:
        response.data = response.raw
    elif is_json(content_type):
        response.data = TypeAdapter(response_type).validate_python(json.loads(response.raw))
    elif response_type is str:
        response.data = response.raw.decode()
    else:
        response.data = TypeAdapter(response_type).validate_python(response.raw.decode())

    return response
"""


templates = Templates()

from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base class of all HTTP backed clients (vector store, embedding, LLM).

    Engine specific settings are read as <TYPE>_<ENGINE>_<KEY>, e.g.
    RAG_QDRANT_BASE_URL. Every request carries <TYPE>_TIMEOUT (default 30 s).
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Read every required key once so a missing setting fails at startup.

        Raises:
            ValueError: If a required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Returns the type of the client, e.g. "rag", "embed" or "llm"."""
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Returns the name of the engine, e.g. "Qdrant"."""
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Returns the engine specific keys this client reads."""
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read an engine specific configuration value.

        Args:
            raw_key (str): Key without prefix, e.g. "BASE_URL".
            default (Any): Fallback if unset. None makes the key required.
            val_type (str): "string", "number" or "bool".
        """
        key = f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{key}'.")
        return readers[val_type](key, default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Returns the headers authenticating against the backend, {} if none."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """Returns the base URL of the backend, e.g. "http://localhost:6333"."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """Returns the path answering health checks, e.g. "/healthz"."""
        pass

    ##########################################
    ############## REQUESTS ##################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP client.

        Args:
            transport (httpx.AsyncBaseTransport | None): Replaces the network
                transport, e.g. with an httpx.MockTransport.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_url(self, endpoint: str) -> str:
        path = endpoint.strip().lstrip("/")
        return self._get_base_url().rstrip("/") + (f"/{path}" if path else "")

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send a request to the backend.

        Exactly one of content and json is sent as body. A raw content body
        needs its Content-Type in additional_headers.

        Args:
            method: HTTP method.
            content: Raw body.
            json: JSON body.
            params: URL query parameters.
            endpoint: Path relative to the base URL.
            additional_headers: Headers overriding the auth header.
            raise_on_error: Raise on a status >= 300 instead of returning the response.

        Returns:
            The httpx.Response.

        Raises:
            Exception: If the client was not booted, or on an error status
                when raise_on_error is set.
            httpx.HTTPError: On transport failures and timeouts.
        """
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")

        url = self._build_url(endpoint)
        headers = {**self._get_auth_header(), **(additional_headers or {})}
        body: dict = {"content": content} if content is not None else {"json": json} if json is not None else {}

        response = await self._client.request(
            method, url, headers=headers, params=params, timeout=self.timeout, **body
        )
        if raise_on_error and response.status_code >= 300:
            self.logging.error("Request to %s failed with status %d: %s", url, response.status_code, response.text[:500])
            raise Exception(f"Request to {url} failed with status {response.status_code}")
        return response

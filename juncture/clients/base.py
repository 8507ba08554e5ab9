"""Shared transport plumbing and error normalization for the Juncture clients."""

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from juncture.exceptions import JunctureConfigurationError, JunctureRequestError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
ConfigT = TypeVar("ConfigT", bound=BaseModel)


def _error_payload(response: httpx.Response | None) -> dict:
    if response is None:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def normalize_error(exc: httpx.HTTPError, default_message: str) -> JunctureRequestError:
    """Turn an httpx failure into a single :class:`JunctureRequestError`.

    The message is the ``error`` string from the Juncture error body when there
    is one, otherwise the transport's own message, otherwise ``default_message``.
    Any ``details`` from the error body are appended after a colon.
    """
    response = exc.response if isinstance(exc, httpx.HTTPStatusError) else None
    payload = _error_payload(response)
    message = payload.get("error") or str(exc) or default_message
    details = payload.get("details")
    if details:
        message = f"{message}: {details}"
    return JunctureRequestError(
        str(message),
        status_code=response.status_code if response is not None else None,
        payload=payload,
    )


def _compact(values: Mapping[str, Any] | None) -> dict[str, Any] | None:
    # Optional arguments the caller left unset are not sent at all
    if values is None:
        return None
    return {k: v for k, v in values.items() if v is not None}


def load_config(model: type[ConfigT], config: ConfigT | Mapping[str, Any]) -> ConfigT:
    if isinstance(config, model):
        return config
    try:
        return model.model_validate(config)
    except ValidationError as exc:
        raise JunctureConfigurationError(f"Invalid Juncture configuration: {exc}") from exc


class JunctureClient:
    """Owns one ``httpx.Client`` scoped to the Juncture base URL.

    Headers are fixed when the client is built, so several clients with different
    keys can live in the same process.
    """

    def __init__(self, config: BaseModel, base_url: str, headers: Mapping[str, str]) -> None:
        self._config = config
        self._http = httpx.Client(
            base_url=base_url,
            headers={"Content-Type": "application/json", **headers},
        )

    def get_config(self) -> Any:
        """Return a copy of the configuration this client was built with."""
        return self._config.model_copy(deep=True)

    def get_http_transport(self) -> httpx.Client:
        """Return the underlying ``httpx.Client`` for raw requests."""
        return self._http

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        default_message: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Mapping[str, Any] | None = None,
    ) -> Any:
        logger.debug("Juncture %s %s", method, path)
        try:
            response = self._http.request(method, path, params=_compact(params), json=_compact(json))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("Juncture %s %s failed: %s", method, path, exc)
            raise normalize_error(exc, default_message) from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise JunctureRequestError(
                f"{default_message}: response was not valid JSON",
                status_code=response.status_code,
            ) from exc

    def _fetch(
        self,
        model: type[ModelT],
        method: str,
        path: str,
        default_message: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Mapping[str, Any] | None = None,
    ) -> ModelT:
        data = self._request(method, path, default_message, params=params, json=json)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.debug("Juncture %s %s returned an unexpected body: %s", method, path, exc)
            raise JunctureRequestError(f"{default_message}: unexpected response from {path}") from exc

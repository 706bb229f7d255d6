"""Thin REST client for a path-addressed realtime document store."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from errors import RemoteError

logger = logging.getLogger(__name__)

SERVER_TIMESTAMP = {".sv": "timestamp"}


class RealtimeDatabase:
    def __init__(
        self,
        base_url: str,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.strip('/')}.json"

    def _request(
        self,
        method: str,
        path: str,
        value: Any = None,
        id_token: Optional[str] = None,
    ) -> Any:
        params: Dict[str, str] = {}
        if id_token:
            params["auth"] = id_token
        try:
            resp = self.http.request(
                method,
                self._url(path),
                params=params,
                json=value,
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise RemoteError(f"Database request failed ({method} {path}).") from exc
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            logger.error("%s %s returned a non-JSON body", method, path)
            raise RemoteError(f"Database returned an unreadable response ({method} {path}).") from exc

    def get(self, path: str, id_token: Optional[str] = None) -> Any:
        # absent paths come back as JSON null
        return self._request("GET", path, id_token=id_token)

    def push(self, path: str, value: Dict[str, Any], id_token: Optional[str] = None) -> str:
        result = self._request("POST", path, value, id_token=id_token)
        if not isinstance(result, dict) or "name" not in result:
            raise RemoteError(f"Database did not return a key for {path}.")
        return result["name"]

    def set(self, path: str, value: Any, id_token: Optional[str] = None) -> None:
        self._request("PUT", path, value, id_token=id_token)

    def update(self, path: str, value: Dict[str, Any], id_token: Optional[str] = None) -> None:
        self._request("PATCH", path, value, id_token=id_token)

    def delete(self, path: str, id_token: Optional[str] = None) -> None:
        self._request("DELETE", path, id_token=id_token)

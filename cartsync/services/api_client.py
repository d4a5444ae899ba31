# cartsync/services/api_client.py
from typing import Any

import requests

from cartsync.domain.errors import NetworkFailure, ServiceError
from cartsync.utils.logging import get_logger
from cartsync.utils.retry import http_retry
from cartsync.utils.settings import HTTP_TIMEOUT_SECONDS, STORE_API_URL

logger = get_logger(__name__)


def _json_or_none(resp: requests.Response) -> Any:
    if resp.status_code == 204 or not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


class StoreApiClient:
    """
    Cienki klient REST API sklepu.
    - retry (tenacity) tylko na bledy transportu
    - 4xx/5xx -> ServiceError, brak polaczenia -> NetworkFailure
    - token Bearer brany z AuthSession przy kazdym zapytaniu
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        auth=None,
    ):
        self.base_url = (base_url or STORE_API_URL).rstrip("/")
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.auth = auth

    def _headers(self) -> dict:
        token = getattr(self.auth, "token", None)
        return {"Authorization": f"Bearer {token}"} if token else {}

    @http_retry()
    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"{type(self).__name__} {method} {url}")
        return self.session.request(
            method,
            url,
            headers=self._headers(),
            timeout=self.timeout,
            **kwargs,
        )

    def request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = self._send(method, path, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise NetworkFailure(f"Could not reach the store service ({method} {path})") from e

        payload = _json_or_none(resp)
        if resp.status_code >= 400:
            raise ServiceError(resp.status_code, payload)
        return payload

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> Any:
        return self.request("POST", path, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request("DELETE", path, **kwargs)

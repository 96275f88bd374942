"""HTTP client for the Qdrant REST API"""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from qdtk import __version__
from qdtk.errors import AuthenticationError, RequestError, TransportError

logger = logging.getLogger(__name__)


class QdrantClient:
    """Issues single request/response exchanges against a Qdrant server.

    Each call goes through a fresh connection (no session, no keep-alive),
    so no connection state is ever shared between requests. Failures are
    translated into the qdtk error types; nothing is retried here.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        verify_tls: bool = True,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.verify_tls = verify_tls

        self.headers = {
            "User-Agent": f"qdtk/{__version__}",
            "Accept": "application/json",
            "Connection": "close",
        }
        if api_key:
            self.headers["api-key"] = api_key

    def execute(self, method: str, path: str, body: Optional[Dict] = None) -> Dict:
        """Send one request and return the decoded JSON response"""
        url = f"{self.base_url}{path}"
        headers = dict(self.headers)
        data = None
        if body is not None:
            data = json.dumps(body)
            headers["Content-Type"] = "application/json"

        logger.debug("%s %s %s", method, url, data or "")

        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                data=data,
                timeout=self.timeout,
                verify=self.verify_tls,
                allow_redirects=False,
            )
        except requests.exceptions.Timeout as e:
            raise TransportError(f"timeout: {e}", timeout=True) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(str(e)) from e

        logger.debug("%s %s -> %d", method, url, response.status_code)

        if response.status_code in (401, 403):
            raise AuthenticationError(response.status_code)

        if response.status_code >= 400:
            raise RequestError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise RequestError(
                response.status_code,
                response.text,
                f"invalid JSON in response from {path}: {e}",
            ) from e

    def list_collections(self) -> List[str]:
        """Names of all collections, in server listing order"""
        result = self.execute("GET", "/collections").get("result") or {}
        return [c["name"] for c in result.get("collections", [])]

    def collection_info(self, collection: str) -> Dict:
        return self.execute("GET", f"/collections/{collection}").get("result") or {}

    def scroll(
        self,
        collection: str,
        limit: int,
        with_payload: bool = True,
        with_vector: bool = False,
        offset: Any = None,
    ) -> Dict:
        """Fetch one page of points.

        ``offset`` is the server's continuation cursor, passed back untouched.
        """
        body = {
            "limit": limit,
            "with_payload": with_payload,
            "with_vector": with_vector,
        }
        if offset is not None:
            body["offset"] = offset

        response = self.execute(
            "POST", f"/collections/{collection}/points/scroll", body
        )
        return response.get("result") or {}

    def telemetry(self) -> Dict:
        return self.execute("GET", "/telemetry").get("result") or {}

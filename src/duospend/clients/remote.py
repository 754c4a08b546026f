"""HTTP client for the spreadsheet-backed remote store."""

import json
import logging
from typing import Any

import httpx

from ..exceptions import MalformedResponseError, SyncTransportError

logger = logging.getLogger(__name__)


class RemoteStoreClient:
    """Client for a remote store endpoint fulfilling the sync wire contract."""

    # Script endpoints reject CORS preflight requests
    CONTENT_TYPE = "text/plain;charset=utf-8"

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the remote store client."""
        self.url = url
        self.client = httpx.Client(
            timeout=timeout,
            # Script deployments answer through a redirect
            follow_redirects=True,
            transport=transport,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def post(self, body: dict[str, Any]) -> Any:
        """
        POST a JSON body and return the decoded JSON response.

        Args:
            body: Request body (see ``duospend.wire``)

        Returns:
            Decoded response body

        Raises:
            SyncTransportError: On network errors, timeouts or non-2xx status
            MalformedResponseError: If the response is not JSON
        """
        payload = json.dumps(body)
        logger.debug(
            f"POST {self.url} with {len(body.get('transactions', []))} transactions"
        )
        try:
            response = self.client.post(
                self.url,
                content=payload,
                headers={"Content-Type": self.CONTENT_TYPE},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Remote store error: {e}")
            logger.error(f"Response body: {e.response.text}")
            raise SyncTransportError(
                f"Remote store answered HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error talking to remote store: {e}")
            raise SyncTransportError(f"Could not reach remote store: {e}") from e

        return self._decode(response)

    def get(self) -> Any:
        """
        GET the remote snapshot and return the decoded JSON response.

        Raises:
            SyncTransportError: On network errors, timeouts or non-2xx status
            MalformedResponseError: If the response is not JSON
        """
        logger.debug(f"GET {self.url}")
        try:
            response = self.client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Remote store error: {e}")
            raise SyncTransportError(
                f"Remote store answered HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error talking to remote store: {e}")
            raise SyncTransportError(f"Could not reach remote store: {e}") from e

        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Remote store sent non-JSON body: {response.text[:200]!r}")
            raise MalformedResponseError("Remote store response is not JSON") from e

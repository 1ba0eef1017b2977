# src/core/sync/client.py
"""Remote blob client for the single-document command backup.

RemoteBlobClient is the capability the reconciliation engine depends on.
GistClient implements it against the GitHub Gist REST API: the whole
collection is one file inside one private gist. No call is retried here;
transport failures and timeouts surface as NetworkFailure and HTTP errors
are mapped onto the sync error taxonomy.
"""

import logging
from datetime import datetime
from typing import Any, Protocol

import httpx

from src.core.commands.models import parse_timestamp
from src.core.errors import (
    AuthFailure,
    NetworkFailure,
    NotFoundError,
    ParseFailure,
    RemoteRejected,
    SyncError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_FILENAME = "commands.json"
DEFAULT_DESCRIPTION = "SniptNote Commands Backup"


class RemoteBlobClient(Protocol):
    """Protocol for the remote single-document store.

    Every method is an independent network call. The credential is passed
    per call so the client holds no sync state.
    """

    async def create_document(self, token: str, content: str) -> str:
        """Create the remote document and return its id."""
        ...

    async def update_document(self, token: str, document_id: str, content: str) -> None:
        """Replace the content of an existing document."""
        ...

    async def get_document(self, token: str, document_id: str) -> str:
        """Return the stored content of the document."""
        ...

    async def get_last_modified(self, token: str, document_id: str) -> datetime:
        """Return when the document was last modified remotely."""
        ...

    async def check_exists(self, token: str, document_id: str) -> bool:
        """Check the document is reachable. Never raises."""
        ...

    async def validate_credential(self, token: str) -> str | None:
        """Return the account identity for the token, or None if unusable."""
        ...


class GistClient:
    """GitHub Gist implementation of RemoteBlobClient.

    Attributes:
        api_base: Base URL of the GitHub REST API.
        filename: Name of the file holding the collection inside the gist.
        description: Gist description used on create and update.
        timeout: Per-request timeout in seconds.

    Example:
        >>> client = GistClient()
        >>> gist_id = await client.create_document(token, "[]")
        >>> content = await client.get_document(token, gist_id)
    """

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        filename: str = DEFAULT_FILENAME,
        description: str = DEFAULT_DESCRIPTION,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_base: Base URL of the GitHub REST API.
            filename: File name inside the gist.
            description: Gist description.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.api_base = api_base.rstrip("/")
        self.filename = filename
        self.description = description
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github.v3+json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        payload: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one request, mapping transport errors to NetworkFailure."""
        url = f"{self.api_base}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                return await client.request(method, url, headers=self._headers(token), json=payload)
        except httpx.TimeoutException as e:
            raise NetworkFailure(f"Request to {path} timed out") from e
        except httpx.TransportError as e:
            raise NetworkFailure(f"Request to {path} failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ParseFailure("Remote response is not valid JSON") from e

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        """Translate an error response into the sync error taxonomy."""
        if response.is_success:
            return

        message = response.reason_phrase
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("message"):
                message = body["message"]
        except ValueError:
            pass

        detail = f"Failed to {action}: {message}"
        if response.status_code in (401, 403):
            raise AuthFailure(detail)
        if response.status_code == 404:
            raise NotFoundError(detail)
        raise RemoteRejected(detail, status_code=response.status_code)

    def _files_payload(self, content: str) -> dict[str, Any]:
        return {self.filename: {"content": content}}

    async def create_document(self, token: str, content: str) -> str:
        response = await self._request(
            "POST",
            "/gists",
            token,
            {
                "description": self.description,
                "public": False,
                "files": self._files_payload(content),
            },
        )
        self._raise_for_status(response, "create Gist")
        gist = self._json(response)
        if not isinstance(gist, dict) or not gist.get("id"):
            raise ParseFailure("Create Gist response has no id")
        logger.info("Created Gist %s", gist["id"])
        return str(gist["id"])

    async def update_document(self, token: str, document_id: str, content: str) -> None:
        response = await self._request(
            "PATCH",
            f"/gists/{document_id}",
            token,
            {
                "description": self.description,
                "files": self._files_payload(content),
            },
        )
        self._raise_for_status(response, "update Gist")
        logger.debug("Updated Gist %s", document_id)

    async def _get_gist(self, token: str, document_id: str) -> dict[str, Any]:
        response = await self._request("GET", f"/gists/{document_id}", token)
        self._raise_for_status(response, "get Gist")
        gist = self._json(response)
        if not isinstance(gist, dict):
            raise ParseFailure("Gist response is not an object")
        return gist

    async def get_document(self, token: str, document_id: str) -> str:
        """Fetch the collection file content.

        Raises:
            NotFoundError: If the gist or the collection file is missing.
        """
        gist = await self._get_gist(token, document_id)
        file = (gist.get("files") or {}).get(self.filename)
        if not file:
            raise NotFoundError(f"File {self.filename} not found in Gist")
        content = file.get("content")
        if not isinstance(content, str):
            raise ParseFailure(f"File {self.filename} has no content")
        return content

    async def get_last_modified(self, token: str, document_id: str) -> datetime:
        gist = await self._get_gist(token, document_id)
        try:
            return parse_timestamp(gist.get("updated_at"))
        except ValueError as e:
            raise ParseFailure(f"Gist has an invalid updated_at: {e}") from e

    async def check_exists(self, token: str, document_id: str) -> bool:
        try:
            response = await self._request("GET", f"/gists/{document_id}", token)
        except SyncError as e:
            logger.debug("Gist existence check failed: %s", e)
            return False
        return response.is_success

    async def validate_credential(self, token: str) -> str | None:
        """Look up the account behind a token.

        Returns:
            The account login, or None on any auth or transport failure.
        """
        if not token:
            return None
        try:
            response = await self._request("GET", "/user", token)
            if not response.is_success:
                return None
            user = self._json(response)
        except (SyncError, ParseFailure) as e:
            logger.debug("Token validation failed: %s", e)
            return None
        if not isinstance(user, dict) or not user.get("login"):
            return None
        return str(user["login"])

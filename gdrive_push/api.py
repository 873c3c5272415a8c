"""API client for Google Drive (REST v3)."""

from __future__ import annotations

import logging
import random
import threading
import time
from pathlib import Path
from typing import Any, BinaryIO

import httpx

from .config import config
from .exceptions import (
    GDriveAPIError,
    GDriveAuthenticationError,
    GDriveConfigError,
    GDriveInvalidResponseError,
    GDriveNetworkError,
    GDriveNotFoundError,
    GDrivePermissionError,
    GDriveRateLimitError,
    GDriveUploadError,
    UploadCancelledError,
)
from .utils import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    FOLDER_MIME_TYPE,
)

logger = logging.getLogger(__name__)

# Longest pause between two upload attempts
MAX_UPLOAD_BACKOFF: float = 64.0

# Drive answers "308 Resume Incomplete" while a resumable upload is open
RESUME_INCOMPLETE = 308


class DriveClient:
    """Client for the parts of the Google Drive API that gdrive-push uses."""

    def __init__(
        self,
        access_token: str | None = None,
        api_url: str | None = None,
        upload_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the Drive API client.

        Args:
            access_token: OAuth access token (uses config if not provided)
            api_url: Metadata API base URL (uses config if not provided)
            upload_url: Media upload API base URL (uses config if not provided)
            max_retries: Maximum number of retry attempts for metadata calls
            retry_delay: Initial delay between retries in seconds
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.access_token = access_token or config.access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.upload_url = (upload_url or config.upload_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        if not self.access_token:
            raise GDriveConfigError(
                "Access token not configured. "
                "Please set GDRIVE_ACCESS_TOKEN environment variable."
            )

        self._client: httpx.Client | None = None

    def __enter__(self) -> DriveClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff with +/- 25% jitter.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = min(
            self.retry_delay * (2 ** min(attempt, 16)), MAX_UPLOAD_BACKOFF
        )
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _error_message(response: httpx.Response) -> str | None:
        """Pull the human-readable message out of a Drive error body."""
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        error = data.get("error")
        if isinstance(error, dict):
            return error.get("message")
        if isinstance(error, str):
            return data.get("error_description") or error
        return data.get("message")

    def _map_status_error(self, response: httpx.Response) -> GDriveAPIError:
        """Translate an HTTP error response into our exception hierarchy."""
        status_code = response.status_code
        detail = self._error_message(response)
        suffix = f": {detail}" if detail else ""

        if status_code == 401:
            return GDriveAuthenticationError(
                f"Invalid or expired access token{suffix}", status_code
            )
        if status_code == 403:
            return GDrivePermissionError(
                f"Access forbidden - check your permissions{suffix}", status_code
            )
        if status_code == 404:
            return GDriveNotFoundError(f"Resource not found{suffix}", status_code)
        if status_code == 429:
            return GDriveRateLimitError(
                "Rate limit exceeded - please try again later", status_code
            )

        return GDriveAPIError(
            f"API request failed with status {status_code}{suffix}", status_code
        )

    @staticmethod
    def _is_transient(status_code: int) -> bool:
        return status_code == 429 or 500 <= status_code < 600

    def _request(
        self, method: str, url: str, retry: bool = True, **kwargs: Any
    ) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            url: Absolute URL or path relative to the metadata API
            retry: Retry network errors, 429 and 5xx. Mutating calls pass
                False so a write is never sent twice
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            GDriveAPIError: If the request fails after all retries
        """
        if not url.startswith(("http://", "https://")):
            url = f"{self.api_url}/{url.lstrip('/')}"
        client = self._get_client()
        last_exception: GDriveAPIError | None = None
        max_retries = self.max_retries if retry else 0

        for attempt in range(max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                last_exception = GDriveNetworkError(f"Network error: {e}")
                if attempt < max_retries:
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise last_exception from e

            if response.is_error:
                error = self._map_status_error(response)
                last_exception = error
                if self._is_transient(response.status_code) and (
                    attempt < max_retries
                ):
                    retry_after = response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        f"{method} {url} -> {response.status_code}, "
                        f"retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    continue
                raise error

            return self._parse_json(response)

        # If we get here, we've exhausted all retries
        if last_exception:
            raise last_exception
        raise GDriveAPIError("Request failed after all retry attempts")

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise GDriveInvalidResponseError(
                f"Unexpected response type: {content_type}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise GDriveInvalidResponseError("Invalid JSON response from server") from e

    @staticmethod
    def _require_id(data: Any, what: str) -> str:
        entry_id = data.get("id") if isinstance(data, dict) else None
        if not entry_id:
            raise GDriveInvalidResponseError(f"{what} response is missing the 'id'")
        return str(entry_id)

    # =========================
    # Listing
    # =========================

    def list_folder(self, folder_id: str, page_size: int = 1000) -> list[dict]:
        """List all non-trashed files and folders directly under a folder.

        Follows ``nextPageToken`` until every page has been fetched.

        Args:
            folder_id: Drive folder ID
            page_size: Number of entries per page

        Returns:
            List of file metadata dicts (id, name, mimeType, size)
        """
        logger.debug(f"list_folder({folder_id})")
        items: list[dict] = []
        page_token: str | None = None

        while True:
            params: dict[str, Any] = {
                "q": f"'{folder_id}' in parents and trashed = false",
                "fields": "nextPageToken, files(id, name, mimeType, size)",
                "pageSize": page_size,
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token

            data = self._request("GET", "files", params=params)
            items.extend(data.get("files", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return items

    # =========================
    # Folder / parent operations
    # =========================

    def create_folder(self, name: str, parent_id: str) -> str:
        """Create a new folder.

        Args:
            name: Name of the new folder
            parent_id: ID of the parent folder

        Returns:
            ID of the created folder
        """
        logger.debug(f"create_folder({name}, {parent_id})")
        data = self._request(
            "POST",
            "files",
            params={"fields": "id", "supportsAllDrives": "true"},
            json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
            retry=False,
        )
        return self._require_id(data, "Create folder")

    def add_parent(self, file_id: str, parent_id: str) -> Any:
        """Link a file under an additional parent folder."""
        logger.debug(f"add_parent({file_id}, {parent_id})")
        return self._request(
            "PATCH",
            f"files/{file_id}",
            params={
                "addParents": parent_id,
                "fields": "id, parents",
                "supportsAllDrives": "true",
            },
            json={},
            retry=False,
        )

    def remove_parent(self, file_id: str, parent_id: str) -> Any:
        """Unlink a file from one of its parent folders."""
        logger.debug(f"remove_parent({file_id}, {parent_id})")
        return self._request(
            "PATCH",
            f"files/{file_id}",
            params={
                "removeParents": parent_id,
                "fields": "id, parents",
                "supportsAllDrives": "true",
            },
            json={},
            retry=False,
        )

    # =========================
    # Upload
    # =========================

    def upload_file(
        self,
        file_path: Path,
        name: str,
        parent_id: str,
        mime_type: str,
        cancel: threading.Event | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> str:
        """Upload a file with the resumable upload protocol.

        Transient failures (network errors, 429, 5xx) are retried with
        exponential backoff, resuming from the last byte the server
        acknowledged, for as long as ``cancel`` is not set.

        Args:
            file_path: Local path to the file
            name: Name of the new Drive file
            parent_id: ID of the folder to upload into
            mime_type: Content type of the file
            cancel: Event that stops the retry loop once set
            chunk_size: Bytes sent per request

        Returns:
            ID of the created file

        Raises:
            UploadCancelledError: If ``cancel`` fires before the upload succeeds
            GDriveUploadError: On non-transient upload failures
        """
        logger.debug(f"upload_file({file_path}, {parent_id})")
        if cancel is None:
            cancel = threading.Event()

        try:
            file_size = file_path.stat().st_size
            fh = open(file_path, "rb")
        except OSError as e:
            raise GDriveUploadError(f"Cannot read {file_path}: {e}") from e

        with fh:
            session_url: str | None = None
            last_error: GDriveAPIError | None = None
            attempt = 0
            while True:
                if cancel.is_set():
                    raise UploadCancelledError(f"Upload of {name!r} cancelled")
                try:
                    if session_url is None:
                        session_url = self._start_upload_session(
                            name, parent_id, mime_type, file_size
                        )
                        offset = 0
                    else:
                        offset, finished = self._upload_status(session_url, file_size)
                        if finished is not None:
                            return self._require_id(finished, "Upload")
                    result = self._send_chunks(
                        session_url, fh, offset, file_size, chunk_size
                    )
                    return self._require_id(result, "Upload")
                except GDriveNotFoundError:
                    if session_url is None:
                        raise
                    # Expired upload session: start over with a new one
                    logger.debug(f"Upload session for {name!r} expired, restarting")
                    session_url = None
                    last_error = GDriveUploadError("upload session expired")
                except GDriveNetworkError as e:
                    last_error = e
                except GDriveAPIError as e:
                    if e.status_code is None or not self._is_transient(e.status_code):
                        raise
                    last_error = e

                delay = self._calculate_retry_delay(attempt)
                attempt += 1
                logger.debug(
                    f"Upload of {name!r} failed ({last_error}), "
                    f"retry #{attempt} in {delay:.1f}s"
                )
                if cancel.wait(delay):
                    raise UploadCancelledError(
                        f"Upload of {name!r} cancelled after {attempt} "
                        f"attempt(s): {last_error}"
                    ) from last_error

    def _upload_call(
        self, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        """Single upload request; 308 is returned, other errors raised."""
        try:
            response = self._get_client().request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise GDriveNetworkError(f"Network error: {e}") from e

        if response.status_code == RESUME_INCOMPLETE or not response.is_error:
            return response

        raise self._map_status_error(response)

    def _start_upload_session(
        self, name: str, parent_id: str, mime_type: str, file_size: int
    ) -> str:
        response = self._upload_call(
            "POST",
            f"{self.upload_url}/files",
            params={
                "uploadType": "resumable",
                "fields": "id",
                "supportsAllDrives": "true",
            },
            headers={
                "X-Upload-Content-Type": mime_type,
                "X-Upload-Content-Length": str(file_size),
            },
            json={"name": name, "mimeType": mime_type, "parents": [parent_id]},
        )
        location = response.headers.get("Location")
        if not location:
            raise GDriveInvalidResponseError(
                "Resumable upload session response has no Location header"
            )
        return location

    @staticmethod
    def _next_offset(response: httpx.Response) -> int:
        # Range: bytes=0-<last byte received>
        received = response.headers.get("Range")
        if not received or "-" not in received:
            return 0
        return int(received.rsplit("-", 1)[1]) + 1

    def _upload_status(
        self, session_url: str, file_size: int
    ) -> tuple[int, dict | None]:
        """Ask the server how much of an interrupted upload it has."""
        response = self._upload_call(
            "PUT",
            session_url,
            headers={"Content-Range": f"bytes */{file_size}"},
            content=b"",
        )
        if response.status_code == RESUME_INCOMPLETE:
            return self._next_offset(response), None
        return file_size, self._parse_json(response)

    def _send_chunks(
        self,
        session_url: str,
        fh: BinaryIO,
        offset: int,
        file_size: int,
        chunk_size: int,
    ) -> Any:
        if file_size == 0:
            response = self._upload_call(
                "PUT",
                session_url,
                headers={"Content-Range": "bytes */0"},
                content=b"",
            )
            return self._parse_json(response)

        while True:
            fh.seek(offset)
            data = fh.read(chunk_size)
            if not data:
                raise GDriveUploadError(
                    f"Local file shrank during upload (at byte {offset} of {file_size})"
                )
            end = offset + len(data) - 1
            response = self._upload_call(
                "PUT",
                session_url,
                headers={"Content-Range": f"bytes {offset}-{end}/{file_size}"},
                content=data,
            )
            if response.status_code != RESUME_INCOMPLETE:
                return self._parse_json(response)
            offset = self._next_offset(response)

"""Tracker JSON API client."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from redcoder.exceptions import AuthenticationError, TrackerAPIError
from redcoder.models.release import UploadData
from redcoder.models.tracker import (
    ApiEnvelope,
    IndexInfo,
    TorrentGroup,
    UploadResult,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "redcoder"

# The tracker allows 10 API calls per 10 seconds per key.
RATE_LIMIT_CALLS = 10
RATE_LIMIT_PERIOD = 10.0


class TrackerProtocol(Protocol):
    """Protocol for tracker API clients.

    Enables dependency injection and testing.
    """

    def index(self) -> IndexInfo:
        """Fetch the account of the API key."""
        ...

    def get_torrent_group(self, group_id: int) -> TorrentGroup:
        """Fetch a torrent group and all its torrents."""
        ...

    def download_torrent(self, torrent_id: int) -> bytes:
        """Download the .torrent file of a torrent."""
        ...

    def upload_torrent(self, data: UploadData) -> int:
        """Upload a new torrent and return its id."""
        ...


class RateLimiter:
    """Sliding-window limiter: at most ``calls`` acquisitions per ``period``.

    Thread-safe; callers block until a slot frees up.
    """

    def __init__(
        self,
        calls: int = RATE_LIMIT_CALLS,
        period: float = RATE_LIMIT_PERIOD,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._calls = calls
        self._period = period
        self._clock = clock
        self._sleep = sleep
        self._stamps: deque[float] = deque()
        self._lock = threading.Lock()

    def acquire(self) -> None:
        with self._lock:
            now = self._clock()
            while self._stamps and now - self._stamps[0] >= self._period:
                self._stamps.popleft()
            if len(self._stamps) >= self._calls:
                wait = self._period - (now - self._stamps[0])
                logger.debug("Rate limit reached, waiting %.2fs", wait)
                self._sleep(wait)
                self._stamps.popleft()
                now = self._clock()
            self._stamps.append(now)


class TrackerClient:
    """HTTP client for the tracker's ``ajax.php`` API.

    Created once at startup and passed down to every service that needs it.
    The underlying ``httpx.Client`` is opened lazily and released by
    :meth:`close` (or by leaving the ``with`` block).

    Example:
        >>> with TrackerClient(api_key, "https://redacted.sh") as client:
        ...     group = client.get_torrent_group(123)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Tracker API key, sent as the Authorization header.
            base_url: Tracker root URL, e.g. ``https://redacted.sh``.
            timeout: Request timeout in seconds.
            rate_limiter: Optional limiter (creates the default if omitted).
            transport: Optional httpx transport, used by tests.
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._limiter = rate_limiter or RateLimiter()
        self._transport = transport
        self._client: httpx.Client | None = None

    def __enter__(self) -> TrackerClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers(),
                transport=self._transport,
            )
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": self._api_key,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    # ============================================================================
    # PUBLIC API
    # ============================================================================

    def index(self) -> IndexInfo:
        """Fetch username and passkey of the API key's account.

        Raises:
            AuthenticationError: If the key is rejected.
            TrackerAPIError: If the request fails.
        """
        return self._call("index", IndexInfo)

    def get_torrent_group(self, group_id: int) -> TorrentGroup:
        """Fetch a torrent group with all its torrents.

        Raises:
            TrackerAPIError: If the request fails or the group is unknown.
        """
        logger.debug("Fetching torrent group %d", group_id)
        return self._call("torrentgroup", TorrentGroup, params={"id": group_id})

    def download_torrent(self, torrent_id: int) -> bytes:
        """Download the raw .torrent file of ``torrent_id``.

        The endpoint answers with the file itself on success and a JSON
        envelope on failure.

        Raises:
            TrackerAPIError: If the download fails.
        """
        logger.debug("Downloading torrent %d", torrent_id)
        response = self._request("GET", "download", params={"id": torrent_id})
        content_type = response.headers.get("content-type", "")
        if "json" in content_type or response.status_code >= 400:
            envelope = self._parse_envelope(response)
            raise TrackerAPIError(
                f"Could not download torrent {torrent_id}: "
                f"{envelope.error or 'unexpected JSON response'}"
            )
        return response.content

    def upload_torrent(self, data: UploadData) -> int:
        """Upload a torrent with its release metadata.

        Returns:
            Id of the newly created torrent.

        Raises:
            TrackerAPIError: If the upload is rejected.
        """
        files = {
            "file_input": (data.torrent_name, data.torrent, "application/x-bittorrent")
        }
        result = self._call(
            "upload",
            UploadResult,
            method="POST",
            data=data.form_fields(),
            files=files,
        )
        logger.info("Uploaded torrent %d", result.torrent_id)
        return result.torrent_id

    # ============================================================================
    # REQUEST HANDLING
    # ============================================================================

    def _request(
        self, method: str, action: str, **kwargs: Any
    ) -> httpx.Response:
        params = {"action": action, **kwargs.pop("params", {})}
        self._limiter.acquire()
        client = self._get_client()
        try:
            response = client.request(method, "/ajax.php", params=params, **kwargs)
        except httpx.TimeoutException as e:
            raise TrackerAPIError(f"Tracker request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TrackerAPIError(f"Tracker request failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError("Tracker rejected the API key")
        return response

    def _call(
        self, action: str, model: type[ModelT], *, method: str = "GET", **kwargs: Any
    ) -> ModelT:
        response = self._request(method, action, **kwargs)
        envelope = self._parse_envelope(response)
        if envelope.status != "success" or envelope.response is None:
            raise TrackerAPIError(
                f"Tracker action '{action}' failed: {envelope.error or envelope.status}"
            )
        try:
            return model.model_validate(envelope.response)
        except ValidationError as e:
            raise TrackerAPIError(
                f"Unexpected response for tracker action '{action}': {e}"
            ) from e

    @staticmethod
    def _parse_envelope(response: httpx.Response) -> ApiEnvelope[Any]:
        try:
            return ApiEnvelope[Any].model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TrackerAPIError(
                f"Malformed tracker response (HTTP {response.status_code})"
            ) from e

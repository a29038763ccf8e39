"""
qBittorrent WebAPI v2 download engine.

Talks to a running qBittorrent instance over its WebUI API with a
persistent ``requests.Session`` (the session cookie carries the login).

API Documentation:
    https://github.com/qbittorrent/qBittorrent/wiki/WebUI-API-(qBittorrent-4.1)

Example:
    >>> client = QbittorrentClient("http://localhost:8080", "admin", "secret")
    >>> client.add_by_file("data/tmp/72d528cc.torrent")
    >>> client.wait_until_ready("72d528cc...")
    >>> client.move_files("72d528cc...", "/srv/anime/Frieren/Season 1", "Frieren S01E09")
"""

import logging
import time
from pathlib import Path
from typing import Any, List, Optional, Union

import requests

from bangumi_sync.engine.base import DownloadEngine
from bangumi_sync.errors import EngineAuthError, EngineError, JobNotReadyError
from bangumi_sync.models.entities import DownloadFileEntry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
#  Constants
# ---------------------------------------------------------------------------

API_PREFIX = "/api/v2"
REQUEST_TIMEOUT = 15  # seconds
DEFAULT_READY_TIMEOUT = 30.0  # seconds
DEFAULT_POLL_INTERVAL = 1.0  # seconds
MAX_POLL_INTERVAL = 8.0  # seconds


class QbittorrentClient(DownloadEngine):
    """
    Download engine backed by the qBittorrent WebUI API.

    Logs in lazily on the first request and once more when the session
    expires (HTTP 403).

    Attributes:
        base_url: WebUI root, e.g. "http://localhost:8080"
        ready_timeout: Seconds wait_until_ready polls before giving up
        poll_interval: First delay between readiness polls; doubles each try
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = REQUEST_TIMEOUT,
        ready_timeout: float = DEFAULT_READY_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval
        self.session = session or requests.Session()
        self._logged_in = False

    @classmethod
    def from_config(cls, config: Any) -> "QbittorrentClient":
        """Build a client from the application Config."""
        return cls(
            base_url=config.qbit_url,
            username=config.qbit_username,
            password=config.qbit_password,
            timeout=config.request_timeout,
            ready_timeout=config.engine_ready_timeout,
            poll_interval=config.engine_poll_interval,
        )

    # -------------------------------------------------------------------
    #  Session handling
    # -------------------------------------------------------------------

    def login(self) -> None:
        """
        Authenticate against the WebUI.

        Raises:
            EngineAuthError: If the credentials are rejected or the IP is banned
            EngineError: If the WebUI cannot be reached
        """
        try:
            response = self.session.post(
                self._url("auth/login"),
                data={"username": self.username, "password": self.password},
                headers={"Referer": self.base_url},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise EngineError(f"qBittorrent unreachable at {self.base_url}: {exc}") from exc

        if response.status_code == 403:
            raise EngineAuthError("qBittorrent refused login: too many failed attempts")
        if response.status_code != 200 or response.text.strip() != "Ok.":
            raise EngineAuthError(
                f"qBittorrent login failed for user '{self.username}' "
                f"(HTTP {response.status_code})"
            )
        self._logged_in = True
        logger.debug("Logged in to qBittorrent at %s", self.base_url)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{API_PREFIX}/{endpoint}"

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        if not self._logged_in:
            self.login()

        response = self._send(method, endpoint, **kwargs)
        if response.status_code == 403:
            logger.info("qBittorrent session expired, logging in again")
            self.login()
            response = self._send(method, endpoint, **kwargs)
        return response

    def _send(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        try:
            return self.session.request(
                method, self._url(endpoint), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise EngineError(f"qBittorrent request {endpoint} failed: {exc}") from exc

    @staticmethod
    def _check(response: requests.Response, action: str) -> None:
        if response.status_code != 200:
            raise EngineError(
                f"qBittorrent {action} failed: HTTP {response.status_code} {response.text.strip()}"
            )

    # -------------------------------------------------------------------
    #  DownloadEngine interface
    # -------------------------------------------------------------------

    def add_by_file(self, path: Union[str, Path]) -> None:
        path = Path(path)
        content = path.read_bytes()
        response = self._request(
            "POST",
            "torrents/add",
            files={"torrents": (path.name, content, "application/x-bittorrent")},
        )
        self._check(response, "add")
        if response.text.strip() == "Fails.":
            raise EngineError(f"qBittorrent rejected torrent file {path.name}")
        logger.debug("Submitted %s to qBittorrent", path.name)

    def set_location(self, job_id: str, location: Union[str, Path]) -> None:
        response = self._request(
            "POST",
            "torrents/setLocation",
            data={"hashes": job_id, "location": str(location)},
        )
        self._check(response, "setLocation")

    def has_job(self, job_id: str) -> bool:
        return self._fetch_files(job_id) is not None

    def list_files(self, job_id: str) -> List[DownloadFileEntry]:
        files = self._fetch_files(job_id)
        if files is None:
            raise EngineError(f"qBittorrent has no torrent {job_id}")
        return files

    def rename_file(self, job_id: str, old_path: str, new_path: str) -> None:
        response = self._request(
            "POST",
            "torrents/renameFile",
            data={"hash": job_id, "oldPath": old_path, "newPath": new_path},
        )
        self._check(response, "renameFile")

    def rename_job(self, job_id: str, name: str) -> None:
        response = self._request(
            "POST",
            "torrents/rename",
            data={"hash": job_id, "name": name},
        )
        self._check(response, "rename")

    def wait_until_ready(
        self,
        job_id: str,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        """
        Poll until the job is registered and its file list is known.

        Polls with exponential backoff starting at ``poll_interval`` and
        capped at MAX_POLL_INTERVAL.

        Args:
            job_id: Canonical job identifier
            timeout: Seconds to keep polling (default: ``ready_timeout``)
            poll_interval: First delay between polls (default: ``poll_interval``)

        Raises:
            JobNotReadyError: If the job is not ready within the timeout
        """
        timeout = self.ready_timeout if timeout is None else timeout
        delay = self.poll_interval if poll_interval is None else poll_interval
        deadline = time.monotonic() + timeout
        while True:
            files = self._fetch_files(job_id)
            if files:
                return
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise JobNotReadyError(job_id, timeout)
            logger.debug("Job %s not ready yet, retrying in %.1fs", job_id, delay)
            time.sleep(min(delay, remaining))
            delay = min(delay * 2, MAX_POLL_INTERVAL)

    # -------------------------------------------------------------------
    #  Helpers
    # -------------------------------------------------------------------

    def _fetch_files(self, job_id: str) -> Optional[List[DownloadFileEntry]]:
        """Return the job's files, or None if qBittorrent does not know it."""
        response = self._request("GET", "torrents/files", params={"hash": job_id})
        if response.status_code == 404:
            return None
        self._check(response, "files")
        return [
            DownloadFileEntry(name=item["name"], size=int(item.get("size", 0)))
            for item in response.json()
        ]

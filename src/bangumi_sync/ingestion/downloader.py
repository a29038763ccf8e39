"""
Torrent file retrieval.

Streams a release's torrent file to a scratch location and reads its info
hash, which is the identifier the download engine uses for the job.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import requests
import torf

from bangumi_sync.errors import DownloadError
from bangumi_sync.utils import proxies_for

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
REQUEST_TIMEOUT = 30  # seconds


def download_file(
    url: str,
    save_path: Union[str, Path],
    proxy_url: Optional[str] = None,
    timeout: float = REQUEST_TIMEOUT,
) -> Path:
    """
    Download a file from URL.

    Args:
        url: File URL
        save_path: Local path to save file; parent directories are created
        proxy_url: Optional HTTP(S) proxy
        timeout: Request timeout in seconds

    Returns:
        The path the file was written to

    Raises:
        DownloadError: On network or HTTP errors
    """
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with requests.get(
            url, proxies=proxies_for(proxy_url), timeout=timeout, stream=True
        ) as response:
            response.raise_for_status()
            with open(save_path, "wb") as fh:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    fh.write(chunk)
    except requests.RequestException as exc:
        delete_file(save_path)
        raise DownloadError(f"Failed to download {url}: {exc}") from exc

    logger.debug("Downloaded %s -> %s", url, save_path)
    return save_path


def delete_file(path: Union[str, Path]) -> None:
    """Remove a file if it exists."""
    Path(path).unlink(missing_ok=True)


def read_info_hash(path: Union[str, Path]) -> str:
    """
    Read the info hash of a torrent file.

    Raises:
        DownloadError: If the file is not a readable torrent
    """
    try:
        torrent = torf.Torrent.read(str(path), validate=False)
        return torrent.infohash
    except torf.TorfError as exc:
        raise DownloadError(f"Invalid torrent file {path}: {exc}") from exc

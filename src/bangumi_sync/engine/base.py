"""
Download engine interface.

Concrete engines implement the five primitive calls; relocating and
renaming a finished job is built on top of them by ``move_files``.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from bangumi_sync.engine.file_selector import select_files
from bangumi_sync.models.entities import DownloadFileEntry, FileSelection

logger = logging.getLogger(__name__)


class DownloadEngine(ABC):
    """
    Abstract base class for download engines.

    Jobs are addressed by their canonical identifier (the torrent info
    hash). Every call raises EngineError on failure.
    """

    @abstractmethod
    def add_by_file(self, path: Union[str, Path]) -> None:
        """Submit a job from a local descriptor file."""

    @abstractmethod
    def set_location(self, job_id: str, location: Union[str, Path]) -> None:
        """Move the job's storage to a new directory."""

    @abstractmethod
    def has_job(self, job_id: str) -> bool:
        """Return True if the engine already tracks this job."""

    @abstractmethod
    def list_files(self, job_id: str) -> List[DownloadFileEntry]:
        """Enumerate the files of a job."""

    @abstractmethod
    def rename_file(self, job_id: str, old_path: str, new_path: str) -> None:
        """Rename one file inside a job."""

    @abstractmethod
    def rename_job(self, job_id: str, name: str) -> None:
        """Set the job's display name."""

    @abstractmethod
    def wait_until_ready(
        self,
        job_id: str,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        """
        Block until a freshly submitted job is registered.

        ``timeout`` and ``poll_interval`` default to the engine's own settings.

        Raises:
            JobNotReadyError: If the job does not appear in time
        """

    def move_files(self, job_id: str, save_dir: Union[str, Path], save_name: str) -> FileSelection:
        """
        Relocate a job and rename its files after the destination.

        Args:
            job_id: Canonical job identifier
            save_dir: Destination directory, e.g. "<library>/Frieren/Season 1"
            save_name: Destination base name, e.g. "Frieren S01E09"

        Returns:
            The FileSelection that was applied
        """
        self.set_location(job_id, save_dir)
        files = self.list_files(job_id)
        selection = select_files(files, save_name)
        for old_path, new_name in selection.rename_plan:
            logger.debug("Renaming %s -> %s in job %s", old_path, new_name, job_id)
            self.rename_file(job_id, old_path, new_name)
        self.rename_job(job_id, selection.job_name)
        return selection

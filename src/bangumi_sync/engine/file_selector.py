"""
Choose which files of a finished download job get renamed.

The largest file of a job is its video. Files whose path starts with the
video's path minus extension (subtitles, chapter files) travel with it and
receive the same new base name.
"""

from pathlib import PurePosixPath
from typing import List, Sequence

from bangumi_sync.errors import FileNameError, NoFileToRenameError
from bangumi_sync.models.entities import DownloadFileEntry, FileSelection


def file_stem(name: str) -> str:
    """Return the job-relative path of a file without its extension."""
    path = PurePosixPath(name)
    if not path.name:
        return ""
    stem = path.stem
    if str(path.parent) == ".":
        return stem
    return str(path.parent / stem)


def file_extension(name: str) -> str:
    """Return the extension of a file without the leading dot, or ""."""
    return PurePosixPath(name).suffix[1:]


def select_files(files: Sequence[DownloadFileEntry], save_name: str) -> FileSelection:
    """
    Pick the primary file of a job and plan the renames.

    Args:
        files: Files of one download job
        save_name: Destination base name, e.g. "Frieren S01E09"

    Returns:
        FileSelection whose rename plan maps each selected file to
        "<save_name>.<original extension>"

    Raises:
        NoFileToRenameError: If the job has no files
        FileNameError: If a selected file has no stem or no extension
    """
    if not files:
        raise NoFileToRenameError()

    if len(files) == 1:
        primary = files[0]
        selected: List[DownloadFileEntry] = [primary]
    else:
        # max() keeps the first of equally sized files
        primary = max(files, key=lambda f: f.size)
        stem = file_stem(primary.name)
        if not stem:
            raise FileNameError(primary.name)
        selected = [primary] + [
            f for f in files
            if f.name != primary.name and f.name.startswith(stem)
        ]

    rename_plan = []
    for entry in selected:
        extension = file_extension(entry.name)
        if not extension:
            raise FileNameError(entry.name)
        rename_plan.append((entry.name, f"{save_name}.{extension}"))

    return FileSelection(primary=primary, rename_plan=rename_plan, job_name=save_name)

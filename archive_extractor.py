"""
Zip extraction for downloaded submissions
"""

import io
import os
import shutil
import zipfile
from pathlib import Path
from typing import List, Set, Union


class ArchiveError(Exception):
    """Raised when submission bytes cannot be unpacked as a zip archive"""


def _iter_members(z: zipfile.ZipFile) -> List[zipfile.ZipInfo]:
    members = []
    for info in z.infolist():
        info.filename = info.filename.replace("\\", "/")
        # macOS resource forks are noise for graders
        if info.filename.startswith("__MACOSX/") or "/__MACOSX/" in info.filename:
            continue
        members.append(info)
    return members


def _common_root(names: List[str]) -> str:
    """Return 'root/' if every entry lives under one top-level folder, else ''."""
    tops = {name.split("/", 1)[0] for name in names if name.strip("/")}
    if len(tops) != 1:
        return ""
    root = tops.pop()
    if all(name.startswith(root + "/") for name in names if name.strip("/")):
        return root + "/"
    return ""


def extract_zip(data: bytes, destination: Union[str, Path], strip_toplevel: bool = True) -> Set[Path]:
    """
    Extract zip bytes into a fresh destination directory

    Args:
        data: Raw bytes claiming to be a zip archive
        destination: Directory to extract into (replaced if it already exists)
        strip_toplevel: Flatten a single folder shared by every entry

    Returns:
        Set of extracted file paths
    """
    destination = Path(destination)
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
        raise ArchiveError(f"not a readable zip archive ({e})") from e

    with archive as z:
        members = _iter_members(z)
        root = _common_root([m.filename for m in members]) if strip_toplevel else ""

        if destination.exists():
            shutil.rmtree(destination)
        destination.mkdir(parents=True)
        base = destination.resolve()

        extracted = set()
        for info in members:
            name = info.filename[len(root):] if root else info.filename
            if not name or name.endswith("/"):
                continue

            target = (destination / name).resolve()
            if os.path.commonpath([str(base), str(target)]) != str(base):
                raise ArchiveError(f"entry escapes the extraction directory: {info.filename}")

            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                with z.open(info) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
            except (zipfile.BadZipFile, NotImplementedError, RuntimeError, OSError) as e:
                raise ArchiveError(f"could not extract {info.filename}: {e}") from e
            extracted.add(target)

    return extracted

# cloudshelf/paths.py
"""
Conversions between folder paths and object-store keys.

A folder path is either "" (the root) or a "/"-delimited string ending with "/",
e.g. "photos/2024/". File keys never end with "/".
"""
import re
from typing import Dict, List

from .storage.dto import FolderRecord

ROOT = ""
ROOT_NAME = "Home"
DELIMITER = "/"


def _check_name(name: str):
    if not name or not name.strip():
        raise ValueError("Name cannot be empty")
    if DELIMITER in name:
        raise ValueError(f"Name '{name}' cannot contain '{DELIMITER}'")


def normalize_folder_path(path: str) -> str:
    """Turns user input like '/a//b' into the canonical prefix form 'a/b/'."""
    if not path:
        return ROOT
    path = re.sub(r"/{2,}", DELIMITER, path).lstrip(DELIMITER)
    if not path:
        return ROOT
    return path if path.endswith(DELIMITER) else path + DELIMITER


def child_file_key(parent: str, name: str) -> str:
    _check_name(name)
    return normalize_folder_path(parent) + name


def child_folder_path(parent: str, name: str) -> str:
    _check_name(name)
    return normalize_folder_path(parent) + name + DELIMITER


def name_from_key(key: str) -> str:
    return key.rsplit(DELIMITER, 1)[-1]


def folder_name(path: str) -> str:
    segments = [s for s in path.split(DELIMITER) if s]
    return segments[-1] if segments else ROOT


def parent_path(path: str) -> str:
    segments = [s for s in path.split(DELIMITER) if s]
    if len(segments) <= 1:
        return ROOT
    return DELIMITER.join(segments[:-1]) + DELIMITER


def sibling_path(path: str, new_name: str) -> str:
    return child_folder_path(parent_path(path), new_name)


def rebase_key(key: str, old_prefix: str, new_prefix: str) -> str:
    """Swaps the leading prefix of a key; only the start of the key is touched."""
    if not key.startswith(old_prefix):
        raise ValueError(f"Key '{key}' is not under '{old_prefix}'")
    return new_prefix + key[len(old_prefix):]


def breadcrumbs(path: str) -> List[FolderRecord]:
    """Root-to-leaf chain of folders for a path, starting with the root itself."""
    crumbs = [FolderRecord(path=ROOT, name=ROOT_NAME)]
    current = ROOT
    for segment in [s for s in path.split(DELIMITER) if s]:
        current = current + segment + DELIMITER
        crumbs.append(FolderRecord(path=current, name=segment))
    return crumbs


def folder_tree(folders: List[FolderRecord]) -> Dict[str, List[FolderRecord]]:
    """Groups a flat folder list by parent path. The root group is always present."""
    tree: Dict[str, List[FolderRecord]] = {ROOT: []}
    for folder in folders:
        tree.setdefault(parent_path(folder.path), []).append(folder)
    return tree

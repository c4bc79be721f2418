"""
File utilities for VaultWatch

Host access goes through two narrow capabilities: a ContentReader that returns
the current text of an entity and a ContentStore that writes generated files
(exports). Both address entities by vault-relative POSIX paths.
"""
import asyncio
from pathlib import Path, PurePosixPath
from typing import List, Optional, Protocol, Union
import logging

from ..exceptions import SamplingError

logger = logging.getLogger(__name__)

DEFAULT_NOTE_PATTERNS = ['*.md']


class ContentReader(Protocol):
    async def read(self, path: str) -> str:
        """Return current content; raises SamplingError when unreadable"""
        ...


class ContentStore(Protocol):
    async def write(self, path: str, data: str) -> str:
        """Write data, returning the path written"""
        ...


def to_vault_path(path: Union[str, Path], root: Union[str, Path]) -> Optional[str]:
    """
    Convert a file-system path to a vault-relative POSIX path

    Args:
        path: Absolute (or root-relative) file-system path
        root: Vault root directory

    Returns:
        Relative path like 'folder/note.md', or None if outside the vault
    """
    path = Path(path)
    root = Path(root)
    if not path.is_absolute():
        return PurePosixPath(*path.parts).as_posix()
    try:
        relative = path.relative_to(root)
    except ValueError:
        return None
    return relative.as_posix()


def normalize_vault_path(path: str) -> str:
    """Normalize separators and strip leading './' and '/'"""
    normalized = path.replace('\\', '/')
    while normalized.startswith('./'):
        normalized = normalized[2:]
    return normalized.lstrip('/')


class FileSystemContentReader:
    """ContentReader over a vault directory on disk"""

    def __init__(self, root: Union[str, Path], encoding: str = 'utf-8'):
        self.root = Path(root)
        self.encoding = encoding

    def resolve(self, path: str) -> Path:
        return self.root / normalize_vault_path(path)

    async def read(self, path: str) -> str:
        file_path = self.resolve(path)
        # Run in thread pool to avoid blocking the loop
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None,
                lambda: file_path.read_text(encoding=self.encoding, errors='replace')
            )
        except FileNotFoundError as e:
            raise SamplingError(path, "file not found", missing=True) from e
        except IsADirectoryError as e:
            raise SamplingError(path, "is a directory", missing=True) from e
        except OSError as e:
            raise SamplingError(path, str(e)) from e


class FileSystemContentStore:
    """ContentStore writing generated files into the vault"""

    def __init__(self, root: Union[str, Path], encoding: str = 'utf-8'):
        self.root = Path(root)
        self.encoding = encoding

    async def write(self, path: str, data: str) -> str:
        relative = normalize_vault_path(path)
        target = self.root / relative
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write_file, target, data)
        logger.debug(f"Wrote {len(data)} characters to {target}")
        return relative

    def _write_file(self, target: Path, data: str):
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(data, encoding=self.encoding)


def find_files(directory: Union[str, Path],
               patterns: List[str] = None,
               recursive: bool = True) -> List[str]:
    """
    Find files matching patterns

    Args:
        directory: Directory to search
        patterns: List of file patterns (defaults to markdown notes)
        recursive: Whether to search recursively

    Returns:
        Sorted vault-relative paths of matching files
    """
    dir_path = Path(directory)

    if not dir_path.exists():
        logger.error(f"Directory not found: {dir_path}")
        return []

    if patterns is None:
        patterns = DEFAULT_NOTE_PATTERNS

    found = set()
    for pattern in patterns:
        matches = dir_path.rglob(pattern) if recursive else dir_path.glob(pattern)
        for file_path in matches:
            if file_path.is_file():
                found.add(file_path.relative_to(dir_path).as_posix())

    return sorted(found)

"""Session-scoped registry of generated files."""

from typing import Dict, Iterable, Iterator, List, Optional

from .agents.registry import matches_any
from .models import ExistingFile, GeneratedFile


class FileRegistry:
    """
    In-memory, path-keyed index of files generated during one run.

    Holds at most one GeneratedFile per path; a later write to the same
    path replaces the earlier one. One registry is created per request
    and discarded afterwards.
    """

    def __init__(self):
        self._files: Dict[str, GeneratedFile] = {}

    def upsert(self, file: GeneratedFile) -> bool:
        """
        Insert or replace the file stored under ``file.path``.

        Returns:
            True if the path was not present before
        """
        is_new = file.path not in self._files
        self._files[file.path] = file
        return is_new

    def get(self, path: str) -> Optional[GeneratedFile]:
        return self._files.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[GeneratedFile]:
        return iter(list(self._files.values()))

    def paths(self) -> List[str]:
        return list(self._files)

    def files(self) -> List[GeneratedFile]:
        """Snapshot of the registry in first-insertion order."""
        return list(self._files.values())

    def filter_by_patterns(self, patterns: Iterable[str]) -> List[GeneratedFile]:
        patterns = tuple(patterns)
        return [f for f in self._files.values() if matches_any(f.path, patterns)]

    def known_files(self, existing: Iterable[ExistingFile] = ()) -> Dict[str, str]:
        """
        Combine the project's existing files with the files generated so far.

        Generated content wins over the original content of the same path.

        Returns:
            Mapping of path to content, existing files first
        """
        known = {f.path: f.content for f in existing}
        for file in self._files.values():
            known[file.path] = file.content
        return known

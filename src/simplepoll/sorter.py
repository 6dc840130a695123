"""Optional ordering stage applied to the files of a poll cycle."""

from __future__ import annotations

import inspect
from collections import Counter
from typing import TYPE_CHECKING

from .errors import SortError

if TYPE_CHECKING:
    from .config import SortFn


def default_sort(files: list[str]) -> list[str]:
    """Sort full paths in ascending lexicographic order."""
    return sorted(files)


def _is_permutation(result: object, files: list[str]) -> bool:
    if not isinstance(result, list):
        return False
    try:
        return Counter(result) == Counter(files)
    except TypeError:
        # Unhashable entries can never match the input paths
        return False


async def sort_files(files: list[str], enabled: bool, sort_fn: SortFn | None = None) -> list[str]:
    """Order ``files`` with ``sort_fn`` (or the default sort) when enabled.

    Args:
        files: Filtered paths of the current cycle.
        enabled: Whether sorting is configured.
        sort_fn: Custom routine, sync or async. Must return a permutation.

    Returns:
        Ordered paths. Unchanged when disabled or fewer than two files.

    Raises:
        SortError: The routine raised or returned something other than a
            permutation of ``files``.

    """
    if not enabled or len(files) < 2:
        return files

    routine = sort_fn or default_sort
    try:
        result = routine(list(files))
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        raise SortError(f"Sort routine failed: {e}") from e

    if not _is_permutation(result, files):
        raise SortError("Sort routine did not return a permutation of its input")

    return result

"""Tests for listing and filtering directory trees."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from simplepoll.errors import OperationalIOError, PathNotFoundError
from simplepoll.scanner import Scanner, _stat_mtime
from simplepoll.store import ModTimeStore


@pytest.fixture
def store() -> ModTimeStore:
    """Create an isolated store."""
    return ModTimeStore()


@pytest.fixture
def scanner(store: ModTimeStore) -> Scanner:
    """Create a scanner."""
    return Scanner(store)


def _touch(path: Path) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("data")
    return str(path)


class TestListFiles:
    """Tests for Scanner.list_files."""

    @pytest.mark.asyncio
    async def test_lists_files_recursively(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that nested files are listed with absolute paths."""
        expected = {
            _touch(tmp_path / "a.txt"),
            _touch(tmp_path / "sub" / "b.txt"),
            _touch(tmp_path / "sub" / "deeper" / "c.log"),
        }

        files = await scanner.list_files(str(tmp_path))

        assert set(files) == expected
        assert all(os.path.isabs(path) for path in files)

    @pytest.mark.asyncio
    async def test_excludes_directories(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that empty directories are not listed."""
        (tmp_path / "empty").mkdir()
        (tmp_path / "nested" / "also_empty").mkdir(parents=True)

        assert await scanner.list_files(str(tmp_path)) == []

    @pytest.mark.asyncio
    async def test_skips_broken_symlinks(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that dangling symlinks are not listed."""
        target = _touch(tmp_path / "real.txt")
        (tmp_path / "dangling.txt").symlink_to(tmp_path / "missing.txt")

        assert await scanner.list_files(str(tmp_path)) == [target]

    @pytest.mark.asyncio
    async def test_does_not_follow_directory_symlinks(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that symlinked directories are not descended into."""
        real = tmp_path / "real"
        inner = _touch(real / "inner.txt")
        (tmp_path / "link").symlink_to(real, target_is_directory=True)

        assert await scanner.list_files(str(tmp_path)) == [inner]

    @pytest.mark.asyncio
    async def test_missing_root(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that a missing root raises PathNotFoundError."""
        missing = str(tmp_path / "missing")

        with pytest.raises(PathNotFoundError) as exc_info:
            await scanner.list_files(missing)

        assert exc_info.value.path == missing

    @pytest.mark.asyncio
    async def test_root_is_a_file(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that a file root is an I/O error rather than not-found."""
        root = _touch(tmp_path / "file.txt")

        with pytest.raises(OperationalIOError):
            await scanner.list_files(root)


class TestFilterNew:
    """Tests for Scanner.filter_new."""

    @pytest.mark.asyncio
    async def test_no_extension_passes_through(self, scanner: Scanner, store: ModTimeStore, tmp_path: Path) -> None:
        """Test that an unfiltered list is returned without any stat calls."""
        files = [str(tmp_path / "a.txt"), str(tmp_path / "b.json")]

        with patch("simplepoll.scanner._stat_mtime") as mock_stat:
            result = await scanner.filter_new(files, None)

        assert result == files
        mock_stat.assert_not_called()
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_empty_list_passes_through(self, scanner: Scanner) -> None:
        """Test that an empty list short-circuits."""
        with patch("simplepoll.scanner._stat_mtime") as mock_stat:
            assert await scanner.filter_new([], ".txt") == []

        mock_stat.assert_not_called()

    @pytest.mark.asyncio
    async def test_filters_by_extension(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that only matching files are kept."""
        keep = _touch(tmp_path / "a.txt")
        drop = _touch(tmp_path / "b.json")

        assert await scanner.filter_new([keep, drop], ".txt") == [keep]

    @pytest.mark.asyncio
    async def test_new_files_recorded(self, scanner: Scanner, store: ModTimeStore, tmp_path: Path) -> None:
        """Test that kept files have their mtime recorded."""
        path = _touch(tmp_path / "a.txt")

        await scanner.filter_new([path], ".txt")

        assert store.get(path) == _stat_mtime(path)

    @pytest.mark.asyncio
    async def test_unchanged_files_dropped(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that files are only reported until their mtime changes."""
        path = _touch(tmp_path / "a.txt")

        assert await scanner.filter_new([path], ".txt") == [path]
        assert await scanner.filter_new([path], ".txt") == []

        st = os.stat(path)
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 2_000_000_000))

        assert await scanner.filter_new([path], ".txt") == [path]

    @pytest.mark.asyncio
    async def test_preserves_input_order(self, store: ModTimeStore, tmp_path: Path) -> None:
        """Test that concurrent stats do not reorder the result."""
        scanner = Scanner(store, max_concurrency=3)
        files = [_touch(tmp_path / f"file{i:02d}.txt") for i in range(25)]
        files.reverse()

        assert await scanner.filter_new(files, ".txt") == files

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, store: ModTimeStore, tmp_path: Path) -> None:
        """Test that no more than max_concurrency stats are in flight."""
        scanner = Scanner(store, max_concurrency=2)
        files = [str(tmp_path / f"file{i}.txt") for i in range(8)]
        in_flight = 0
        peak = 0

        async def fake_stat(path: str) -> float:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return 1.0

        with patch.object(scanner, "_stat", side_effect=fake_stat):
            result = await scanner.filter_new(files, ".txt")

        assert result == files
        assert peak == 2

    @pytest.mark.asyncio
    async def test_worker_pool_is_fixed_size(self, store: ModTimeStore, tmp_path: Path) -> None:
        """Test that a large listing is stat'ed by max_concurrency tasks, not one per file."""
        scanner = Scanner(store, max_concurrency=3)
        files = [str(tmp_path / f"file{i:03d}.txt") for i in range(100)]
        tasks: set[asyncio.Task[object]] = set()

        async def fake_stat(path: str) -> float:
            task = asyncio.current_task()
            assert task is not None
            tasks.add(task)
            await asyncio.sleep(0)
            return 1.0

        with patch.object(scanner, "_stat", side_effect=fake_stat):
            result = await scanner.filter_new(files, ".txt")

        assert result == files
        assert len(tasks) == 3

    @pytest.mark.asyncio
    async def test_no_new_stats_after_failure(self, store: ModTimeStore, tmp_path: Path) -> None:
        """Test that the first failure stops further files from being stat'ed."""
        scanner = Scanner(store, max_concurrency=1)
        files = [str(tmp_path / f"file{i}.txt") for i in range(5)]
        seen: list[str] = []

        async def fake_stat(path: str) -> float:
            seen.append(path)
            if path == files[1]:
                raise OperationalIOError("stats error", path)
            return 1.0

        with patch.object(scanner, "_stat", side_effect=fake_stat):
            with pytest.raises(OperationalIOError):
                await scanner.filter_new(files, ".txt")

        assert seen == files[:2]

    @pytest.mark.asyncio
    async def test_stat_error_aborts_batch(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that a single stat failure fails the whole filter."""
        files = [_touch(tmp_path / "a.txt"), _touch(tmp_path / "b.txt")]

        with patch("simplepoll.scanner.os.stat", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(OperationalIOError):
                await scanner.filter_new(files, ".txt")

    @pytest.mark.asyncio
    async def test_vanished_file_is_not_found(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that a file deleted after listing maps to PathNotFoundError."""
        with pytest.raises(PathNotFoundError):
            await scanner.filter_new([str(tmp_path / "gone.txt")], ".txt")


class TestSeed:
    """Tests for Scanner.seed."""

    @pytest.mark.asyncio
    async def test_records_matching_files(self, scanner: Scanner, store: ModTimeStore, tmp_path: Path) -> None:
        """Test that seeding records matching files only."""
        txt = _touch(tmp_path / "a.txt")
        other = _touch(tmp_path / "b.json")

        count = await scanner.seed([txt, other], ".txt")

        assert count == 1
        assert txt in store
        assert other not in store

    @pytest.mark.asyncio
    async def test_records_everything_without_extension(
        self, scanner: Scanner, store: ModTimeStore, tmp_path: Path
    ) -> None:
        """Test that an unfiltered seed records every file."""
        files = [_touch(tmp_path / "a.txt"), _touch(tmp_path / "b.json")]

        assert await scanner.seed(files, None) == 2
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_seeded_files_not_new(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that seeded files are not reported by the next filter."""
        path = _touch(tmp_path / "a.txt")

        await scanner.seed([path], ".txt")

        assert await scanner.filter_new([path], ".txt") == []


class TestScan:
    """Tests for Scanner.scan."""

    @pytest.mark.asyncio
    async def test_scan_lists_and_filters(self, scanner: Scanner, tmp_path: Path) -> None:
        """Test that scan combines listing and filtering."""
        keep = _touch(tmp_path / "sub" / "a.txt")
        _touch(tmp_path / "b.json")

        assert await scanner.scan(str(tmp_path), ".txt") == [keep]
        assert await scanner.scan(str(tmp_path), ".txt") == []

    @pytest.mark.asyncio
    async def test_shared_store_between_scanners(self, store: ModTimeStore, tmp_path: Path) -> None:
        """Test that scanners over the same store observe each other's state."""
        path = _touch(tmp_path / "a.txt")

        assert await Scanner(store).scan(str(tmp_path), ".txt") == [path]
        assert await Scanner(store).scan(str(tmp_path), ".txt") == []

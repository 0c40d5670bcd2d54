"""Tests for thin file I/O helpers."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from dirsplit.exceptions import FileOperationError
from dirsplit.fileio import (
    check_file_for_multiple_lines,
    delete_files_with_extension,
    get_files_with_extension,
    has_extension,
    open_files_in_editor,
    process_file,
    read_file_content,
    read_lines,
    read_to_string,
    write_to_file,
)


class TestSyncHelpers:
    """Test synchronous helpers."""

    def test_has_extension(self):
        assert has_extension(Path("test.txt"), "txt")
        assert not has_extension(Path("test.txt"), "rs")
        assert not has_extension(Path("test.TXT"), "txt")
        assert not has_extension(Path("test"), "txt")

    def test_get_files_with_extension(self, tmp_path):
        (tmp_path / "test1.txt").write_text("x")
        (tmp_path / "test2.txt").write_text("x")
        (tmp_path / ".hidden.txt").write_text("x")
        (tmp_path / "test3.rs").write_text("x")
        sub = tmp_path / "subdir"
        sub.mkdir()
        (sub / "test4.txt").write_text("x")

        files = sorted(path.name for path in get_files_with_extension(tmp_path, "txt"))
        assert files == ["test1.txt", "test2.txt", "test4.txt"]

    def test_read_to_string(self, tmp_path):
        path = tmp_path / "test.txt"
        path.write_text("Hello, World!")
        assert read_to_string(path) == "Hello, World!"

    def test_read_to_string_names_missing_path(self, tmp_path):
        missing = tmp_path / "missing.txt"
        with pytest.raises(FileOperationError, match="missing.txt"):
            read_to_string(missing)


class TestAsyncHelpers:
    """Test async helpers."""

    @pytest.mark.asyncio
    async def test_read_lines(self, tmp_path):
        path = tmp_path / "test.txt"
        path.write_text("Line 1\nLine 2  \nLine 3")

        assert await read_lines(path) == ["Line 1", "Line 2", "Line 3"]

    @pytest.mark.asyncio
    async def test_read_file_content(self, tmp_path):
        path = tmp_path / "test.txt"
        path.write_text("Hello, World!")
        assert await read_file_content(path) == "Hello, World!"

    @pytest.mark.asyncio
    async def test_write_to_file(self, tmp_path):
        path = tmp_path / "test.txt"
        await write_to_file(path, "Hello, World!")
        assert path.read_text() == "Hello, World!"

    @pytest.mark.asyncio
    async def test_write_to_missing_directory(self, tmp_path):
        with pytest.raises(FileOperationError):
            await write_to_file(tmp_path / "nope" / "test.txt", "x")

    @pytest.mark.asyncio
    async def test_delete_files_with_extension(self, tmp_path):
        (tmp_path / "test1.tmp").write_text("x")
        (tmp_path / "test2.TMP").write_text("x")
        (tmp_path / "test.txt").write_text("x")
        sub = tmp_path / "subdir"
        sub.mkdir()
        (sub / "test3.tmp").write_text("x")

        removed = await delete_files_with_extension(tmp_path, "tmp")

        assert len(removed) == 3
        remaining = [p.name for p in tmp_path.rglob("*") if p.is_file()]
        assert remaining == ["test.txt"]

    @pytest.mark.asyncio
    async def test_check_file_for_multiple_lines(self, tmp_path):
        single = tmp_path / "single.txt"
        multi = tmp_path / "multi.txt"
        single.write_text("Single line")
        multi.write_text("Line 1\nLine 2\nLine 3")
        found = []
        lock = asyncio.Lock()

        await check_file_for_multiple_lines(single, found, lock)
        assert found == []

        await check_file_for_multiple_lines(multi, found, lock)
        assert found == [multi]

    @pytest.mark.asyncio
    async def test_open_files_in_editor_empty_list(self):
        with patch("dirsplit.fileio.asyncio.create_subprocess_exec") as mock_exec:
            assert await open_files_in_editor([]) == 0
        mock_exec.assert_not_called()

    @pytest.mark.asyncio
    async def test_open_files_in_editor_uses_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EDITOR", "myeditor")
        process = AsyncMock()
        process.wait.return_value = 0

        with patch("dirsplit.fileio.asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as mock_exec:
            code = await open_files_in_editor([tmp_path / "a.txt", tmp_path / "b.txt"])

        assert code == 0
        mock_exec.assert_awaited_once_with("myeditor", str(tmp_path / "a.txt"), str(tmp_path / "b.txt"))

    @pytest.mark.asyncio
    async def test_process_file(self, tmp_path):
        path = tmp_path / "test.txt"
        path.write_text("x")
        seen = []

        async def processor(p):
            seen.append(p)
            return "done"

        assert await process_file(path, processor) == "done"
        assert seen == [path]

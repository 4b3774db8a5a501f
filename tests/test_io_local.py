"""Tests for the local sparse file backend."""

import json

import pytest

from rangefile.core.model import Range, BackendFailure, OutOfBoundsError
from rangefile.io.base import RangeBackend, AsyncRangeBackend
from rangefile.io.local import (
    LocalRangeBackend, LocalAsyncRangeBackend, open_local_backend, open_local_backend_async,
    INDEX_SUFFIX,
)


class TestLocalRangeBackend:
    """Test synchronous local backend."""

    def test_create(self, tmp_path):
        """Test file and index are created with the declared capacity."""
        path = tmp_path / "rangeops.txt"
        backend = LocalRangeBackend(path)
        backend.create(65536)

        assert path.stat().st_size == 65536
        assert backend.exists()
        assert backend.size() == 65536
        assert backend.get_range_list() == []

        index = json.loads((tmp_path / ("rangeops.txt" + INDEX_SUFFIX)).read_text())
        assert index == {"capacity": 65536, "alignment": 512, "ranges": []}

    def test_upload_and_list(self, tmp_path):
        """Test two separated writes are reported as two aligned ranges."""
        backend = LocalRangeBackend(tmp_path / "f.bin")
        backend.create(65536)

        backend.upload_range(0, b"a" * 512)
        backend.upload_range(1512, b"b" * 512)

        assert backend.get_range_list() == [Range(0, 512), Range(1024, 2048)]

        content = backend.download()
        assert len(content) == 65536
        assert content[:512] == b"a" * 512
        assert content[512:1512] == b"\x00" * 1000
        assert content[1512:2024] == b"b" * 512

    def test_index_persists_between_instances(self, tmp_path):
        """Test a second backend on the same path sees earlier writes."""
        path = tmp_path / "f.bin"
        first = LocalRangeBackend(path)
        first.create(4096)
        first.upload_range(0, b"a" * 512)

        second = LocalRangeBackend(path)
        second.upload_range(512, b"b" * 512)
        assert second.get_range_list() == [Range(0, 1024)]

    def test_upload_past_capacity(self, tmp_path):
        """Test writes beyond capacity are rejected and leave the file alone."""
        backend = LocalRangeBackend(tmp_path / "f.bin")
        backend.create(1024)

        with pytest.raises(OutOfBoundsError):
            backend.upload_range(1000, b"x" * 100)

        assert backend.get_range_list() == []
        assert backend.download() == b"\x00" * 1024

    def test_missing_file(self, tmp_path):
        """Test operations on a file that was never created."""
        backend = LocalRangeBackend(tmp_path / "missing.bin")

        assert not backend.exists()
        with pytest.raises(BackendFailure, match="File not found") as info:
            backend.get_range_list()
        assert info.value.status_code == 404

        with pytest.raises(BackendFailure):
            backend.download()
        with pytest.raises(BackendFailure):
            backend.delete()

    def test_corrupt_index(self, tmp_path):
        """Test an unreadable index surfaces as a backend failure."""
        backend = LocalRangeBackend(tmp_path / "f.bin")
        backend.create(1024)
        backend.index_path.write_text("{not json")

        with pytest.raises(BackendFailure, match="Cannot read range index"):
            backend.get_range_list()

    @pytest.mark.parametrize("content", [
        '{"ranges": []}',
        "[1, 2]",
        '{"capacity": 1024, "ranges": [[0]]}',
        '{"capacity": 1024, "ranges": [[0, 4096]]}',
    ])
    def test_index_with_wrong_shape(self, tmp_path, content):
        """Test a structurally invalid index surfaces as a backend failure."""
        backend = LocalRangeBackend(tmp_path / "f.bin")
        backend.create(1024)
        backend.index_path.write_text(content)

        with pytest.raises(BackendFailure, match="Cannot read range index"):
            backend.get_range_list()
        with pytest.raises(BackendFailure):
            backend.size()

    def test_directory_target(self, tmp_path):
        """Test OS errors on the data file are wrapped."""
        target = tmp_path / "adir"
        target.mkdir()
        backend = LocalRangeBackend(target)

        with pytest.raises(BackendFailure, match="Cannot read") as info:
            backend.download()
        assert isinstance(info.value.__cause__, OSError)

        with pytest.raises(BackendFailure, match="Cannot delete"):
            backend.delete()
        assert target.exists()

    def test_delete(self, tmp_path):
        """Test delete removes data file and index."""
        backend = LocalRangeBackend(tmp_path / "f.bin")
        backend.create(1024)
        backend.delete()

        assert not backend.path.exists()
        assert not backend.index_path.exists()
        assert not backend.exists()

    def test_recreate_resets_ranges(self, tmp_path):
        """Test creating again starts from an empty range list."""
        backend = LocalRangeBackend(tmp_path / "f.bin")
        backend.create(1024)
        backend.upload_range(0, b"a")
        backend.create(2048)

        assert backend.size() == 2048
        assert backend.get_range_list() == []

    def test_requests_made(self, tmp_path):
        """Test request accounting."""
        with LocalRangeBackend(tmp_path / "f.bin") as backend:
            backend.create(1024)
            backend.upload_range(0, b"a")
            backend.get_range_list()
            assert backend.requests_made == 3

    def test_protocol(self, tmp_path):
        """Test the backend satisfies the sync protocol."""
        assert isinstance(LocalRangeBackend(tmp_path / "f.bin"), RangeBackend)


class TestLocalAsyncRangeBackend:
    """Test asynchronous local backend."""

    @pytest.mark.asyncio
    async def test_upload_and_list(self, tmp_path):
        """Test basic async round of create, write and list."""
        backend = LocalAsyncRangeBackend(tmp_path / "f.bin")
        await backend.create(65536)
        await backend.upload_range(0, b"a" * 512)
        await backend.upload_range(512, b"b" * 512)

        assert await backend.exists()
        assert await backend.size() == 65536
        assert await backend.get_range_list() == [Range(0, 1024)]
        assert (await backend.download())[:1024] == b"a" * 512 + b"b" * 512
        assert backend.requests_made == 7

        await backend.delete()
        assert not await backend.exists()

    @pytest.mark.asyncio
    async def test_context_manager(self, tmp_path):
        """Test async context manager usage."""
        async with LocalAsyncRangeBackend(tmp_path / "f.bin") as backend:
            await backend.create(1024)
            assert await backend.get_range_list() == []

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        """Test failures propagate through the thread wrapper."""
        backend = LocalAsyncRangeBackend(tmp_path / "missing.bin")
        with pytest.raises(BackendFailure):
            await backend.get_range_list()

    def test_protocol(self, tmp_path):
        """Test the backend satisfies the async protocol."""
        assert isinstance(LocalAsyncRangeBackend(tmp_path / "f.bin"), AsyncRangeBackend)


class TestFactoryFunctions:
    """Test local factory functions."""

    def test_open_local_backend(self, tmp_path):
        backend = open_local_backend(tmp_path / "f.bin")
        assert isinstance(backend, LocalRangeBackend)

    @pytest.mark.asyncio
    async def test_open_local_backend_async(self, tmp_path):
        backend = await open_local_backend_async(str(tmp_path / "f.bin"))
        assert isinstance(backend, LocalAsyncRangeBackend)

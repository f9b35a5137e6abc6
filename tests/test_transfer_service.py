"""
Test moving encoded files next to the originals
"""

import pytest

from conftest import write_file
from video_shrinker.services.transfer_service import (
    TRANSFER_DESTINATION_EXISTS,
    TRANSFER_IO_ERROR,
    TRANSFER_OK,
    TRANSFER_SOURCE_MISSING,
    FileTransfer,
    TransferState,
)
from video_shrinker.services import transfer_service


@pytest.fixture(params=[True, False], ids=["async", "sync"])
def transfer(request):
    return FileTransfer(asynchronous=request.param)


class TestFileTransfer:
    def test_clean_move(self, tmp_path, transfer):
        source = write_file(tmp_path / "work" / "movie.mp4", 100)
        destination_dir = tmp_path / "library"
        destination_dir.mkdir()

        handle = transfer.move(source, destination_dir, poll_interval=0.01)

        assert handle.state is TransferState.COMPLETED
        assert handle.error_code == TRANSFER_OK
        assert handle.is_clean
        assert not source.exists()
        assert (destination_dir / "movie.mp4").stat().st_size == 100
        assert [p.name for p in destination_dir.iterdir()] == ["movie.mp4"]

    def test_existing_destination_is_not_overwritten(self, tmp_path, transfer):
        source = write_file(tmp_path / "work" / "movie.mp4", 100)
        existing = write_file(tmp_path / "library" / "movie.mp4", 7)

        handle = transfer.move(source, existing.parent, poll_interval=0.01)

        assert handle.state is TransferState.FAILED
        assert handle.error_code == TRANSFER_DESTINATION_EXISTS
        assert not handle.is_clean
        assert source.exists()
        assert existing.stat().st_size == 7

    def test_replaceable_destination_is_replaced(self, tmp_path, transfer):
        source = write_file(tmp_path / "work" / "movie.mp4", 100)
        original = write_file(tmp_path / "library" / "movie.mp4", 5000)

        handle = transfer.move(source, original.parent, replaceable=original, poll_interval=0.01)

        assert handle.is_clean
        assert original.stat().st_size == 100

    def test_missing_source(self, tmp_path, transfer):
        destination_dir = tmp_path / "library"
        destination_dir.mkdir()

        handle = transfer.move(tmp_path / "nope.mp4", destination_dir, poll_interval=0.01)

        assert handle.state is TransferState.FAILED
        assert handle.error_code == TRANSFER_SOURCE_MISSING

    def test_missing_destination_dir_fails_without_leftovers(self, tmp_path, transfer):
        source = write_file(tmp_path / "work" / "movie.mp4", 100)

        handle = transfer.move(source, tmp_path / "does-not-exist", poll_interval=0.01)

        assert handle.state is TransferState.FAILED
        assert handle.error_code not in (None, TRANSFER_OK)
        assert source.exists()

    def test_unexpected_error_still_finishes(self, tmp_path, transfer, monkeypatch):
        source = write_file(tmp_path / "work" / "movie.mp4", 100)
        destination_dir = tmp_path / "library"
        destination_dir.mkdir()

        def explode(src, dst):
            raise RuntimeError("disk went away")

        monkeypatch.setattr(transfer_service.shutil, "move", explode)

        handle = transfer.move(source, destination_dir, poll_interval=0.01)

        assert handle.state is TransferState.FAILED
        assert handle.error_code == TRANSFER_IO_ERROR
        assert "disk went away" in handle.error_message
        assert source.exists()

    def test_start_returns_pollable_handle(self, tmp_path):
        source = write_file(tmp_path / "work" / "movie.mp4", 100)
        destination_dir = tmp_path / "library"
        destination_dir.mkdir()

        handle = FileTransfer(asynchronous=True).start(source, destination_dir)
        handle.wait(0.01)

        assert not handle.in_progress
        assert handle.destination == destination_dir / "movie.mp4"

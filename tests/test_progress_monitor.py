"""
Test progress derivation from the transcoder log
"""

from video_shrinker.services.progress_monitor import ProgressMonitor, last_elapsed_seconds


def append(path, text):
    with path.open("a", encoding="utf-8") as f:
        f.write(text)


class TestLastElapsedSeconds:
    def test_uses_most_recent_marker(self):
        text = "frame=1 time=00:00:10.00\rframe=2 time=00:01:05.50 bitrate=1"

        assert last_elapsed_seconds(text) == 65.5

    def test_hours(self):
        assert last_elapsed_seconds("time=01:00:00.00") == 3600

    def test_no_marker(self):
        assert last_elapsed_seconds("Press [q] to stop") is None
        assert last_elapsed_seconds("time=N/A") is None


class TestProgressMonitor:
    def test_percentage_from_log(self, tmp_path):
        log = tmp_path / "transcode.log"
        append(log, "time=00:00:30.00\n")

        monitor = ProgressMonitor(log, total_seconds=120)

        assert monitor.poll() == 25.0

    def test_never_decreases(self, tmp_path):
        log = tmp_path / "transcode.log"
        monitor = ProgressMonitor(log, total_seconds=100)

        append(log, "time=00:00:50.00\n")
        assert monitor.poll() == 50.0
        append(log, "time=00:00:20.00\n")
        assert monitor.poll() == 50.0

    def test_capped_at_one_hundred(self, tmp_path):
        log = tmp_path / "transcode.log"
        append(log, "time=00:05:00.00\n")

        assert ProgressMonitor(log, total_seconds=60).poll() == 100.0

    def test_missing_log_is_ignored(self, tmp_path):
        monitor = ProgressMonitor(tmp_path / "missing.log", total_seconds=60)

        assert monitor.poll() == 0.0

    def test_disabled_without_duration(self, tmp_path):
        log = tmp_path / "transcode.log"
        append(log, "time=00:00:30.00\n")

        for duration in (None, 0, -5):
            monitor = ProgressMonitor(log, total_seconds=duration)
            assert not monitor.enabled
            assert monitor.poll() == 0.0

    def test_context_manager_polls_in_background(self, tmp_path):
        log = tmp_path / "transcode.log"
        append(log, "time=00:00:06.00\n")

        with ProgressMonitor(log, total_seconds=60, interval=0.01) as monitor:
            append(log, "time=00:00:30.00\n")

        assert monitor.percent == 50.0
        assert monitor._thread is None

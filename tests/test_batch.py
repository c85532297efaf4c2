import json
from datetime import datetime, timezone

import pytest

from peakbagger_uploader.ascents import ExistingAscent
from peakbagger_uploader.batch import BatchRunner
from peakbagger_uploader.config import UploaderConfig
from peakbagger_uploader.errors import (
    AuthenticationError,
    ConversionError,
    DirectoryError,
    HistoryError,
)
from peakbagger_uploader.history import HISTORY_FILENAME
from peakbagger_uploader.metrics import FileStatus

from conftest import (
    SUMMIT_PEAK,
    SUMMIT_POINTS,
    T0,
    T1,
    T2,
    FakeCatalogClient,
    make_gpx,
)

NOW = datetime(2024, 7, 2, 12, 0, 0, tzinfo=timezone.utc)

NO_ELEVATION_POINTS = [(44.0, -71.0, None, T0), (44.1, -71.1, None, T1)]


def write_gpx(directory, name, tracks):
    path = directory / name
    path.write_text(make_gpx(tracks), encoding="utf-8")
    return path


def read_history(directory):
    with open(directory / HISTORY_FILENAME, encoding="utf-8") as f:
        return json.load(f)


def make_runner(client, converter, **config):
    return BatchRunner(
        UploaderConfig(username="me", password="secret", **config),
        client,
        converter=converter,
        clock=lambda: NOW,
    )


def test_single_track_file_is_uploaded(tmp_path, catalog, converter):
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    summary = make_runner(catalog, converter, directory=str(tmp_path)).run()

    assert len(catalog.submitted) == 1
    record = catalog.submitted[0]
    assert record.peak_id == SUMMIT_PEAK.peak_id
    assert record.date == T1
    assert record.time_up == T1 - T0
    assert record.time_down == T2 - T1
    assert record.start_elevation == 1000.0
    assert record.end_elevation == 1800.0

    assert read_history(tmp_path) == {
        "summit.gpx": {"Error": "", "Added": NOW.isoformat()}
    }
    assert summary.outcomes[0].status == FileStatus.SUCCEEDED


def test_duplicate_ascent_is_not_submitted(tmp_path, converter):
    client = FakeCatalogClient(ascents=[ExistingAscent(SUMMIT_PEAK.peak_id, T1)])
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    summary = make_runner(client, converter, directory=str(tmp_path)).run()

    assert client.submitted == []
    error = read_history(tmp_path)["summit.gpx"]["Error"]
    assert "already have ascent logged" in error
    assert "'Summit day'" in error
    assert summary.failed


def test_rerun_is_idempotent_and_retry_only_reprocesses_failures(tmp_path, catalog, converter):
    write_gpx(tmp_path, "good.gpx", [("Good", SUMMIT_POINTS)])
    write_gpx(tmp_path, "bad.gpx", [("Bad", NO_ELEVATION_POINTS)])
    directory = str(tmp_path)

    make_runner(catalog, converter, directory=directory).run()
    assert len(catalog.submitted) == 1
    history = read_history(tmp_path)
    assert history["good.gpx"]["Error"] == ""
    assert "missing elevation" in history["bad.gpx"]["Error"]

    converter.calls.clear()
    summary = make_runner(catalog, converter, directory=directory).run()
    assert len(catalog.submitted) == 1
    assert converter.calls == []
    assert {o.status for o in summary.outcomes} == {FileStatus.SKIPPED}

    summary = make_runner(catalog, converter, directory=directory, retry=True).run()
    assert converter.calls == [str(tmp_path / "bad.gpx")]
    assert len(catalog.submitted) == 1
    statuses = {o.filename: o.status for o in summary.outcomes}
    assert statuses == {"good.gpx": FileStatus.SKIPPED, "bad.gpx": FileStatus.FAILED}


def test_track_failures_are_combined_in_order(tmp_path, converter):
    client = FakeCatalogClient()
    write_gpx(
        tmp_path,
        "multi.gpx",
        [
            ("First", NO_ELEVATION_POINTS),
            ("Second", SUMMIT_POINTS),
            ("Third", [(44.0, -71.0, 1000.0, None)]),
        ],
    )

    make_runner(client, converter, directory=str(tmp_path)).run()

    # The valid track is still uploaded
    assert len(client.submitted) == 1
    assert read_history(tmp_path)["multi.gpx"]["Error"] == (
        "highest point missing elevation processing track 'First', "
        "highest point missing timestamp processing track 'Third'"
    )


def test_no_peaks_found_is_recorded(tmp_path, converter):
    client = FakeCatalogClient(peaks=[])
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    make_runner(client, converter, directory=str(tmp_path)).run()

    assert read_history(tmp_path)["summit.gpx"]["Error"] == (
        "no peaks found processing track 'Summit day'"
    )


def test_upload_rejection_is_recorded(tmp_path, converter):
    client = FakeCatalogClient(reject_uploads=True)
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    make_runner(client, converter, directory=str(tmp_path)).run()

    assert "failed to add ascent" in read_history(tmp_path)["summit.gpx"]["Error"]


def test_dry_run_builds_but_does_not_submit(tmp_path, catalog, converter):
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    runner = make_runner(catalog, converter, directory=str(tmp_path), dry_run=True)
    runner.run()

    assert catalog.submitted == []
    assert runner.track_counts["dry_run"] == 1
    assert read_history(tmp_path)["summit.gpx"]["Error"] == ""


def test_parse_error_fails_only_that_file(tmp_path, catalog, converter):
    (tmp_path / "broken.gpx").write_text("<gpx><trk>", encoding="utf-8")
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    make_runner(catalog, converter, directory=str(tmp_path)).run()

    history = read_history(tmp_path)
    assert history["broken.gpx"]["Error"].startswith("parse gpx")
    assert history["summit.gpx"]["Error"] == ""
    assert len(catalog.submitted) == 1


def test_conversion_error_is_recorded(tmp_path, catalog):
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    def failing_converter(path, simplify_count):
        raise ConversionError("gpsbabel conversion failed (exit status 1): bad file")

    make_runner(catalog, failing_converter, directory=str(tmp_path)).run()

    assert read_history(tmp_path)["summit.gpx"]["Error"] == (
        "gpsbabel conversion failed (exit status 1): bad file"
    )


def test_ineligible_files_are_ignored(tmp_path, catalog, converter):
    (tmp_path / "notes.txt").write_text("not a track")
    (tmp_path / "archive.gpx").mkdir()

    summary = make_runner(catalog, converter, directory=str(tmp_path)).run()

    assert summary.outcomes == []
    assert converter.calls == []


def test_single_file_mode_bypasses_history(tmp_path, catalog, converter):
    path = write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])
    (tmp_path / HISTORY_FILENAME).write_text(
        json.dumps({"summit.gpx": {"Error": "", "Added": NOW.isoformat()}})
    )

    summary = make_runner(catalog, converter, filename=str(path)).run()

    assert len(catalog.submitted) == 1
    assert summary.outcomes[0].status == FileStatus.SUCCEEDED
    assert read_history(tmp_path) == {
        "summit.gpx": {"Error": "", "Added": NOW.isoformat()}
    }


def test_single_file_mode_reports_failure(tmp_path, converter):
    path = write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    summary = make_runner(FakeCatalogClient(peaks=[]), converter, filename=str(path)).run()

    assert summary.failed
    assert summary.failures()[0].error == "no peaks found processing track 'Summit day'"
    assert not (tmp_path / HISTORY_FILENAME).exists()


def test_authentication_failure_aborts(tmp_path, converter):
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])

    with pytest.raises(AuthenticationError):
        make_runner(FakeCatalogClient(fail_login=True), converter, directory=str(tmp_path)).run()

    assert converter.calls == []
    assert not (tmp_path / HISTORY_FILENAME).exists()


def test_unreadable_directory_aborts(tmp_path, catalog, converter):
    with pytest.raises(DirectoryError):
        make_runner(catalog, converter, directory=str(tmp_path / "missing")).run()


def test_corrupt_history_aborts(tmp_path, catalog, converter):
    write_gpx(tmp_path, "summit.gpx", [("Summit day", SUMMIT_POINTS)])
    (tmp_path / HISTORY_FILENAME).write_text("{corrupt")

    with pytest.raises(HistoryError):
        make_runner(catalog, converter, directory=str(tmp_path)).run()

    assert converter.calls == []
    assert catalog.submitted == []


def test_history_is_saved_after_each_file(tmp_path, converter):
    write_gpx(tmp_path, "a.gpx", [("A", SUMMIT_POINTS)])
    write_gpx(tmp_path, "b.gpx", [("B", SUMMIT_POINTS)])
    seen = []

    class Crash(BaseException):
        """Simulates the process being killed mid-file."""

    class CrashingClient(FakeCatalogClient):
        def submit_ascent(self, record):
            if seen:
                raise Crash()
            seen.append(record)
            return "1"

    with pytest.raises(Crash):
        make_runner(CrashingClient(), converter, directory=str(tmp_path)).run()

    history = read_history(tmp_path)
    assert len(history) == 1
    assert list(history.values())[0]["Error"] == ""

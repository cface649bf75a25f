"""
Tests for TrackExporter output files.
"""

import csv
import json

from cellmigration.assignment import Track
from cellmigration.config import KinematicsConfig
from cellmigration.tracks import RESULT_COLUMNS, KinematicsCalculator, TrackExporter


def _results():
    tracks = [
        Track(2, [(0.0, 0.0), (3.0, 4.0), (6.0, 8.0)]),
        Track(1, [(10.0, 10.0), (12.0, 11.0), (15.0, 11.0)]),
    ]
    return KinematicsCalculator.compute_all(tracks, KinematicsConfig(frame_interval=1.0, pixel_size=1.0))


class TestTrackExporter:
    """Test suite for CSV and JSON exports."""

    def test_csv_columns_and_order(self, tmp_path):
        output = tmp_path / "out" / "tracks.csv"
        TrackExporter.to_csv(_results(), output)

        with open(output, newline="") as f:
            rows = list(csv.reader(f))

        assert rows[0] == RESULT_COLUMNS
        assert len(rows) == 7
        # Sorted by track id, then frame
        assert [(r[0], r[1]) for r in rows[1:4]] == [("1", "1"), ("1", "2"), ("1", "3")]
        assert rows[1][RESULT_COLUMNS.index("step")] == "NaN"
        assert rows[1][RESULT_COLUMNS.index("length")] == "0.0000"
        assert rows[3][RESULT_COLUMNS.index("length")] == "5.2361"

    def test_json_replaces_nan_with_null(self, tmp_path):
        output = tmp_path / "tracks.json"
        TrackExporter.to_json(_results(), output)

        with open(output) as f:
            data = json.load(f)

        assert sorted(data["tracks"]) == ["1", "2"]
        first = data["tracks"]["1"][0]
        assert first["frame"] == 1
        assert first["step"] is None
        assert first["heading"] is None
        assert data["statistics"]["2"]["total_length"] == 10.0
        assert data["statistics"]["2"]["start_position"] == [0.0, 0.0]

    def test_json_without_statistics(self, tmp_path):
        output = tmp_path / "tracks.json"
        TrackExporter.to_json(_results(), output, include_statistics=False)
        with open(output) as f:
            assert json.load(f)["statistics"] == {}

    def test_summary_csv(self, tmp_path):
        output = tmp_path / "summary.csv"
        TrackExporter.to_summary_csv(_results(), output)

        with open(output, newline="") as f:
            rows = list(csv.DictReader(f))

        assert [r["track_id"] for r in rows] == ["1", "2"]
        assert rows[1]["straightness"] == "1.0000"
        assert rows[1]["end_x"] == "6.0000"
        assert rows[0]["n_frames"] == "3"

    def test_summary_csv_without_tracks(self, tmp_path):
        output = tmp_path / "summary.csv"
        TrackExporter.to_summary_csv({}, output)
        assert not output.exists()

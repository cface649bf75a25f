"""
End-to-end tests on synthetic timelapses of moving dark disks.
"""

import csv
import json

import numpy as np
import pytest
import tifffile
from typer.testing import CliRunner

from cellmigration.errors import NoRegionsAvailable
from cellmigration.io import FrameStack
from cellmigration.main import app
from cellmigration.regions import RegionExtractor
from cellmigration.tracker import CellTracker
from cellmigration.tracks import RESULT_COLUMNS
from tests.helpers.synthetic import config_dict, make_frame, pipeline_config

PATH_A = [(20, 20), (23, 21), (26, 22)]
PATH_B = [(45, 45), (44, 47), (43, 49)]


def _stack():
    return np.stack([make_frame([a, b], radius=6) for a, b in zip(PATH_A, PATH_B)])


class TestCellTracker:
    """Test suite for the CellTracker pipeline."""

    def test_tracks_follow_cells(self):
        tracker = CellTracker(pipeline_config())
        masks, tracks = tracker.process_timelapse(FrameStack(_stack()), [(18, 19), (47, 44)])

        assert masks.shape == (3, 64, 64)
        assert [t.track_id for t in tracks] == [1, 2]
        for track, path in zip(tracks, (PATH_A, PATH_B)):
            assert len(track) == 3
            assert np.allclose(track.as_array(), np.array(path, dtype=float), atol=0.5)

    def test_segment_frame_returns_regions(self):
        tracker = CellTracker(pipeline_config())
        mask, regions = tracker.segment_frame(_stack()[0])
        assert mask.shape == (64, 64)
        assert len(regions) == 2
        assert regions[0].area >= 20
        # The segmenter already applied min_region_area
        assert regions == RegionExtractor.extract(mask)

    def test_empty_first_frame(self):
        images = _stack()
        images[0] = 120
        with pytest.raises(NoRegionsAvailable) as exc_info:
            CellTracker(pipeline_config()).process_timelapse(FrameStack(images), [(20, 20)])
        assert exc_info.value.frame_index == 1

    def test_empty_frame_mid_sequence(self):
        images = _stack()
        images[1] = 120
        with pytest.raises(NoRegionsAvailable) as exc_info:
            CellTracker(pipeline_config()).process_timelapse(FrameStack(images), [(20, 20)])
        assert exc_info.value.frame_index == 2

    def test_export_tracks(self, tmp_path):
        tracker = CellTracker(pipeline_config())
        _, tracks = tracker.process_timelapse(FrameStack(_stack()), [(20, 20)])
        results = tracker.export_tracks(tracks, tmp_path, formats=["csv", "json", "summary"])

        assert sorted(results) == [1]
        assert (tmp_path / "tracks.csv").exists()
        assert (tmp_path / "tracks.json").exists()
        assert (tmp_path / "tracks_summary.csv").exists()
        assert results[1][2].length == pytest.approx(np.hypot(3, 1) + np.hypot(3, 1), abs=1.0)

    def test_save_intermediate_results(self, tmp_path):
        tracker = CellTracker(pipeline_config())
        stack = FrameStack(_stack())
        masks, tracks = tracker.process_timelapse(stack, [(20, 20)])
        tracker.save_intermediate_results(tmp_path, masks, stack, tracks)

        assert tifffile.imread(tmp_path / "masks.tiff").shape == (3, 64, 64)
        assert tifffile.imread(tmp_path / "tracks_overlay.tiff").shape == (3, 64, 64, 3)


class TestCommandLine:
    """Test suite for the command-line interface."""

    def _inputs(self, tmp_path, images=None):
        stack_path = tmp_path / "stack.tif"
        tifffile.imwrite(stack_path, _stack() if images is None else images)
        config_path = tmp_path / "params.json"
        config_path.write_text(json.dumps(config_dict()))
        return stack_path, config_path

    def test_run(self, tmp_path):
        stack_path, config_path = self._inputs(tmp_path)
        seeds_path = tmp_path / "seeds.csv"
        seeds_path.write_text("x,y\n47,44\n")
        output = tmp_path / "results"

        result = CliRunner().invoke(
            app,
            [str(stack_path), "-c", str(config_path), "-s", "18,19", "--seeds-file", str(seeds_path), "-o", str(output)],
        )
        assert result.exit_code == 0, result.output

        with open(output / "tracks.csv", newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == RESULT_COLUMNS
        assert len(rows) == 7
        # frame_interval is 2.0 in the test configuration
        assert rows[3][RESULT_COLUMNS.index("time")] == "4.0000"
        assert (output / "masks.tiff").exists()
        assert (output / "tracks_overlay.tiff").exists()
        assert (output / "tracks_summary.csv").exists()

    def test_no_intermediate(self, tmp_path):
        stack_path, config_path = self._inputs(tmp_path)
        output = tmp_path / "results"
        result = CliRunner().invoke(
            app,
            [str(stack_path), "-c", str(config_path), "-s", "20,20", "-o", str(output), "--no-intermediate"],
        )
        assert result.exit_code == 0, result.output
        assert (output / "tracks.csv").exists()
        assert not (output / "masks.tiff").exists()

    def test_requires_seeds(self, tmp_path):
        stack_path, config_path = self._inputs(tmp_path)
        result = CliRunner().invoke(app, [str(stack_path), "-c", str(config_path)])
        assert result.exit_code == 1

    def test_blank_stack_fails(self, tmp_path):
        images = np.full((3, 64, 64), 120, dtype=np.uint8)
        stack_path, config_path = self._inputs(tmp_path, images)
        result = CliRunner().invoke(
            app,
            [str(stack_path), "-c", str(config_path), "-s", "20,20", "-o", str(tmp_path / "results")],
        )
        assert result.exit_code == 1

    def test_malformed_stack_reports_error(self, tmp_path):
        """An unreadable TIFF ends with a clean exit code, not a traceback."""
        _, config_path = self._inputs(tmp_path)
        stack_path = tmp_path / "broken.tif"
        stack_path.write_bytes(b"this is not a tiff file")
        result = CliRunner().invoke(
            app,
            [str(stack_path), "-c", str(config_path), "-s", "20,20", "-o", str(tmp_path / "results")],
        )
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert not (tmp_path / "results" / "tracks.csv").exists()

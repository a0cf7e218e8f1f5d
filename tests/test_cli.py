"""
Tests for the latentnav command line.
"""

import json
from unittest.mock import patch

import pandas as pd
import pytest

from latentnav.scripts.cli import main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LATENTNAV_SERVER_URL", "LATENTNAV_USE_MOCK", "LATENTNAV_COMPOSITION_MODE"):
        monkeypatch.delenv(name, raising=False)


def run_cli(*argv):
    with patch("sys.argv", ["latentnav", *argv]):
        main()


class TestBake:
    def test_bake_to_csv(self, tmp_path, capsys):
        out = tmp_path / "grid" / "points.csv"
        run_cli("bake", "--mock", "--x-axis", "2", "--y-axis", "4", "--grid-size", "3",
                "--chunk-size", "4", "--range", "1.0", "--out", str(out))

        df = pd.read_csv(out)
        assert list(df.columns) == ["x", "y", "has_image"]
        assert len(df) == 9
        assert df["x"].min() == -1.0 and df["y"].max() == 1.0
        assert df["has_image"].all()
        assert "Grid: 9 points" in capsys.readouterr().out

    def test_bake_same_axes(self):
        with pytest.raises(SystemExit) as exc_info:
            run_cli("bake", "--mock", "--x-axis", "1", "--y-axis", "1")
        assert exc_info.value.code == 1


class TestRender:
    def test_render_timeline(self, tmp_path, capsys):
        path = tmp_path / "timeline.json"
        path.write_text(json.dumps([
            {"base_vector": [0.0] * 10, "slider_values": [0.0] * 10, "duration": 2.0},
            {"base_vector": [1.0] * 10, "slider_values": [0.5] * 10, "duration": 1.0},
        ]))

        run_cli("render", str(path), "--mock", "--fps", "12")

        out = capsys.readouterr().out
        assert "Rendering 2 keyframes at 12 fps" in out
        assert "Video: https://" in out

    def test_render_single_keyframe(self, tmp_path):
        path = tmp_path / "timeline.json"
        path.write_text(json.dumps([{"vector": [0.0] * 10}]))

        with pytest.raises(SystemExit) as exc_info:
            run_cli("render", str(path), "--mock")
        assert exc_info.value.code == 1

    def test_missing_timeline(self, tmp_path):
        with pytest.raises(SystemExit):
            run_cli("render", str(tmp_path / "nope.json"), "--mock")


def test_no_command():
    with pytest.raises(SystemExit):
        run_cli()

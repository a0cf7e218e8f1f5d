"""
Unit tests for latentnav.visualization figures and Gradio app
"""

import asyncio
import inspect
import json

import pandas as pd
import pytest

from latentnav.config import EngineConfig
from latentnav.data.training import training_frame
from latentnav.service.mock import MockGenerationService
from latentnav.visualization.app import (
    _parse_pointer,
    create_gradio_app,
    slider_label,
    status_message,
)
from latentnav.visualization.figures import create_map_figure
from latentnav.visualization.navigator import Navigator


def make_navigator():
    config = EngineConfig(latent_dim=4, grid_size=3, chunk_size=9, training_points=12)
    return Navigator(config, service=MockGenerationService(latent_dim=4, training_points=12))


class TestMapFigure:
    """Test the plotly map figure."""

    def test_traces_and_ranges(self):
        df = training_frame([[1.0, 2.0, 3.0], [-1.0, -2.0, -3.0]], 3)
        fig = create_map_figure(df, 2, 0, 5.0, 0.5, size=400, marker=(1.0, 0.25))

        assert [t.name for t in fig.data] == ["training", "selection"]
        assert list(fig.data[0].x) == [3.0, -3.0]
        assert list(fig.data[0].y) == [1.0, -1.0]
        assert list(fig.layout.xaxis.range) == [-5.0, 5.0]
        assert list(fig.layout.yaxis.range) == [-0.5, 0.5]
        assert fig.layout.width == 400 and fig.layout.height == 400

    def test_no_marker(self):
        df = training_frame([[0.0, 0.0]], 2)
        fig = create_map_figure(df, 0, 1, 5.0, 5.0)
        assert [t.name for t in fig.data] == ["training"]

    def test_empty_scatter(self):
        fig = create_map_figure(pd.DataFrame(), 0, 1, 5.0, 5.0, marker=(0.0, 0.0))
        assert [t.name for t in fig.data] == ["selection"]


class TestTrainingFrame:
    def test_pad_and_truncate(self):
        df = training_frame([[1.0], [1.0, 2.0, 3.0, 4.0]], 3)
        assert list(df.columns) == ["c0", "c1", "c2"]
        assert df.iloc[0].tolist() == [1.0, 0.0, 0.0]
        assert df.iloc[1].tolist() == [1.0, 2.0, 3.0]


class TestHelpers:
    """Test UI helper functions."""

    def test_parse_pointer(self):
        assert _parse_pointer(json.dumps({"px": 10, "py": 20.5, "size": 600})) == (10.0, 20.5, 600.0)

    @pytest.mark.parametrize("raw", ["", "not json", json.dumps({"px": 1}), json.dumps([1, 2])])
    def test_parse_pointer_malformed(self, raw):
        assert _parse_pointer(raw) is None

    def test_slider_labels(self):
        navigator = make_navigator()
        assert slider_label(navigator, 0) == "c0 [X]"
        assert slider_label(navigator, 1) == "c1 [Y]"
        assert slider_label(navigator, 2) == "c2"

    def test_status_message(self):
        navigator = make_navigator()
        assert status_message(navigator) == "Grid: empty"
        asyncio.run(navigator.start())
        assert status_message(navigator, "Saved") == "Saved | Grid: 9 previews"


class TestCreateGradioApp:
    """Test Gradio app creation."""

    def test_app_creation(self):
        app = create_gradio_app(make_navigator())

        assert app is not None
        # Gradio Blocks object
        assert hasattr(app, 'launch')
        assert hasattr(app, 'queue')

    def test_handlers_run_on_event_loop(self):
        """Test that every event handler is a coroutine function."""
        app = create_gradio_app(make_navigator())
        fns = app.fns.values() if isinstance(app.fns, dict) else app.fns
        handlers = [block_fn.fn for block_fn in fns if block_fn.fn is not None]

        assert handlers
        assert all(inspect.iscoroutinefunction(fn) for fn in handlers)

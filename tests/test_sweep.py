"""
SMOKE TEST: COORDINATE SWEEP AND PLOTS
======================================

PURPOSE:
--------
Checks that a loaded system can be swept over one coordinate end to end:
the DataFrame has one row per value and the expected columns, the mass
entries follow the closed-form pendulum terms, and the plots land on disk.
"""

import os

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose

from mini_mbs.explore import evaluate_state, sweep_coordinate
from mini_mbs.viz import plot_configuration, plot_sweep


def test_evaluate_state_columns(double_pendulum):
    row = evaluate_state(double_pendulum, np.zeros(4))
    assert set(row) == {
        "M_0_0", "M_0_1", "M_1_1", "f_0", "f_1",
        "upper_x", "upper_y", "upper_z", "lower_x", "lower_y", "lower_z",
    }
    assert row["upper_x"] == pytest.approx(0.5)
    assert row["lower_x"] == pytest.approx(1.25)


def test_sweep_elbow_angle(double_pendulum):
    values = np.linspace(-np.pi, np.pi, 9)
    df = sweep_coordinate(double_pendulum, 1, values)

    assert isinstance(df, pd.DataFrame)
    assert len(df) == len(values)
    assert df.columns[0] == "value"
    assert_allclose(df["value"], values)

    # Coupling term follows cos(θ2); the elbow's own term does not move
    assert_allclose(df["M_0_1"], 1 / 48 + 1 / 16 + 0.25 * np.cos(values), atol=1e-12)
    assert_allclose(df["M_1_1"], np.full(len(values), 1 / 12), atol=1e-12)
    assert df["M_0_0"].idxmax() == len(values) // 2


def test_sweep_keeps_other_coordinates(cart_pendulum):
    base = np.array([0.4, 0.0, 0.0, 0.0])
    df = sweep_coordinate(cart_pendulum, 1, [0.0, np.pi / 2], base_state=base)
    assert_allclose(df["cart_x"], [0.4, 0.4])
    assert_allclose(df["pole_y"], [0.0, 0.4], atol=1e-12)


def test_sweep_coordinate_out_of_range(double_pendulum):
    with pytest.raises(IndexError):
        sweep_coordinate(double_pendulum, 2, [0.0])


def test_plots_written(double_pendulum, tmp_path):
    df = sweep_coordinate(double_pendulum, 1, np.linspace(0.0, np.pi, 5))

    sweep_path = plot_sweep(df, ["M_0_0", "M_0_1"], str(tmp_path / "plots" / "sweep.png"), title="mass")
    config_path = plot_configuration(double_pendulum, str(tmp_path / "configuration.png"))

    assert os.path.exists(sweep_path)
    assert os.path.exists(config_path)
    assert os.path.getsize(config_path) > 0

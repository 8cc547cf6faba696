# mini_mbs/viz.py
"""
VISUALIZATION: SWEEP RESULTS AND CONFIGURATIONS
===============================================

Two plots:
- plot_sweep: selected columns of a sweep DataFrame against the swept value
- plot_configuration: the element tree in one plane (joint centres to
  centres of gravity), for a quick visual check of a loaded system
"""

import os
from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
import pandas as pd

from .system import MultibodySystem


_AXES = {"x": 0, "y": 1, "z": 2}


def plot_sweep(
    df: pd.DataFrame,
    columns: Sequence[str],
    outpath: str,
    xlabel: str = "coordinate value",
    title: Optional[str] = None,
) -> str:
    """Plot ``columns`` of ``df`` against its "value" column and save to ``outpath``."""
    fig, ax = plt.subplots(figsize=(8, 5))
    for column in columns:
        ax.plot(df["value"], df[column], label=column, linewidth=2)
    ax.set_xlabel(xlabel)
    ax.grid(True, alpha=0.3)
    ax.legend()
    if title:
        ax.set_title(title)

    directory = os.path.dirname(outpath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    plt.tight_layout()
    plt.savefig(outpath, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return outpath


def plot_configuration(
    system: MultibodySystem,
    outpath: str,
    plane: str = "xy",
    title: Optional[str] = None,
) -> str:
    """
    Draw the current configuration of an updated system in ``plane``.

    Each element is drawn as a line from its joint centre to its centre of
    gravity and on to its children's joint centres.
    """
    i, j = _AXES[plane[0]], _AXES[plane[1]]
    fig, ax = plt.subplots(figsize=(6, 6))

    for element in system.elements:
        joint = element.get_joint_position()
        cog = element.get_cog_position()
        points: List = [joint, cog]
        for child in element.children:
            points.extend([child.get_joint_position(), cog])
        ax.plot([p[i] for p in points], [p[j] for p in points], color='steelblue', linewidth=2)
        ax.plot(joint[i], joint[j], 'o', color='black', markersize=5)
        ax.plot(cog[i], cog[j], 's', color='darkorange', markersize=6)
        ax.annotate(element.name, (cog[i], cog[j]), textcoords="offset points", xytext=(5, 5))

    ax.set_xlabel(plane[0])
    ax.set_ylabel(plane[1])
    ax.set_aspect('equal', adjustable='datalim')
    ax.grid(True, alpha=0.3)
    if title:
        ax.set_title(title)

    directory = os.path.dirname(outpath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    plt.tight_layout()
    plt.savefig(outpath, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return outpath

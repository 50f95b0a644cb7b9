"""
Matplotlib rendering of localization runs.

Draws the world boundary, the landmarks, the true / estimated / dead-reckoning
trajectories and the scaled position-uncertainty ellipse of the estimate.
The confidence scaling is a display choice and lives here, not in the filter.
"""

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Ellipse, Rectangle

from ekf_localization.config import WorldConfig
from ekf_localization.utils.geometry import covariance_ellipse


def plot_covariance_ellipse(ax, mean_xy, block, scale=2.4477, **kwargs):
    """
    Add the ellipse of a 2×2 position covariance centred at ``mean_xy``.

    ``scale`` multiplies the semi-axes (2.4477 ≈ 95% for two dimensions).
    Returns the added ``Ellipse`` patch.
    """
    major, minor, theta = covariance_ellipse(block, scale)
    style = dict(fill=False, edgecolor="r", linewidth=1.5)
    style.update(kwargs)
    patch = Ellipse(
        xy=(float(mean_xy[0]), float(mean_xy[1])),
        width=2 * major,
        height=2 * minor,
        angle=np.degrees(theta),
        **style,
    )
    ax.add_patch(patch)
    return patch


def plot_localization(result, world=None, ax=None, show=False, ellipse_every=0, upto=None):
    """
    Visualize a simulation run.

    Parameters
    ----------
    result : SimulationResult
        Output of ``run_simulation``.
    world : WorldConfig, optional
        Provides the boundary and the ellipse confidence scale.
    ax : matplotlib.axes.Axes, optional
        Axes to draw on; a new figure is created when omitted.
    show : bool, optional
        Call ``plt.show()`` at the end (default: False).
    ellipse_every : int, optional
        Also draw the ellipse every n recorded steps (0 = final only).
    upto : int, optional
        Playback index: draw only recorded steps ``0..upto`` and put the
        highlighted ellipse at step ``upto`` (default: the whole run).

    Returns
    -------
    matplotlib.axes.Axes
    """
    world = world or WorldConfig()
    if ax is None:
        _, ax = plt.subplots(figsize=(7, 7))

    x1, x2, y1, y2 = world.boundary
    ax.add_patch(Rectangle((x1, y1), x2 - x1, y2 - y1, fill=False, linestyle="--", edgecolor="0.5"))

    localizer = result.localizer
    end = len(localizer.states) if upto is None else upto + 1
    if not 0 < end <= len(localizer.states):
        raise ValueError(f"upto must be in [0, {len(localizer.states) - 1}], got {upto}")

    # Ground truth, estimate and baseline
    gt = result.groundtruth.iloc[:end]
    ekf = result.ekf.iloc[:end]
    dead_reckoning = result.dead_reckoning.iloc[:end]
    ax.plot(gt["x"], gt["y"], "b", label="Ground truth")
    ax.plot(ekf["x"], ekf["y"], "r", label="EKF estimate")
    ax.plot(dead_reckoning["x"], dead_reckoning["y"], "g:", label="Dead reckoning")
    ax.plot(gt["x"].iloc[0], gt["y"].iloc[0], "go", label="Start point")

    # Landmark locations and indexes
    for landmark_id, landmark in result.registry.items():
        ax.text(landmark.x + 8, landmark.y + 8, str(landmark_id), alpha=0.5, fontsize=10)
    ax.scatter(
        [lm.x for lm in result.registry],
        [lm.y for lm in result.registry],
        s=200,
        c=[lm.color for lm in result.registry],
        alpha=0.4,
        marker="*",
        label="Landmarks",
    )

    history = list(zip(localizer.states, localizer.covariances))[:end]
    if ellipse_every > 0:
        for state, sigma in history[::ellipse_every]:
            plot_covariance_ellipse(
                ax, state[1:3], sigma[:2, :2], world.ellipse_chi, edgecolor="0.6", linewidth=0.8
            )
    state, sigma = history[-1]
    plot_covariance_ellipse(ax, state[1:3], sigma[:2, :2], world.ellipse_chi)

    ax.set_xlim(0, world.width)
    ax.set_ylim(0, world.height)
    ax.set_aspect("equal")
    ax.set_title("EKF Localization with Known Landmarks")
    ax.legend(loc="center left", bbox_to_anchor=(1, 0.5))

    if show:
        plt.show()
    return ax

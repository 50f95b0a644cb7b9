import marimo

__generated_with = "0.16.5"
app = marimo.App(width="full")


@app.cell(hide_code=True)
def _(mo):
    mo.md(
        r"""
    # EKF Localization with Known Landmarks

    **Learning Objectives**:
    - Propagate a Gaussian pose belief through the velocity motion model
    - Correct it with range/bearing observations of known landmarks
    - See how the noise model and the correction policy shape the uncertainty ellipse

    **Interactive Controls**: adjust the motion-noise coefficients, the sensor noise,
    the fusion policy and the simulation length below. The simulation, the plot and
    the metrics update automatically.
    """
    )
    return


@app.cell(hide_code=True)
def _():
    # Standard library
    import os
    import sys

    # Data manipulation and visualization
    import matplotlib.pyplot as plt
    import numpy as np
    return np, os, plt, sys


@app.cell
def _(os, sys):
    # Setup project environment: navigate to project root
    if os.path.basename(os.getcwd()) == "notebooks":
        os.chdir("..")
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    # Import project modules
    from ekf_localization.simulation.runner import run_simulation
    from ekf_localization.utils.metrics import compare_algorithms
    from ekf_localization.visualization import marimo_helpers as mh
    from ekf_localization.visualization.plotting import plot_localization
    return compare_algorithms, mh, plot_localization, run_simulation


@app.cell
def _(mh, mo):
    alpha_sliders = mh.create_alpha_sliders()
    sensor_sliders = mh.create_sensor_noise_sliders()
    policy_selectors = mh.create_fusion_selectors()
    steps_slider = mh.create_steps_slider()
    seed_input = mo.ui.number(start=0, stop=10_000, value=7, label="Seed")

    mo.hstack(
        [
            mh.build_control_panel({"## Motion noise": None, **alpha_sliders}),
            mh.build_control_panel({"## Sensor noise": None, **sensor_sliders}),
            mh.build_control_panel(
                {"## Policy": None, **policy_selectors, "steps": steps_slider, "seed": seed_input}
            ),
        ],
        justify="start",
    )
    return alpha_sliders, policy_selectors, seed_input, sensor_sliders, steps_slider


@app.cell
def _(
    alpha_sliders,
    mh,
    policy_selectors,
    run_simulation,
    seed_input,
    sensor_sliders,
    steps_slider,
):
    config = mh.build_filter_config(
        alphas=alpha_sliders, sensor=sensor_sliders, policy=policy_selectors
    )
    result = run_simulation(
        steps=steps_slider.value, dt=0.1, filter_config=config, seed=int(seed_input.value)
    )
    return config, result


@app.cell
def _(mh, result):
    # Playback: scrub through the recorded steps of the run
    n_frames = len(result.groundtruth)
    time_slider = mh.create_time_scrubber(n_frames, default=n_frames - 1)
    time_slider
    return (time_slider,)


@app.cell
def _(plot_localization, plt, result, time_slider):
    fig, ax = plt.subplots(figsize=(8, 8))
    plot_localization(result, ax=ax, ellipse_every=50, upto=time_slider.value)
    fig.tight_layout()
    fig
    return


@app.cell
def _(compare_algorithms, result):
    compare_algorithms(
        {
            "EKF": (result.ekf, result.groundtruth),
            "Dead Reckoning": (result.dead_reckoning, result.groundtruth),
        }
    )
    return


@app.cell(hide_code=True)
def _(mo, np, result):
    major, minor, theta = result.localizer.pose_ellipse(scale=2.4477)
    mo.md(
        f"""
    **Final 95% position ellipse**: major {major:.1f} px, minor {minor:.1f} px,
    orientation {np.degrees(theta):.1f}°. Landmark observations: {result.observations}.
    """
    )
    return


@app.cell
def _():
    import marimo as mo
    return (mo,)


if __name__ == "__main__":
    app.run()

"""
Marimo UI widget helpers for EKF localization parameter controls.

Provides standardized widget creation functions for the motion-noise
coefficients, sensor noise, fusion policy and simulation length. All widgets
are designed to work with Marimo's reactive execution model.

Example:
    import marimo as mo
    from ekf_localization.visualization.marimo_helpers import (
        create_alpha_sliders,
        build_filter_config,
    )

    # Create reactive controls
    alphas = create_alpha_sliders()

    # Use in dependent cell
    config = build_filter_config(alphas=alphas)
"""

import math

import marimo as mo

from ekf_localization.config import COVARIANCE_UPDATE_FORMS, FUSION_MODES, FilterConfig


def create_parameter_slider(
    name: str,
    min_val: float,
    max_val: float,
    default: float,
    step: float | None = None,
) -> mo.ui.slider:
    """
    Create a standardized parameter slider with consistent styling.

    Args:
        name: Slider label (e.g., "α1")
        min_val: Minimum slider value
        max_val: Maximum slider value
        default: Default/initial value
        step: Step size (default: (max-min)/100)

    Returns:
        Marimo slider widget with show_value=True
    """
    if step is None:
        step = (max_val - min_val) / 100

    return mo.ui.slider(
        min_val,
        max_val,
        value=default,
        step=step,
        label=name,
        show_value=True,
    )


def create_alpha_sliders(defaults: FilterConfig | None = None) -> dict[str, mo.ui.slider]:
    """
    Create sliders for the four motion-noise coefficients.

    Args:
        defaults: Config supplying the initial values (default: FilterConfig())

    Returns:
        Dictionary with keys 'alpha1' .. 'alpha4'
    """
    defaults = defaults or FilterConfig()
    return {
        "alpha1": create_parameter_slider("α1 (v → v noise)", 0.0, 0.5, defaults.alpha1, 0.005),
        "alpha2": create_parameter_slider("α2 (ω → v noise)", 0.0, 0.5, defaults.alpha2, 0.005),
        "alpha3": create_parameter_slider("α3 (v → ω noise)", 0.0, 0.01, defaults.alpha3, 0.0001),
        "alpha4": create_parameter_slider("α4 (ω → ω noise)", 0.0, 0.5, defaults.alpha4, 0.005),
    }


def create_sensor_noise_sliders(defaults: FilterConfig | None = None) -> dict[str, mo.ui.slider]:
    """
    Create sliders for the measurement-noise model.

    Returns:
        Dictionary with keys 'range_alpha' and 'angle_sigma_deg'
    """
    defaults = defaults or FilterConfig()
    return {
        "range_alpha": create_parameter_slider(
            "Range noise (fraction of range)", 0.01, 0.5, defaults.detection_range_alpha, 0.01
        ),
        "angle_sigma_deg": create_parameter_slider(
            "Bearing noise σ (deg)", 0.1, 10.0, math.degrees(defaults.detection_angle_sigma), 0.1
        ),
    }


def create_fusion_selectors() -> dict[str, mo.ui.dropdown]:
    """
    Create dropdowns for the correction policy.

    Returns:
        Dictionary with keys 'fusion' and 'covariance_update'
    """
    return {
        "fusion": mo.ui.dropdown(list(FUSION_MODES), label="Fusion", value=FUSION_MODES[0]),
        "covariance_update": mo.ui.dropdown(
            list(COVARIANCE_UPDATE_FORMS),
            label="Covariance update",
            value=COVARIANCE_UPDATE_FORMS[0],
        ),
    }


def create_steps_slider(max_steps: int = 3000, default: int = 600, step: int = 100) -> mo.ui.slider:
    """Create slider for the number of simulation ticks."""
    return mo.ui.slider(
        100,
        max_steps,
        value=default,
        step=step,
        label="Simulation steps",
        show_value=True,
    )


def create_time_scrubber(max_timesteps: int, default: int = 0) -> mo.ui.slider:
    """
    Create a time scrubber slider for trajectory playback.

    Example:
        time_slider = create_time_scrubber(len(result.groundtruth))
        # In dependent cell:
        plot_localization(result, upto=time_slider.value)
    """
    return mo.ui.slider(
        0,
        max_timesteps - 1,
        value=default,
        step=1,
        label="Trajectory Progress",
        show_value=True,
    )


def build_filter_config(
    alphas: dict | None = None,
    sensor: dict | None = None,
    policy: dict | None = None,
) -> FilterConfig:
    """
    Build a FilterConfig from the current widget values.

    Any group left as None keeps the FilterConfig defaults.
    """
    params = {}
    if alphas is not None:
        params.update({name: widget.value for name, widget in alphas.items()})
    if sensor is not None:
        params["detection_range_alpha"] = sensor["range_alpha"].value
        params["detection_angle_sigma"] = math.radians(sensor["angle_sigma_deg"].value)
    if policy is not None:
        params.update({name: widget.value for name, widget in policy.items()})
    return FilterConfig(**params)


def build_control_panel(widgets: dict):
    """
    Build a standardized vertical control panel from widgets.

    Args:
        widgets: Dictionary of {label: widget}; labels starting with '##'
            are rendered as section headers

    Returns:
        Marimo vstack containing labeled widgets
    """
    elements = []
    for label, widget in widgets.items():
        if label.startswith("##"):  # Section header
            elements.append(mo.md(label))
        else:
            elements.append(widget)

    return mo.vstack(elements)

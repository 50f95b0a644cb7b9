import numpy as np
import pandas as pd
import pytest

from ekf_localization.config import FilterConfig, WorldConfig
from ekf_localization.localization import DeadReckoning
from ekf_localization.simulation.robot import SimulatedRobot, autopilot_command
from ekf_localization.simulation.runner import run_simulation
from ekf_localization.world.landmarks import Landmark, LandmarkRegistry

QUIET_MOTION = FilterConfig(alpha1=0.0, alpha2=0.0, alpha3=0.0, alpha4=0.0)
QUIET_WORLD = WorldConfig(landmark_range_sigma=0.0, landmark_angle_sigma=0.0)


def test_robot_without_noise_follows_command():
    robot = SimulatedRobot(150.0, 300.0, 0.0, world=QUIET_WORLD, config=QUIET_MOTION)
    pose = robot.move(100.0, 0.0, 1.0)
    np.testing.assert_allclose(pose, [250.0, 300.0, 0.0])


def test_robot_is_clamped_to_boundary():
    robot = SimulatedRobot(540.0, 300.0, 0.0, world=QUIET_WORLD, config=QUIET_MOTION)
    pose = robot.move(100.0, 0.0, 1.0)
    assert pose[0] == QUIET_WORLD.boundary[1]


def test_sensor_reports_only_landmarks_in_view():
    registry = LandmarkRegistry(
        {
            "ahead": Landmark(300.0, 300.0),
            "behind": Landmark(50.0, 300.0),
            "too_far": Landmark(500.0, 300.0),
            "outside_fov": Landmark(200.0, 400.0),
        }
    )
    robot = SimulatedRobot(150.0, 300.0, 0.0, world=QUIET_WORLD, config=QUIET_MOTION)

    observations = robot.sense(registry)

    assert len(observations) == 1
    obs = observations[0]
    assert (obs.x, obs.y) == (300.0, 300.0)
    assert obs.range == pytest.approx(150.0)
    assert obs.bearing == pytest.approx(0.0)


def test_noisy_ranges_are_never_negative():
    world = WorldConfig(landmark_range_sigma=1000.0)
    robot = SimulatedRobot(150.0, 300.0, 0.0, world=world, rng=np.random.default_rng(0))
    registry = LandmarkRegistry({0: Landmark(160.0, 300.0)})
    for _ in range(50):
        assert all(o.range >= 0.0 for o in robot.sense(registry))


def test_autopilot_drives_then_turns_at_boundary(world):
    assert autopilot_command((300.0, 300.0, 0.0), world, 0.1) == (world.robot_vel, 0.0)
    assert autopilot_command((540.0, 300.0, 0.0), world, 0.1) == (0.0, world.robot_yaw_vel)


def test_dead_reckoning_integrates_commands():
    dr = DeadReckoning(0.0, 0.0, 0.0)
    dr.motion_update(100.0, 0.0, 0.5)
    dr.motion_update(0.0, np.pi / 2, 1.0)
    dr.motion_update(10.0, 0.0, 1.0)
    np.testing.assert_allclose(dr.pose, [50.0, 10.0, np.pi / 2], atol=1e-9)
    assert dr.states.shape == (4, 4)
    with pytest.raises(ValueError):
        dr.motion_update(1.0, 0.0, 0.0)


def test_run_simulation_produces_aligned_trajectories():
    result = run_simulation(steps=150, dt=0.1, seed=3)

    for df in (result.groundtruth, result.ekf, result.dead_reckoning):
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 151
        assert np.all(np.isfinite(df[["x", "y", "theta"]].to_numpy()))
    assert result.groundtruth.index.equals(result.ekf.index)
    assert result.observations > 0

    x1, x2, y1, y2 = WorldConfig().boundary
    assert result.groundtruth["x"].between(x1, x2).all()
    assert result.groundtruth["y"].between(y1, y2).all()
    result.localizer.check_invariants(tol=1e-6)


def test_run_simulation_is_reproducible():
    a = run_simulation(steps=60, seed=11)
    b = run_simulation(steps=60, seed=11)
    pd.testing.assert_frame_equal(a.ekf, b.ekf)
    pd.testing.assert_frame_equal(a.groundtruth, b.groundtruth)


def test_run_simulation_with_batch_fusion_and_uncertain_start():
    result = run_simulation(
        steps=80,
        filter_config=FilterConfig(fusion="batch"),
        seed=5,
        initial_covariance=np.diag([25.0, 25.0, 0.05]),
    )
    result.localizer.check_invariants(tol=1e-6)


def test_run_simulation_rejects_empty_run():
    with pytest.raises(ValueError):
        run_simulation(steps=0)

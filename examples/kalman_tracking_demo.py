"""Example: Tracking a moving target with Bayes Conduit filters.

Runs a constant-velocity Kalman filter on noisy positions, then an
extended Kalman filter on range-only measurements of the same target.
"""

import numpy as np

from bayesconduit import (
    ExtendedKalmanFilter,
    KalmanFilter,
    LinearDynamicalSystem,
    MultivariateGaussian,
)

DT = 0.1


def simulate(rng, steps=50):
    """Simulate a target moving at constant velocity along a line."""
    position, velocity = 0.0, 1.0
    states = []
    for _ in range(steps):
        velocity += 0.05 * rng.standard_normal()
        position += DT * velocity
        states.append((position, velocity))
    return np.array(states)


def example_linear_tracking(rng, states):
    print("=" * 60)
    print("Example 1: Constant-velocity Kalman filter")
    print("=" * 60)

    model = LinearDynamicalSystem(
        A=[[1.0, DT], [0.0, 1.0]],
        B=np.zeros((2, 1)),
        C=[[1.0, 0.0]],
    )
    kf = KalmanFilter(
        model,
        model_covariance=np.diag([1e-4, 2.5e-3]),
        measurement_covariance=[[0.25]],
        initial_belief=MultivariateGaussian([0.0, 0.0], np.diag([1.0, 4.0])),
    )
    observations = states[:, 0] + 0.5 * rng.standard_normal(len(states))
    belief = kf.learn(observations)

    print(f"True final state:      position={states[-1, 0]:.3f}, velocity={states[-1, 1]:.3f}")
    print(f"Estimated final state: position={belief.mean[0]:.3f}, velocity={belief.mean[1]:.3f}")
    print(f"Posterior std:         {np.sqrt(np.diag(belief.covariance))}")
    print(f"Log-likelihood of the measurements: {kf.log_likelihood:.4f}")
    print()


def example_range_only_tracking(rng, states):
    print("=" * 60)
    print("Example 2: Extended Kalman filter with range measurements")
    print("=" * 60)

    # Sensor sits 2 units off the line of motion
    def observe(x):
        return np.array([np.sqrt(x[0] ** 2 + 4.0)])

    ekf = ExtendedKalmanFilter(
        motion_model=lambda x: np.array([x[0] + DT * x[1], x[1]]),
        observation_model=observe,
        model_covariance=np.diag([1e-4, 2.5e-3]),
        measurement_covariance=[[0.01]],
        initial_belief=MultivariateGaussian([0.5, 0.5], np.diag([1.0, 1.0])),
    )
    ranges = np.sqrt(states[:, 0] ** 2 + 4.0) + 0.1 * rng.standard_normal(len(states))
    belief = ekf.learn(ranges.reshape(-1, 1))

    print(f"True final position:      {states[-1, 0]:.3f}")
    print(f"Estimated final position: {belief.mean[0]:.3f}")
    print(f"Log-likelihood of the ranges: {ekf.log_likelihood:.4f}")
    print()


def main():
    rng = np.random.default_rng(42)
    states = simulate(rng)
    example_linear_tracking(rng, states)
    example_range_only_tracking(rng, states)
    print("Tracking demo complete")


if __name__ == "__main__":
    main()

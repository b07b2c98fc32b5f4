"""Tests for debug mode and invariant checks."""

import numpy as np
import pytest

from bayesconduit.diagnostics import (
    assert_envelope_bounds,
    assert_normalized_weights,
    assert_symmetric_psd,
    DEBUG_ENV_VAR,
    debug_context,
    debug_flag_from_env,
    is_debug_enabled,
    is_symmetric,
    reset_debug_mode,
    set_debug_enabled,
)
from bayesconduit.distributions import MultivariateGaussian
from bayesconduit.filters import KalmanFilter


def test_debug_toggle():
    """set_debug_enabled flips the global flag."""
    set_debug_enabled(True)
    assert is_debug_enabled()
    set_debug_enabled(False)
    assert not is_debug_enabled()


def test_debug_context_restores_previous_state():
    """debug_context enables inside the block and restores afterwards."""
    assert not is_debug_enabled()
    with debug_context(True):
        assert is_debug_enabled()
    assert not is_debug_enabled()


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("TRUE", True), (" on ", True), ("yes", True), ("0", False), ("off", False), ("", False)],
)
def test_debug_flag_from_env(value, expected):
    assert debug_flag_from_env({DEBUG_ENV_VAR: value}) is expected
    assert debug_flag_from_env({}) is False


def test_reset_debug_mode_reads_environment(monkeypatch):
    set_debug_enabled(False)
    monkeypatch.setenv(DEBUG_ENV_VAR, "1")
    assert reset_debug_mode() is True
    assert is_debug_enabled()
    monkeypatch.delenv(DEBUG_ENV_VAR)
    assert reset_debug_mode() is False


def test_is_symmetric():
    assert is_symmetric(np.eye(3))
    assert not is_symmetric(np.array([[1.0, 2.0], [0.0, 1.0]]))
    assert not is_symmetric(np.ones((2, 3)))


def test_assert_symmetric_psd_rejects_negative_eigenvalue():
    with pytest.raises(ValueError, match="positive semi-definite"):
        assert_symmetric_psd(np.diag([1.0, -1.0]))


def test_assert_symmetric_psd_rejects_asymmetry():
    with pytest.raises(ValueError, match="not symmetric"):
        assert_symmetric_psd(np.array([[1.0, 0.5], [0.0, 1.0]]))


def test_assert_normalized_weights():
    assert_normalized_weights(np.array([0.25, 0.75]))
    with pytest.raises(ValueError, match="sum to"):
        assert_normalized_weights(np.array([0.5, 0.6]))
    with pytest.raises(ValueError, match="negative"):
        assert_normalized_weights(np.array([1.5, -0.5]))


def test_assert_envelope_bounds():
    assert_envelope_bounds(np.zeros(2), np.ones(2), 2 * np.ones(2))
    with pytest.raises(ValueError, match="Upper envelope"):
        assert_envelope_bounds(np.zeros(2), np.ones(2), np.zeros(2))
    with pytest.raises(ValueError, match="Lower envelope"):
        assert_envelope_bounds(2 * np.ones(2), np.ones(2), 3 * np.ones(2))


def test_kalman_runs_with_debug_checks():
    """Filters stay valid with debug checks enabled."""
    kf = KalmanFilter(initial_belief=MultivariateGaussian([0.0], [[1.0]]))
    with debug_context(True):
        belief = kf.learn([0.5, 1.0, 1.5])
    assert belief.covariance[0, 0] > 0.0

"""Tests for the per-batch anti-cheat gate."""

import pytest

from scroll_summit.core.settings import Settings
from scroll_summit.services.validator import ContributionValidator, RejectReason


@pytest.fixture
def validator() -> ContributionValidator:
    return ContributionValidator()


def test_velocity_at_the_ceiling_is_accepted(validator: ContributionValidator) -> None:
    result = validator.validate(2000, 1000)
    assert result.accepted
    assert result.reason is None
    assert result.velocity == 2000.0


def test_one_millimetre_over_the_ceiling_is_too_fast(validator: ContributionValidator) -> None:
    result = validator.validate(2001, 1000)
    assert not result.accepted
    assert result.reason is RejectReason.TOO_FAST


def test_oversized_batch_is_too_large(validator: ContributionValidator) -> None:
    # 2647 mm over 10 s is slow, but still above the per-batch ceiling.
    result = validator.validate(2647, 10_000)
    assert not result.accepted
    assert result.reason is RejectReason.TOO_LARGE


def test_ceiling_batch_over_long_interval_is_accepted(validator: ContributionValidator) -> None:
    assert validator.validate(2646, 10_000).accepted


@pytest.mark.parametrize("elapsed_ms", [0, -5])
def test_non_positive_elapsed_is_too_fast(
    validator: ContributionValidator, elapsed_ms: int
) -> None:
    result = validator.validate(10, elapsed_ms)
    assert not result.accepted
    assert result.reason is RejectReason.TOO_FAST


def test_reason_codes_serialise_as_strings() -> None:
    assert RejectReason.TOO_FAST.value == "too-fast"
    assert RejectReason.TOO_LARGE.value == "too-large"


def test_from_settings_scales_velocity_ceiling() -> None:
    relaxed = ContributionValidator.from_settings(Settings(max_velocity_multiplier=1.5))
    default = ContributionValidator.from_settings(Settings(max_velocity_multiplier=1.0))
    assert relaxed.max_velocity == 3000.0

    # 2400 mm over 800 ms is exactly 3000 mm/s and stays under the batch ceiling.
    assert relaxed.validate(2400, 800).accepted
    assert relaxed.validate(2401, 800).reason is RejectReason.TOO_FAST
    assert default.validate(2400, 800).reason is RejectReason.TOO_FAST


def test_velocity_multiplier_does_not_lift_batch_ceiling() -> None:
    relaxed = ContributionValidator.from_settings(Settings(max_velocity_multiplier=1.5))
    assert relaxed.validate(3000, 1000).reason is RejectReason.TOO_LARGE

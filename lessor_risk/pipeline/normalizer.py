"""Linear normalisation of raw indicators onto the 0-100 risk scale."""

from __future__ import annotations

from lessor_risk.pipeline.errors import InvalidRangeError


def normalize(
    value: float,
    minimum: float,
    maximum: float,
    invert: bool = False,
) -> float:
    """Map ``value`` from ``[minimum, maximum]`` onto ``[0, 100]``.

    Values outside the range are clamped.  With ``invert=True`` the result is
    ``100 - x`` so that a high raw value means low risk.

    Args:
        value: Raw indicator value.
        minimum: Raw value mapped to 0.
        maximum: Raw value mapped to 100.
        invert: Flip the scale after clamping.

    Returns:
        The normalised score in ``[0, 100]``.

    Raises:
        InvalidRangeError: If ``minimum >= maximum``.
    """
    if minimum >= maximum:
        raise InvalidRangeError(minimum, maximum)

    scaled = (value - minimum) / (maximum - minimum) * 100
    clamped = max(0.0, min(100.0, scaled))
    return 100.0 - clamped if invert else clamped


def clamp_score(score: float) -> float:
    """Clamp a score to ``[0, 100]``."""
    return max(0.0, min(100.0, score))

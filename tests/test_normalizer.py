from __future__ import annotations

import pytest

from lessor_risk.pipeline.errors import InvalidRangeError, RiskEngineError
from lessor_risk.pipeline.normalizer import clamp_score, normalize


class TestNormalize:
    def test_maps_range_linearly(self) -> None:
        assert normalize(25, 0, 100) == 25.0
        assert normalize(45, 25, 65) == 50.0
        assert normalize(25, 25, 65) == 0.0
        assert normalize(65, 25, 65) == 100.0

    def test_clamps_outside_range(self) -> None:
        assert normalize(-10, 0, 50) == 0.0
        assert normalize(80, 0, 50) == 100.0

    @pytest.mark.parametrize("value", [-5.0, 0.0, 12.5, 33.3, 50.0, 99.0])
    def test_invert_is_complement(self, value: float) -> None:
        straight = normalize(value, 0, 50)
        inverted = normalize(value, 0, 50, invert=True)
        assert straight + inverted == pytest.approx(100.0)

    @pytest.mark.parametrize(("minimum", "maximum"), [(10, 10), (50, 10)])
    def test_rejects_empty_or_inverted_range(self, minimum: float, maximum: float) -> None:
        with pytest.raises(InvalidRangeError) as excinfo:
            normalize(5, minimum, maximum)
        assert excinfo.value.minimum == minimum
        assert excinfo.value.maximum == maximum
        assert isinstance(excinfo.value, RiskEngineError)
        assert isinstance(excinfo.value, ValueError)


def test_clamp_score() -> None:
    assert clamp_score(-3) == 0.0
    assert clamp_score(42.5) == 42.5
    assert clamp_score(140) == 100.0

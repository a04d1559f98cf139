from __future__ import annotations

import math

import numpy as np
import pytest

from wastecam.errors import DecisionError
from wastecam.models.decision import LABELS, argmax_index, decide


def test_label_set() -> None:
    assert LABELS == ("Biodegradable", "Non-biodegradable", "Recyclable", "Biohazard")


def test_picks_highest_score() -> None:
    result = decide([0.1, 0.9, 0.05, 0.05])
    assert result.index == 1
    assert result.label == "Non-biodegradable"
    assert result.score == pytest.approx(0.9)


def test_tie_goes_to_lowest_index() -> None:
    result = decide([0.5, 0.5, 0.0, 0.0])
    assert result.index == 0
    assert result.label == "Biodegradable"


def test_accepts_numpy_vector() -> None:
    result = decide(np.array([0.0, 0.1, 0.2, 0.7], dtype=np.float32), frame_id=7)
    assert result.label == "Biohazard"
    assert result.frame_id == 7
    assert result.to_dict()["index"] == 3


def test_empty_vector_raises() -> None:
    with pytest.raises(DecisionError, match="no candidate"):
        decide([])
    with pytest.raises(DecisionError):
        argmax_index([])


def test_oversize_vector_raises() -> None:
    with pytest.raises(DecisionError):
        decide([0.1, 0.2, 0.3, 0.2, 0.9])


def test_nan_never_wins() -> None:
    assert argmax_index([math.nan, 0.2, 0.1]) == 1
    with pytest.raises(DecisionError):
        argmax_index([math.nan, math.nan])


def test_index_always_in_range() -> None:
    rng = np.random.default_rng(1)
    for _ in range(50):
        index = decide(rng.random(4)).index
        assert 0 <= index < len(LABELS)

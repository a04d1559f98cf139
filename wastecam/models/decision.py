"""
Arg-max decision over the classifier output
Maps a probability vector to one of the fixed waste labels
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from ..errors import DecisionError

# Index-aligned with the model output
LABELS = ("Biodegradable", "Non-biodegradable", "Recyclable", "Biohazard")


@dataclass(frozen=True)
class Classification:
    """Result of classifying one frame"""
    label: str
    index: int
    score: float
    frame_id: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging"""
        return {
            "label": self.label,
            "index": self.index,
            "score": self.score,
            "frame_id": self.frame_id
        }


def argmax_index(probabilities: Sequence[float]) -> int:
    """
    Index of the largest score, lowest index on ties

    NaN scores are never selected.

    Raises:
        DecisionError: if there is no candidate
    """
    best_index = -1
    best_score = -math.inf
    for index, score in enumerate(probabilities):
        score = float(score)
        if math.isnan(score):
            continue
        # Strict comparison keeps the first index attaining the maximum
        if best_index < 0 or score > best_score:
            best_index = index
            best_score = score

    if best_index < 0:
        raise DecisionError("no candidate")
    return best_index


def decide(probabilities: Sequence[float], labels: Sequence[str] = LABELS,
           frame_id: Optional[int] = None) -> Classification:
    """
    Pick the label with the highest score

    Args:
        probabilities: Scores index-aligned with labels
        labels: Label set
        frame_id: Optional id of the frame being classified

    Returns:
        Classification for the winning index
    """
    if len(probabilities) == 0:
        raise DecisionError("no candidate")
    if len(probabilities) > len(labels):
        raise DecisionError(
            f"{len(probabilities)} scores for {len(labels)} labels"
        )

    index = argmax_index(probabilities)
    return Classification(
        label=labels[index],
        index=index,
        score=float(probabilities[index]),
        frame_id=frame_id
    )

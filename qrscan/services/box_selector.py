"""Single best detection selection over raw detector rows."""

from typing import Optional, Sequence

from ..core.constants import DETECTION_THRESHOLD
from ..core.entities import Detection
from ..utils.geometry import cxcywh_to_xywh


def select_best_detection(rows: Sequence[Sequence[float]], threshold: float = DETECTION_THRESHOLD) -> Optional[Detection]:
    """Pick the row with the highest confidence strictly above threshold.

    Rows are ``(cx, cy, w, h, confidence, ...)`` normalized to [0, 1]. One
    linear scan; on equal confidence the first row seen wins. Returns None
    when no row exceeds the threshold.
    """
    best_row = None
    best_confidence = threshold

    for row in rows:
        confidence = float(row[4])
        if confidence > best_confidence:
            best_confidence = confidence
            best_row = row

    if best_row is None:
        return None

    box = tuple(float(v) for v in best_row[:4])
    return Detection(bbox=cxcywh_to_xywh(box), confidence=best_confidence)


class BoxSelector:
    """Reduces raw candidate rows to at most one Detection."""

    def __init__(self, threshold: float = DETECTION_THRESHOLD):
        self.threshold = threshold

    def select(self, rows: Sequence[Sequence[float]], threshold: Optional[float] = None) -> Optional[Detection]:
        return select_best_detection(rows, self.threshold if threshold is None else threshold)

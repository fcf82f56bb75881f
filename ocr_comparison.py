"""
filepath: ocr_comparison.py

Side-by-side results of the two OCR engines for one image.

The winner is picked on confidence alone (ties go to Vision).

Field agreement is an extra report built on the Levenshtein ratio. It does
not affect which result wins; it lets callers tell a confident-but-different
read from two engines that saw the same card.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

try:
    import Levenshtein  # field agreement between engine reads
except Exception as e:
    raise ImportError("python-Levenshtein is required. Install with: pip install python-Levenshtein") from e

from ktp_data import KTPData


def lev_ratio(a: Optional[str], b: Optional[str]) -> float:
    """Normalized Levenshtein similarity in [0, 1]; two absent values agree fully."""
    if a is None and b is None:
        return 1.0
    if not a or not b:
        return 0.0
    dist = Levenshtein.distance(a.upper(), b.upper())
    return max(0.0, 1.0 - (dist / max(len(a), len(b))))


@dataclass(frozen=True)
class OCRComparisonResult:
    """Parsed records from both engines (either may be missing) plus their timings."""
    vision_result: Optional[KTPData] = None
    mlkit_result: Optional[KTPData] = None
    vision_time: float = 0.0
    mlkit_time: float = 0.0

    @property
    def has_both_results(self) -> bool:
        return self.vision_result is not None and self.mlkit_result is not None

    @property
    def best_result(self) -> Optional[KTPData]:
        if self.vision_result is None or self.mlkit_result is None:
            return self.vision_result or self.mlkit_result
        if self.vision_result.confidence >= self.mlkit_result.confidence:
            return self.vision_result
        return self.mlkit_result

    def field_agreement(self) -> Dict[str, float]:
        """Per-field similarity of the two engines' values; empty without both results."""
        if not self.has_both_results:
            return {}
        vision = self.vision_result.fields()
        mlkit = self.mlkit_result.fields()
        return {name: lev_ratio(vision[name], mlkit[name]) for name in KTPData.FIELD_NAMES}

    @property
    def agreement_score(self) -> float:
        scores = self.field_agreement()
        if not scores:
            return 0.0
        return sum(scores.values()) / len(scores)

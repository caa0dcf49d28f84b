"""
Sequence Quality Scoring

Derives a file-level quality score and contamination-risk estimate from the
per-sequence composition metrics produced by the parser.

Scoring (defaults from QualityConfig):
- Each sequence starts at 100 points
- N content costs 2 points per percent, capped at 50
- Length < 100 costs 20 points; length < 50 costs another 30
- Ambiguous bases cost their percentage of the sequence, capped at 30
- Scores are clamped at 0

A sequence is "low quality" when its N content exceeds 5% or it is shorter
than 100 bp. Contamination risk is the percentage of low-quality sequences.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Union
import logging

import numpy as np

from .config import QualityConfig
from .parser import SequenceRecord
from .utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualityMetrics:
    """File-level quality summary."""
    quality_score: float
    contamination_risk: float
    completeness: float
    average_quality: float
    low_quality_sequences: int

    def to_dict(self) -> Dict[str, Union[int, float]]:
        return {
            'qualityScore': self.quality_score,
            'contaminationRisk': self.contamination_risk,
            'completeness': self.completeness,
            'averageQuality': self.average_quality,
            'lowQualitySequences': self.low_quality_sequences,
        }


EMPTY_QUALITY_METRICS = QualityMetrics(
    quality_score=0,
    contamination_risk=100,
    completeness=0,
    average_quality=0,
    low_quality_sequences=0,
)


def is_low_quality(record: SequenceRecord, config: Optional[QualityConfig] = None) -> bool:
    """True when the record has too many Ns or is too short."""
    config = config or QualityConfig()
    return record.n_content > config.max_n_content or record.length < config.min_length


def score_sequence(record: SequenceRecord, config: Optional[QualityConfig] = None) -> float:
    """
    Quality score of a single sequence in [0, 100].

    Examples
    --------
    >>> rec = SequenceRecord.from_sequence("s1", "ACGT" * 50)
    >>> score_sequence(rec)
    100.0
    """
    config = config or QualityConfig()
    score = 100.0

    score -= min(config.max_n_penalty, record.n_content * config.n_content_weight)

    if record.length < config.min_length:
        score -= config.short_length_penalty
    if record.length < config.very_short_length:
        score -= config.very_short_length_penalty

    if record.length > 0:
        ambiguous_pct = (record.ambiguous_bases / record.length) * 100
        score -= min(config.max_ambiguous_penalty, ambiguous_pct)

    return max(0.0, score)


def calculate_quality_metrics(
    sequences: List[SequenceRecord],
    config: Optional[QualityConfig] = None,
) -> QualityMetrics:
    """
    Compute file-level quality metrics.

    Parameters
    ----------
    sequences : List[SequenceRecord]
        Parsed records
    config : QualityConfig, optional
        Thresholds and penalties (default: QualityConfig())

    Returns
    -------
    QualityMetrics
        Scores rounded to one decimal place. An empty input yields a score of
        0 and a contamination risk of 100.
    """
    config = config or QualityConfig()
    total = len(sequences)

    if total == 0:
        logger.warning("No sequences to score; reporting empty quality metrics")
        return EMPTY_QUALITY_METRICS

    scores = np.array([score_sequence(rec, config) for rec in sequences], dtype=float)
    low_quality = sum(1 for rec in sequences if is_low_quality(rec, config))

    average_quality = float(scores.mean())
    contamination_risk = min(100.0, (low_quality / total) * 100)
    completeness = max(0.0, 100.0 - contamination_risk)

    metrics = QualityMetrics(
        quality_score=round_half_up(average_quality, 1),
        contamination_risk=round_half_up(contamination_risk, 1),
        completeness=round_half_up(completeness, 1),
        average_quality=round_half_up(average_quality, 1),
        low_quality_sequences=low_quality,
    )

    logger.debug(
        f"Quality score {metrics.quality_score}, "
        f"{low_quality}/{total} low-quality sequences"
    )
    return metrics

"""
Biodiversity Indices

Computes diversity statistics from a frequency table (taxon name -> count),
typically the species level of the hierarchical distribution, or the family
level for reports.

Indices:
- Shannon index        H = -sum(p_i * ln p_i)
- Simpson dominance    D = sum(p_i^2)         (reported as "simpsonIndex")
- Simpson diversity    1 - D                  (reported as "simpsonDiversityIndex")
- Species richness     S = number of taxa with a nonzero count
- Evenness             H / ln S for S > 1, otherwise 0
- Dominance            1 - D

Note on Simpson conventions: the analysis result and the report both publish
``simpsonIndex`` as sum(p_i^2), where higher means LESS diverse. The
Gini-Simpson form 1 - sum(p_i^2) is only ever published under its own name.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Union
import logging

import numpy as np
from scipy.stats import entropy

from .utils import round_half_up

logger = logging.getLogger(__name__)

FrequencyTable = Union[Mapping[str, int], Iterable[int]]


@dataclass(frozen=True)
class BiodiversityIndices:
    """Diversity summary of one frequency table."""
    shannon_index: float
    simpson_index: float
    species_richness: int
    evenness: float
    dominance: float

    def to_dict(self) -> Dict[str, Union[int, float]]:
        return {
            'shannonIndex': self.shannon_index,
            'simpsonIndex': self.simpson_index,
            'speciesRichness': self.species_richness,
            'evenness': self.evenness,
            'dominance': self.dominance,
        }


EMPTY_INDICES = BiodiversityIndices(
    shannon_index=0,
    simpson_index=0,
    species_richness=0,
    evenness=0,
    dominance=0,
)


def _nonzero_counts(counts: FrequencyTable) -> np.ndarray:
    values = counts.values() if isinstance(counts, Mapping) else counts
    array = np.asarray(list(values), dtype=float)
    if np.any(array < 0):
        raise ValueError("Frequency counts must be non-negative")
    return array[array > 0]


def _proportions(counts: FrequencyTable) -> np.ndarray:
    array = _nonzero_counts(counts)
    total = array.sum()
    if total == 0:
        return array
    return array / total


def shannon_index(counts: FrequencyTable) -> float:
    """
    Shannon entropy (natural log) of the frequency table; 0 when empty.

    Examples
    --------
    >>> round(shannon_index({'A': 5, 'B': 5}), 4)
    0.6931
    """
    array = _nonzero_counts(counts)
    if array.sum() == 0:
        return 0.0
    return float(entropy(array))


def simpson_dominance_index(counts: FrequencyTable) -> float:
    """Sum of squared proportions, in (0, 1]; 0 when empty."""
    p = _proportions(counts)
    return float(np.sum(p ** 2))


def simpson_diversity_index(counts: FrequencyTable) -> float:
    """Gini-Simpson diversity, 1 - sum(p^2); 0 when empty."""
    p = _proportions(counts)
    if p.size == 0:
        return 0.0
    return 1.0 - float(np.sum(p ** 2))


def species_richness(counts: FrequencyTable) -> int:
    """Number of taxa with a nonzero count."""
    return int(_nonzero_counts(counts).size)


def evenness(counts: FrequencyTable) -> float:
    """Pielou's evenness H / ln S; 0 when there is at most one taxon."""
    richness = species_richness(counts)
    if richness <= 1:
        return 0.0
    return shannon_index(counts) / np.log(richness)


def dominant_taxon(counts: Mapping[str, int]) -> Optional[str]:
    """Name of the most frequent taxon, or None for an empty table."""
    if not counts:
        return None
    return max(counts.items(), key=lambda item: item[1])[0]


def calculate_biodiversity_indices(counts: FrequencyTable) -> BiodiversityIndices:
    """
    Compute all indices for one frequency table, rounded to 2 decimals.

    Parameters
    ----------
    counts : Mapping[str, int] or Iterable[int]
        Taxon counts

    Returns
    -------
    BiodiversityIndices
        All zero when the total count is zero

    Examples
    --------
    >>> calculate_biodiversity_indices({'A': 5, 'B': 5}).to_dict()
    {'shannonIndex': 0.69, 'simpsonIndex': 0.5, 'speciesRichness': 2, 'evenness': 1.0, 'dominance': 0.5}
    """
    if not isinstance(counts, Mapping):
        counts = list(counts)

    array = _nonzero_counts(counts)
    if array.sum() == 0:
        return EMPTY_INDICES

    shannon = shannon_index(array)
    simpson = simpson_dominance_index(array)
    richness = species_richness(array)
    even = shannon / np.log(richness) if richness > 1 else 0.0

    return BiodiversityIndices(
        shannon_index=round_half_up(shannon, 2),
        simpson_index=round_half_up(simpson, 2),
        species_richness=richness,
        evenness=round_half_up(float(even), 2),
        dominance=round_half_up(1 - simpson, 2),
    )

"""
Hierarchical and Geographic Distributions

Aggregates per-sequence classifications into frequency tables:

- Hierarchical: for each of the seven taxonomic levels, one entry per
  distinct taxon with its count, percentage of all sequences and the set of
  taxa observed beneath it at the next level
- Geographic: one entry per country with count, percentage, coordinates,
  number of distinct species and an intensity normalized to the busiest
  country, plus one map point per classification
- Drill-down: the next-level entries observed beneath one taxon

Entries are sorted by count, descending. Ties keep first-seen order.

Example Usage:
    >>> from fastabiome.distribution import calculate_hierarchical_distribution
    >>> dist = calculate_hierarchical_distribution(classifications)
    >>> for entry in dist['kingdom']:
    ...     print(f"{entry.name}: {entry.count} ({entry.percentage:.1f}%)")
    Animalia: 12 (60.0%)
    Bacteria: 8 (40.0%)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union
import logging

import pandas as pd

from .taxonomy import Classification, TAXONOMIC_LEVELS

logger = logging.getLogger(__name__)


@dataclass
class LevelDistributionEntry:
    """Frequency of one taxon at one taxonomic level."""
    name: str
    count: int
    percentage: float
    children: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            'name': self.name,
            'count': self.count,
            'percentage': self.percentage,
            'children': list(self.children),
        }


@dataclass
class CountryDistributionEntry:
    """Frequency of one country of origin."""
    country: str
    count: int
    percentage: float
    lat: float
    lng: float
    species_count: int
    intensity: float

    def to_dict(self) -> Dict[str, object]:
        return {
            'country': self.country,
            'count': self.count,
            'percentage': self.percentage,
            'coordinates': {'lat': self.lat, 'lng': self.lng},
            'speciesCount': self.species_count,
            'intensity': self.intensity,
        }


@dataclass
class GeographicDistribution:
    """Per-country table plus one map point per classification."""
    by_country: List[CountryDistributionEntry]
    coordinates: List[Dict[str, Union[str, float]]]

    def to_dict(self) -> Dict[str, list]:
        return {
            'byCountry': [entry.to_dict() for entry in self.by_country],
            'coordinates': [dict(point) for point in self.coordinates],
        }


HierarchicalDistribution = Dict[str, List[LevelDistributionEntry]]


def get_next_level(level: str) -> Optional[str]:
    """Taxonomic level below ``level``, or None for species."""
    index = TAXONOMIC_LEVELS.index(level)
    if index < len(TAXONOMIC_LEVELS) - 1:
        return TAXONOMIC_LEVELS[index + 1]
    return None


def classifications_to_dataframe(classifications: Sequence[Classification]) -> pd.DataFrame:
    """
    Flatten classifications into a DataFrame.

    Columns: the seven taxonomic levels, confidence, country, lat, lng.
    Row order follows the input.
    """
    rows = []
    for classification in classifications:
        row = {level: classification.get_level(level) for level in TAXONOMIC_LEVELS}
        row['confidence'] = classification.confidence
        row['country'] = classification.location.country
        row['lat'] = classification.location.lat
        row['lng'] = classification.location.lng
        rows.append(row)

    columns = TAXONOMIC_LEVELS + ['confidence', 'country', 'lat', 'lng']
    return pd.DataFrame(rows, columns=columns)


def _level_distribution(df: pd.DataFrame, level: str) -> List[LevelDistributionEntry]:
    total = len(df)
    next_level = get_next_level(level)

    counts = (
        df.groupby(level, sort=False)
          .size()
          .sort_values(ascending=False, kind='stable')
    )

    if next_level is not None:
        children = df.groupby(level, sort=False)[next_level].unique()
    else:
        children = None

    entries = []
    for name, count in counts.items():
        child_names = [str(c) for c in children[name]] if children is not None else []
        entries.append(LevelDistributionEntry(
            name=str(name),
            count=int(count),
            percentage=(int(count) / total) * 100,
            children=child_names,
        ))
    return entries


def calculate_hierarchical_distribution(
    classifications: Sequence[Classification],
) -> HierarchicalDistribution:
    """
    Build per-level frequency tables for all seven taxonomic levels.

    Parameters
    ----------
    classifications : Sequence[Classification]
        One classification per sequence

    Returns
    -------
    Dict[str, List[LevelDistributionEntry]]
        Level name -> entries sorted by count descending. Every level maps to
        an empty list when there are no classifications.
    """
    if len(classifications) == 0:
        return {level: [] for level in TAXONOMIC_LEVELS}

    df = classifications_to_dataframe(classifications)
    distribution = {level: _level_distribution(df, level) for level in TAXONOMIC_LEVELS}

    logger.debug(
        "Hierarchical distribution: " + ", ".join(
            f"{level}={len(entries)}" for level, entries in distribution.items()
        )
    )
    return distribution


def calculate_geographic_distribution(
    classifications: Sequence[Classification],
) -> GeographicDistribution:
    """
    Build the per-country distribution and the map point list.

    Coordinates of a country are those of its first classification. The
    ``coordinates`` list holds one ``{lat, lng, country, species}`` point per
    classification, in input order.
    """
    if len(classifications) == 0:
        return GeographicDistribution(by_country=[], coordinates=[])

    df = classifications_to_dataframe(classifications)
    total = len(df)

    summary = (
        df.groupby('country', sort=False)
          .agg(
              count=('species', 'size'),
              lat=('lat', 'first'),
              lng=('lng', 'first'),
              species_count=('species', 'nunique'),
          )
          .sort_values('count', ascending=False, kind='stable')
    )
    max_count = int(summary['count'].max())

    by_country = [
        CountryDistributionEntry(
            country=str(country),
            count=int(row['count']),
            percentage=(int(row['count']) / total) * 100,
            lat=float(row['lat']),
            lng=float(row['lng']),
            species_count=int(row['species_count']),
            intensity=int(row['count']) / max_count,
        )
        for country, row in summary.iterrows()
    ]

    coordinates = [
        {
            'lat': c.location.lat,
            'lng': c.location.lng,
            'country': c.location.country,
            'species': c.species,
        }
        for c in classifications
    ]

    return GeographicDistribution(by_country=by_country, coordinates=coordinates)


def level_frequency_table(
    distribution: HierarchicalDistribution,
    level: str,
) -> Dict[str, int]:
    """
    Taxon name -> count at one level, for the diversity calculator.

    Examples
    --------
    >>> level_frequency_table(dist, 'species')
    {'sapiens': 12, 'coli': 8}
    """
    if level not in TAXONOMIC_LEVELS:
        raise ValueError(f"Unknown taxonomic level: {level}")
    return {entry.name: entry.count for entry in distribution.get(level, [])}


def hierarchical_distribution_to_dict(
    distribution: HierarchicalDistribution,
) -> Dict[str, List[Dict[str, object]]]:
    """JSON-ready form of a hierarchical distribution."""
    return {
        level: [entry.to_dict() for entry in entries]
        for level, entries in distribution.items()
    }


def get_taxonomic_children(
    distribution: HierarchicalDistribution,
    level: str,
    parent: str,
    limit: Optional[int] = 20,
) -> List[LevelDistributionEntry]:
    """
    Next-level entries observed beneath one taxon.

    Parameters
    ----------
    distribution : HierarchicalDistribution
        Output of ``calculate_hierarchical_distribution``
    level : str
        Level of ``parent`` (any level except species)
    parent : str
        Taxon name at ``level``
    limit : int, optional
        Maximum number of entries returned (default: 20, None for all)

    Returns
    -------
    List[LevelDistributionEntry]
        Next-level entries whose names appear in the parent's children, in
        the next level's count order. Empty when ``parent`` is not present.

    Raises
    ------
    ValueError
        If ``level`` is unknown or is species
    """
    if level not in TAXONOMIC_LEVELS:
        raise ValueError(
            f"Invalid taxonomic level: {level}. Level must be one of: {', '.join(TAXONOMIC_LEVELS)}"
        )
    next_level = get_next_level(level)
    if next_level is None:
        raise ValueError(f"No children available for {level} level")

    parent_entry = next((e for e in distribution.get(level, []) if e.name == parent), None)
    if parent_entry is None:
        logger.debug(f"No {level} named {parent} in distribution")
        return []

    child_names = set(parent_entry.children)
    children = [e for e in distribution.get(next_level, []) if e.name in child_names]
    return children if limit is None else children[:limit]

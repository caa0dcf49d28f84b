"""
Report Assembly

Turns a completed analysis result into a report with family-level diversity
metrics and rule-based recommendations, as a JSON-ready dictionary.

Recommendation rules (evaluated in this order):

- contamination risk > 10                     -> warning / Quality
- low-quality sequences > 10% of all records  -> warning / Quality
- mean N-content > 2%                         -> info / Sequencing
- fewer than 5 families                       -> info / Diversity
- most frequent family > 80% of sequences     -> info / Diversity
- quality score > 90                          -> success / Quality
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging
import math

from . import core, diversity
from .utils import round_half_up

logger = logging.getLogger(__name__)


class ReportNotReadyError(Exception):
    """Raised when a report is requested for an analysis that has not completed."""
    pass


@dataclass(frozen=True)
class Recommendation:
    type: str
    category: str
    message: str
    suggestion: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'type': self.type,
            'category': self.category,
            'message': self.message,
            'suggestion': self.suggestion,
        }


def family_distribution(result: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Family level of the hierarchical distribution as ``{family, count, percentage}``."""
    entries = result.get('hierarchicalDistribution', {}).get('family', [])
    return [
        {
            'family': entry['name'],
            'count': entry['count'],
            'percentage': entry['percentage'],
        }
        for entry in entries
    ]


def calculate_family_diversity(families: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Diversity metrics over the family distribution.

    ``simpsonIndex`` is the dominance form sum(p^2); the Gini-Simpson form is
    reported separately as ``simpsonDiversityIndex``. Evenness divides the
    published (2-decimal) Shannon index by ln S.
    """
    counts = {f['family']: f['count'] for f in families}
    indices = diversity.calculate_biodiversity_indices(counts)
    richness = len(families)
    even = indices.shannon_index / math.log(richness) if richness > 1 else 0.0

    return {
        'shannonIndex': indices.shannon_index,
        'simpsonIndex': indices.simpson_index,
        'simpsonDiversityIndex': round_half_up(diversity.simpson_diversity_index(counts), 2),
        'speciesRichness': richness,
        'evenness': round_half_up(even, 2),
        'dominantFamily': diversity.dominant_taxon(counts),
    }


def generate_recommendations(result: Dict[str, Any]) -> List[Recommendation]:
    """Apply the recommendation rules to an analysis result."""
    recommendations = []
    quality_metrics = result['qualityMetrics']
    sequence_stats = result['sequenceStats']
    families = family_distribution(result)

    if quality_metrics['contaminationRisk'] > 10:
        recommendations.append(Recommendation(
            'warning', 'Quality',
            'High contamination risk detected. Consider additional filtering.',
            'Implement quality filtering and remove low-complexity regions.',
        ))

    if quality_metrics['lowQualitySequences'] > result['totalSequences'] * 0.1:
        recommendations.append(Recommendation(
            'warning', 'Quality',
            'More than 10% of sequences are low quality.',
            'Apply length and quality filters to improve dataset quality.',
        ))

    if sequence_stats['nContent'] > 2:
        recommendations.append(Recommendation(
            'info', 'Sequencing',
            'Elevated N-content detected in sequences.',
            'Check sequencing quality and consider trimming ambiguous bases.',
        ))

    if len(families) < 5:
        recommendations.append(Recommendation(
            'info', 'Diversity',
            'Low family diversity detected.',
            'Sample may be from a specialized environment or require deeper sequencing.',
        ))

    top_family_percentage = families[0]['percentage'] if families else 0
    if top_family_percentage > 80:
        recommendations.append(Recommendation(
            'info', 'Diversity',
            'Single family dominance detected.',
            'Consider if this reflects the true biological sample or indicates bias.',
        ))

    if quality_metrics['qualityScore'] > 90:
        recommendations.append(Recommendation(
            'success', 'Quality',
            'Excellent sequence quality achieved.',
            'Dataset is suitable for detailed biodiversity analysis.',
        ))

    return recommendations


def build_report(
    result: Dict[str, Any],
    context: Optional[core.AnalysisContext] = None,
) -> Dict[str, Any]:
    """
    Assemble the full report for one analysis.

    Parameters
    ----------
    result : Dict[str, Any]
        Output of ``core.analyze_fasta_file``
    context : AnalysisContext, optional
        Run state; supplies the file id and must be ``completed`` if given

    Returns
    -------
    Dict[str, Any]
        ``metadata``, ``sequenceStatistics``, ``qualityAssessment``,
        ``biodiversity`` (``familyDistribution``, ``diversityMetrics``) and
        ``recommendations``

    Raises
    ------
    ReportNotReadyError
        If ``context`` is given and the analysis has not completed
    """
    if context is not None and context.status != core.STATUS_COMPLETED:
        raise ReportNotReadyError(
            f"Cannot generate report for incomplete analysis (status: {context.status})"
        )

    families = family_distribution(result)
    recommendations = generate_recommendations(result)
    logger.debug(f"Report for {result['fileName']}: {len(recommendations)} recommendations")

    return {
        'metadata': {
            'fileId': context.file_id if context is not None else None,
            'fileName': result['fileName'],
            'analysisDate': result['analyzedAt'],
            'processingTime': result['processingTime'],
            'totalSequences': result['totalSequences'],
        },
        'sequenceStatistics': dict(result['sequenceStats']),
        'qualityAssessment': dict(result['qualityMetrics']),
        'biodiversity': {
            'familyDistribution': families,
            'diversityMetrics': calculate_family_diversity(families),
        },
        'recommendations': [r.to_dict() for r in recommendations],
    }


"""
Core Pipeline Orchestration for fastabiome

This module runs the complete analysis of one FASTA file and merges the
output of every stage into a single result record:

1. Sequence parsing and file statistics
2. Taxonomic classification (batched, order preserving)
3. Hierarchical distribution (kingdom to species)
4. Geographic distribution
5. Quality metrics
6. Biodiversity indices (species level)

All state of a run lives in an ``AnalysisContext`` owned by the caller; the
module keeps no caches or registries of its own, so several files can be
analyzed concurrently.

Example Usage:
    >>> from fastabiome.core import analyze_fasta_file, validate_fasta_file
    >>> validate_fasta_file("sample.fasta")
    {'isValid': True, 'sequenceCount': 2, 'totalLength': 8, 'averageLength': 4.0, 'warnings': []}
    >>> result = analyze_fasta_file("sample.fasta", "sample.fasta")
    >>> result['totalSequences']
    2
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging
import random
import threading
import time
import uuid

from . import config, parser, quality, taxonomy, distribution, diversity, utils

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

# Records sampled when checking sequence alphabets during validation
VALIDATION_SAMPLE_SIZE = 100


class AnalysisError(Exception):
    """Raised when any stage of the analysis fails. Chains the original cause."""
    pass


@dataclass
class AnalysisContext:
    """
    Per-run state of one analysis.

    Created by the caller (or by ``AnalysisJobManager``) for each submitted
    file. Status moves pending -> processing -> completed | failed. A
    cancelled context stays failed: later ``mark_*`` calls leave it as is.

    Attributes
    ----------
    file_name : str
        Display name of the analyzed file
    file_id : str
        Identifier used by the caller's result store
    rng : random.Random
        Random source handed to the classifier
    """
    file_name: str
    file_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: str = STATUS_PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    rng: random.Random = field(default_factory=random.Random, repr=False)
    cancelled: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def mark_processing(self) -> bool:
        with self._lock:
            if self.cancelled:
                return False
            self.status = STATUS_PROCESSING
            self.started_at = datetime.now(timezone.utc)
            return True

    def mark_completed(self, result: Dict[str, Any]) -> bool:
        with self._lock:
            if self.cancelled:
                return False
            self.status = STATUS_COMPLETED
            self.result = result
            self.finished_at = datetime.now(timezone.utc)
            return True

    def mark_failed(self, message: str) -> None:
        with self._lock:
            if self.cancelled:
                return
            self.status = STATUS_FAILED
            self.error = message
            self.finished_at = datetime.now(timezone.utc)

    def cancel(self, message: str) -> bool:
        """Fail a pending or processing run. Returns False if it already finished."""
        with self._lock:
            if self.status in (STATUS_COMPLETED, STATUS_FAILED):
                return False
            self.cancelled = True
            self.status = STATUS_FAILED
            self.error = message
            self.result = None
            self.finished_at = datetime.now(timezone.utc)
            return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fileId': self.file_id,
            'fileName': self.file_name,
            'status': self.status,
            'createdAt': self.created_at.isoformat(),
            'startedAt': self.started_at.isoformat() if self.started_at else None,
            'finishedAt': self.finished_at.isoformat() if self.finished_at else None,
            'error': self.error,
        }


def _make_classifier(
    cfg: config.PipelineConfig,
    context: Optional[AnalysisContext],
) -> taxonomy.TaxonomyClassifier:
    if cfg.taxonomy.seed is not None:
        rng = random.Random(cfg.taxonomy.seed)
    elif context is not None:
        rng = context.rng
    else:
        rng = random.Random()

    return taxonomy.TaxonomyClassifier(
        rng=rng,
        batch_size=cfg.taxonomy.batch_size,
        batch_delay=cfg.taxonomy.batch_delay,
    )


def analyze_fasta_file(
    file_path: Union[str, Path],
    file_name: Optional[str] = None,
    config_obj: Optional[config.PipelineConfig] = None,
    context: Optional[AnalysisContext] = None,
) -> Dict[str, Any]:
    """
    Run the complete analysis of one FASTA file.

    Parameters
    ----------
    file_path : Union[str, Path]
        Readable FASTA file
    file_name : str, optional
        Display name (default: base name of ``file_path``)
    config_obj : PipelineConfig, optional
        Configuration (default: ``get_default_config()``)
    context : AnalysisContext, optional
        Per-run state; supplies the classifier's random source when the
        configuration has no seed

    Returns
    -------
    Dict[str, Any]
        Dictionary containing:
        - 'fileName': str
        - 'totalSequences': int
        - 'sequenceStats': file statistics
        - 'qualityMetrics': quality summary
        - 'hierarchicalDistribution': level -> entries
        - 'geographicDistribution': {'byCountry', 'coordinates'}
        - 'biodiversityIndices': species-level indices
        - 'processingTime': wall-clock milliseconds
        - 'analyzedAt': ISO-8601 UTC timestamp

    Raises
    ------
    AnalysisError
        If any stage fails; the original exception is chained as
        ``__cause__`` and its message is included. No partial result is
        returned.
    """
    start_time = time.perf_counter()
    cfg = config_obj or config.get_default_config()
    file_name = file_name or utils.display_name_for(file_path)

    try:
        logger.info(f"Starting analysis of: {file_name}")

        logger.info("Step 1: Parsing FASTA file...")
        parsed = parser.parse_fasta(file_path, encoding=cfg.parser.encoding)
        sequences, stats = parsed.sequences, parsed.stats
        logger.info(f"  Parsed {len(sequences)} sequences")

        logger.info("Step 2: Taxonomic classification...")
        classifier = _make_classifier(cfg, context)
        classifications = classifier.classify_sequences(sequences)

        logger.info("Step 3: Calculating hierarchical distribution...")
        hierarchical = distribution.calculate_hierarchical_distribution(classifications)

        logger.info("Step 4: Calculating geographic distribution...")
        geographic = distribution.calculate_geographic_distribution(classifications)

        logger.info("Step 5: Calculating quality metrics...")
        quality_metrics = quality.calculate_quality_metrics(sequences, cfg.quality)

        logger.info("Step 6: Calculating biodiversity indices...")
        species_counts = distribution.level_frequency_table(hierarchical, 'species')
        indices = diversity.calculate_biodiversity_indices(species_counts)

    except Exception as e:
        logger.error(f"Analysis of {file_name} failed: {e}")
        raise AnalysisError(f"Analysis failed: {e}") from e

    processing_time = (time.perf_counter() - start_time) * 1000
    logger.info(f"Analysis completed in {processing_time / 1000:.2f} seconds")

    return {
        'fileName': file_name,
        'totalSequences': len(sequences),
        'sequenceStats': stats.to_dict(),
        'qualityMetrics': quality_metrics.to_dict(),
        'hierarchicalDistribution': distribution.hierarchical_distribution_to_dict(hierarchical),
        'geographicDistribution': geographic.to_dict(),
        'biodiversityIndices': indices.to_dict(),
        'processingTime': processing_time,
        'analyzedAt': utils.get_timestamp(),
    }


def validate_fasta_file(
    file_path: Union[str, Path],
    config_obj: Optional[config.PipelineConfig] = None,
) -> Dict[str, Any]:
    """
    Check that a file parses as FASTA without running the full analysis.

    Returns
    -------
    Dict[str, Any]
        ``{'isValid': True, 'sequenceCount', 'totalLength', 'averageLength',
        'warnings'}`` or ``{'isValid': False, 'error': message}``.
        ``warnings`` lists sampled records with non-nucleotide characters;
        they do not make the file invalid.
    """
    cfg = config_obj or config.get_default_config()

    try:
        parsed = parser.parse_fasta(file_path, encoding=cfg.parser.encoding)
    except parser.FastaParserError as e:
        logger.warning(f"FASTA validation failed for {file_path}: {e}")
        return {'isValid': False, 'error': str(e)}

    warnings = []
    sample = parser.sample_sequences(parsed.sequences, VALIDATION_SAMPLE_SIZE, random.Random(0))
    for record in sample:
        invalid = parser.validate_sequence_alphabet(record.sequence)
        if invalid:
            warnings.append(
                f"{record.header}: non-nucleotide characters {''.join(sorted(invalid))}"
            )

    for message in warnings:
        logger.warning(f"  {message}")

    return {
        'isValid': True,
        'sequenceCount': len(parsed.sequences),
        'totalLength': parsed.stats.total_length,
        'averageLength': parsed.stats.average_length,
        'warnings': warnings,
    }


def run_analysis(
    context: AnalysisContext,
    file_path: Union[str, Path],
    config_obj: Optional[config.PipelineConfig] = None,
) -> Dict[str, Any]:
    """
    Validate and analyze a file, recording progress on ``context``.

    This is the background-task entry point: the context moves to
    ``processing``, then to ``completed`` with the result or to ``failed``
    with the error message. A context cancelled while the analysis runs
    stays failed and never holds the result.

    Raises
    ------
    AnalysisError
        If validation rejects the file (cause: InvalidFastaFileError) or the
        analysis fails
    """
    context.mark_processing()

    try:
        validation = validate_fasta_file(file_path, config_obj)
        if not validation['isValid']:
            invalid = parser.InvalidFastaFileError(f"Invalid FASTA file: {validation['error']}")
            raise AnalysisError(f"Analysis failed: {invalid}") from invalid

        logger.info(f"FASTA file validated: {validation['sequenceCount']} sequences found")
        result = analyze_fasta_file(file_path, context.file_name, config_obj, context)
    except AnalysisError as e:
        context.mark_failed(str(e))
        raise

    if not context.mark_completed(result):
        logger.info(f"Analysis {context.file_id} was cancelled; result discarded")
    return result

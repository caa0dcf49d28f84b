"""
Configuration Management for fastabiome

This module provides the configuration system for the analysis pipeline using
frozen dataclasses. The configuration system supports:

1. Default parameter values for scoring and classification
2. Loading configuration from YAML/JSON files
3. Environment variable overrides
4. Validation on construction

Configuration Structure:
- ParserConfig: FASTA reading parameters
- QualityConfig: Low-quality thresholds and per-sequence penalties
- TaxonomyConfig: Classifier batching and random seed
- JobConfig: Background analysis worker pool
- PipelineConfig: Master configuration combining all components

Example Usage:
    >>> from fastabiome.config import get_default_config, load_config_from_file
    >>>
    >>> config = get_default_config()
    >>> print(config.taxonomy.batch_size)
    100
    >>>
    >>> config = load_config_from_file("analysis.yaml")
    >>>
    >>> custom_config = config.update(
    ...     taxonomy__seed=42,
    ...     quality__max_n_content=2.0
    ... )
"""

from dataclasses import dataclass, field, fields, asdict, is_dataclass, replace
from pathlib import Path
from typing import Optional, List, Dict, Any, Union
import os
import json
import logging

import yaml

logger = logging.getLogger(__name__)


# ============================================================================
# Parser Configuration
# ============================================================================

@dataclass(frozen=True)
class ParserConfig:
    """
    Configuration for FASTA parsing.

    Attributes
    ----------
    encoding : str
        Text encoding used to read FASTA files (default: "utf-8").
        Decoding failures are reported as parse errors, never silently
        replaced.
    """
    encoding: str = "utf-8"

    def __post_init__(self):
        """Validate configuration parameters."""
        if not self.encoding:
            raise ValueError("encoding must be a non-empty string")


# ============================================================================
# Quality Configuration
# ============================================================================

@dataclass(frozen=True)
class QualityConfig:
    """
    Configuration for sequence quality scoring.

    Every sequence starts at 100 points and loses points for ambiguous
    content and short length.

    Attributes
    ----------
    max_n_content : float
        N-content percentage above which a sequence counts as low quality
        (default: 5.0)

    min_length : int
        Sequences shorter than this count as low quality and lose
        ``short_length_penalty`` points (default: 100)

    very_short_length : int
        Sequences shorter than this lose an additional
        ``very_short_length_penalty`` points (default: 50)

    n_content_weight : float
        Points lost per percent of N content (default: 2.0)

    max_n_penalty : float
        Cap for the N-content penalty (default: 50.0)

    short_length_penalty : float
        Penalty for length < min_length (default: 20.0)

    very_short_length_penalty : float
        Extra penalty for length < very_short_length (default: 30.0)

    max_ambiguous_penalty : float
        Cap for the ambiguous-base penalty, which is the ambiguous base
        percentage itself (default: 30.0)
    """
    max_n_content: float = 5.0
    min_length: int = 100
    very_short_length: int = 50
    n_content_weight: float = 2.0
    max_n_penalty: float = 50.0
    short_length_penalty: float = 20.0
    very_short_length_penalty: float = 30.0
    max_ambiguous_penalty: float = 30.0

    def __post_init__(self):
        """Validate configuration parameters."""
        if not 0 <= self.max_n_content <= 100:
            raise ValueError("max_n_content must be between 0 and 100")
        if self.min_length < 1:
            raise ValueError("min_length must be at least 1")
        if self.very_short_length > self.min_length:
            raise ValueError("very_short_length must not exceed min_length")
        for name in ("n_content_weight", "max_n_penalty", "short_length_penalty",
                     "very_short_length_penalty", "max_ambiguous_penalty"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


# ============================================================================
# Taxonomy Configuration
# ============================================================================

@dataclass(frozen=True)
class TaxonomyConfig:
    """
    Configuration for the taxonomy classifier.

    Attributes
    ----------
    batch_size : int
        Number of sequences classified per batch (default: 100)

    batch_delay : float
        Pause in seconds between batches (default: 0.0). Only useful when the
        classifier calls a rate-limited remote service.

    seed : Optional[int]
        Seed for the classifier's random source (default: None, meaning a
        fresh unseeded generator per run)
    """
    batch_size: int = 100
    batch_delay: float = 0.0
    seed: Optional[int] = None

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.batch_delay < 0:
            raise ValueError("batch_delay must be non-negative")


# ============================================================================
# Job Configuration
# ============================================================================

@dataclass(frozen=True)
class JobConfig:
    """
    Configuration for background analysis jobs.

    Attributes
    ----------
    max_workers : int
        Number of analyses allowed to run concurrently (default: 2)
    """
    max_workers: int = 2

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")


# ============================================================================
# Master Pipeline Configuration
# ============================================================================

@dataclass(frozen=True)
class PipelineConfig:
    """
    Master configuration for the fastabiome analysis pipeline.

    Attributes
    ----------
    parser : ParserConfig
        FASTA parsing configuration

    quality : QualityConfig
        Quality scoring configuration

    taxonomy : TaxonomyConfig
        Classifier configuration

    jobs : JobConfig
        Background job configuration

    log_level : str
        Logging level (default: "INFO")
    """
    parser: ParserConfig = field(default_factory=ParserConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    taxonomy: TaxonomyConfig = field(default_factory=TaxonomyConfig)
    jobs: JobConfig = field(default_factory=JobConfig)
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate and normalize configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")

    def update(self, **kwargs) -> 'PipelineConfig':
        """
        Create a new configuration with updated values.

        Supports nested updates using double underscore notation:
        config.update(taxonomy__batch_size=50)

        Parameters
        ----------
        **kwargs
            Configuration parameters to update. Use double underscore
            for nested parameters (e.g., quality__min_length)

        Returns
        -------
        PipelineConfig
            New configuration object with updates
        """
        top_level = {}
        nested = {}

        for key, value in kwargs.items():
            if '__' in key:
                component, param = key.split('__', 1)
                nested.setdefault(component, {})[param] = value
            else:
                top_level[key] = value

        for component, updates in nested.items():
            current = getattr(self, component)
            top_level[component] = replace(current, **updates)

        return replace(self, **top_level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a nested dictionary."""
        return asdict(self)

    def to_yaml(self, output_path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {path}")

    def to_json(self, output_path: Union[str, Path]) -> None:
        """Save configuration to a JSON file."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")


# ============================================================================
# Helper Functions
# ============================================================================

def get_default_config() -> PipelineConfig:
    """
    Get default pipeline configuration.

    Returns
    -------
    PipelineConfig
        Default configuration
    """
    return PipelineConfig()


def load_config_from_file(config_path: Union[str, Path]) -> PipelineConfig:
    """
    Load configuration from YAML or JSON file.

    Automatically detects file format based on extension.

    Parameters
    ----------
    config_path : Union[str, Path]
        Path to configuration file (.yaml, .yml, or .json)

    Returns
    -------
    PipelineConfig
        Loaded configuration

    Raises
    ------
    FileNotFoundError
        If configuration file doesn't exist
    ValueError
        If file format is not supported
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()

    with open(path, 'r') as f:
        if suffix in ['.yaml', '.yml']:
            config_dict = yaml.safe_load(f) or {}
        elif suffix == '.json':
            config_dict = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {suffix}")

    logger.info(f"Loaded configuration from {path}")
    return _dict_to_config(config_dict)


_NESTED_SECTIONS = {
    'parser': ParserConfig,
    'quality': QualityConfig,
    'taxonomy': TaxonomyConfig,
    'jobs': JobConfig,
}


def _dict_to_config(config_dict: Dict[str, Any]) -> PipelineConfig:
    """Convert a (possibly partial) dictionary to a PipelineConfig."""
    config_dict = dict(config_dict)
    nested_configs = {}

    for section, section_cls in _NESTED_SECTIONS.items():
        if section in config_dict:
            nested_configs[section] = section_cls(**(config_dict.pop(section) or {}))

    return PipelineConfig(**nested_configs, **config_dict)


def load_config_from_env() -> Dict[str, Any]:
    """
    Load configuration overrides from environment variables.

    Environment variables should be prefixed with FASTABIOME_ and use double
    underscores for nesting:

    FASTABIOME_TAXONOMY__SEED=42
    FASTABIOME_LOG_LEVEL=DEBUG

    Returns
    -------
    Dict[str, Any]
        Configuration overrides suitable for ``PipelineConfig.update``

    Examples
    --------
    >>> os.environ['FASTABIOME_TAXONOMY__BATCH_SIZE'] = '50'
    >>> config = get_default_config().update(**load_config_from_env())
    """
    prefix = "FASTABIOME_"
    overrides = {}

    for key, value in os.environ.items():
        if key.startswith(prefix):
            config_key = key[len(prefix):].lower()
            if not _is_config_key(config_key):
                logger.debug(f"Ignoring environment variable {key}: not a configuration key")
                continue
            overrides[config_key] = _parse_env_value(value)

    if overrides:
        logger.debug(f"Loaded {len(overrides)} configuration overrides from environment")

    return overrides


def _is_config_key(key: str) -> bool:
    """True if ``key`` names a PipelineConfig field or a ``section__field`` pair."""
    top_level = {f.name: f for f in fields(PipelineConfig)}
    if '__' not in key:
        return key in top_level and not is_dataclass(top_level[key].default_factory)

    component, param = key.split('__', 1)
    section = top_level.get(component)
    if section is None or not is_dataclass(section.default_factory):
        return False
    return param in {f.name for f in fields(section.default_factory)}


def _parse_env_value(value: str) -> Any:
    """Parse environment variable value to appropriate type."""
    if value.lower() in ['true', 'yes']:
        return True
    if value.lower() in ['false', 'no']:
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def validate_config(config: PipelineConfig) -> List[str]:
    """
    Validate configuration and return list of warnings.

    Parameters
    ----------
    config : PipelineConfig
        Configuration to validate

    Returns
    -------
    List[str]
        List of warning messages (empty if no issues)
    """
    warnings = []

    if config.taxonomy.batch_delay > 5:
        warnings.append(
            f"Batch delay ({config.taxonomy.batch_delay}s) is long; "
            "large files will take a long time to classify."
        )

    if config.quality.max_n_content > 20:
        warnings.append(
            f"max_n_content ({config.quality.max_n_content}%) is permissive; "
            "few sequences will be flagged as low quality."
        )

    cpu_count = os.cpu_count() or 1
    if config.jobs.max_workers > cpu_count:
        warnings.append(
            f"Worker count ({config.jobs.max_workers}) exceeds available CPUs ({cpu_count})"
        )

    return warnings

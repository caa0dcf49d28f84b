"""
fastabiome: Biodiversity Analysis of FASTA Sequence Files

fastabiome is a Python package that turns a FASTA file of DNA/RNA sequences
into a biodiversity summary: per-file sequence statistics, a quality
assessment, a taxonomic composition at seven levels, a geographic
distribution of origins and standard diversity indices.

Core functionality includes:
- Streaming FASTA parsing with GC, N and ambiguous-base statistics
- Per-sequence quality scoring
- Batched taxonomic classification (placeholder heuristic)
- Hierarchical and geographic frequency tables
- Shannon, Simpson, richness and evenness indices
- Background analysis jobs and summary reports with recommendations

Taxonomic assignments are illustrative only and must not be used for
scientific conclusions.
"""

__version__ = "0.1.0"

# Import main modules for easy access
from . import config
from . import parser
from . import quality
from . import taxonomy
from . import distribution
from . import diversity
from . import core
from . import jobs
from . import reports
from . import utils

__all__ = [
    "config",
    "parser",
    "quality",
    "taxonomy",
    "distribution",
    "diversity",
    "core",
    "jobs",
    "reports",
    "utils",
]

"""
FASTA Parsing and Sequence Statistics

This module streams a FASTA file into per-sequence records and aggregate
file statistics. It is the first stage of the analysis pipeline and the only
stage used by file validation.

Parsing Rules:
- A line whose first non-whitespace character is '>' starts a new record;
  the header is the trimmed text after '>'
- Any other non-empty line inside a record is trimmed, upper-cased and
  appended to the current sequence (multi-line sequences are joined)
- Lines before the first header, or following an empty header, are ignored
- A record is kept only when both its header and its sequence are non-empty

Per-record Metrics:
- length: number of characters, including non-nucleotide characters
- gc_content: percentage of G and C characters
- n_content: percentage of N characters
- ambiguous_bases: count of IUPAC ambiguity codes (N, R, Y, K, M, S, W, B,
  D, H, V)

File-level gc_content and n_content are the mean of the per-record
percentages, not recomputed from total base counts. Short records therefore
weigh as much as long ones.

Example Usage:
    >>> from fastabiome.parser import parse_fasta
    >>> result = parse_fasta("sample.fasta")
    >>> print(result.stats.total_sequences, result.stats.average_length)
    2 4.0
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union
import logging
import random
import time

from Bio.Data import IUPACData

logger = logging.getLogger(__name__)

# IUPAC ambiguity codes: the full DNA alphabet minus A, C, G and T
AMBIGUOUS_BASES = frozenset(IUPACData.ambiguous_dna_letters) - frozenset(
    IUPACData.unambiguous_dna_letters
)

# Characters accepted by the upload validator: IUPAC DNA, U, gaps and stops
VALID_SEQUENCE_CHARACTERS = frozenset(IUPACData.ambiguous_dna_letters + "U-*")


# ============================================================================
# Exceptions
# ============================================================================

class FastaParserError(Exception):
    """Base class for FASTA parsing failures."""
    pass


class FastaFileNotFoundError(FastaParserError, FileNotFoundError):
    """Raised when the FASTA path does not exist or is not accessible."""
    pass


class FastaParseError(FastaParserError):
    """Raised when the file cannot be read or decoded."""
    pass


class NoSequencesFoundError(FastaParserError):
    """Raised when a file yields zero header/sequence records."""
    pass


class InvalidFastaFileError(FastaParserError):
    """Raised when file validation rejects a file before analysis."""
    pass


# ============================================================================
# Data Model
# ============================================================================

@dataclass(frozen=True)
class SequenceRecord:
    """One parsed FASTA entry with its composition metrics."""
    header: str
    sequence: str
    length: int
    gc_content: float
    n_content: float
    ambiguous_bases: int

    @classmethod
    def from_sequence(cls, header: str, sequence: str) -> "SequenceRecord":
        """Build a record, deriving every metric from the sequence string."""
        sequence = sequence.upper()
        length = len(sequence)
        return cls(
            header=header,
            sequence=sequence,
            length=length,
            gc_content=calculate_gc_content(sequence),
            n_content=calculate_n_content(sequence),
            ambiguous_bases=count_ambiguous_bases(sequence),
        )

    def to_dict(self) -> Dict[str, Union[str, int, float]]:
        return {
            'header': self.header,
            'sequence': self.sequence,
            'length': self.length,
            'gcContent': self.gc_content,
            'nContent': self.n_content,
            'ambiguousBases': self.ambiguous_bases,
        }


@dataclass
class FileStats:
    """
    Aggregate statistics over every record in one file.

    Updated with ``add`` while parsing and finalized once with ``finalize``
    after the last record; averages are only meaningful after finalizing.
    """
    total_sequences: int = 0
    total_length: int = 0
    average_length: float = 0.0
    gc_content: float = 0.0
    n_content: float = 0.0
    ambiguous_bases: int = 0
    shortest_sequence: Optional[int] = None
    longest_sequence: int = 0
    processing_time: float = 0.0
    _gc_sum: float = field(default=0.0, repr=False)
    _n_sum: float = field(default=0.0, repr=False)

    def add(self, record: SequenceRecord) -> None:
        self.total_sequences += 1
        self.total_length += record.length
        self.ambiguous_bases += record.ambiguous_bases
        self._gc_sum += record.gc_content
        self._n_sum += record.n_content

        if self.shortest_sequence is None or record.length < self.shortest_sequence:
            self.shortest_sequence = record.length
        if record.length > self.longest_sequence:
            self.longest_sequence = record.length

    def finalize(self) -> "FileStats":
        if self.total_sequences == 0:
            self.shortest_sequence = 0
            return self

        self.average_length = self.total_length / self.total_sequences
        self.gc_content = self._gc_sum / self.total_sequences
        self.n_content = self._n_sum / self.total_sequences
        return self

    def to_dict(self) -> Dict[str, Union[int, float]]:
        return {
            'totalSequences': self.total_sequences,
            'totalLength': self.total_length,
            'averageLength': self.average_length,
            'gcContent': self.gc_content,
            'nContent': self.n_content,
            'ambiguousBases': self.ambiguous_bases,
            'shortestSequence': self.shortest_sequence or 0,
            'longestSequence': self.longest_sequence,
            'processingTime': self.processing_time,
        }


@dataclass
class ParseResult:
    """Records of one file in input order, plus their aggregate statistics."""
    sequences: List[SequenceRecord]
    stats: FileStats


# ============================================================================
# Composition Metrics
# ============================================================================

def calculate_gc_content(sequence: str) -> float:
    """Percentage of G and C characters; 0 for an empty sequence."""
    if not sequence:
        return 0.0
    gc_count = sequence.count('G') + sequence.count('C')
    return (gc_count / len(sequence)) * 100


def calculate_n_content(sequence: str) -> float:
    """Percentage of N characters; 0 for an empty sequence."""
    if not sequence:
        return 0.0
    return (sequence.count('N') / len(sequence)) * 100


def count_ambiguous_bases(sequence: str) -> int:
    """Number of IUPAC ambiguity codes in an upper-cased sequence."""
    return sum(1 for base in sequence if base in AMBIGUOUS_BASES)


def validate_sequence_alphabet(sequence: str) -> Set[str]:
    """
    Characters of ``sequence`` outside the IUPAC nucleotide alphabet.

    Lower-case letters are accepted. An empty set means the sequence only
    contains nucleotide codes, gaps ('-') and stop markers ('*').
    """
    return {char for char in sequence.upper() if char not in VALID_SEQUENCE_CHARACTERS}


# ============================================================================
# Parsing
# ============================================================================

def iter_fasta_entries(lines: Iterable[str]) -> Iterator[Tuple[str, str]]:
    """
    Yield ``(header, sequence)`` pairs from an iterable of FASTA lines.

    Pairs with an empty header or an empty sequence are skipped. Sequences
    are upper-cased. A leading byte order mark is ignored.

    Examples
    --------
    >>> list(iter_fasta_entries([">a", "acg", "T", ">b", "GG"]))
    [('a', 'ACGT'), ('b', 'GG')]
    """
    header = ""
    seq_parts: List[str] = []

    for line in lines:
        stripped = line.lstrip('\ufeff').strip()

        if stripped.startswith('>'):
            if header and seq_parts:
                yield header, ''.join(seq_parts)
            header = stripped[1:].strip()
            seq_parts = []
        elif stripped and header:
            seq_parts.append(stripped.upper())

    if header and seq_parts:
        yield header, ''.join(seq_parts)


def parse_fasta(
    fasta_path: Union[str, Path],
    encoding: str = "utf-8",
) -> ParseResult:
    """
    Parse a FASTA file into sequence records and file statistics.

    Parameters
    ----------
    fasta_path : Union[str, Path]
        Path to FASTA file
    encoding : str, optional
        Text encoding (default: utf-8)

    Returns
    -------
    ParseResult
        Records in file order and finalized FileStats

    Raises
    ------
    FastaFileNotFoundError
        If the file does not exist
    FastaParseError
        If the file cannot be read or decoded
    NoSequencesFoundError
        If the file contains no header/sequence records

    Examples
    --------
    >>> result = parse_fasta("sample.fasta")
    >>> for record in result.sequences:
    ...     print(f"{record.header}: {record.length} bp, {record.gc_content:.1f}% GC")
    """
    start_time = time.perf_counter()
    path = Path(fasta_path)

    if not path.exists():
        raise FastaFileNotFoundError(f"File not found: {path}")

    sequences: List[SequenceRecord] = []
    stats = FileStats()

    try:
        with open(path, 'r', encoding=encoding) as fh:
            for header, sequence in iter_fasta_entries(fh):
                record = SequenceRecord.from_sequence(header, sequence)
                sequences.append(record)
                stats.add(record)
    except UnicodeDecodeError as e:
        raise FastaParseError(f"FASTA parsing failed: invalid {encoding} text in {path}: {e}") from e
    except OSError as e:
        raise FastaParseError(f"FASTA parsing failed: cannot read {path}: {e}") from e

    if not sequences:
        raise NoSequencesFoundError(f"No valid sequences found in FASTA file: {path}")

    stats.finalize()
    stats.processing_time = (time.perf_counter() - start_time) * 1000

    logger.debug(
        f"Parsed {stats.total_sequences} sequences ({stats.total_length} bp) from {path}"
    )
    return ParseResult(sequences=sequences, stats=stats)


def sample_sequences(
    sequences: List[SequenceRecord],
    sample_size: int = 100,
    rng: Optional[random.Random] = None,
) -> List[SequenceRecord]:
    """
    Draw at most ``sample_size`` records without replacement.

    Returns the input list unchanged when it is not larger than the sample.
    """
    if len(sequences) <= sample_size:
        return sequences
    rng = rng or random.Random()
    return rng.sample(sequences, sample_size)

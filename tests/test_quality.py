"""
Tests for per-sequence and file-level quality scoring.
"""

import unittest

from fastabiome.config import QualityConfig
from fastabiome.parser import SequenceRecord
from fastabiome.quality import (
    EMPTY_QUALITY_METRICS,
    calculate_quality_metrics,
    is_low_quality,
    score_sequence,
)


def make_record(sequence, header="rec"):
    return SequenceRecord.from_sequence(header, sequence)


class TestScoreSequence(unittest.TestCase):
    """Test the per-sequence penalties."""

    def test_clean_long_sequence(self):
        self.assertEqual(score_sequence(make_record("ACGT" * 50)), 100.0)

    def test_short_sequence_penalty(self):
        """Records under 100 bp lose 20 points."""
        self.assertEqual(score_sequence(make_record("ACGT" * 20)), 80.0)

    def test_very_short_sequence_penalties_stack(self):
        """Records under 50 bp lose both length penalties."""
        self.assertEqual(score_sequence(make_record("ACGT" * 10)), 50.0)

    def test_n_content_penalties(self):
        """10% N in a 40 bp record: 20 (N) + 20 + 30 (length) + 10 (ambiguous)."""
        record = make_record("NNNN" + "ACGT" * 9)
        self.assertEqual(record.length, 40)
        self.assertAlmostEqual(record.n_content, 10.0)

        self.assertAlmostEqual(score_sequence(record), 20.0)

    def test_score_clamped_at_zero(self):
        """Heavy N content in a short record would go negative; clamp to 0."""
        record = make_record("N" * 12 + "ACGT" * 7)
        self.assertEqual(record.length, 40)

        self.assertEqual(score_sequence(record), 0.0)

    def test_n_penalty_capped(self):
        """The N penalty never exceeds 50 points; ambiguous penalty caps at 30."""
        record = make_record("N" * 200)

        self.assertAlmostEqual(score_sequence(record), 20.0)

    def test_custom_thresholds(self):
        config = QualityConfig(min_length=10, very_short_length=5)

        self.assertEqual(score_sequence(make_record("ACGT" * 5), config), 100.0)


class TestIsLowQuality(unittest.TestCase):

    def test_short_is_low_quality(self):
        self.assertTrue(is_low_quality(make_record("ACGT" * 20)))

    def test_high_n_is_low_quality(self):
        self.assertTrue(is_low_quality(make_record("N" * 12 + "ACGT" * 47)))

    def test_moderate_n_content_is_acceptable(self):
        record = make_record("N" * 8 + "ACGT" * 48)
        self.assertAlmostEqual(record.n_content, 4.0)

        self.assertFalse(is_low_quality(record))


class TestCalculateQualityMetrics(unittest.TestCase):
    """Test file-level aggregation and rounding."""

    def test_empty_input(self):
        with self.assertLogs('fastabiome.quality', level='WARNING'):
            metrics = calculate_quality_metrics([])

        self.assertEqual(metrics, EMPTY_QUALITY_METRICS)
        self.assertEqual(metrics.to_dict(), {
            'qualityScore': 0,
            'contaminationRisk': 100,
            'completeness': 0,
            'averageQuality': 0,
            'lowQualitySequences': 0,
        })

    def test_low_quality_record_counted(self):
        """A 40 bp record with 10% N counts as low quality."""
        records = [make_record("ACGT" * 50), make_record("NNNN" + "ACGT" * 9)]

        metrics = calculate_quality_metrics(records)

        self.assertEqual(metrics.low_quality_sequences, 1)
        self.assertEqual(metrics.contamination_risk, 50.0)
        self.assertEqual(metrics.completeness, 50.0)
        self.assertEqual(metrics.quality_score, 60.0)

    def test_rounding_to_one_decimal(self):
        records = [
            make_record("ACGT" * 50),                  # 100
            make_record("N" * 8 + "ACGT" * 48),         # 100 - 8 - 4 = 88
            make_record("ACGT" * 20),                  # 80, low quality
        ]

        metrics = calculate_quality_metrics(records)

        self.assertEqual(metrics.quality_score, 89.3)
        self.assertEqual(metrics.average_quality, 89.3)
        self.assertEqual(metrics.contamination_risk, 33.3)
        self.assertEqual(metrics.completeness, 66.7)
        self.assertEqual(metrics.low_quality_sequences, 1)

    def test_completeness_plus_risk_is_100(self):
        records = [make_record("ACGT" * 20), make_record("ACGT" * 60)]

        metrics = calculate_quality_metrics(records)

        self.assertAlmostEqual(metrics.completeness + metrics.contamination_risk, 100.0)
        self.assertGreaterEqual(metrics.quality_score, 0)
        self.assertLessEqual(metrics.quality_score, 100)


if __name__ == '__main__':
    unittest.main()

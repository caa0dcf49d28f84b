"""
Tests for taxonomic classification.

Rule-based branches must be deterministic for any random source; the
fallback branch is checked statistically with seeded generators.
"""

import random
import unittest
from unittest.mock import patch

from fastabiome.parser import SequenceRecord
from fastabiome.taxonomy import (
    GLOBAL_LOCATIONS,
    MIN_CONFIDENCE,
    REFERENCE_TAXONOMIES,
    TAXONOMIC_LEVELS,
    TaxonomyClassifier,
    select_reference_taxonomy,
)

GC_RICH_LONG = "GGGC" * 300     # 1200 bp, 100% GC
AT_RICH_SHORT = "AATT" * 50     # 200 bp, 0% GC
BALANCED = "ACGT" * 200         # 800 bp, 50% GC


class TestRuleBasedSelection(unittest.TestCase):
    """Test the deterministic decision rules."""

    def setUp(self):
        self.rng = random.Random(0)

    def test_gc_rich_long_is_plant(self):
        result = select_reference_taxonomy("sample", GC_RICH_LONG, self.rng)
        self.assertEqual(result.kingdom, 'Plantae')

    def test_at_rich_short_is_bacteria(self):
        result = select_reference_taxonomy("sample", AT_RICH_SHORT, self.rng)
        self.assertEqual(result.kingdom, 'Bacteria')

    def test_human_header_is_animal(self):
        for header in ["Homo sapiens COI", "HUMAN mito", "partial homolog"]:
            result = select_reference_taxonomy(header, BALANCED, self.rng)
            self.assertEqual(result.kingdom, 'Animalia', header)

    def test_fungus_header_is_fungi(self):
        for header in ["soil fungus 12", "Mushroom ITS"]:
            result = select_reference_taxonomy(header, BALANCED, self.rng)
            self.assertEqual(result.kingdom, 'Fungi', header)

    def test_composition_rules_take_precedence(self):
        """An AT-rich short record is bacterial even with a human header."""
        result = select_reference_taxonomy("human gut", AT_RICH_SHORT, self.rng)
        self.assertEqual(result.kingdom, 'Bacteria')

    def test_rules_ignore_random_source(self):
        for seed in range(20):
            classifier = TaxonomyClassifier(rng=random.Random(seed))
            self.assertEqual(classifier.classify_sequence("x", GC_RICH_LONG).species, 'rubiginosa')
            self.assertEqual(classifier.classify_sequence("homo", BALANCED).genus, 'Homo')


class TestClassifier(unittest.TestCase):
    """Test jitter, locations and batching."""

    def test_fallback_reaches_every_taxonomy(self):
        classifier = TaxonomyClassifier(rng=random.Random(1))

        kingdoms = {
            classifier.classify_sequence("unlabelled", BALANCED).kingdom
            for _ in range(500)
        }

        self.assertEqual(kingdoms, set(REFERENCE_TAXONOMIES))

    def test_confidence_bounds(self):
        classifier = TaxonomyClassifier(rng=random.Random(2))

        for _ in range(500):
            result = classifier.classify_sequence("unlabelled", BALANCED)
            base = REFERENCE_TAXONOMIES[result.kingdom].confidence
            self.assertGreaterEqual(result.confidence, MIN_CONFIDENCE)
            self.assertLessEqual(result.confidence, base)
            self.assertLessEqual(result.confidence, 0.95)

    def test_global_origin_gets_country(self):
        classifier = TaxonomyClassifier(rng=random.Random(3))
        countries = {loc.country for loc in GLOBAL_LOCATIONS}

        for _ in range(50):
            result = classifier.classify_sequence("human", BALANCED)
            self.assertIn(result.location.country, countries)

    def test_fixed_origin_kept(self):
        classifier = TaxonomyClassifier(rng=random.Random(4))

        result = classifier.classify_sequence("x", GC_RICH_LONG)

        self.assertEqual(result.location.country, 'Europe')
        self.assertEqual((result.location.lat, result.location.lng), (48.8566, 2.3522))

    def test_reference_taxonomies_not_mutated(self):
        classifier = TaxonomyClassifier(rng=random.Random(5))
        for _ in range(20):
            classifier.classify_sequence("human", BALANCED)

        self.assertEqual(REFERENCE_TAXONOMIES['Animalia'].confidence, 0.95)
        self.assertEqual(REFERENCE_TAXONOMIES['Animalia'].location.country, 'Global')

    def test_seeded_runs_reproducible(self):
        records = [SequenceRecord.from_sequence(f"r{i}", BALANCED) for i in range(30)]

        first = TaxonomyClassifier(rng=random.Random(42)).classify_sequences(records)
        second = TaxonomyClassifier(rng=random.Random(42)).classify_sequences(records)

        self.assertEqual(first, second)

    def test_order_preserved_across_batches(self):
        records = []
        for i in range(7):
            sequence = GC_RICH_LONG if i % 2 == 0 else AT_RICH_SHORT
            records.append(SequenceRecord.from_sequence(f"r{i}", sequence))

        classifier = TaxonomyClassifier(rng=random.Random(0), batch_size=3)
        results = classifier.classify_sequences(records)

        self.assertEqual(len(results), 7)
        self.assertEqual(
            [r.kingdom for r in results],
            ['Plantae', 'Bacteria'] * 3 + ['Plantae'],
        )

    def test_delay_between_batches_only(self):
        records = [SequenceRecord.from_sequence(f"r{i}", BALANCED) for i in range(5)]
        classifier = TaxonomyClassifier(rng=random.Random(0), batch_size=2, batch_delay=0.5)

        with patch('fastabiome.taxonomy.time.sleep') as mock_sleep:
            classifier.classify_sequences(records)

        self.assertEqual(mock_sleep.call_count, 2)
        mock_sleep.assert_called_with(0.5)

    def test_no_delay_by_default(self):
        records = [SequenceRecord.from_sequence(f"r{i}", BALANCED) for i in range(5)]

        with patch('fastabiome.taxonomy.time.sleep') as mock_sleep:
            TaxonomyClassifier(batch_size=1).classify_sequences(records)

        mock_sleep.assert_not_called()

    def test_empty_input(self):
        self.assertEqual(TaxonomyClassifier().classify_sequences([]), [])

    def test_invalid_batch_size(self):
        with self.assertRaises(ValueError):
            TaxonomyClassifier(batch_size=0)


class TestClassification(unittest.TestCase):

    def test_get_level_and_to_dict(self):
        animal = REFERENCE_TAXONOMIES['Animalia']

        self.assertEqual(animal.get_level('class'), 'Mammalia')
        data = animal.to_dict()
        self.assertEqual([k for k in data if k in TAXONOMIC_LEVELS], TAXONOMIC_LEVELS)
        self.assertEqual(data['class'], 'Mammalia')
        self.assertEqual(data['location']['country'], 'Global')

    def test_unknown_level(self):
        with self.assertRaises(ValueError):
            REFERENCE_TAXONOMIES['Fungi'].get_level('domain')


if __name__ == '__main__':
    unittest.main()

"""
Tests for biodiversity indices.
"""

import math
import unittest

from fastabiome import diversity
from fastabiome.diversity import EMPTY_INDICES, calculate_biodiversity_indices


class TestBiodiversityIndices(unittest.TestCase):
    """Test the combined, rounded index calculation."""

    def test_single_taxon(self):
        indices = calculate_biodiversity_indices({'A': 1})

        self.assertEqual(indices.shannon_index, 0)
        self.assertEqual(indices.simpson_index, 1)
        self.assertEqual(indices.species_richness, 1)
        self.assertEqual(indices.evenness, 0)
        self.assertEqual(indices.dominance, 0)

    def test_two_equal_taxa(self):
        indices = calculate_biodiversity_indices({'A': 5, 'B': 5})

        self.assertEqual(indices.to_dict(), {
            'shannonIndex': 0.69,
            'simpsonIndex': 0.5,
            'speciesRichness': 2,
            'evenness': 1.0,
            'dominance': 0.5,
        })

    def test_empty_table(self):
        self.assertEqual(calculate_biodiversity_indices({}), EMPTY_INDICES)
        self.assertEqual(calculate_biodiversity_indices({'A': 0}), EMPTY_INDICES)

    def test_accepts_plain_counts(self):
        self.assertEqual(
            calculate_biodiversity_indices([3, 1]),
            calculate_biodiversity_indices({'x': 3, 'y': 1}),
        )

    def test_accepts_generator(self):
        indices = calculate_biodiversity_indices(c for c in [2, 2, 2, 2])

        self.assertEqual(indices.species_richness, 4)
        self.assertEqual(indices.evenness, 1.0)

    def test_zero_counts_ignored(self):
        indices = calculate_biodiversity_indices({'A': 4, 'B': 0, 'C': 4})

        self.assertEqual(indices.species_richness, 2)

    def test_rounded_to_two_decimals(self):
        indices = calculate_biodiversity_indices({'A': 7, 'B': 2, 'C': 1})

        # H = 0.8018..., sum(p^2) = 0.54
        self.assertEqual(indices.shannon_index, 0.8)
        self.assertEqual(indices.simpson_index, 0.54)
        self.assertEqual(indices.dominance, 0.46)
        self.assertEqual(indices.evenness, 0.73)

    def test_bounds(self):
        for counts in [{'A': 1, 'B': 100}, {'A': 3, 'B': 3, 'C': 3}, {'A': 10}]:
            indices = calculate_biodiversity_indices(counts)
            self.assertGreaterEqual(indices.shannon_index, 0)
            self.assertGreater(indices.simpson_index, 0)
            self.assertLessEqual(indices.simpson_index, 1)
            self.assertGreaterEqual(indices.evenness, 0)
            self.assertLessEqual(indices.evenness, 1)

    def test_negative_counts_rejected(self):
        with self.assertRaises(ValueError):
            calculate_biodiversity_indices({'A': -1, 'B': 2})


class TestIndividualIndices(unittest.TestCase):
    """Test the unrounded building blocks."""

    def test_shannon(self):
        self.assertAlmostEqual(diversity.shannon_index({'A': 5, 'B': 5}), math.log(2))
        self.assertEqual(diversity.shannon_index({}), 0.0)

    def test_simpson_conventions_are_complements(self):
        counts = {'A': 6, 'B': 3, 'C': 1}

        dominance = diversity.simpson_dominance_index(counts)
        gini_simpson = diversity.simpson_diversity_index(counts)

        self.assertAlmostEqual(dominance, 0.46)
        self.assertAlmostEqual(gini_simpson, 0.54)
        self.assertAlmostEqual(dominance + gini_simpson, 1.0)

    def test_simpson_empty(self):
        self.assertEqual(diversity.simpson_dominance_index({}), 0.0)
        self.assertEqual(diversity.simpson_diversity_index({}), 0.0)

    def test_evenness(self):
        self.assertAlmostEqual(diversity.evenness({'A': 1, 'B': 1, 'C': 1}), 1.0)
        self.assertEqual(diversity.evenness({'A': 9}), 0.0)

    def test_species_richness(self):
        self.assertEqual(diversity.species_richness({'A': 1, 'B': 0, 'C': 2}), 2)

    def test_dominant_taxon(self):
        self.assertEqual(diversity.dominant_taxon({'A': 1, 'B': 4, 'C': 4}), 'B')
        self.assertIsNone(diversity.dominant_taxon({}))


if __name__ == '__main__':
    unittest.main()

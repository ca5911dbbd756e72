from __future__ import annotations

import unittest

from asmlens.fuzzy import fuzzy_score, rank_names


class FuzzyRankingTests(unittest.TestCase):
    def test_fuzzy_score_prefers_contiguous_matches_and_rejects_missing(self) -> None:
        contiguous = fuzzy_score("init", "init_screen")
        gapped = fuzzy_score("init", "i_n_i_t_screen")

        self.assertIsNotNone(contiguous)
        self.assertIsNotNone(gapped)
        self.assertGreater(contiguous, gapped)
        self.assertIsNone(fuzzy_score("zzz", "init"))

    def test_segment_start_scores_above_mid_word_hit(self) -> None:
        self.assertGreater(fuzzy_score("l", "main.loop"), fuzzy_score("l", "mainly"))

    def test_camel_hump_scores_above_mid_word_hit(self) -> None:
        self.assertGreater(fuzzy_score("a", "setAnd"), fuzzy_score("a", "setand"))

    def test_empty_query_scores_zero(self) -> None:
        self.assertEqual(fuzzy_score("", "anything"), 0)

    def test_rank_names_orders_by_score_and_keeps_unscored_last(self) -> None:
        ranked = rank_names("sn", ["Other", "SetAndReturn", "Sync"])

        self.assertEqual(ranked, ["Sync", "SetAndReturn", "Other"])


if __name__ == "__main__":
    unittest.main()

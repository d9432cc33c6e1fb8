import logging

import pytest

from conftest import DictOracle, FailingOracle
from microblog_ranking.config import RerankConfig
from microblog_ranking.entities import RankedDocument
from microblog_ranking.rerank import SemanticReranker

SIMILARITIES = {
    ("beach", "sand"): 0.8,
    ("beach", "waves"): 0.6,
    ("sun", "sand"): 0.4,
}


@pytest.fixture
def reranker():
    return SemanticReranker(
        DictOracle(SIMILARITIES), stop_words=["the"], config=RerankConfig(alpha=0.5, penalty=-0.1)
    )


class TestCooccurrence:
    def test_mean_over_all_pairs(self, reranker):
        # (0.8 + 0.4) / 2
        assert reranker.cooccurrence_score(["beach", "sun"], ["sand"]) == pytest.approx(0.6)

    def test_stop_words_and_unknown_pairs_penalized(self, reranker):
        # beach/sand = 0.8, beach/the = penalty, beach/stocks = penalty
        score = reranker.cooccurrence_score(["beach"], ["sand", "The", "stocks"])
        assert score == pytest.approx((0.8 - 0.1 - 0.1) / 3)

    def test_no_pairs(self, reranker):
        assert reranker.cooccurrence_score([], ["sand"]) == 0.0
        assert reranker.cooccurrence_score(["beach"], []) == 0.0


class TestRerank:
    def test_blend_reorders(self, reranker):
        ranking = [RankedDocument("A", 0.6), RankedDocument("B", 0.5)]
        document_terms = {"A": ["stocks"], "B": ["sand"]}

        reranked = reranker.rerank(["beach"], ranking, document_terms)

        assert [doc.doc_id for doc in reranked] == ["B", "A"]
        assert reranked[0].score == pytest.approx(0.5 * 0.5 + 0.5 * 0.8)
        assert reranked[1].score == pytest.approx(0.5 * 0.6 + 0.5 * -0.1)

    def test_alpha_one_keeps_cosine_order(self):
        reranker = SemanticReranker(DictOracle(SIMILARITIES), config=RerankConfig(alpha=1.0))
        ranking = [RankedDocument("A", 0.6), RankedDocument("B", 0.5)]
        reranked = reranker.rerank(["beach"], ranking, {"A": ["stocks"], "B": ["sand"]})
        assert reranked == [RankedDocument("A", 0.6), RankedDocument("B", 0.5)]

    def test_failed_lookup_isolated_to_one_document(self, caplog):
        oracle = FailingOracle(SIMILARITIES, broken={"boom"})
        reranker = SemanticReranker(oracle, config=RerankConfig(alpha=0.5, max_workers=2))
        ranking = [RankedDocument("A", 0.8), RankedDocument("B", 0.4)]

        with caplog.at_level(logging.WARNING, logger="microblog_ranking.rerank"):
            reranked = reranker.rerank(["beach"], ranking, {"A": ["boom"], "B": ["sand"]})

        scores = {doc.doc_id: doc.score for doc in reranked}
        assert scores["A"] == pytest.approx(0.5 * 0.8)
        assert scores["B"] == pytest.approx(0.5 * 0.4 + 0.5 * 0.8)
        assert "Similarity lookup failed for document A" in caplog.text

    def test_document_without_terms(self, reranker):
        reranked = reranker.rerank(["beach"], [RankedDocument("A", 0.4)], {})
        assert reranked == [RankedDocument("A", pytest.approx(0.2))]

    def test_top_k_and_ties(self, reranker):
        ranking = [RankedDocument(doc_id, 0.5) for doc_id in ("c", "a", "b")]
        reranked = reranker.rerank(["beach"], ranking, {}, top_k=2)
        assert [doc.doc_id for doc in reranked] == ["a", "b"]

    def test_empty_ranking(self, reranker):
        assert reranker.rerank(["beach"], [], {}) == []


@pytest.mark.parametrize("alpha", [-0.1, 1.1])
def test_alpha_out_of_range(alpha):
    with pytest.raises(ValueError):
        SemanticReranker(DictOracle({}), config=RerankConfig(alpha=alpha))

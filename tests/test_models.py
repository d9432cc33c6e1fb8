import json

import numpy as np
import pytest
from gensim.models import KeyedVectors
from nltk import Tree

from microblog_ranking import models
from microblog_ranking.models import (
    LOCATION_LABELS,
    PERSON_LABELS,
    GazetteerEntityRecognizer,
    KeyedVectorsOracle,
    ModelLoadError,
    NltkEntityRecognizer,
    TweetBoundaryProvider,
    load_keyed_vectors,
)
from microblog_ranking.tokenizer import load_default_tokenizer


def fake_chunk(tokens):
    """Chunk tree as ne_chunk would build it for 'Barack Obama visits Paris'."""
    if tokens == ("Barack", "Obama", "visits", "Paris"):
        return Tree(
            "S",
            [
                Tree("PERSON", [("Barack", "NNP"), ("Obama", "NNP")]),
                ("visits", "VBZ"),
                Tree("GPE", [("Paris", "NNP")]),
            ],
        )
    return Tree("S", [(token, "NN") for token in tokens])


def missing_chunker_data(tokens):
    raise LookupError("Resource maxent_ne_chunker not found.")


class TestNltkEntityRecognizer:
    @pytest.fixture(autouse=True)
    def chunker(self, monkeypatch):
        monkeypatch.setattr(models, "_chunk", fake_chunk)

    def test_span_offsets_across_multi_leaf_chunks(self):
        tokens = ["Barack", "Obama", "visits", "Paris"]

        persons = NltkEntityRecognizer(PERSON_LABELS).find(tokens)
        locations = NltkEntityRecognizer(LOCATION_LABELS).find(tokens)

        assert [(span.start, span.end, span.label) for span in persons] == [(0, 2, "PERSON")]
        assert [(span.start, span.end, span.label) for span in locations] == [(3, 4, "GPE")]
        assert all(span.probability == models.NLTK_ENTITY_CONFIDENCE for span in persons)

    def test_no_entities(self):
        assert NltkEntityRecognizer(PERSON_LABELS).find(["sunny", "beach"]) == []
        assert NltkEntityRecognizer(PERSON_LABELS).find([]) == []

    def test_missing_chunker_data(self, monkeypatch):
        monkeypatch.setattr(models, "_chunk", missing_chunker_data)
        with pytest.raises(ModelLoadError):
            NltkEntityRecognizer(PERSON_LABELS)


class TestLoadDefaultTokenizer:
    def test_coalesces_recognized_entities(self, monkeypatch):
        monkeypatch.setattr(models, "_chunk", fake_chunk)
        tokenizer = load_default_tokenizer()
        assert tokenizer.tokenize("Barack Obama visits Paris") == ["Barack Obama", "visits", "Paris"]

    def test_missing_chunker_data_is_fatal(self, monkeypatch):
        monkeypatch.setattr(models, "_chunk", missing_chunker_data)
        with pytest.raises(ModelLoadError):
            load_default_tokenizer()

    def test_missing_replacement_table_is_fatal(self, tmp_path, monkeypatch):
        monkeypatch.setattr(models, "_chunk", fake_chunk)
        with pytest.raises(ModelLoadError):
            load_default_tokenizer(replacements_path=tmp_path / "missing.json")


@pytest.fixture
def vectors():
    kv = KeyedVectors(vector_size=2)
    kv.add_vectors(
        ["sun", "beach", "stocks", "barack", "obama"],
        np.array([[1.0, 0.0], [0.9, 0.1], [0.0, 1.0], [0.2, 0.8], [0.3, 0.7]], dtype=np.float32),
    )
    return kv


class TestTweetBoundaryProvider:
    def test_keeps_hashtags_and_handles(self):
        tokens = TweetBoundaryProvider().segment("Loving the #beach with @friend :)")
        assert "#beach" in tokens
        assert "@friend" in tokens
        assert "Loving" in tokens


class TestGazetteer:
    def test_find(self):
        recognizer = GazetteerEntityRecognizer({"Barack Obama": 0.9, "Paris": 0.8}, label="PERSON")
        spans = recognizer.find(["Barack", "Obama", "visits", "Paris"])

        assert [(span.start, span.end, span.probability) for span in spans] == [
            (0, 2, 0.9),
            (3, 4, 0.8),
        ]
        assert all(span.label == "PERSON" for span in spans)

    def test_case_sensitive(self):
        assert GazetteerEntityRecognizer({"Paris": 0.8}).find(["paris"]) == []

    def test_from_json(self, tmp_path):
        path = tmp_path / "gazetteer.json"
        path.write_text(json.dumps({"New York": 0.95}), encoding="utf-8")
        spans = GazetteerEntityRecognizer.from_json(path).find(["New", "York", "City"])
        assert [(span.start, span.end) for span in spans] == [(0, 2)]

    def test_from_json_missing(self, tmp_path):
        with pytest.raises(ModelLoadError):
            GazetteerEntityRecognizer.from_json(tmp_path / "missing.json")

    def test_from_json_not_an_object(self, tmp_path):
        path = tmp_path / "gazetteer.json"
        path.write_text('["Paris"]', encoding="utf-8")
        with pytest.raises(ValueError):
            GazetteerEntityRecognizer.from_json(path)


class TestKeyedVectorsOracle:
    def test_similarity(self, vectors):
        oracle = KeyedVectorsOracle(vectors)
        assert oracle.similarity("sun", "beach") > oracle.similarity("sun", "stocks")
        assert oracle.similarity("Sun", "SUN") == pytest.approx(1.0)

    def test_multi_word_terms(self, vectors):
        similarity = KeyedVectorsOracle(vectors).similarity("Barack Obama", "stocks")
        assert similarity is not None
        assert -1.0 <= similarity <= 1.0

    def test_out_of_vocabulary(self, vectors):
        oracle = KeyedVectorsOracle(vectors)
        assert oracle.similarity("sun", "snow") is None
        assert oracle.similarity("Barack Hussein", "sun") is None

    def test_case_sensitive_lookup(self, vectors):
        assert KeyedVectorsOracle(vectors, lowercase=False).similarity("Sun", "beach") is None


class TestLoadKeyedVectors:
    def test_gensim_format(self, tmp_path, vectors):
        path = tmp_path / "vectors.kv"
        vectors.save(str(path))
        assert load_keyed_vectors(path).key_to_index == vectors.key_to_index

    def test_word2vec_text_format(self, tmp_path, vectors):
        path = tmp_path / "vectors.txt"
        vectors.save_word2vec_format(str(path), binary=False)
        assert set(load_keyed_vectors(path).key_to_index) == set(vectors.key_to_index)

    def test_missing(self, tmp_path):
        with pytest.raises(ModelLoadError):
            load_keyed_vectors(tmp_path / "missing.kv")

    def test_unreadable(self, tmp_path):
        path = tmp_path / "vectors.txt"
        path.write_text("not a word2vec header\n", encoding="utf-8")
        with pytest.raises(ModelLoadError):
            load_keyed_vectors(path)

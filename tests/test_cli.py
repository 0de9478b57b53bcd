"""
Tests for the concept-graph command line.
"""

import json
import logging

import pytest

from concept_graph import cli
from concept_graph.config import EmbeddingConfig
from concept_graph.utils.logging_config import PACKAGE_LOGGER_NAME


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    level, handlers, propagate = logger.level, list(logger.handlers), logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def input_file(tmp_path, clustered_corpus):
    sentences, vectors, _ = clustered_corpus
    path = tmp_path / "feedback.json"
    path.write_text(json.dumps({
        "sentences": [
            {"id": s.id, "juror": s.juror, "text": s.text, "stance": s.stance} for s in sentences
        ],
        "vectors": vectors.tolist(),
        "bm25": {"scores": {"lighting design": 2.0}},
    }), encoding="utf-8")
    return path


@pytest.fixture
def text_only_file(tmp_path, juror_sentences):
    path = tmp_path / "text_only.json"
    path.write_text(json.dumps({
        "sentences": [{"id": s.id, "juror": s.juror, "sentence": s.text} for s in juror_sentences],
    }), encoding="utf-8")
    return path


def test_parser_options():
    args = cli.build_parser().parse_args(["analyze", "in.json", "--k", "6", "--mode", "kmeans", "--hard"])
    cfg = cli.analysis_config_from_args(args, [])

    assert cfg.k_concepts == 6
    assert cfg.clustering_mode == "kmeans"
    assert cfg.soft_membership is False
    assert cfg.use_two_layer is False


def test_parser_rejects_unknown_mode():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["analyze", "in.json", "--mode", "spectral"])


def test_analyze_writes_output(tmp_path, input_file):
    out = tmp_path / "graph.json"
    code = cli.main(["analyze", str(input_file), "-o", str(out), "--k", "5", "--log-level", "WARNING"])

    assert code == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert len(data["concepts"]) == 5
    assert data["stats"]["total_sentences"] == 50


def test_analyze_prints_to_stdout(input_file, capsys):
    code = cli.main(["analyze", str(input_file), "--k", "5", "--two-layer", "--log-level", "WARNING"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["detail_concepts"]
    assert data["concept_hierarchy"]


def test_missing_input_file(tmp_path):
    assert cli.main(["analyze", str(tmp_path / "nope.json"), "--log-level", "ERROR"]) == 1


def test_input_without_sentences(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"rows": []}), encoding="utf-8")
    assert cli.main(["analyze", str(path), "--log-level", "ERROR"]) == 1


def test_no_vectors_and_no_endpoint(monkeypatch, text_only_file):
    monkeypatch.setattr(cli.config, "embedding", EmbeddingConfig())
    assert cli.main(["analyze", str(text_only_file), "--log-level", "ERROR"]) == 1


def test_embeds_through_provider(monkeypatch, tmp_path, text_only_file, mock_embedding_provider):
    monkeypatch.setattr(cli.config, "embedding", EmbeddingConfig(base_url="http://localhost:8080/v1"))
    monkeypatch.setattr(cli.OpenAICompatibleEmbeddingProvider, "from_config", lambda embedding: mock_embedding_provider)
    out = tmp_path / "graph.json"
    cache_path = tmp_path / "cache.npz"

    code = cli.main([
        "analyze", str(text_only_file), "-o", str(out), "--k", "5",
        "--cache", str(cache_path), "--log-level", "WARNING",
    ])

    assert code == 0
    assert mock_embedding_provider.batches
    assert mock_embedding_provider.closed is True
    assert cache_path.exists()
    assert len(json.loads(out.read_text(encoding="utf-8"))["concepts"]) == 5

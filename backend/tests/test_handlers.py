"""Tests for the mining, training and evaluation command-line entry points."""

import json
from unittest.mock import patch

import numpy as np
import pytest

from handlers import evaluate_model, mine_products, train_model
from services.catalog_client import NetworkError
from services.corpus_miner import MinerState, MiningResult, PageProgress, StopReason
from services.dataset_writer import grade_histogram, write_corpus
from services.neural_network import DenseNetwork
from services.product_extractor import to_canonical
from services.weight_serializer import to_model_weights, write_weights


class TestMineProducts:
    @patch("services.corpus_miner.time.sleep")
    @patch("handlers.mine_products.CatalogClient.fetch_page")
    def test_writes_corpus(self, mock_fetch, mock_sleep, tmp_path, raw_record, capsys):
        mock_fetch.side_effect = lambda page: (
            [raw_record(code=f"{page}-a"), raw_record(code=f"{page}-b")]
            if page <= 2
            else []
        )
        output = tmp_path / "data" / "corpus.json"

        code = mine_products.main(
            ["--target", "3", "--max-pages", "5", "--delay", "0", "--output", str(output)]
        )

        assert code == 0
        data = json.loads(output.read_text())
        assert data["totalProducts"] == 3
        assert "Page 1: 2/2 valid" in capsys.readouterr().out

    @patch("services.corpus_miner.time.sleep")
    @patch("handlers.mine_products.CatalogClient.fetch_page")
    def test_all_pages_failed(self, mock_fetch, mock_sleep, tmp_path):
        mock_fetch.side_effect = NetworkError("down")
        output = tmp_path / "corpus.json"

        code = mine_products.main(["--max-pages", "2", "--output", str(output)])

        assert code == 1
        assert not output.exists()

    @patch("services.corpus_miner.time.sleep")
    @patch("handlers.mine_products.CatalogClient.fetch_page")
    def test_unwritable_output(self, mock_fetch, mock_sleep, tmp_path, raw_record):
        mock_fetch.return_value = [raw_record()]
        blocker = tmp_path / "file"
        blocker.write_text("")

        code = mine_products.main(
            ["--max-pages", "1", "--output", str(blocker / "corpus.json")]
        )
        assert code == 1

    def test_print_progress_marks_empty_and_failed_pages(self, capsys):
        def progress(state):
            return PageProgress(
                page=4,
                attempted=0,
                valid=0,
                added=0,
                duplicates=0,
                total=7,
                target=10,
                grade_counts={},
                state=state,
            )

        mine_products.print_progress(progress(MinerState.PAGE_EMPTY))
        mine_products.print_progress(progress(MinerState.FETCHING))

        out = capsys.readouterr().out
        assert "Page 4: empty" in out
        assert "Page 4: FAILED (skipped)" in out


class TestTrainModel:
    def test_writes_artifacts(self, tmp_path, seed_file):
        out = tmp_path / "model"
        code = train_model.main(
            [
                "--seed-data",
                str(seed_file),
                "--output-dir",
                str(out),
                "--epochs",
                "3",
                "--augment",
                "1",
                "--seed",
                "0",
            ]
        )

        assert code == 0
        weights = json.loads((out / "model_weights.json").read_text())
        assert weights["epochs"] == 3
        assert weights["trainingExamples"] == 48
        assert "categories" in json.loads((out / "category_index.json").read_text())

    def test_missing_seed_file(self, tmp_path):
        code = train_model.main(
            ["--seed-data", str(tmp_path / "nope.json"), "--output-dir", str(tmp_path)]
        )
        assert code == 1

    def test_invalid_seed_file(self, tmp_path):
        path = tmp_path / "seed.json"
        path.write_text(json.dumps({"version": "1", "examples": []}))
        code = train_model.main(["--seed-data", str(path), "--output-dir", str(tmp_path)])
        assert code == 1


class TestEvaluateModel:
    @pytest.fixture
    def weights_path(self, tmp_path):
        network = DenseNetwork((12, 16, 8, 1), rng=np.random.default_rng(4))
        path = tmp_path / "model_weights.json"
        write_weights(to_model_weights(network, 10, 1, 5.0), path)
        return path

    @pytest.fixture
    def corpus_path(self, tmp_path, raw_record):
        products = [
            to_canonical(raw_record(code="1", ecoscore_score=85, ecoscore_grade="a")),
            to_canonical(raw_record(code="2", ecoscore_score=30, ecoscore_grade="d")),
            to_canonical(raw_record(code="3", ecoscore_score=35, ecoscore_grade="d")),
        ]
        result = MiningResult(
            products=products,
            grade_counts=grade_histogram(products),
            total_scanned=3,
            pages_attempted=1,
            pages_failed=0,
            stop_reason=StopReason.MAX_PAGES,
        )
        path = tmp_path / "corpus.json"
        write_corpus(result, path, source="test")
        return path

    def test_prints_report(self, weights_path, corpus_path, capsys):
        code = evaluate_model.main(
            ["--weights", str(weights_path), "--corpus", str(corpus_path), "--samples", "2"]
        )

        assert code == 0
        out = capsys.readouterr().out
        assert "Samples: 3" in out
        assert "Exact grade match" in out
        lines = out.splitlines()
        assert any(line.startswith("A ") and line.split()[1] == "1" for line in lines)
        assert any(line.startswith("D ") and line.split()[1] == "2" for line in lines)
        assert any(line.split() == ["B", "0", "-", "-", "-"] for line in lines)

    def test_missing_weights(self, tmp_path, corpus_path):
        code = evaluate_model.main(
            ["--weights", str(tmp_path / "nope.json"), "--corpus", str(corpus_path)]
        )
        assert code == 1

    def test_corrupt_weights(self, tmp_path, corpus_path):
        path = tmp_path / "model_weights.json"
        path.write_text("{}")
        code = evaluate_model.main(["--weights", str(path), "--corpus", str(corpus_path)])
        assert code == 1

    def test_empty_corpus(self, tmp_path, weights_path):
        result = MiningResult(
            products=[],
            grade_counts={},
            total_scanned=0,
            pages_attempted=1,
            pages_failed=0,
            stop_reason=StopReason.EMPTY_PAGES,
        )
        path = tmp_path / "corpus.json"
        write_corpus(result, path, source="test")
        code = evaluate_model.main(["--weights", str(weights_path), "--corpus", str(path)])
        assert code == 1

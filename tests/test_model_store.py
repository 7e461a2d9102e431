from __future__ import annotations

import pickle
from pathlib import Path

import pytest

from receiptnote import model_store
from receiptnote.classifier import partial_train


def _model():
    model, _ = partial_train(
        [
            {"text": "편의점 우유", "label": "food"},
            {"text": "약국 감기약", "label": "medical"},
        ]
    )
    return model


def test_missing_file_means_no_model(tmp_path: Path) -> None:
    assert model_store.load_latest_model(tmp_path / "absent.pkl") == (None, None)


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "models" / "category.pkl"

    version = model_store.save_model(path, _model(), "sgd-tfidf-test", {"n": 2})
    loaded, name = model_store.load_latest_model(path)

    assert version == "sgd-tfidf-test"
    assert name == "sgd-tfidf-test"
    assert {"food", "medical"} <= set(loaded.classifier.classes_)
    assert [p.name for p in path.parent.iterdir()] == ["category.pkl"]


def test_corrupt_payload_raises(tmp_path: Path) -> None:
    path = tmp_path / "category.pkl"
    path.write_bytes(b"not a pickle")

    with pytest.raises(model_store.ModelStoreError):
        model_store.load_latest_model(path)


def test_foreign_payload_raises(tmp_path: Path) -> None:
    path = tmp_path / "category.pkl"
    path.write_bytes(pickle.dumps({"name": "x", "model": "nope"}))

    with pytest.raises(model_store.ModelStoreError):
        model_store.load_latest_model(path)


def test_generate_version_name_prefix() -> None:
    assert model_store.generate_version_name("rules").startswith("rules-")

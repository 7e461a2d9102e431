"""Expense category classification.

A fixed keyword table gives every receipt a category out of the box. Once
enough corrected receipts are available, an incrementally trained TF-IDF +
SGD model can take over; the keyword table stays as the fallback.
"""
from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.linear_model import SGDClassifier

Sample = Dict[str, Any]

DEFAULT_CATEGORY = "other"
RULE_CONFIDENCE = 0.5

# First matching row wins, so "마트" always lands in food.
CATEGORY_RULES: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("food", ("편의점", "마트", "카페", "커피", "음식점", "치킨", "피자", "hamburger", "coffee", "restaurant")),
    ("transportation", ("지하철", "버스", "택시", "주유", "gas", "subway", "bus")),
    ("medical", ("병원", "약국", "의원", "clinic", "hospital", "pharmacy")),
    ("shopping", ("마트", "쇼핑", "세탁", "mart", "shopping")),
)
CATEGORIES: Tuple[str, ...] = tuple(sorted({category for category, _ in CATEGORY_RULES} | {DEFAULT_CATEGORY}))


@dataclass
class ModelBundle:
    """Container holding the artefacts required for inference."""

    vectorizer: TfidfVectorizer
    classifier: SGDClassifier


def detect_category(text: str) -> str:
    """Return the first category whose keywords occur in ``text``."""

    lowered = (text or "").lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def build_or_load_vectorizer(existing: Optional[TfidfVectorizer] = None) -> TfidfVectorizer:
    if existing is not None:
        return existing
    # Character n-grams cope with Hangul words that carry no spaces.
    return TfidfVectorizer(analyzer="char_wb", ngram_range=(1, 3), min_df=1)


def build_classifier(existing: Optional[SGDClassifier] = None) -> SGDClassifier:
    if existing is not None:
        return existing
    return SGDClassifier(loss="log_loss", max_iter=5, tol=1e-3)


def _softmax(scores: Sequence[float]) -> List[float]:
    max_score = max(scores)
    exps = [math.exp(s - max_score) for s in scores]
    denom = sum(exps) or 1.0
    return [val / denom for val in exps]


def predict_category(text: str, model: Optional[ModelBundle]) -> Tuple[str, float, List[Tuple[str, float]]]:
    """Return the best guess category, its score, and up to three alternatives."""

    if not model:
        label = detect_category(text)
        return label, RULE_CONFIDENCE, [(label, RULE_CONFIDENCE)]

    classes = getattr(model.classifier, "classes_", np.array([]))
    if classes.size == 0:
        label = detect_category(text)
        return label, RULE_CONFIDENCE, [(label, RULE_CONFIDENCE)]

    transformed = model.vectorizer.transform([text or ""])
    if hasattr(model.classifier, "predict_proba"):
        proba = model.classifier.predict_proba(transformed)[0]
    else:
        decision = model.classifier.decision_function(transformed)
        if np.ndim(decision) == 1:
            decision = np.array([decision])
        proba = _softmax(decision[0])

    ranked = sorted(zip(classes, proba), key=lambda item: item[1], reverse=True)
    top_label, top_score = ranked[0]
    alternatives = [(str(label), float(score)) for label, score in ranked[:3]]
    return str(top_label), float(top_score), alternatives


def partial_train(
    samples: Iterable[Sample],
    existing_model: Optional[ModelBundle] = None,
) -> Tuple[Optional[ModelBundle], Dict[str, Any]]:
    """Perform an incremental training round and return metrics.

    ``existing_model`` is never modified; training continues on a copy so a
    caller that fails to persist the result still holds the previous model.
    Every label must be one of :data:`CATEGORIES`.
    """

    sample_list = list(samples)
    metrics: Dict[str, Any] = {"n": len(sample_list)}
    if not sample_list:
        metrics["skipped"] = True
        return existing_model, metrics

    texts = [str(sample.get("text") or "") for sample in sample_list]
    labels = [
        str(sample["label"]) if sample.get("label") is not None else DEFAULT_CATEGORY
        for sample in sample_list
    ]

    unknown = sorted(set(labels) - set(CATEGORIES))
    if unknown:
        raise ValueError(f"unknown categories: {', '.join(unknown)}")

    if existing_model is not None:
        existing_model = copy.deepcopy(existing_model)
    vectorizer = build_or_load_vectorizer(existing_model.vectorizer if existing_model else None)
    classifier = build_classifier(existing_model.classifier if existing_model else None)

    if not existing_model:
        vectorizer.fit(texts)
    transformed = vectorizer.transform(texts)

    # The class set is fixed on the first fit, so it always spans every category.
    classifier.partial_fit(transformed, labels, classes=np.array(CATEGORIES))

    metrics["classes"] = [str(label) for label in classifier.classes_]
    return ModelBundle(vectorizer=vectorizer, classifier=classifier), metrics


__all__ = [
    "CATEGORIES",
    "CATEGORY_RULES",
    "DEFAULT_CATEGORY",
    "ModelBundle",
    "build_classifier",
    "build_or_load_vectorizer",
    "detect_category",
    "partial_train",
    "predict_category",
]

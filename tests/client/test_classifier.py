"""Tests for request classification."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import httpx
import pytest
from pytest_httpx import HTTPXMock

from rescuesync.client.classifier import (
    Classification,
    ClassificationUnavailable,
    HTTPClassifier,
    apply_classification,
    classify,
)
from rescuesync.core.config import ClassifierConfig
from rescuesync.core.types import DEFAULT_CATEGORY, Urgency

ENDPOINT = "http://classifier.test/classify"


def suggestion(score: float, category: str = "Medical") -> Classification:
    return Classification(category=category, urgency_score=score)


class TestApplyClassification:
    """Tests for urgency upgrade rules."""

    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (9, Urgency.CRITICAL),
            (8.5, Urgency.CRITICAL),
            (8, Urgency.HIGH),
            (6, Urgency.HIGH),
            (5, Urgency.LOW),
            (1, Urgency.LOW),
        ],
    )
    def test_thresholds(self, score: float, expected: Urgency) -> None:
        urgency, category = apply_classification(Urgency.LOW, suggestion(score))
        assert urgency == expected
        assert category == "Medical"

    def test_no_classification(self) -> None:
        assert apply_classification(Urgency.HIGH, None) == (Urgency.HIGH, DEFAULT_CATEGORY)

    def test_high_score_overrides_critical_choice(self) -> None:
        """A score in the HIGH band replaces the user's urgency."""
        urgency, _ = apply_classification(Urgency.CRITICAL, suggestion(7))
        assert urgency == Urgency.HIGH


class TestClassify:
    """Tests for the failure-absorbing classify wrapper."""

    def test_offline_never_calls(self) -> None:
        classifier = MagicMock()
        assert classify(classifier, "Help", online=False) is None
        classifier.classify.assert_not_called()

    def test_disabled(self) -> None:
        assert classify(None, "Help", online=True) is None

    def test_blank_text_skipped(self) -> None:
        classifier = MagicMock()
        assert classify(classifier, "  ", online=True) is None
        classifier.classify.assert_not_called()

    def test_failure_absorbed(self) -> None:
        classifier = MagicMock()
        classifier.classify.side_effect = ClassificationUnavailable("down")
        assert classify(classifier, "Help", online=True) is None

    def test_success(self) -> None:
        classifier = MagicMock()
        classifier.classify.return_value = suggestion(3)
        assert classify(classifier, "Help", online=True) == suggestion(3)


class TestClassificationModel:
    """Tests for response validation."""

    def test_camel_case_aliases(self) -> None:
        result = Classification.model_validate({
            "category": "Fire",
            "urgencyScore": 7,
            "estimatedPeople": 12,
            "suggestedResources": ["ladder", "ambulance"],
        })
        assert result.urgency_score == 7
        assert result.estimated_people == 12
        assert result.suggested_resources == ["ladder", "ambulance"]

    def test_defaults(self) -> None:
        result = Classification.model_validate({"category": "Fire", "urgencyScore": 2})
        assert result.estimated_people == 1
        assert result.suggested_resources == []


class TestHTTPClassifier:
    """Tests for the HTTP classification client."""

    @pytest.fixture
    def classifier(self):
        c = HTTPClassifier(ClassifierConfig(endpoint_url=ENDPOINT, timeout=1.0))
        yield c
        c.close()

    def test_valid_response(self, classifier: HTTPClassifier, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=ENDPOINT,
            json={"category": "Flood", "urgencyScore": 9, "estimatedPeople": 3},
        )

        result = classifier.classify("Water rising fast")

        assert result.category == "Flood"
        assert result.urgency_score == 9
        request = httpx_mock.get_request()
        assert request is not None
        assert json.loads(request.read()) == {"text": "Water rising fast"}

    def test_malformed_response(self, classifier: HTTPClassifier, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=ENDPOINT, json={"category": "Flood"})

        with pytest.raises(ClassificationUnavailable, match="Malformed"):
            classifier.classify("Water rising fast")

    def test_out_of_range_score(self, classifier: HTTPClassifier, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST", url=ENDPOINT, json={"category": "Flood", "urgencyScore": 42},
        )

        with pytest.raises(ClassificationUnavailable):
            classifier.classify("Water rising fast")

    def test_not_json(self, classifier: HTTPClassifier, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=ENDPOINT, text="<html>oops</html>")

        with pytest.raises(ClassificationUnavailable, match="Malformed"):
            classifier.classify("Water rising fast")

    def test_server_error(self, classifier: HTTPClassifier, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=ENDPOINT, status_code=500)

        with pytest.raises(ClassificationUnavailable, match="failed"):
            classifier.classify("Water rising fast")

    def test_timeout(self, classifier: HTTPClassifier, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(ClassificationUnavailable):
            classifier.classify("Water rising fast")

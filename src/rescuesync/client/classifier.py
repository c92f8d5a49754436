"""Request classification (enrichment) for new rescue requests.

This module provides:
- Classification: Validated suggestion returned by the classification service
- Classifier: Protocol for classification collaborators
- HTTPClassifier: httpx client for a JSON classification endpoint
- classify: Never-raising wrapper used by the domain service
- apply_classification: Urgency/category upgrade rules

Classification is optional enrichment. It runs only while online, is never
retried, and any failure falls back to the user's own choices.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rescuesync.core.types import DEFAULT_CATEGORY, Urgency

if TYPE_CHECKING:
    from rescuesync.core.config import ClassifierConfig

logger = logging.getLogger(__name__)

# Score thresholds (exclusive) for urgency upgrades
CRITICAL_SCORE_THRESHOLD = 8
HIGH_SCORE_THRESHOLD = 5


class ClassificationUnavailable(Exception):
    """The classifier failed or returned malformed data."""


class Classification(BaseModel):
    """Structured suggestion for a free-text rescue request."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    category: str = Field(min_length=1)
    urgency_score: float = Field(alias="urgencyScore", ge=1, le=10)
    estimated_people: int = Field(default=1, alias="estimatedPeople", ge=1)
    suggested_resources: list[str] = Field(default_factory=list, alias="suggestedResources")


class Classifier(Protocol):
    """Anything able to classify request text."""

    def classify(self, text: str) -> Classification:
        """Classify text.

        Raises:
            ClassificationUnavailable: On any failure.
        """
        ...


class HTTPClassifier:
    """Client for an HTTP classification endpoint.

    The endpoint receives ``{"text": ...}`` and answers with a JSON object
    carrying ``category``, ``urgencyScore``, ``estimatedPeople`` and
    ``suggestedResources``.
    """

    def __init__(self, config: ClassifierConfig) -> None:
        self._config = config
        self._client = httpx.Client(timeout=config.timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClassifier:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def classify(self, text: str) -> Classification:
        """Ask the service to classify a request message.

        Raises:
            ClassificationUnavailable: On network errors, error statuses,
                or a response that does not validate.
        """
        try:
            response = self._client.post(self._config.endpoint_url, json={"text": text})
            response.raise_for_status()
            return Classification.model_validate(response.json())
        except httpx.HTTPError as e:
            raise ClassificationUnavailable(f"Classification request failed: {e}") from e
        except (ValueError, ValidationError) as e:
            raise ClassificationUnavailable(f"Malformed classification: {e}") from e


def classify(classifier: Classifier | None, text: str, online: bool) -> Classification | None:
    """Classify text, absorbing every failure.

    Args:
        classifier: Classification collaborator (None disables enrichment).
        text: Request message.
        online: Current connectivity; the classifier is never called offline.

    Returns:
        The classification, or None when offline, disabled or failed.
    """
    if classifier is None or not online or not text.strip():
        return None
    try:
        return classifier.classify(text)
    except ClassificationUnavailable as e:
        logger.warning("Classification unavailable, keeping user input: %s", e)
        return None


def apply_classification(
    urgency: Urgency,
    classification: Classification | None,
) -> tuple[Urgency, str]:
    """Compute final urgency and category for a new request.

    A score above 8 upgrades to CRITICAL, above 5 to HIGH; otherwise the
    user's urgency is kept. Without a classification the category is
    DEFAULT_CATEGORY.

    Returns:
        (urgency, category)
    """
    if classification is None:
        return urgency, DEFAULT_CATEGORY

    if classification.urgency_score > CRITICAL_SCORE_THRESHOLD:
        urgency = Urgency.CRITICAL
    elif classification.urgency_score > HIGH_SCORE_THRESHOLD:
        urgency = Urgency.HIGH
    return urgency, classification.category

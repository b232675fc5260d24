"""Decide which network requests count as API calls."""

import re
from typing import Iterable, Optional, Protocol, runtime_checkable

from sitepulse.constants import API_RESOURCE_TYPES, API_URL_PATTERNS


@runtime_checkable
class ApiClassifier(Protocol):
    """Predicate deciding whether a request is an API call."""

    def is_api_call(self, url: str, resource_type: str) -> bool:
        ...


class PatternApiClassifier:
    """Heuristic classifier based on resource type and URL shape.

    A request is an API call when the browser reports it as XHR/fetch, or
    when its URL looks like an API endpoint (``/api/``, ``/graphql``,
    ``/rest/``, ``/v2/``, ``*.json``). False positives and negatives are
    accepted.
    """

    def __init__(
        self,
        patterns: Optional[Iterable[str]] = None,
        resource_types: Optional[Iterable[str]] = None,
    ):
        self.patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in (patterns if patterns is not None else API_URL_PATTERNS)
        ]
        self.resource_types = {
            rt.lower() for rt in (resource_types if resource_types is not None else API_RESOURCE_TYPES)
        }

    def is_api_call(self, url: str, resource_type: str) -> bool:
        if resource_type and resource_type.lower() in self.resource_types:
            return True
        return any(pattern.search(url or "") for pattern in self.patterns)


default_classifier = PatternApiClassifier()


def classify(url: str, resource_type: str) -> bool:
    """Classify a request with the default heuristic."""
    return default_classifier.is_api_call(url, resource_type)

"""Shared plumbing for turning platform webhook bodies into canonical events."""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from hookreview.core.exceptions import WebhookParseError
from hookreview.models.platform import Platform
from hookreview.models.webhook_event import CanonicalEvent


class WebhookParser(ABC):
    """Parses one platform's webhook deliveries.

    Parsing is pure: it never touches the network, the database or the clock.
    """

    platform: Platform
    event_header: str
    signature_header: str
    delivery_header: str

    def parse(
        self, raw_body: Union[bytes, str], headers: Mapping[str, str]
    ) -> CanonicalEvent:
        """Build a canonical event or raise ``WebhookParseError``."""
        text = self._decode(raw_body)
        payload = self._load(text)
        try:
            return self.build_event(payload, text, headers)
        except WebhookParseError:
            raise
        except (
            AttributeError,
            KeyError,
            TypeError,
            ValueError,
            ValidationError,
        ) as e:
            raise WebhookParseError(
                f"Malformed {self.platform.value} webhook payload: {e}"
            ) from e

    @abstractmethod
    def build_event(
        self, payload: Dict[str, Any], raw_payload: str, headers: Mapping[str, str]
    ) -> CanonicalEvent:
        pass

    @abstractmethod
    def should_process(self, event: CanonicalEvent) -> bool:
        pass

    def signature(self, headers: Mapping[str, str]) -> Optional[str]:
        return header_value(headers, self.signature_header)

    def delivery_id(self, headers: Mapping[str, str]) -> Optional[str]:
        return header_value(headers, self.delivery_header)

    @staticmethod
    def _decode(raw_body: Union[bytes, str]) -> str:
        if isinstance(raw_body, bytes):
            try:
                return raw_body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise WebhookParseError(f"Webhook body is not UTF-8: {e}") from e
        return raw_body

    def _load(self, text: str) -> Dict[str, Any]:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise WebhookParseError(f"Webhook body is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise WebhookParseError("Webhook body must be a JSON object")
        return payload


def header_value(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup over any mapping."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def require(container: Any, key: str, context: str) -> Any:
    """Return ``container[key]``, failing the parse when it is absent or null."""
    if not isinstance(container, dict):
        raise WebhookParseError(f"Expected an object for '{context}'")
    value = container.get(key)
    if value is None:
        raise WebhookParseError(f"Missing required field '{context}.{key}'")
    return value


def require_object(container: Any, key: str, context: str) -> Dict[str, Any]:
    value = require(container, key, context)
    if not isinstance(value, dict):
        raise WebhookParseError(f"Expected an object for '{context}.{key}'")
    return value


def optional_object(
    container: Any, key: str, context: str
) -> Optional[Dict[str, Any]]:
    """Like ``require_object`` but an absent or null value gives ``None``."""
    if not isinstance(container, dict):
        raise WebhookParseError(f"Expected an object for '{context}'")
    value = container.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise WebhookParseError(f"Expected an object for '{context}.{key}'")
    return value


def as_id(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip("{}")

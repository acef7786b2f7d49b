"""
Centralized access to the order engine's tunables.

Values come from the POS_ENGINE dict in Django settings. The accessor is a lazy
singleton so importing it never touches settings before Django is configured.
"""

from typing import Any, Optional
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


DEFAULTS = {
    "CURRENCY": "USD",
    "CONFLICT_RETRY_ATTEMPTS": 3,
    "MIN_RESERVATION_MINUTES": 15,
    "ORDER_NUMBER_PREFIX": "ORD",
}


class EngineSettings:
    """
    A LAZY singleton over settings.POS_ENGINE.

    Attribute names are the lowercased keys, e.g. ``engine_settings.currency``.
    """

    _instance: Optional["EngineSettings"] = None

    def __new__(cls) -> "EngineSettings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._values = None
        return cls._instance

    def _load(self):
        configured = getattr(settings, "POS_ENGINE", {}) or {}
        unknown = set(configured) - set(DEFAULTS)
        if unknown:
            logger.warning(f"Ignoring unknown POS_ENGINE keys: {', '.join(sorted(unknown))}")

        values = dict(DEFAULTS)
        values.update({key: value for key, value in configured.items() if key in DEFAULTS})

        if int(values["CONFLICT_RETRY_ATTEMPTS"]) < 1:
            raise ValueError("POS_ENGINE['CONFLICT_RETRY_ATTEMPTS'] must be at least 1")

        values["CONFLICT_RETRY_ATTEMPTS"] = int(values["CONFLICT_RETRY_ATTEMPTS"])
        values["MIN_RESERVATION_MINUTES"] = int(values["MIN_RESERVATION_MINUTES"])
        values["CURRENCY"] = str(values["CURRENCY"]).upper()
        self._values = values

    def reload(self):
        """Drop cached values so the next access re-reads settings (used by tests)."""
        self._values = None

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if self._values is None:
            self._load()
        try:
            return self._values[name.upper()]
        except KeyError:
            raise AttributeError(f"'EngineSettings' has no setting '{name}'") from None


engine_settings = EngineSettings()

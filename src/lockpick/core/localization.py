"""Typed string lookup for user-facing text.

Every key is listed in ``LocalizationKey``; catalogs are flat YAML files
mapping key values to templates with ``{placeholder}`` fields.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .models import DegreeOfSuccess

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_DIR = Path(__file__).parent.parent / "lang"


class LocalizationKey(str, Enum):
    # Chat
    CHAT_ATTEMPT = "lockpick.chat.attempt"
    CHAT_RESULT = "lockpick.chat.result"
    CHAT_PICK_DESTROYED = "lockpick.chat.pickDestroyed"
    CHAT_LOCK_PICKED = "lockpick.chat.lockPicked"

    # Degrees
    DEGREE_CRITICAL_SUCCESS = "lockpick.degree.criticalSuccess"
    DEGREE_SUCCESS = "lockpick.degree.success"
    DEGREE_FAILURE = "lockpick.degree.failure"
    DEGREE_CRITICAL_FAILURE = "lockpick.degree.criticalFailure"

    # Challenge view
    VIEW_TITLE = "lockpick.view.title"
    VIEW_CHARACTER = "lockpick.view.character"
    VIEW_DC = "lockpick.view.dc"
    VIEW_REQUIRED = "lockpick.view.requiredSuccesses"
    VIEW_SUCCESSES = "lockpick.view.successes"
    VIEW_REMAINING_PICKS = "lockpick.view.remainingPicks"
    VIEW_TOOLKIT = "lockpick.view.toolkit"
    VIEW_PICK_LOCK = "lockpick.view.pickLock"
    VIEW_CLOSE = "lockpick.view.close"
    VIEW_MISSING_ACTOR = "lockpick.view.missingActor"
    VIEW_NO_TOOLKIT = "lockpick.view.noToolkit"

    # Start dialog
    START_TITLE = "lockpick.start.title"
    START_INVALID_DC = "lockpick.start.invalidDc"
    START_MISSING_ACTOR = "lockpick.start.missingActor"


DEGREE_KEYS = {
    DegreeOfSuccess.CRITICAL_SUCCESS: LocalizationKey.DEGREE_CRITICAL_SUCCESS,
    DegreeOfSuccess.SUCCESS: LocalizationKey.DEGREE_SUCCESS,
    DegreeOfSuccess.FAILURE: LocalizationKey.DEGREE_FAILURE,
    DegreeOfSuccess.CRITICAL_FAILURE: LocalizationKey.DEGREE_CRITICAL_FAILURE,
}


class Localizer:
    """Resolves ``LocalizationKey`` values against a loaded catalog."""

    def __init__(self, catalog: dict[str, str] | None = None):
        self.catalog = dict(catalog or {})

    @classmethod
    def load(cls, language: str = "en", catalog_dir: Path | None = None) -> "Localizer":
        """Load ``<language>.yaml`` from the catalog directory.

        Falls back to English when the requested language has no catalog.
        """
        directory = catalog_dir or DEFAULT_CATALOG_DIR
        path = directory / f"{language}.yaml"
        if not path.exists():
            logger.warning(f"No catalog for language '{language}' in {directory}, using 'en'")
            path = directory / "en.yaml"

        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        catalog = {str(k): str(v) for k, v in raw.items()}
        logger.debug(f"Loaded {len(catalog)} strings from {path}")
        return cls(catalog)

    def lookup(self, key: LocalizationKey) -> str:
        text = self.catalog.get(key.value)
        if text is None:
            logger.debug(f"Missing localization key: {key.value}")
            return key.value
        return text

    def format(self, key: LocalizationKey, **data: Any) -> str:
        template = self.lookup(key)
        try:
            return template.format(**data)
        except (KeyError, IndexError, ValueError) as e:
            logger.warning(f"Could not format {key.value}: {e}")
            return template

    def degree_label(self, degree: DegreeOfSuccess) -> str:
        return self.lookup(DEGREE_KEYS[degree])

    def missing_keys(self) -> list[LocalizationKey]:
        return [key for key in LocalizationKey if key.value not in self.catalog]

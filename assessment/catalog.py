"""
Section catalog: the fixed, ordered list of test sections and their time budgets.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from assessment.logger import setup_logger
from assessment.utils.exceptions import CatalogError

logger = setup_logger(__name__)


class SectionDescriptor(BaseModel):
    """
    One section of the test.

    A section needs either a whole-section budget (``total_seconds``) or a way
    to derive it from per-question budgets.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    key: str
    name: str
    # Wire name kept from the browser client ("questions")
    question_count: int = Field(ge=1, alias="questions")
    total_seconds: Optional[int] = Field(default=None, gt=0)
    per_question_seconds: Optional[int] = Field(default=None, gt=0)
    view_seconds: Optional[int] = Field(default=None, gt=0)
    type_seconds: Optional[int] = Field(default=None, gt=0)
    instructions: str = ""

    @model_validator(mode="after")
    def _check_budget(self) -> "SectionDescriptor":
        if (self.view_seconds is None) != (self.type_seconds is None):
            raise ValueError(
                f"section {self.key}: view_seconds and type_seconds go together"
            )
        if (
            self.total_seconds is None
            and self.per_question_seconds is None
            and self.view_seconds is None
        ):
            raise ValueError(f"section {self.key}: no time budget configured")
        return self

    @property
    def question_seconds(self) -> int:
        """Advisory per-question budget, enforced by the client only."""
        if self.per_question_seconds is not None:
            return self.per_question_seconds
        if self.view_seconds is not None and self.type_seconds is not None:
            return self.view_seconds + self.type_seconds
        # Whole section is a single answering window
        return self.total_seconds  # type: ignore[return-value]

    @property
    def section_seconds(self) -> int:
        """Server-enforced section budget."""
        if self.total_seconds is not None:
            return self.total_seconds
        return self.question_count * self.question_seconds


class Catalog:
    """
    Ordered, immutable collection of sections plus the global test budget.
    """

    def __init__(self, sections: Iterable[SectionDescriptor], total_seconds: int):
        self._sections: List[SectionDescriptor] = list(sections)
        if not self._sections:
            raise CatalogError("catalog has no sections")
        if total_seconds <= 0:
            raise CatalogError(f"total_seconds must be positive, got {total_seconds}")

        self._by_key: Dict[str, SectionDescriptor] = {}
        for section in self._sections:
            if section.key in self._by_key:
                raise CatalogError(f"duplicate section key: {section.key}")
            self._by_key[section.key] = section

        self.total_seconds = total_seconds

    @property
    def section_order(self) -> List[str]:
        return [s.key for s in self._sections]

    def section(self, key: str) -> SectionDescriptor:
        try:
            return self._by_key[key]
        except KeyError:
            raise CatalogError(f"unknown section key: {key}") from None

    def section_at(self, index: int) -> SectionDescriptor:
        if not 0 <= index < len(self._sections):
            raise CatalogError(f"section index out of range: {index}")
        return self._sections[index]

    def __len__(self) -> int:
        return len(self._sections)

    def __iter__(self) -> Iterator[SectionDescriptor]:
        return iter(self._sections)

    def to_public_dict(self) -> Dict[str, Any]:
        """Body of GET /api/config."""
        return {
            "sectionOrder": self.section_order,
            "sectionConfig": {
                s.key: s.model_dump(by_alias=True, exclude_none=True, exclude={"key"})
                for s in self._sections
            },
            "totalSeconds": self.total_seconds,
        }

    @classmethod
    def from_public_dict(cls, data: Dict[str, Any]) -> "Catalog":
        """Inverse of :meth:`to_public_dict`, used by the client and the file loader."""
        try:
            order = data["sectionOrder"]
            config = data["sectionConfig"]
            total = int(data["totalSeconds"])
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogError(f"malformed catalog: {e}") from e

        sections = []
        for key in order:
            if key not in config:
                raise CatalogError(f"section {key} listed in sectionOrder but not configured")
            try:
                sections.append(SectionDescriptor.model_validate({**config[key], "key": key}))
            except (ValidationError, TypeError) as e:
                raise CatalogError(f"invalid section {key}: {e}") from e
        return cls(sections, total_seconds=total)


# ----------------------------------------------------------------------
# Default nine-part speaking / writing test
# ----------------------------------------------------------------------
DEFAULT_TOTAL_SECONDS = 3000  # 50 minutes

_DEFAULT_SECTIONS: List[Dict[str, Any]] = [
    {
        "key": "A", "name": "Read Aloud", "questions": 2,
        "total_seconds": 120, "per_question_seconds": 30,
        "instructions": "Read aloud each passage. Recording starts automatically and stops after 30 seconds.",
    },
    {
        "key": "B", "name": "Repeats", "questions": 16,
        "total_seconds": 300, "per_question_seconds": 15,
        "instructions": "Listen to each sentence once and repeat immediately. No replay.",
    },
    {
        "key": "C", "name": "Sentence Builds", "questions": 10,
        "total_seconds": 180, "per_question_seconds": 15,
        "instructions": "See jumbled phrases and speak the correct sentence.",
    },
    {
        "key": "D", "name": "Conversations", "questions": 12,
        "total_seconds": 120, "per_question_seconds": 10,
        "instructions": "Listen to the conversation once and answer the question by voice.",
    },
    {
        "key": "E", "name": "Typing", "questions": 1,
        "total_seconds": 60,
        "instructions": "Type the passage exactly. Copy/paste and autocorrect are disabled.",
    },
    {
        "key": "F", "name": "Sentence Completion", "questions": 20,
        "total_seconds": 480, "per_question_seconds": 25,
        "instructions": "Type one word to complete each sentence. 25 seconds each.",
    },
    {
        "key": "G", "name": "Dictation", "questions": 16,
        "total_seconds": 420, "per_question_seconds": 25,
        "instructions": "Listen once and type the sentence. 25 seconds each.",
    },
    {
        "key": "H", "name": "Passage Reconstruction", "questions": 3,
        "total_seconds": 360, "view_seconds": 30, "type_seconds": 90,
        "instructions": "Memorize the passage, then type it from memory. No hints.",
    },
    {
        "key": "I", "name": "Summary & Opinion", "questions": 1,
        "total_seconds": 1080,
        "instructions": "Write a summary and opinion within the shared time limit.",
    },
]


def default_catalog(total_seconds: int = DEFAULT_TOTAL_SECONDS) -> Catalog:
    """Build the built-in nine-section catalog."""
    return Catalog(
        (SectionDescriptor(**fields) for fields in _DEFAULT_SECTIONS),
        total_seconds=total_seconds,
    )


def load_catalog(path: Optional[str] = None, total_seconds: int = DEFAULT_TOTAL_SECONDS) -> Catalog:
    """
    Load a catalog from a JSON file shaped like the GET /api/config body.

    Args:
        path: JSON file path; the built-in catalog is used when None
        total_seconds: Global budget for the built-in catalog

    Returns:
        Catalog instance

    Raises:
        CatalogError: If the file is missing or malformed
    """
    if path is None:
        return default_catalog(total_seconds)

    catalog_file = Path(path)
    try:
        data = json.loads(catalog_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"cannot read catalog {catalog_file}: {e}") from e

    catalog = Catalog.from_public_dict(data)
    logger.info(f"📚 Loaded catalog from {catalog_file} ({len(catalog)} sections)")
    return catalog

import json

import pytest

from assessment.catalog import Catalog, SectionDescriptor, default_catalog, load_catalog
from assessment.utils.exceptions import CatalogError


def test_default_catalog_shape():
    catalog = default_catalog()
    assert catalog.section_order == list("ABCDEFGHI")
    assert catalog.total_seconds == 3000
    assert catalog.section("B").question_count == 16
    assert catalog.section_at(8).name == "Summary & Opinion"


def test_question_seconds_derivation(catalog):
    assert catalog.section("A").question_seconds == 30
    # view + type window
    assert catalog.section("H").question_seconds == 120
    # single-question section uses the whole section budget
    assert catalog.section("E").question_seconds == 60


def test_section_seconds_prefers_explicit_total():
    explicit = SectionDescriptor(key="X", name="x", questions=4, total_seconds=100, per_question_seconds=10)
    derived = SectionDescriptor(key="Y", name="y", questions=4, per_question_seconds=10)
    assert explicit.section_seconds == 100
    assert derived.section_seconds == 40


def test_descriptor_requires_a_budget():
    with pytest.raises(ValueError):
        SectionDescriptor(key="X", name="x", questions=2)


def test_descriptor_rejects_zero_questions():
    with pytest.raises(ValueError):
        SectionDescriptor(key="X", name="x", questions=0, total_seconds=10)


def test_catalog_rejects_duplicates_and_empty():
    a = SectionDescriptor(key="A", name="a", questions=1, total_seconds=10)
    with pytest.raises(CatalogError):
        Catalog([a, a], total_seconds=100)
    with pytest.raises(CatalogError):
        Catalog([], total_seconds=100)


def test_section_lookup_errors(catalog):
    with pytest.raises(CatalogError):
        catalog.section("Z")
    with pytest.raises(CatalogError):
        catalog.section_at(len(catalog))


def test_public_dict_matches_wire_format(catalog):
    data = catalog.to_public_dict()
    assert data["sectionOrder"][0] == "A"
    assert data["totalSeconds"] == 3000
    a = data["sectionConfig"]["A"]
    assert a["name"] == "Read Aloud"
    assert a["questions"] == 2
    assert a["totalSeconds"] == 120
    assert a["perQuestionSeconds"] == 30
    assert "viewSeconds" not in a
    assert data["sectionConfig"]["H"]["typeSeconds"] == 90


def test_public_dict_parses_back(catalog):
    parsed = Catalog.from_public_dict(catalog.to_public_dict())
    assert parsed.section_order == catalog.section_order
    assert parsed.section("H").question_seconds == 120


def test_load_catalog_from_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "sectionOrder": ["P", "Q"],
                "sectionConfig": {
                    "P": {"name": "Practice", "questions": 3, "perQuestionSeconds": 20},
                    "Q": {"name": "Quiz", "questions": 1, "totalSeconds": 90},
                },
                "totalSeconds": 200,
            }
        )
    )
    catalog = load_catalog(str(path))
    assert catalog.section_order == ["P", "Q"]
    assert catalog.section("P").section_seconds == 60


def test_load_catalog_errors(tmp_path):
    with pytest.raises(CatalogError):
        load_catalog(str(tmp_path / "missing.json"))

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"sectionOrder": ["P"], "sectionConfig": {}, "totalSeconds": 10}))
    with pytest.raises(CatalogError):
        load_catalog(str(bad))


def test_load_catalog_default_when_no_path():
    assert load_catalog(None, total_seconds=600).total_seconds == 600

from __future__ import annotations

from gt_audit.vision.equivalence import ClassEquivalence, classes_equivalent


def test_case_insensitive_exact_match() -> None:
    assert classes_equivalent("person", "Person")
    assert classes_equivalent("Dog", "dog")


def test_synonym_groups() -> None:
    assert classes_equivalent("Dress", "Clothing")
    assert classes_equivalent("Boot", "Footwear")
    assert classes_equivalent("sneaker", "high heels")
    assert classes_equivalent("girl", "person")
    assert classes_equivalent("jeans", "trousers")


def test_different_groups_are_not_equivalent() -> None:
    assert not classes_equivalent("Boot", "Dress")
    assert not classes_equivalent("handbag", "shorts")


def test_unknown_names_are_not_equivalent() -> None:
    assert not classes_equivalent("dog", "cat")


def test_compound_labels_match_by_substring() -> None:
    assert classes_equivalent("red dress", "clothing")
    assert classes_equivalent("Leather Boots", "shoe")


def test_empty_name_only_matches_empty() -> None:
    assert classes_equivalent("", "  ")
    assert not classes_equivalent("", "dress")


def test_extra_groups_extend_without_touching_defaults() -> None:
    base = ClassEquivalence()
    extended = base.with_extra_groups([["car", "automobile", "sedan"]])

    assert not base.equivalent("sedan", "car")
    assert extended.equivalent("sedan", "car")
    assert extended.equivalent("Dress", "Clothing")


def test_custom_groups_replace_defaults() -> None:
    eq = ClassEquivalence([["cat", "kitten"]])
    assert eq.equivalent("Kitten", "cat")
    assert not eq.equivalent("dress", "clothing")

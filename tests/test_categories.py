import pytest

from codetrack.categories import CATEGORY_ALIASES, normalize_category


@pytest.mark.parametrize("raw, expected", [
    ("array", "arrays"),
    ("Arrays", "arrays"),
    ("  DP ", "dynamic-programming"),
    ("Dynamic Programming", "dynamic-programming"),
    ("hash map", "hash-tables"),
    ("Linked List", "linked-lists"),
    ("binary tree", "trees"),
    ("Two Pointers", "two-pointers"),
])
def test_synonyms_collapse(raw, expected):
    assert normalize_category(raw) == expected


def test_unmapped_category_passes_through_lowercased():
    assert normalize_category("  Segment Tree  ") == "segment tree"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_blank_is_uncategorized(raw):
    assert normalize_category(raw) is None


def test_canonical_forms_are_fixed_points():
    for canonical in set(CATEGORY_ALIASES.values()):
        assert normalize_category(canonical) == canonical

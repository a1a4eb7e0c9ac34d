"""Coarse class-name equivalence for comparing dataset and model labels."""

from __future__ import annotations

from collections.abc import Iterable


DEFAULT_EQUIVALENCE_GROUPS: tuple[tuple[str, ...], ...] = (
    ("clothing", "dress", "suit", "jacket", "coat", "top", "shirt", "blouse"),
    ("footwear", "boot", "shoe", "sandal", "high heels", "sneaker"),
    ("bag", "handbag", "backpack", "briefcase", "luggage and bags", "purse"),
    ("pants", "jeans", "trousers", "shorts"),
    ("person", "human", "man", "woman", "people", "boy", "girl"),
)


def _normalize(name: str) -> str:
    return name.strip().lower()


def _in_group(name: str, group: tuple[str, ...]) -> bool:
    # "red dress" belongs to the dress group, and so does "dres"
    return any(member in name or name in member for member in group)


class ClassEquivalence:
    """Decide whether two class names denote the same real-world category.

    Names are equivalent when they match case-insensitively, or when both
    fall into the same synonym group. A name falls into a group when it
    equals a member, contains one, or is contained by one.
    """

    def __init__(self, groups: Iterable[Iterable[str]] = DEFAULT_EQUIVALENCE_GROUPS):
        self.groups: tuple[tuple[str, ...], ...] = tuple(
            tuple(_normalize(member) for member in group if member.strip()) for group in groups
        )

    def with_extra_groups(self, groups: Iterable[Iterable[str]]) -> ClassEquivalence:
        return ClassEquivalence([*self.groups, *groups])

    def equivalent(self, name1: str, name2: str) -> bool:
        c1 = _normalize(name1)
        c2 = _normalize(name2)

        if c1 == c2:
            return True
        if not c1 or not c2:
            return False

        for group in self.groups:
            if _in_group(c1, group) and _in_group(c2, group):
                return True
        return False


_DEFAULT = ClassEquivalence()


def classes_equivalent(name1: str, name2: str) -> bool:
    """Equivalence check against the built-in synonym groups."""
    return _DEFAULT.equivalent(name1, name2)

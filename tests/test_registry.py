from __future__ import annotations

import unittest

from mdcapsule.registry import (
    CAPSULE_SENTINEL,
    PLACEHOLDER_RE,
    CapsuleRegistry,
    find_placeholder,
    format_placeholder,
    iter_placeholders,
)

TYPE_A = "aaaa0001-0000-4000-8000-000000000001"
TYPE_B = "bbbb0002-0000-4000-8000-000000000002"


class TestCapsuleRegistry(unittest.TestCase):
    def test_ids_are_monotonic_across_types(self) -> None:
        registry = CapsuleRegistry()
        first = registry.add(TYPE_A, prefix="", source="a", suffix="", enclosed_text="a\n")
        second = registry.add(TYPE_B, prefix="", source="b", suffix="", enclosed_text="b\n")
        self.assertEqual((first.id, second.id), (1, 2))
        self.assertEqual(len(registry), 2)
        self.assertIs(registry.lookup(TYPE_A, 1), first)
        self.assertIsNone(registry.lookup(TYPE_B, 1))

    def test_placeholder_is_single_token_text(self) -> None:
        registry = CapsuleRegistry(nonce="0badf00d")
        record = registry.add(TYPE_A, prefix="", source="x", suffix="", enclosed_text="x\n")
        placeholder = registry.placeholder(record)
        self.assertTrue(placeholder.startswith(CAPSULE_SENTINEL + ".0badf00d."))
        self.assertTrue(placeholder.endswith("." + CAPSULE_SENTINEL))
        self.assertRegex(placeholder, r"^[0-9a-f.-]+$")
        self.assertIsNotNone(PLACEHOLDER_RE.fullmatch(placeholder))
        self.assertIs(registry.resolve(placeholder), record)

    def test_placeholder_never_holds_an_emoji_shortcode(self) -> None:
        # gfm reads ":100:" or ":1234:" as emoji and splits the text run around it.
        registry = CapsuleRegistry()
        for capsule_id in (1, 100, 1234):
            placeholder = format_placeholder(registry.nonce, TYPE_A, capsule_id)
            with self.subTest(capsule_id=capsule_id):
                self.assertNotIn(":", placeholder)
                self.assertEqual(PLACEHOLDER_RE.fullmatch(placeholder).group("id"), str(capsule_id))

    def test_foreign_nonce_never_resolves(self) -> None:
        old = CapsuleRegistry(nonce="11111111")
        new = CapsuleRegistry(nonce="22222222")
        record = old.add(TYPE_A, prefix="", source="x", suffix="", enclosed_text="x\n")
        new.add(TYPE_A, prefix="", source="y", suffix="", enclosed_text="y\n")
        self.assertIsNone(new.resolve(old.placeholder(record)))

    def test_rejects_type_tags_that_break_placeholders(self) -> None:
        registry = CapsuleRegistry()
        with self.assertRaises(ValueError):
            registry.add("Not A Tag", prefix="", source="x", suffix="", enclosed_text="x")

    def test_find_placeholder_uses_explicit_offsets(self) -> None:
        registry = CapsuleRegistry()
        a = registry.placeholder(registry.add(TYPE_A, prefix="", source="a", suffix="", enclosed_text="a"))
        b = registry.placeholder(registry.add(TYPE_B, prefix="", source="b", suffix="", enclosed_text="b"))
        text = f"x {a} y {b} z"
        first = find_placeholder(text)
        self.assertEqual(first.group(0), a)
        second = find_placeholder(text, first.end())
        self.assertEqual(second.group(0), b)
        self.assertIsNone(find_placeholder(text, second.end()))
        # Same call, same answer: no hidden cursor.
        self.assertEqual(find_placeholder(text).group(0), a)
        self.assertEqual([m.group(0) for m in iter_placeholders(text)], [a, b])


if __name__ == "__main__":
    unittest.main()

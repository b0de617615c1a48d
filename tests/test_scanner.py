from __future__ import annotations

import unittest

from mdcapsule.filters import FencedDivFilter, RmdChunkFilter, YamlMetadataFilter, default_filters
from mdcapsule.registry import PLACEHOLDER_RE, iter_placeholders
from mdcapsule.scanner import restore_source, scan

ROUNDTRIP_SOURCES = {
    "front_matter": "---\ntitle: x\n---",
    "front_matter_then_body": "---\ntitle: \"Report\"\nauthor: A\n...\n\n# Intro\n\nText.\n",
    "trailing_whitespace": "---\na: 1\n---  \t\n\nBody line.\n",
    "quoted_metadata": "Intro.\n\n> ---\n> a: 1\n> ---\n\nAfter.\n",
    "rmd_chunk": "Text before.\n\n```{r setup, echo=FALSE}\nlibrary(x)\n```\n\nText after.\n",
    "empty_rmd_chunk": "```{python}\n```\n",
    "fenced_div": "::: {.note #n1}\nHello *there*.\n:::\n",
    "metadata_inside_div": "::: warning\n\n---\na: 1\n---\n\n:::\n",
    "mixed": (
        "---\ntitle: x\n---\n\n"
        "Para one.\n\n"
        "```{r}\nplot(1)\n```\n\n"
        "::: aside\nSide note.\n:::\n"
    ),
}


class TestScanner(unittest.TestCase):
    def test_front_matter_becomes_one_placeholder_block(self) -> None:
        encoded, registry = scan("---\ntitle: x\n---", default_filters())
        self.assertEqual(len(registry), 1)
        record = next(iter(registry))
        self.assertEqual(record.type, YamlMetadataFilter.type)
        self.assertEqual(record.source, "---\ntitle: x\n---")
        self.assertEqual(record.prefix, "")
        self.assertEqual(record.enclosed_text, "---\ntitle: x\n---\n")
        self.assertEqual(encoded, registry.placeholder(record) + "\n")

    def test_unterminated_front_matter_is_left_alone(self) -> None:
        source = "---\ntitle: x\n"
        encoded, registry = scan(source, default_filters())
        self.assertEqual(encoded, source)
        self.assertEqual(len(registry), 0)

    def test_text_without_raw_blocks_is_unchanged(self) -> None:
        sources = [
            "",
            "# Heading\n\nJust *prose* with `code`.\n",
            "Setext title\n---\n\nmore\n---\n",
            "a\n\n---\n\nb\n\n---\n",
            "```{=html}\n<b>raw</b>\n```\n",
            "```python\nprint('x')\n```\n",
            ":::\nnot a div\n:::\n",
        ]
        for source in sources:
            with self.subTest(source=source):
                encoded, registry = scan(source, default_filters())
                self.assertEqual(encoded, source)
                self.assertEqual(len(registry), 0)

    def test_restore_source_is_exact(self) -> None:
        for name, source in ROUNDTRIP_SOURCES.items():
            with self.subTest(case=name):
                encoded, registry = scan(source, default_filters())
                self.assertGreater(len(registry), 0)
                self.assertEqual(list(iter_placeholders(source)), [])
                self.assertEqual(restore_source(encoded, registry), source)

    def test_leading_context_stays_in_front_of_placeholder(self) -> None:
        encoded, registry = scan("> ---\n> a: 1\n> ---\n", [YamlMetadataFilter()])
        record = next(iter(registry))
        self.assertEqual(record.prefix, "> ")
        self.assertEqual(record.source, "---\n> a: 1\n> ---")
        self.assertEqual(encoded, "> " + registry.placeholder(record) + "\n\n")

    def test_placeholder_is_followed_by_a_blank_line(self) -> None:
        encoded, registry = scan("```{r}\nx\n```\nNext line.\n", [RmdChunkFilter()])
        placeholder = registry.placeholder(next(iter(registry)))
        self.assertEqual(encoded, placeholder + "\n\nNext line.\n")

    def test_later_filters_scan_encoded_text(self) -> None:
        encoded, registry = scan(ROUNDTRIP_SOURCES["metadata_inside_div"], default_filters())
        records = {record.type: record for record in registry}
        yaml_record = records[YamlMetadataFilter.type]
        div_record = records[FencedDivFilter.type]
        self.assertIn(registry.placeholder(yaml_record), div_record.source)
        self.assertIsNotNone(PLACEHOLDER_RE.fullmatch(encoded.strip()))

    def test_empty_blocks_end_at_their_own_fence(self) -> None:
        source = "```{r}\n```\n\n```{r}\nx\n```\n\n---\n---\n"
        encoded, registry = scan(source, default_filters())
        self.assertEqual(
            [record.source for record in registry],
            ["```{r}\n```", "```{r}\nx\n```", "---\n---"],
        )
        self.assertEqual(restore_source(encoded, registry), source)

    def test_matches_do_not_overlap(self) -> None:
        source = "---\na: 1\n---\n\n---\nb: 2\n---\n"
        encoded, registry = scan(source, [YamlMetadataFilter()])
        self.assertEqual([record.source for record in registry], ["---\na: 1\n---", "---\nb: 2\n---"])
        self.assertEqual(len(list(iter_placeholders(encoded))), 2)


if __name__ == "__main__":
    unittest.main()

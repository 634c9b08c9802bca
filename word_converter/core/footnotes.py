"""Footnote definition extraction and reference numbering.

WHY: Footnote definitions ("[^label]: text") can appear anywhere in a
note, but Word output lists them once, at the end, numbered in the order
the references first appear. Definitions must be removed from the body
before block scanning so they do not render as paragraphs.

HOW: extract_footnotes() is a line pass that strips definition lines
(and their indented continuation lines) and returns a label →
definition map. FootnoteTable then hands out display numbers as the
inline formatter meets references.

RULES:
- A definition starts with "[^label]:" at the beginning of a line
- Continuation lines are indented by at least two spaces and are joined
  to the definition with single spaces
- Duplicate definitions overwrite earlier ones (last wins)
- Numbers are 1..N in first-reference order; a reused label keeps its
  original number
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

_DEFINITION_RE = re.compile(r"^\[\^([^\]]+)\]:\s*(.*)$")
_CONTINUATION_RE = re.compile(r"^\s{2,}\S")


def extract_footnotes(text: str) -> Tuple[str, Dict[str, str]]:
    """Split footnote definitions out of markdown text.

    Args:
        text: Raw markdown.

    Returns:
        (text without definition lines, label → definition text).
    """
    lines = text.split("\n")
    kept: List[str] = []
    definitions: Dict[str, str] = {}

    i = 0
    while i < len(lines):
        match = _DEFINITION_RE.match(lines[i])
        if not match:
            kept.append(lines[i])
            i += 1
            continue

        label = match.group(1).strip()
        parts = [match.group(2).strip()] if match.group(2).strip() else []
        i += 1
        while i < len(lines) and _CONTINUATION_RE.match(lines[i]):
            parts.append(lines[i].strip())
            i += 1
        definitions[label] = " ".join(parts).strip()

    return "\n".join(kept), definitions


class FootnoteTable:
    """Footnote definitions plus first-seen reference order for one document."""

    def __init__(self, definitions: Dict[str, str] | None = None) -> None:
        self.definitions: Dict[str, str] = dict(definitions or {})
        self._order: List[str] = []

    def reference(self, label: str) -> int:
        """Return the display number for a reference, assigning one if new."""
        label = label.strip()
        if label not in self._order:
            self._order.append(label)
        return self._order.index(label) + 1

    @property
    def used_labels(self) -> List[str]:
        return list(self._order)

    def definition(self, label: str) -> str:
        return self.definitions.get(label) or f"[Missing footnote: {label}]"

    def __len__(self) -> int:
        return len(self._order)

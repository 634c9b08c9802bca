"""Front matter detection.

WHY: Notes often start with a "---" delimited properties block. Without
special handling the scanner would render it as a horizontal rule
followed by "key: value" paragraphs.

HOW: split_front_matter() checks whether the very first line is "---"
and a closing "---" (or "...") follows; the lines in between are read
as simple "key: value" pairs. Values that are YAML lists ("[a, b]" or
"- item" lines) are flattened to comma-separated strings.

RULES:
- Only a block starting on the first line counts as front matter
- Without a closing delimiter the text is returned unchanged
- A block whose lines are not all "key:" lines, "- item" lines or
  indented continuations is ordinary markdown (rule, text, rule) and
  is returned unchanged
- Keys keep their original spelling; quotes around values are removed
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)

_DELIMITER = "---"


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _parse_pairs(lines: List[str]) -> Dict[str, str]:
    metadata: Dict[str, str] = {}
    current_key = None
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("- ") and current_key is not None:
            item = _unquote(stripped[2:])
            existing = metadata.get(current_key, "")
            metadata[current_key] = f"{existing}, {item}" if existing else item
            continue
        if ":" not in stripped or line[:1].isspace():
            continue
        key, _, value = stripped.partition(":")
        current_key = key.strip()
        value = value.strip()
        if value.startswith("[") and value.endswith("]"):
            value = ", ".join(_unquote(part) for part in value[1:-1].split(",") if part.strip())
        metadata[current_key] = _unquote(value)
    return metadata


def _is_key_line(line: str) -> bool:
    if line[:1].isspace():
        return False
    key, sep, value = line.partition(":")
    return bool(sep) and bool(key.strip()) and (not value or value[:1].isspace())


def _looks_like_properties(lines: List[str]) -> bool:
    """True when every meaningful line is a key, a list item or a continuation."""
    seen_key = False
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if _is_key_line(line):
            seen_key = True
        elif not seen_key or not (stripped.startswith("- ") or line[:1].isspace()):
            return False
    return seen_key


def split_front_matter(text: str) -> Tuple[str, Dict[str, str]]:
    """Separate a leading front matter block from the markdown body.

    Returns:
        (body text, metadata dict). The dict is empty when there is no
        front matter.
    """
    lines = text.split("\n")
    if not lines or lines[0].strip() != _DELIMITER:
        return text, {}

    for index in range(1, len(lines)):
        if lines[index].strip() in (_DELIMITER, "..."):
            block = lines[1:index]
            if not _looks_like_properties(block):
                logger.debug("Leading '---' block is not front matter; keeping it as body")
                return text, {}
            return "\n".join(lines[index + 1:]), _parse_pairs(block)

    return text, {}

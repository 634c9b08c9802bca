"""File-system resource resolver for converting notes outside a host app.

WHY: Inside the note-taking host, embedded images are resolved by the
host's link resolver. The CLI has no host, so it needs a resolver with
the same contract that finds images on disk the way the host would:
relative to the note first, then anywhere in the vault by file name.

HOW: LocalResourceResolver is an async callable. It URL-decodes the
link, tries it relative to the note's directory and to the vault root,
and finally searches the vault for a file with the same name. Lookup
and file reads run in a worker thread, off the event loop.

RULES:
- Contract: await resolver(link) → bytes or None, never raises for a
  missing file
- Links never escape the vault root (".." segments outside it are refused)
- The first match by name (sorted path order) wins
"""

from __future__ import annotations

import asyncio
import glob
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

logger = logging.getLogger(__name__)


class LocalResourceResolver:
    """Resolves embedded resource links against a directory tree."""

    def __init__(self, note_dir: str | Path, vault_root: str | Path | None = None) -> None:
        self._note_dir = Path(note_dir).resolve()
        self._vault_root = Path(vault_root).resolve() if vault_root else self._note_dir

    def _inside_vault(self, path: Path) -> bool:
        for root in (self._vault_root, self._note_dir):
            try:
                path.relative_to(root)
            except ValueError:
                continue
            return True
        return False

    def find(self, link: str) -> Optional[Path]:
        """Locate the file a link refers to, or None."""
        target = unquote(link.strip())
        if not target:
            return None

        for base in (self._note_dir, self._vault_root):
            candidate = (base / target).resolve()
            if candidate.is_file() and self._inside_vault(candidate):
                return candidate

        name = Path(target).name
        if name in ("", ".", ".."):
            return None
        matches = sorted(p for p in self._vault_root.rglob(glob.escape(name)) if p.is_file())
        return matches[0] if matches else None

    async def __call__(self, link: str) -> Optional[bytes]:
        path = await asyncio.to_thread(self.find, link)
        if path is None:
            logger.debug("No file found for link %r", link)
            return None
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            logger.warning("Failed to read embedded resource %s: %s", path, exc)
            return None

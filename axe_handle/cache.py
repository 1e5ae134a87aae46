"""JSON cache of a parsed specification.

The cache is trusted only while its file is strictly newer than the source
file (mtime comparison, no content hash). Reading and writing are best
effort: any failure degrades to "no cache" and never aborts a run.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import ValidationError

from .models import Specification

logger = structlog.get_logger(__name__)


class SpecificationCache:
    """Persist and reload a Specification keyed on source freshness."""

    def __init__(self, cache_path: Path | str, source_path: Path | str) -> None:
        self.cache_path = Path(cache_path)
        self.source_path = Path(source_path)

    def is_fresh(self) -> bool:
        """True if the cache file exists and is newer than the source."""
        try:
            cache_mtime = self.cache_path.stat().st_mtime_ns
            source_mtime = self.source_path.stat().st_mtime_ns
        except OSError:
            return False
        return cache_mtime > source_mtime

    def try_load(self) -> Specification | None:
        """Return the cached specification, or None on any miss."""
        if not self.is_fresh():
            logger.debug("Specification cache miss.", cache=str(self.cache_path))
            return None
        try:
            return Specification.from_json(self.cache_path.read_bytes())
        except (OSError, ValueError, ValidationError) as exc:
            logger.debug("Ignoring unreadable specification cache.", cache=str(self.cache_path), error=str(exc))
            return None

    def save(self, spec: Specification) -> None:
        """Write the specification to the cache file; failures only warn."""
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(spec.to_json(), encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to cache MCP specification.", cache=str(self.cache_path), error=str(exc))

    def invalidate(self) -> None:
        """Remove the cache file if present."""
        try:
            self.cache_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove specification cache.", cache=str(self.cache_path), error=str(exc))

"""
Artifact storage for test runs.

Screenshots land in ``<ARTIFACTS_PATH>/<run_id>/screenshots/``.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from qaptain.utils.config import settings

logger = logging.getLogger(__name__)


def _slug(text: str, max_length: int = 60) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug[:max_length] or "scenario"


class ArtifactManager:
    """Stores run artifacts on the local filesystem."""

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path or settings.ARTIFACTS_PATH)

    def get_run_path(self, run_id: str) -> Path:
        """Get the artifact directory for a run."""
        return self.base_path / run_id

    def save_screenshot(self, run_id: str, index: int, title: str, content: bytes) -> str:
        """
        Save an end-of-scenario screenshot.

        Args:
            run_id: Run identifier
            index: Position of the scenario in the run (1-based)
            title: Scenario title, used in the file name
            content: PNG bytes

        Returns:
            Path of the file relative to the artifacts base path
        """
        file_path = self.get_run_path(run_id) / "screenshots" / f"{index:02d}-{_slug(title)}.png"
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content)

        logger.info(f"[{run_id}] Saved screenshot: {file_path} ({len(content)} bytes)")
        return file_path.relative_to(self.base_path).as_posix()

    def get_artifact(self, artifact_path: str) -> Optional[bytes]:
        """Artifact content, or None if missing or outside the base path."""
        full_path = self.base_path / artifact_path

        # Security: ensure path is within base path
        try:
            full_path.resolve().relative_to(self.base_path.resolve())
        except ValueError:
            logger.error(f"Path traversal attempt: {artifact_path}")
            return None

        if not full_path.is_file():
            return None
        return full_path.read_bytes()


# Global artifact manager instance
_artifact_manager: Optional[ArtifactManager] = None


def get_artifact_manager() -> ArtifactManager:
    """Get global artifact manager instance."""
    global _artifact_manager
    if _artifact_manager is None:
        _artifact_manager = ArtifactManager()
    return _artifact_manager

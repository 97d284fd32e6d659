"""
Visual assets of lifeform kinds.

The simulation does not parse meshes; it only makes sure the asset a kind
needs is present before an agent of that kind is placed, so a missing file
surfaces as a recoverable placement error instead of a renderer crash.
Each kind is read once and cached.
"""

from pathlib import Path
from typing import Dict, Optional, Union

import structlog

from .lifeform import LifeformKind

logger = structlog.get_logger()


class AssetLoadError(Exception):
    """The asset of a lifeform kind could not be loaded."""

    def __init__(self, kind: LifeformKind, path: Path, reason: str):
        super().__init__(f"Could not load asset for {kind.value} from {path}: {reason}")
        self.kind = kind
        self.path = path
        self.reason = reason


class LifeformAssets:
    """Per-kind asset cache."""

    def __init__(self, assets_dir: Optional[Union[str, Path]] = None):
        """
        Args:
            assets_dir: Root of the asset tree; None disables asset loading
                (headless simulations)
        """
        self.assets_dir = Path(assets_dir) if assets_dir is not None else None
        self._cache: Dict[LifeformKind, bytes] = {}

    @property
    def enabled(self) -> bool:
        return self.assets_dir is not None

    def is_loaded(self, kind: LifeformKind) -> bool:
        return kind in self._cache

    def ensure_loaded(self, kind: LifeformKind) -> Optional[bytes]:
        """
        Load the asset of a kind unless it is already cached.

        Returns:
            Raw asset bytes, or None when asset loading is disabled

        Raises:
            AssetLoadError: The file is missing or unreadable
        """
        if not self.enabled:
            return None
        if kind in self._cache:
            return self._cache[kind]

        path = self.assets_dir / kind.asset_path
        if not path.is_file():
            raise AssetLoadError(kind, path, "file not found")
        try:
            data = path.read_bytes()
        except OSError as e:
            raise AssetLoadError(kind, path, str(e)) from e

        self._cache[kind] = data
        logger.info("Lifeform asset loaded", kind=kind.value, path=str(path), size=len(data))
        return data

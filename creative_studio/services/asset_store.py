import logging
import uuid
from dataclasses import dataclass
from typing import Dict

from creative_studio.errors import AssetNotFoundError

logger = logging.getLogger(__name__)

ASSET_ROUTE = "/api/assets"


@dataclass
class Asset:
    asset_id: str
    content: bytes
    media_type: str

    @property
    def url(self) -> str:
        return f"{ASSET_ROUTE}/{self.asset_id}"


class AssetStore:
    """In-memory resources addressable by URL for the lifetime of the process."""

    def __init__(self):
        self._assets: Dict[str, Asset] = {}

    def put(self, content: bytes, media_type: str) -> Asset:
        asset = Asset(asset_id=uuid.uuid4().hex, content=content, media_type=media_type)
        self._assets[asset.asset_id] = asset
        logger.info("Stored %s asset %s (%d bytes)", media_type, asset.asset_id, len(content))
        return asset

    def get(self, asset_id: str) -> Asset:
        asset = self._assets.get(asset_id)
        if asset is None:
            raise AssetNotFoundError(f"Asset {asset_id} not found")
        return asset

    def revoke(self, asset_id: str) -> None:
        self._assets.pop(asset_id, None)

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._assets

    def __len__(self) -> int:
        return len(self._assets)

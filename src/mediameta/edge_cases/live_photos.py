"""Live Photo linking.

A Live Photo is a still image plus a short motion clip that share a content
identifier in their embedded metadata. Whichever half is processed second
completes the link: the image points at the video and the video is hidden.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..dal.assets import AssetDAL
from ..models import AssetRef, AssetType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LivePhotoLink:
    image_id: str
    video_id: str


class LivePhotoLinker:
    """
    Links the two halves of a Live Photo as each one is extracted.

    The image's ``live_photo_video_id`` is the only idempotence guard; the
    two writes are separate saves and no lock is taken. If both halves race,
    the first writer wins and the second run sees the guard.
    """

    def __init__(self, assets: AssetDAL):
        self.assets = assets

    def _link(self, image: AssetRef, video: AssetRef) -> LivePhotoLink:
        self.assets.save(image.id, live_photo_video_id=video.id)
        image.live_photo_video_id = video.id
        self.assets.save(video.id, is_visible=False)
        video.is_visible = False

        logger.info(
            f"Linked Live Photo: {{'image_id': {image.id!r}, 'video_id': {video.id!r}}}"
        )
        return LivePhotoLink(image_id=image.id, video_id=video.id)

    def link_image(self, image: AssetRef, live_photo_cid: Optional[str]) -> Optional[LivePhotoLink]:
        """Pair a freshly extracted image with an already extracted video."""
        if not live_photo_cid or image.live_photo_video_id:
            return None

        video = self.assets.find_live_photo_match(live_photo_cid, image.id, AssetType.VIDEO)
        if video is None:
            logger.debug(f"No Live Photo video yet: {{'image_id': {image.id!r}}}")
            return None
        return self._link(image, video)

    def link_video(self, video: AssetRef, live_photo_cid: Optional[str]) -> Optional[LivePhotoLink]:
        """Pair a freshly extracted video with an already extracted image."""
        if not live_photo_cid:
            return None

        image = self.assets.find_live_photo_match(live_photo_cid, video.id, AssetType.IMAGE)
        if image is None:
            logger.debug(f"No Live Photo image yet: {{'video_id': {video.id!r}}}")
            return None
        return self._link(image, video)

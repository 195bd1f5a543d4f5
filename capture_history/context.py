"""Owner of the capture histories for one emulator document.

The context holds four histories (automatic and user-taken, for screenshots
and snapshots), the codec and the store. User histories are bound to the
fingerprint of the active medium: switching fingerprints flushes the old
captures and loads the new ones. Automatic histories live only in memory, as
do user snapshots when snapshot persistence is off.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from capture_history.config import HistoryConfig
from capture_history.core.hashing import format_fingerprint, normalize_fingerprint
from capture_history.core.logging import JsonlLogger, log_event
from capture_history.history.bounded import BoundedHistory
from capture_history.history.captures import SCREENSHOT, SNAPSHOT, Screenshot, Snapshot
from capture_history.history.snapshot_format import Thumbnail
from capture_history.imaging.codec import CaptureCodec
from capture_history.imaging.pixels import PixelRegion, PixelSource
from capture_history.storage.capture_store import CaptureStore

if TYPE_CHECKING:
    from PIL import Image as PILImage
else:
    PILImage = Any


class CaptureContext:
    def __init__(
        self,
        store: CaptureStore,
        *,
        codec: CaptureCodec | None = None,
        auto_capacity: int = 32,
        user_capacity: int | None = None,
        thin_counter_start: int = 0,
        persist_snapshots: bool = True,
        thumbnail_dx: int = 2,
        thumbnail_dy: int = 1,
        fingerprint: int = 0,
        logger: JsonlLogger | None = None,
    ) -> None:
        self.store = store
        self.codec = codec or store.codec
        self.persist_snapshots = bool(persist_snapshots)
        self.thumbnail_dx = int(thumbnail_dx)
        self.thumbnail_dy = int(thumbnail_dy)
        self._fingerprint = normalize_fingerprint(fingerprint)
        self._logger = logger
        self.auto_screenshots: BoundedHistory[Screenshot] = BoundedHistory(
            auto_capacity, counter_start=thin_counter_start, name="auto_screenshots", logger=logger
        )
        self.user_screenshots: BoundedHistory[Screenshot] = BoundedHistory(
            user_capacity, counter_start=thin_counter_start, name="user_screenshots", logger=logger
        )
        self.auto_snapshots: BoundedHistory[Snapshot] = BoundedHistory(
            auto_capacity, counter_start=thin_counter_start, name="auto_snapshots", logger=logger
        )
        self.user_snapshots: BoundedHistory[Snapshot] = BoundedHistory(
            user_capacity, counter_start=thin_counter_start, name="user_snapshots", logger=logger
        )

    @classmethod
    def from_config(cls, config: HistoryConfig, *, fingerprint: int = 0) -> "CaptureContext":
        logger = JsonlLogger.from_config(config.raw) if config.logging_enabled else None
        codec = CaptureCodec(
            image_format=config.screenshot_format,
            flip_vertical=config.flip_vertical,
            png_compress_level=config.png_compress_level,
            jpeg_quality=config.jpeg_quality,
            max_bytes=config.max_buffer_bytes,
        )
        store = CaptureStore(config.storage_root, codec=codec, fsync=config.fsync, logger=logger)
        return cls(
            store,
            codec=codec,
            auto_capacity=config.auto_capacity,
            user_capacity=config.user_capacity,
            thin_counter_start=config.thin_counter_start,
            persist_snapshots=config.persist_snapshots,
            thumbnail_dx=config.thumbnail_dx,
            thumbnail_dy=config.thumbnail_dy,
            fingerprint=fingerprint,
            logger=logger,
        )

    @property
    def fingerprint(self) -> int:
        return self._fingerprint

    def screenshots(self, *, auto: bool = False) -> BoundedHistory[Screenshot]:
        return self.auto_screenshots if auto else self.user_screenshots

    def snapshots(self, *, auto: bool = False) -> BoundedHistory[Snapshot]:
        return self.auto_snapshots if auto else self.user_snapshots

    def take_screenshot(
        self,
        source: PixelSource,
        region: PixelRegion | None = None,
        *,
        auto: bool = False,
    ) -> Screenshot:
        region = region or PixelRegion.full(source.width, source.height)
        image = self.codec.encode(source, region)
        screenshot = Screenshot(image=image, fingerprint=self._fingerprint)
        self.screenshots(auto=auto).append(screenshot)
        log_event(
            self._logger,
            "capture.taken",
            kind=SCREENSHOT,
            auto=auto,
            fingerprint=format_fingerprint(self._fingerprint),
            width=image.width,
            height=image.height,
        )
        return screenshot

    def take_snapshot(
        self,
        state: bytes,
        *,
        thumbnail_source: PixelSource | None = None,
        auto: bool = False,
    ) -> Snapshot:
        thumbnail = None
        if thumbnail_source is not None:
            thumbnail = Thumbnail.take(thumbnail_source, dx=self.thumbnail_dx, dy=self.thumbnail_dy)
        snapshot = Snapshot.create(state, self._fingerprint, thumbnail=thumbnail)
        self.snapshots(auto=auto).append(snapshot)
        log_event(
            self._logger,
            "capture.taken",
            kind=SNAPSHOT,
            auto=auto,
            fingerprint=format_fingerprint(self._fingerprint),
            size=len(snapshot.blob),
        )
        return snapshot

    def screenshot_image(self, index: int, *, auto: bool = False) -> PILImage:
        screenshot = self.screenshots(auto=auto).element_at(index)
        if screenshot is None:
            raise IndexError(f"no screenshot at index {index}")
        return self.codec.decode(screenshot.image)

    def _user_tiers(self) -> list[tuple[BoundedHistory[Any], str]]:
        tiers: list[tuple[BoundedHistory[Any], str]] = [(self.user_screenshots, SCREENSHOT)]
        if self.persist_snapshots:
            tiers.append((self.user_snapshots, SNAPSHOT))
        return tiers

    def flush(self) -> None:
        """Write unsaved user captures under the current fingerprint."""
        for history, kind in self._user_tiers():
            self.store.persist(history, self._fingerprint, kind)

    def set_fingerprint(self, fingerprint: int) -> bool:
        """Switch the active medium; returns False when it did not change.

        Pending user captures are persisted under the old fingerprint first, and
        every user tier of the new fingerprint is read before anything changes.
        If either step fails the error propagates and the old fingerprint stays
        active with its histories intact. User snapshots that are not persisted
        belong to the old medium and are dropped.
        """
        new = normalize_fingerprint(fingerprint)
        if new == self._fingerprint:
            return False
        old = self._fingerprint
        self.flush()
        loaded = [(history, self.store.load(new, kind)) for history, kind in self._user_tiers()]
        self._fingerprint = new
        for history, captures in loaded:
            history.restore(captures)
        if not self.persist_snapshots:
            self.user_snapshots.restore([])
        log_event(
            self._logger,
            "context.fingerprint_changed",
            old=format_fingerprint(old),
            new=format_fingerprint(new),
            screenshots=len(self.user_screenshots),
            snapshots=len(self.user_snapshots),
        )
        return True

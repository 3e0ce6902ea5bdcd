# sampler.py
"""Time-indexed still frames out of a recorded clip or a single image."""
from __future__ import annotations

import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

import cv2
import numpy as np

from geo_tracking.config import SamplerConfig
from geo_tracking.errors import FrameExtractionError, MediaLoadError

LOG = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp", ".webp", ".tif", ".tiff"}

MediaLike = Union[str, Path, np.ndarray]


@dataclass(frozen=True)
class SampledFrame:
    offset_s: float
    image: bytes  # JPEG
    width: int
    height: int


class VideoFileSource:
    """Thin cv2.VideoCapture wrapper over a file path or stream URL."""

    def __init__(self, uri: Union[str, Path]) -> None:
        self.uri = str(uri)
        self.cap: Optional[cv2.VideoCapture] = None
        self.fps = 0.0
        self.frame_count = 0

    def open(self) -> bool:
        self.cap = cv2.VideoCapture(self.uri)
        if not self.cap or not self.cap.isOpened():
            LOG.debug("Could not open %s", self.uri)
            self.cap = None
            return False
        self.fps = self.cap.get(cv2.CAP_PROP_FPS) or 0.0
        self.frame_count = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        return True

    def is_opened(self) -> bool:
        return bool(self.cap and self.cap.isOpened())

    def duration_s(self) -> float:
        if self.fps <= 0 or self.frame_count <= 0:
            return 0.0
        return self.frame_count / self.fps

    def read_at(self, offset_s: float) -> Optional[np.ndarray]:
        """Seek to ``offset_s`` and decode one frame; None if either step fails."""
        if not self.is_opened():
            return None
        if not self.cap.set(cv2.CAP_PROP_POS_MSEC, offset_s * 1000.0):
            return None
        ret, frame = self.cap.read()
        return frame if ret and frame is not None else None

    def release(self) -> None:
        if self.cap:
            self.cap.release()
            self.cap = None


def _is_still(source: MediaLike) -> bool:
    if isinstance(source, np.ndarray):
        return True
    return Path(str(source)).suffix.lower() in IMAGE_SUFFIXES


class FrameSampler:
    """
    Picks offsets from the clip length, then seeks and captures each one
    concurrently. Either every frame comes back or an error is raised.
    """

    def __init__(
        self,
        config: SamplerConfig | None = None,
        source_factory: Callable[[Any], Any] = VideoFileSource,
    ) -> None:
        self.config = config or SamplerConfig()
        self.source_factory = source_factory

    # ------------------------------------------------------------------ #
    #   O F F S E T   P O L I C Y
    # ------------------------------------------------------------------ #
    def sample_offsets(self, duration_s: float) -> List[float]:
        if duration_s is None or not math.isfinite(duration_s) or duration_s <= 0:
            raise MediaLoadError(f"Media has no usable duration ({duration_s!r})")
        if duration_s >= self.config.short_clip_threshold_s:
            return [duration_s * r for r in self.config.offsets]
        return [duration_s * self.config.short_clip_offset]

    # ------------------------------------------------------------------ #
    #   E N C O D I N G
    # ------------------------------------------------------------------ #
    def encode(self, frame: np.ndarray, offset_s: float = 0.0) -> SampledFrame:
        if frame is None or frame.size == 0:
            raise FrameExtractionError(f"Empty frame at {offset_s:.2f}s")
        ok, buf = cv2.imencode(
            ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(self.config.jpeg_quality)]
        )
        if not ok:
            raise FrameExtractionError(f"JPEG encoding failed at {offset_s:.2f}s")
        h, w = frame.shape[:2]
        return SampledFrame(offset_s=offset_s, image=buf.tobytes(), width=w, height=h)

    def _load_still(self, source: MediaLike) -> np.ndarray:
        if isinstance(source, np.ndarray):
            return source
        img = cv2.imread(str(source), cv2.IMREAD_COLOR)
        if img is None:
            raise MediaLoadError(f"Could not decode image {source}")
        return img

    # ------------------------------------------------------------------ #
    #   C A P T U R E
    # ------------------------------------------------------------------ #
    def _grab(self, source: MediaLike, offset_s: float) -> SampledFrame:
        # One capture handle per offset; cv2 captures must not be shared across threads
        src = self.source_factory(source)
        if not src.open():
            raise MediaLoadError(f"Could not open {source}")
        try:
            frame = src.read_at(offset_s)
        finally:
            src.release()
        if frame is None:
            raise FrameExtractionError(f"Could not capture frame at {offset_s:.2f}s of {source}")
        return self.encode(frame, offset_s)

    def _probe_duration(self, source: MediaLike) -> float:
        src = self.source_factory(source)
        if not src.open():
            raise MediaLoadError(f"Could not open {source}")
        try:
            return src.duration_s()
        finally:
            src.release()

    async def sample_frames_async(
        self, source: MediaLike, duration_s: Optional[float] = None
    ) -> List[SampledFrame]:
        if _is_still(source):
            return [self.encode(self._load_still(source))]

        if duration_s is None:
            duration_s = self._probe_duration(source)
        offsets = self.sample_offsets(duration_s)

        loop = asyncio.get_running_loop()
        pool = ThreadPoolExecutor(max_workers=len(offsets), thread_name_prefix="frame-sampler")

        async def capture(offset_s: float) -> SampledFrame:
            try:
                return await asyncio.wait_for(
                    loop.run_in_executor(pool, self._grab, source, offset_s),
                    timeout=self.config.seek_timeout_s,
                )
            except asyncio.TimeoutError as exc:
                raise FrameExtractionError(
                    f"Seek to {offset_s:.2f}s did not complete within "
                    f"{self.config.seek_timeout_s:.1f}s"
                ) from exc

        tasks = [asyncio.ensure_future(capture(t)) for t in offsets]
        try:
            frames = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            # A hung seek thread must not block the caller
            pool.shutdown(wait=False)

        LOG.info("Sampled %d frame(s) from %s (%.2fs)", len(frames), source, duration_s)
        return list(frames)

    def sample_frames(
        self, source: MediaLike, duration_s: Optional[float] = None
    ) -> List[SampledFrame]:
        """Blocking wrapper; not for use inside a running event loop."""
        return asyncio.run(self.sample_frames_async(source, duration_s))

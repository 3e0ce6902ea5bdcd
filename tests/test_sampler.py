"""
Unit tests for the frame sampler: offset policy, all-or-nothing capture,
seek timeouts, still images and a real MJPG clip written with OpenCV.
Run from repo root: python -m pytest tests/ -v
"""
import os
import tempfile
import time
import unittest

import cv2
import numpy as np

from geo_tracking.config import SamplerConfig
from geo_tracking.errors import FrameExtractionError, MediaLoadError
from geo_tracking.sampler import FrameSampler, VideoFileSource

JPEG_MAGIC = b"\xff\xd8"


def fake_source_factory(duration=10.0, fail_at=None, hang_at=None, openable=True, opened=None):
    """Build a source class standing in for VideoFileSource."""

    class FakeSource:
        def __init__(self, uri):
            self.uri = uri

        def open(self):
            if opened is not None:
                opened.append(self.uri)
            return openable

        def duration_s(self):
            return duration

        def read_at(self, offset_s):
            if hang_at is not None and abs(offset_s - hang_at) < 1e-9:
                time.sleep(1.0)
            if fail_at is not None and abs(offset_s - fail_at) < 1e-9:
                return None
            frame = np.zeros((48, 64, 3), dtype=np.uint8)
            frame[:, :, 1] = int(offset_s * 10) % 255
            return frame

        def release(self):
            pass

    return FakeSource


class TestOffsets(unittest.TestCase):

    def setUp(self):
        self.sampler = FrameSampler()

    def test_three_offsets_for_long_clip(self):
        offsets = self.sampler.sample_offsets(10.0)
        self.assertEqual(len(offsets), 3)
        for got, want in zip(offsets, (1.0, 5.0, 9.0)):
            self.assertAlmostEqual(got, want)

    def test_two_seconds_is_long(self):
        self.assertEqual(len(self.sampler.sample_offsets(2.0)), 3)

    def test_single_midpoint_for_short_clip(self):
        self.assertEqual(self.sampler.sample_offsets(1.0), [0.5])
        self.assertEqual(self.sampler.sample_offsets(1.99), [0.995])

    def test_unusable_duration(self):
        for bad in (0, -1, float("nan"), float("inf")):
            with self.assertRaises(MediaLoadError):
                self.sampler.sample_offsets(bad)


class TestSampleFrames(unittest.TestCase):

    def test_ten_second_source_gives_three_jpegs(self):
        sampler = FrameSampler(source_factory=fake_source_factory())
        frames = sampler.sample_frames("clip.webm", 10.0)
        self.assertEqual(len(frames), 3)
        self.assertEqual([round(f.offset_s, 6) for f in frames], [1.0, 5.0, 9.0])
        for f in frames:
            self.assertTrue(f.image.startswith(JPEG_MAGIC))
            self.assertEqual((f.width, f.height), (64, 48))

    def test_one_second_source_gives_one_jpeg(self):
        sampler = FrameSampler(source_factory=fake_source_factory(duration=1.0))
        frames = sampler.sample_frames("clip.webm", 1.0)
        self.assertEqual(len(frames), 1)
        self.assertAlmostEqual(frames[0].offset_s, 0.5)

    def test_duration_probed_when_missing(self):
        opened = []
        sampler = FrameSampler(source_factory=fake_source_factory(duration=20.0, opened=opened))
        frames = sampler.sample_frames("clip.webm")
        self.assertEqual([round(f.offset_s, 6) for f in frames], [2.0, 10.0, 18.0])
        # One probe plus one handle per offset
        self.assertEqual(len(opened), 4)

    def test_unopenable_source(self):
        sampler = FrameSampler(source_factory=fake_source_factory(openable=False))
        with self.assertRaises(MediaLoadError):
            sampler.sample_frames("missing.webm")
        with self.assertRaises(MediaLoadError):
            sampler.sample_frames("missing.webm", 10.0)

    def test_one_failed_seek_aborts_everything(self):
        sampler = FrameSampler(source_factory=fake_source_factory(fail_at=5.0))
        with self.assertRaises(FrameExtractionError):
            sampler.sample_frames("clip.webm", 10.0)

    def test_seek_that_never_resolves(self):
        cfg = SamplerConfig(seek_timeout_s=0.1)
        sampler = FrameSampler(cfg, source_factory=fake_source_factory(hang_at=9.0))
        start = time.monotonic()
        with self.assertRaises(FrameExtractionError) as ctx:
            sampler.sample_frames("clip.webm", 10.0)
        self.assertIn("did not complete", str(ctx.exception))
        self.assertLess(time.monotonic() - start, 0.9)

    def test_quality_changes_size(self):
        frame = (np.random.default_rng(0).random((120, 160, 3)) * 255).astype(np.uint8)
        low = FrameSampler(SamplerConfig(jpeg_quality=10)).encode(frame)
        high = FrameSampler(SamplerConfig(jpeg_quality=95)).encode(frame)
        self.assertLess(len(low.image), len(high.image))


class TestStillImages(unittest.TestCase):

    def test_array_source(self):
        frame = np.full((30, 40, 3), 128, dtype=np.uint8)
        frames = FrameSampler().sample_frames(frame)
        self.assertEqual(len(frames), 1)
        self.assertEqual((frames[0].width, frames[0].height), (40, 30))

    def test_image_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "snapshot.png")
            self.assertTrue(cv2.imwrite(path, np.full((20, 30, 3), 200, dtype=np.uint8)))
            frames = FrameSampler().sample_frames(path)
        self.assertEqual(len(frames), 1)
        self.assertTrue(frames[0].image.startswith(JPEG_MAGIC))

    def test_undecodable_image(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "broken.jpg")
            with open(path, "wb") as fp:
                fp.write(b"not an image")
            with self.assertRaises(MediaLoadError):
                FrameSampler().sample_frames(path)


class TestVideoFile(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "clip.avi")
        writer = cv2.VideoWriter(self.path, cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
        if not writer.isOpened():
            self._tmp.cleanup()
            self.skipTest("OpenCV build cannot write MJPG")
        for i in range(30):
            writer.write(np.full((48, 64, 3), i * 8, dtype=np.uint8))
        writer.release()

    def tearDown(self):
        self._tmp.cleanup()

    def test_duration_probe(self):
        src = VideoFileSource(self.path)
        self.assertTrue(src.open())
        try:
            self.assertAlmostEqual(src.duration_s(), 3.0, places=1)
        finally:
            src.release()
        self.assertFalse(src.is_opened())

    def test_samples_three_frames(self):
        frames = FrameSampler().sample_frames(self.path)
        self.assertEqual(len(frames), 3)
        self.assertTrue(all(f.image.startswith(JPEG_MAGIC) for f in frames))

    def test_missing_file(self):
        with self.assertRaises(MediaLoadError):
            FrameSampler().sample_frames(os.path.join(self._tmp.name, "nope.avi"))


if __name__ == '__main__':
    unittest.main()

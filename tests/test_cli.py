"""
Smoke tests for the command-line front end.
Run from repo root: python -m pytest tests/ -v
"""
import contextlib
import io
import json
import os
import tempfile
import unittest

import cv2
import numpy as np

from cli.main import main

LOCATE = ["locate", "--lat", "-23.55", "--lon", "-46.63", "--alt", "760",
          "--azimuth", "90", "--elevation", "0"]


def _run(argv):
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestLocate(unittest.TestCase):

    def test_prints_position(self):
        code, out, _ = _run(LOCATE)
        self.assertEqual(code, 0)
        self.assertIn("Object position:", out)
        self.assertIn("bearing:  90.00°", out)

    def test_missing_orientation(self):
        code, _, err = _run(["locate", "--lat", "-23.55", "--lon", "-46.63"])
        self.assertEqual(code, 2)
        self.assertIn("orientation", err)

    def test_invalid_size(self):
        code, _, err = _run(LOCATE + ["--size", "0"])
        self.assertEqual(code, 2)
        self.assertIn("Error", err)

    def test_export_then_report(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "out.json")
            code, out, _ = _run(LOCATE + ["--export", path])
            self.assertEqual(code, 0)
            with open(path, encoding="utf-8") as fp:
                doc = json.load(fp)
            self.assertEqual(len(doc["tracks"][0]["points"]), 1)

            code, out, _ = _run(["report", path])
        self.assertEqual(code, 0)
        self.assertIn("insufficient data", out)

    def test_params_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "params.json")
            with open(path, "w", encoding="utf-8") as fp:
                json.dump({"intrinsics": {"focal_length_mm": 6.0}}, fp)
            code, out, _ = _run(LOCATE + ["--params", path])
        self.assertEqual(code, 0)
        self.assertIn("f=6.0mm", out)


class TestReport(unittest.TestCase):

    def test_two_points(self):
        doc = {
            "tracks": [{"id": "track-1", "points": [
                {"id": 1, "timestamp": 0, "geo": {"lat": 0.0, "lon": 0.0, "alt": 0.0},
                 "distance": 100.0, "bearing": 0.0},
                {"id": 2, "timestamp": 10000, "geo": {"lat": 0.0009, "lon": 0.0, "alt": 0.0},
                 "distance": 100.0, "bearing": 0.0},
            ]}],
            "cameraSpecs": {"focalLength": 2.8, "sensorWidth": 3.6, "resolutionX": 1920,
                            "resolutionY": 1080, "cameraHeight": 2},
        }
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "in.json")
            with open(path, "w", encoding="utf-8") as fp:
                json.dump(doc, fp)
            code, out, _ = _run(["report", path, "--smoothed"])
        self.assertEqual(code, 0)
        self.assertIn("km/h", out)
        self.assertIn("Smoothed:", out)

    def test_missing_file(self):
        code, _, err = _run(["report", "/nonexistent/track.json"])
        self.assertEqual(code, 1)
        self.assertIn("Error", err)


class TestSample(unittest.TestCase):

    def test_image(self):
        with tempfile.TemporaryDirectory() as tmp:
            img = os.path.join(tmp, "snap.png")
            cv2.imwrite(img, np.full((20, 30, 3), 90, dtype=np.uint8))
            out_dir = os.path.join(tmp, "frames")
            code, out, _ = _run(["sample", img, "--out-dir", out_dir])
            self.assertEqual(code, 0)
            self.assertEqual(len(os.listdir(out_dir)), 1)
        self.assertIn("30x20", out)


if __name__ == '__main__':
    unittest.main()

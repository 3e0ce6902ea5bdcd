"""
Unit tests for the analysis hand-off: reply parsing and sample-then-analyze.
Run from repo root: python -m pytest tests/ -v
"""
import unittest

import numpy as np

from geo_tracking.analysis import AnalysisResult, analyze_media, parse_analysis
from geo_tracking.errors import AnalysisError, FrameExtractionError
from geo_tracking.sampler import FrameSampler


class _Source:
    broken = False

    def __init__(self, uri):
        self.uri = uri

    def open(self):
        return True

    def duration_s(self):
        return 30.0

    def read_at(self, offset_s):
        if self.broken:
            return None
        return np.zeros((24, 32, 3), dtype=np.uint8)

    def release(self):
        pass


class _BrokenSource(_Source):
    broken = True


class _Analyzer:
    def __init__(self, reply):
        self.reply = reply
        self.received = None

    def analyze(self, images):
        self.received = list(images)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class TestParseAnalysis(unittest.TestCase):

    def test_bare_json(self):
        out = parse_analysis('{"isSignificant": true, "reason": "person at gate"}')
        self.assertEqual(out, AnalysisResult(True, "person at gate"))

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"isSignificant": false, "reason": "cat"}\n```\n'
        self.assertEqual(parse_analysis(text), AnalysisResult(False, "cat"))

    def test_free_text(self):
        text = "A parked car and an empty driveway."
        self.assertEqual(parse_analysis(text), text)

    def test_json_without_flag_is_text(self):
        text = '{"summary": "nothing"}'
        self.assertEqual(parse_analysis(text), text)

    def test_non_bool_flag_is_text(self):
        text = '{"isSignificant": "yes", "reason": "?"}'
        self.assertEqual(parse_analysis(text), text)


class TestAnalyzeMedia(unittest.TestCase):

    def test_structured_reply(self):
        analyzer = _Analyzer('{"isSignificant": true, "reason": "motion"}')
        out = analyze_media(FrameSampler(source_factory=_Source), analyzer, "rec.webm")
        self.assertEqual(len(out.frames), 3)
        self.assertEqual(len(analyzer.received), 3)
        self.assertTrue(out.is_significant)
        self.assertEqual(out.result.reason, "motion")

    def test_text_reply(self):
        analyzer = _Analyzer("Two people near the door.")
        out = analyze_media(FrameSampler(source_factory=_Source), analyzer, "rec.webm", 1.0)
        self.assertEqual(len(out.frames), 1)
        self.assertIsNone(out.is_significant)
        self.assertEqual(out.result, "Two people near the door.")

    def test_result_object_passes_through(self):
        analyzer = _Analyzer(AnalysisResult(False, "wind"))
        out = analyze_media(FrameSampler(source_factory=_Source), analyzer, "rec.webm")
        self.assertFalse(out.is_significant)

    def test_analyzer_failure(self):
        analyzer = _Analyzer(RuntimeError("quota exceeded"))
        with self.assertRaises(AnalysisError) as ctx:
            analyze_media(FrameSampler(source_factory=_Source), analyzer, "rec.webm")
        self.assertIn("quota exceeded", str(ctx.exception))

    def test_sampling_failure_skips_analyzer(self):
        analyzer = _Analyzer("unused")
        with self.assertRaises(FrameExtractionError):
            analyze_media(FrameSampler(source_factory=_BrokenSource), analyzer, "rec.webm")
        self.assertIsNone(analyzer.received)


if __name__ == '__main__':
    unittest.main()

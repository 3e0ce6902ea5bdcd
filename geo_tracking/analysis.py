# analysis.py
"""Hand-off of sampled frames to an external frame/video analysis service."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Union

from geo_tracking.errors import AnalysisError, TrackingError
from geo_tracking.sampler import FrameSampler, MediaLike, SampledFrame

LOG = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


@dataclass(frozen=True)
class AnalysisResult:
    is_significant: bool
    reason: str


class FrameAnalyzer(Protocol):
    def analyze(self, images: Sequence[bytes]) -> Union[str, AnalysisResult]:
        ...


def parse_analysis(text: str) -> Union[str, AnalysisResult]:
    """
    Structured ``{"isSignificant": bool, "reason": str}`` if the reply holds
    one (bare or inside a ```json fence), otherwise the free text unchanged.
    """
    candidates: List[str] = [m.group(1) for m in _FENCE.finditer(text)]
    candidates.append(text.strip())
    for raw in candidates:
        try:
            doc = json.loads(raw)
        except ValueError:
            continue
        if isinstance(doc, dict) and isinstance(doc.get("isSignificant"), bool):
            return AnalysisResult(doc["isSignificant"], str(doc.get("reason", "")))
    return text


@dataclass
class MediaAnalysis:
    frames: List[SampledFrame]
    result: Union[str, AnalysisResult]

    @property
    def is_significant(self) -> Optional[bool]:
        if isinstance(self.result, AnalysisResult):
            return self.result.is_significant
        return None


def analyze_media(
    sampler: FrameSampler,
    analyzer: FrameAnalyzer,
    source: MediaLike,
    duration_s: Optional[float] = None,
) -> MediaAnalysis:
    """
    Sample ``source`` and pass the JPEG buffers to ``analyzer``.
    Sampling errors propagate unchanged; analyzer failures become AnalysisError.
    """
    frames = sampler.sample_frames(source, duration_s)
    try:
        reply = analyzer.analyze([f.image for f in frames])
    except TrackingError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise AnalysisError(f"Analysis service failed: {exc}") from exc

    result = parse_analysis(reply) if isinstance(reply, str) else reply
    LOG.info("Analysis of %s: %s", source, result)
    return MediaAnalysis(frames=frames, result=result)

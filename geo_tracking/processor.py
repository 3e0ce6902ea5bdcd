# processor.py
"""Glue logic that wires sensors → projection/ranging → track → kinematics."""
from __future__ import annotations

import dataclasses
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from geo_tracking.common import KinematicsReport, SightingInput, Track, TrackPoint
from geo_tracking.config import CameraIntrinsics, TrackerConfig
from geo_tracking.export import export_tracks, load_export, write_export
from geo_tracking.kinematics import PREDICTION_METHODS, SmoothedKinematics, estimate
from geo_tracking.live_tuning import RuntimeParamWatcher
from geo_tracking.sensors import SensorState
from geo_tracking.tracker import AutoTracker, TrackBuilder

LOG = logging.getLogger(__name__)


class PositioningSession:
    """
    The high-level orchestrator for one tracking session.

    Sensor readings are taken from ``sensors`` at the moment of each
    detection. Track mutation goes through a lock so the auto-tracking
    thread and manual detections never interleave.
    """

    def __init__(
        self,
        intrinsics: CameraIntrinsics | None = None,
        tracker_cfg: TrackerConfig | None = None,
        sensors: SensorState | None = None,
        use_true_vertical_fov: bool = False,
    ):
        self.intrinsics = intrinsics or CameraIntrinsics()
        self.tracker_cfg = tracker_cfg or TrackerConfig()
        self.sensors = sensors or SensorState(self.tracker_cfg.sensor_max_age_ms)
        self.builder = TrackBuilder(use_true_vertical_fov=use_true_vertical_fov)

        # Operator / live-feed input; centre of frame until told otherwise
        self._sighting_set = False
        self.sighting = SightingInput(0.0, 0.0, 2.0)
        self._recentre_default_sighting()

        self._lock = threading.Lock()
        self._auto: Optional[AutoTracker] = None

    # ---------------------------------------------------------------------
    #                         Detection
    # ---------------------------------------------------------------------
    @property
    def tracks(self):
        return self.builder.tracks

    @property
    def current_track(self) -> Optional[Track]:
        return self.builder.current_track

    def set_sighting(self, pixel_x: float, pixel_y: float,
                     object_real_size_m: float | None = None) -> SightingInput:
        size = self.sighting.object_real_size_m if object_real_size_m is None else object_real_size_m
        self.sighting = SightingInput(pixel_x, pixel_y, size)
        self._sighting_set = True
        return self.sighting

    def _recentre_default_sighting(self) -> None:
        # Only the untouched default follows resolution changes
        if self._sighting_set:
            return
        self.sighting = SightingInput(
            pixel_x=self.intrinsics.resolution_x / 2.0,
            pixel_y=self.intrinsics.resolution_y / 2.0,
            object_real_size_m=self.sighting.object_real_size_m,
        )

    def detect(self, sighting: SightingInput | None = None,
               timestamp_ms: Optional[int] = None) -> TrackPoint:
        """One-shot detection against the freshest sensor readings."""
        fix, orientation = self.sensors.snapshot()
        with self._lock:
            return self.builder.detect(
                sighting or self.sighting, self.intrinsics, orientation, fix, timestamp_ms
            )

    def clear(self) -> None:
        with self._lock:
            self.builder.clear()

    # ---------------------------------------------------------------------
    #                         Kinematics
    # ---------------------------------------------------------------------
    def kinematics(self) -> Optional[KinematicsReport]:
        return estimate(
            self.current_track,
            horizon_s=self.tracker_cfg.prediction_horizon_s,
            method=self.tracker_cfg.prediction_method,
        )

    def smoothed_kinematics(self) -> Optional[KinematicsReport]:
        track = self.current_track
        if track is None:
            return None
        return SmoothedKinematics(self.tracker_cfg).feed(track).report()

    # ---------------------------------------------------------------------
    #                         Auto-tracking
    # ---------------------------------------------------------------------
    def start_auto_tracking(
        self, sighting_provider: Callable[[], SightingInput] | None = None
    ) -> AutoTracker:
        """
        Re-detect every ``auto_track_interval_s``. ``sighting_provider``
        supplies live coordinates; without it the current sighting is reused.
        """
        if self._auto and self._auto.is_running():
            return self._auto

        def tick() -> TrackPoint:
            sighting = sighting_provider() if sighting_provider else None
            if sighting is not None:
                self.sighting = sighting
                self._sighting_set = True
            return self.detect()

        self._auto = AutoTracker(tick, self.tracker_cfg.auto_track_interval_s)
        self._auto.start()
        return self._auto

    def stop_auto_tracking(self) -> None:
        if self._auto:
            self._auto.stop()
            self._auto = None

    def is_auto_tracking(self) -> bool:
        return bool(self._auto and self._auto.is_running())

    # ---------------------------------------------------------------------
    #                         Export / import
    # ---------------------------------------------------------------------
    def export_json(self) -> str:
        return export_tracks(self.tracks, self.intrinsics)

    def save(self, path: str | Path) -> Path:
        out = write_export(path, self.tracks, self.intrinsics)
        LOG.info("Exported %d track(s) to %s", len(self.tracks), out)
        return out

    def load_json(self, text: str) -> None:
        tracks, intrinsics = load_export(text)
        with self._lock:
            self.builder.load(tracks)
            self.intrinsics = intrinsics
            self._recentre_default_sighting()

    # ---------------------------------------------------------------------
    #                         Live tuning
    # ---------------------------------------------------------------------
    def apply_tuning(self, watcher: RuntimeParamWatcher) -> bool:
        """
        Apply ``intrinsics`` / ``tracker`` sections from a param watcher.
        Invalid values are logged and the previous settings kept.
        """
        changed = False

        intr: Dict[str, Any] = watcher.section("intrinsics")
        if intr:
            try:
                new_intr = self.intrinsics.replace(**intr)
            except (TypeError, ValueError) as exc:
                LOG.error("Ignoring intrinsics update: %s", exc)
            else:
                if new_intr != self.intrinsics:
                    self.intrinsics = new_intr
                    self._recentre_default_sighting()
                    changed = True

        trk = watcher.section("tracker")
        if trk:
            known = {f.name for f in dataclasses.fields(TrackerConfig)}
            unknown = set(trk) - known
            if unknown:
                LOG.warning("Unknown tracker params ignored: %s", ", ".join(sorted(unknown)))
            updates = {k: v for k, v in trk.items() if k in known}
            method = updates.get("prediction_method", self.tracker_cfg.prediction_method)
            if method not in PREDICTION_METHODS:
                LOG.error("Ignoring tracker update: unknown prediction_method %r", method)
            elif updates:
                new_cfg = dataclasses.replace(self.tracker_cfg, **updates)
                if new_cfg != self.tracker_cfg:
                    self.tracker_cfg = new_cfg
                    self.sensors.max_age_ms = new_cfg.sensor_max_age_ms
                    changed = True

        if changed:
            LOG.info("Applied runtime tuning: intrinsics=%s tracker=%s",
                     self.intrinsics, self.tracker_cfg)
        return changed

    def close(self) -> None:
        self.stop_auto_tracking()

    def __enter__(self) -> "PositioningSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

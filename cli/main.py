# main.py
"""
Entry-point for the geo-tracking tools.

Sub-commands
------------
``locate``  one-shot detection from sensor values given on the command line
``report``  kinematics of the first track in an exported JSON file
``sample``  extract analysis frames from a video or image into JPEG files

``locate`` honours ``--params runtime_params.json`` (same file the live
tuning watcher reads) for camera intrinsics and tracker settings.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from geo_tracking.common import KinematicsReport
from geo_tracking.config import CameraIntrinsics, SamplerConfig, TrackerConfig
from geo_tracking.errors import TrackingError
from geo_tracking.export import read_export
from geo_tracking.kinematics import PREDICTION_METHODS, SmoothedKinematics, estimate
from geo_tracking.live_tuning import RuntimeParamWatcher
from geo_tracking.processor import PositioningSession
from geo_tracking.sampler import FrameSampler

LOG = logging.getLogger("geo_tracking.cli")


# ────────────────────────────────────────────────────────────────────────────
#   O U T P U T
# ────────────────────────────────────────────────────────────────────────────
def _print_report(title: str, rpt: Optional[KinematicsReport]) -> None:
    print(f"{title}:")
    if rpt is None:
        print("  insufficient data (need at least two points)")
        return
    print(f"  speed:     {rpt.speed_kmh:.2f} km/h ({rpt.speed_ms:.2f} m/s)")
    print(f"  heading:   {rpt.heading_deg:.2f}°")
    print(f"  vertical:  {rpt.vertical_speed_ms:.2f} m/s")
    if not rpt.time_monotonic:
        print("  warning:   non-increasing timestamps, velocity reported as zero")
    print(
        f"  in {rpt.horizon_s:.0f}s:   {rpt.prediction.lat:.8f}, {rpt.prediction.lon:.8f}"
    )


# ────────────────────────────────────────────────────────────────────────────
#   C O M M A N D S
# ────────────────────────────────────────────────────────────────────────────
def cmd_locate(args: argparse.Namespace) -> int:
    intrinsics = CameraIntrinsics(
        focal_length_mm=args.focal,
        sensor_width_mm=args.sensor_width,
        resolution_x=args.res_x,
        resolution_y=args.res_y,
        camera_height_m=args.camera_height,
    )
    session = PositioningSession(intrinsics, TrackerConfig(), use_true_vertical_fov=args.true_vfov)
    if args.params:
        session.apply_tuning(RuntimeParamWatcher(args.params))

    if args.lat is not None and args.lon is not None:
        session.sensors.update_position(args.lat, args.lon, args.alt)
    if args.azimuth is not None:
        session.sensors.update_orientation(args.azimuth, args.elevation)

    px = session.intrinsics.resolution_x / 2.0 if args.pixel_x is None else args.pixel_x
    py = session.intrinsics.resolution_y / 2.0 if args.pixel_y is None else args.pixel_y
    point = session.detect(session.set_sighting(px, py, args.size))

    print(
        f"Camera: f={session.intrinsics.focal_length_mm}mm, "
        f"sensor={session.intrinsics.sensor_width_mm}mm, "
        f"{session.intrinsics.resolution_x}x{session.intrinsics.resolution_y}"
    )
    print("Object position:")
    print(f"  lat:      {point.position.lat:.8f}")
    print(f"  lon:      {point.position.lon:.8f}")
    print(f"  altitude: {point.position.alt:.2f} m")
    print(f"  range:    {point.distance_m:.2f} m")
    print(f"  bearing:  {point.bearing_deg:.2f}°")

    if args.export:
        print(f"Exported to {session.save(args.export)}")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    tracks, intrinsics = read_export(args.path)
    if not tracks:
        print("No tracks in export.")
        return 0
    track = tracks[0]
    print(f"Track {track.id}: {len(track)} point(s), camera {intrinsics.resolution_x}x{intrinsics.resolution_y}")
    _print_report("Kinematics", estimate(track, horizon_s=args.horizon, method=args.method))
    if args.smoothed:
        cfg = TrackerConfig(predict_lead_time_s=args.horizon)
        _print_report("Smoothed", SmoothedKinematics(cfg).feed(track).report())
    return 0


def cmd_sample(args: argparse.Namespace) -> int:
    cfg = SamplerConfig(jpeg_quality=args.quality, seek_timeout_s=args.timeout)
    frames = FrameSampler(cfg).sample_frames(args.source, args.duration)

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = Path(str(args.source)).stem
    for idx, frame in enumerate(frames):
        out = out_dir / f"{stem}_{idx:02d}_{frame.offset_s:.2f}s.jpg"
        out.write_bytes(frame.image)
        print(f"{out} ({frame.width}x{frame.height}, {len(frame.image)} bytes)")
    return 0


# ────────────────────────────────────────────────────────────────────────────
#   M A I N
# ────────────────────────────────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="geo-tracking", description=__doc__.splitlines()[1])
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    defaults = CameraIntrinsics()
    p = sub.add_parser("locate", help="position of a sighted object")
    p.add_argument("--lat", type=float)
    p.add_argument("--lon", type=float)
    p.add_argument("--alt", type=float, default=None)
    p.add_argument("--azimuth", type=float, help="device compass heading (deg)")
    p.add_argument("--elevation", type=float, default=0.0, help="device tilt (deg)")
    p.add_argument("--pixel-x", type=float)
    p.add_argument("--pixel-y", type=float)
    p.add_argument("--size", type=float, default=2.0, help="real object size (m)")
    p.add_argument("--focal", type=float, default=defaults.focal_length_mm)
    p.add_argument("--sensor-width", type=float, default=defaults.sensor_width_mm)
    p.add_argument("--res-x", type=int, default=defaults.resolution_x)
    p.add_argument("--res-y", type=int, default=defaults.resolution_y)
    p.add_argument("--camera-height", type=float, default=defaults.camera_height_m)
    p.add_argument("--true-vfov", action="store_true",
                   help="scale the vertical axis by the real vertical FOV")
    p.add_argument("--params", help="runtime params JSON (intrinsics / tracker)")
    p.add_argument("--export", help="write JSON export to this file or directory")
    p.set_defaults(func=cmd_locate)

    p = sub.add_parser("report", help="kinematics from an export file")
    p.add_argument("path")
    p.add_argument("--horizon", type=float, default=TrackerConfig().prediction_horizon_s)
    p.add_argument("--method", choices=PREDICTION_METHODS, default="flat")
    p.add_argument("--smoothed", action="store_true", help="also run the Kalman estimate")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("sample", help="extract frames for analysis")
    p.add_argument("source")
    p.add_argument("--duration", type=float, default=None, help="clip length (s); probed if omitted")
    p.add_argument("--out-dir", default="frames")
    p.add_argument("--quality", type=int, default=SamplerConfig().jpeg_quality)
    p.add_argument("--timeout", type=float, default=SamplerConfig().seek_timeout_s)
    p.set_defaults(func=cmd_sample)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )
    try:
        return args.func(args)
    except TrackingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

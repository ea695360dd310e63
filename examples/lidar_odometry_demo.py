#!/usr/bin/env python3
"""Demo script running the LiDAR odometry front-end on a KITTI sequence.

Usage:
    python examples/lidar_odometry_demo.py data/kitti/sequences/00 [config.yaml]
"""

import argparse
import logging
import time

from lidar_odometry import (
    DatasetReader,
    InMemoryBackend,
    InMemoryWorldModel,
    LidarOdometry,
    LidarOdometryConfig,
    PointToPointICP,
)


def main() -> None:
    """Run the LiDAR odometry demo."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("sequence", help="Path to a KITTI odometry sequence")
    parser.add_argument("config", nargs="?", help="Optional YAML config file")
    parser.add_argument("--max-scans", type=int, default=None)
    parser.add_argument("--realtime", action="store_true", help="Feed scans at sensor rate")
    parser.add_argument("--log", default="info", help="Log level")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = (
        LidarOdometryConfig.from_yaml_file(args.config)
        if args.config
        else LidarOdometryConfig()
    )

    print("Initializing LiDAR odometry pipeline...")
    reader = DatasetReader(args.sequence)
    world_model = InMemoryWorldModel()
    backend = InMemoryBackend(world_model=world_model)
    odometry = LidarOdometry(
        oracle=PointToPointICP(),
        backend=backend,
        world_model=world_model,
    )
    odometry.initialize(config)

    print(f"Processing {len(reader)} scans...")
    start = time.monotonic()
    prev_timestamp = None
    try:
        for i, obs in enumerate(reader):
            if args.max_scans is not None and i >= args.max_scans:
                break

            if args.realtime:
                if prev_timestamp is not None:
                    time.sleep(max(0.0, (obs.timestamp_ns - prev_timestamp) / 1e9))
                prev_timestamp = obs.timestamp_ns
                odometry.process_observation(obs)
            else:
                future = odometry.process_observation(obs)
                if future is not None:
                    future.result()

        odometry.wait_until_idle()
        stats = odometry.stats
    finally:
        odometry.shutdown()

    elapsed = time.monotonic() - start

    print()
    print("=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"Scans received:        {stats.observations_received}")
    print(f"Dropped (busy):        {stats.dropped_busy}")
    print(f"Dropped (rate):        {stats.dropped_rate_limited}")
    print(f"Registrations:         {stats.registrations}")
    print(f"Keyframes:             {stats.keyframes}")
    print(f"Loop checks:           {stats.loop_closures_dispatched}")
    print(f"  accepted:            {stats.loop_closures_accepted}")
    print(f"  rejected:            {stats.loop_closures_rejected}")
    print(f"Task failures:         {stats.task_failures}")
    print(f"Backend factors:       {backend.num_factors}")
    print(f"Elapsed:               {elapsed:.1f} s")


if __name__ == "__main__":
    main()

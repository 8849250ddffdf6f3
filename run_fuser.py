#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fuser Standalone Entry Point (run_fuser.py)

Replays a recorded camera-VO stream and a recorded SLAM-VO stream through
the vofuse package and writes the fused trajectory.

Configuration Model:
--------------------
    YAML config is the single source of truth for algorithm settings.
    CLI provides only paths and runtime flags.

    YAML controls:
    - fusion: filter_window, recovery_buffer, alpha_blending, alpha_weight,
      reduction_factor
    - rotation_median: p, max_angular_update, max_iterations
    - point_cloud: radius, frame_id
    - output: verbose

    CLI provides:
    - Required: --camera, --secondary, --output
    - Optional: --config, --map_points, --pc_every
    - Runtime flags: --save_debug_data

Usage:
    python run_fuser.py --config configs/config_default.yaml \\
        --camera path/to/camera_vo.csv \\
        --secondary path/to/slam_vo.csv \\
        --output output_dir/

Author: VO fuser project
"""

import argparse
import os
import sys


def parse_args(argv=None):
    """Parse command line arguments (paths + runtime flags only)."""
    parser = argparse.ArgumentParser(
        description="Camera-VO / SLAM-VO fuser - offline replay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration Model:
  YAML = single source of truth for algorithm settings
  CLI  = paths + runtime flags only

Examples:
  python run_fuser.py --camera cam.csv --secondary slam.csv --output out/
  python run_fuser.py --config configs/config_default.yaml --camera cam.csv \\
      --secondary slam.csv --output out/ --map_points map.csv --save_debug_data
        """
    )

    # Required inputs
    parser.add_argument("--camera", type=str, required=True,
                        help="Path to camera-VO pose CSV")
    parser.add_argument("--secondary", type=str, required=True,
                        help="Path to SLAM-VO pose CSV")
    parser.add_argument("--output", type=str, required=True,
                        help="Output directory")

    # Configuration (YAML is the single source of truth)
    parser.add_argument("--config", type=str, default=None,
                        help="Path to YAML config file (defaults built in)")

    # Optional data inputs
    parser.add_argument("--map_points", type=str, default=None,
                        help="Path to SLAM map point CSV (x,y,z)")
    parser.add_argument("--pc_every", type=int, default=100,
                        help="Point-cloud snapshot period in camera steps")

    # Debug/output flags
    parser.add_argument("--save_debug_data", action="store_true",
                        help="Save debug_fuser_steps.csv")

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point - load YAML config and run the fuser."""
    args = parse_args(argv)

    from vofuse import __version__
    from vofuse.config import FuserConfig
    from vofuse.main_loop import FuserRunner

    print("=" * 70)
    print(f"VO Fuser - offline replay (vofuse {__version__})")
    print("=" * 70)

    config = FuserConfig(
        camera_path=args.camera,
        secondary_path=args.secondary,
        output_dir=args.output,
        config_yaml=args.config,
        map_points_path=args.map_points,
        pc_every=args.pc_every,
        save_debug_data=args.save_debug_data,
    )

    os.makedirs(args.output, exist_ok=True)

    # Save a copy of CLI command for reproducibility
    cli_log_path = os.path.join(args.output, "cli_command.txt")
    with open(cli_log_path, 'w') as f:
        f.write(f"# VO Fuser CLI Command\n")
        f.write(f"# Config: {args.config}\n\n")
        f.write(" ".join(sys.argv) + "\n")

    runner = FuserRunner(config)
    g = runner.global_config
    print(f"  Config file: {args.config or '(defaults)'}")
    print(f"  FILTER_WINDOW={g['FILTER_WINDOW']} RECOVERY_BUFFER={g['RECOVERY_BUFFER']}")
    print(f"  ALPHA_BLENDING={g['ALPHA_BLENDING']} ALPHA_WEIGHT={g['ALPHA_WEIGHT']}")
    print("=" * 70)

    summary = runner.run()

    print("=" * 70)
    print("Fuser replay completed")
    print(f"   Output: {summary['fused_pose_csv']}")
    print("=" * 70)
    return summary


if __name__ == "__main__":
    main()

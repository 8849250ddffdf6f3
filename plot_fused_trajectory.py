#!/usr/bin/env python3
"""
Script for visualizing the fused trajectory from fused_pose.csv,
optionally overlaid with the camera-VO and SLAM-VO input streams.
"""

import argparse
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


STATE_NAMES = {0: 'LOST', 1: 'LOW', 2: 'MED', 3: 'OK'}


def load_trajectory(csv_path):
    """Load a trajectory CSV (t, tx, ty, tz, ...)."""
    print(f"Loading trajectory from: {csv_path}")
    df = pd.read_csv(csv_path)
    print(f"Loaded {len(df)} poses")
    if len(df):
        print(f"Time range: {df['t'].min():.2f}s to {df['t'].max():.2f}s")
    return df


def plot_fused_trajectory(df, output_path=None, camera_df=None, secondary_df=None, show=False):
    """
    Plot the fused trajectory.

    Parameters:
    -----------
    df : pandas.DataFrame
        fused_pose.csv contents (t, tx, ty, tz, qw, qx, qy, qz, state)
    output_path : str or None
        If given, the figure is saved there
    camera_df, secondary_df : pandas.DataFrame or None
        Input streams to overlay
    show : bool
        Call plt.show() at the end

    Returns:
    --------
    matplotlib.figure.Figure
    """
    x = df['tx'].values
    y = df['ty'].values
    z = df['tz'].values
    state = df['state'].values if 'state' in df.columns else np.full(len(df), 3)

    fig = plt.figure(figsize=(16, 8))

    # Plot 1: 3D trajectory colored by tracking state
    ax1 = fig.add_subplot(1, 2, 1, projection='3d')
    scatter = ax1.scatter(x, y, z, c=state, cmap='RdYlGn', vmin=0, vmax=3, s=2)
    ax1.plot(x, y, z, 'b-', linewidth=0.5, alpha=0.3, label='Fused')
    if len(x):
        ax1.scatter(x[0], y[0], z[0], c='green', s=100, marker='o', label='Start')
        ax1.scatter(x[-1], y[-1], z[-1], c='red', s=100, marker='X', label='End')
    ax1.set_xlabel('X (m)')
    ax1.set_ylabel('Y (m)')
    ax1.set_zlabel('Z (m)')
    ax1.set_title('Fused Trajectory (colored by tracking state)')
    ax1.legend()
    cbar = plt.colorbar(scatter, ax=ax1, pad=0.1, shrink=0.8, ticks=list(STATE_NAMES))
    cbar.ax.set_yticklabels([STATE_NAMES[k] for k in STATE_NAMES])

    # Plot 2: Top view with input streams
    ax2 = fig.add_subplot(1, 2, 2)
    ax2.plot(x, y, 'b-', linewidth=1.2, label='Fused')
    if camera_df is not None:
        ax2.plot(camera_df['tx'].values, camera_df['ty'].values, 'k--', linewidth=0.7,
                 alpha=0.6, label='Camera VO')
    if secondary_df is not None:
        ax2.plot(secondary_df['tx'].values, secondary_df['ty'].values, 'm:', linewidth=0.7,
                 alpha=0.6, label='SLAM VO')
    ax2.set_xlabel('X (m)')
    ax2.set_ylabel('Y (m)')
    ax2.set_title('Top View')
    ax2.legend()
    ax2.grid(True, alpha=0.3)
    ax2.axis('equal')

    plt.tight_layout()

    if output_path:
        print(f"Saving plot to: {output_path}")
        fig.savefig(output_path, dpi=150, bbox_inches='tight')

    if show:
        plt.show()

    return fig


def main():
    parser = argparse.ArgumentParser(
        description='Plot fused trajectory from fused_pose.csv',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python plot_fused_trajectory.py -i out/fused_pose.csv
  python plot_fused_trajectory.py -i out/fused_pose.csv --camera cam.csv --secondary slam.csv -o fused.png
        """
    )
    parser.add_argument('-i', '--input', type=str, default='output/fused_pose.csv',
                        help='Path to fused_pose.csv')
    parser.add_argument('-o', '--output', type=str,
                        help='Output path for the plot (optional)')
    parser.add_argument('--camera', type=str, help='Camera-VO CSV to overlay')
    parser.add_argument('--secondary', type=str, help='SLAM-VO CSV to overlay')
    parser.add_argument('--no-show', action='store_true',
                        help='Do not display plots (only save to file)')
    args = parser.parse_args()

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}")
        return

    df = load_trajectory(input_path)
    camera_df = load_trajectory(args.camera) if args.camera else None
    secondary_df = load_trajectory(args.secondary) if args.secondary else None

    plot_fused_trajectory(df, args.output, camera_df, secondary_df, show=not args.no_show)
    print("\nDone!")


if __name__ == '__main__':
    main()

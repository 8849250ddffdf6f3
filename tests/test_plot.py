import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd

from plot_fused_trajectory import load_trajectory, plot_fused_trajectory


def _make_fused_csv(path, n=50):
    t = np.linspace(0.0, 1.0, n)
    df = pd.DataFrame({
        't': t, 'tx': np.cos(t), 'ty': np.sin(t), 'tz': 0.1 * t,
        'qw': np.ones(n), 'qx': np.zeros(n), 'qy': np.zeros(n), 'qz': np.zeros(n),
        'state': np.where(t > 0.5, 3, 1),
    })
    df.to_csv(path, index=False)
    return df


def test_plot_saves_figure(tmp_path):
    csv_path = tmp_path / "fused_pose.csv"
    _make_fused_csv(csv_path)
    df = load_trajectory(csv_path)

    out = tmp_path / "fused.png"
    fig = plot_fused_trajectory(df, output_path=str(out), camera_df=df, secondary_df=df)

    assert out.exists()
    assert len(fig.axes) >= 2

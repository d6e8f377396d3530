import matplotlib.pyplot as plt

from hardrods import HardRodGCMC, Recorder
from hardrods.analysis import plot_configuration
from hardrods.utils import anchors_array

# Hard rods of length 8 on a 64x64 torus
gcmc = HardRodGCMC(
    nsteps=10_000_000,
    length=8,
    cols=64,
    rows=64,
    z=1.5,
    seed=2015,
)

print("Starting GCMC...")
with Recorder(
    data_file="dataplot.dat",
    vertical_file="2dplotv.txt",
    horizontal_file="2dploth.txt",
    traj_file="rods.traj",
) as recorder:
    stats = gcmc.run(recorder=recorder, sample_interval=10_000)
    recorder.finalize(gcmc)

print(f"density={stats['density']:.4f}  Q={stats['order_parameter']:.4f}")

plot_configuration(
    anchors_array(gcmc.live_vertical_rods()),
    anchors_array(gcmc.live_horizontal_rods()),
    length=gcmc.length,
    cols=gcmc.cols,
    rows=gcmc.rows,
)
plt.show()

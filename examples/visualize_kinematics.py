"""
Example: Speed-up curves of the reference vehicle at full usable thrust
"""
import numpy as np
import matplotlib.pyplot as plt
from thrust_commander.geometry import VehicleGeometry
from thrust_commander.kinematics import (
    axis_driving_force,
    axis_top_speed,
    velocity_at_time,
    velocity_profile,
)
from thrust_commander.thrust_allocator import ThrustAllocator
from thrust_commander.vehicle_config import AXES, reference_vehicle_config

config = reference_vehicle_config()
allocator = ThrustAllocator(VehicleGeometry(config))

axes_to_plot = [('fx', 'Surge'), ('fy', 'Sway'), ('fz', 'Heave')]
times = np.linspace(0.0, 6.0, 200)

fig, axes = plt.subplots(1, 3, figsize=(18, 5))
fig.suptitle('Speed-up From Rest at Full Usable Thrust', fontsize=16, fontweight='bold')

for idx, (axis, label) in enumerate(axes_to_plot):
    ax = axes[idx]
    cd = config.combined_drag_coefficients[AXES.index(axis)]

    for forward, color in ((True, 'b'), (False, 'r')):
        force = axis_driving_force(allocator, axis, forward)
        v_top = axis_top_speed(allocator, axis, forward)

        closed = [velocity_at_time(0.0, t, cd, config.mass, force) for t in times]
        numeric = velocity_profile(0.0, times[::10], cd, config.mass, force)

        direction = 'forward' if forward else 'backward'
        ax.plot(times, closed, f'{color}-', linewidth=2, label=f'{direction} ({force:.1f} N)')
        ax.plot(times[::10], numeric, f'{color}o', markersize=5)
        ax.axhline(v_top, color=color, linestyle='--', alpha=0.4)
        print(f"{label} {direction}: force {force:.2f} N, top speed {v_top:.3f} m/s")

    ax.set_xlabel('Time [s]')
    ax.set_ylabel('Velocity [m/s]')
    ax.set_title(label)
    ax.grid(True, alpha=0.3)
    ax.legend()

plt.tight_layout()
plt.savefig('speed_up.png', dpi=150)
print("Saved speed_up.png")
plt.show()

"""
Example: Thruster forces for the single-axis requests of the reference vehicle
"""
import logging

import numpy as np
import matplotlib.pyplot as plt
from thrust_commander.geometry import VehicleGeometry
from thrust_commander.thrust_allocator import ThrustAllocator
from thrust_commander.vehicle_config import load_vehicle_config

logging.basicConfig(level=logging.DEBUG)

config = load_vehicle_config('config/reference_vehicle.yaml')
allocator = ThrustAllocator(VehicleGeometry(config))

requests = {
    'Surge 5 N': [5.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    'Sway 5 N': [0.0, 5.0, 0.0, 0.0, 0.0, 0.0],
    'Heave 10 N': [0.0, 0.0, 10.0, 0.0, 0.0, 0.0],
    'Yaw 0.5 Nm': [0.0, 0.0, 0.0, 0.0, 0.0, 0.5],
    'Surge + Yaw': [4.0, 0.0, 0.0, 0.0, 0.0, 0.3],
    'General': [2.0, 1.0, 6.0, 0.2, -0.1, 0.3],
}

fig, axes = plt.subplots(2, 3, figsize=(18, 9))
fig.suptitle('Thrust Allocation', fontsize=16, fontweight='bold')

thrusters = np.arange(allocator.num_thrusters)
for ax, (label, wrench) in zip(axes.flat, requests.items()):
    simple = label != 'General'
    forces = allocator.allocate(wrench, simple=simple)
    feasible = allocator.is_feasible(wrench, simple=simple)

    colors = ['tab:blue' if i < 4 else 'tab:green' for i in thrusters]
    ax.bar(thrusters, forces, color=colors, edgecolor='black')
    ax.axhline(config.max_thruster_force, color='red', linestyle='--', alpha=0.5)
    ax.axhline(config.min_thruster_force, color='red', linestyle='--', alpha=0.5)
    ax.set_xticks(thrusters)
    ax.set_xlabel('Thruster')
    ax.set_ylabel('Force [N]')
    ax.set_title(f"{label}\n{'feasible' if feasible else 'exceeds limits'}")
    ax.grid(True, alpha=0.3, axis='y')

    achieved = allocator.predict_wrench(forces)
    print(f"{label}: forces {np.round(forces, 3).tolist()}")
    print(f"  achieved wrench {np.round(achieved, 3).tolist()}")

plt.tight_layout()
plt.savefig('allocation.png', dpi=150)
print("Saved allocation.png")
plt.show()

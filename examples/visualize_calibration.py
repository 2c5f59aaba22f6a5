"""
Example: Visualize a force/command calibration curve and its deadband
"""
import numpy as np
import matplotlib.pyplot as plt
from thrust_commander.curve_mapper import CalibrationTable

# Thrust stand measurements: (force [N], PWM pulse width [us])
rows = [
    (-3.5, 1100.0),
    (-2.6, 1180.0),
    (-1.6, 1260.0),
    (-0.8, 1340.0),
    (-0.2, 1420.0),
    (0.0, 1464.0),
    (0.0, 1500.0),
    (0.0, 1536.0),
    (0.25, 1580.0),
    (1.1, 1660.0),
    (2.3, 1740.0),
    (3.5, 1820.0),
    (4.5, 1900.0),
]
table = CalibrationTable.from_rows(rows)

f_min, f_max = table.force_range
c_min, c_max = table.command_range

forces = np.linspace(f_min, f_max, 400)
commands = [table.force_to_command(f) for f in forces]

sweep = np.linspace(c_min, c_max, 400)
estimated = [table.command_to_force(c) for c in sweep]

fig, axes = plt.subplots(1, 2, figsize=(14, 5))

ax = axes[0]
ax.plot(forces, commands, 'b-', linewidth=2, label='force -> command')
data = np.array(rows)
ax.plot(data[:, 0], data[:, 1], 'ro', markersize=6, label='calibration rows')
ax.axhline(table.force_to_command(0.0), color='gray', linestyle='--', alpha=0.5, label='neutral')
ax.set_xlabel('Force [N]')
ax.set_ylabel('Command [us]')
ax.set_title('Force to Command')
ax.grid(True, alpha=0.3)
ax.legend()

ax = axes[1]
ax.plot(sweep, estimated, 'g-', linewidth=2, label='command -> force')
ax.axvspan(1464.0, 1536.0, color='orange', alpha=0.2, label='deadband')
ax.set_xlabel('Command [us]')
ax.set_ylabel('Force [N]')
ax.set_title('Command to Force')
ax.grid(True, alpha=0.3)
ax.legend()

plt.tight_layout()
plt.savefig('calibration_curve.png', dpi=150)
print("Saved calibration_curve.png")
plt.show()

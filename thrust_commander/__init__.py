"""
Control allocation and vehicle dynamics for a fixed-thruster underwater vehicle.
"""

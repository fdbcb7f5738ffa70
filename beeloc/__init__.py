"""Occupancy-grid maps, an odometry motion model and a logging toolkit for particle-filter localisation."""

__version__ = "0.1.0"
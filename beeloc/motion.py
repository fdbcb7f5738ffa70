"""Odometry motion model for propagating particle poses."""

from __future__ import annotations

import math

import numpy as np

from beeloc.gridmap import Pose2D

#: Smallest change in y for the first rotation to be taken from the odometry.
MIN_CHANGE = 1e-6
DEFAULT_SEED = 0


class MotionModel:
    """Moves a particle by the rotation-translation-rotation split of an odometry step.

    Noise is zero-mean normal with the first rotation's variance, drawn from a
    generator reseeded with ``seed`` on every prediction, so a step with the
    same inputs always moves a particle the same way.
    """

    def __init__(
        self,
        rot1_var: float,
        trans_var: float,
        rot2_var: float,
        seed: int = DEFAULT_SEED,
    ) -> None:
        for name, var in (("rot1_var", rot1_var), ("trans_var", trans_var), ("rot2_var", rot2_var)):
            if var < 0:
                raise ValueError(f"{name} must not be negative")
        self.rot1_var = rot1_var
        self.trans_var = trans_var
        self.rot2_var = rot2_var
        self.seed = seed

    def predict(self, particle: Pose2D, prev_odom: Pose2D, curr_odom: Pose2D) -> None:
        """Update ``particle`` in place by the step from ``prev_odom`` to ``curr_odom``."""
        delta_y = curr_odom.y - prev_odom.y
        delta_x = curr_odom.x - prev_odom.x

        rot1 = math.atan2(delta_y, delta_x) - prev_odom.theta if delta_y > MIN_CHANGE else 0.0
        trans = math.hypot(delta_x, delta_y)
        rot2 = curr_odom.theta - rot1 - prev_odom.theta

        rng = np.random.default_rng(self.seed)
        # All three terms draw from the first rotation's distribution.
        noise = rng.normal(0.0, math.sqrt(self.rot1_var), size=3)
        rot1_bar = rot1 - float(noise[0])
        trans_bar = trans - float(noise[1])
        rot2_bar = rot2 - float(noise[2])

        particle.x += trans_bar * math.cos(rot1_bar + particle.theta)
        particle.y += trans_bar * math.sin(rot1_bar + particle.theta)
        particle.theta += rot1_bar + rot2_bar
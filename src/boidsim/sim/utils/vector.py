from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(slots=True)
class Vec2:
    """2D vector.

    ``add``/``sub``/``mult``/``div``/``limit`` mutate in place and return self so
    calls can be chained; copy first when the original must survive. The
    arithmetic operators always build a new vector.
    """

    x: float = 0.0
    y: float = 0.0

    @staticmethod
    def from_polar(angle: float, magnitude: float) -> "Vec2":
        return Vec2(math.cos(angle) * magnitude, math.sin(angle) * magnitude)

    def copy(self) -> "Vec2":
        return Vec2(self.x, self.y)

    def set(self, x: float, y: float) -> "Vec2":
        self.x = x
        self.y = y
        return self

    def add(self, other: "Vec2") -> "Vec2":
        self.x += other.x
        self.y += other.y
        return self

    def sub(self, other: "Vec2") -> "Vec2":
        self.x -= other.x
        self.y -= other.y
        return self

    def mult(self, scalar: float) -> "Vec2":
        self.x *= scalar
        self.y *= scalar
        return self

    def div(self, scalar: float) -> "Vec2":
        # dividing by zero collapses to the zero vector
        if scalar == 0:
            return self.set(0.0, 0.0)
        self.x /= scalar
        self.y /= scalar
        return self

    def mag_sq(self) -> float:
        return self.x * self.x + self.y * self.y

    def mag(self) -> float:
        return math.sqrt(self.mag_sq())

    def dist_sq(self, other: "Vec2") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def heading(self) -> float:
        return math.atan2(self.y, self.x)

    def limit(self, min_length: float, max_length: float) -> "Vec2":
        mag_sq = self.mag_sq()
        if mag_sq < 1e-18:
            return self.set(0.0, 0.0)
        if min_length * min_length <= mag_sq <= max_length * max_length:
            return self
        mag = math.sqrt(mag_sq)
        target = min(max(mag, min_length), max_length)
        return self.mult(target / mag)

    def is_zero(self) -> bool:
        return self.mag_sq() < 1e-18

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def __add__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> "Vec2":
        return Vec2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vec2":
        if scalar == 0:
            return Vec2()
        return Vec2(self.x / scalar, self.y / scalar)

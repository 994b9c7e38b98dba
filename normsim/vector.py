"""
Normative Emergence — 2D Vector Math

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

Mutable 2D vector used for agent position, velocity and acceleration.
In-place operations return self so steering code can chain them.
"""

import math
from dataclasses import dataclass


@dataclass
class Vector2:
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def from_angle(cls, angle: float, length: float = 1.0) -> "Vector2":
        return cls(math.cos(angle) * length, math.sin(angle) * length)

    def copy(self) -> "Vector2":
        return Vector2(self.x, self.y)

    # ─── In-place ────────────────────────────────────────

    def add(self, other: "Vector2") -> "Vector2":
        self.x += other.x
        self.y += other.y
        return self

    def sub(self, other: "Vector2") -> "Vector2":
        self.x -= other.x
        self.y -= other.y
        return self

    def mult(self, k: float) -> "Vector2":
        self.x *= k
        self.y *= k
        return self

    def div(self, k: float) -> "Vector2":
        if k == 0:
            return self
        self.x /= k
        self.y /= k
        return self

    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def normalize(self) -> "Vector2":
        """Scale to unit length. The zero vector stays zero."""
        return self.div(self.magnitude())

    def set_mag(self, length: float) -> "Vector2":
        return self.normalize().mult(length)

    def limit(self, max_length: float) -> "Vector2":
        """Cap the magnitude at max_length, keeping direction."""
        mag = self.magnitude()
        if mag > max_length and mag > 0:
            self.mult(max_length / mag)
        return self

    def rotate(self, angle: float) -> "Vector2":
        c, s = math.cos(angle), math.sin(angle)
        self.x, self.y = self.x * c - self.y * s, self.x * s + self.y * c
        return self

    # ─── Pure ────────────────────────────────────────────

    def __add__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x - other.x, self.y - other.y)

    def dist(self, other: "Vector2") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_list(self, ndigits: int = 2) -> list[float]:
        return [round(self.x, ndigits), round(self.y, ndigits)]

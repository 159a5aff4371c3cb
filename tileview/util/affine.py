# This file is part of the TileView project.
# Copyright (C) 2024 TileView contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Two-dimensional affine transformations.
"""
from __future__ import division

import math
from collections import namedtuple

from tileview.projection import Bounds


class NonInvertibleTransformError(ValueError):
    pass


class Affine(namedtuple('Affine', 'a b c d tx ty')):
    """
    Affine transformation ``x' = a*x + c*y + tx``, ``y' = b*x + d*y + ty``.

    The ``translated``, ``scaled`` and ``rotated`` methods return a new
    transformation that applies the operation *after* this one.

    >>> t = Affine.identity().translated(10, 0).scaled(2, 2)
    >>> t.transform((1, 1))
    (22.0, 2.0)
    >>> t.inverse().transform((22.0, 2.0))
    (1.0, 1.0)
    """
    __slots__ = ()

    @classmethod
    def identity(cls):
        return cls(1.0, 0.0, 0.0, 1.0, 0.0, 0.0)

    def then(self, other):
        """
        Return the transformation that applies `self` and then `other`.
        """
        return Affine(
            other.a * self.a + other.c * self.b,
            other.b * self.a + other.d * self.b,
            other.a * self.c + other.c * self.d,
            other.b * self.c + other.d * self.d,
            other.a * self.tx + other.c * self.ty + other.tx,
            other.b * self.tx + other.d * self.ty + other.ty,
        )

    def translated(self, tx, ty):
        return self.then(Affine(1.0, 0.0, 0.0, 1.0, tx, ty))

    def scaled(self, sx, sy):
        return self.then(Affine(sx, 0.0, 0.0, sy, 0.0, 0.0))

    def rotated(self, angle, pivot=(0.0, 0.0)):
        """
        Rotate clockwise (in pixel coordinates with y pointing down) by
        `angle` degrees around `pivot`.
        """
        if not angle:
            return self
        rad = math.radians(angle)
        cos = math.cos(rad)
        sin = math.sin(rad)
        px, py = pivot
        return (self.translated(-px, -py)
            .then(Affine(cos, sin, -sin, cos, 0.0, 0.0))
            .translated(px, py))

    @property
    def determinant(self):
        return self.a * self.d - self.b * self.c

    def inverse(self):
        det = self.determinant
        if det == 0 or not math.isfinite(det):
            raise NonInvertibleTransformError('transformation is not invertible: %r' % (self, ))
        a = self.d / det
        b = -self.b / det
        c = -self.c / det
        d = self.a / det
        return Affine(a, b, c, d,
            -(a * self.tx + c * self.ty),
            -(b * self.tx + d * self.ty))

    def transform(self, point):
        x, y = point
        return (float(self.a * x + self.c * y + self.tx),
                float(self.b * x + self.d * y + self.ty))

    def transform_bounds(self, bounds):
        """
        Return the axis aligned `Bounds` of the transformed rectangle.
        """
        corners = [
            (bounds.x, bounds.y),
            (bounds.max_x, bounds.y),
            (bounds.x, bounds.max_y),
            (bounds.max_x, bounds.max_y),
        ]
        return Bounds.from_points([self.transform(p) for p in corners])

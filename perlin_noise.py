"""
Seedable 3D gradient noise (improved Perlin noise)
Used as a pure oracle for organic surface variation on the vase
"""

import numpy as np


class NoiseField:
    def __init__(self, seed=None):
        # no seed -> fresh OS entropy, kept on the instance so a shape can be reproduced
        if seed is None:
            seed = int(np.random.SeedSequence().entropy % (2 ** 32))
        self.seed = seed

        rng = np.random.default_rng(seed)
        table = rng.integers(0, 256, size=256)

        # second copy avoids wrapping indices during lookups
        self.permutation = np.concatenate([table, table]).astype(np.int64)
        self.permutation.setflags(write=False)

    @staticmethod
    def fade(t):
        return t * t * t * (t * (t * 6 - 15) + 10)

    @staticmethod
    def lerp(t, a, b):
        return a + t * (b - a)

    @staticmethod
    def grad(hash_value, x, y, z):
        """Dot product with one of 12 edge directions picked by the hash's low bits"""
        h = hash_value & 15
        u = np.where(h < 8, x, y)
        v = np.where(h < 4, y, np.where((h == 12) | (h == 14), x, z))
        return np.where((h & 1) == 0, u, -u) + np.where((h & 2) == 0, v, -v)

    def noise(self, x, y, z):
        """Noise value in roughly [-1, 1]; accepts scalars or broadcastable arrays"""
        x, y, z = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64),
            np.asarray(y, dtype=np.float64),
            np.asarray(z, dtype=np.float64),
        )
        scalar = x.ndim == 0

        fx, fy, fz = np.floor(x), np.floor(y), np.floor(z)

        # unit cube containing the point
        X = fx.astype(np.int64) & 255
        Y = fy.astype(np.int64) & 255
        Z = fz.astype(np.int64) & 255

        # relative position inside the cube
        x = x - fx
        y = y - fy
        z = z - fz

        u = self.fade(x)
        v = self.fade(y)
        w = self.fade(z)

        p = self.permutation
        A = p[X] + Y
        AA = p[A] + Z
        AB = p[A + 1] + Z
        B = p[X + 1] + Y
        BA = p[B] + Z
        BB = p[B + 1] + Z

        result = self.lerp(w,
            self.lerp(v,
                self.lerp(u, self.grad(p[AA], x, y, z),
                             self.grad(p[BA], x - 1, y, z)),
                self.lerp(u, self.grad(p[AB], x, y - 1, z),
                             self.grad(p[BB], x - 1, y - 1, z))),
            self.lerp(v,
                self.lerp(u, self.grad(p[AA + 1], x, y, z - 1),
                             self.grad(p[BA + 1], x - 1, y, z - 1)),
                self.lerp(u, self.grad(p[AB + 1], x, y - 1, z - 1),
                             self.grad(p[BB + 1], x - 1, y - 1, z - 1))))

        if scalar:
            return float(result)
        return result

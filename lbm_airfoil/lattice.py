"""
D2Q9 Lattice Constants and Utilities

Defines the D2Q9 lattice model for the 2D airfoil wind tunnel.
"""
import numpy as np

# D2Q9 lattice velocities (y points up, x points downstream)
#     6   2   5
#       \ | /
#     3 - 0 - 1
#       / | \
#     7   4   8

# Lattice velocity components
EX = np.array([0, 1, 0, -1, 0, 1, -1, -1, 1], dtype=np.int32)
EY = np.array([0, 0, 1, 0, -1, 1, 1, -1, -1], dtype=np.int32)

# Lattice weights
W = np.array([4/9, 1/9, 1/9, 1/9, 1/9, 1/36, 1/36, 1/36, 1/36], dtype=np.float64)

# Opposite direction indices (for bounce-back)
OPPOSITE = np.array([0, 3, 4, 1, 2, 7, 8, 5, 6], dtype=np.int32)

# Direction with the y component flipped (free-slip reflection at top/bottom)
MIRROR_Y = np.array([0, 1, 4, 3, 2, 8, 7, 6, 5], dtype=np.int32)

# Direction with the x component flipped (free-slip reflection at left/right)
MIRROR_X = np.array([0, 3, 2, 1, 4, 6, 5, 8, 7], dtype=np.int32)

# Axis-aligned directions and diagonals, excluding rest
AXIAL = (1, 2, 3, 4)
DIAGONAL = (5, 6, 7, 8)

# Lattice sound speed squared
CS2 = 1.0 / 3.0
CS4 = CS2 * CS2

# Number of lattice velocities
Q = 9

"""
Airfoil Geometry

Builds a NACA 4-digit airfoil as a closed polygon and rasterizes it into
the solid mask of the lattice.

Thickness distribution (half thickness, scaled by chord c):

    y_t = (t / 0.2) c (0.2969 sqrt(x) - 0.1260 x - 0.3516 x^2
                       + 0.2843 x^3 - 0.1015 x^4)

Camber line (maximum camber m at chordwise position p):

    y_c = m / p^2 (2 p x - x^2)                       for x < p
    y_c = m / (1 - p)^2 ((1 - 2p) + 2 p x - x^2)      for x >= p

Surface points are the camber line offset by +/- y_t along its local
normal, rotated by the angle of attack about the pivot and translated to
the pivot position on the grid.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.ndimage import binary_dilation

from .errors import GeometryError

logger = logging.getLogger(__name__)

# Wall distance (cells) that maps to 1.0 in the normalized distance field
DISTANCE_THRESHOLD = 1.0

MIN_SURFACE_POINTS = 16


@dataclass(frozen=True)
class AirfoilGeometry:
    """One generation of the immersed body; replaced wholesale on change."""
    polygon: np.ndarray
    solid: np.ndarray
    distance: Optional[np.ndarray]
    chord_length: int
    center: tuple
    angle: float

    @property
    def solid_cells(self):
        return int(np.count_nonzero(self.solid))


def naca_half_thickness(x_frac, thickness, chord):
    """NACA 4-digit half thickness at chord fractions ``x_frac`` (cells)."""
    x = np.asarray(x_frac, dtype=np.float64)
    return (thickness / 0.2) * chord * (
        0.2969 * np.sqrt(x)
        - 0.1260 * x
        - 0.3516 * x ** 2
        + 0.2843 * x ** 3
        - 0.1015 * x ** 4
    )


def naca_camber_line(x_frac, camber, camber_position):
    """
    NACA 4-digit mean camber line and its slope.

    Parameters
    ----------
    x_frac : ndarray
        Chord fractions in [0, 1]
    camber : float
        Maximum camber m as a fraction of chord
    camber_position : float
        Chordwise position p of maximum camber

    Returns
    -------
    y_c : ndarray
        Camber line height as a fraction of chord
    dyc_dx : ndarray
        Camber line slope
    """
    x = np.asarray(x_frac, dtype=np.float64)
    m, p = camber, camber_position

    if m == 0.0 or p == 0.0:
        return np.zeros_like(x), np.zeros_like(x)

    front = x < p
    y_c = np.where(
        front,
        m / p ** 2 * (2.0 * p * x - x ** 2),
        m / (1.0 - p) ** 2 * ((1.0 - 2.0 * p) + 2.0 * p * x - x ** 2),
    )
    dyc_dx = np.where(
        front,
        2.0 * m / p ** 2 * (p - x),
        2.0 * m / (1.0 - p) ** 2 * (p - x),
    )
    return y_c, dyc_dx


def chord_length_for(params, xdim):
    """Chord in whole cells; a chord under one cell is rejected."""
    chord = int(np.floor(xdim * params.chord_fraction))
    if chord < 1:
        raise GeometryError(
            f"Chord fraction {params.chord_fraction} gives a zero-length chord "
            f"on a grid {xdim} cells wide"
        )
    return chord


def airfoil_surface(params, xdim, ydim):
    """
    Upper and lower surface points in grid coordinates.

    Chordwise samples are cosine-spaced to resolve the leading edge.
    The leading-edge points of both surfaces are identical, and the
    trailing-edge points are forced onto a single shared point so the
    outline closes without a gap or a sliver.

    Returns
    -------
    upper, lower : ndarray
        Shape (n + 1, 2), ordered leading edge to trailing edge
    chord : int
        Chord length in cells
    center : tuple
        Pivot position (x, y) on the grid
    """
    chord = chord_length_for(params, xdim)
    n = params.points if params.points is not None else max(2 * chord, MIN_SURFACE_POINTS)

    x_frac = 0.5 * (1.0 - np.cos(np.linspace(0.0, np.pi, n + 1)))
    x_frac[0], x_frac[-1] = 0.0, 1.0

    y_t = naca_half_thickness(x_frac, params.thickness, chord)
    y_c, dyc_dx = naca_camber_line(x_frac, params.camber, params.camber_position)
    theta = np.arctan(dyc_dx)

    # Body frame: x along the chord from the pivot, y normal to it
    xc = chord * (x_frac - params.pivot_fraction)
    yc = chord * y_c
    sin_t, cos_t = np.sin(theta), np.cos(theta)

    upper = np.stack([xc - y_t * sin_t, yc + y_t * cos_t], axis=1)
    lower = np.stack([xc + y_t * sin_t, yc - y_t * cos_t], axis=1)

    upper[0] = lower[0] = (xc[0], yc[0])
    trailing = 0.5 * (upper[-1] + lower[-1])
    upper[-1] = lower[-1] = trailing

    # Grid y points north (row 0 is the bottom edge), so a positive angle
    # turns the chord clockwise and raises the nose
    cos_a, sin_a = np.cos(params.angle), np.sin(params.angle)

    cx = float(params.center_x) if params.center_x is not None else float(xdim // 3)
    cy = float(params.center_y) if params.center_y is not None else float(ydim // 2)

    def place(points):
        x, y = points[:, 0], points[:, 1]
        return np.stack([cx + x * cos_a + y * sin_a,
                         cy - x * sin_a + y * cos_a], axis=1)

    return place(upper), place(lower), chord, (cx, cy)


def airfoil_polygon(upper, lower):
    """
    Closed outline: upper surface leading to trailing edge, then the
    lower surface back to the leading edge. First and last points are
    the same leading-edge point.
    """
    polygon = np.concatenate([upper, lower[::-1][1:]], axis=0)
    polygon[-1] = polygon[0]
    return polygon


def rasterize_polygon(polygon, xdim, ydim):
    """
    Scanline fill of a closed polygon (even-odd rule).

    For each integer row inside the bounding box the crossings of the
    polygon edges with that row are sorted and cells between each
    consecutive pair are marked. Edges are treated half-open in y so a
    vertex on a scanline is counted once; horizontal edges never cross.
    Results are clamped to the grid.

    Parameters
    ----------
    polygon : ndarray
        Vertices, shape (n, 2); the last vertex equals the first
    xdim, ydim : int
        Grid dimensions

    Returns
    -------
    mask : ndarray
        Boolean mask, shape (ydim, xdim)
    """
    mask = np.zeros((ydim, xdim), dtype=bool)
    if len(polygon) < 4:
        raise GeometryError("Polygon needs at least three distinct vertices")

    x0, y0 = polygon[:-1, 0], polygon[:-1, 1]
    x1, y1 = polygon[1:, 0], polygon[1:, 1]
    lo = np.minimum(y0, y1)
    hi = np.maximum(y0, y1)

    y_start = max(int(np.ceil(lo.min())), 0)
    y_stop = min(int(np.floor(hi.max())), ydim - 1)

    for y in range(y_start, y_stop + 1):
        crossing = (lo <= y) & (y < hi)
        if not crossing.any():
            continue
        t = (y - y0[crossing]) / (y1[crossing] - y0[crossing])
        xs = np.sort(x0[crossing] + t * (x1[crossing] - x0[crossing]))

        for xa, xb in zip(xs[0::2], xs[1::2]):
            left = max(int(np.ceil(xa)), 0)
            right = min(int(np.floor(xb)), xdim - 1)
            if left <= right:
                mask[y, left:right + 1] = True

    return mask


def stroke_line(mask, p0, p1):
    """
    Mark the cells along a segment (DDA), clamped to the grid.

    Every integer column between the rounded endpoints gets a cell, so
    a body thinner than one cell still blocks the flow.
    """
    ydim, xdim = mask.shape
    x1, y1 = p0
    dx = p1[0] - x1
    dy = p1[1] - y1
    steps = max(int(np.ceil(max(abs(dx), abs(dy)))), 1)

    s = np.arange(steps + 1) / steps
    xs = np.round(x1 + s * dx).astype(np.int64)
    ys = np.round(y1 + s * dy).astype(np.int64)
    inside = (xs >= 0) & (xs < xdim) & (ys >= 0) & (ys < ydim)
    mask[ys[inside], xs[inside]] = True
    return mask


def distance_field(polygon, solid, threshold=DISTANCE_THRESHOLD):
    """
    Normalized distance from near-wall fluid cells to the airfoil outline.

    Fluid cells touching a solid cell (8-neighbourhood) get the minimum
    point-to-segment distance to the polygon edges divided by
    ``threshold`` and clamped to [0, 1]. Solid cells get 0, all other
    fluid cells 1.

    Parameters
    ----------
    polygon : ndarray
        Closed outline, shape (n, 2)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    threshold : float
        Distance in cells that maps to 1.0

    Returns
    -------
    distance : ndarray
        Shape (ny, nx), values in [0, 1]
    """
    distance = np.ones(solid.shape, dtype=np.float64)
    distance[solid] = 0.0

    near = binary_dilation(solid, structure=np.ones((3, 3), dtype=bool)) & ~solid
    ys, xs = np.nonzero(near)
    if len(ys) == 0:
        return distance

    p = np.stack([xs, ys], axis=1).astype(np.float64)
    a = polygon[:-1]
    ab = polygon[1:] - a
    ab2 = np.sum(ab * ab, axis=1)
    ab2 = np.where(ab2 > 0.0, ab2, 1.0)

    ap = p[:, None, :] - a[None, :, :]
    t = np.clip(np.sum(ap * ab[None, :, :], axis=2) / ab2[None, :], 0.0, 1.0)
    closest = a[None, :, :] + t[:, :, None] * ab[None, :, :]
    d = np.sqrt(np.sum((p[:, None, :] - closest) ** 2, axis=2)).min(axis=1)

    distance[ys, xs] = np.clip(d / threshold, 0.0, 1.0)
    return distance


def generate_airfoil(params, xdim, ydim, with_distance=False):
    """
    Build the airfoil polygon and its solid mask.

    Parameters
    ----------
    params : AirfoilParams
        Shape and placement
    xdim, ydim : int
        Grid dimensions
    with_distance : bool
        Also compute the wall distance field for interpolated bounce-back

    Returns
    -------
    geometry : AirfoilGeometry
        Polygon, solid mask and optional distance field
    """
    upper, lower, chord, center = airfoil_surface(params, xdim, ydim)
    polygon = airfoil_polygon(upper, lower)

    solid = rasterize_polygon(polygon, xdim, ydim)

    camber = 0.5 * (upper + lower)
    for p0, p1 in zip(camber[:-1], camber[1:]):
        stroke_line(solid, p0, p1)

    distance = distance_field(polygon, solid) if with_distance else None

    geometry = AirfoilGeometry(
        polygon=polygon,
        solid=solid,
        distance=distance,
        chord_length=chord,
        center=center,
        angle=params.angle,
    )
    logger.info(
        "Airfoil generated: chord=%d cells, angle=%.4f rad, %d solid cells",
        chord, params.angle, geometry.solid_cells
    )
    return geometry

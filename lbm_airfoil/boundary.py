"""
Boundary Condition Handlers

Implements the boundary conditions of the airfoil wind tunnel:
- Bounce-back on the immersed body (no-slip), plain or interpolated
- Equilibrium velocity inlet (Dirichlet)
- Zero-gradient or convective outlet
- Free-slip side walls

Bounce-back runs right after streaming; the edge conditions run at the
start of the next step, before collision.
"""

import numpy as np
from .lattice import EX, EY, Q, OPPOSITE, MIRROR_X, MIRROR_Y, AXIAL, DIAGONAL
from .equilibrium import compute_equilibrium, equilibrium_single_site
from .streaming import shift_from_upstream

EDGES = ("left", "right", "bottom", "top")

OPPOSITE_EDGE = {"left": "right", "right": "left", "bottom": "top", "top": "bottom"}

# Cells of an edge line and of the line one cell inward, as (y, x) indices
_EDGE_LINES = {
    "left": ((slice(None), 0), (slice(None), 1)),
    "right": ((slice(None), -1), (slice(None), -2)),
    "bottom": ((0, slice(None)), (1, slice(None))),
    "top": ((-1, slice(None)), (-2, slice(None))),
}


def bounce_back_links(solid, periodic=False):
    """
    Find fluid-to-solid links.

    Parameters
    ----------
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    periodic : bool
        Whether neighbours wrap around the domain

    Returns
    -------
    links : ndarray
        Boolean array, shape (Q, ny, nx). ``links[k, y, x]`` is True when
        (x, y) is fluid and its upstream neighbour (x, y) - e_k is solid,
        i.e. the population arriving in direction k must be reflected.
    """
    ny, nx = solid.shape
    links = np.zeros((Q, ny, nx), dtype=bool)
    fluid = ~solid

    for k in range(1, Q):
        if periodic:
            upstream = np.roll(np.roll(solid, EX[k], axis=1), EY[k], axis=0)
        else:
            upstream = shift_from_upstream(solid, k, fill=False)
        links[k] = fluid & upstream

    return links


def apply_bounce_back(f_streamed, f_pre, solid, links):
    """
    Apply half-way bounce-back on the immersed body (no-slip).

    A population that left fluid cell x toward a solid neighbour returns
    to x in the opposite direction within the same step:

        f_k(x, t+1) = f*_{opp(k)}(x, t)

    This is the swap of each population with its opposite-direction
    counterpart that streamed into the wall cell. The wall sits half way
    between the fluid and solid cell centres (first-order accurate).
    Solid cells are zeroed afterwards.

    Parameters
    ----------
    f_streamed : ndarray
        Post-streaming distribution, shape (Q, ny, nx). Modified in place.
    f_pre : ndarray
        Post-collision, pre-streaming distribution
    solid : ndarray
        Boolean solid mask
    links : ndarray
        Output of :func:`bounce_back_links`

    Returns
    -------
    f_streamed : ndarray
        Distribution with bounce-back applied
    """
    for k in range(1, Q):
        mask = links[k]
        if mask.any():
            f_streamed[k][mask] = f_pre[OPPOSITE[k]][mask]

    f_streamed[:, solid] = 0.0
    return f_streamed


def interpolation_eligible(solid, links, periodic=False):
    """
    Links on which interpolated bounce-back may be used.

    Axis-aligned links always qualify. A diagonal link qualifies only
    when both axis-aligned cells flanking it are fluid; otherwise the
    corner geometry is ill-defined and plain bounce-back is used.
    """
    eligible = np.zeros_like(links)
    for k in AXIAL:
        eligible[k] = links[k]

    for k in DIAGONAL:
        # Flanking cells of a diagonal link: (x - ex, y) and (x, y - ey)
        ex, ey = int(EX[k]), int(EY[k])
        axial_x = _axial_index(ex, 0)
        axial_y = _axial_index(0, ey)
        if periodic:
            side_x = np.roll(solid, ex, axis=1)
            side_y = np.roll(solid, ey, axis=0)
        else:
            side_x = shift_from_upstream(solid, axial_x, fill=True)
            side_y = shift_from_upstream(solid, axial_y, fill=True)
        eligible[k] = links[k] & ~side_x & ~side_y

    return eligible


def _axial_index(ex, ey):
    for k in AXIAL:
        if EX[k] == ex and EY[k] == ey:
            return k
    raise ValueError(f"No axial direction ({ex}, {ey})")


def apply_interpolated_bounce_back(f_streamed, f_pre, solid, links, eligible, distance):
    """
    Bounce-back with linear interpolation for curved walls.

    For a fluid cell with normalized wall distance d in (0, 1) the true
    wall lies partway into the solid cell. With q = 1 - d the reflected
    population is blended with the one the cell already held:

        f_k = q * f*_{opp(k)}(x) + (1 - q) * f*_k(x)

    Links that are not eligible, or cells without a fractional distance,
    fall back to plain bounce-back. The blend does not conserve mass
    exactly; the error is bounded by the near-wall non-equilibrium.

    Parameters
    ----------
    f_streamed : ndarray
        Post-streaming distribution. Modified in place.
    f_pre : ndarray
        Post-collision, pre-streaming distribution
    solid : ndarray
        Boolean solid mask
    links : ndarray
        Output of :func:`bounce_back_links`
    eligible : ndarray
        Output of :func:`interpolation_eligible`
    distance : ndarray
        Normalized wall distance field, shape (ny, nx)

    Returns
    -------
    f_streamed : ndarray
        Distribution with bounce-back applied
    """
    fractional = (distance > 0.0) & (distance < 1.0)
    q_wall = 1.0 - distance

    for k in range(1, Q):
        mask = links[k]
        if not mask.any():
            continue
        k_opp = OPPOSITE[k]
        blend = mask & eligible[k] & fractional
        plain = mask & ~blend

        f_streamed[k][plain] = f_pre[k_opp][plain]
        qb = q_wall[blend]
        f_streamed[k][blend] = qb * f_pre[k_opp][blend] + (1.0 - qb) * f_pre[k][blend]

    f_streamed[:, solid] = 0.0
    return f_streamed


def inlet_edge(flow_angle):
    """
    Upwind edge for a flow direction.

    The dominant velocity axis decides: |cos| >= |sin| puts the inlet on
    the left (cos >= 0) or right edge, otherwise on the bottom (sin > 0)
    or top edge.
    """
    c, s = np.cos(flow_angle), np.sin(flow_angle)
    if abs(c) >= abs(s):
        return "left" if c >= 0.0 else "right"
    return "bottom" if s > 0.0 else "top"


def side_edges(inlet):
    """The two edges parallel to the flow axis."""
    if inlet in ("left", "right"):
        return ("bottom", "top")
    return ("left", "right")


def apply_equilibrium_edge(f, edge, rho, ux, uy):
    """
    Force an edge to equilibrium at fixed density and velocity.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    edge : str
        One of "left", "right", "bottom", "top"
    rho : float
        Edge density
    ux, uy : float
        Edge velocity

    Returns
    -------
    f : ndarray
        Distribution with the Dirichlet condition applied
    """
    line, _ = _EDGE_LINES[edge]
    f[(slice(None),) + line] = equilibrium_single_site(rho, ux, uy)[:, None]
    return f


def apply_extrapolation_edge(f, edge):
    """Zero-gradient outlet: copy every population from one cell inward."""
    line, inner = _EDGE_LINES[edge]
    f[(slice(None),) + line] = f[(slice(None),) + inner]
    return f


def apply_convective_edge(f, edge, ux, uy):
    """
    Convective outlet: fixed velocity, floating density.

    The density of each edge cell is taken from the population sum of
    its inward neighbour; populations are set to equilibrium at that
    density and the given velocity.
    """
    line, inner = _EDGE_LINES[edge]
    f_inner = f[(slice(None),) + inner]
    rho = np.sum(f_inner, axis=0)
    f[(slice(None),) + line] = compute_equilibrium(
        rho, np.full_like(rho, ux), np.full_like(rho, uy)
    )
    return f


def apply_free_slip_edge(f, edge, mode="copy"):
    """
    Free-slip side wall.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    edge : str
        Edge to treat
    mode : {"copy", "reflect"}
        "copy" copies all populations from the adjacent interior line.
        "reflect" averages the interior line with its mirror image
        across the wall, which leaves zero normal velocity on the edge
        and keeps density and the tangential component.

    Returns
    -------
    f : ndarray
        Distribution with the free-slip condition applied
    """
    line, inner = _EDGE_LINES[edge]
    f_inner = f[(slice(None),) + inner]

    if mode == "copy":
        f[(slice(None),) + line] = f_inner
    elif mode == "reflect":
        mirror = MIRROR_Y if edge in ("bottom", "top") else MIRROR_X
        f[(slice(None),) + line] = 0.5 * (f_inner + f_inner[mirror])
    else:
        raise ValueError(f"Unknown free-slip mode: {mode!r}")
    return f


class EdgeBoundaries:
    """
    Edge conditions of the wind tunnel.

    The inlet sits on the upwind edge, the outlet on the opposite edge,
    and the two remaining edges are free-slip. Application order is
    free-slip, outlet, inlet, so the inlet wins at the corners.

    Parameters
    ----------
    flow_speed : float
        Inlet speed
    flow_angle : float
        Inlet direction in radians
    outlet : {"extrapolate", "convective"}
        Outlet treatment
    free_slip : {"copy", "reflect"}
        Side-wall treatment
    rho_inlet : float
        Inlet density
    """

    def __init__(self, flow_speed, flow_angle, outlet="extrapolate",
                 free_slip="copy", rho_inlet=1.0):
        if outlet not in ("extrapolate", "convective"):
            raise ValueError(f"Unknown outlet type: {outlet!r}")
        if free_slip not in ("copy", "reflect"):
            raise ValueError(f"Unknown free-slip mode: {free_slip!r}")

        self.ux = flow_speed * np.cos(flow_angle)
        self.uy = flow_speed * np.sin(flow_angle)
        self.rho_inlet = rho_inlet
        self.outlet_type = outlet
        self.free_slip = free_slip

        self.inlet = inlet_edge(flow_angle)
        self.outlet = OPPOSITE_EDGE[self.inlet]
        self.sides = side_edges(self.inlet)

    def apply(self, f):
        """
        Apply all edge conditions.

        Parameters
        ----------
        f : ndarray
            Distribution functions. Modified in place.

        Returns
        -------
        f : ndarray
            Distribution with all edge conditions applied
        """
        for edge in self.sides:
            apply_free_slip_edge(f, edge, self.free_slip)

        if self.outlet_type == "extrapolate":
            apply_extrapolation_edge(f, self.outlet)
        else:
            apply_convective_edge(f, self.outlet, self.ux, self.uy)

        apply_equilibrium_edge(f, self.inlet, self.rho_inlet, self.ux, self.uy)
        return f

"""
Grid engine for the terminal Game of Life.

A Grid is an immutable value: a read-only boolean numpy array plus the edge
policy it lives under. Every operation here is a pure function taking and
returning Grids, so the driver is the only place that holds state.

Edge policies:
  torus     neighbours wrap to the opposite edge (default)
  bounded   cells beyond the edge count as dead
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

# ── Rule constants ──────────────────────────────────────────────────────
LIVE_CELL = "O"
EMPTY_CELL = " "

TORUS = "torus"
BOUNDED = "bounded"
EDGE_POLICIES: tuple[str, ...] = (TORUS, BOUNDED)

DEFAULT_DENSITY: float = 0.5

# Moore neighbourhood, reused every step
NEIGHBOR_KERNEL: NDArray = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.int16)

# ── Pattern library ─────────────────────────────────────────────────────
# (row, col) offsets from the pattern's top-left corner
PATTERNS: dict[str, list[tuple[int, int]]] = {
    "glider": [(0, 1), (1, 2), (2, 0), (2, 1), (2, 2)],
    "blinker": [(0, 0), (0, 1), (0, 2)],
    "block": [(0, 0), (0, 1), (1, 0), (1, 1)],
    "beacon": [(0, 0), (0, 1), (1, 0), (2, 3), (3, 2), (3, 3)],
    "toad": [(0, 1), (0, 2), (0, 3), (1, 0), (1, 1), (1, 2)],
    "lwss": [
        (0, 1), (0, 4), (1, 0), (2, 0), (2, 4),
        (3, 0), (3, 1), (3, 2), (3, 3),
    ],
    "r_pentomino": [(0, 1), (0, 2), (1, 0), (1, 1), (2, 1)],
    "acorn": [(0, 1), (1, 3), (2, 0), (2, 1), (2, 4), (2, 5), (2, 6)],
    "diehard": [(0, 6), (1, 0), (1, 1), (2, 1), (2, 5), (2, 6), (2, 7)],
    "pulsar": [
        (0, 2), (0, 3), (0, 4), (0, 8), (0, 9), (0, 10),
        (2, 0), (2, 5), (2, 7), (2, 12),
        (3, 0), (3, 5), (3, 7), (3, 12),
        (4, 0), (4, 5), (4, 7), (4, 12),
        (5, 2), (5, 3), (5, 4), (5, 8), (5, 9), (5, 10),
        (7, 2), (7, 3), (7, 4), (7, 8), (7, 9), (7, 10),
        (8, 0), (8, 5), (8, 7), (8, 12),
        (9, 0), (9, 5), (9, 7), (9, 12),
        (10, 0), (10, 5), (10, 7), (10, 12),
        (12, 2), (12, 3), (12, 4), (12, 8), (12, 9), (12, 10),
    ],
    "pentadecathlon": [
        (0, 1), (1, 1), (2, 0), (2, 2), (3, 1), (4, 1),
        (5, 1), (6, 1), (7, 0), (7, 2), (8, 1), (9, 1),
    ],
    "gosper_gun": [
        (0, 24),
        (1, 22), (1, 24),
        (2, 12), (2, 13), (2, 20), (2, 21), (2, 34), (2, 35),
        (3, 11), (3, 15), (3, 20), (3, 21), (3, 34), (3, 35),
        (4, 0), (4, 1), (4, 10), (4, 16), (4, 20), (4, 21),
        (5, 0), (5, 1), (5, 10), (5, 14), (5, 16), (5, 17), (5, 22), (5, 24),
        (6, 10), (6, 16), (6, 24),
        (7, 11), (7, 15),
        (8, 12), (8, 13),
    ],
}


# ═══════════════════════════════════════════════════════════════════════
#  Errors
# ═══════════════════════════════════════════════════════════════════════

class InvalidDimensions(ValueError):
    """Grid width or height is zero or negative."""


class OutOfBounds(IndexError):
    """Cell accessor called with an index outside the grid."""


# ═══════════════════════════════════════════════════════════════════════
#  Values
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class Grid:
    """One generation of cells. Immutable; compare with ``==``."""

    cells: NDArray[np.bool_]
    edges: str = TORUS

    def __post_init__(self) -> None:
        # Always copy so the caller's array can't alias ours
        cells = np.array(self.cells, dtype=np.bool_)
        if cells.ndim != 2 or cells.shape[0] < 1 or cells.shape[1] < 1:
            raise InvalidDimensions(f"grid must be a non-empty 2-D array, got shape {cells.shape}")
        if self.edges not in EDGE_POLICIES:
            raise ValueError(f"unknown edge policy {self.edges!r}, expected one of {EDGE_POLICIES}")
        cells.setflags(write=False)
        object.__setattr__(self, "cells", cells)

    @property
    def height(self) -> int:
        return int(self.cells.shape[0])

    @property
    def width(self) -> int:
        return int(self.cells.shape[1])

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    @property
    def population(self) -> int:
        return int(np.count_nonzero(self.cells))

    def rows(self, max_rows: int | None = None, max_cols: int | None = None) -> list[str]:
        """Glyph strings for the top-left ``max_rows x max_cols`` corner."""
        view = self.cells[:max_rows, :max_cols]
        glyphs = np.where(view, LIVE_CELL, EMPTY_CELL)
        return ["".join(row) for row in glyphs.tolist()]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.edges == other.edges and np.array_equal(self.cells, other.cells)

    def __hash__(self) -> int:
        return hash((self.shape, self.edges, self.cells.tobytes()))

    def __str__(self) -> str:
        return "\n".join(self.rows())


@dataclass(frozen=True)
class SeedPolicy:
    """How the first generation is populated."""

    kind: str = "random"
    density: float = DEFAULT_DENSITY
    pattern_name: str = ""
    seed: int | None = None

    KINDS: ClassVar[tuple[str, ...]] = ("random", "pattern", "empty")

    def __post_init__(self) -> None:
        if self.kind not in self.KINDS:
            raise ValueError(f"unknown seed policy {self.kind!r}")
        if self.kind == "random" and not 0.0 <= self.density <= 1.0:
            raise ValueError(f"density must be within [0, 1], got {self.density}")
        if self.kind == "pattern" and self.pattern_name not in PATTERNS:
            raise ValueError(
                f"unknown pattern {self.pattern_name!r}, expected one of {sorted(PATTERNS)}"
            )

    @classmethod
    def random(cls, density: float = DEFAULT_DENSITY, seed: int | None = None) -> SeedPolicy:
        return cls("random", density=density, seed=seed)

    @classmethod
    def pattern(cls, name: str) -> SeedPolicy:
        return cls("pattern", pattern_name=name)

    @classmethod
    def empty(cls) -> SeedPolicy:
        return cls("empty")


# ═══════════════════════════════════════════════════════════════════════
#  Engine
# ═══════════════════════════════════════════════════════════════════════

def initialize(
    width: int,
    height: int,
    seed_policy: SeedPolicy | None = None,
    edges: str = TORUS,
) -> Grid:
    """Build generation zero. Defaults to a uniform random fill at density 0.5."""
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"grid dimensions must be positive, got {width}x{height}")
    policy = seed_policy if seed_policy is not None else SeedPolicy.random()

    if policy.kind == "random":
        rng = np.random.default_rng(policy.seed)
        cells = rng.random((height, width)) < policy.density
    elif policy.kind == "pattern":
        cells = _place(PATTERNS[policy.pattern_name], height, width)
    else:
        cells = np.zeros((height, width), dtype=np.bool_)

    return Grid(cells, edges)


def _place(offsets: list[tuple[int, int]], height: int, width: int) -> NDArray[np.bool_]:
    """Centre a pattern in an empty array, clipping cells that fall outside."""
    cells = np.zeros((height, width), dtype=np.bool_)
    p_rows = max(dy for dy, _ in offsets) + 1
    p_cols = max(dx for _, dx in offsets) + 1
    y0 = (height - p_rows) // 2
    x0 = (width - p_cols) // 2
    for dy, dx in offsets:
        y, x = y0 + dy, x0 + dx
        if 0 <= y < height and 0 <= x < width:
            cells[y, x] = True
    return cells


def neighbor_counts(grid: Grid) -> NDArray[np.int16]:
    """Live Moore neighbours of every cell under the grid's edge policy."""
    mode = "wrap" if grid.edges == TORUS else "constant"
    return convolve(grid.cells.astype(np.int16), NEIGHBOR_KERNEL, mode=mode, cval=0)


def next_state(alive: bool, neighbours: int) -> bool:
    """B3/S23 for a single cell."""
    return neighbours == 3 or (neighbours == 2 and alive)


def step(grid: Grid) -> Grid:
    """Advance one generation. ``grid`` is left untouched."""
    n = neighbor_counts(grid)
    n_is_3 = n == 3
    born = ~grid.cells & n_is_3
    survive = grid.cells & (n_is_3 | (n == 2))
    return Grid(born | survive, grid.edges)


def is_cell_alive(grid: Grid, row: int, col: int) -> bool:
    if not (0 <= row < grid.height and 0 <= col < grid.width):
        raise OutOfBounds(
            f"cell ({row}, {col}) is outside a {grid.height}x{grid.width} grid"
        )
    return bool(grid.cells[row, col])


def births_and_deaths(previous: Grid, current: Grid) -> tuple[int, int]:
    """Cells that came alive and cells that died between two generations."""
    born = int(np.count_nonzero(~previous.cells & current.cells))
    died = int(np.count_nonzero(previous.cells & ~current.cells))
    return born, died

import math
from typing import Dict, List, Sequence, Tuple

from treemeshgen.tools.common import vec3

Cell = Tuple[int, int, int]

MIN_CELL_SIZE = 0.0001


class SpatialHash:
    """
    Uniform grid over a fixed point set for radius-bounded neighbor queries.

    The cell size equals the query radius, so every neighbor of a point lies
    in the 3x3x3 block of cells around it. Built once, read-only afterwards.
    """

    def __init__(self, positions: Sequence[vec3], radius: float):
        self.positions = list(positions)
        self.radius = radius
        self.cell_size = max(MIN_CELL_SIZE, radius)
        self._radius_sqr = radius * radius
        self.cells: Dict[Cell, List[int]] = {}

        for index, position in enumerate(self.positions):
            self.cells.setdefault(self.cell_of(position), []).append(index)

    def cell_of(self, position: vec3) -> Cell:
        return (
            math.floor(position.x / self.cell_size),
            math.floor(position.y / self.cell_size),
            math.floor(position.z / self.cell_size),
        )

    def neighbors(self, position: vec3) -> List[int]:
        """Indices of stored points strictly closer than the radius."""
        cx, cy, cz = self.cell_of(position)
        found = []
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for dz in (-1, 0, 1):
                    bucket = self.cells.get((cx + dx, cy + dy, cz + dz))
                    if bucket is None:
                        continue
                    for index in bucket:
                        if (position - self.positions[index]).sqr_length() < self._radius_sqr:
                            found.append(index)
        return found

    def count_neighbors_of(self, index: int) -> int:
        """Neighbor count of a stored point, excluding the point itself."""
        return sum(1 for other in self.neighbors(self.positions[index]) if other != index)

    def __len__(self):
        return len(self.positions)

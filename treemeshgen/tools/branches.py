from dataclasses import dataclass
from typing import List, Optional, Tuple

from treemeshgen.tools.common import vec3


@dataclass(frozen=True)
class BranchPoint:
    """One cross-section of a branch."""
    position: vec3
    radius: float


@dataclass(frozen=True)
class Branch:
    """
    A tapering polyline emitted by a growth strategy.

    Parameters:
      - points: ordered cross-sections, base first.
      - depth: branching generation (0 = trunk).
      - seed: branch-local texture seed (0 = trunk).
      - parent_direction: direction of the parent at the attachment point,
        used to extrude the blend ring. None for the trunk.
    """
    points: Tuple[BranchPoint, ...]
    depth: int = 0
    seed: int = 0
    parent_direction: Optional[vec3] = None

    def __len__(self):
        return len(self.points)

    def __getitem__(self, index):
        return self.points[index]

    def __iter__(self):
        return iter(self.points)

    @property
    def tip(self) -> BranchPoint:
        return self.points[-1]

    @property
    def tip_direction(self) -> vec3:
        return (self.points[-1].position - self.points[-2].position).normalized()


Forest = List[Branch]

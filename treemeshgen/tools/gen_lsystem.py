"""
Grammar-driven branch skeletons.

An axiom string is rewritten for a number of iterations and then walked by a
turtle. Alphabet:
  F     advance one segment along the turtle's local up axis
  B     branch marker, only meaningful to the rewriting rules
  [ ]   push / pop turtle state; each [ ... ] pair becomes one branch
  l r   randomized rotations (mirror images of each other)
"""

import math
from typing import List, Optional

import numpy as np

from treemeshgen.tools.branches import Branch, BranchPoint, Forest
from treemeshgen.tools.common import FORWARD, RIGHT, UP, vec3
from treemeshgen.tools.gen_mesh import MeshBuffers, TubeSettings, add_tube
from treemeshgen.tools.random_stream import uniform, value

SHORT_BRANCH_RULE = "[llFB][rFB]"
LONG_BRANCH_RULE = "[lFB][rrFB]"


def expand_lsystem(axiom: str, iterations: int, growth_probability: float, branch_probability: float,
                   rng: np.random.Generator) -> str:
    """
    Rewrite 'axiom' 'iterations' times.

    :param growth_probability: Percent chance that F becomes FF.
    :param branch_probability: Percent chance that B takes the long rule.
    """
    expanded = axiom
    for _ in range(iterations):
        parts = []
        for character in expanded:
            if character == "F":
                parts.append("FF" if value(rng) * 100.0 < growth_probability else "F")
            elif character == "B":
                parts.append(LONG_BRANCH_RULE if value(rng) * 100.0 < branch_probability else SHORT_BRANCH_RULE)
            else:
                parts.append(character)
        expanded = "".join(parts)
    return expanded


class _Turtle:
    __slots__ = ("position", "right", "up", "forward")

    def __init__(self, position: vec3, right: vec3, up: vec3, forward: vec3):
        self.position = position
        self.right = right
        self.up = up
        self.forward = forward

    def copy(self):
        return _Turtle(self.position, self.right, self.up, self.forward)

    def rotate_local(self, axis: vec3, angle_degrees: float):
        """Rotate the local frame about 'axis' (given in world space)."""
        angle = math.radians(angle_degrees)
        self.right = self.right.rotate(axis, angle).normalized()
        self.up = self.up.rotate(axis, angle).normalized()
        self.forward = self.forward.rotate(axis, angle).normalized()


class _BranchState:
    __slots__ = ("points", "radius", "first_segment", "connection_dir")

    def __init__(self, points: List[BranchPoint], radius: float, first_segment: bool,
                 connection_dir: Optional[vec3]):
        self.points = points
        self.radius = radius
        self.first_segment = first_segment
        self.connection_dir = connection_dir


def generate_lsystem_branches(config, bark: MeshBuffers, tube_settings: TubeSettings,
                              rng: np.random.Generator, origin: vec3 = None) -> Forest:
    """
    Expand the grammar and walk it, appending every branch's tube to 'bark'.

    The trunk is never closed by ']' and is emitted once the walk finishes; it
    is placed first in the returned forest.
    """
    instructions = expand_lsystem(
        config.lsystem_axiom,
        config.lsystem_iterations,
        config.growth_probability,
        config.branch_probability,
        rng,
    )

    if origin is None:
        origin = vec3(0.0, 0.0, 0.0)
    turtle = _Turtle(origin, RIGHT, UP, FORWARD)
    branch = _BranchState([BranchPoint(origin, config.base_thickness)], config.base_thickness, False, None)
    last_advance = UP

    turtle_stack = []
    branch_stack = []
    children: Forest = []
    branch_cap = config.max_generated_branches
    next_seed = 1

    for instruction in instructions:
        if instruction == "F":
            turtle.position = turtle.position + turtle.up * config.segment_length
            if branch.first_segment:
                branch.radius *= config.child_branch_thickness
                branch.first_segment = False
            branch.radius *= config.branch_thinning_rate
            branch.points.append(BranchPoint(turtle.position, branch.radius))
            last_advance = turtle.up

        elif instruction == "[":
            turtle_stack.append((turtle.copy(), last_advance))
            branch_stack.append(branch)
            branch = _BranchState(
                [BranchPoint(turtle.position, branch.radius)],
                branch.radius,
                True,
                last_advance,
            )

        elif instruction == "]":
            if not turtle_stack:
                continue
            # One slot stays reserved for the trunk.
            cap_reached = branch_cap > 0 and len(children) + 1 >= branch_cap
            if len(branch.points) >= 2 and not cap_reached:
                emitted = Branch(
                    points=tuple(branch.points),
                    depth=len(branch_stack),
                    seed=next_seed,
                    parent_direction=branch.connection_dir,
                )
                add_tube(bark, emitted.points, config.radial_segments, emitted.parent_direction,
                         emitted.seed, tube_settings)
                children.append(emitted)
                next_seed += 1
            turtle, last_advance = turtle_stack.pop()
            branch = branch_stack.pop()

        elif instruction == "l":
            turtle.rotate_local(-turtle.forward, uniform(rng, config.angle_x_min, config.angle_x_max))
            turtle.rotate_local(turtle.up, uniform(rng, config.angle_y_min, config.angle_y_max))

        elif instruction == "r":
            turtle.rotate_local(turtle.forward, uniform(rng, config.angle_x_min, config.angle_x_max))
            turtle.rotate_local(turtle.up, uniform(rng, config.angle_y_min, config.angle_y_max))

    # Unbalanced '[' leave their branches open; the outermost one is the trunk.
    while branch_stack:
        branch = branch_stack.pop()

    forest: Forest = []
    if len(branch.points) >= 2:
        trunk = Branch(points=tuple(branch.points), depth=0, seed=0, parent_direction=None)
        add_tube(bark, trunk.points, config.radial_segments, None, 0, tube_settings)
        forest.append(trunk)
    forest.extend(children)
    return forest

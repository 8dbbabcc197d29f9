import math
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from treemeshgen.tools.branches import Branch, BranchPoint, Forest
from treemeshgen.tools.common import get_perpendicular, vec3

DEPTH_COLORS = ("saddlebrown", "peru", "olivedrab", "yellowgreen")


def _draw_circle_at_point(ax, point: BranchPoint, direction: vec3, circle_points=24, color="r"):
    """
    Draw a circle representing the branch cross section, perpendicular to its direction.
    :param ax: Matplotlib 3D axis.
    :param point: BranchPoint with position and radius.
    :param direction: Local branch direction at the point.
    :param circle_points: Number of points used to approximate the circle.
    """
    d = direction if direction.length() > 1e-6 else vec3(0, 0, 1)
    d = d.normalized()
    e1 = get_perpendicular(d)
    e2 = d.cross(e1).normalized()

    X, Y, Z = [], [], []
    for t in np.linspace(0, 2 * np.pi, circle_points):
        pos = point.position + e1 * (point.radius * math.cos(t)) + e2 * (point.radius * math.sin(t))
        X.append(pos.x)
        Y.append(pos.y)
        Z.append(pos.z)
    ax.plot(X, Y, Z, color=color, linewidth=0.6)


def visualize_branch(branch: Branch, ax, draw_cross_sections=True):
    """
    Draw one branch polyline, colored by depth, with its cross sections.
    """
    color = DEPTH_COLORS[min(branch.depth, len(DEPTH_COLORS) - 1)]
    xs = [p.position.x for p in branch]
    ys = [p.position.y for p in branch]
    zs = [p.position.z for p in branch]
    ax.plot(xs, ys, zs, color=color, linewidth=max(0.5, 4.0 / (branch.depth + 1)))

    if draw_cross_sections:
        for i, point in enumerate(branch):
            if i < len(branch) - 1:
                direction = branch[i + 1].position - point.position
            else:
                direction = point.position - branch[i - 1].position
            _draw_circle_at_point(ax, point, direction, color="r")


def _set_equal_limits(ax, forest: Forest):
    xs = [p.position.x for branch in forest for p in branch]
    ys = [p.position.y for branch in forest for p in branch]
    zs = [p.position.z for branch in forest for p in branch]
    max_range = max(max(xs) - min(xs), max(ys) - min(ys), max(zs) - min(zs), 1e-3)
    x_mid = (max(xs) + min(xs)) / 2
    y_mid = (max(ys) + min(ys)) / 2
    z_mid = (max(zs) + min(zs)) / 2
    ax.set_xlim(x_mid - max_range / 2, x_mid + max_range / 2)
    ax.set_ylim(y_mid - max_range / 2, y_mid + max_range / 2)
    ax.set_zlim(z_mid - max_range / 2, z_mid + max_range / 2)


def save_skeleton_plot_png(forest: Forest, output_path: Path, title="3D Tree Skeleton") -> None:
    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection="3d")
    ax.set_title(title)
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.set_zlabel("Z")

    for branch in forest:
        visualize_branch(branch, ax)
    if forest:
        _set_equal_limits(ax, forest)

    fig.savefig(output_path, dpi=150)
    plt.close(fig)

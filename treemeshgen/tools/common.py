import math

from noise import pnoise2


class vec3:
    """3D vector value. Never mutated in place; every operation returns a new vec3."""
    __slots__ = ("x", "y", "z")

    def __init__(self, x=0.0, y=0.0, z=0.0):
        self.x = x
        self.y = y
        self.z = z

    def __add__(self, other):
        return vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other):
        return vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, other):
        return vec3(self.x * other, self.y * other, self.z * other)

    __rmul__ = __mul__

    def __truediv__(self, other):
        return vec3(self.x / other, self.y / other, self.z / other)

    def __str__(self):
        return f"({self.x}, {self.y}, {self.z})"

    def __repr__(self):
        return f"vec3({self.x}, {self.y}, {self.z})"

    def __eq__(self, other):
        if not isinstance(other, vec3):
            return NotImplemented
        return self.x == other.x and self.y == other.y and self.z == other.z

    def __ne__(self, other):
        return not self == other

    def __neg__(self):
        return vec3(-self.x, -self.y, -self.z)

    def __abs__(self):
        return (self.x**2 + self.y**2 + self.z**2)**0.5

    def __iter__(self):
        return iter([self.x, self.y, self.z])

    def dot(self, other):
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other):
        return vec3(self.y * other.z - self.z * other.y,
                    self.z * other.x - self.x * other.z,
                    self.x * other.y - self.y * other.x)

    def scaled(self, other):
        """Component-wise product."""
        return vec3(self.x * other.x, self.y * other.y, self.z * other.z)

    def normalized(self):
        # Zero-length vectors stay zero instead of dividing by zero.
        length = self.length()
        if length < 1e-5:
            return vec3(0.0, 0.0, 0.0)
        return self / length

    def angle(self, other):
        denom = abs(self) * abs(other)
        if denom < 1e-12:
            return 0.0
        return math.acos(max(-1.0, min(1.0, self.dot(other) / denom)))

    def rotate(self, axis, angle):
        axis = axis.normalized()
        u = axis * self.dot(axis)
        w = self - u
        v = axis.cross(w)
        return u + w * math.cos(angle) + v * math.sin(angle)

    def length(self):
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)

    def sqr_length(self):
        return self.x * self.x + self.y * self.y + self.z * self.z

    def is_zero(self):
        return self.x == 0 and self.y == 0 and self.z == 0


UP = vec3(0.0, 0.0, 1.0)
RIGHT = vec3(1.0, 0.0, 0.0)
FORWARD = vec3(0.0, 1.0, 0.0)

GOLDEN_ANGLE_DEGREES = 137.507764
HEIGHT_RANGE_EPSILON = 0.0001


def clamp01(value):
    return max(0.0, min(1.0, value))


def lerp(a, b, t):
    return a + (b - a) * t


def inverse_lerp(a, b, value):
    if a == b:
        return 0.0
    return clamp01((value - a) / (b - a))


def lerp_vec(a: vec3, b: vec3, t: float) -> vec3:
    return a + (b - a) * t


def get_perpendicular(direction: vec3) -> vec3:
    """
    Unit vector perpendicular to 'direction', built against world up and
    falling back to world right when the two are parallel.
    """
    perpendicular = direction.cross(UP).normalized()
    if perpendicular.is_zero():
        perpendicular = direction.cross(RIGHT).normalized()
    return perpendicular


def slerp(a: vec3, b: vec3, t: float) -> vec3:
    """
    Spherical interpolation between two directions. Magnitudes are
    interpolated linearly, directions along the great arc.
    """
    len_a = a.length()
    len_b = b.length()
    if len_a < 1e-6 or len_b < 1e-6:
        return lerp_vec(a, b, t)

    ua = a / len_a
    ub = b / len_b
    cos_theta = max(-1.0, min(1.0, ua.dot(ub)))
    theta = math.acos(cos_theta)
    magnitude = lerp(len_a, len_b, t)

    if theta < 1e-5:
        return lerp_vec(ua, ub, t).normalized() * magnitude

    if math.pi - theta < 1e-5:
        # Opposite directions: rotate through any perpendicular.
        axis = get_perpendicular(ua)
        return ua.rotate(axis, theta * t) * magnitude

    sin_theta = math.sin(theta)
    wa = math.sin((1.0 - t) * theta) / sin_theta
    wb = math.sin(t * theta) / sin_theta
    return (ua * wa + ub * wb) * magnitude


def rotate_around_axis(vector: vec3, axis: vec3, angle_degrees: float) -> vec3:
    return vector.rotate(axis, math.radians(angle_degrees))


def rotate_euler(vector: vec3, angles_degrees) -> vec3:
    """Rotate by Euler angles (x, y, z) applied in z, x, y order."""
    ax, ay, az = angles_degrees
    v = vector.rotate(UP, math.radians(az))
    v = v.rotate(RIGHT, math.radians(ax))
    return v.rotate(FORWARD, math.radians(ay))


def perlin01(x, y):
    """2D Perlin noise remapped from [-1, 1] to roughly [0, 1]."""
    return pnoise2(x, y) * 0.5 + 0.5


def noise_vector(position: vec3, scale: float, seed_offset: int) -> vec3:
    """
    Coherent 3D noise direction in roughly [-1, 1]^3. Each component reads a
    different axis pair so the field has no preferred axis.
    """
    x = perlin01(position.y * scale + seed_offset, position.z * scale + seed_offset * 2) * 2.0 - 1.0
    y = perlin01(position.z * scale + seed_offset * 3, position.x * scale + seed_offset * 4) * 2.0 - 1.0
    z = perlin01(position.x * scale + seed_offset * 5, position.y * scale + seed_offset * 6) * 2.0 - 1.0
    return vec3(x, y, z)


def sample_branch_point(points, t):
    """
    Pick the branch point nearest to parameter 't' in [0, 1] and the local
    direction of the branch there.

    :return: (BranchPoint, direction)
    """
    count = len(points)
    index = min(max(int(round(t * (count - 1))), 0), count - 1)
    next_index = min(count - 1, index + 1)
    prev_index = max(0, index - 1)

    if next_index != index:
        direction = (points[next_index].position - points[index].position).normalized()
    else:
        direction = (points[index].position - points[prev_index].position).normalized()
    return points[index], direction

# This file is part of pyhexapod,  distributed under license LGPL v3

''' Inverse kinematics of a single platform pose

	Each leg is solved independently as a planar four-bar: the horn rotates around the servo axis and the rod must join the horn end to the platform point.
	For a leg vector `L` from the servo axis to the platform point, the servo angle `alpha` satisfies

		e*sin(alpha) + f*cos(alpha) = g

	with
		e = 2*horn*L.z
		f = 2*horn*(cos(beta)*L.x + sin(beta)*L.y)
		g = |L|**2 - (rod**2 - horn**2)

	An unreachable pose is not an error: the evaluation returns a result whose `reachable` flag is False and that lists the violations found.
'''

from .mathutils import *
from .layout import LEGS, horn_tip
from . import settings

__all__ = [
	'Pose', 'PoseOptions', 'PoseEvaluation', 'Violation', 'LegGeometry', 'evaluate_pose',
	'DEGENERATE_FOURBAR', 'INVALID_GEOMETRY', 'SERVO_LIMIT', 'ROD_LENGTH', 'BALL_JOINT',
	]

# violation kinds
DEGENERATE_FOURBAR = 'degenerate_fourbar'
INVALID_GEOMETRY = 'invalid_geometry'
SERVO_LIMIT = 'servo_limit'
ROD_LENGTH = 'rod_length'
BALL_JOINT = 'ball_joint'

# tolerance on the four-bar closure ratio and on its denominator
CLOSURE_EPSILON = 1e-9
# tolerance on the servo limits (rad)
SERVO_EPSILON = 1e-6


class Pose(object):
	''' Position and orientation of the platform, relative to its home position

		Attributes:
			position (vec3):     translation
			orientation (vec3):  euler angles `(rx, ry, rz)` in radians
	'''
	__slots__ = ('position', 'orientation')
	def __init__(self, x=0., y=0., z=0., rx=0., ry=0., rz=0.):
		self.position = vec3(x, y, z)
		self.orientation = vec3(rx, ry, rz)

	def matrix(self) -> mat3:
		''' Rotation matrix of the orientation '''
		return eulermatrix(*self.orientation)

	def __iter__(self):
		yield from self.position
		yield from self.orientation

	def __eq__(self, other):
		return isinstance(other, Pose) and self.position == other.position and self.orientation == other.orientation

	def summary(self) -> dict:
		''' Plain data description, angles in degrees '''
		x, y, z = self.position
		rx, ry, rz = map(degrees, self.orientation)
		return dict(x=x, y=y, z=z, rx=rx, ry=ry, rz=rz)

	def __repr__(self):
		return 'Pose({}, {}, {}, {}, {}, {})'.format(*self)


class Violation(object):
	''' A constraint a pose evaluation failed to satisfy

		Attributes:
			kind:   one of the violation kinds defined in this module
			leg:    index of the offending leg
			value:  the quantity that exceeded its bound (ratio, angle, length gap...)
	'''
	__slots__ = ('kind', 'leg', 'value')
	def __init__(self, kind, leg, value):
		self.kind, self.leg, self.value = kind, leg, value

	def __eq__(self, other):
		return isinstance(other, Violation) and (self.kind, self.leg, self.value) == (other.kind, other.leg, other.value)

	def __repr__(self):
		return 'Violation({!r}, {}, {})'.format(self.kind, self.leg, self.value)


class LegGeometry(object):
	''' Auxiliary geometry of a solved leg '''
	__slots__ = ('horn_tip', 'rod', 'point')
	def __init__(self, horn_tip, rod, point):
		self.horn_tip, self.rod, self.point = horn_tip, rod, point

	def __repr__(self):
		return 'LegGeometry({}, {}, {})'.format(self.horn_tip, self.rod, self.point)


class PoseOptions(object):
	''' Options of `evaluate_pose`, unspecified fields default to `settings.pose`

		Attributes:
			ball_joint_limit (float):  maximum deflection of the ball joints (deg)
			ball_joint_clamp (bool):   when True a ball joint above its limit is recorded but the pose stays reachable, else the pose is rejected
			servo_range (tuple):       `(min, max)` servo angles (rad), overriding the layout servo range. None to use the layout's one
			rod_tolerance (float):     accepted gap between the achieved and nominal rod length
			details (bool):            record a `LegGeometry` per solved leg
	'''
	__slots__ = ('ball_joint_limit', 'ball_joint_clamp', 'servo_range', 'rod_tolerance', 'details')
	def __init__(self, ball_joint_limit=None, ball_joint_clamp=None, servo_range=None, rod_tolerance=None, details=None):
		defaults = settings.pose
		self.ball_joint_limit = float(ball_joint_limit if ball_joint_limit is not None else defaults['ball_joint_limit'])
		self.ball_joint_clamp = bool(ball_joint_clamp if ball_joint_clamp is not None else defaults['ball_joint_clamp'])
		self.servo_range = tuple(servo_range) if servo_range is not None else None
		self.rod_tolerance = float(rod_tolerance if rod_tolerance is not None else defaults['rod_tolerance'])
		self.details = bool(details if details is not None else defaults['details'])

	def __repr__(self):
		return '{}({})'.format(self.__class__.__name__,
			', '.join('{}={}'.format(key, getattr(self, key))  for key in self.__slots__))


class PoseEvaluation(object):
	''' Result of `evaluate_pose`

		The per-leg lists stop at the first leg that failed, so they have less than 6 entries when the pose is unreachable.

		Attributes:
			reachable (bool):   True when every leg could be solved
			violations (list):  `Violation` in the order they were found
			angles (list):      servo angles (rad)
			lengths (list):     achieved rod lengths
			directions (list):  unit vectors from the servo axes to the platform points
			deflections (list): ball joint deflections (deg)
			jacobian (list):    rows `(direction, cross(point, direction))` of 6 floats
			legs (list):        `LegGeometry` per leg when requested, else None
	'''
	__slots__ = ('reachable', 'violations', 'angles', 'lengths', 'directions', 'deflections', 'jacobian', 'legs')
	def __init__(self, details=False):
		self.reachable = True
		self.violations = []
		self.angles = []
		self.lengths = []
		self.directions = []
		self.deflections = []
		self.jacobian = []
		self.legs = [] if details else None

	def matrix(self) -> 'ndarray':
		''' The jacobian as a numpy array of shape `(n, 6)` '''
		return np.array(self.jacobian, dtype=np.float64).reshape(len(self.jacobian), 6)

	def fail(self, kind, leg, value) -> 'PoseEvaluation':
		self.reachable = False
		self.violations.append(Violation(kind, leg, value))
		return self

	def __repr__(self):
		return '{}(reachable={}, violations={}, angles={})'.format(
				self.__class__.__name__, self.reachable, self.violations, self.angles)


def evaluate_pose(layout, pose, options=None) -> PoseEvaluation:
	''' Solve the servo angles of a layout for the given pose, and check the mechanical constraints

		Legs are solved in order and the evaluation stops at the first leg violating a hard constraint.

		Parameters:
			layout:   a `Layout`
			pose:     a `Pose`
			options:  a `PoseOptions`, defaults are used when None
	'''
	if options is None:	options = PoseOptions()
	low, high = options.servo_range or layout.servo_range
	result = PoseEvaluation(options.details)

	rotation = pose.matrix()
	translation = pose.position + vec3(0, 0, layout.home)

	for i in range(LEGS):
		point = rotation * layout.platform[i] + translation
		base = layout.base[i]
		beta = layout.beta[i]

		leg = point - base
		e = 2*layout.horn * leg.z
		f = 2*layout.horn * (cos(beta)*leg.x + sin(beta)*leg.y)
		g = length2(leg) - (layout.rod**2 - layout.horn**2)

		denom = sqrt(e*e + f*f)
		if denom < CLOSURE_EPSILON:
			return result.fail(DEGENERATE_FOURBAR, i, denom)
		ratio = g / denom
		if not -1-CLOSURE_EPSILON <= ratio <= 1+CLOSURE_EPSILON:
			return result.fail(INVALID_GEOMETRY, i, ratio)
		alpha = asin(clamp(ratio, -1, 1)) - atan2(f, e)
		if not low - SERVO_EPSILON <= alpha <= high + SERVO_EPSILON:
			return result.fail(SERVO_LIMIT, i, alpha)

		tip = horn_tip(layout, i, alpha)
		rod = point - tip
		rodlength = length(rod)
		if abs(rodlength - layout.rod) > options.rod_tolerance:
			return result.fail(ROD_LENGTH, i, rodlength)

		# angle between the rod and the horn, seen from the horn end
		deflection = degrees(anglebt(base - tip, rod))
		if deflection > options.ball_joint_limit:
			result.violations.append(Violation(BALL_JOINT, i, deflection))
			if not options.ball_joint_clamp:
				result.reachable = False
				return result

		direction = normalize(leg)
		moment = cross(point, direction)
		result.angles.append(alpha)
		result.lengths.append(rodlength)
		result.directions.append(direction)
		result.deflections.append(deflection)
		result.jacobian.append((*direction, *moment))
		if result.legs is not None:
			result.legs.append(LegGeometry(tip, rod, point))

	return result

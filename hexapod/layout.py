# This file is part of pyhexapod,  distributed under license LGPL v3

''' Geometry of a six legs rotary-servo Stewart platform

	A `Layout` gathers everything that defines a mechanism design:

	- `base`:  the 6 servo axis points, on the base
	- `platform`:  the 6 rod-end points, in the platform local frame
	- `beta`:  the 6 orientations of the servo horns around Z (rad)
	- `horn` and `rod`:  the lengths shared by the 6 legs
	- `servo_range`:  the angular travel of the servos (rad)
	- `home`:  the height of the platform frame when every servo is at its neutral angle

	Layouts are validated once at construction and never modified afterward, `Layout.replace` and `finalize` create new ones.
'''

from .mathutils import *
from . import settings

__all__ = [
	'Layout', 'LayoutError', 'DesignSpace',
	'horn_tip', 'closure_heights', 'horizontal_reach', 'finalize', 'hexagonal', 'random_layout',
	'LEGS',
	]

LEGS = 6


class LayoutError(ValueError):
	''' raised when a layout definition is malformed '''
	pass


def _points(values, name) -> tuple:
	values = list(values)
	if len(values) != LEGS:
		raise LayoutError('Layout {} must have exactly {} entries'.format(name, LEGS))
	points = []
	for v in values:
		try:	p = vec3(*v)
		except TypeError as err:
			raise LayoutError('Layout {} must contain 3D points'.format(name)) from err
		if not isfinite(p):
			raise LayoutError('Layout {} must contain finite coordinates'.format(name))
		points.append(p)
	return tuple(points)

def _length(value, name) -> float:
	if isinstance(value, bool) or not isinstance(value, numbers.Real) or not value > 0 or not math.isfinite(value):
		raise LayoutError('Layout {} length must be a positive number'.format(name))
	return float(value)


class Layout(object):
	''' A candidate mechanism design

		Attributes:
			base (tuple of vec3):      servo axis points on the base
			platform (tuple of vec3):  rod-end points in the platform frame
			beta (tuple of float):     horn orientations around Z (rad)
			horn (float):              horn length
			rod (float):               rod length
			servo_range (tuple):       `(min, max)` servo angles (rad)
			home (float):              neutral platform height, computed from the closure heights when not given
	'''
	__slots__ = ('base', 'platform', 'beta', 'horn', 'rod', 'servo_range', 'home')
	def __init__(self, base, platform, beta, horn, rod, servo_range=None, home=None):
		self.base = _points(base, 'base')
		self.platform = _points(platform, 'platform')
		beta = tuple(float(b) for b in beta)
		if len(beta) != LEGS:
			raise LayoutError('Layout beta must have exactly {} entries'.format(LEGS))
		if not all(math.isfinite(b) for b in beta):
			raise LayoutError('Layout beta must contain finite angles')
		self.beta = beta
		self.horn = _length(horn, 'horn')
		self.rod = _length(rod, 'rod')

		if servo_range is None:
			servo_range = [radians(a) for a in settings.pose['servo_range']]
		low, high = map(float, servo_range)
		if not low <= high:
			raise LayoutError('Layout servo range must be an interval (min <= max)')
		self.servo_range = (low, high)

		if home is None:
			home = average(closure_heights(self))
		if not math.isfinite(home):
			raise LayoutError('Layout home height must be finite')
		self.home = float(home)

	def replace(self, **changes) -> 'Layout':
		''' Return a new layout with the given attributes changed, the home height is recomputed unless explicitely given '''
		fields = dict(
			base=self.base,
			platform=self.platform,
			beta=self.beta,
			horn=self.horn,
			rod=self.rod,
			servo_range=self.servo_range,
			)
		fields.update(changes)
		return Layout(**fields)

	def summary(self) -> dict:
		''' Plain data description, lengths in mm and angles in degrees '''
		return {
			'base': [list(p) for p in self.base],
			'platform': [list(p) for p in self.platform],
			'beta': [degrees(b) for b in self.beta],
			'horn': self.horn,
			'rod': self.rod,
			'servo_range': [degrees(a) for a in self.servo_range],
			'home': self.home,
			}

	def __repr__(self):
		return '{}(\n\tbase={}, \n\tplatform={}, \n\tbeta={}, \n\thorn={}, rod={}, servo_range={}, home={})'.format(
				self.__class__.__name__,
				[tuple(p) for p in self.base],
				[tuple(p) for p in self.platform],
				self.beta,
				self.horn, self.rod, self.servo_range, self.home)


def horn_tip(layout, leg, alpha) -> vec3:
	''' Position of the horn end of the given leg, for the servo angle `alpha` '''
	beta = layout.beta[leg]
	return layout.base[leg] + layout.horn * vec3(
				cos(alpha)*cos(beta),
				cos(alpha)*sin(beta),
				sin(alpha))

def horizontal_reach(layout) -> list:
	''' Horizontal distance to cover by each rod when the servos are at their neutral angle and the platform at rest '''
	reach = []
	for i in range(LEGS):
		tip = horn_tip(layout, i, 0)
		p = layout.platform[i]
		reach.append(sqrt((p.x-tip.x)**2 + (p.y-tip.y)**2))
	return reach

def closure_heights(layout) -> list:
	''' Height of the platform frame closing each leg when its servo is at the neutral angle '''
	heights = []
	for i, reach in enumerate(horizontal_reach(layout)):
		tip = horn_tip(layout, i, 0)
		heights.append(tip.z + sqrt(max(0, layout.rod**2 - reach**2)) - layout.platform[i].z)
	return heights


class DesignSpace(object):
	''' Bounds of the randomly generated layouts

		Unspecified attributes are taken from `settings.design`. Lengths are in mm and angles in degrees, except `servo_range` in radians.

		Attributes:
			base_radius:      `(min, max)` radius of the base anchors
			platform_radius:  `(min, max)` radius of the platform anchors
			platform_height:  `(min, max)` targeted neutral height of the platform
			horn:             `(min, max)` horn length
			rod:              `(min, max)` rod length
			base_spacing:     angle between the anchors of a base pair
			platform_spacing: angle between the anchors of a platform pair
			anchor_jitter:    standard deviation applied to anchor coordinates
			beta_jitter:      standard deviation applied to the horn orientations
			reach_margin:     minimum ratio of the rod length over the horizontal reach
			servo_range:      `(min, max)` servo angles of generated layouts, None for the default
	'''
	__slots__ = ('base_radius', 'platform_radius', 'platform_height', 'horn', 'rod',
				'base_spacing', 'platform_spacing', 'anchor_jitter', 'beta_jitter', 'reach_margin',
				'servo_range')
	def __init__(self, servo_range=None, **kwargs):
		unknown = set(kwargs) - set(self.__slots__)
		if unknown:
			raise TypeError('unknown design space parameters: {}'.format(', '.join(sorted(unknown))))
		for key in self.__slots__:
			if key == 'servo_range':	continue
			value = kwargs.get(key)
			if value is None:	value = settings.design[key]
			if isinstance(value, (list, tuple)):
				value = tuple(map(float, value))
				if len(value) != 2 or not value[0] <= value[1]:
					raise LayoutError('design space {} must be an interval (min <= max)'.format(key))
			setattr(self, key, value)
		if self.horn[0] <= 0 or self.rod[0] <= 0:
			raise LayoutError('design space horn and rod lengths must be positive')
		self.servo_range = tuple(servo_range) if servo_range is not None else None

	def __repr__(self):
		return '{}({})'.format(self.__class__.__name__,
			', '.join('{}={}'.format(key, getattr(self, key))  for key in self.__slots__))


def finalize(layout, space=None) -> Layout:
	''' Make a layout consistent with the design space bounds

		- horn and rod lengths are clamped to the space bounds
		- the rod length is raised when needed so that every leg can close its horizontal reach
		- the home height is recomputed as the average of the closure heights of all legs

		Finalizing a finalized layout returns the same geometry.
	'''
	if space is None:	space = DesignSpace()
	horn = clamp(layout.horn, *space.horn)
	rod = clamp(layout.rod, *space.rod)
	# reach depends on the horn only, so compute it with the clamped horn
	reach = max(horizontal_reach(layout.replace(horn=horn, rod=rod)))
	rod = max(rod, reach * space.reach_margin)
	return layout.replace(horn=horn, rod=rod)


def _pairs(spacing):
	''' Angles of 3 pairs of anchors regularly placed around Z '''
	angles = []
	for k in range(3):
		center = k * 2*pi/3
		angles.append(center - spacing/2)
		angles.append(center + spacing/2)
	return angles

def hexagonal(base_radius=100., platform_radius=70., horn=40., rod=200.,
				base_spacing=None, platform_spacing=None, servo_range=None) -> Layout:
	''' Regular layout with the anchors placed by pairs on two hexagons

		The horns of a base pair point away from each other, tangentially to the base circle.
		Spacings are in degrees and default to `settings.design`.
	'''
	if base_spacing is None:		base_spacing = settings.design['base_spacing']
	if platform_spacing is None:	platform_spacing = settings.design['platform_spacing']
	base_angles = _pairs(radians(base_spacing))
	platform_angles = _pairs(radians(platform_spacing))
	return Layout(
		base = [vec3(base_radius*cos(a), base_radius*sin(a), 0)   for a in base_angles],
		platform = [vec3(platform_radius*cos(a), platform_radius*sin(a), 0)   for a in platform_angles],
		beta = [a + (pi/2 if i%2 else -pi/2)   for i,a in enumerate(base_angles)],
		horn = horn,
		rod = rod,
		servo_range = servo_range,
		)

def random_layout(space, rng) -> Layout:
	''' Random finalized layout from the given design space

		The anchors start from a hexagonal placement with random radii, then are perturbed by a gaussian noise.
		`rng` is a `numpy.random.Generator`
	'''
	base_radius = rng.uniform(*space.base_radius)
	platform_radius = rng.uniform(*space.platform_radius)
	height = rng.uniform(*space.platform_height)
	horn = rng.uniform(*space.horn)
	regular = hexagonal(base_radius, platform_radius, horn, space.rod[1],
					base_spacing=space.base_spacing,
					platform_spacing=space.platform_spacing,
					servo_range=space.servo_range)

	def jitter(p):
		dx, dy = rng.normal(0, space.anchor_jitter, 2)
		return vec3(p.x+dx, p.y+dy, p.z)
	base = [jitter(p)  for p in regular.base]
	platform = [jitter(p)  for p in regular.platform]
	beta = [b + radians(rng.normal(0, space.beta_jitter))  for b in regular.beta]

	# pick the rod that brings the platform at the targeted height
	draft = regular.replace(base=base, platform=platform, beta=beta)
	reach = average(horizontal_reach(draft))
	return finalize(draft.replace(rod=sqrt(height**2 + reach**2)), space)

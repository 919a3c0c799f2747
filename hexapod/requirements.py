# This file is part of pyhexapod,  distributed under license LGPL v3

''' Requirements of a platform design: payload, motion and mechanical bounds

	A requirements record can be given either flat:

		{'mass_kg': 2, 'cycle_mm': 20, 'frequency_hz': 1, 'cycle_axis': 'z',
		 'x_range_mm': [-20, 20], ..., 'rz_range_deg': [-10, 10],
		 'ball_joint_max_deg': 45, 'servo_travel_bounds_deg': [-90, 90]}

	or nested in `payload`, `workspace`, `rotations` and `constraints` sections. Ranges are lists `[min, max]` or dicts `{min, max}` or `{from, to}`.
	Since JSON is a subset of YAML, `Requirements.load` reads both formats.
'''

import yaml
from .mathutils import *
from .layout import DesignSpace
from .workspace import RangeSpec, AXES, ROTATIONS
from . import settings

__all__ = ['Requirements', 'RequirementsError']


class RequirementsError(ValueError):
	''' raised when a requirements record is incomplete or malformed '''
	pass


RANGE_FIELDS = {
	'x': 'x_range_mm',
	'y': 'y_range_mm',
	'z': 'z_range_mm',
	'rx': 'rx_range_deg',
	'ry': 'ry_range_deg',
	'rz': 'rz_range_deg',
	}

def _interval(value, name) -> tuple:
	if isinstance(value, dict):
		if 'min' in value and 'max' in value:		value = (value['min'], value['max'])
		elif 'from' in value and 'to' in value:		value = (value['from'], value['to'])
	if not isinstance(value, (list, tuple)) or len(value) != 2:
		raise RequirementsError('{} must define min/max values'.format(name))
	low, high = value
	for v in value:
		if isinstance(v, bool) or not isinstance(v, numbers.Real) or not math.isfinite(v):
			raise RequirementsError('{} must contain numeric min/max values with max >= min'.format(name))
	if high < low:
		raise RequirementsError('{} must contain numeric min/max values with max >= min'.format(name))
	return float(low), float(high)

def _number(value, name, positive=False) -> float:
	if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
		raise RequirementsError('{} must be a finite number'.format(name))
	if positive and value <= 0:
		raise RequirementsError('{} must be positive'.format(name))
	if value < 0:
		raise RequirementsError('{} must not be negative'.format(name))
	return float(value)


class Requirements(object):
	''' Normalized requirements record, read-only configuration of the optimizer

		Attributes:
			mass (float):              payload mass (kg)
			stroke (float):            amplitude of the cycling motion (mm)
			frequency (float):         frequency of the cycling motion (Hz)
			cycle_axis (str):          axis of the cycling motion, one of `'x', 'y', 'z'`
			ranges (dict):             axis name to `(min, max)`, translations in mm and rotations in degrees
			ball_joint_limit (float):  maximum ball joint deflection (deg)
			servo_travel (tuple):      `(min, max)` servo angles (deg)
			rod_bounds (tuple):        `(min, max)` rod length (mm)
			horn_bounds (tuple):       `(min, max)` horn length (mm)
	'''
	__slots__ = ('mass', 'stroke', 'frequency', 'cycle_axis', 'ranges',
				'ball_joint_limit', 'servo_travel', 'rod_bounds', 'horn_bounds')
	def __init__(self, mass=0., stroke=0., frequency=0., cycle_axis='z', ranges=None,
				ball_joint_limit=None, servo_travel=None, rod_bounds=None, horn_bounds=None):
		defaults = settings.requirements
		self.mass = _number(mass, 'mass_kg')
		self.stroke = _number(stroke, 'cycle_mm')
		self.frequency = _number(frequency, 'frequency_hz')
		if not isinstance(cycle_axis, str) or cycle_axis.lower() not in ('x', 'y', 'z'):
			raise RequirementsError('cycle_axis must be one of "x", "y", or "z"')
		self.cycle_axis = cycle_axis.lower()

		ranges = ranges or {}
		unknown = set(ranges) - set(AXES)
		if unknown:
			raise RequirementsError('unknown workspace axis: {}'.format(', '.join(sorted(unknown))))
		self.ranges = {axis: _interval(ranges.get(axis, (0, 0)), RANGE_FIELDS[axis])   for axis in AXES}

		self.ball_joint_limit = _number(ball_joint_limit if ball_joint_limit is not None else defaults['ball_joint_limit'], 'ball_joint_max_deg', positive=True)
		self.servo_travel = _interval(servo_travel if servo_travel is not None else defaults['servo_travel'], 'servo_travel_bounds_deg')
		self.rod_bounds = _interval(rod_bounds if rod_bounds is not None else defaults['rod_bounds'], 'rod_length_bounds_mm')
		self.horn_bounds = _interval(horn_bounds if horn_bounds is not None else defaults['horn_bounds'], 'horn_length_bounds_mm')
		if self.rod_bounds[0] <= 0 or self.horn_bounds[0] <= 0:
			raise RequirementsError('rod and horn length bounds must be positive')

	@classmethod
	def from_dict(cls, data) -> 'Requirements':
		''' Normalize a flat or nested requirements mapping '''
		if not isinstance(data, dict):
			raise RequirementsError('Requirements must be an object')
		if any(section in data  for section in ('payload', 'workspace', 'rotations', 'constraints')):
			payload = data.get('payload') or {}
			workspace = data.get('workspace') or {}
			rotations = data.get('rotations') or {}
			constraints = data.get('constraints') or {}
			for section, content, fields in (
					('payload', payload, ('mass_kg', 'cycle_mm', 'frequency_hz', 'cycle_axis')),
					('workspace', workspace, ('x_range_mm', 'y_range_mm', 'z_range_mm')),
					('rotations', rotations, ('rx_range_deg', 'ry_range_deg', 'rz_range_deg')),
					):
				for field in fields:
					if field not in content:
						raise RequirementsError('Requirements missing {} field: {}'.format(section, field))
			flat = dict(payload)
			flat.update(workspace)
			flat.update(rotations)
			flat.update(constraints)
		else:
			flat = data
			for field in ('mass_kg', 'cycle_mm', 'frequency_hz', 'cycle_axis', *RANGE_FIELDS.values()):
				if field not in flat:
					raise RequirementsError('Requirements missing field: {}'.format(field))

		servo_travel = flat.get('servo_travel_bounds_deg')
		maxangle = flat.get('servo_max_deg')
		if servo_travel is None and isinstance(maxangle, numbers.Real) and math.isfinite(maxangle):
			limit = abs(float(maxangle))
			servo_travel = (-limit, limit)

		return cls(
			mass = flat['mass_kg'],
			stroke = flat['cycle_mm'],
			frequency = flat['frequency_hz'],
			cycle_axis = flat['cycle_axis'],
			ranges = {axis: flat[field]   for axis, field in RANGE_FIELDS.items()},
			ball_joint_limit = flat.get('ball_joint_max_deg'),
			servo_travel = servo_travel,
			rod_bounds = flat.get('rod_length_bounds_mm'),
			horn_bounds = flat.get('horn_length_bounds_mm'),
			)

	@classmethod
	def load(cls, file) -> 'Requirements':
		''' Read a requirements record from a YAML or JSON file name or stream '''
		try:
			if isinstance(file, str):
				with open(file, 'r') as stream:
					data = yaml.safe_load(stream)
			else:
				data = yaml.safe_load(file)
		except yaml.YAMLError as err:
			raise RequirementsError('Requirements file is invalid: {}'.format(err)) from err
		return cls.from_dict(data)

	def workspace_ranges(self) -> dict:
		''' Ranges to sweep, with a step of a tenth of each span '''
		defaults = settings.requirements
		ranges = {}
		for axis, (low, high) in self.ranges.items():
			fallback = defaults['rotation_step'] if axis in ROTATIONS else defaults['translation_step']
			span = abs(high - low)
			ranges[axis] = RangeSpec(low, high, span/10 if span else fallback)
		return ranges

	def design_space(self, **kwargs) -> DesignSpace:
		''' Layout design space satisfying the mechanical bounds, other parameters are taken from `kwargs` or `settings.design` '''
		return DesignSpace(
			horn = self.horn_bounds,
			rod = self.rod_bounds,
			servo_range = tuple(radians(a)  for a in self.servo_travel),
			**kwargs)

	def summary(self) -> dict:
		''' Flat plain data record '''
		record = {
			'mass_kg': self.mass,
			'cycle_mm': self.stroke,
			'frequency_hz': self.frequency,
			'cycle_axis': self.cycle_axis,
			'ball_joint_max_deg': self.ball_joint_limit,
			'servo_travel_bounds_deg': list(self.servo_travel),
			'rod_length_bounds_mm': list(self.rod_bounds),
			'horn_length_bounds_mm': list(self.horn_bounds),
			}
		for axis, field in RANGE_FIELDS.items():
			record[field] = list(self.ranges[axis])
		return record

	def __repr__(self):
		return '{}({})'.format(self.__class__.__name__,
			', '.join('{}={!r}'.format(key, getattr(self, key))  for key in self.__slots__))

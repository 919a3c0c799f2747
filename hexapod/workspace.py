# This file is part of pyhexapod,  distributed under license LGPL v3

''' Workspace sweep of a layout

	The 6 dimensional pose space described by a range per axis is either swept entirely, or sampled by a stratified random subset of poses when it is too big.
	Each pose is solved by `pose.evaluate_pose` and the results are aggregated into coverage and quality statistics, see `WorkspaceResult`.
'''

import warnings
from .mathutils import *
from .layout import LEGS
from .pose import Pose, PoseOptions, evaluate_pose
from .accel import extremal_singular_values
from . import settings

__all__ = [
	'RangeSpec', 'WorkspaceOptions', 'WorkspaceResult', 'WorkspaceError', 'Reservoir',
	'compute_workspace', 'axis_values', 'stratified_indices',
	'AXES', 'ROTATIONS',
	]

AXES = ('x', 'y', 'z', 'rx', 'ry', 'rz')
ROTATIONS = ('rx', 'ry', 'rz')


class WorkspaceError(ValueError):
	''' raised when a range specification is malformed '''
	pass


class RangeSpec(object):
	''' Inclusive range of values along an axis

		Translations are in mm and rotations in degrees. When `step` is None or not positive, `mathutils.build_range` picks one.
	'''
	__slots__ = ('min', 'max', 'step')
	def __init__(self, min=0., max=0., step=None):
		for name, value in (('min', min), ('max', max)):
			if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
				raise WorkspaceError('range {} must be a finite number, not {!r}'.format(name, value))
		if max < min:
			raise WorkspaceError('range max must be greater than or equal to min, got [{}, {}]'.format(min, max))
		if step is not None and (isinstance(step, bool) or not isinstance(step, numbers.Real)):
			raise WorkspaceError('range step must be a number, not {!r}'.format(step))
		self.min, self.max, self.step = float(min), float(max), step

	@classmethod
	def cast(cls, spec) -> 'RangeSpec':
		''' Create a RangeSpec from a RangeSpec, a dict `{min, max, step}` or a tuple `(min, max[, step])` '''
		if isinstance(spec, cls):	return spec
		if isinstance(spec, dict):	return cls(spec.get('min', 0.), spec.get('max', 0.), spec.get('step'))
		if isinstance(spec, (tuple, list)) and len(spec) in (2, 3):	return cls(*spec)
		raise WorkspaceError('a range must be a RangeSpec, dict or tuple, not {!r}'.format(spec))

	def __repr__(self):
		return 'RangeSpec({}, {}, {})'.format(self.min, self.max, self.step)


def axis_values(ranges) -> list:
	''' The sequences of values of the 6 axis, rotations converted to radians

		Missing axis are fixed at 0.
	'''
	ranges = ranges or {}
	unknown = set(ranges) - set(AXES)
	if unknown:
		raise WorkspaceError('unknown axis names: {}'.format(', '.join(sorted(unknown))))
	values = []
	for axis in AXES:
		spec = ranges.get(axis)
		sequence = build_range(RangeSpec.cast(spec) if spec is not None else None, 0.)
		if axis in ROTATIONS:
			sequence = [radians(v)  for v in sequence]
		values.append(sequence)
	return values


class WorkspaceOptions(object):
	''' Options of `compute_workspace`, unspecified fields default to `settings.workspace` and `settings.pose`

		Attributes:
			pose (PoseOptions):        options of each pose evaluation, details are never recorded
			sample_limit (int):        capacity of the reachable and unreachable pose reservoirs
			violation_limit (int):     capacity of the violating pose reservoir
			evaluation_cap (int):      maximum number of evaluated poses when the range exceeds the reservoir capacities
			force_full_sweep (bool):   evaluate every pose whatever the range size
			batch (int):               poses evaluated between two calls to `progress`
			progress (callable):       `progress(fraction)` called after each batch, returning False stops the sweep
			floor (float):             singular values below are considered null
			accelerate (bool):         use the compiled singular values estimator when available
			rng:                       `numpy.random.Generator` used for sampling, or a seed
	'''
	__slots__ = ('pose', 'sample_limit', 'violation_limit', 'evaluation_cap', 'force_full_sweep',
				'batch', 'progress', 'floor', 'accelerate', 'rng')
	def __init__(self, pose=None, sample_limit=None, violation_limit=None, evaluation_cap=None, force_full_sweep=False,
				batch=None, progress=None, floor=None, accelerate=None, rng=None, **pose_options):
		defaults = settings.workspace
		if pose is None:
			pose = PoseOptions(**pose_options)
		elif pose_options:
			raise TypeError('pose options must be given either as a PoseOptions or as keywords')
		self.pose = PoseOptions(pose.ball_joint_limit, pose.ball_joint_clamp, pose.servo_range, pose.rod_tolerance, details=False)
		self.sample_limit = int(sample_limit if sample_limit is not None else defaults['sample_limit'])
		self.violation_limit = int(violation_limit if violation_limit is not None else defaults['violation_limit'])
		self.evaluation_cap = int(evaluation_cap if evaluation_cap is not None else defaults['evaluation_cap'])
		self.force_full_sweep = bool(force_full_sweep)
		self.batch = max(1, int(batch if batch is not None else defaults['batch']))
		self.progress = progress
		self.floor = float(floor if floor is not None else defaults['floor'])
		self.accelerate = bool(accelerate if accelerate is not None else defaults['accelerate'])
		if not isinstance(rng, np.random.Generator):
			rng = np.random.default_rng(rng)
		self.rng = rng


class Reservoir(object):
	''' Bounded uniform sample of a stream of items

		Once full, each new item replaces a random kept one with the probability `capacity/seen`, so every item of the stream has the same chance to be kept.
	'''
	__slots__ = ('capacity', 'items', 'seen')
	def __init__(self, capacity):
		self.capacity = capacity
		self.items = []
		self.seen = 0

	def add(self, item, rng):
		self.seen += 1
		if len(self.items) < self.capacity:
			self.items.append(item)
		else:
			j = int(rng.integers(0, self.seen))
			if j < self.capacity:
				self.items[j] = item

	def __len__(self):
		return len(self.items)

	def __iter__(self):
		return iter(self.items)


def stratified_indices(total, count, rng) -> list:
	''' Pick `count` distinct indices in `range(total)`, nearly uniformly spread

		Each index is drawn at a random place of its own stride, collisions are resolved by probing the next free index.
	'''
	count = min(total, count)
	if count <= 0:	return []
	stride = total / count
	chosen = set()
	indices = []
	for i in range(count):
		index = min(total-1, int(i*stride + rng.random()*stride))
		while index in chosen:
			index = (index+1) % total
		chosen.add(index)
		indices.append(index)
	return indices


class WorkspaceResult(object):
	''' Statistics of a workspace sweep

		Attributes:
			coverage (float):          percentage of evaluated poses that are reachable
			total (int):               number of poses in the ranges
			evaluated (int):           number of poses actually evaluated
			sampled (bool):            True when the poses were drawn by stratified sampling, False for a full sweep
			complete (bool):           False when the sweep was stopped before its end
			reachable_count (int):
			unreachable_count (int):
			isotropy (float):          average of  `sigma_min/sigma_max`  of the jacobian over reachable poses
			stiffness (float):         average of  `sigma_min`  over reachable poses
			load_balance (float):      average of  `1/(1+stddev)`  of the vertical components of the leg directions
			servo_usage (list):        per leg, the span of the servo angles used (rad)
			deflection_max (list):     per leg, the biggest ball joint deflection (deg)
			deflection_peak (float):   biggest ball joint deflection over all legs (deg)
			deflection_avg (float):    average ball joint deflection (deg)
			violations (dict):         number of violations by kind
			violation_count (int):     total number of violations
			violation_rate (float):    violations per evaluated pose, clamped to 1
			reachable (list):          sample of reachable `Pose`
			unreachable (list):        sample of `(Pose, [Violation])` for unreachable poses
			violating (list):          sample of `(Pose, [Violation])` for poses with any violation
	'''
	__slots__ = ('coverage', 'total', 'evaluated', 'sampled', 'complete',
				'reachable_count', 'unreachable_count',
				'isotropy', 'stiffness', 'load_balance', 'servo_usage',
				'deflection_max', 'deflection_peak', 'deflection_avg',
				'violations', 'violation_count', 'violation_rate',
				'reachable', 'unreachable', 'violating')
	def __init__(self, total=0):
		self.coverage = 0.
		self.total = total
		self.evaluated = 0
		self.sampled = False
		self.complete = True
		self.reachable_count = 0
		self.unreachable_count = 0
		self.isotropy = 0.
		self.stiffness = 0.
		self.load_balance = 0.
		self.servo_usage = [0.]*LEGS
		self.deflection_max = [0.]*LEGS
		self.deflection_peak = 0.
		self.deflection_avg = 0.
		self.violations = {}
		self.violation_count = 0
		self.violation_rate = 0.
		self.reachable = []
		self.unreachable = []
		self.violating = []

	def summary(self) -> dict:
		''' Plain data statistics, without the pose samples '''
		return {
			'coverage': self.coverage,
			'total': self.total,
			'evaluated': self.evaluated,
			'sampled': self.sampled,
			'complete': self.complete,
			'reachable': self.reachable_count,
			'unreachable': self.unreachable_count,
			'isotropy': self.isotropy,
			'stiffness': self.stiffness,
			'load_balance': self.load_balance,
			'servo_usage': [degrees(u) for u in self.servo_usage],
			'deflection_max': list(self.deflection_max),
			'deflection_peak': self.deflection_peak,
			'deflection_avg': self.deflection_avg,
			'violations': dict(self.violations),
			'violation_rate': self.violation_rate,
			}

	def __repr__(self):
		return '{}(coverage={:.3g}%, evaluated={}/{}, sampled={})'.format(
				self.__class__.__name__, self.coverage, self.evaluated, self.total, self.sampled)


def _report(progress, fraction):
	try:
		return progress(fraction)
	except Exception as err:
		warnings.warn('workspace progress callback failed: {!r}'.format(err))

def compute_workspace(layout, ranges, options=None) -> WorkspaceResult:
	''' Sweep the poses described by `ranges` and aggregate the evaluation results

		Parameters:
			layout:   the `Layout` to evaluate
			ranges:   dict of axis name (`'x', 'y', 'z', 'rx', 'ry', 'rz'`) to a range: a `RangeSpec`, dict or tuple.
			          Translations are in mm and rotations in degrees, missing axis are fixed at 0
			options:  a `WorkspaceOptions`

		When the number of poses exceeds what the options allow, a stratified random subset is evaluated, and `result.sampled` is set.
	'''
	if options is None:	options = WorkspaceOptions()
	rng = options.rng
	values = axis_values(ranges)
	sizes = [len(v)  for v in values]
	total = 1
	for size in sizes:
		total *= size

	result = WorkspaceResult(total)
	if not total:
		return result

	if options.force_full_sweep or options.sample_limit + options.violation_limit >= total:
		indices = range(total)
	else:
		indices = stratified_indices(total, min(total, options.evaluation_cap), rng)
		result.sampled = True
	count = len(indices)

	reachable = Reservoir(options.sample_limit)
	unreachable = Reservoir(options.sample_limit)
	violating = Reservoir(options.violation_limit)
	isotropy = []
	stiffness = []
	balance = []
	angle_min = [inf]*LEGS
	angle_max = [-inf]*LEGS
	deflection_max = [0.]*LEGS
	deflection_sum = 0.
	deflection_count = 0

	for processed, index in enumerate(indices, 1):
		# decode the linear index, the last axis varying the fastest
		coords = [0.]*len(AXES)
		for axis in reversed(range(len(AXES))):
			index, i = divmod(index, sizes[axis])
			coords[axis] = values[axis][i]
		pose = Pose(*coords)
		evaluation = evaluate_pose(layout, pose, options.pose)

		for violation in evaluation.violations:
			result.violations[violation.kind] = result.violations.get(violation.kind, 0) + 1
			result.violation_count += 1
		if evaluation.violations:
			violating.add((pose, evaluation.violations), rng)

		if evaluation.reachable:
			result.reachable_count += 1
			reachable.add(pose, rng)

			if len(evaluation.jacobian) == LEGS:
				sigma_min, sigma_max = extremal_singular_values(evaluation.matrix(), options.accelerate)
				if sigma_min > options.floor and sigma_max > options.floor:
					isotropy.append(sigma_min / sigma_max)
					stiffness.append(sigma_min)

			balance.append(1 / (1 + stddev(d.z  for d in evaluation.directions)))
			for i, angle in enumerate(evaluation.angles):
				angle_min[i] = min(angle_min[i], angle)
				angle_max[i] = max(angle_max[i], angle)
			for i, deflection in enumerate(evaluation.deflections):
				deflection_max[i] = max(deflection_max[i], deflection)
				deflection_sum += deflection
				deflection_count += 1
		else:
			result.unreachable_count += 1
			unreachable.add((pose, evaluation.violations), rng)

		if options.progress and processed % options.batch == 0 and processed < count:
			if _report(options.progress, processed / count) is False:
				result.complete = False
				break

	result.evaluated = result.reachable_count + result.unreachable_count
	if result.complete and options.progress:
		_report(options.progress, 1.)

	if result.evaluated:
		result.coverage = result.reachable_count / result.evaluated * 100
		result.violation_rate = min(1., result.violation_count / result.evaluated)
	result.isotropy = average(isotropy)
	result.stiffness = average(stiffness)
	result.load_balance = average(balance)
	result.servo_usage = [hi-lo if hi >= lo else 0.   for lo, hi in zip(angle_min, angle_max)]
	result.deflection_max = deflection_max
	result.deflection_peak = max(deflection_max)
	result.deflection_avg = deflection_sum / deflection_count if deflection_count else 0.
	result.reachable = reachable.items
	result.unreachable = unreachable.items
	result.violating = violating.items
	return result

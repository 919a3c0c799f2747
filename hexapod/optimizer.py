# This file is part of pyhexapod,  distributed under license LGPL v3

''' Multi-objective evolutionary search of layouts, in the manner of NSGA-II

	Each layout is evaluated by a workspace sweep and a home pose analysis, giving an objective vector where every objective is maximized (costs are negated):

		coverage, dexterity, stiffness, load_balance, isotropy, limit_margin, -torque, -speed, -fatigue

	A generation breeds as many offspring as the population size by tournament selection, crossover and mutation. Parents and offspring are then ranked by non-dominated sorting and the next population is filled front by front, the last admitted front being truncated by crowding distance.

	Infeasible poses are never errors here, they only lower the fitness. Any exception raised during a generation aborts it, the population of the last completed generation is kept and an `OptimizationError` is raised.
'''

from .mathutils import *
from .layout import Layout, LEGS, finalize, random_layout
from .pose import Pose, evaluate_pose
from .workspace import WorkspaceOptions, compute_workspace
from .requirements import Requirements
from . import settings

__all__ = [
	'Optimizer', 'Evaluation', 'OptimizationError',
	'dominates', 'nondominated_sort', 'crowding_distance', 'assign_ranks', 'environmental_selection',
	'tournament', 'crossover', 'mutate', 'leg_force',
	'OBJECTIVES', 'COSTS',
	]

GRAVITY = 9.81

OBJECTIVES = ('coverage', 'dexterity', 'stiffness', 'load_balance', 'isotropy', 'limit_margin', 'torque', 'speed', 'fatigue')
# objectives to minimize, negated in the objective vectors
COSTS = ('torque', 'speed', 'fatigue')


class OptimizationError(Exception):
	''' raised when an optimization run failed, the cause is chained '''
	pass


class Evaluation(object):
	''' Fitness record of a layout

		Attributes:
			layout (Layout):              the evaluated layout
			workspace (WorkspaceResult):  its workspace statistics
			metrics (dict):               scalar metrics, see `OBJECTIVES` and `condition`
			objectives (tuple):           the objective vector, all maximized
			rank (int):                   pareto rank in the current generation, 0 for the non-dominated ones
			crowding (float):             crowding distance in its front
	'''
	__slots__ = ('layout', 'workspace', 'metrics', 'objectives', 'rank', 'crowding')
	def __init__(self, layout, workspace, metrics):
		self.layout = layout
		self.workspace = workspace
		self.metrics = metrics
		self.objectives = tuple(-metrics[key] if key in COSTS else metrics[key]   for key in OBJECTIVES)
		self.rank = None
		self.crowding = 0.

	def summary(self) -> dict:
		''' Plain data record for export '''
		return {
			'layout': self.layout.summary(),
			'metrics': dict(self.metrics),
			'workspace': self.workspace.summary(),
			'rank': self.rank,
			'crowding': self.crowding,
			}

	def __repr__(self):
		return '<{} rank={} crowding={:.3g} coverage={:.3g}%>'.format(
				self.__class__.__name__, self.rank, self.crowding, self.metrics['coverage'])


def _objectives(item) -> list:
	''' objective vector of an evaluation or a sequence, with non-finite values replaced by -inf '''
	values = getattr(item, 'objectives', item)
	return [v if math.isfinite(v) else -inf   for v in values]

def dominates(a, b) -> bool:
	''' Return True if `a` is nowhere worse than `b` and strictly better somewhere

		`a` and `b` are evaluations or objective vectors
	'''
	better = False
	for x, y in zip(_objectives(a), _objectives(b)):
		if x < y:	return False
		if x > y:	better = True
	return better

def nondominated_sort(items) -> list:
	''' Partition the items in successive pareto fronts

		Returns:
			a list of fronts, each a list of indices in `items`. The first front holds the non-dominated items.
	'''
	vectors = [_objectives(item)  for item in items]
	n = len(vectors)
	dominated = [[]  for _ in range(n)]
	counts = [0]*n
	for p in range(n):
		for q in range(p+1, n):
			if dominates(vectors[p], vectors[q]):
				dominated[p].append(q)
				counts[q] += 1
			elif dominates(vectors[q], vectors[p]):
				dominated[q].append(p)
				counts[p] += 1

	fronts = []
	front = [p  for p in range(n)  if not counts[p]]
	while front:
		fronts.append(front)
		following = []
		for p in front:
			for q in dominated[p]:
				counts[q] -= 1
				if not counts[q]:
					following.append(q)
		front = following
	return fronts

def crowding_distance(items) -> list:
	''' Crowding distance of each item of a front

		For each objective the extreme items get an infinite distance, and the interior items accumulate the normalized gap between their neighbors.
	'''
	vectors = [_objectives(item)  for item in items]
	n = len(vectors)
	if not n:	return []
	distance = [0.]*n
	for m in range(len(vectors[0])):
		order = sorted(range(n), key=lambda i: vectors[i][m])
		distance[order[0]] = distance[order[-1]] = inf
		span = vectors[order[-1]][m] - vectors[order[0]][m]
		if not span or not math.isfinite(span):
			continue
		for k in range(1, n-1):
			distance[order[k]] += (vectors[order[k+1]][m] - vectors[order[k-1]][m]) / span
	return distance

def assign_ranks(evaluations) -> list:
	''' Set the rank and crowding distance of the evaluations, and return the fronts as lists of evaluations '''
	fronts = []
	for rank, indices in enumerate(nondominated_sort(evaluations)):
		front = [evaluations[i]  for i in indices]
		for evaluation, distance in zip(front, crowding_distance(front)):
			evaluation.rank = rank
			evaluation.crowding = distance
		fronts.append(front)
	return fronts

def environmental_selection(evaluations, size) -> list:
	''' Keep `size` evaluations, whole fronts first then the most isolated of the overflowing front '''
	selected = []
	for front in assign_ranks(evaluations):
		if len(selected) + len(front) <= size:
			selected.extend(front)
		else:
			front = sorted(front, key=lambda e: e.crowding, reverse=True)
			selected.extend(front[:size-len(selected)])
			break
	return selected

def tournament(evaluations, rng) -> Evaluation:
	''' Binary tournament: lower rank wins, then bigger crowding distance, then chance '''
	i, j = rng.integers(0, len(evaluations), 2)
	a, b = evaluations[i], evaluations[j]
	if a.rank != b.rank:
		return a if a.rank < b.rank else b
	if a.crowding != b.crowding:
		return a if a.crowding > b.crowding else b
	return a if rng.random() < 0.5 else b


def crossover(a, b, rng, space) -> Layout:
	''' Child layout taking the legs before a random split from `a` and the others from `b` '''
	split = int(rng.integers(1, LEGS))
	child = Layout(
		base = a.base[:split] + b.base[split:],
		platform = a.platform[:split] + b.platform[split:],
		beta = a.beta[:split] + b.beta[split:],
		horn = (a.horn + b.horn)/2,
		rod = (a.rod + b.rod)/2,
		servo_range = a.servo_range,
		)
	return finalize(child, space)

def mutate(layout, rng, space) -> Layout:
	''' Gaussian jitter on every anchor coordinate, horn orientation, horn and rod length

		Standard deviations are taken from `settings.optimizer`
	'''
	params = settings.optimizer
	def jitter(p):
		return p + vec3(*rng.normal(0, params['sigma_anchor'], 3))
	mutant = layout.replace(
		base = [jitter(p)  for p in layout.base],
		platform = [jitter(p)  for p in layout.platform],
		beta = [b + radians(rng.normal(0, params['sigma_beta']))  for b in layout.beta],
		horn = clamp(layout.horn + rng.normal(0, params['sigma_horn']), *space.horn),
		rod = clamp(layout.rod + rng.normal(0, params['sigma_rod']), *space.rod),
		)
	return finalize(mutant, space)


def leg_force(requirements) -> float:
	''' Peak force on each leg (N): payload weight plus the inertia of the sinusoidal cycling motion, shared by the 6 legs '''
	acceleration = (2*pi*requirements.frequency)**2 * requirements.stroke/1000
	axis = {'x': X, 'y': Y, 'z': Z}[requirements.cycle_axis]
	return requirements.mass * length(GRAVITY*Z + acceleration*axis) / LEGS


class Optimizer(object):
	''' Evolutionary optimizer of layouts

		Parameters:
			requirements:   a `Requirements` record, read only
			space:          the `DesignSpace` of the layouts, by default derived from the requirements
			population:     number of layouts kept per generation
			generations:    default number of generations of `run()`
			mutation_rate:  probability for an offspring to be mutated
			seed:           seed of the random stream, the run is deterministic for a given seed
			ranges:         workspace ranges, by default derived from the requirements
			workspace:      `WorkspaceOptions` of the fitness sweeps, by default built from the requirements and settings

		Unspecified parameters are taken from `settings.optimizer`

		Attributes:
			population (list):    current layouts
			evaluations (list):   evaluations of the current layouts
			generation (int):     number of completed generations
	'''
	def __init__(self, requirements=None, space=None, population=None, generations=None, mutation_rate=None,
				seed=None, ranges=None, workspace=None):
		defaults = settings.optimizer
		self.requirements = requirements if requirements is not None else Requirements()
		self.space = space if space is not None else self.requirements.design_space()
		self.population_size = int(population if population is not None else defaults['population'])
		self.generations = int(generations if generations is not None else defaults['generations'])
		self.mutation_rate = float(mutation_rate if mutation_rate is not None else defaults['mutation_rate'])
		if self.population_size < 1:
			raise ValueError('population size must be at least 1')
		if self.generations < 0:
			raise ValueError('generations must not be negative')
		if not 0 <= self.mutation_rate <= 1:
			raise ValueError('mutation rate must be in [0, 1]')

		self.rng = np.random.default_rng(seed)
		self.ranges = ranges if ranges is not None else self.requirements.workspace_ranges()
		if workspace is None:
			workspace = WorkspaceOptions(ball_joint_limit=self.requirements.ball_joint_limit, rng=self.rng)
		self.workspace = workspace

		self.population = []
		self.evaluations = []
		self.generation = 0
		self.running = False

	@property
	def fitness(self) -> list:
		''' Current evaluations, sorted by rank then decreasing crowding distance '''
		return sorted(self.evaluations, key=lambda e: (e.rank, -e.crowding))

	@property
	def pareto(self) -> list:
		''' Non-dominated evaluations of the current population '''
		return [e  for e in self.evaluations  if e.rank == 0]

	def evaluate(self, layout) -> Evaluation:
		''' Compute the metrics and objectives of a layout '''
		requirements = self.requirements
		options = self.workspace
		workspace = compute_workspace(layout, self.ranges, options)

		# dexterity at rest
		home = evaluate_pose(layout, Pose(), options.pose)
		dexterity = stiffness = 0.
		condition = inf
		if len(home.jacobian) == LEGS:
			values = singular_values(home.matrix())
			sigma_max, sigma_min = float(values[0]), float(values[-1])
			stiffness = sigma_min
			if sigma_max > options.floor:	dexterity = sigma_min / sigma_max
			if sigma_min > options.floor:	condition = sigma_max / sigma_min

		travel = layout.servo_range[1] - layout.servo_range[0]
		joint_limit = options.pose.ball_joint_limit
		usage = workspace.servo_usage
		servo_duty = average(usage) / travel  if travel else 0.
		joint_duty = workspace.deflection_avg / joint_limit
		joint_weight, servo_weight = settings.optimizer['fatigue_weights']

		metrics = {
			'coverage': workspace.coverage,
			'dexterity': dexterity,
			'stiffness': stiffness,
			'condition': condition,
			'load_balance': workspace.load_balance,
			'isotropy': workspace.isotropy,
			'limit_margin': clamp(1 - max(max(usage)/travel if travel else 1., workspace.deflection_peak/joint_limit), 0, 1),
			# N.m with horn in mm
			'torque': leg_force(requirements) * layout.horn / 1000,
			# peak angular speed of a sinusoid spanning the servo usage (rad/s)
			'speed': pi * requirements.frequency * max(usage),
			'fatigue': (joint_weight*joint_duty + servo_weight*servo_duty) * requirements.frequency * requirements.stroke,
			}
		return Evaluation(layout, workspace, metrics)

	def initialize(self):
		''' Create and evaluate a random population, generation count is reset '''
		try:
			population = [random_layout(self.space, self.rng)  for _ in range(self.population_size)]
			evaluations = [self.evaluate(layout)  for layout in population]
		except Exception as err:
			raise OptimizationError('population initialization failed') from err
		assign_ranks(evaluations)
		self.population = population
		self.evaluations = evaluations
		self.generation = 0

	def step(self) -> Evaluation:
		''' Run one generation and return the best evaluation

			The new population is committed only once the generation is complete.
		'''
		if not self.evaluations:
			self.initialize()
		try:
			offspring = []
			for _ in range(self.population_size):
				a = tournament(self.evaluations, self.rng)
				b = tournament(self.evaluations, self.rng)
				child = crossover(a.layout, b.layout, self.rng, self.space)
				if self.rng.random() < self.mutation_rate:
					child = mutate(child, self.rng, self.space)
				offspring.append(self.evaluate(child))
		except Exception as err:
			raise OptimizationError('generation {} failed'.format(self.generation+1)) from err

		selected = environmental_selection(self.evaluations + offspring, self.population_size)
		self.evaluations = selected
		self.population = [e.layout  for e in selected]
		self.generation += 1
		return self.best()

	def run(self, generations=None, callback=None) -> list:
		''' Run the given number of generations (default to `self.generations`) and return the pareto front

			`callback(best, progress)` is called after each generation with the best evaluation and the fraction of generations done.
			A call to `stop()`, from the callback for instance, ends the run at the next generation boundary.
		'''
		if generations is None:	generations = self.generations
		if not self.evaluations:
			self.initialize()
		self.running = True
		try:
			for i in range(generations):
				if not self.running:
					break
				best = self.step()
				if callback:
					callback(best, (i+1) / generations)
		finally:
			self.running = False
		return self.pareto

	def stop(self):
		''' Request the end of the current run, effective at the next generation boundary '''
		self.running = False

	def best(self) -> Evaluation:
		''' Evaluation of the pareto front with the best coverage, None before initialization '''
		front = self.pareto
		if not front:	return None
		return max(front, key=lambda e: e.metrics['coverage'])

	def export(self) -> dict:
		''' Plain data record of the best layout, for export by an external serializer '''
		best = self.best()
		if best is None:	return None
		record = best.summary()
		record['generation'] = self.generation
		record['requirements'] = self.requirements.summary()
		return record

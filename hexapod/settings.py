'''	 The settings module holds dictionaries for each aspect of the pyhexapod library.

dictionaries:
	:pose:          default options of the pose evaluator
	:workspace:     default options of the workspace sampler
	:design:        default bounds of the layout design space
	:optimizer:     default parameters of the evolutionary optimizer
	:requirements:  defaults for the fields a requirements record may omit

Angles are in degrees and lengths in millimeters everywhere in these settings.
'''

import sys, os, yaml
from os.path import dirname, exists, expanduser

# options of a single pose evaluation, see `pose.PoseOptions`
pose = {
	'ball_joint_limit': 90.,	# maximum deflection of the ball joints (deg)
	'ball_joint_clamp': True,	# a ball joint above its limit flags the pose instead of rejecting it
	'servo_range': [-90., 90.],	# servo travel used by layouts that do not define one (deg)
	'rod_tolerance': 0.5,	# accepted gap between the achieved and nominal rod length (mm)
	'details': False,	# record horn tips, rod vectors and platform points per leg
	}

# options of the workspace sweep, see `workspace.WorkspaceOptions`
workspace = {
	'sample_limit': 2000,	# capacity of the reachable and unreachable pose reservoirs
	'violation_limit': 500,	# capacity of the violating pose reservoir
	'evaluation_cap': 4096,	# number of evaluated poses when the range is too big for a full sweep
	'batch': 200,	# poses evaluated between two calls of the progress callback
	'floor': 1e-9,	# singular values below are considered null
	'accelerate': True,	# use the compiled singular values estimator when available
	}

# bounds of the randomly generated layouts, see `layout.DesignSpace`
design = {
	'base_radius': [60., 120.],
	'platform_radius': [40., 100.],
	'platform_height': [120., 300.],
	'horn': [30., 110.],
	'rod': [160., 420.],
	'base_spacing': 20.,	# angle between the two anchors of a base pair (deg)
	'platform_spacing': 80.,	# angle between the two anchors of a platform pair (deg)
	'anchor_jitter': 3.,	# standard deviation of the anchor positions (mm)
	'beta_jitter': 3.,	# standard deviation of the servo orientations (deg)
	'reach_margin': 1.05,	# minimum ratio between rod length and horizontal reach
	}

# evolution parameters, see `optimizer.Optimizer`
optimizer = {
	'population': 20,
	'generations': 10,
	'mutation_rate': 0.2,
	'sigma_anchor': 2.,	# mutation standard deviation of anchor coordinates (mm)
	'sigma_beta': 3.,	# mutation standard deviation of servo orientations (deg)
	'sigma_horn': 2.,	# mutation standard deviation of horn lengths (mm)
	'sigma_rod': 5.,	# mutation standard deviation of rod lengths (mm)
	'fatigue_weights': [0.6, 0.4],	# weights of the ball joint and servo duty ratios
	}

# values used when a requirements record omits them, see `requirements.Requirements`
requirements = {
	'ball_joint_limit': 45.,
	'servo_travel': [-120., 120.],
	'rod_bounds': [160., 420.],
	'horn_bounds': [30., 110.],
	'translation_step': 5.,
	'rotation_step': 5.,
	}


# get configuration directory depending on OS
if sys.platform == 'win32':
	home = os.getenv('USERPROFILE') or expanduser('~')
	configdir = home+'/AppData/Local'
else:
	home = expanduser('~')
	configdir = home+'/.config'

config = configdir+'/hexapod/pyhexapod.yaml'
settings = {
	'pose': pose,
	'workspace': workspace,
	'design': design,
	'optimizer': optimizer,
	'requirements': requirements,
	}


def install():
	''' Create and fill the config directory if not already existing '''
	if not exists(config):
		os.makedirs(dirname(config), exist_ok=True)
		dump()

def clean():
	''' Delete the default configuration file '''
	os.remove(config)

def load(file=None):
	''' Load the settings directly in this module, from the specified file or the default one '''
	if not file:	file = config
	if isinstance(file, str):
		with open(file, 'r') as stream:
			changes = yaml.safe_load(stream)
	else:
		changes = yaml.safe_load(file)
	def update(dst, src):
		for key in dst:
			if key in src:
				if isinstance(dst[key], dict) and isinstance(src[key], dict):
					update(dst[key], src[key])
				elif isinstance(dst[key], list):
					dst[key] = list(src[key])
				else:
					dst[key] = src[key]
	if changes:
		update(settings, changes)

def dump(file=None):
	''' Write the current settings into the specified file or to the default one '''
	if not file:	file = config
	text = yaml.safe_dump(settings, default_flow_style=None, width=40, indent=4)
	if isinstance(file, str):
		with open(file, 'w') as stream:
			stream.write(text)
	else:
		file.write(text)

# automatically load settings in the file exist
try:	load()
except FileNotFoundError:	pass

# This file is part of pyhexapod,  distributed under license LGPL v3

'''     pyhexapod
		design and evaluation of rotary-servo Stewart platforms

A Stewart platform (or hexapod) moves a platform in 6 degrees of freedom with 6 legs. Here each leg is a servo horn rotating on the base, linked to the platform by a rod with ball joints at both ends.

main concepts
-------------

- `Layout`    the geometry of a candidate mechanism: anchors, horn orientations, horn and rod lengths
- `Pose`      a position and orientation of the platform relative to its home position
- `evaluate_pose`       solves the servo angles of a pose (inverse kinematics) and checks the mechanical constraints
- `compute_workspace`   sweeps or samples a range of poses and gathers coverage and quality statistics
- `Optimizer`           searches the layouts for the best tradeoffs between coverage, dexterity, stiffness and mechanical costs

Geometric infeasibility is never an error: unreachable poses are reported as `Violation` records in the evaluation results.

Lengths are in millimeters. Angles are in radians in the python API, and in degrees in the settings, requirements records and exported summaries.

modules
-------

- mathutils     vectors, rotations and eigen solvers
- layout        layouts and their design space
- pose          inverse kinematics of a pose
- accel         optional compiled singular values estimator
- workspace     workspace sweep
- requirements  requirements of a design, from dicts or YAML/JSON files
- optimizer     multi-objective evolutionary search
- settings      default options, loaded from the user config file
'''

__version__ = '0.1.0'

from .mathutils import *
from .layout import Layout, LayoutError, DesignSpace, hexagonal, random_layout, finalize
from .pose import Pose, PoseOptions, PoseEvaluation, Violation, evaluate_pose
from .workspace import RangeSpec, WorkspaceOptions, WorkspaceResult, WorkspaceError, compute_workspace
from .requirements import Requirements, RequirementsError
from .optimizer import Optimizer, Evaluation, OptimizationError
from . import settings

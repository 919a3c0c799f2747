# This file is part of pyhexapod,  distributed under license LGPL v3

''' Numeric kernel of pyhexapod: 3D vectors, euler rotations and small symmetric eigen solvers '''

import glm
from glm import dvec3, dmat3, dot, cross, length, length2, distance
import math, numbers
from math import pi, inf, nan, sqrt, cos, sin, asin, acos, atan2, radians, degrees
import numpy as np

# alias definitions
vec3 = dvec3
mat3 = dmat3

# numerical precision of floats used
NUMPREC = 1e-13	# float64 here, so 14 decimals

# common base definition
O = vec3(0,0,0)
X = vec3(1,0,0)
Y = vec3(0,1,0)
Z = vec3(0,0,1)


def isfinite(x):
	''' Return false if x contains a `inf` or a `nan` '''
	if isinstance(x, (int,float)):
		return math.isfinite(x)
	return not (glm.any(glm.isinf(x)) or glm.any(glm.isnan(x)))

def clamp(x, low, high):
	''' Clip `x` in the interval `[low, high]`, a `nan` is clipped to `low` '''
	if x != x:	return low
	return min(max(x, low), high)

magnitude = length

def normalize(v) -> vec3:
	''' Unit vector in the direction of `v`, or the null vector when `v` is null '''
	l = length(v)
	if not l:	return vec3(0)
	return v / l

def anglebt(x,y) -> float:
	''' Angle between two vectors

		The result is not sensitive to the lengths of x and y
	'''
	n = length(x)*length(y)
	return acos(min(1,max(-1, dot(x,y)/n)))	if n else 0

def eulermatrix(rx, ry, rz) -> mat3:
	''' Rotation matrix for the intrinsic X-Y-Z euler angles, composed as  `Rz * Ry * Rx`

		Angles are in radians.
	'''
	cx, sx = cos(rx), sin(rx)
	cy, sy = cos(ry), sin(ry)
	cz, sz = cos(rz), sin(rz)
	# glm matrices are built column by column
	return mat3(
		vec3(cz*cy,                sz*cy,                -sy),
		vec3(cz*sy*sx - sz*cx,     sz*sy*sx + cz*cx,     cy*sx),
		vec3(cz*sy*cx + sz*sx,     sz*sy*cx - cz*sx,     cy*cx),
		)

def rotatevec(matrix, v) -> vec3:
	''' Apply a rotation matrix to a vector '''
	return matrix * vec3(v)


#-- statistics ---------

def average(values) -> float:
	''' Arithmetic mean, 0 for an empty sequence '''
	values = list(values)
	if not values:	return 0.
	return math.fsum(values) / len(values)

def variance(values) -> float:
	''' Population variance, 0 for an empty sequence '''
	values = list(values)
	if not values:	return 0.
	mean = average(values)
	return average((v-mean)**2  for v in values)

def stddev(values) -> float:
	return sqrt(variance(values))


#-- ranges ---------

def _rangeparams(spec):
	if isinstance(spec, dict):
		return spec.get('min'), spec.get('max'), spec.get('step')
	if isinstance(spec, (tuple, list)):
		return (tuple(spec) + (None,)*3)[:3]
	return getattr(spec, 'min', None), getattr(spec, 'max', None), getattr(spec, 'step', None)

def _isnumber(x):
	return isinstance(x, numbers.Real) and not isinstance(x, bool) and math.isfinite(x)

def build_range(spec, fallback=0.) -> list:
	''' Inclusive sequence of values described by `spec`

		Parameters:
			spec:
				`None`, a dict `{'min', 'max', 'step'}`, a tuple `(min, max, step)` or any object with these attributes.
				When `step` is missing or not positive, it defaults to `max(1, abs(max-min))`
			fallback:	the only value of the sequence when `spec` is missing or degenerated (`max < min` or non finite bounds)

		The upper bound is reached even when the floating point accumulation slightly overshoots it.
	'''
	if spec is None:	return [fallback]
	low, high, step = _rangeparams(spec)
	if not _isnumber(low) or not _isnumber(high) or high < low:
		return [fallback]
	if not _isnumber(step) or step <= 0:
		step = max(1, abs(high-low))
	inclusive = high + step*1e-6
	values = []
	i = 0
	while low + i*step <= inclusive:
		values.append(round(low + i*step, 10))
		i += 1
	return values


#-- eigen solvers ---------

def jacobi_eigvals(matrix, tolerance=1e-9, maxiter=64) -> np.ndarray:
	''' Eigenvalues of a symmetric matrix, sorted in descending order

		Use the classical Jacobi method: each iteration cancels the biggest off-diagonal term with a plane rotation.
		The input matrix is never modified.

		Parameters:
			tolerance:	iterations stop once the biggest off-diagonal magnitude is below it
			maxiter:	maximum number of rotations
	'''
	a = np.array(matrix, dtype=np.float64)
	n = len(a)
	if not n:	return np.zeros(0)

	for _ in range(maxiter):
		off = np.abs(np.triu(a, 1))
		p, q = np.unravel_index(np.argmax(off), off.shape)
		if off[p,q] < tolerance:
			break

		app, aqq, apq = a[p,p], a[q,q], a[p,q]
		phi = 0.5 * atan2(2*apq, aqq-app)
		c, s = cos(phi), sin(phi)

		kp, kq = a[:,p].copy(), a[:,q].copy()
		a[:,p] = c*kp - s*kq
		a[:,q] = s*kp + c*kq
		pk, qk = a[p].copy(), a[q].copy()
		a[p] = c*pk - s*qk
		a[q] = s*pk + c*qk

		a[p,p] = c*c*app - 2*s*c*apq + s*s*aqq
		a[q,q] = s*s*app + 2*s*c*apq + c*c*aqq
		a[p,q] = a[q,p] = 0

	return np.sort(np.diagonal(a))[::-1].copy()

def singular_values(matrix) -> np.ndarray:
	''' Singular values of a matrix, sorted in descending order

		They are the square roots of the eigenvalues of  `transpose(M) @ M`, negative eigenvalues due to rounding are clamped to zero.
	'''
	m = np.asarray(matrix, dtype=np.float64)
	if m.ndim != 2 or not m.size:	return np.zeros(0)
	return np.sqrt(np.maximum(jacobi_eigvals(m.T @ m), 0))

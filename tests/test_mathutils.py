import numpy as np
import scipy.linalg
from scipy.spatial.transform import Rotation
from pytest import approx

from hexapod.mathutils import *

np.random.seed(7)

def test_normalize():
	assert normalize(vec3(0)) == vec3(0)
	assert length(normalize(vec3(1,2,3))) == approx(1)
	assert anglebt(X, Y) == approx(pi/2)
	assert anglebt(X, vec3(0)) == 0

def test_clamp():
	assert clamp(5, 0, 1) == 1
	assert clamp(-5, 0, 1) == 0
	assert clamp(nan, 0, 1) == 0

def test_eulermatrix():
	for i in range(20):
		angles = np.random.uniform(-pi, pi, 3)
		reference = Rotation.from_euler('xyz', angles).as_matrix()
		m = eulermatrix(*angles)
		for i, axis in enumerate((X, Y, Z)):
			assert list(rotatevec(m, axis)) == approx(list(reference[:,i]), abs=1e-12)
	# single rotations
	assert list(eulermatrix(0, 0, pi/2) * X) == approx([0, 1, 0], abs=1e-12)
	assert list(eulermatrix(pi/2, 0, 0) * Y) == approx([0, 0, 1], abs=1e-12)

def test_statistics():
	assert average([]) == 0
	assert average([1, 2, 3]) == approx(2)
	assert variance([1, 1, 1]) == 0
	assert stddev([1, 3]) == approx(1)

def test_build_range():
	assert build_range(None, 3.) == [3.]
	assert build_range((0, 1, 0.1)) == approx([i/10 for i in range(11)])
	assert build_range({'min': -2, 'max': 2, 'step': 2}) == [-2, 0, 2]
	# default step spans the whole interval
	assert build_range({'min': 0, 'max': 4}) == [0, 4]
	assert build_range((0, 0.5, -1)) == [0, 0.5]
	assert build_range((0, 0, 1)) == [0]
	# degenerated ranges
	assert build_range((1, 0, 1), 7.) == [7.]
	assert build_range((0, inf, 1)) == [0.]
	assert build_range(('a', 1, 1)) == [0.]
	# overshoot of the accumulation is tolerated
	assert build_range((0, 0.3, 0.1))[-1] == approx(0.3)
	assert len(build_range((0, 0.3, 0.1))) == 4

def test_jacobi_eigvals():
	for i in range(10):
		a = np.random.normal(size=(6,6))
		a = a + a.T
		copy = a.copy()
		values = jacobi_eigvals(a, maxiter=500)
		assert np.all(np.diff(values) <= 0)
		assert values == approx(scipy.linalg.eigvalsh(a)[::-1], abs=1e-7)
		assert np.array_equal(a, copy)

	assert jacobi_eigvals(np.diag([1., 3., 2.])) == approx([3, 2, 1])
	assert len(jacobi_eigvals(np.zeros((0,0)))) == 0

def test_singular_values():
	for i in range(10):
		m = np.random.normal(size=(6,6))
		assert singular_values(m) == approx(scipy.linalg.svdvals(m), abs=1e-6)
	# rank deficient matrices give null values, never negative ones
	m = np.ones((6,6))
	values = singular_values(m)
	assert values[0] == approx(6)
	assert np.all(values >= 0)
	assert values[1:] == approx(np.zeros(5), abs=1e-6)

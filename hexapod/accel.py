# This file is part of pyhexapod,  distributed under license LGPL v3

''' Bridge to the compiled singular values estimator

	The compiled module `hexapod.core` is optional: when it is not built, or cannot be used, every estimation falls back to the software path of `mathutils.singular_values`.
	The module is loaded at first use and kept for the process lifetime. A failed load is never retried.
'''

import warnings
from .mathutils import *

__all__ = ['Accelerator', 'accelerator', 'extremal_singular_values']


class Accelerator(object):
	''' Exclusive handle over a compiled estimator module

		The module must expose `jacobian_buffer()` (36 writable float64 slots), `result_buffer()` (2 float64 slots) and a zero-argument `evaluate()`.
		The buffers are shared by every call, so an instance must not be used by concurrent tasks.
	'''
	__slots__ = ('module', 'input', 'output')
	def __init__(self, module):
		self.module = module
		self.input = np.asarray(module.jacobian_buffer(), dtype=np.float64)
		self.output = np.asarray(module.result_buffer(), dtype=np.float64)
		if self.input.size != 36 or self.output.size != 2:
			raise TypeError('accelerator buffers must have 36 and 2 slots, not {} and {}'.format(self.input.size, self.output.size))
		if not callable(getattr(module, 'evaluate', None)):
			raise TypeError('accelerator module has no evaluate() entry point')

	def estimate(self, jacobian) -> '(float, float)':
		''' Return `(sigma_min, sigma_max)` for a 6x6 matrix, or None if the matrix shape is wrong or the estimation is not finite '''
		matrix = np.asarray(jacobian, dtype=np.float64)
		if matrix.size != 36:
			return None
		self.input[:] = matrix.ravel()
		self.module.evaluate()
		sigma_min, sigma_max = float(self.output[0]), float(self.output[1])
		if not (math.isfinite(sigma_min) and math.isfinite(sigma_max)):
			return None
		return sigma_min, sigma_max

	def __repr__(self):
		return '<{} on {}>'.format(self.__class__.__name__, getattr(self.module, '__name__', self.module))


# process-wide handle, False once the load has failed
_accelerator = None

def accelerator(loader=None) -> Accelerator:
	''' Return the process-wide accelerator, or None when it is unavailable

		On first call, the compiled module is imported (or obtained from `loader()` if given). Any failure makes the accelerator unavailable for the rest of the process.
	'''
	global _accelerator
	if _accelerator is None:
		try:
			if loader:
				module = loader()
			else:
				from . import core as module
			_accelerator = Accelerator(module)
		except ImportError:
			_accelerator = False
		except Exception as err:
			warnings.warn('singular values accelerator unavailable: {}'.format(err))
			_accelerator = False
	return _accelerator or None

def extremal_singular_values(jacobian, accelerate=True) -> '(float, float)':
	''' Smallest and biggest singular values of a matrix

		The compiled estimator is used for 6x6 matrices when `accelerate` is True and it is available, `mathutils.singular_values` is used otherwise.
	'''
	if accelerate:
		handle = accelerator()
		if handle:
			estimation = handle.estimate(jacobian)
			if estimation is not None:
				return estimation
	values = singular_values(jacobian)
	if not len(values):
		return 0., 0.
	return float(values[-1]), float(values[0])

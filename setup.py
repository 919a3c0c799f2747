#!/usr/bin/python3

from setuptools import setup, find_packages

try:
	from Cython.Build import cythonize
except ImportError:
	# the compiled estimator is optional, the software path is used without it
	cython_modules = []
else:
	cython_modules = cythonize(['hexapod/core.pyx'])	#, annotate=True)
	for module in cython_modules:
		module.optional = True

setup(
	# package declaration
	name='pyhexapod',
	version='0.1.0',
	python_requires='>=3.8',
	install_requires=[
		'pyglm>=2.5.5',
		'numpy>=1.17',
		'scipy>=1.3',
		'pyyaml>=5',
		],
	extras_require={
		'test': ['pytest>=6'],
		},
	# source declaration
	packages=find_packages(include=['hexapod', 'hexapod.*']),
	ext_modules=cython_modules,
	package_data={
		'hexapod': [
			'*.py',
			'*.pyx',
			],
		'': ['README.md'],
		},

	# metadata for pypi
	description="Design and evaluation of rotary-servo Stewart platforms",
	long_description=open('README.md').read(),
	long_description_content_type='text/markdown',
	license='GNU LGPL v3',
	keywords='stewart platform hexapod inverse kinematics workspace optimization NSGA-II',
	classifiers=[
		'Topic :: Scientific/Engineering',
		'Development Status :: 3 - Alpha',
		'Programming Language :: Python :: 3.8',
		'Programming Language :: Python :: 3.9',
		'Programming Language :: Python :: 3.10',
		'Programming Language :: Python :: Implementation :: CPython',
		'License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)',
		'Intended Audience :: Science/Research',
		'Intended Audience :: Manufacturing',
		'Intended Audience :: Education',
		],
	)

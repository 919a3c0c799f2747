import numpy as np
import pytest
from pytest import approx

from hexapod.mathutils import *
from hexapod.layout import *
from hexapod import settings

from . import regular


def test_construction_errors():
	with pytest.raises(LayoutError, match='Layout horn length must be a positive number'):
		Layout(base=[O]*6, platform=[O]*6, beta=[0]*6, horn=0, rod=100)
	with pytest.raises(LayoutError, match='Layout rod length must be a positive number'):
		Layout(base=[X]*6, platform=[Y]*6, beta=[0]*6, horn=10, rod=-1)
	with pytest.raises(LayoutError, match='exactly 6 entries'):
		Layout(base=[X]*5, platform=[Y]*6, beta=[0]*6, horn=10, rod=100)
	with pytest.raises(LayoutError, match='exactly 6 entries'):
		Layout(base=[X]*6, platform=[Y]*6, beta=[0]*7, horn=10, rod=100)
	with pytest.raises(LayoutError):
		Layout(base=[vec3(nan, 0, 0)]*6, platform=[Y]*6, beta=[0]*6, horn=10, rod=100)
	with pytest.raises(LayoutError):
		Layout(base=[X]*6, platform=[Y]*6, beta=[0]*6, horn=10, rod=100, servo_range=(1, -1))

def test_hexagonal():
	layout = regular()
	assert len(layout.base) == len(layout.platform) == len(layout.beta) == LEGS
	for p in layout.base:
		assert length(p) == approx(100)
	for p in layout.platform:
		assert length(p) == approx(70)
	# the horns are tangent to the base circle
	for p, beta in zip(layout.base, layout.beta):
		assert dot(normalize(p), vec3(cos(beta), sin(beta), 0)) == approx(0, abs=1e-12)
	# symmetric layout, every leg closes at the same height
	heights = closure_heights(layout)
	assert heights == approx([heights[0]]*LEGS)
	assert layout.home == approx(heights[0])
	assert layout.servo_range == approx(tuple(radians(a) for a in settings.pose['servo_range']))

def test_replace():
	layout = regular()
	longer = layout.replace(rod=250)
	assert longer.rod == 250
	assert longer.base == layout.base
	assert longer.home > layout.home
	assert layout.rod == 200

def test_horn_tip():
	layout = regular()
	for i in range(LEGS):
		assert distance(horn_tip(layout, i, 0.3), layout.base[i]) == approx(layout.horn)
		assert horn_tip(layout, i, pi/2).z == approx(layout.horn)

def test_finalize():
	space = DesignSpace()
	layout = regular()
	first = finalize(layout, space)
	second = finalize(first, space)
	assert second.rod == approx(first.rod)
	assert second.horn == approx(first.horn)
	assert second.home == approx(first.home)

	# too short rods are raised to close the horizontal reach
	short = Layout(layout.base, layout.platform, layout.beta, horn=40, rod=10)
	fixed = finalize(short, space)
	assert fixed.rod >= max(horizontal_reach(fixed)) * space.reach_margin - 1e-9
	assert fixed.rod >= space.rod[0]
	assert finalize(fixed, space).rod == approx(fixed.rod)

	# lengths are clamped in the space bounds
	big = finalize(layout.replace(horn=1000), space)
	assert big.horn == space.horn[1]

def test_random_layout():
	space = DesignSpace(servo_range=(-1., 1.))
	rng = np.random.default_rng(3)
	for i in range(20):
		layout = random_layout(space, rng)
		assert space.horn[0] <= layout.horn <= space.horn[1]
		assert layout.rod >= max(horizontal_reach(layout)) * space.reach_margin - 1e-9
		assert layout.servo_range == (-1., 1.)
		assert math.isfinite(layout.home)
		again = finalize(layout, space)
		assert again.rod == approx(layout.rod)
		assert again.home == approx(layout.home)

def test_design_space():
	space = DesignSpace(horn=(20, 50))
	assert space.horn == (20., 50.)
	assert space.rod == tuple(settings.design['rod'])
	with pytest.raises(LayoutError):
		DesignSpace(rod=(300, 200))
	with pytest.raises(TypeError):
		DesignSpace(color='red')

def test_summary():
	summary = regular().summary()
	assert summary['horn'] == 40
	assert len(summary['base']) == LEGS
	assert summary['beta'][0] == approx(-100)

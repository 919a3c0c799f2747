import io
import pytest
from pytest import approx

from hexapod.mathutils import *
from hexapod.requirements import *
from hexapod.workspace import RangeSpec, AXES


flat = {
	'mass_kg': 2,
	'cycle_mm': 20,
	'frequency_hz': 1.5,
	'cycle_axis': 'Z',
	'x_range_mm': [-20, 20],
	'y_range_mm': {'min': -10, 'max': 10},
	'z_range_mm': {'from': -5, 'to': 15},
	'rx_range_deg': [-10, 10],
	'ry_range_deg': [0, 0],
	'rz_range_deg': [-30, 30],
	'ball_joint_max_deg': 40,
	'servo_travel_bounds_deg': [-80, 80],
	}

nested = {
	'payload': {'mass_kg': 2, 'cycle_mm': 20, 'frequency_hz': 1.5, 'cycle_axis': 'z'},
	'workspace': {'x_range_mm': [-20, 20], 'y_range_mm': [-10, 10], 'z_range_mm': [-5, 15]},
	'rotations': {'rx_range_deg': [-10, 10], 'ry_range_deg': [0, 0], 'rz_range_deg': [-30, 30]},
	'constraints': {'ball_joint_max_deg': 40, 'servo_max_deg': 80, 'rod_length_bounds_mm': [150, 300]},
	}


def test_flat():
	requirements = Requirements.from_dict(flat)
	assert requirements.mass == 2
	assert requirements.frequency == 1.5
	assert requirements.cycle_axis == 'z'
	assert requirements.ranges['y'] == (-10, 10)
	assert requirements.ranges['z'] == (-5, 15)
	assert requirements.ball_joint_limit == 40
	assert requirements.servo_travel == (-80, 80)
	# defaults for omitted bounds
	assert requirements.rod_bounds == (160, 420)
	assert requirements.horn_bounds == (30, 110)

def test_nested():
	requirements = Requirements.from_dict(nested)
	assert requirements.ranges == Requirements.from_dict(flat).ranges
	assert requirements.servo_travel == (-80, 80)
	assert requirements.rod_bounds == (150, 300)

def test_errors():
	for field in ('mass_kg', 'cycle_axis', 'rz_range_deg'):
		data = dict(flat)
		del data[field]
		with pytest.raises(RequirementsError, match=field):
			Requirements.from_dict(data)
	with pytest.raises(RequirementsError, match='payload'):
		Requirements.from_dict({'payload': {}, 'workspace': {}, 'rotations': {}})
	with pytest.raises(RequirementsError):
		Requirements.from_dict(dict(flat, cycle_axis='w'))
	with pytest.raises(RequirementsError, match='max >= min'):
		Requirements.from_dict(dict(flat, x_range_mm=[20, -20]))
	with pytest.raises(RequirementsError):
		Requirements.from_dict(dict(flat, x_range_mm=[0]))
	with pytest.raises(RequirementsError):
		Requirements.from_dict(dict(flat, mass_kg=-1))
	with pytest.raises(RequirementsError):
		Requirements.from_dict(dict(flat, mass_kg='heavy'))
	with pytest.raises(RequirementsError):
		Requirements.from_dict([])
	with pytest.raises(RequirementsError):
		Requirements(ranges={'w': (0, 1)})

def test_load():
	text = '''
payload: {mass_kg: 2, cycle_mm: 20, frequency_hz: 1.5, cycle_axis: z}
workspace:
    x_range_mm: [-20, 20]
    y_range_mm: [-10, 10]
    z_range_mm: [-5, 15]
rotations:
    rx_range_deg: [-10, 10]
    ry_range_deg: [0, 0]
    rz_range_deg: [-30, 30]
constraints: {ball_joint_max_deg: 40, servo_max_deg: 80, rod_length_bounds_mm: [150, 300]}
'''
	requirements = Requirements.load(io.StringIO(text))
	assert requirements.summary() == Requirements.from_dict(nested).summary()
	# JSON is read too
	requirements = Requirements.load(io.StringIO('{"mass_kg": 1, "cycle_mm": 0, "frequency_hz": 0, "cycle_axis": "x", '
		'"x_range_mm": [0, 1], "y_range_mm": [0, 1], "z_range_mm": [0, 1], '
		'"rx_range_deg": [0, 1], "ry_range_deg": [0, 1], "rz_range_deg": [0, 1]}'))
	assert requirements.cycle_axis == 'x'
	with pytest.raises(RequirementsError):
		Requirements.load(io.StringIO('payload: [unclosed'))

def test_derived():
	requirements = Requirements.from_dict(flat)
	ranges = requirements.workspace_ranges()
	assert set(ranges) == set(AXES)
	assert isinstance(ranges['x'], RangeSpec)
	assert ranges['x'].step == approx(4)
	assert ranges['rz'].step == approx(6)
	# collapsed axis fall back to a default step
	assert ranges['ry'].step == 5

	space = requirements.design_space(base_radius=(50, 60))
	assert space.servo_range == approx((radians(-80), radians(80)))
	assert space.rod == (160, 420)
	assert space.base_radius == (50, 60)

def test_summary():
	summary = Requirements.from_dict(flat).summary()
	assert Requirements.from_dict(summary).summary() == summary
	assert summary['z_range_mm'] == [-5, 15]

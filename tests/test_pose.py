import numpy as np
from pytest import approx

from hexapod.mathutils import *
from hexapod.layout import LEGS, Layout
from hexapod.pose import *

from . import regular

np.random.seed(7)


def test_home_pose():
	layout = regular()
	result = evaluate_pose(layout, Pose())
	assert result.reachable
	assert not result.violations
	assert len(result.angles) == len(result.jacobian) == LEGS
	assert result.matrix().shape == (6, 6)
	# the home height closes every leg at the neutral angle
	assert result.angles == approx([0]*LEGS, abs=1e-9)
	assert result.lengths == approx([layout.rod]*LEGS)
	assert singular_values(result.matrix())[-1] > 1e-6

def test_jacobian_rows():
	layout = regular()
	pose = Pose(5, -3, 10, radians(4), radians(-2), radians(6))
	result = evaluate_pose(layout, pose)
	assert result.reachable
	rotation = pose.matrix()
	for i, row in enumerate(result.jacobian):
		point = rotation * layout.platform[i] + pose.position + vec3(0, 0, layout.home)
		direction = normalize(point - layout.base[i])
		assert row[:3] == approx(tuple(direction))
		assert row[3:] == approx(tuple(cross(point, direction)))
		assert length(vec3(row[:3])) == approx(1)

def test_rows_match_angles():
	layout = regular()
	for i in range(200):
		pose = Pose(*np.random.uniform(-60, 60, 3), *np.random.uniform(-0.6, 0.6, 3))
		result = evaluate_pose(layout, pose)
		assert len(result.jacobian) == len(result.angles) <= LEGS
		if result.reachable:
			assert len(result.angles) == LEGS
		else:
			assert result.violations

def test_invalid_geometry():
	result = evaluate_pose(regular(), Pose(z=500))
	assert not result.reachable
	assert result.violations[0].kind == INVALID_GEOMETRY
	assert result.violations[0].leg == 0
	assert result.angles == [] and result.jacobian == []

def test_servo_limit():
	layout = regular()
	result = evaluate_pose(layout, Pose(), PoseOptions(servo_range=(0.1, 0.2)))
	assert not result.reachable
	assert result.violations == [Violation(SERVO_LIMIT, 0, result.violations[0].value)]
	# the servo range of the layout is used by default
	narrow = layout.replace(servo_range=(0.1, 0.2))
	assert evaluate_pose(narrow, Pose()).violations[0].kind == SERVO_LIMIT

def test_ball_joint():
	layout = regular()
	# the rods of the reference layout are nearly orthogonal to the horns at rest
	result = evaluate_pose(layout, Pose(), PoseOptions(details=True))
	assert len(result.deflections) == LEGS
	assert all(85 < d < 90  for d in result.deflections)
	for i, leg in enumerate(result.legs):
		assert result.deflections[i] == approx(degrees(anglebt(layout.base[i] - leg.horn_tip, leg.rod)))
	assert not result.violations

	flagged = evaluate_pose(layout, Pose(), PoseOptions(ball_joint_limit=45, ball_joint_clamp=True))
	assert flagged.reachable
	assert len(flagged.violations) == LEGS
	assert all(v.kind == BALL_JOINT  for v in flagged.violations)
	assert len(flagged.jacobian) == LEGS

	rejected = evaluate_pose(layout, Pose(), PoseOptions(ball_joint_limit=45, ball_joint_clamp=False))
	assert not rejected.reachable
	assert [v.kind for v in rejected.violations] == [BALL_JOINT]
	assert rejected.jacobian == []
	assert rejected.violations[0].leg == 0
	assert rejected.violations[0].value == approx(result.deflections[0])

def test_details():
	layout = regular()
	pose = Pose(z=5, rz=0.1)
	result = evaluate_pose(layout, pose, PoseOptions(details=True))
	assert len(result.legs) == LEGS
	for i, leg in enumerate(result.legs):
		assert length(leg.rod) == approx(layout.rod, abs=1e-6)
		assert distance(leg.horn_tip, layout.base[i]) == approx(layout.horn)
		assert list(leg.point - leg.rod) == approx(list(leg.horn_tip))
	assert evaluate_pose(layout, pose).legs is None

def test_pose():
	pose = Pose(1, 2, 3, pi/2, 0, 0)
	assert list(pose) == [1, 2, 3, pi/2, 0, 0]
	assert pose == Pose(1, 2, 3, pi/2, 0, 0)
	assert pose != Pose()
	assert pose.summary()['rx'] == approx(90)

def test_degenerate_fourbar():
	reference = regular()
	# every platform point lies in the base plane, beside its servo axis and orthogonal to its horn
	platform = [p + 30*vec3(-sin(beta), cos(beta), 0)   for p, beta in zip(reference.base, reference.beta)]
	layout = Layout(reference.base, platform, reference.beta, horn=40, rod=200, home=0)
	result = evaluate_pose(layout, Pose())
	assert not result.reachable
	assert [v.kind for v in result.violations] == [DEGENERATE_FOURBAR]
	assert result.violations[0].leg == 0
	assert result.violations[0].value == approx(0, abs=1e-9)
	assert result.angles == [] and result.jacobian == []

def test_rod_length():
	layout = regular()
	result = evaluate_pose(layout, Pose(), PoseOptions(rod_tolerance=-1))
	assert not result.reachable
	assert [v.kind for v in result.violations] == [ROD_LENGTH]
	assert result.violations[0].leg == 0
	# the violation reports the achieved length
	assert result.violations[0].value == approx(layout.rod)
	assert result.angles == [] and result.lengths == [] and result.jacobian == []

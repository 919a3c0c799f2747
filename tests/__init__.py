''' shared helpers of the test suite '''

from hexapod.layout import hexagonal

def regular():
	''' the reference layout of the tests: pairs of anchors on two hexagons, nonsingular at rest '''
	return hexagonal(base_radius=100, platform_radius=70, horn=40, rod=200)

"""
Lie-group and matrix utilities.
"""

from .math_utils import *
from .lie_groups import SE2, SE3, Sim3, transform_point

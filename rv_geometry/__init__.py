"""
rv_geometry: residuals and Jacobians of Lie-group observation models and
relative pose constraints for bundle adjustment and pose-graph optimisation.
"""

__version__ = "0.1.0"

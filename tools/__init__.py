"""
Command line tools for rv-geometry.
"""

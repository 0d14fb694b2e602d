"""
Synthetic security alert generation.

Field templates are selected by context-weighted sampling, correlated for
plausibility, and overlaid onto alert skeletons from cached data pools.
"""

__version__ = "0.3.0"

"""
Cellmigration: seeded tracking of migrating cells in phase-contrast timelapses.

This package segments frames with edge-based morphology, follows user-seeded
cells by nearest centroid and derives their migration kinematics.
"""

__version__ = "0.1.0"
__author__ = "User"

from .tracker import CellTracker

__all__ = ["CellTracker", "__version__"]

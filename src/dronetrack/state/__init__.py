"""State/store layer.

This package is the single source of truth for which tracks exist: the
journey store folds reports, the evictor forgets silent tracks, and every
other component reads the snapshots they produce.
"""

"""Render layer.

Style derivation, the render surface interface, a headless in-memory surface
and the reconciler that drives surfaces through minimal diffs.
"""

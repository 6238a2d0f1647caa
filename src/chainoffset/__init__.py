"""chainoffset - Offset toolpaths for 2D geometry chains.

chainoffset computes parallel offset paths for chains of lines, arcs, circles,
polylines, elliptical arcs and NURBS splines, as used for CNC and laser
cutting. Offsets are classified to the inner/outer (or left/right) side
geometrically, trimmed to sharp corners where they overlap and extended where
they fall short.

Example:
    $ chainoffset part.json --distance 2.5

This will create part-offset.json containing the inner and outer offset
chains of every chain in part.json.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]

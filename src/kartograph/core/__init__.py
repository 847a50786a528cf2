"""
===============================================================================
KARTOGRAPH - Core Package
===============================================================================
Shared constants and stateless helpers.

Modules:
    constants   : Time units, edit step ladders, tolerances
    orbit_math  : Angle wrapping, anomaly <-> epoch conversion, radii
    formatting  : Number and duration strings for display
    lifecycle   : Visible / hidden / suspended panel state
===============================================================================
"""

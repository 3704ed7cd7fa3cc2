"""
Fixed geometry parameters for keycap generation.

All dimensions are in millimetres. Geometry is Z-up: the keycap footprint
lies in the X/Y plane and its height runs along +Z.
"""

# --- PROFILES ---

# Base height of each row profile when no override is given.
PROFILES = {
    'Cherry': {'name': 'Cherry Profile', 'base_height': 11.5, 'top_curvature': 'spherical'},
    'SA':     {'name': 'SA Profile',     'base_height': 14.5, 'top_curvature': 'cylindrical'},
    'DSA':    {'name': 'DSA Profile',    'base_height': 7.4,  'top_curvature': 'spherical'},
    'OEM':    {'name': 'OEM Profile',    'base_height': 11.9, 'top_curvature': 'cylindrical'},
}
DEFAULT_PROFILE = 'Cherry'

# --- KEY SIZES ---

# Bottom footprint (width along X, depth along Y). 1u = 18mm.
KEYCAP_SIZES = {
    '1u':        {'width': 18.0,  'depth': 18.0},
    '1.25u':     {'width': 22.5,  'depth': 18.0},
    '1.5u':      {'width': 27.0,  'depth': 18.0},
    '1.75u':     {'width': 31.5,  'depth': 18.0},
    '2u':        {'width': 36.0,  'depth': 18.0},
    '2.25u':     {'width': 40.5,  'depth': 18.0},
    '2.75u':     {'width': 49.5,  'depth': 18.0},
    '6.25u':     {'width': 112.5, 'depth': 18.0},
    '7u':        {'width': 126.0, 'depth': 18.0},
    'ISO-Enter': {'width': 22.5,  'depth': 27.0},  # rectangular approximation
}
DEFAULT_SIZE = '1u'

# --- CHERRY MX ---

CHERRY_TOP_WIDTH = 12.7    # Top face width
CHERRY_TOP_DEPTH = 12.7    # Top face depth (square on 1u)
CHERRY_DISH_DEPTH = 1.2    # Maximum sag of the concave top
CHERRY_CROSS_SIZE = 4.15   # Cross-slot arm length, tolerance included
CHERRY_CROSS_THICK = 1.35  # Cross-slot arm width
CHERRY_STEM_DEPTH = 4.0    # Cross-slot depth from the bottom
CHERRY_SMOOTH_ANGLE = 35   # Crease angle for smooth normals (degrees)

# --- DEFORMATION ---

DISH_START = 0.8       # Height fraction where the dish begins to sag in
DISH_EXPONENT = 2.2    # Shape of the dish curve

# --- PARAMETER RANGES ---

TOP_RADIUS_RANGE = (0.1, 3.0)
WALL_THICKNESS_RANGE = (0.8, 3.5)
DISH_DEPTH_RANGE = (0.0, 3.0)
EMBOSS_FONT_SIZE_RANGE = (2.0, 10.0)
EMBOSS_DEPTH_RANGE = (0.1, 2.0)

DEFAULT_TOP_RADIUS = 0.5
DEFAULT_WALL_THICKNESS = 1.5
DEFAULT_EMBOSS_FONT_SIZE = 5.0
DEFAULT_EMBOSS_DEPTH = 0.4
DEFAULT_KEYCAP_COLOR = '#ffffff'
DEFAULT_PRIMITIVE_COLOR = '#cccccc'

# --- TESSELLATION ---

PERFORMANCE_MODES = ('fast', 'balanced', 'quality')
DEFAULT_PERFORMANCE_MODE = 'balanced'
EXPORT_PERFORMANCE_MODE = 'quality'

# Millimetres per arc segment; more segments for finer modes.
SEGMENT_DIVISORS = {'fast': 4.0, 'balanced': 2.0, 'quality': 1.5}
CURVE_SEGMENTS_RANGE = (8, 32)

EXTRUDE_STEPS = {'fast': 8, 'balanced': 15, 'quality': 25}

# Concentric rings used to fill the top cap so the dish has interior vertices.
TOP_CAP_RINGS = {'fast': 3, 'balanced': 5, 'quality': 8}

# --- PRIMITIVES ---

PRIMITIVE_DEFAULTS = {
    'box':      {'width': 18.0, 'height': 11.5, 'depth': 18.0},
    'cylinder': {'radiusTop': 9.0, 'radiusBottom': 9.0, 'height': 11.5, 'radialSegments': 32},
    'sphere':   {'radius': 9.0, 'widthSegments': 32, 'heightSegments': 16},
}

# --- CACHE ---

PREVIEW_CACHE_ENTRIES = 20

# --- SCENE DOCUMENT ---

SCENE_FORMAT = 'kcs3d'
SCENE_VERSION = 1

GHOST_OPACITY = 0.25

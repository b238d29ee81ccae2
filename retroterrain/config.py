from __future__ import annotations

# App
APP_VERSION = "0.3.0"

# Window (viewer only)
WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
FPS_CAP = 60  # 0 = uncapped

# World layout
DEFAULT_WORLD_SIZE = 4  # chunks per axis
DEFAULT_CHUNK_SIZE = 8  # tiles per chunk per axis

# Height sampling
DEFAULT_HEIGHT_SCALE = 1.0
DEFAULT_SEED = 0
DEFAULT_NOISE_SCALE = 0.1
DEFAULT_NOISE = "fast"  # "fast" | "simplex"
DEFAULT_OCTAVES = 1
DEFAULT_DEBUG_RANDOM_HEIGHTS = False

# Snap heights to increments of this value (0 = no snapping)
DEFAULT_TERRACE = 0.25

# Neighbour height difference above which a tile edge is a cliff.
# Cliff edges move at most this far from the tile centre (0 = no clamping).
DEFAULT_MAX_EDGE_DELTA = 0.5

# Meshes above this vertex count need 32-bit indices
MAX_UINT16_VERTICES = 65000

# Background chunk workers (0 = build on the caller thread)
DEFAULT_WORKERS = 0

# Rendering
FOV_DEG = 60.0
NEAR = 0.1
FAR = 1000.0
FOG_START = 60.0
FOG_END = 160.0
LIGHT_DIR = (0.35, 0.9, 0.2)  # will be normalized in shader

# Orbit camera
ORBIT_PITCH = 0.75  # radians above the horizon
ORBIT_YAW_RATE = 1.2  # rad/sec
ORBIT_ZOOM_RATE = 1.5  # 1/sec
ORBIT_SMOOTH_K = 6.0

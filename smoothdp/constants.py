"""Single source of truth for default values and numerical thresholds."""

# --- Max operator defaults ---
DEFAULT_LEAK = 0.1
DEFAULT_GAMMA = 1.0
DEFAULT_OPERATOR = "entropy"

# --- DP lattice layout ---
# One row/column of padding on each side: index 0 holds the boundary,
# index n+1 / m+1 holds the terminal sentinel of the backward pass.
LATTICE_PADDING = 2
NUM_SLOTS = 3

# --- Predecessor slots ---
DTW_UP, DTW_LEFT, DTW_DIAG = 0, 1, 2
NW_DELETION, NW_MATCH, NW_INSERTION = 0, 1, 2

# --- DTW boundary policy ---
DEFAULT_DTW_BOUNDARY = "closed"

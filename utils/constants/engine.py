"""Tuning constants for the castability engine."""

STARTING_HAND_SIZE = 7

# Log-factorial tables are never smaller than this; decks up to 100 cards
# (Commander) plus headroom fit in the default table.
MIN_TABLE_SIZE = 100
DEFAULT_TABLE_SIZE = 200

# Upper bound on accelerators fed to the pairwise scenario step.
MAX_CANDIDATES = 18

KEY_ACCELERATOR_COUNT = 3

# "Earliest plausible turn" threshold used by the turn search.
DEFAULT_MIN_PROBABILITY = 0.05

# Survival used for non-creature producers that carry no survival of their own.
DEFAULT_ROCK_SURVIVAL = 0.98

DEFAULT_TABLE_MAX_TURN = 7

COLORS = ("W", "U", "B", "R", "G", "C")

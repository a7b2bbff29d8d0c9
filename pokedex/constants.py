"""
This module contains static constant definitions used throughout the core,
including:
- Input validation limits
- Stat naming for display
- User-facing messages (errors, status updates)
"""

# Input Validation
MAX_SEARCH_TERM_LENGTH = 50
MAX_ROSTER_NAME_LENGTH = 50

# Fuzzy Matching
SUGGESTION_COUNT = 3
SUGGESTION_CUTOFF = 0.6

# Stats are scaled against this for bar widths
MAX_BASE_STAT = 255

STAT_DISPLAY_NAMES = {
    "hp": "HP",
    "attack": "Attack",
    "defense": "Defense",
    "special-attack": "Sp. Atk",
    "special-defense": "Sp. Def",
    "speed": "Speed",
}

FLAVOR_TEXT_LANGUAGE = "en"

# Unit conversion for display
FEET_PER_METRE = 3.281
POUNDS_PER_KILOGRAM = 2.205

# Error Messages
# Every propagated failure is shown with this single message plus a retry action
USER_ERROR_MESSAGE = "Failed to fetch Pokémon data. Please try again later."
ERROR_EMPTY_TEAM = "Cannot save an empty team!"
ERROR_INVALID_GENERATION = "Invalid generation specified. Use 1 through {max_generation}."
ERROR_INVALID_TYPE = "Unknown type: {type_name}."

# Success Messages
SUCCESS_TEAM_SAVED = 'Team "{name}" saved successfully!'

# Info Messages
INFO_LOADING = "Loading Pokémon data..."

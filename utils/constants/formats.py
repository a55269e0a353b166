"""Format presets and the creature-removal pressure assumed for each."""

FORMAT_OPTIONS = [
    "goldfish",
    "casual_edh",
    "standard",
    "modern",
    "legacy",
    "cedh",
]

FORMAT_TITLES = {
    "goldfish": "Goldfish (no interaction)",
    "casual_edh": "Casual Commander",
    "standard": "Standard",
    "modern": "Modern",
    "legacy": "Legacy",
    "cedh": "Competitive Commander",
}

# Chance per exposed turn that an opposing removal spell kills a mana creature.
FORMAT_REMOVAL_RATES = {
    "goldfish": 0.00,
    "casual_edh": 0.10,
    "standard": 0.20,
    "modern": 0.35,
    "legacy": 0.40,
    "cedh": 0.15,
}

DEFAULT_FORMAT = "modern"

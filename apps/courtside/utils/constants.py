"""
Constants used across the session and match tracking system.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Session defaults
DEFAULT_MAX_PLAYERS = int(os.getenv("DEFAULT_MAX_PLAYERS", "8"))
DEFAULT_COURT = os.getenv("DEFAULT_COURT", "TBD")
DAYS_PER_RECURRENCE = 7  # Recurring sessions are spaced one week apart

# Skill rating bounds (self-reported)
MIN_SKILL_LEVEL = 1
MAX_SKILL_LEVEL = 10

# Stats
RECENT_FORM_LENGTH = 5  # Number of matches shown in a player's recent form

# Placeholder artwork for clubs/users created without images
DEFAULT_BANNER_URL = "https://picsum.photos/seed/badminton/800/400"
AVATAR_URL_TEMPLATE = "https://ui-avatars.com/api/?name={name}&background=random"

# Returned whenever the coaching tips provider fails or returns unusable output
FALLBACK_COACHING_TIPS = [
    "Focus on recovering to the center after every shot.",
    "Keep your racket up and ready at all times.",
    "Vary your service to keep opponents guessing.",
]

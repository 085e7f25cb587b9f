"""
Constants used across the fantasy league services.
"""

import os

# League defaults
DEFAULT_MAX_TEAMS = 20
DEFAULT_CONTESTANT_DRAFT_LIMIT = 2
MIN_TEAMS = 2
MAX_TEAMS = 20
MIN_DRAFT_LIMIT = 1
MAX_DRAFT_LIMIT = 10
LEAGUE_CODE_LENGTH = 6
LEAGUE_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# Draft defaults
DEFAULT_PICK_TIME_LIMIT = 120  # seconds
MIN_PICK_TIME_LIMIT = 30
MAX_PICK_TIME_LIMIT = 600

# Scoring
MIN_RULE_POINTS = -10
MAX_RULE_POINTS = 10
DEFAULT_EPISODE_NUMBER = 1
RECENT_EVENTS_LIMIT = 10
TOP_SCORERS_LIMIT = 5

# Notifications expire after this many hours
NOTIFICATION_TTL_HOURS = int(os.getenv("NOTIFICATION_TTL_HOURS", "24"))

# Contestant photos
MAX_PHOTO_SIZE = 5 * 1024 * 1024  # 5MB
PHOTO_OUTPUT_SIZE = 512  # 512x512 pixels
PHOTO_JPEG_QUALITY = 85
ALLOWED_PHOTO_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}

# Fixed point table for the show. Each entry: (action_type, points, description)
SCORING_CATEGORIES = [
    ("kiss_mouth", 2, "Kiss on the mouth"),
    ("rose_week", 3, "Receives a rose at the rose ceremony"),
    ("rose_one_on_one", 2, "Receives a rose on a one-on-one date"),
    ("rose_group_date", 2, "Receives a rose on a group date"),
    ("interrupt_time", 1, "Interrupts for time with the lead"),
    ("group_challenge_win", 2, "Wins a group date challenge"),
    ("wavelength_moment", 1, "Says they are on the same wavelength"),
    ("right_reasons", 1, "Mentions being here for the right reasons"),
    ("journey", 1, "Calls it a journey"),
    ("connection", 1, "Talks about their connection"),
    ("girls_girl", 1, "Says they are a girl's girl"),
    ("nudity_black_box", 2, "Blurred nudity"),
    ("fantasy_suite", 4, "Accepts the fantasy suite"),
    ("falling_for_you", 2, "Says they are falling for the lead"),
    ("i_love_you", 4, "Says I love you"),
    ("sparkles", 1, "Sparkle sound effect"),
    ("crying", -1, "Cries on camera"),
    ("medical_attention", -1, "Needs medical attention"),
    ("vomiting", -2, "Vomits on camera"),
    ("physical_altercation", -3, "Gets into a physical altercation"),
    ("significant_other", -5, "Revealed to have a significant other at home"),
]

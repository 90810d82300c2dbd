# rockmundo/config.py

# Levels & experience
EXPERIENCE_PER_LEVEL = 1000
MAX_LEVEL = 100

# Skill caps by total experience (min experience, cap), highest first
SKILL_CAPS = [
    (20000, 100),  # master
    (5000, 80),    # professional
    (1000, 50),    # amateur
    (0, 30),       # beginner
]

# Training
TRAINING_BASE_COST = 100
TRAINING_COST_GROWTH = 1.5
TRAINING_MIN_COST = 25
TRAINING_MAX_REDUCTION = 0.25

# Cooldowns (seconds)
COOLDOWNS = {
    "skill_training": 4 * 60 * 60,
    "gig_performance": 24 * 60 * 60,
    "song_recording": 2 * 60 * 60,
    "social_post": 30 * 60,
}

# Fame titles (min fame, title), highest first
FAME_TITLES = [
    (100000, "Living Legend"),
    (50000, "Global Icon"),
    (15000, "National Act"),
    (5000, "Regional Star"),
    (1000, "Known Performer"),
    (500, "Rising Artist"),
    (100, "Local Talent"),
]
FAME_TITLE_DEFAULT = "Unknown Artist"

# Attribute scores live on 0..1000
ATTRIBUTE_MAX = 1000
ATTRIBUTE_MULT_FLOOR = 0.25

# Gig performance (0..25 rating scale)
RATING_MAX = 25.0
GIG_BASE_ATTENDANCE = 0.70    # share of capacity before variance
GIG_ATTENDANCE_SWING = 0.30   # total width of the attendance roll
EQUIPMENT_WEAR_RATE = 0.02    # depreciation per gig
DEFAULT_EQUIPMENT_QUALITY = 40.0
DEFAULT_CREW_SKILL = 40.0
DEFAULT_MEMBER_SKILL = 50.0
DEFAULT_SONG_QUALITY = 500.0      # songs are rated 0..1000

# (min rating, grade), highest first
GRADE_THRESHOLDS = [
    (23.0, "S+"),
    (21.0, "S"),
    (18.0, "A"),
    (15.0, "B"),
    (12.0, "C"),
    (9.0, "D"),
]
GRADE_FLOOR = "F"

# Fan conversion
BASE_CONVERSION_RATE = 0.05
MAX_CONVERSION_RATE = 0.35
MAX_REPEAT_RATE = 0.8
GRADE_MULTIPLIERS = {
    "S+": 2.5, "S": 2.0, "A": 1.5, "B": 1.2, "C": 1.0, "D": 0.6, "F": 0.3,
}
COUNTRY_SPILLOVER_RATE = 0.10
SPILLOVER_CITY_LIMIT = 10

# Festivals
FESTIVAL_DEFAULT_PAYOUT = 5000
FESTIVAL_BASE_FAME = 500
FESTIVAL_BASE_FANS = 100
FESTIVAL_BASE_MERCH = 1000
FESTIVAL_MERCH_CUT = 0.20
PERFORMANCE_WEIGHTS = {
    "song_familiarity": 0.25,
    "gear_quality": 0.15,
    "band_chemistry": 0.20,
    "setlist_flow": 0.15,
    "crowd_management": 0.15,
    "event_responses": 0.10,
}

# Royalties & label contracts
SINGLE_QUOTA_VALUE = 5000
ALBUM_QUOTA_VALUE = 25000

# Finance
LEDGER_MONTHS = 6
MIN_HOLDING_YEARS = 1 / 12
DAYS_PER_YEAR = 365.25

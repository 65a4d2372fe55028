"""
Shared constants for HF propagation calculations.
"""

# Geometry
EARTH_RADIUS_KM = 6371.0

# Solar geometry
SOLAR_DECLINATION_MAX = 23.44  # degrees
DAY_ZENITH_LIMIT = 90.0
PATH_SAMPLES = 11

# Band table: band, center MHz, min km, max km, reliability, day factor, night factor
BAND_TABLE = [
    (160, 1.9, 0, 1000, 0.80, 0.5, 1.5),     # Regional, night band
    (80, 3.75, 0, 1500, 0.85, 0.6, 1.4),     # Regional, better at night
    (60, 5.35, 200, 2000, 0.80, 0.7, 1.3),   # Like 80m with less interference
    (40, 7.15, 500, 3000, 0.90, 1.0, 1.0),   # Day and night
    (30, 10.125, 800, 4000, 0.85, 1.0, 1.0), # Day and night, medium-long
    (20, 14.175, 1000, 12000, 0.95, 1.0, 1.0),
    (17, 18.118, 1500, 12000, 0.90, 1.4, 0.6),
    (15, 21.225, 2000, 15000, 0.85, 1.5, 0.5),
    (10, 28.85, 3000, 20000, 0.80, 1.6, 0.4),
    (6, 52.0, 5000, 25000, 0.70, 1.7, 0.3),  # Unpredictable but can be excellent
]

BAND_ORDER = [row[0] for row in BAND_TABLE]

LOW_BANDS = (160, 80, 60)
MID_BANDS = (40, 30, 20)

# Upper frequency limit (MHz) for each band, used for frequency -> band lookup
FREQUENCY_BAND_LIMITS = [
    (2.0, 160),
    (5.0, 80),
    (6.0, 60),
    (9.0, 40),
    (12.0, 30),
    (16.0, 20),
    (20.0, 17),
    (25.0, 15),
    (40.0, 10),
    (60.0, 6),
]

# Default host channel ids for each band
DEFAULT_BAND_CHANNELS = {
    160: 1, 80: 2, 60: 3, 40: 4, 30: 5,
    20: 6, 17: 7, 15: 8, 10: 9, 6: 10
}

# Signal strength model
SKIP_ZONE_STRENGTH = 0.3
OUT_OF_RANGE_STRENGTH = 0.1
JITTER_MIN = 0.8
JITTER_MAX = 1.2
SAME_BAND_THRESHOLD = 0.5
ADJACENT_BAND_THRESHOLD = 0.7

# MUF/LUF model: (distance upper bound km, base MHz)
MUF_DISTANCE_TABLE = [
    (500, 7.0),
    (1500, 14.0),
    (3000, 21.0),
    (float('inf'), 28.0),
]

LUF_DISTANCE_TABLE = [
    (500, 1.8),
    (1500, 3.5),
    (3000, 7.0),
    (float('inf'), 10.0),
]

SEASON_MUF_FACTORS = {
    'Winter': 0.8,
    'Spring': 1.1,
    'Summer': 1.2,
    'Fall': 1.0,
}

MULTI_HOP_DISTANCE_KM = 4000.0
MULTI_HOP_LOSS_PER_1000KM = 0.05
MULTI_HOP_MIN_FACTOR = 0.6

# Index ranges
SFI_MIN = 60
SFI_MAX = 300
K_INDEX_MIN = 0
K_INDEX_MAX = 9

# Feed quality labels mapped onto the 0-10 quality scale
QUALITY_LABELS = {
    'excellent': 9.0,
    'very good': 8.0,
    'good': 7.0,
    'fair': 5.0,
    'poor': 2.0,
    'closed': 0.0,
}

# API timeouts and intervals in seconds
API_TIMEOUT_DEFAULT = 10
EXTERNAL_REFRESH_DEFAULT = 1800    # 30 minutes

"""
Service-wide constants
"""

SERVICE_NAME = "qr-attendance-backend"
DEFAULT_VERSION = "1.0.0"

# Suffix rule of gate-pass matching only applies to inputs at least this long
PASS_SUFFIX_LENGTH = 6

# Late severity bands (minutes late, upper bound inclusive)
LATE_MINOR_MAX_MINUTES = 15
LATE_MAJOR_MAX_MINUTES = 30

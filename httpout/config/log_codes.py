"""
Log codes for configuration-related operations.
"""

CONFIG = "config"

# Output Configuration
OUTPUT = f"{CONFIG}.output"
OUTPUT_RESOLVED = f"{OUTPUT}.resolved"

# TLS Configuration
TLS = f"{CONFIG}.tls"
TLS_RESOLVED = f"{TLS}.resolved"
TLS_VERIFY_DISABLED = f"{TLS}.verify_disabled"

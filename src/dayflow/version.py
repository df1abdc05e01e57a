VERSION = "0.3.0"

# Bump when the persisted TaskBoard layout changes.
APP_SCHEMA_VERSION = "0.3.0"

from __future__ import annotations

CONFIG_FILE = "lab_power.ini"
LOGGER_NAME = "lab_power"

# Serial framing of the KA3005 family
BAUDRATE = 9600
BYTESIZE = 8
STOPBITS = 1
PARITY = "N"
READ_TIMEOUT_S = 0.1
WRITE_TIMEOUT_S = 1.0

# The supply drops commands that arrive closer than this
MIN_PACING_MS = 50
PACING_MS = 50
POLL_DELAY_MS = 500
POLL_PERIOD_MS = 1000
ERROR_THRESHOLD = 5
READ_ATTEMPTS = 3

MAX_VOLTAGE = 31.0
MAX_CURRENT = 5.1
VOLTAGE_RESOLUTION = 0.01
CURRENT_RESOLUTION = 0.001

LOG_FILE = "lab_power.log"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

from __future__ import annotations

from .common import *
from .constants import CONFIG_FILE


@dataclass
class CommSettings:
    """Serial framing, timing and protocol policy of one connection."""

    baudrate: int = BAUDRATE
    bytesize: int = BYTESIZE
    parity: str = PARITY
    stopbits: int = STOPBITS
    read_timeout_s: float = READ_TIMEOUT_S
    write_timeout_s: float = WRITE_TIMEOUT_S
    pacing_ms: int = PACING_MS
    poll_delay_ms: int = POLL_DELAY_MS
    poll_period_ms: int = POLL_PERIOD_MS
    error_threshold: int = ERROR_THRESHOLD
    read_attempts: int = READ_ATTEMPTS
    max_voltage: float = MAX_VOLTAGE
    max_current: float = MAX_CURRENT
    log_level: str = "INFO"
    log_dir: str = "logs"

    def __post_init__(self):
        # The supply loses commands below this spacing
        self.pacing_ms = max(MIN_PACING_MS, int(self.pacing_ms))
        self.poll_period_ms = max(1, int(self.poll_period_ms))
        self.poll_delay_ms = max(0, int(self.poll_delay_ms))
        self.error_threshold = max(1, int(self.error_threshold))
        self.read_attempts = max(1, int(self.read_attempts))

    def open_kwargs(self) -> dict:
        return {
            "bytesize": self.bytesize,
            "parity": self.parity,
            "stopbits": self.stopbits,
            "timeout": self.read_timeout_s,
            "write_timeout": self.write_timeout_s,
        }


class ConfigManager:
    """INI configuration reader. The file is never written back."""

    def __init__(self, config_file: Optional[str] = None):
        self.config = configparser.ConfigParser()
        self.config_file = config_file or CONFIG_FILE

    def load_config(self):
        """Load defaults, then overlay the file when it exists."""
        self.create_default_config()
        if os.path.exists(self.config_file):
            self.config.read(self.config_file, encoding='utf-8')
            logger.info(f"Config loaded from {self.config_file}")
        else:
            logger.info(f"No config file at {self.config_file}, using defaults")
        return self.config

    def create_default_config(self):
        """Populate the parser with the built-in defaults (nothing is written)."""
        self.config['Serial'] = {
            'baudrate': str(BAUDRATE),
            'bytesize': str(BYTESIZE),
            'parity': PARITY,
            'stopbits': str(STOPBITS),
            'read_timeout_s': str(READ_TIMEOUT_S),
            'write_timeout_s': str(WRITE_TIMEOUT_S),
        }

        self.config['Timing'] = {
            'pacing_ms': str(PACING_MS),
            'poll_delay_ms': str(POLL_DELAY_MS),
            'poll_period_ms': str(POLL_PERIOD_MS),
        }

        self.config['Protocol'] = {
            'error_threshold': str(ERROR_THRESHOLD),
            'read_attempts': str(READ_ATTEMPTS),
        }

        # Slider ranges of the front panel
        self.config['Limits'] = {
            'max_voltage': str(MAX_VOLTAGE),
            'max_current': str(MAX_CURRENT),
        }

        self.config['Logging'] = {
            'level': 'INFO',
            'log_dir': 'logs',
        }

    def load_settings(self) -> CommSettings:
        cfg = self.load_config()
        try:
            return CommSettings(
                baudrate=cfg.getint('Serial', 'baudrate'),
                bytesize=cfg.getint('Serial', 'bytesize'),
                parity=cfg.get('Serial', 'parity').strip().upper(),
                stopbits=cfg.getint('Serial', 'stopbits'),
                read_timeout_s=cfg.getfloat('Serial', 'read_timeout_s'),
                write_timeout_s=cfg.getfloat('Serial', 'write_timeout_s'),
                pacing_ms=cfg.getint('Timing', 'pacing_ms'),
                poll_delay_ms=cfg.getint('Timing', 'poll_delay_ms'),
                poll_period_ms=cfg.getint('Timing', 'poll_period_ms'),
                error_threshold=cfg.getint('Protocol', 'error_threshold'),
                read_attempts=cfg.getint('Protocol', 'read_attempts'),
                max_voltage=cfg.getfloat('Limits', 'max_voltage'),
                max_current=cfg.getfloat('Limits', 'max_current'),
                log_level=cfg.get('Logging', 'level').strip().upper(),
                log_dir=cfg.get('Logging', 'log_dir').strip(),
            )
        except ValueError as e:
            raise LabPowerError(f"Invalid value in {self.config_file}: {e}") from e

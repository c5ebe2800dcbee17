"""
Take-profit ledger constants.

Tick-math bounds, accounting units and environment-driven settings. The
environment part is read once from ``.env``; each value is exposed as a
module attribute that remembers its built-in default (``LOG_LEVEL.default()``).
"""
import ast
from decimal import Decimal

from dotenv import dotenv_values

# -----------------------------------------------------------------------------
# Environment settings (.env)
# -----------------------------------------------------------------------------
_env = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                 'INFO',
    'LOG_FORMAT':                '%(asctime)s %(levelname)-8s %(name)s | %(message)s',
    'LOG_DATE_FORMAT':           '%Y-%m-%d %H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':  'true',
    'LOG_FILE_OUTPUT':           'false',
}

LEDGER_DEFAULTS = {
    'TAKEPROFIT_CROSSING_MODE':    'single',
    'TAKEPROFIT_CUSTODY_ADDRESS':  'takeprofit-ledger',
}

# Rotating log file: 5 MiB per file, 3 backups
LOG_MAX_FILE_SIZE = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


# -----------------------------------------------------------------------------
# Tick math
# -----------------------------------------------------------------------------
# Uniswap V3 bounds; sqrt ratios are Q64.96 fixed point
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = Decimal("4295128739")
MAX_SQRT_RATIO = Decimal("1461446703485210103287273052203988822378723970342")


# -----------------------------------------------------------------------------
# Ledger accounting
# -----------------------------------------------------------------------------
# Proportional payouts are rounded down to this unit
AMOUNT_QUANTUM = Decimal("0.00000001")

CROSSING_MODE_SINGLE = "single"
CROSSING_MODE_RANGE = "range"
CROSSING_MODES = (CROSSING_MODE_SINGLE, CROSSING_MODE_RANGE)

ORDER_KEY_DOMAIN = b"TAKEPROFIT_ORDER_V1"


# -----------------------------------------------------------------------------
# Settings values
# -----------------------------------------------------------------------------
class ConfigString(str):
    """A str setting that also carries its built-in default."""

    def __new__(cls, value, default):
        self = super().__new__(cls, value)
        self._default = default
        return self

    def default(self):
        return self._default


class ConfigBool(int):
    """A boolean setting (int-backed, like bool) that also carries its built-in default."""

    def __new__(cls, value, default):
        self = super().__new__(cls, 1 if value else 0)
        self._default = default
        return self

    def default(self):
        return self._default

    def __bool__(self):
        return int(self) == 1

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__

    def __str__(self):
        return "True" if self else "False"

    __repr__ = __str__


def parse_bool(raw):
    """Map "true"/"false" in any case to a bool; any other value is returned as is."""
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return ast.literal_eval(raw.strip().capitalize())
    return raw


def _publish(defaults):
    module = globals()
    for name, fallback in defaults.items():
        raw = _env.get(name)
        chosen = fallback if raw is None else raw
        parsed, parsed_default = parse_bool(chosen), parse_bool(fallback)
        if isinstance(parsed, bool):
            module[name] = ConfigBool(parsed, parsed_default)
        else:
            module[name] = ConfigString(chosen, parsed_default)


_publish({**LOGGER_DEFAULTS, **LEDGER_DEFAULTS})

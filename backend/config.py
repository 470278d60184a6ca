import os


def _flag(name, default='0'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///decode_daily.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Where persisted overrides, completion, tier and scores live: 'sql' or 'memory'
    KEY_VALUE_BACKEND = os.environ.get('KEY_VALUE_BACKEND', 'sql')
    # Bundled catalogs; unset means the package's data directory
    CATALOG_DIR = os.environ.get('CATALOG_DIR')
    # Round clock (ticks / seconds)
    COUNTDOWN_TICKS = int(os.environ.get('COUNTDOWN_TICKS', '3'))
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '1'))
    ANAGRAMS_DURATION_SEC = int(os.environ.get('ANAGRAMS_DURATION_SEC', '60'))
    FLASHDANCE_DURATION_SEC = int(os.environ.get('FLASHDANCE_DURATION_SEC', '30'))
    FINISHED_ROUND_LIMIT = int(os.environ.get('FINISHED_ROUND_LIMIT', '20'))
    # Puzzle shape
    DECODE_MAX_ATTEMPTS = int(os.environ.get('DECODE_MAX_ATTEMPTS', '7'))
    DECODE_NUM_PEGS = int(os.environ.get('DECODE_NUM_PEGS', '5'))
    DECODE_NUM_COLORS = int(os.environ.get('DECODE_NUM_COLORS', '6'))
    ANAGRAMS_WORDS_PER_SET = int(os.environ.get('ANAGRAMS_WORDS_PER_SET', '10'))
    FLASHDANCE_EQUATIONS_PER_SET = int(os.environ.get('FLASHDANCE_EQUATIONS_PER_SET', '20'))
    # Archive window used when a catalog is empty (days)
    ARCHIVE_FALLBACK_DAYS = int(os.environ.get('ARCHIVE_FALLBACK_DAYS', '30'))
    # Day rollover poll (sec)
    DAILY_CHECK_INTERVAL_SEC = float(os.environ.get('DAILY_CHECK_INTERVAL_SEC', '10'))
    # Raise on out-of-range score inputs instead of clamping them
    STRICT_SCORE_INPUTS = _flag('STRICT_SCORE_INPUTS')
    # Background tick workers; tests turn these off and tick by hand
    ENABLE_ROUND_TIMERS = _flag('ENABLE_ROUND_TIMERS', '1')
    # Optional: heartbeat interval for timer worker logs (ticks). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))

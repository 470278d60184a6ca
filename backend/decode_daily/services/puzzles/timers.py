import logging
import threading
from typing import Set

from decode_daily import socketio

logger = logging.getLogger(__name__)

_ticking_rounds: Set[str] = set()
_cancelled_rounds: Set[str] = set()
_ticking_lock = threading.Lock()
_daily_check_started = False


def schedule_round_ticker(app, round_id: str) -> bool:
    """Drive one-second ticks for a round until it is over or cancelled.

    - No-ops when ENABLE_ROUND_TIMERS is off (tests drive ticks directly)
    - Ensures a single ticker per round
    - Each tick runs inside an app context and pushes a round_update
    """
    if not app.config.get('ENABLE_ROUND_TIMERS', True):
        return False

    with _ticking_lock:
        if round_id in _ticking_rounds:
            logger.info(f"[timer-skip] round={round_id} already ticking")
            return False
        _ticking_rounds.add(round_id)
        _cancelled_rounds.discard(round_id)

    interval = float(app.config.get('TICK_INTERVAL_SEC', 1))
    heartbeat = int(app.config.get('TIMER_HEARTBEAT_SEC', 0) or 0)
    logger.info(f"[timer-set] round={round_id} interval={interval}s")

    def _worker(rid: str):
        ticks = 0
        try:
            while True:
                socketio.sleep(interval)
                if rid in _cancelled_rounds:
                    logger.info(f"[timer-abort] round={rid} cancelled")
                    return
                with app.app_context():
                    from decode_daily import get_services
                    sessions = get_services(app).sessions
                    current = sessions.find_round(rid)
                    if current is None or current.game_over:
                        logger.info(f"[timer-stop] round={rid} finished or released")
                        return
                    sessions.tick(rid)
                ticks += 1
                if heartbeat > 0 and ticks % heartbeat == 0:
                    logger.info(f"[timer-heartbeat] round={rid} ticks={ticks}")
        finally:
            with _ticking_lock:
                _ticking_rounds.discard(rid)
                _cancelled_rounds.discard(rid)

    socketio.start_background_task(_worker, round_id)
    return True


def cancel_round_ticker(round_id: str) -> None:
    with _ticking_lock:
        if round_id in _ticking_rounds:
            _cancelled_rounds.add(round_id)


def is_ticking(round_id: str) -> bool:
    with _ticking_lock:
        return round_id in _ticking_rounds and round_id not in _cancelled_rounds


def start_daily_check(app) -> bool:
    """Poll for a day rollover every DAILY_CHECK_INTERVAL_SEC, outside tests."""
    global _daily_check_started
    if app.config.get('TESTING'):
        return False
    with _ticking_lock:
        if _daily_check_started:
            return False
        _daily_check_started = True

    interval = float(app.config.get('DAILY_CHECK_INTERVAL_SEC', 10))
    logger.info(f"[daily-check-set] interval={interval}s")

    def _worker():
        while True:
            socketio.sleep(interval)
            with app.app_context():
                from decode_daily import get_services
                get_services(app).sessions.check_for_new_day()

    socketio.start_background_task(_worker)
    return True

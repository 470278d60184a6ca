from flask_socketio import join_room, leave_room, emit
from flask import request
from decode_daily import socketio, get_services
from decode_daily.services.puzzles.errors import RoundNotFoundError
from decode_daily.services.puzzles.timers import cancel_round_ticker
from typing import Dict, Any

DEVICE_ROOM = 'device'
ROUND_EVENTS = ('round_update', 'round_over', 'round_abandoned')

_sid_to_round: Dict[str, str] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore


def _round_room(round_id: str) -> str:
    return f"round:{round_id}"


def forward_events(event: str, payload: Dict[str, Any]) -> None:
    """EventHub subscriber: push domain events to connected clients on /ws."""
    if event in ROUND_EVENTS:
        round_id = payload.get('roundId') or payload.get('id')
        socketio.emit(event, payload, to=_round_room(round_id), namespace='/ws')
        if event == 'round_update':
            return
    socketio.emit(event, payload, to=DEVICE_ROOM, namespace='/ws')


def handle_connect():
    join_room(DEVICE_ROOM)
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    # The socket that owns a round takes it down with it
    round_id = _sid_to_round.pop(_get_sid(), None)
    if not round_id:
        return
    cancel_round_ticker(round_id)
    sessions = get_services().sessions
    try:
        sessions.abandon_round(round_id)
    except RoundNotFoundError:
        return
    sessions.release_round(round_id)


def handle_join_round(data):
    round_id = (data or {}).get('round_id')
    if not round_id:
        emit('error', {'message': 'round_id is required'})
        return
    try:
        state = get_services().sessions.round_state(round_id)
    except RoundNotFoundError:
        emit('error', {'message': f'Round {round_id} not found'})
        return
    room = _round_room(round_id)
    join_room(room)
    _sid_to_round[_get_sid()] = round_id
    emit('joined', {'room': room, 'round': state})


def handle_leave_round(data):
    round_id = (data or {}).get('round_id')
    if not round_id:
        emit('error', {'message': 'round_id is required'})
        return
    room = _round_room(round_id)
    leave_room(room)
    if _sid_to_round.get(_get_sid()) == round_id:
        _sid_to_round.pop(_get_sid(), None)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_round': handle_join_round,
        'leave_round': handle_leave_round,
        'ping': handle_ping,
    }
    for name, handler in handlers.items():
        socketio.on_event(name, handler, namespace='/ws')
        if testing:
            socketio.on_event(name, handler, namespace='/')

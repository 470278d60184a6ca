from flask import Blueprint, jsonify, request, current_app

from decode_daily import get_services
from decode_daily.services.puzzles import dates
from decode_daily.services.puzzles.access import AccessTier
from decode_daily.services.puzzles.errors import (
    ArchiveAccessDeniedError,
    InvalidScoreInputError,
    RoundNotFoundError,
    RoundStateError,
    UnknownGameError,
)
from decode_daily.services.puzzles.sessions import ROUND_ACTIONS
from decode_daily.services.puzzles.timers import cancel_round_ticker, schedule_round_ticker


puzzles = Blueprint('puzzles', __name__)


@puzzles.errorhandler(UnknownGameError)
def _unknown_game(exc):
    return jsonify({'error': f"Unknown game {exc.args[0]!r}"}), 404


@puzzles.errorhandler(RoundNotFoundError)
def _round_not_found(exc):
    return jsonify({'error': f"Round {exc.args[0]} not found"}), 404


@puzzles.errorhandler(ArchiveAccessDeniedError)
def _access_denied(exc):
    return jsonify({'error': str(exc), 'tier': exc.tier, 'dayKey': exc.day_key}), 403


@puzzles.errorhandler(RoundStateError)
def _round_state(exc):
    return jsonify({'error': str(exc)}), 409


@puzzles.errorhandler(InvalidScoreInputError)
def _invalid_score(exc):
    current_app.logger.error(f"[score-invalid] {exc}")
    return jsonify({'error': str(exc)}), 400


def _sessions():
    return get_services().sessions


def _limit(default):
    try:
        return max(0, int(request.args.get('limit', default)))
    except (TypeError, ValueError):
        return default


def _records(records):
    return jsonify([r.to_dict() for r in records])


# -------------------------
# Games and puzzles
# -------------------------

@puzzles.route('/games', methods=['GET'])
def list_games():
    return jsonify(_sessions().games())


@puzzles.route('/puzzles/<string:game_id>/range', methods=['GET'])
def puzzle_range(game_id):
    services = get_services()
    services.sessions.check_game(game_id)
    earliest, latest = services.selector.date_range(game_id)
    return jsonify({
        'gameId': game_id,
        'earliest': dates.day_key(earliest),
        'latest': dates.day_key(latest),
        'availableDates': [dates.day_key(d) for d in services.selector.available_dates(game_id)],
    })


@puzzles.route('/puzzles/<string:game_id>/<string:day>', methods=['GET'])
def get_puzzle(game_id, day):
    try:
        payload = _sessions().puzzle_for(game_id, day)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(payload)


@puzzles.route('/archive/<string:game_id>', methods=['GET'])
def archive(game_id):
    services = get_services()
    return jsonify({
        'gameId': game_id,
        'tier': services.subscription.current_tier.value,
        'days': services.sessions.archive_days(game_id),
    })


@puzzles.route('/completion/<string:game_id>/<string:day>', methods=['GET'])
def completion(game_id, day):
    services = get_services()
    services.sessions.check_game(game_id)
    try:
        key = services.sessions.resolve_day(day)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    completed = services.completion.is_completed(game_id, key)
    return jsonify({'gameId': game_id, 'dayKey': key, 'completed': completed, 'scored': not completed})


# -------------------------
# Rounds
# -------------------------

@puzzles.route('/rounds', methods=['POST'])
def start_round():
    data = request.get_json(silent=True) or {}
    game_id = data.get('gameId')
    if not game_id:
        return jsonify({'error': 'gameId is required'}), 400
    try:
        current, scored = _sessions().start_round(game_id, data.get('date'))
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    schedule_round_ticker(current_app._get_current_object(), current.id)
    return jsonify({
        'round': _sessions().round_state(current.id),
        'scored': scored,
        'message': 'Play for score' if scored else 'Already played today: replay without score',
    }), 201


@puzzles.route('/rounds/<string:round_id>', methods=['GET'])
def get_round(round_id):
    return jsonify(_sessions().round_state(round_id))


@puzzles.route('/rounds/<string:round_id>/tick', methods=['POST'])
def tick_round(round_id):
    _sessions().tick(round_id)
    return jsonify(_sessions().round_state(round_id))


@puzzles.route('/rounds/<string:round_id>/pause', methods=['POST'])
def pause_round(round_id):
    _sessions().pause(round_id)
    return jsonify(_sessions().round_state(round_id))


@puzzles.route('/rounds/<string:round_id>/resume', methods=['POST'])
def resume_round(round_id):
    _sessions().resume(round_id)
    return jsonify(_sessions().round_state(round_id))


@puzzles.route('/rounds/<string:round_id>/abandon', methods=['POST'])
def abandon_round(round_id):
    abandoned = _sessions().abandon_round(round_id)
    cancel_round_ticker(round_id)
    payload = _sessions().round_state(round_id)
    payload['abandoned'] = abandoned
    _sessions().release_round(round_id)
    return jsonify(payload)


def _action_args(action, data):
    """Pull the action's argument out of the request body."""
    if action == 'guess':
        pegs = data.get('pegs')
        if not isinstance(pegs, list):
            raise ValueError('pegs must be a list of colors')
        return [[int(p) for p in pegs]]
    field = {'letter': 'index', 'remove': 'position', 'answer': 'value'}.get(action)
    if field is None:
        return []
    if field not in data:
        raise ValueError(f"{field} is required")
    return [int(data[field])]


@puzzles.route('/rounds/<string:round_id>/<string:action>', methods=['POST'])
def round_action(round_id, action):
    if action not in ROUND_ACTIONS:
        return jsonify({'error': f"Unknown action {action!r}"}), 404
    data = request.get_json(silent=True) or {}
    try:
        args = _action_args(action, data)
    except (TypeError, ValueError) as exc:
        return jsonify({'error': str(exc)}), 400
    _, result = _sessions().perform(round_id, action, *args)
    payload = _sessions().round_state(round_id)
    if result is not None:
        payload['result'] = result
    return jsonify(payload)


# -------------------------
# Scores
# -------------------------

@puzzles.route('/scores', methods=['GET'])
def list_scores():
    game_id = request.args.get('gameId')
    if game_id:
        _sessions().check_game(game_id)
    return _records(get_services().scores.query(game_id))


@puzzles.route('/scores/top', methods=['GET'])
def top_scores():
    return _records(get_services().scores.top_n(_limit(10)))


@puzzles.route('/scores/recent', methods=['GET'])
def recent_scores():
    return _records(get_services().scores.recent(_limit(5)))


@puzzles.route('/scores/week', methods=['GET'])
def week_scores():
    return _records(get_services().scores.last_week())


@puzzles.route('/scores/day/<string:day>', methods=['GET'])
def scores_for_day(day):
    game_id = request.args.get('gameId')
    try:
        key = _sessions().resolve_day(day)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return _records(get_services().scores.for_day(key, game_id))


@puzzles.route('/scores/<string:game_id>/latest', methods=['GET'])
def latest_score(game_id):
    _sessions().check_game(game_id)
    record = get_services().scores.most_recent_score(game_id)
    if record is None:
        return jsonify({'error': f"No scores for {game_id} yet"}), 404
    return jsonify(record.to_dict())


# -------------------------
# Subscription
# -------------------------

def _tier_payload(tier):
    allowed = tier.archive_days_allowed
    return {
        'tier': tier.value,
        'displayName': tier.display_name,
        'archiveDaysAllowed': None if allowed == float('inf') else int(allowed),
    }


@puzzles.route('/subscription', methods=['GET'])
def get_subscription():
    return jsonify(_tier_payload(get_services().subscription.current_tier))


@puzzles.route('/subscription', methods=['PUT'])
def update_subscription():
    data = request.get_json(silent=True) or {}
    if 'tier' not in data:
        return jsonify({'error': 'tier is required'}), 400
    try:
        tier = AccessTier.parse(data['tier'])
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(_tier_payload(get_services().subscription.update_tier(tier)))

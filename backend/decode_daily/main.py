from flask import Blueprint, jsonify

from decode_daily import get_services
from decode_daily.services.puzzles import dates

main = Blueprint('main', __name__)


@main.route('/')
def index():
    services = get_services()
    return jsonify({
        'name': 'decode-daily',
        'today': dates.day_key(services.clock()),
        'games': [g['id'] for g in services.sessions.games()],
    })


@main.route('/health')
def health():
    services = get_services()
    return jsonify({
        'status': 'ok',
        'catalogs': {game_id: len(catalog) for game_id, catalog in services.catalogs.items()},
        'activeRounds': len(services.sessions.active_rounds()),
    })

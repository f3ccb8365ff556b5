from flask import Blueprint, jsonify, request
import random
import string

from xword import event_log, sessions
from xword.errors import GameEventError
from xword.models import GID_MAX_LENGTH, GameEventRecord, normalize_gid
from xword.services.stats import solve_summary

games = Blueprint('games', __name__)


def generate_gid(length=6):
    """Generate a unique, short game id."""
    while True:
        code = ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))
        if not GameEventRecord.query.filter_by(gid=code).first():
            return code


@games.errorhandler(GameEventError)
def handle_rejected_event(exc):
    return jsonify(exc.to_dict()), exc.status_code


@games.route('/create', methods=['POST'])
def create_game():
    """
    Starts a game from inline puzzle content by proposing its create event.
    """
    data = request.get_json(silent=True) or {}
    puzzle = data.get('puzzle')
    if not isinstance(puzzle, dict):
        return jsonify({'error': 'puzzle is required'}), 400
    puzzle = dict(puzzle)
    # Stored puzzles keep the answer grid under `grid`
    if 'solution' not in puzzle and 'grid' in puzzle:
        puzzle['solution'] = puzzle.pop('grid')

    if data.get('gid') is None:
        gid = generate_gid()
    else:
        gid = normalize_gid(data['gid'])
        if gid is None:
            return jsonify({'error': f'gid must be a non-empty string of at most {GID_MAX_LENGTH} characters'}), 400
    if event_log.exists(gid):
        return jsonify({'error': f'Game {gid} already exists'}), 409

    ordered = sessions.propose(gid, {
        'type': 'create',
        'params': {'pid': data.get('pid'), 'version': 1.0, 'game': puzzle},
    })
    return jsonify({
        'message': 'New game created!',
        'gid': gid,
        'seq': ordered['seq'],
    }), 201


@games.route('/<string:gid>/info', methods=['GET'])
def get_game_info(gid):
    info = event_log.game_info(gid)
    if info is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'gid': gid, **info})


@games.route('/<string:gid>/state', methods=['GET'])
def get_game_state(gid):
    head = event_log.head(gid)
    if head < 0:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'gid': gid, 'head': head, 'state': event_log.current_state(gid)})


@games.route('/<string:gid>/events', methods=['GET'])
def get_game_events(gid):
    from_seq = request.args.get('from', 0, type=int)
    events = list(event_log.replay(gid, from_seq))
    return jsonify({'gid': gid, 'events': events})


@games.route('/<string:gid>/events', methods=['POST'])
def propose_game_event(gid):
    if normalize_gid(gid) != gid:
        return jsonify({'error': f'gid must be at most {GID_MAX_LENGTH} characters'}), 400
    data = request.get_json(silent=True) or {}
    if 'event' not in data:
        return jsonify({'error': 'event is required'}), 400
    ordered = sessions.propose(gid, data['event'])
    return jsonify(ordered), 201


@games.route('/<string:gid>/stats', methods=['GET'])
def get_game_stats(gid):
    if not event_log.exists(gid):
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(solve_summary(event_log, gid))

"""The event catalogue: one pure reducer per event type.

A reducer takes `(state, params, timestamp)` and returns the next state.
When an event can't legally apply (unknown user, team without a grid,
a reveal scope that isn't exactly one cell, ...) the reducer returns the
state object it was given, unchanged. That's the only "failure" mode;
reducers don't raise on well-typed params and never mutate their input.

`reduce` dispatches a whole event through `REDUCERS`; `fold` replays an
ordered sequence of events from the empty state.
"""
import logging

from xword.game import grid as geometry
from xword.game.state import (
    assoc,
    get_cell,
    initial_clock,
    initial_state,
    new_team,
    new_user,
    set_cell,
    update,
    update_cell,
)

logger = logging.getLogger(__name__)

SPECTATOR_TEAM_IDS = (None, '', '0')


# ---- helpers ----

def _with_game(state, **changes):
    return assoc(state, 'game', update(state['game'], **changes))


def _with_user(state, user_id, user):
    return assoc(state, 'users', assoc(state['users'], user_id, user))


def _blank_visibility(clues):
    return {direction: [False] * len(clues.get(direction) or []) for direction in geometry.DIRECTIONS}


def _show_clue(flags, number):
    if number is None or number >= len(flags) or flags[number]:
        return flags
    flags = list(flags)
    flags[number] = True
    return flags


def _scope_cells(state, params, user):
    return geometry.resolve_scope(
        state['game']['grid'],
        params.get('scope'),
        cursor=user.get('cursor'),
        direction=params.get('direction') or 'across',
    )


def _unique(cells):
    seen = set()
    result = []
    for cell in cells:
        key = (cell['r'], cell['c'])
        if key not in seen:
            seen.add(key)
            result.append(cell)
    return result


def _new_team_grid(game):
    # Cells already solved on the shared grid start solved
    grid = geometry.make_grid(game['solution'])
    for r, row in enumerate(game['grid']):
        for c, cell in enumerate(row):
            if cell['good']:
                grid = set_cell(grid, r, c, dict(cell))
    return grid


def _team_player(state, user_id):
    """Return (user, team_id) when the user exists and plays for a team with a grid."""
    user = state['users'].get(user_id)
    if not user or not user.get('teamId') or not state['game']:
        return None, None
    team_id = user['teamId']
    if team_id not in state['teams'] or team_id not in state['game']['teamGrids']:
        return None, None
    return user, team_id


def _pause_clock(clock, timestamp):
    if clock['paused']:
        return clock
    now = clock['lastUpdated'] if timestamp is None else timestamp
    return {
        'lastUpdated': now,
        'totalTime': clock['totalTime'] + max(0, now - clock['lastUpdated']),
        'paused': True,
    }


def _solve_cell(state, r, c, user_id, team_id, revealed=False):
    """Mark one cell correct on every grid and score it for the user and team.

    Grids where the cell is already good keep their own solver. Only the
    acting team gets the clue visibility and the point.
    """
    game = state['game']
    changes = {
        'value': game['solution'][r][c],
        'good': True,
        'bad': False,
        'pencil': False,
        'solvedBy': {'id': user_id, 'teamId': team_id},
    }
    if revealed:
        changes['revealed'] = True

    parents = game['grid'][r][c]['parents']
    visibility = game['teamClueVisibility'].get(team_id) or _blank_visibility(game['clues'])
    shared = game['grid']
    if not shared[r][c]['good']:
        shared = update_cell(shared, r, c, **changes)

    state = _with_game(
        state,
        grid=shared,
        teamGrids={
            tid: grid if grid[r][c]['good'] else update_cell(grid, r, c, **changes)
            for tid, grid in game['teamGrids'].items()
        },
        teamClueVisibility=assoc(game['teamClueVisibility'], team_id, {
            direction: _show_clue(visibility[direction], parents[direction])
            for direction in geometry.DIRECTIONS
        }),
    )
    user = state['users'][user_id]
    team = state['teams'][team_id]
    return update(
        state,
        users=assoc(state['users'], user_id, update(user, score=user['score'] + 1)),
        teams=assoc(state['teams'], team_id, update(team, score=team['score'] + 1)),
    )


def _finish_if_solved(state, timestamp):
    game = state['game']
    if game['solved']:
        return state
    if any(not cell['good'] for row in game['grid'] for cell in row if not cell['black']):
        return state
    return _with_game(state, solved=True, clock=_pause_clock(game['clock'], timestamp))


# ---- reducers ----

def create(state, params, timestamp=None):
    puzzle = params['game']
    solution = [list(row) for row in puzzle['solution']]
    grid = geometry.make_grid(solution)
    new_state = initial_state()
    new_state['game'] = {
        'pid': params.get('pid'),
        'info': dict(puzzle.get('info') or {}),
        'grid': grid,
        'solution': solution,
        'clues': geometry.align_clues(grid, puzzle.get('clues')),
        'circles': geometry.parse_circles(puzzle.get('circles'), len(solution), len(solution[0])),
        'teamGrids': {},
        'teamClueVisibility': {},
        'clock': initial_clock(),
        'solved': False,
    }
    new_state['loaded'] = True
    return new_state


def update_cell_value(state, params, timestamp=None):
    user = state['users'].get(params['id'])
    if not user or not state['game']:
        return state
    r, c = params['cell']['r'], params['cell']['c']
    team_id = user.get('teamId')
    game = state['game']
    target = game['teamGrids'].get(team_id) if team_id else game['grid']
    cell = get_cell(target, r, c)
    if cell is None or cell['black'] or cell['good']:
        return state

    value = params['value']
    pencil = bool(params.get('pencil'))
    if cell['value'] != value or cell['pencil'] != pencil or cell['bad']:
        target = update_cell(target, r, c, value=value, pencil=pencil, bad=False)
        if team_id:
            state = _with_game(state, teamGrids=assoc(game['teamGrids'], team_id, target))
        else:
            state = _with_game(state, grid=target)

    if params.get('autocheck') and team_id and value:
        state = check(state, {'id': params['id'], 'scope': [{'r': r, 'c': c}]}, timestamp)
    return state


def update_cursor(state, params, timestamp=None):
    user = state['users'].get(params['id'])
    if not user:
        return state
    cursor = {'r': params['cell']['r'], 'c': params['cell']['c'], 'timestamp': timestamp}
    return _with_user(state, params['id'], update(user, cursor=cursor))


def add_ping(state, params, timestamp=None):
    user = state['users'].get(params['id'])
    if not user:
        return state
    ping = {'r': params['cell']['r'], 'c': params['cell']['c'], 'timestamp': timestamp}
    return _with_user(state, params['id'], update(user, ping=ping))


def update_display_name(state, params, timestamp=None):
    user_id = params['id']
    user = state['users'].get(user_id)
    if user and user['displayName'] == params['displayName']:
        return state
    return _with_user(state, user_id, update(user or new_user(user_id), displayName=params['displayName']))


def update_color(state, params, timestamp=None):
    user_id = params['id']
    user = state['users'].get(user_id)
    if user and user['color'] == params['color']:
        return state
    return _with_user(state, user_id, update(user or new_user(user_id), color=params['color']))


def update_clock(state, params, timestamp=None):
    game = state['game']
    if not game:
        return state
    clock = game['clock']
    now = clock['lastUpdated'] if timestamp is None else timestamp
    action = params['action']
    if action == 'start':
        if not clock['paused']:
            return state
        clock = {'lastUpdated': now, 'totalTime': clock['totalTime'], 'paused': False}
    elif action == 'pause':
        if clock['paused']:
            return state
        clock = _pause_clock(clock, now)
    elif action == 'reset':
        clock = {'lastUpdated': now, 'totalTime': 0, 'paused': True}
    else:
        return state
    return _with_game(state, clock=clock)


def _check_cell(state, r, c, user_id, team_id):
    game = state['game']
    team_grid = game['teamGrids'][team_id]
    cell = get_cell(team_grid, r, c)
    if cell is None or cell['black'] or cell['good'] or not cell['value']:
        return state
    if cell['value'] == game['solution'][r][c]:
        return _solve_cell(state, r, c, user_id, team_id)

    state = _with_game(state, teamGrids=assoc(game['teamGrids'], team_id, update_cell(team_grid, r, c, bad=True, good=False)))
    user = state['users'][user_id]
    team = state['teams'][team_id]
    return update(
        state,
        users=assoc(state['users'], user_id, update(user, misses=user['misses'] + 1)),
        teams=assoc(state['teams'], team_id, update(team, guesses=team['guesses'] + 1)),
    )


def check(state, params, timestamp=None):
    user, team_id = _team_player(state, params['id'])
    if not user:
        return state
    next_state = state
    for cell in _unique(_scope_cells(state, params, user)):
        next_state = _check_cell(next_state, cell['r'], cell['c'], params['id'], team_id)
    if next_state is state:
        return state
    return _finish_if_solved(next_state, timestamp)


def reveal(state, params, timestamp=None):
    user, team_id = _team_player(state, params['id'])
    if not user:
        return state
    cells = _scope_cells(state, params, user)
    if len(cells) != 1:
        return state
    r, c = cells[0]['r'], cells[0]['c']
    cell = get_cell(state['game']['teamGrids'][team_id], r, c)
    if cell is None or cell['black'] or cell['good']:
        return state
    return _finish_if_solved(_solve_cell(state, r, c, params['id'], team_id, revealed=True), timestamp)


def reset(state, params, timestamp=None):
    user = state['users'].get(params['id'])
    game = state['game']
    if not user or not game:
        return state
    team_id = user.get('teamId')
    target = game['teamGrids'].get(team_id) if team_id else game['grid']
    if target is None:
        return state

    force = bool(params.get('force'))
    cleared = target
    for coord in _unique(_scope_cells(state, params, user)):
        cell = get_cell(cleared, coord['r'], coord['c'])
        if cell is None or cell['black'] or (cell['good'] and not force):
            continue
        if not (cell['value'] or cell['good'] or cell['bad'] or cell['revealed'] or cell['pencil'] or cell['solvedBy']):
            continue
        cleared = update_cell(
            cleared, coord['r'], coord['c'],
            value='', good=False, bad=False, revealed=False, pencil=False, solvedBy=None,
        )
    if cleared is target:
        return state
    if team_id:
        return _with_game(state, teamGrids=assoc(game['teamGrids'], team_id, cleared))
    return _with_game(state, grid=cleared, solved=False)


def _append_chat(state, message):
    messages = list(state['chat']['messages'])
    messages.append(message)
    return assoc(state, 'chat', update(state['chat'], messages=messages))


def chat(state, params, timestamp=None):
    return _append_chat(state, {
        'id': params['senderId'],
        'sender': params.get('sender') or '',
        'text': params['text'],
        'timestamp': timestamp,
    })


def send_chat_message(state, params, timestamp=None):
    user = state['users'].get(params['id'])
    if not user:
        return state
    return _append_chat(state, {
        'id': params['id'],
        'sender': params.get('sender') or user['displayName'],
        'text': params['message'],
        'timestamp': timestamp,
    })


def update_team_name(state, params, timestamp=None):
    game = state['game']
    team_id = params['teamId']
    if not game or team_id in SPECTATOR_TEAM_IDS:
        return state
    team = state['teams'].get(team_id)
    if team is not None:
        if team['name'] == params['teamName']:
            return state
        return assoc(state, 'teams', assoc(state['teams'], team_id, update(team, name=params['teamName'])))

    state = _with_game(
        state,
        teamGrids=assoc(game['teamGrids'], team_id, _new_team_grid(game)),
        teamClueVisibility=assoc(game['teamClueVisibility'], team_id, _blank_visibility(game['clues'])),
    )
    return assoc(state, 'teams', assoc(state['teams'], team_id, new_team(team_id, params['teamName'])))


def update_team_id(state, params, timestamp=None):
    user_id = params['id']
    team_id = params.get('teamId')
    if team_id in SPECTATOR_TEAM_IDS:
        team_id = None
    elif team_id not in state['teams']:
        return state
    user = state['users'].get(user_id)
    if user and user['teamId'] == team_id:
        return state
    return _with_user(state, user_id, update(user or new_user(user_id), teamId=team_id))


def reveal_all_clues(state, params, timestamp=None):
    game = state['game']
    if not game:
        return state
    everything = {
        direction: [text is not None for text in game['clues'].get(direction) or []]
        for direction in geometry.DIRECTIONS
    }
    visibility = {team_id: everything for team_id in game['teamGrids']}
    if visibility == game['teamClueVisibility']:
        return state
    return _with_game(state, teamClueVisibility=visibility)


def start_game(state, params, timestamp=None):
    if state['started']:
        return state
    return update(state, started=True, startedAt=timestamp)


REDUCERS = {
    'create': create,
    'updateCell': update_cell_value,
    'updateCursor': update_cursor,
    'addPing': add_ping,
    'updateDisplayName': update_display_name,
    'updateColor': update_color,
    'updateClock': update_clock,
    'check': check,
    'reveal': reveal,
    'reset': reset,
    'chat': chat,
    'sendChatMessage': send_chat_message,
    'updateTeamName': update_team_name,
    'updateTeamId': update_team_id,
    'revealAllClues': reveal_all_clues,
    'startGame': start_game,
}


def reduce(state, event):
    """Apply one ordered event to `state`."""
    if state is None:
        state = initial_state()
    if not event:
        return state
    reducer = REDUCERS.get(event.get('type'))
    if reducer is None:
        logger.warning('game event not implemented: %s', event.get('type'))
        return state
    return reducer(state, event.get('params') or {}, event.get('timestamp'))


def fold(events, state=None):
    """Fold an ordered event sequence, starting from the empty state."""
    state = initial_state() if state is None else state
    for event in events:
        state = reduce(state, event)
    return state

"""Shape of a game session's state and copy-on-write helpers.

State is plain JSON-compatible dicts and lists so it can be compared,
serialized and sent to clients as-is. Reducers never mutate an existing
state object: they rebuild only the path they touch (state -> game -> grid
-> row -> cell) and share everything else with the previous state.
"""
from typing import Any, Dict, List, Optional

GameState = Dict[str, Any]
Grid = List[List[Dict[str, Any]]]


def initial_state() -> GameState:
    return {
        'game': None,
        'users': {},
        'teams': {},
        'chat': {'messages': []},
        'loaded': False,
        'started': False,
        'startedAt': None,
    }


def initial_clock() -> Dict[str, Any]:
    return {'lastUpdated': 0, 'totalTime': 0, 'paused': True}


def new_user(user_id: str) -> Dict[str, Any]:
    return {
        'id': user_id,
        'teamId': None,
        'score': 0,
        'misses': 0,
        'displayName': '',
        'color': None,
        'cursor': None,
        'ping': None,
    }


def new_team(team_id: str, name: str = '') -> Dict[str, Any]:
    return {'id': team_id, 'name': name, 'score': 0, 'guesses': 0}


def assoc(mapping: Dict[str, Any], key: str, value: Any) -> Dict[str, Any]:
    """Return a copy of `mapping` with `key` set to `value`."""
    updated = dict(mapping)
    updated[key] = value
    return updated


def update(mapping: Dict[str, Any], **changes: Any) -> Dict[str, Any]:
    updated = dict(mapping)
    updated.update(changes)
    return updated


def get_cell(grid: Optional[Grid], r: int, c: int) -> Optional[Dict[str, Any]]:
    if grid is None or r < 0 or c < 0:
        return None
    if r >= len(grid) or c >= len(grid[r]):
        return None
    return grid[r][c]


def set_cell(grid: Grid, r: int, c: int, cell: Dict[str, Any]) -> Grid:
    """Return a new grid with one cell replaced; other rows are shared."""
    row = list(grid[r])
    row[c] = cell
    new_grid = list(grid)
    new_grid[r] = row
    return new_grid


def update_cell(grid: Grid, r: int, c: int, **changes: Any) -> Grid:
    return set_cell(grid, r, c, update(grid[r][c], **changes))

"""Per-game solve summary for the statistics collaborator.

Checked and revealed squares are reconstructed from the persisted check /
reveal payloads rather than from the folded state, so squares that were
checked wrong (or checked and later reset) still count. A running clock is
counted up to the last ordered event.
"""
from typing import Dict, Set, Tuple

Square = Tuple[int, int]


def touched_squares(event_log, gid) -> Dict[str, Set[Square]]:
    touched = {'check': set(), 'reveal': set()}
    for event in event_log.payloads(gid, ('check', 'reveal')):
        scope = (event.get('params') or {}).get('scope')
        if not isinstance(scope, list):
            continue
        for cell in scope:
            touched[event['type']].add((cell['r'], cell['c']))
    return touched


def elapsed_ms(state, now=None) -> int:
    """Solving time on the clock; a running clock counts up to `now`."""
    game = state.get('game') or {}
    clock = game.get('clock')
    if not clock:
        return 0
    total = int(clock['totalTime'])
    if not clock['paused'] and now is not None:
        total += max(0, int(now) - int(clock['lastUpdated']))
    return total


def solve_summary(event_log, gid):
    with event_log.locked(gid) as session:
        state, last_ts = session.state, session.last_ts
    game = state.get('game') or {}
    solution = game.get('solution') or []
    touched = touched_squares(event_log, gid)
    return {
        'gid': gid,
        'title': (game.get('info') or {}).get('title', ''),
        'size': f"{len(solution)}x{len(solution[0]) if solution else 0}",
        'solved': bool(game.get('solved')),
        'time_taken_to_solve': elapsed_ms(state, now=last_ts),
        'checked_squares_count': len(touched['check']),
        'revealed_squares_count': len(touched['reveal']),
        'checked_squares': [{'r': r, 'c': c} for r, c in sorted(touched['check'])],
        'revealed_squares': [{'r': r, 'c': c} for r, c in sorted(touched['reveal'])],
    }

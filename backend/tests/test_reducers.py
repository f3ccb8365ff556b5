import copy
import json

from xword.game.reducers import fold, reduce
from xword.game.state import initial_state

from conftest import CATS_PUZZLE, create_event, join_events


def ev(type_, params=None, timestamp=None):
    return {'type': type_, 'params': params or {}, 'timestamp': timestamp}


def cats(*extra):
    return fold([create_event(), *join_events(), *extra])


def reveal_at(r, c, user='u1'):
    return ev('reveal', {'id': user, 'scope': [{'r': r, 'c': c}]})


def fill(r, c, value, user='u1', **extra):
    return ev('updateCell', {'id': user, 'cell': {'r': r, 'c': c}, 'value': value, **extra})


def check_at(r, c, user='u1'):
    return ev('check', {'id': user, 'scope': [{'r': r, 'c': c}]})


# ---- create ----

def test_create_builds_game_and_ignores_previous_state():
    before = cats(reveal_at(0, 0))
    state = reduce(before, create_event())
    assert state['users'] == {} and state['teams'] == {}
    assert state['loaded'] is True
    game = state['game']
    assert game['info']['title'] == 'Cats'
    assert game['solution'] == [['C', 'A'], ['T', 'S']]
    assert game['clues']['across'] == [None, 'Feline start', None, 'Plural marker']
    assert game['circles'] == [0]
    assert game['teamGrids'] == {} and game['solved'] is False
    assert game['clock'] == {'lastUpdated': 0, 'totalTime': 0, 'paused': True}


# ---- reveal ----

def test_reveal_scenario():
    state = cats(reveal_at(0, 0))
    cell = state['game']['teamGrids']['t1'][0][0]
    assert cell['value'] == 'C' and cell['good'] and cell['revealed'] and not cell['bad']
    assert cell['solvedBy'] == {'id': 'u1', 'teamId': 't1'}
    shared = state['game']['grid'][0][0]
    assert shared['value'] == 'C' and shared['good'] and shared['revealed']
    assert state['users']['u1']['score'] == 1
    assert state['teams']['t1']['score'] == 1
    visibility = state['game']['teamClueVisibility']['t1']
    assert visibility['across'][1] and visibility['down'][1]
    assert not visibility['across'][3]


def test_second_reveal_of_same_cell_is_a_noop():
    once = cats(reveal_at(0, 0))
    twice = reduce(once, reveal_at(0, 0))
    assert twice is once
    assert twice['users']['u1']['score'] == 1
    assert twice['teams']['t1']['score'] == 1


def test_reveal_by_unknown_user_is_ignored():
    state = cats()
    snapshot = copy.deepcopy(state)
    assert reduce(state, reveal_at(0, 0, user='ghost')) is state
    assert state == snapshot


def test_reveal_needs_exactly_one_cell():
    state = cats()
    two = ev('reveal', {'id': 'u1', 'scope': [{'r': 0, 'c': 0}, {'r': 0, 'c': 1}]})
    none = ev('reveal', {'id': 'u1', 'scope': []})
    assert reduce(state, two) is state
    assert reduce(state, none) is state


def test_reveal_by_spectator_is_ignored():
    state = cats(ev('updateTeamId', {'id': 'u1', 'teamId': None}))
    assert state['users']['u1']['teamId'] is None
    assert reduce(state, reveal_at(0, 0)) is state


def test_reveal_out_of_bounds_is_ignored():
    state = cats()
    assert reduce(state, reveal_at(5, 5)) is state


def test_reveal_does_not_mutate_previous_state():
    state = cats()
    snapshot = copy.deepcopy(state)
    after = reduce(state, reveal_at(1, 1))
    assert state == snapshot
    assert after['game']['grid'][0] is state['game']['grid'][0]  # untouched row shared


def test_solved_cell_is_solved_for_every_team():
    state = cats(*join_events(user_id='u2', team_id='t2', name='Bob'), reveal_at(0, 0))
    other = state['game']['teamGrids']['t2'][0][0]
    assert other['good'] and other['revealed'] and other['value'] == 'C'
    assert other['solvedBy'] == {'id': 'u1', 'teamId': 't1'}
    # only the solving team sees the clues
    assert not any(state['game']['teamClueVisibility']['t2']['across'])

    assert reduce(state, reveal_at(0, 0, user='u2')) is state
    filled = reduce(state, fill(0, 0, 'C', user='u2'))
    assert filled is state
    assert state['teams']['t1']['score'] == 1
    assert state['teams']['t2']['score'] == 0
    assert state['users']['u2']['score'] == 0


def test_correct_check_solves_cell_for_other_teams():
    state = cats(*join_events(user_id='u2', team_id='t2', name='Bob'), fill(1, 0, 'X', user='u2'))
    state = reduce(state, fill(1, 0, 'T'))
    state = reduce(state, check_at(1, 0))
    other = state['game']['teamGrids']['t2'][1][0]
    assert other['good'] and other['value'] == 'T' and not other['revealed']
    assert reduce(state, check_at(1, 0, user='u2')) is state
    assert state['teams']['t2'] == {'id': 't2', 'name': 'Team t2', 'score': 0, 'guesses': 0}


def test_team_created_after_a_solve_starts_with_it_solved():
    state = cats(reveal_at(1, 1), ev('updateTeamName', {'teamId': 't9', 'teamName': 'Late'}))
    assert state['game']['teamGrids']['t9'][1][1]['good']
    assert not state['game']['teamGrids']['t9'][0][0]['good']


# ---- check ----

def test_check_correct_value_scores_once():
    state = cats(fill(0, 1, 'A'), check_at(0, 1))
    cell = state['game']['teamGrids']['t1'][0][1]
    assert cell['good'] and not cell['revealed']
    assert state['users']['u1']['score'] == 1
    assert reduce(state, check_at(0, 1)) is state


def test_check_wrong_value_marks_bad():
    state = cats(fill(0, 1, 'X'), check_at(0, 1))
    cell = state['game']['teamGrids']['t1'][0][1]
    assert cell['bad'] and not cell['good']
    assert state['users']['u1']['misses'] == 1
    assert state['teams']['t1']['guesses'] == 1
    assert state['teams']['t1']['score'] == 0
    assert not state['game']['grid'][0][1]['bad']


def test_check_empty_cell_is_a_noop():
    state = cats()
    assert reduce(state, check_at(0, 0)) is state


def test_check_all_completes_puzzle_and_stops_clock():
    state = cats(
        ev('updateClock', {'action': 'start'}, timestamp=1000),
        fill(0, 0, 'C'), fill(0, 1, 'A'), fill(1, 0, 'T'), fill(1, 1, 'S'),
        ev('check', {'id': 'u1', 'scope': 'all'}, timestamp=61000),
    )
    assert state['users']['u1']['score'] == 4
    assert state['game']['solved'] is True
    assert state['game']['clock'] == {'lastUpdated': 61000, 'totalTime': 60000, 'paused': True}


def test_check_word_uses_cursor():
    state = cats(
        fill(1, 0, 'T'), fill(1, 1, 'Q'),
        ev('updateCursor', {'id': 'u1', 'cell': {'r': 1, 'c': 1}}),
        ev('check', {'id': 'u1', 'scope': 'word'}),
    )
    grid = state['game']['teamGrids']['t1']
    assert grid[1][0]['good'] and grid[1][1]['bad']
    assert not grid[0][0]['good']


# ---- updateCell ----

def test_update_cell_writes_team_grid():
    state = cats(fill(0, 0, 'Z'))
    assert state['game']['teamGrids']['t1'][0][0]['value'] == 'Z'
    assert state['game']['grid'][0][0]['value'] == ''


def test_update_cell_never_overwrites_good_cell():
    state = cats(reveal_at(0, 0))
    assert reduce(state, fill(0, 0, 'Q')) is state


def test_update_cell_unknown_user_is_ignored():
    state = cats()
    assert reduce(state, fill(0, 0, 'C', user='ghost')) is state


def test_update_cell_clears_bad_flag():
    state = cats(fill(0, 0, 'X'), check_at(0, 0), fill(0, 0, 'Y'))
    cell = state['game']['teamGrids']['t1'][0][0]
    assert cell['value'] == 'Y' and not cell['bad']


def test_update_cell_with_autocheck():
    state = cats(fill(1, 1, 'S', autocheck=True))
    assert state['game']['teamGrids']['t1'][1][1]['good']
    assert state['users']['u1']['score'] == 1


# ---- reset ----

def test_reset_keeps_good_cells_unless_forced():
    state = cats(reveal_at(0, 0), fill(0, 1, 'Q'))
    soft = reduce(state, ev('reset', {'id': 'u1', 'scope': 'all'}))
    grid = soft['game']['teamGrids']['t1']
    assert grid[0][0]['good'] and grid[0][1]['value'] == ''

    forced = reduce(soft, ev('reset', {'id': 'u1', 'scope': 'all', 'force': True}))
    cell = forced['game']['teamGrids']['t1'][0][0]
    assert cell['value'] == '' and not cell['good'] and not cell['revealed'] and cell['solvedBy'] is None
    assert forced['users']['u1']['score'] == 1


def test_reset_of_blank_cells_is_a_noop():
    state = cats()
    assert reduce(state, ev('reset', {'id': 'u1', 'scope': 'all'})) is state


# ---- presence ----

def test_cursor_and_ping():
    state = cats(
        ev('updateCursor', {'id': 'u1', 'cell': {'r': 1, 'c': 0}}, timestamp=5),
        ev('addPing', {'id': 'u1', 'cell': {'r': 0, 'c': 1}}, timestamp=6),
    )
    assert state['users']['u1']['cursor'] == {'r': 1, 'c': 0, 'timestamp': 5}
    assert state['users']['u1']['ping'] == {'r': 0, 'c': 1, 'timestamp': 6}
    before = cats()
    assert reduce(before, ev('updateCursor', {'id': 'ghost', 'cell': {'r': 0, 'c': 0}})) is before
    assert reduce(before, ev('addPing', {'id': 'ghost', 'cell': {'r': 0, 'c': 0}})) is before


def test_display_name_and_color_register_users():
    state = cats(
        ev('updateDisplayName', {'id': 'u9', 'displayName': 'Zed'}),
        ev('updateColor', {'id': 'u9', 'color': 'hsl(1,50%,50%)'}),
    )
    user = state['users']['u9']
    assert user['displayName'] == 'Zed' and user['color'] == 'hsl(1,50%,50%)'
    assert user['teamId'] is None and user['score'] == 0


# ---- teams ----

def test_joining_unknown_team_is_ignored():
    state = cats()
    assert reduce(state, ev('updateTeamId', {'id': 'u1', 'teamId': 'nope'})) is state


def test_team_name_creates_team_grid():
    state = cats(ev('updateTeamName', {'teamId': 't3', 'teamName': 'Third'}))
    assert state['teams']['t3'] == {'id': 't3', 'name': 'Third', 'score': 0, 'guesses': 0}
    assert len(state['game']['teamGrids']['t3']) == 2
    assert state['game']['teamClueVisibility']['t3'] == {'across': [False] * 4, 'down': [False] * 3}
    renamed = reduce(state, ev('updateTeamName', {'teamId': 't3', 'teamName': 'Tres'}))
    assert renamed['teams']['t3']['name'] == 'Tres'


def test_team_name_before_create_is_ignored():
    state = initial_state()
    assert reduce(state, ev('updateTeamName', {'teamId': 't1', 'teamName': 'x'})) is state


def test_reveal_all_clues():
    state = cats(ev('revealAllClues'))
    assert state['game']['teamClueVisibility']['t1'] == {
        'across': [False, True, False, True],
        'down': [False, True, True],
    }


# ---- clock, chat, start ----

def test_clock_accumulates_between_start_and_pause():
    state = cats(
        ev('updateClock', {'action': 'start'}, timestamp=1000),
        ev('updateClock', {'action': 'pause'}, timestamp=4000),
        ev('updateClock', {'action': 'start'}, timestamp=10000),
        ev('updateClock', {'action': 'pause'}, timestamp=11000),
    )
    assert state['game']['clock'] == {'lastUpdated': 11000, 'totalTime': 4000, 'paused': True}
    reset = reduce(state, ev('updateClock', {'action': 'reset'}, timestamp=12000))
    assert reset['game']['clock'] == {'lastUpdated': 12000, 'totalTime': 0, 'paused': True}


def test_chat_messages():
    state = cats(
        ev('chat', {'senderId': 'u1', 'sender': 'Alice', 'text': 'hi'}, timestamp=1),
        ev('sendChatMessage', {'id': 'u1', 'message': 'hello'}, timestamp=2),
    )
    assert state['chat']['messages'] == [
        {'id': 'u1', 'sender': 'Alice', 'text': 'hi', 'timestamp': 1},
        {'id': 'u1', 'sender': 'Alice', 'text': 'hello', 'timestamp': 2},
    ]
    assert reduce(state, ev('sendChatMessage', {'id': 'ghost', 'message': 'x'})) is state


def test_start_game_is_idempotent():
    state = cats(ev('startGame', timestamp=77))
    assert state['started'] is True and state['startedAt'] == 77
    assert reduce(state, ev('startGame', timestamp=99)) is state


# ---- dispatch ----

def test_unknown_event_type_is_ignored():
    state = cats()
    assert reduce(state, ev('teleport', {'id': 'u1'})) is state


def test_reduce_from_nothing_uses_initial_state():
    assert reduce(None, None) == initial_state()


def test_fold_is_deterministic():
    events = [
        create_event(), *join_events(), *join_events(user_id='u2', team_id='t2', name='Bob'),
        fill(0, 1, 'A'), check_at(0, 1), reveal_at(1, 1, user='u2'),
        ev('updateClock', {'action': 'start'}, timestamp=100),
        ev('chat', {'senderId': 'u2', 'text': 'gg'}, timestamp=200),
    ]
    first = fold(events)
    second = fold(copy.deepcopy(events))
    assert first == second
    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)


def test_create_then_reveal_twice_matches_single_reveal():
    once = fold([create_event(), *join_events(), reveal_at(0, 0)])
    twice = fold([create_event(), *join_events(), reveal_at(0, 0), reveal_at(0, 0)])
    assert once == twice
    assert twice['teams']['t1']['score'] == 1


def test_puzzle_content_is_copied_into_state():
    puzzle = copy.deepcopy(CATS_PUZZLE)
    state = fold([create_event(puzzle)])
    puzzle['solution'][0][0] = 'Z'
    assert state['game']['solution'][0][0] == 'C'

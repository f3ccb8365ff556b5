"""Grid geometry: numbering, clue alignment, circles and scope resolution."""
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

BLACK = '.'
DIRECTIONS = ('across', 'down')
SYMBOLIC_SCOPES = ('square', 'word', 'all', 'puzzle')

Coord = Dict[str, int]


def is_black(value: Any) -> bool:
    return value == BLACK


def _starts_word(solution: Sequence[Sequence[str]], r: int, c: int, direction: str) -> bool:
    dr, dc = (0, 1) if direction == 'across' else (1, 0)
    if is_black(solution[r][c]):
        return False
    pr, pc = r - dr, c - dc
    before_open = pr >= 0 and pc >= 0 and not is_black(solution[pr][pc])
    nr, nc = r + dr, c + dc
    after_open = nr < len(solution) and nc < len(solution[nr]) and not is_black(solution[nr][nc])
    return not before_open and after_open


def make_grid(solution: Sequence[Sequence[str]]) -> List[List[Dict[str, Any]]]:
    """Build the cell grid for a solution.

    Numbers are assigned row-major to every cell that starts an across or
    down word (of length two or more). Each open cell records the number of
    the across and down word it belongs to in `parents`; a cell with no word
    in a direction gets `None` there.
    """
    numbers: Dict[Tuple[int, int], int] = {}
    next_number = 1
    for r, row in enumerate(solution):
        for c, _ in enumerate(row):
            if _starts_word(solution, r, c, 'across') or _starts_word(solution, r, c, 'down'):
                numbers[(r, c)] = next_number
                next_number += 1

    grid = []
    for r, row in enumerate(solution):
        grid_row = []
        for c, value in enumerate(row):
            black = is_black(value)
            parents = {'across': None, 'down': None}
            if not black:
                for direction in DIRECTIONS:
                    start = _word_start(solution, r, c, direction)
                    parents[direction] = numbers.get(start) if _starts_word(solution, start[0], start[1], direction) else None
            grid_row.append({
                'value': '',
                'good': False,
                'bad': False,
                'revealed': False,
                'pencil': False,
                'black': black,
                'number': numbers.get((r, c)),
                'solvedBy': None,
                'parents': parents,
            })
        grid.append(grid_row)
    return grid


def _word_start(solution, r: int, c: int, direction: str) -> Tuple[int, int]:
    dr, dc = (0, 1) if direction == 'across' else (1, 0)
    while r - dr >= 0 and c - dc >= 0 and not is_black(solution[r - dr][c - dc]):
        r, c = r - dr, c - dc
    return r, c


def clue_numbers(grid, direction: str) -> List[int]:
    """Numbers of the words in `direction`, in ascending order."""
    found = set()
    for row in grid:
        for cell in row:
            number = cell['parents'][direction]
            if number is not None:
                found.add(number)
    return sorted(found)


def align_clues(grid, clues: Optional[Dict[str, Any]]) -> Dict[str, List[Optional[str]]]:
    """Index clue text by clue number.

    Clues may be given per direction either as a list in numbering order or
    as a mapping from clue number to text. The result is a list per
    direction whose index is the clue number; numbers that don't start a
    word in that direction hold `None`.
    """
    clues = clues or {}
    aligned = {}
    for direction in DIRECTIONS:
        numbers = clue_numbers(grid, direction)
        size = (max(numbers) + 1) if numbers else 0
        texts: List[Optional[str]] = [None] * size
        given = clues.get(direction) or []
        if isinstance(given, dict):
            for number in numbers:
                text = given.get(str(number), given.get(number))
                texts[number] = text if text is not None else ''
        else:
            for i, number in enumerate(numbers):
                texts[number] = given[i] if i < len(given) and given[i] is not None else ''
        aligned[direction] = texts
    return aligned


def parse_circles(circles: Optional[Iterable[Union[str, int]]], height: int, width: int) -> List[int]:
    """Convert circle entries to row-major cell indices.

    Accepts integers, numeric strings and "r,c" coordinate strings.
    Entries that can't be parsed, or fall outside the grid, are dropped.
    """
    indices = []
    for circle in circles or []:
        index = None
        if isinstance(circle, bool):
            continue
        if isinstance(circle, int):
            index = circle
        elif isinstance(circle, str):
            text = circle.strip()
            if ',' in text:
                parts = text.split(',')
                if len(parts) == 2 and all(p.strip().lstrip('-').isdigit() for p in parts):
                    r, c = (int(p) for p in parts)
                    if 0 <= r < height and 0 <= c < width:
                        index = r * width + c
            elif text.lstrip('-').isdigit():
                index = int(text)
        if index is not None and 0 <= index < height * width and index not in indices:
            indices.append(index)
    return indices


def word_cells(grid, r: int, c: int, direction: str) -> List[Coord]:
    if r < 0 or r >= len(grid) or c < 0 or c >= len(grid[r]) or grid[r][c]['black']:
        return []
    dr, dc = (0, 1) if direction == 'across' else (1, 0)
    while r - dr >= 0 and c - dc >= 0 and not grid[r - dr][c - dc]['black']:
        r, c = r - dr, c - dc
    cells = []
    while r < len(grid) and c < len(grid[r]) and not grid[r][c]['black']:
        cells.append({'r': r, 'c': c})
        r, c = r + dr, c + dc
    return cells


def all_cells(grid) -> List[Coord]:
    return [
        {'r': r, 'c': c}
        for r, row in enumerate(grid)
        for c, cell in enumerate(row)
        if not cell['black']
    ]


def resolve_scope(grid, scope, cursor: Optional[Dict[str, Any]] = None, direction: str = 'across') -> List[Coord]:
    """Turn a scope into explicit coordinates.

    `scope` is either a list of {r, c} mappings (returned as-is) or one of
    the symbolic names "square", "word", "all"/"puzzle". "square" and
    "word" are anchored at `cursor`; without a cursor they resolve to
    nothing.
    """
    if grid is None:
        return []
    if isinstance(scope, (list, tuple)):
        return [{'r': cell['r'], 'c': cell['c']} for cell in scope]
    if scope in ('all', 'puzzle'):
        return all_cells(grid)
    if not cursor:
        return []
    r, c = cursor.get('r'), cursor.get('c')
    if r is None or c is None:
        return []
    if scope == 'square':
        if 0 <= r < len(grid) and 0 <= c < len(grid[r]) and not grid[r][c]['black']:
            return [{'r': r, 'c': c}]
        return []
    if scope == 'word':
        return word_cells(grid, r, c, direction if direction in DIRECTIONS else 'across')
    return []

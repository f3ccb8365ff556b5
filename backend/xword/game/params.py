"""Parameter shapes for every event type.

Each event type has exactly one params model. Proposals are validated
against it before they reach a reducer, and the normalized dump of the
model is what gets persisted and broadcast.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from xword.errors import MalformedEventError


def _coerce_id(value):
    # Clients send numeric team ids (1, 2); state keys are always strings
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Id = Annotated[str, BeforeValidator(_coerce_id)]
SymbolicScope = Literal['square', 'word', 'all', 'puzzle']


class _Params(BaseModel):
    model_config = ConfigDict(extra='ignore')


class Coords(_Params):
    r: int = Field(ge=0)
    c: int = Field(ge=0)


class PuzzleInfo(_Params):
    title: str = ''
    author: str = ''
    copyright: str = ''
    description: str = ''
    type: Optional[str] = None


class PuzzleContent(_Params):
    info: PuzzleInfo = Field(default_factory=PuzzleInfo)
    solution: List[List[str]] = Field(min_length=1)
    clues: Dict[str, Union[List[Optional[str]], Dict[str, Optional[str]]]] = Field(default_factory=dict)
    circles: List[Union[int, str]] = Field(default_factory=list)

    @field_validator('solution')
    @classmethod
    def _rectangular(cls, solution):
        width = len(solution[0])
        if width == 0 or any(len(row) != width for row in solution):
            raise ValueError('solution must be a non-empty rectangle')
        return solution


class CreateParams(_Params):
    pid: Optional[Id] = None
    version: float = 1.0
    game: PuzzleContent


class UpdateCellParams(_Params):
    id: Id
    cell: Coords
    value: str
    color: Optional[str] = None
    pencil: bool = False
    autocheck: bool = False


class UpdateCursorParams(_Params):
    id: Id
    cell: Coords


class AddPingParams(_Params):
    id: Id
    cell: Coords


class UpdateDisplayNameParams(_Params):
    id: Id
    displayName: str


class UpdateColorParams(_Params):
    id: Id
    color: str


class UpdateClockParams(_Params):
    action: Literal['start', 'pause', 'reset']


class CheckParams(_Params):
    id: Id
    scope: Union[SymbolicScope, List[Coords]]
    direction: Literal['across', 'down'] = 'across'


class RevealParams(CheckParams):
    pass


class ResetParams(CheckParams):
    force: bool = False


class ChatParams(_Params):
    senderId: Id
    sender: Optional[str] = None
    text: str


class SendChatMessageParams(_Params):
    id: Id
    message: str
    sender: Optional[str] = None


class UpdateTeamNameParams(_Params):
    teamId: Id
    teamName: str


class UpdateTeamIdParams(_Params):
    id: Id
    teamId: Optional[Id] = None


class RevealAllCluesParams(_Params):
    pass


class StartGameParams(_Params):
    pass


PARAMS = {
    'create': CreateParams,
    'updateCell': UpdateCellParams,
    'updateCursor': UpdateCursorParams,
    'addPing': AddPingParams,
    'updateDisplayName': UpdateDisplayNameParams,
    'updateColor': UpdateColorParams,
    'updateClock': UpdateClockParams,
    'check': CheckParams,
    'reveal': RevealParams,
    'reset': ResetParams,
    'chat': ChatParams,
    'sendChatMessage': SendChatMessageParams,
    'updateTeamName': UpdateTeamNameParams,
    'updateTeamId': UpdateTeamIdParams,
    'revealAllClues': RevealAllCluesParams,
    'startGame': StartGameParams,
}

EVENT_TYPES = tuple(PARAMS)


def parse_event(raw: Any) -> Dict[str, Any]:
    """Validate a proposed event and return `{type, params, user}`.

    Raises MalformedEventError for anything that isn't a known type with
    params of that type's shape. Client-supplied timestamps are dropped.
    """
    if not isinstance(raw, dict):
        raise MalformedEventError('event must be an object')
    event_type = raw.get('type')
    model = PARAMS.get(event_type) if isinstance(event_type, str) else None
    if model is None:
        raise MalformedEventError(f'unknown event type: {event_type!r}')
    params = raw.get('params')
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise MalformedEventError(f'params for {event_type} must be an object')
    try:
        validated = model.model_validate(params)
    except ValidationError as exc:
        problems = '; '.join(
            f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}" for err in exc.errors()
        )
        raise MalformedEventError(f'invalid params for {event_type}: {problems}') from exc
    user = _coerce_id(raw.get('user'))
    return {
        'type': event_type,
        'params': validated.model_dump(mode='json'),
        'user': user if isinstance(user, str) and user else None,
    }

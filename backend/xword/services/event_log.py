"""Ordering authority: the single writer of each game's event log.

Every proposed event for a game goes through `EventLog.propose`, which
holds that game's lock while it validates the event, assigns the next
sequence number and a server timestamp, folds it into the in-memory state
and appends it to the `game_events` table. Games don't share locks, so
different games proceed in parallel.

The in-memory state is only a cache: `current_state` rebuilds it from the
log whenever it's missing, which is also how a restarted process recovers.
"""
import threading
import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from xword import db
from xword.errors import SessionAlreadyCreatedError, SessionNotCreatedError
from xword.game import grid as geometry
from xword.game.params import parse_event
from xword.game.reducers import reduce
from xword.game.state import initial_state
from xword.models import GameEventRecord

SCOPED_EVENT_TYPES = ('check', 'reveal', 'reset')


def _now_ms() -> int:
    return int(time.time() * 1000)


class ReplayStream:
    """Lazy, restartable view of a game's events from `from_seq` onwards.

    Each iteration reads the log in chunks and stops at the last event that
    existed when the iteration started, so a reader always sees a
    consistent prefix even while new events are being appended.
    """

    def __init__(self, gid, from_seq=0, chunk_size=500):
        self.gid = gid
        self.from_seq = max(0, int(from_seq or 0))
        self.chunk_size = max(1, int(chunk_size))

    def __iter__(self):
        head = (
            db.session.query(func.max(GameEventRecord.seq))
            .filter(GameEventRecord.gid == self.gid)
            .scalar()
        )
        if head is None:
            return
        cursor = self.from_seq
        while cursor <= head:
            rows = (
                GameEventRecord.query
                .filter(
                    GameEventRecord.gid == self.gid,
                    GameEventRecord.seq >= cursor,
                    GameEventRecord.seq <= head,
                )
                .order_by(GameEventRecord.seq)
                .limit(self.chunk_size)
                .all()
            )
            if not rows:
                return
            for row in rows:
                yield row.event_payload
            cursor = rows[-1].seq + 1


class _Session:
    def __init__(self, gid):
        self.gid = gid
        self.lock = threading.RLock()
        self.state = initial_state()
        self.head = -1
        self.last_ts = 0
        self.loaded = False
        # callers inside or waiting on locked()
        self.holders = 0


class EventLog:
    def __init__(self, app=None, clock=None):
        self.clock = clock or _now_ms
        self.chunk_size = 500
        self._sessions = {}
        self._registry_lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.chunk_size = int(app.config.get('REPLAY_CHUNK_SIZE', 500))
        with self._registry_lock:
            self._sessions.clear()
        app.extensions['xword_event_log'] = self

    # ---- per-game serialization ----

    def _checkout(self, gid) -> _Session:
        with self._registry_lock:
            session = self._sessions.get(gid)
            if session is None:
                session = self._sessions[gid] = _Session(gid)
            session.holders += 1
            return session

    def _checkin(self, session: _Session) -> None:
        # Games without events aren't kept; nobody else can hold the lock once
        # holders drops to zero, so the entry can go
        with self._registry_lock:
            session.holders -= 1
            if session.holders == 0 and session.head < 0:
                self._sessions.pop(session.gid, None)

    def _ensure_loaded(self, session: _Session) -> None:
        if session.loaded:
            return
        state = initial_state()
        head = -1
        last_ts = 0
        for event in self.replay(session.gid):
            state = reduce(state, event)
            head = event['seq']
            last_ts = event.get('timestamp') or last_ts
        session.state, session.head, session.last_ts = state, head, last_ts
        session.loaded = True
        current_app.logger.info(f"[replay-load] gid={session.gid} events={head + 1}")

    @contextmanager
    def locked(self, gid):
        """Hold `gid`'s serialization point. No proposal for it runs meanwhile."""
        session = self._checkout(gid)
        try:
            with session.lock:
                self._ensure_loaded(session)
                yield session
        finally:
            self._checkin(session)

    # ---- writes ----

    def propose(self, gid, raw_event):
        """Order, apply and persist one proposed event; return the ordered event.

        Raises MalformedEventError / SessionNotCreatedError /
        SessionAlreadyCreatedError for rejected proposals, and lets storage
        errors propagate after rolling back. Either way nothing is applied.
        """
        event = parse_event(raw_event)
        with self.locked(gid) as session:
            if session.head < 0 and event['type'] != 'create':
                raise SessionNotCreatedError(f'game {gid} has no create event yet', gid=gid)
            if session.head >= 0 and event['type'] == 'create':
                raise SessionAlreadyCreatedError(f'game {gid} already exists', gid=gid)

            ordered = {
                'seq': session.head + 1,
                'type': event['type'],
                'params': self._normalize_scope(session.state, event),
                'timestamp': max(self.clock(), session.last_ts),
                'user': event['user'],
            }
            next_state = reduce(session.state, ordered)

            db.session.add(GameEventRecord(
                gid=gid,
                seq=ordered['seq'],
                uid=ordered['user'],
                ts=ordered['timestamp'],
                event_type=ordered['type'],
                event_payload=ordered,
            ))
            try:
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception(
                    f"[propose-failed] gid={gid} seq={ordered['seq']} type={ordered['type']}"
                )
                raise

            if next_state is session.state:
                current_app.logger.debug(f"[propose-noop] gid={gid} seq={ordered['seq']} type={ordered['type']}")
            session.state = next_state
            session.head = ordered['seq']
            session.last_ts = ordered['timestamp']
            current_app.logger.info(f"[propose] gid={gid} seq={ordered['seq']} type={ordered['type']}")
            return ordered

    @staticmethod
    def _normalize_scope(state, event):
        # Symbolic scopes depend on the proposer's cursor at this point in the
        # order, so they're stored as explicit coordinates
        params = event['params']
        if event['type'] not in SCOPED_EVENT_TYPES or params.get('scope') not in geometry.SYMBOLIC_SCOPES:
            return params
        user = state['users'].get(params.get('id'))
        if not user or not state['game']:
            return params
        cells = geometry.resolve_scope(
            state['game']['grid'],
            params['scope'],
            cursor=user.get('cursor'),
            direction=params.get('direction') or 'across',
        )
        return dict(params, scope=cells)

    # ---- reads ----

    def replay(self, gid, from_seq=0) -> ReplayStream:
        return ReplayStream(gid, from_seq=from_seq, chunk_size=self.chunk_size)

    def current_state(self, gid):
        with self.locked(gid) as session:
            return session.state

    def head(self, gid) -> int:
        """Sequence number of the last event, or -1 for an unknown game."""
        with self.locked(gid) as session:
            return session.head

    def exists(self, gid) -> bool:
        return self.head(gid) >= 0

    def game_info(self, gid):
        """Puzzle info from the game's create event, without folding the log."""
        record = (
            GameEventRecord.query
            .filter_by(gid=gid, event_type='create')
            .order_by(GameEventRecord.seq)
            .first()
        )
        if record is None:
            current_app.logger.warning(f"[game-info] no create event for gid={gid}")
            return None
        return ((record.event_payload.get('params') or {}).get('game') or {}).get('info') or {}

    def payloads(self, gid, event_types):
        """Persisted events of the given types, in order."""
        query = (
            GameEventRecord.query
            .filter(GameEventRecord.gid == gid, GameEventRecord.event_type.in_(list(event_types)))
            .order_by(GameEventRecord.seq)
        )
        for record in query.yield_per(self.chunk_size):
            yield record.event_payload

    def evict(self, gid) -> None:
        """Forget the cached state; the next access rebuilds it from the log."""
        with self._registry_lock:
            session = self._sessions.get(gid)
            if session is None:
                return
            if session.holders == 0:
                del self._sessions[gid]
                return
        # In use: reset in place, the last holder drops the entry
        with session.lock:
            session.state = initial_state()
            session.head = -1
            session.last_ts = 0
            session.loaded = False

    def cached_games(self):
        """Game ids with an in-memory session."""
        with self._registry_lock:
            return set(self._sessions)

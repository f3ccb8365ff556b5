"""Session broadcast manager: who is listening to which game.

Subscribers are Socket.IO connections (by sid) joined to the room
`game:<gid>` on the `/ws` namespace. Both the catch-up replay sent on
subscribe and every live `ordered` event are emitted while holding the
game's lock in the event log, so a subscriber sees the replay followed by
exactly the events ordered after it: no gap, no duplicate.
"""
import threading
from dataclasses import dataclass
from typing import Dict, Set

from flask import current_app
from flask_socketio import join_room, leave_room

NAMESPACE = '/ws'


def room_for(gid: str) -> str:
    return f"game:{gid}"


@dataclass(frozen=True)
class Subscription:
    gid: str
    sid: str
    # seq of the last event delivered by the catch-up replay (-1: none)
    cursor: int


class SessionBroadcastManager:
    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace
        self.socketio = None
        self.event_log = None
        self.echo_to_proposer = True
        self._lock = threading.Lock()
        self._subscribers: Dict[str, Set[str]] = {}
        self._sid_to_gids: Dict[str, Set[str]] = {}

    def init_app(self, app, socketio, event_log):
        self.socketio = socketio
        self.event_log = event_log
        self.echo_to_proposer = bool(app.config.get('ECHO_TO_PROPOSER', True))
        self._reset()
        app.extensions['xword_sessions'] = self

    def _reset(self):
        with self._lock:
            self._subscribers.clear()
            self._sid_to_gids.clear()

    # ---- subscriptions ----

    def subscribe(self, gid: str, sid: str, last_seq=None) -> Subscription:
        """Replay everything after `last_seq` to `sid`, then add it to the room.

        Both steps happen under the game's lock so no event can be ordered
        in between.
        """
        from_seq = 0 if last_seq is None else int(last_seq) + 1
        with self.event_log.locked(gid) as session:
            events = list(self.event_log.replay(gid, from_seq))
            cursor = events[-1]['seq'] if events else min(from_seq - 1, session.head)
            self.socketio.emit(
                'replay',
                {'gid': gid, 'events': events, 'cursor': cursor},
                to=sid,
                namespace=self.namespace,
            )
            join_room(room_for(gid), sid=sid, namespace=self.namespace)
            with self._lock:
                self._subscribers.setdefault(gid, set()).add(sid)
                self._sid_to_gids.setdefault(sid, set()).add(gid)
        current_app.logger.info(f"[subscribe] gid={gid} sid={sid} replayed={len(events)} cursor={cursor}")
        return Subscription(gid=gid, sid=sid, cursor=cursor)

    def unsubscribe(self, gid: str, sid: str) -> None:
        leave_room(room_for(gid), sid=sid, namespace=self.namespace)
        self._forget(gid, sid)
        current_app.logger.info(f"[unsubscribe] gid={gid} sid={sid}")

    def unsubscribe_all(self, sid: str) -> Set[str]:
        """Drop every subscription of a disconnected client.

        The socket server has already removed the sid from its rooms; this
        only updates our bookkeeping. Returns the games it was subscribed to.
        """
        with self._lock:
            gids = self._sid_to_gids.pop(sid, set())
            for gid in gids:
                self._discard(gid, sid)
        return gids

    def _forget(self, gid, sid):
        with self._lock:
            self._discard(gid, sid)
            gids = self._sid_to_gids.get(sid)
            if gids is not None:
                gids.discard(gid)
                if not gids:
                    self._sid_to_gids.pop(sid, None)

    def _discard(self, gid, sid):
        bucket = self._subscribers.get(gid)
        if bucket is not None:
            bucket.discard(sid)
            if not bucket:
                self._subscribers.pop(gid, None)

    def subscribers(self, gid: str) -> Set[str]:
        with self._lock:
            return set(self._subscribers.get(gid, set()))

    # ---- distribution ----

    def propose(self, gid: str, raw_event, sid=None):
        """Order an event through the event log and publish it to the game room."""
        with self.event_log.locked(gid):
            ordered = self.event_log.propose(gid, raw_event)
            self.publish(gid, ordered, skip_sid=None if self.echo_to_proposer else sid)
        return ordered

    def publish(self, gid: str, ordered_event, skip_sid=None) -> None:
        """Emit an ordered event to the game room.

        Must run under `event_log.locked(gid)` so emission order matches
        sequence order. Socket.IO queues per client, so a slow subscriber
        doesn't hold up the others.
        """
        self.socketio.emit(
            'ordered',
            {'gid': gid, 'event': ordered_event},
            to=room_for(gid),
            namespace=self.namespace,
            skip_sid=skip_sid,
        )

    # ---- lifecycle ----

    def end_session(self, gid: str) -> None:
        """Tell subscribers the session is over and drop it from memory.

        The persisted log is untouched.
        """
        self.socketio.emit('session_ended', {'gid': gid}, to=room_for(gid), namespace=self.namespace)
        self.socketio.close_room(room_for(gid), namespace=self.namespace)
        with self._lock:
            for sid in self._subscribers.pop(gid, set()):
                gids = self._sid_to_gids.get(sid)
                if gids is not None:
                    gids.discard(gid)
                    if not gids:
                        self._sid_to_gids.pop(sid, None)
        self.event_log.evict(gid)

    def close(self) -> None:
        with self._lock:
            gids = list(self._subscribers)
        for gid in gids:
            self.end_session(gid)
        self._reset()

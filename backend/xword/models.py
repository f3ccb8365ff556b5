from xword import db

GID_MAX_LENGTH = 64


def normalize_gid(value):
    """Return `value` as a game id, or None if it can't be one."""
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or len(value) > GID_MAX_LENGTH:
        return None
    return value


class GameEventRecord(db.Model):
    """One persisted game event. Rows are only ever appended."""
    __tablename__ = 'game_events'
    __table_args__ = (
        db.UniqueConstraint('gid', 'seq', name='uq_game_events_gid_seq'),
    )
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    gid = db.Column(db.String(GID_MAX_LENGTH), nullable=False, index=True)
    seq = db.Column(db.Integer, nullable=False)
    uid = db.Column(db.String(64), nullable=True)
    ts = db.Column(db.BigInteger, nullable=False)  # milliseconds
    event_type = db.Column(db.String(32), nullable=False, index=True)
    event_payload = db.Column(db.JSON, nullable=False)

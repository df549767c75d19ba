from datetime import datetime, timezone

from versequest import db


def _utcnow():
    return datetime.now(timezone.utc)


class LeaderboardEntry(db.Model):
    __tablename__ = 'leaderboard_entry'
    id = db.Column(db.Integer, primary_key=True)
    # Identifies the finalised session record; a second insert for it is refused
    record_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    region = db.Column(db.String(64), nullable=False)
    security_code = db.Column(db.String(128), nullable=True)  # bcrypt hash, never the code itself
    final_score = db.Column(db.Integer, nullable=False, default=0, index=True)
    intro_score = db.Column(db.Integer, nullable=False, default=0)
    mcq_score = db.Column(db.Integer, nullable=False, default=0)
    easy_score = db.Column(db.Integer, nullable=False, default=0)
    medium_score = db.Column(db.Integer, nullable=False, default=0)
    hard_score = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'record_id': self.record_id,
            'name': self.name,
            'region': self.region,
            'final_score': self.final_score,
            'intro_score': self.intro_score,
            'mcq_score': self.mcq_score,
            'easy_score': self.easy_score,
            'medium_score': self.medium_score,
            'hard_score': self.hard_score,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class LeaderboardRevision(db.Model):
    """Single row whose version is bumped in the same transaction as every write."""
    __tablename__ = 'leaderboard_revision'
    id = db.Column(db.Integer, primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)

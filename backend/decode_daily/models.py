from datetime import datetime, timezone

from decode_daily import db


def _utcnow():
    return datetime.now(timezone.utc)


class KeyValueEntry(db.Model):
    __tablename__ = 'key_value_entry'
    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.LargeBinary, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def to_dict(self):
        return {
            'key': self.key,
            'size': len(self.value or b''),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

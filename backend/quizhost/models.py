from quizhost import db, bcrypt
from flask_login import UserMixin
from datetime import datetime
import json


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class GameRecord(db.Model):
    """A stored quiz definition. Sessions get a parsed copy, never the row."""
    __tablename__ = 'game_record'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    mode = db.Column(db.String(16), nullable=False)  # board, rounds
    definition = db.Column(db.Text, nullable=False)  # JSON-encoded game definition
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = db.relationship('User', backref=db.backref('games', lazy='dynamic'))

    @property
    def data(self):
        try:
            return json.loads(self.definition or '{}')
        except ValueError:
            return {}

    def to_dict(self, include_definition=False):
        payload = {
            'id': self.id,
            'name': self.name,
            'mode': self.mode,
            'owner_id': self.owner_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_definition:
            payload['definition'] = self.data
        return payload

import json

from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from quizhost import db
from quizhost.models import GameRecord
from quizhost.services.quiz.types import parse_game

catalog = Blueprint('catalog', __name__)


@catalog.route('/games', methods=['POST'])
@login_required
def create_game():
    """
    Stores a game definition after checking that it parses.
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'Game definition is required'}), 400
    try:
        game = parse_game(data, int(current_app.config.get('DEFAULT_TIME_LIMIT_SEC', 60)))
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400

    record = GameRecord(
        name=game.name,
        mode=game.mode,
        definition=json.dumps(game.to_dict()),
        owner_id=getattr(current_user, 'id', None),
    )
    db.session.add(record)
    db.session.commit()
    return jsonify(record.to_dict(include_definition=True)), 201


@catalog.route('/games', methods=['GET'])
@login_required
def list_games():
    records = GameRecord.query.order_by(GameRecord.updated_at.desc()).all()
    return jsonify([r.to_dict() for r in records])


@catalog.route('/games/<int:game_id>', methods=['GET'])
@login_required
def get_game(game_id):
    record = db.session.get(GameRecord, game_id)
    if record is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(record.to_dict(include_definition=True))


@catalog.route('/games/<int:game_id>', methods=['DELETE'])
@login_required
def delete_game(game_id):
    record = db.session.get(GameRecord, game_id)
    if record is None:
        return jsonify({'error': 'Game not found'}), 404
    db.session.delete(record)
    db.session.commit()
    return jsonify({'message': 'Game deleted'})

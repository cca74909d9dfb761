from flask import Blueprint, jsonify, request, current_app, abort
from flask_login import login_required
from quizhost import db, socketio
from quizhost.models import GameRecord
from quizhost.services.quiz.scheduler import schedule_countdown
from quizhost.services.quiz.sync import MEDIA_ACTIONS, redact
from quizhost.services.quiz.types import build_teams, parse_game
from quizhost.sessions import NAMESPACE, CommandError, get_registry, room_for

sessions = Blueprint('sessions', __name__)


def _live_or_404(code):
    live = get_registry().get(code)
    if live is None:
        abort(404)
    return live


@sessions.errorhandler(404)
def not_found(_exc):
    return jsonify({'error': 'Session not found'}), 404


@sessions.route('', methods=['POST'])
@login_required
def create_session():
    """
    Starts a live session from a catalog game (``gameId``) or an inline
    definition (``game``) plus the team list.
    """
    data = request.get_json(silent=True) or {}
    default_limit = int(current_app.config.get('DEFAULT_TIME_LIMIT_SEC', 60))

    if data.get('gameId') is not None:
        record = db.session.get(GameRecord, data['gameId'])
        if record is None:
            return jsonify({'error': 'Game not found'}), 404
        definition = record.data
    else:
        definition = data.get('game')
    if not definition:
        return jsonify({'error': 'gameId or game is required'}), 400

    try:
        game = parse_game(definition, default_limit)
        teams = build_teams(data.get('teams') or [])
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400

    max_teams = int(current_app.config.get('MAX_TEAMS', 12))
    if len(teams) > max_teams:
        return jsonify({'error': f'At most {max_teams} teams are allowed'}), 400

    live = get_registry().create(
        game,
        teams,
        theme=data.get('theme') or current_app.config.get('DEFAULT_THEME'),
        min_teams=int(current_app.config.get('MIN_TEAMS', 2)),
        max_teams=max_teams,
    )
    current_app.logger.info(f"[session-start] session={live.code} mode={live.session.mode} teams={len(teams)}")
    return jsonify({'code': live.code, 'state': live.to_dict()}), 201


@sessions.route('', methods=['GET'])
@login_required
def list_sessions():
    registry = get_registry()
    listing = []
    for code in registry.codes():
        live = registry.get(code)
        if live is not None:
            listing.append({'code': code, 'mode': live.session.mode, 'status': live.session.status.value})
    return jsonify(listing)


@sessions.route('/<string:code>/state', methods=['GET'])
@login_required
def get_state(code):
    live = _live_or_404(code)
    with live.lock:
        return jsonify(live.to_dict())


@sessions.route('/<string:code>/public', methods=['GET'])
def get_public_state(code):
    live = _live_or_404(code)
    with live.lock:
        return jsonify(redact(live.session))


@sessions.route('/<string:code>/commands', methods=['POST'])
@login_required
def run_command(code):
    live = _live_or_404(code)
    data = request.get_json(silent=True) or {}
    command = data.get('command')
    if not command:
        return jsonify({'error': 'command is required'}), 400
    try:
        applied = live.dispatch(command, data.get('args') or {})
    except CommandError as exc:
        return jsonify({'error': str(exc)}), 400
    schedule_countdown(current_app._get_current_object(), live.code)
    with live.lock:
        return jsonify({'applied': applied, 'state': live.to_dict()})


@sessions.route('/<string:code>/video', methods=['POST'])
@login_required
def video_command(code):
    live = _live_or_404(code)
    data = request.get_json(silent=True) or {}
    action = data.get('action')
    if action not in MEDIA_ACTIONS:
        return jsonify({'error': f"action must be one of {', '.join(MEDIA_ACTIONS)}"}), 400
    try:
        seek_to = float(data['time']) if data.get('time') is not None else None
    except (TypeError, ValueError):
        return jsonify({'error': 'time must be a number'}), 400
    delivered = live.broadcaster.send_media_command(action, seek_to)
    return jsonify({'delivered': delivered})


@sessions.route('/<string:code>', methods=['DELETE'])
@login_required
def end_session(code):
    live = _live_or_404(code)
    end_live_session(live.code)
    return jsonify({'message': f'Session {live.code} ended'})


def end_live_session(code):
    """Stop the session's countdown, drop it and tell its spectators."""
    if not get_registry().end(code):
        return False
    current_app.logger.info(f"[session-end] session={code}")
    try:
        socketio.emit('session_ended', {'code': code}, to=room_for(code), namespace=NAMESPACE)
    except Exception as exc:
        current_app.logger.warning(f"[sync-drop] session_ended for {code}: {exc}")
    return True

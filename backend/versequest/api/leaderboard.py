from flask import Blueprint, current_app, jsonify, request

from versequest.engine.errors import VerseQuestError
from versequest.services.sessions import current_leaderboard

leaderboard = Blueprint('leaderboard', __name__)


@leaderboard.errorhandler(VerseQuestError)
def handle_domain_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


@leaderboard.route('', methods=['GET'])
def view():
    """Ranked leaderboard, served from the versioned snapshot cache."""
    return jsonify(current_leaderboard().view())


@leaderboard.route('/purge', methods=['POST'])
def purge():
    data = request.get_json(silent=True) or {}
    deleted = current_leaderboard().purge(data.get('admin_key') or '')
    current_app.logger.info(f"[leaderboard-purge] deleted={deleted}")
    return jsonify({'ok': True, 'deleted': deleted})

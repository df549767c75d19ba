from flask import Blueprint, current_app, jsonify

from versequest.engine.levels import build_levels, durations_from_config

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Verse Quest game server!'})

@main.route('/api/levels')
def list_levels():
    levels = build_levels(durations_from_config(current_app.config))
    return jsonify([
        {'ordinal': l.ordinal, 'type': l.level_type, 'duration': l.duration}
        for l in levels
    ])

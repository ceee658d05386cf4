#!/usr/bin/env python3
"""
Race Recommender API

Flask JSON interface over the recommendation pipeline: goal analysis,
onboarding quiz, per-runner stored state and personalized feeds.
"""

import os
import secrets
import sys
from datetime import datetime
from functools import wraps
from pathlib import Path

from flask import Flask, jsonify, request

# Add scripts directory to path
SCRIPTS_DIR = Path(__file__).parent.parent / "runners" / "scripts"
sys.path.insert(0, str(SCRIPTS_DIR))

from config_loader import get_config
from constants import PERSONALITY_TYPES, get_runner_dir, validate_runner_id
from feed_assembler import FEED_SECTION_NAMES, generate_match_explanation, get_feed_sections, get_personalized_feed
from goal_analyzer import analyze_goals, score_race_for_goals
from goal_patterns import GoalTag, get_tag
from goals_store import GoalsStore, has_goals
from kv_store import FileStore, StoreError
from logger import configure_logging, get_logger
from race_filters import filter_races, validate_filters
from runner_profile import (
    QUIZ_QUESTIONS,
    QuizAnswerError,
    answer_question,
    get_personality_description,
    is_quiz_complete,
    new_quiz_state,
)
from runner_state import (
    clear_location,
    clear_saved_races,
    load_location,
    load_runner_goals,
    load_personality,
    load_runner_profile,
    load_saved_races,
    save_personality,
    save_race,
    set_location_from_coordinates,
    set_manual_location,
    set_radius,
    toggle_save_race,
    unsave_race,
)

app = Flask(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

_config = get_config()
app.config['RUNNERS_DIR'] = _config.get_runners_dir()
app.config['API_KEY'] = os.environ.get('RF_API_KEY') or _config.get('api.key') or None
app.config['FOR_YOU_LIMIT'] = _config.get('feed.for_you_limit', 10)
app.config['SECTION_LIMIT'] = _config.get('feed.section_limit', 6)
configure_logging(level=_config.get('logging.level'), fmt=_config.get('logging.format'))


# Security headers
@app.after_request
def set_security_headers(response):
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-XSS-Protection'] = '1; mode=block'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    if os.environ.get('FLASK_ENV') == 'production':
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


# =============================================================================
# AUTHENTICATION
# =============================================================================

def require_api_auth(f):
    """Decorator for endpoints that require the X-API-Key header."""
    @wraps(f)
    def decorated(*args, **kwargs):
        expected = app.config.get('API_KEY')

        # If no API key configured, allow access (dev mode)
        if not expected:
            return f(*args, **kwargs)

        api_key = request.headers.get('X-API-Key')
        if api_key and secrets.compare_digest(api_key, expected):
            return f(*args, **kwargs)

        return jsonify({"error": "Invalid or missing API key"}), 401

    return decorated


# =============================================================================
# INPUT VALIDATION
# =============================================================================

def require_valid_runner(f):
    """Decorator to validate the runner_id parameter."""
    @wraps(f)
    def decorated(runner_id, *args, **kwargs):
        if not validate_runner_id(runner_id):
            return jsonify({"error": "Invalid runner ID"}), 400
        return f(runner_id, *args, **kwargs)
    return decorated


class InvalidRequest(Exception):
    """Malformed request body; answered with 400."""


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest("Expected a JSON object body")
    return data


def runner_store(runner_id: str) -> FileStore:
    return FileStore(get_runner_dir(runner_id, app.config['RUNNERS_DIR']))


def parse_today(value):
    if not value:
        return None
    if not isinstance(value, str):
        raise InvalidRequest("'today' must be a YYYY-MM-DD string")
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise InvalidRequest(f"Invalid date (expected YYYY-MM-DD): {value}")


def feed_entry(race, goals=None):
    entry = dict(race, explanation=generate_match_explanation(race))
    if goals is not None:
        entry['goal_fit'] = score_race_for_goals(race, goals)
    return entry


def goals_response(state):
    return jsonify({
        "goals": state.to_dict(),
        "has_goals": has_goals(state),
    })


# =============================================================================
# ROUTES
# =============================================================================

@app.route('/api/health')
def health():
    return jsonify({"status": "ok"})


@app.route('/api/goals/analyze', methods=['POST'])
@require_api_auth
def api_analyze_goals():
    """API: Parse free-form goal text without storing it."""
    data = json_body()
    text = data.get('text', '')
    if not isinstance(text, str):
        raise InvalidRequest("'text' must be a string")
    return jsonify(analyze_goals(text).to_dict())


# --- Per-runner goals ---

@app.route('/api/runner/<runner_id>/goals')
@require_api_auth
@require_valid_runner
def api_get_goals(runner_id: str):
    return goals_response(GoalsStore(runner_store(runner_id)).load())


@app.route('/api/runner/<runner_id>/goals', methods=['PUT'])
@require_api_auth
@require_valid_runner
def api_update_goals(runner_id: str):
    """API: Replace the goal text; detected tags are auto-confirmed."""
    text = json_body().get('text', '')
    if not isinstance(text, str):
        raise InvalidRequest("'text' must be a string")
    return goals_response(GoalsStore(runner_store(runner_id)).update_goal_text(text))


@app.route('/api/runner/<runner_id>/goals/confirm', methods=['POST'])
@require_api_auth
@require_valid_runner
def api_confirm_tag(runner_id: str):
    data = json_body()
    tag = get_tag(data.get('tag_id', ''))
    if tag is None and isinstance(data.get('tag'), dict):
        tag = GoalTag.from_dict(data['tag'])
    if tag is None or not tag.id:
        raise InvalidRequest("Unknown goal tag")
    return goals_response(GoalsStore(runner_store(runner_id)).confirm_tag(tag))


@app.route('/api/runner/<runner_id>/goals/dismiss', methods=['POST'])
@require_api_auth
@require_valid_runner
def api_dismiss_tag(runner_id: str):
    tag_id = json_body().get('tag_id')
    if not tag_id or not isinstance(tag_id, str):
        raise InvalidRequest("'tag_id' is required")
    return goals_response(GoalsStore(runner_store(runner_id)).dismiss_tag(tag_id))


@app.route('/api/runner/<runner_id>/goals', methods=['DELETE'])
@require_api_auth
@require_valid_runner
def api_clear_goals(runner_id: str):
    return goals_response(GoalsStore(runner_store(runner_id)).clear())


# --- Quiz and personality ---

@app.route('/api/quiz')
def api_quiz():
    """API: The onboarding quiz catalogue."""
    return jsonify(QUIZ_QUESTIONS)


@app.route('/api/runner/<runner_id>/quiz', methods=['POST'])
@require_api_auth
@require_valid_runner
def api_submit_quiz(runner_id: str):
    """API: Score quiz answers and store the resulting personality.

    Body: {"answers": [{"question": "terrain", "answer": "trail"}, ...]}
    """
    answers = json_body().get('answers')
    if not isinstance(answers, list):
        raise InvalidRequest("'answers' must be a list")

    quiz_state = new_quiz_state()
    for answer in answers:
        if not isinstance(answer, dict):
            raise InvalidRequest("Each answer must be an object")
        quiz_state = answer_question(quiz_state, str(answer.get('question')), str(answer.get('answer')))

    personality = save_personality(runner_store(runner_id), quiz_state['traits'])
    return jsonify({
        "personality": personality,
        "description": get_personality_description(personality['primary_type']),
        "complete": is_quiz_complete(quiz_state),
    })


@app.route('/api/runner/<runner_id>/personality')
@require_api_auth
@require_valid_runner
def api_get_personality(runner_id: str):
    personality = load_personality(runner_store(runner_id))
    if personality is None:
        return jsonify({"error": "No personality stored"}), 404
    return jsonify(personality)


@app.route('/api/personality/<personality_type>')
def api_personality_description(personality_type: str):
    if personality_type not in PERSONALITY_TYPES:
        return jsonify({"error": f"Unknown personality type: {personality_type}"}), 404
    return jsonify(get_personality_description(personality_type))


# --- Saved races ---

@app.route('/api/runner/<runner_id>/saved')
@require_api_auth
@require_valid_runner
def api_saved_races(runner_id: str):
    return jsonify(load_saved_races(runner_store(runner_id)))


@app.route('/api/runner/<runner_id>/saved', methods=['POST'])
@require_api_auth
@require_valid_runner
def api_save_race(runner_id: str):
    """API: Save a race. Body is the race record; {"toggle": true} toggles."""
    data = json_body()
    race = data.get('race') or {k: v for k, v in data.items() if k != 'toggle'}
    if not isinstance(race, dict) or not race.get('id'):
        raise InvalidRequest("A race with an 'id' is required")

    store = runner_store(runner_id)
    if data.get('toggle'):
        saved = toggle_save_race(store, race)
        return jsonify({"saved": saved, "races": load_saved_races(store)})
    return jsonify({"saved": True, "races": save_race(store, race)})


@app.route('/api/runner/<runner_id>/saved/<race_id>', methods=['DELETE'])
@require_api_auth
@require_valid_runner
def api_unsave_race(runner_id: str, race_id: str):
    return jsonify(unsave_race(runner_store(runner_id), race_id))


@app.route('/api/runner/<runner_id>/saved', methods=['DELETE'])
@require_api_auth
@require_valid_runner
def api_clear_saved(runner_id: str):
    clear_saved_races(runner_store(runner_id))
    return jsonify([])


# --- Location ---

@app.route('/api/runner/<runner_id>/location')
@require_api_auth
@require_valid_runner
def api_get_location(runner_id: str):
    return jsonify({"location": load_location(runner_store(runner_id))})


@app.route('/api/runner/<runner_id>/location', methods=['PUT'])
@require_api_auth
@require_valid_runner
def api_set_location(runner_id: str):
    """API: Set location from {"query": "Boulder, CO"} or {"coordinates": {...}}.

    {"radius": N} alone changes the radius of the stored location.
    """
    data = json_body()
    store = runner_store(runner_id)
    radius = data.get('radius')
    if radius is not None and (not isinstance(radius, (int, float)) or isinstance(radius, bool) or radius <= 0):
        raise InvalidRequest("'radius' must be a positive number")

    if data.get('query'):
        location = set_manual_location(store, str(data['query']), radius)
        if location is None:
            return jsonify({"error": f"Could not find location: {data['query']}"}), 404
    elif isinstance(data.get('coordinates'), dict):
        coords = data['coordinates']
        try:
            coordinates = {'latitude': float(coords['latitude']), 'longitude': float(coords['longitude'])}
        except (KeyError, TypeError, ValueError):
            raise InvalidRequest("'coordinates' needs numeric latitude and longitude")
        location = set_location_from_coordinates(store, coordinates, radius)
    elif radius is not None:
        location = set_radius(store, radius)
        if location is None:
            return jsonify({"error": "No location stored"}), 404
    else:
        raise InvalidRequest("Provide 'query', 'coordinates' or 'radius'")

    return jsonify({"location": location})


@app.route('/api/runner/<runner_id>/location', methods=['DELETE'])
@require_api_auth
@require_valid_runner
def api_clear_location(runner_id: str):
    clear_location(runner_store(runner_id))
    return jsonify({"location": None})


# --- Feed ---

@app.route('/api/runner/<runner_id>/feed', methods=['POST'])
@require_api_auth
@require_valid_runner
def api_feed(runner_id: str):
    """API: Feed sections for a posted race list.

    Body: {"races": [...], "exclude_ids": [...], "today": "YYYY-MM-DD",
           "filters": {...}}  (see race_filters.py)
    """
    data = json_body()
    races = data.get('races')
    if not isinstance(races, list):
        raise InvalidRequest("'races' must be a list")
    races = [race for race in races if isinstance(race, dict)]
    today = parse_today(data.get('today'))
    try:
        filters = validate_filters(data.get('filters'))
    except ValueError as e:
        raise InvalidRequest(str(e))
    exclude_ids = data.get('exclude_ids') or []
    if not isinstance(exclude_ids, list) or not all(isinstance(i, str) for i in exclude_ids):
        raise InvalidRequest("'exclude_ids' must be a list of strings")

    store = runner_store(runner_id)
    profile = load_runner_profile(store, runner_id)
    # Radius searches default to the runner's stored location
    if filters.get('max_distance_miles') and not filters.get('origin') and profile['location']:
        filters = dict(filters, origin=profile['location']['coordinates'])
    races = filter_races(races, filters)

    feed = get_personalized_feed(profile, races, exclude_ids=exclude_ids, today=today)
    sections = get_feed_sections(
        feed,
        today=today,
        for_you_limit=app.config['FOR_YOU_LIMIT'],
        section_limit=app.config['SECTION_LIMIT'],
    )

    # Runners with confirmed goals also get a 0-100 goal fit per race
    goals = load_runner_goals(store)
    for name in FEED_SECTION_NAMES:
        sections[name] = [feed_entry(race, goals) for race in sections[name]]

    get_logger().info("Served feed", runner_id=runner_id, races=len(feed))
    return jsonify({"personality": profile['personality']['primary_type'], "sections": sections})


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.errorhandler(InvalidRequest)
def bad_request(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(QuizAnswerError)
def bad_quiz_answer(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(StoreError)
def store_error(e):
    get_logger().error("Storage failure", error=str(e))
    return jsonify({"error": "Storage failure"}), 500


@app.errorhandler(404)
def not_found(e):
    return jsonify({"error": "Not found"}), 404


@app.errorhandler(405)
def method_not_allowed(e):
    return jsonify({"error": "Method not allowed"}), 405


@app.errorhandler(500)
def server_error(e):
    return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    # Default to false in production, true only if explicitly set
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    app.run(host='0.0.0.0', port=port, debug=debug)

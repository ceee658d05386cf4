#!/usr/bin/env python3
"""
Race recommender command line.

Usage:
    # Parse free-form goals into tags
    python3 runners/scripts/recommend.py analyze "I want to qualify for Boston"

    # Score a completed onboarding quiz (YAML mapping question -> answer)
    python3 runners/scripts/recommend.py quiz answers.yaml

    # Describe a personality archetype
    python3 runners/scripts/recommend.py personality trail_seeker

    # Build a feed for a race list
    python3 runners/scripts/recommend.py feed --races races.json --profile profile.yaml
    python3 runners/scripts/recommend.py feed --races races.yaml --runner jane-doe

Results are printed to stdout as YAML; progress goes to the log (stderr).
"""

import argparse
import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

import yaml

# Ensure scripts dir is on path
SCRIPTS_DIR = Path(__file__).parent.resolve()
sys.path.insert(0, str(SCRIPTS_DIR))

from config_loader import get_config
from constants import get_runner_dir, validate_runner_id
from feed_assembler import FEED_SECTION_NAMES, generate_match_explanation, get_feed_sections, get_personalized_feed
from goal_analyzer import analyze_goals, score_race_for_goals
from kv_store import FileStore
from logger import configure_logging, get_logger
from runner_profile import (
    QUIZ_QUESTIONS,
    apply_quiz_answers,
    build_personality,
    build_runner_profile,
    get_personality_description,
    get_quiz_option,
)
from runner_state import load_runner_goals, load_runner_profile


class CLIError(Exception):
    """Bad command line input; reported and turned into exit status 1."""


# =============================================================================
# INPUT FILES
# =============================================================================

def load_data_file(path: Path):
    """Read a JSON or YAML document."""
    path = Path(path)
    if not path.exists():
        raise CLIError(f"File not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        try:
            if path.suffix.lower() == '.json':
                return json.load(f)
            return yaml.safe_load(f)
        except (ValueError, yaml.YAMLError) as e:
            raise CLIError(f"Could not parse {path}: {e}") from e


def load_races(path: Path) -> List[Dict]:
    """Race list from a file holding a list or a {'races': [...]} mapping."""
    data = load_data_file(path)
    if isinstance(data, dict):
        data = data.get('races')
    if not isinstance(data, list):
        raise CLIError(f"{path} does not contain a race list")
    return [race for race in data if isinstance(race, dict)]


def profile_from_file(path: Path) -> Dict:
    """Runner profile from a YAML description.

    Keys (all optional): id, traits, quiz, goals (free text), location,
    preferences, behavior.
    """
    data = load_data_file(path) or {}
    if not isinstance(data, dict):
        raise CLIError(f"{path} does not contain a profile mapping")

    traits = data.get('traits')
    if data.get('quiz'):
        traits = quiz_traits(data['quiz'], traits)

    goals = analyze_goals(data['goals']) if data.get('goals') else None
    return build_runner_profile(
        traits=traits,
        goals=goals,
        location=data.get('location'),
        preferences=data.get('preferences'),
        behavior=data.get('behavior'),
        runner_id=str(data.get('id', 'local')),
    )


def quiz_traits(answers: Dict, traits: Optional[Dict] = None) -> Dict:
    """Trait vector from a {question_id: option_value} mapping."""
    if not isinstance(answers, dict):
        raise CLIError("Quiz answers must be a mapping of question id to answer")

    selections = []
    for question_id, value in answers.items():
        if get_quiz_option(str(question_id), str(value)) is None:
            raise CLIError(f"Unknown quiz answer: {question_id}={value}")
        selections.append((str(question_id), str(value), None))
    return apply_quiz_answers(selections, traits)


def parse_today(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError as e:
        raise CLIError(f"Invalid --today date (expected YYYY-MM-DD): {value}") from e


def emit(data):
    print(yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True, width=120))


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_analyze(args) -> int:
    goals = analyze_goals(args.text)
    log = get_logger()
    log.header("GOAL ANALYSIS")
    log.detail(f"Tags: {', '.join(goals.tag_ids) or '(none)'}")
    log.detail(f"Experience: {goals.experience_level or 'unknown'}")
    if goals.target_time:
        log.detail(f"Target time: {goals.target_time}")
    emit(goals.to_dict())
    return 0


def cmd_quiz(args) -> int:
    answers = load_data_file(Path(args.answers)) or {}
    traits = quiz_traits(answers)
    personality = build_personality(traits)

    answered = len([q for q in QUIZ_QUESTIONS if q['id'] in answers])
    if answered < len(QUIZ_QUESTIONS):
        get_logger().warning("Quiz incomplete", answered=answered, total=len(QUIZ_QUESTIONS))

    description = get_personality_description(personality['primary_type'])
    get_logger().success(f"You're a {description['title']}")
    emit({'personality': personality, 'description': description})
    return 0


def cmd_personality(args) -> int:
    emit(get_personality_description(args.type))
    return 0


def cmd_feed(args) -> int:
    log = get_logger()
    config = get_config()
    today = parse_today(args.today)

    log.step(1, "Loading races...")
    races = load_races(Path(args.races))
    log.detail(f"{len(races)} races")

    log.step(2, "Building runner profile...")
    goals = None
    if args.runner:
        if not validate_runner_id(args.runner):
            raise CLIError(f"Invalid runner id: {args.runner}")
        runners_dir = Path(args.runners_dir) if args.runners_dir else config.get_runners_dir()
        store = FileStore(get_runner_dir(args.runner, runners_dir))
        profile = load_runner_profile(store, args.runner)
        goals = load_runner_goals(store)
    elif args.profile:
        profile = profile_from_file(Path(args.profile))
    else:
        profile = build_runner_profile()
    log.detail(f"Personality: {profile['personality']['primary_type']}")

    log.step(3, "Ranking...")
    feed = get_personalized_feed(profile, races, exclude_ids=args.exclude, today=today)
    sections = get_feed_sections(
        feed,
        today=today,
        for_you_limit=config.get('feed.for_you_limit', 10),
        section_limit=config.get('feed.section_limit', 6),
    )

    output = {}
    for name in FEED_SECTION_NAMES:
        output[name] = []
        for race in sections[name]:
            entry = {
                'id': race.get('id'),
                'name': race.get('name'),
                'score': round(race['relevance_score'], 1),
                'why': generate_match_explanation(race),
            }
            if goals is not None:
                entry['goal_fit'] = score_race_for_goals(race, goals)
            output[name].append(entry)
    log.success("Feed ready", races=len(feed))
    emit(output)
    return 0


# =============================================================================
# MAIN
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Personalized race recommendations.",
        epilog=(
            "Examples:\n"
            "  python3 recommend.py analyze \"first marathon, love trails\"\n"
            "  python3 recommend.py feed --races races.json --profile profile.yaml\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING or ERROR')
    parser.add_argument('--json-logs', action='store_true', help='Structured JSON log output')
    subparsers = parser.add_subparsers(dest='command', required=True)

    analyze = subparsers.add_parser('analyze', help='Parse free-form goal text')
    analyze.add_argument('text', help='Goal text')
    analyze.set_defaults(func=cmd_analyze)

    quiz = subparsers.add_parser('quiz', help='Score onboarding quiz answers')
    quiz.add_argument('answers', help='YAML/JSON mapping of question id to answer')
    quiz.set_defaults(func=cmd_quiz)

    personality = subparsers.add_parser('personality', help='Describe a personality type')
    personality.add_argument('type', help='Personality type, e.g. trail_seeker')
    personality.set_defaults(func=cmd_personality)

    feed = subparsers.add_parser('feed', help='Rank races into feed sections')
    feed.add_argument('--races', required=True, help='Race list (.json or .yaml)')
    source = feed.add_mutually_exclusive_group()
    source.add_argument('--profile', help='Profile description (.yaml)')
    source.add_argument('--runner', help='Runner id with stored state')
    feed.add_argument('--runners-dir', help='Override the configured runners directory')
    feed.add_argument('--exclude', nargs='*', default=[], help='Race ids to leave out')
    feed.add_argument('--today', help='Reference date YYYY-MM-DD (default: today)')
    feed.set_defaults(func=cmd_feed)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = get_config()
    log = configure_logging(
        level=args.log_level or config.get('logging.level'),
        fmt='json' if args.json_logs else config.get('logging.format'),
    )

    try:
        return args.func(args)
    except CLIError as e:
        log.error(str(e))
        return 1


if __name__ == '__main__':
    sys.exit(main())

#!/usr/bin/env python3
"""
Command line entry point for the Calendar Intelligence engine

Runs a history analysis or a focus-time analysis for one Google Calendar
identity and prints the result as JSON.
"""

import json
import logging

from config.settings import Config
from src.calendar.google_calendar_source import GoogleCalendarDataSource
from src.scheduler.intelligence_engine import CalendarIntelligenceEngine
from utils.logger import CalendarIntelligenceLogger

def build_engine(config=None):
    """Engine backed by the Google Calendar token files in Config.CALENDAR_TOKENS_PATH"""
    config = config or Config()
    return CalendarIntelligenceEngine(GoogleCalendarDataSource(config), config)

def run_command(engine, args):
    if args.command == 'analyze':
        return engine.analyze_history(args.identity, args.days)
    return engine.analyze_focus_time(args.identity)

def main(argv=None):
    """Main CLI entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='Calendar Intelligence')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    analyze_parser = subparsers.add_parser('analyze', help='Learn meeting patterns from history')
    analyze_parser.add_argument('identity', help='Calendar account email')
    analyze_parser.add_argument('--days', type=int, default=Config.ANALYSIS_WINDOW_DAYS,
                                help='Look-back window in days')
    analyze_parser.add_argument('--output', help='Output JSON file')

    focus_parser = subparsers.add_parser('focus', help='Recommend focus-time blocks')
    focus_parser.add_argument('identity', help='Calendar account email')
    focus_parser.add_argument('--output', help='Output JSON file')

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    CalendarIntelligenceLogger.setup_logging(**Config.get_logging_config())
    logger = logging.getLogger(__name__)
    logger.info(f"Running {args.command} for {args.identity}")

    result = run_command(build_engine(), args).model_dump(mode="json")

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(result, f, indent=2)
    else:
        print(json.dumps(result, indent=2))
    return 0

if __name__ == '__main__':
    raise SystemExit(main())

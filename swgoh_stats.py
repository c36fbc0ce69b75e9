#!/usr/bin/env python3
"""
SWGOH Guild Stats
Command-line reports for Territory Battle snapshots and Territory War logs.
"""

import os
import sys
import json
import argparse
import logging
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from swgoh_data_context import SWGOHDataContext, format_date
from swgoh_log_source import HTTPLogSource, LocalLogSource, LogSource
from swgoh_ranking import DEFAULT_SORT_KEY
from swgoh_tb_stats import TBSnapshot
from swgoh_zone_names import PHASES


# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def format_tb_report(snapshot: TBSnapshot, players: List[Dict[str, Any]]) -> str:
    """
    Format ranked TB records as a text table.

    Inactive phases are shown as '-' placeholders.
    """
    active = snapshot.active_phases

    output = "\n" + "=" * 120 + "\n"
    output += "TERRITORY BATTLE WAVES\n"
    output += "=" * 120 + "\n\n"

    header = f"{'#':>3} | {'Player':<25} | {'Total':>6}"
    for phase in PHASES:
        header += f" | {'P' + str(phase):>5} {'SM':<11}"
    output += header + "\n"
    output += "-" * len(header) + "\n"

    row = f"{'':>3} | {'Totals':<25} | {snapshot.total_waves:>6}"
    for phase in PHASES:
        if phase in active:
            totals = snapshot.phase_totals[phase]
            row += f" | {totals.total:>5} {f'{totals.wins} W / {totals.fails} F':<11}"
        else:
            row += f" | {'-':>5} {'-':<11}"
    output += row + "\n"

    for player in players:
        row = f"{player['rank']:>3} | {player['name'][:25]:<25} | {player['total']:>6}"
        for phase in PHASES:
            if phase in active:
                phase_data = player['phases'][phase]
                row += f" | {phase_data['total']:>5} {phase_data['mission']:<11}"
            else:
                row += f" | {'-':>5} {'-':<11}"
        output += row + "\n"

    output += "\n" + "=" * 120 + "\n"
    output += f"Active phases: {', '.join(str(p) for p in sorted(active)) or 'none'}\n"
    output += f"Average waves per player per active phase: {snapshot.average_per_phase:.1f}\n"
    return output


def format_activity(context: SWGOHDataContext) -> str:
    """Summarize the activity histogram as peak concurrent attacks per hour."""
    activity = context.tw_report.activity
    if not activity.has_activity:
        return "No attack activity recorded.\n"

    frame = activity.to_frame()
    hourly = frame.groupby(frame['start'].dt.floor('h'))['active'].max()

    output = f"{'Hour (UTC)':<17} | {'Peak active':>11}\n"
    output += "-" * 31 + "\n"
    for hour, peak in hourly.items():
        output += f"{hour.strftime('%Y-%m-%d %H:%M'):<17} | {int(peak):>11}\n"
    return output


def format_tw_report(context: SWGOHDataContext, players: List[Dict[str, Any]]) -> str:
    """Format ranked TW records and summary as text."""
    summary = context.get_tw_summary()

    output = "\n" + "=" * 100 + "\n"
    output += f"{summary['title'].upper()}\n"
    output += "=" * 100 + "\n\n"
    output += f"Total Players: {summary['total_players']}\n"
    output += f"Total Events: {summary['total_events']}\n"
    output += f"Total Score: {summary['total_score']}\n"
    output += f"Avg Score/Player: {summary['avg_score']:.0f}\n"
    output += f"Duplicate Events Skipped: {summary['duplicate_events']}\n\n"

    output += f"{'#':>3} | {'Player':<25} | {'Wins':>9} | {'Attempts':>8} | {'Losses':>6} | {'Score':>11}\n"
    output += "-" * 80 + "\n"

    for player in players:
        total_score = player['total_attack_score']
        total_score = '?' if total_score is None else total_score
        output += (
            f"{player['rank']:>3} | "
            f"{player['name'][:25]:<25} | "
            f"{str(player['wins']) + '/' + str(player['attack_count']):>9} | "
            f"{player['attempts']:>8} | "
            f"{player['losses']:>6} | "
            f"{str(player['events_score']) + '/' + str(total_score):>11}\n"
        )

    output += "\n" + "=" * 100 + "\n"
    output += "ACTIVITY\n"
    output += "=" * 100 + "\n\n"
    output += format_activity(context)
    return output


def make_log_source(data_dir: Optional[str], data_url: Optional[str], timeout: float) -> Optional[LogSource]:
    """Create a log source from a directory or URL (URL wins when both are set)."""
    if data_url:
        return HTTPLogSource(data_url, timeout=timeout)
    if data_dir:
        return LocalLogSource(data_dir)
    return None


def to_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def main():
    """Main entry point for the SWGOH guild stats CLI."""
    parser = argparse.ArgumentParser(
        description='SWGOH Guild Stats - Territory Battle and Territory War reports'
    )
    parser.add_argument(
        '--endpoint',
        default='tw',
        choices=['tb', 'tw', 'tw-dates'],
        help='Report to produce (default: tw)'
    )
    parser.add_argument(
        '--input-file',
        help='TB snapshot JSON file (required for tb endpoint)'
    )
    parser.add_argument(
        '--data-dir',
        default=os.getenv('SWGOH_DATA_DIR'),
        help='Local TW data root containing logs/YYYYMMDD/ (or set SWGOH_DATA_DIR env var)'
    )
    parser.add_argument(
        '--data-url',
        default=os.getenv('SWGOH_DATA_URL'),
        help='HTTP TW data root with directory listings (or set SWGOH_DATA_URL env var)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=float(os.getenv('SWGOH_HTTP_TIMEOUT', '30')),
        help='HTTP timeout in seconds (default: 30, or from SWGOH_HTTP_TIMEOUT env var)'
    )
    parser.add_argument(
        '--date',
        help='TW date as YYYYMMDD (default: most recent available)'
    )
    parser.add_argument(
        '--sort-key',
        default=DEFAULT_SORT_KEY,
        help='Field to rank players by (default: total)'
    )
    direction = parser.add_mutually_exclusive_group()
    direction.add_argument(
        '--ascending',
        dest='ascending',
        action='store_true',
        default=None,
        help='Sort ascending (default: descending for numbers, ascending for names)'
    )
    direction.add_argument(
        '--descending',
        dest='ascending',
        action='store_false',
        help='Sort descending'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Output results as formatted JSON'
    )
    parser.add_argument(
        '--output', '-o',
        help='Write output to file instead of stdout'
    )

    parser.set_defaults(ascending=None)

    args = parser.parse_args()

    # Set logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    context = SWGOHDataContext()

    try:
        if args.endpoint == 'tb':
            if not args.input_file:
                logger.error("--input-file is required for tb endpoint")
                sys.exit(1)

            if not context.load_tb_snapshot(args.input_file):
                logger.error(f"Failed to load TB snapshot: {context.last_error}")
                sys.exit(1)

            players = context.get_tb_report(args.sort_key, args.ascending)
            if args.json:
                output = to_json({
                    'active_phases': sorted(context.tb_snapshot.active_phases),
                    'total_waves': context.tb_snapshot.total_waves,
                    'players': players,
                })
            else:
                output = format_tb_report(context.tb_snapshot, players)

        else:
            source = make_log_source(args.data_dir, args.data_url, args.timeout)
            if source is None:
                logger.error("A TW data root is required")
                logger.error("Provide it via --data-dir or --data-url or set SWGOH_DATA_DIR or SWGOH_DATA_URL environment variables")
                sys.exit(1)

            if args.endpoint == 'tw-dates':
                dates = source.list_dates()
                output = to_json(dates) if args.json else "\n".join(format_date(d) for d in dates) + "\n"
            else:
                if not context.load_tw_logs(source, args.date):
                    logger.error(f"Error loading data: {context.last_error}")
                    sys.exit(1)

                for warning in context.warnings:
                    logger.warning(warning)

                players = context.get_tw_report(args.sort_key, args.ascending)
                if args.json:
                    activity = context.tw_report.activity
                    output = to_json({
                        'summary': context.get_tw_summary(),
                        'players': players,
                        'activity': {
                            'window_start': activity.window_start,
                            'window_end': activity.window_end,
                            'bucket_width': activity.bucket_width,
                            'counts': activity.counts,
                        },
                    })
                else:
                    output = format_tw_report(context, players)

        # Write to file or stdout
        if args.output:
            with open(args.output, 'w') as f:
                f.write(output)
            logger.info(f"Output written to {args.output}")
        else:
            print(output)

    except KeyError as e:
        logger.error(f"Invalid sort key: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

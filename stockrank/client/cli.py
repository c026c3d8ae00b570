#!/usr/bin/env python3
"""
Stock Rank CLI
Provides commands for running the ranking pipeline, printing results,
and cleaning up intermediate data
"""

import argparse
import logging
import os
import shutil
import sys

from stockrank.config import PipelineConfig
from stockrank.coordinator.pipeline import (
    JobFailedError,
    RANK_DIR_NAME,
    StockRankPipeline,
    read_ranked_output,
)


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human readable string."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds / 60)
    seconds = seconds % 60
    if minutes < 60:
        return f"{minutes}m {seconds:.1f}s"
    hours = int(minutes / 60)
    minutes = minutes % 60
    return f"{hours}h {minutes}m {seconds:.1f}s"


def run_pipeline(args):
    """Run the count and rank jobs"""
    for path in args.input:
        if not os.path.isfile(path):
            print(f"Error: Input file {path} not found")
            return 1

    try:
        config = PipelineConfig.from_env(
            work_dir=args.work_dir,
            num_map_tasks=args.num_map_tasks,
            num_reduce_tasks=args.num_reduce_tasks,
            use_combiner=args.use_combiner,
            max_workers=args.max_workers,
            keep_intermediate=args.keep_intermediate or None
        )
        result = StockRankPipeline(config).run(args.input, args.output, overwrite=args.overwrite)
    except (JobFailedError, FileExistsError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    total = sum(m.total_time_seconds for m in result.metrics.values())
    print("✓ Ranking completed")
    print(f"  Counts:  {result.count_path}")
    print(f"  Ranking: {result.rank_path}")
    print(f"  Codes ranked: {result.metrics['rank'].records_written}")
    print(f"  Runtime: {format_duration(total)}")
    return 0


def show_results(args):
    """Print ranked lines from a finished run"""
    rank_path = os.path.join(args.output, RANK_DIR_NAME)
    if not os.path.isdir(rank_path):
        print(f"Error: No ranking found under {args.output}")
        return 1

    entries = read_ranked_output(rank_path)
    if args.top is not None:
        entries = entries[:args.top]
    for entry in entries:
        print(entry.to_line())
    return 0


def cleanup(args):
    """Remove intermediate shuffle data left in the work directory"""
    config = PipelineConfig.from_env(work_dir=args.work_dir)
    if not os.path.exists(config.intermediate_dir):
        print(f"Nothing to clean in {config.intermediate_dir}")
        return 0
    shutil.rmtree(config.intermediate_dir)
    print(f"✓ Removed {config.intermediate_dir}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Rank stock codes by how often they occur',
        epilog='Example: %(prog)s run --input trades.csv --output out/'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser(
        'run',
        help='Run the ranking pipeline',
        description='Count stock codes and write the descending-count ranking'
    )
    run_parser.add_argument('--input', required=True, nargs='+', help='Input CSV file(s); the first line is a header')
    run_parser.add_argument('--output', required=True, help='Output directory')
    run_parser.add_argument('--work-dir', help='Directory for intermediate files (env STOCKRANK_WORK_DIR)')
    run_parser.add_argument('--num-map-tasks', type=int, help='Number of map tasks (default: 4)')
    run_parser.add_argument('--num-reduce-tasks', type=int, help='Reduce tasks for the count job (default: 2)')
    run_parser.add_argument('--max-workers', type=int, help='Worker threads (default: 4)')
    combiner = run_parser.add_mutually_exclusive_group()
    combiner.add_argument('--use-combiner', dest='use_combiner', action='store_true', default=None,
                          help='Enable combiner optimization (default)')
    combiner.add_argument('--no-combiner', dest='use_combiner', action='store_false',
                          help='Disable combiner optimization')
    run_parser.add_argument('--keep-intermediate', action='store_true', help='Keep shuffle files after each job')
    run_parser.add_argument('--overwrite', action='store_true', help='Replace existing results')
    run_parser.set_defaults(func=run_pipeline)

    show_parser = subparsers.add_parser(
        'show-results',
        help='Print the ranking',
        description='Print rank:code,count lines from a finished run'
    )
    show_parser.add_argument('output', help='Output directory of a finished run')
    show_parser.add_argument('--top', type=int, help='Only print the first N entries')
    show_parser.set_defaults(func=show_results)

    cleanup_parser = subparsers.add_parser(
        'cleanup',
        help='Remove intermediate data',
        description='Delete shuffle files left in the work directory'
    )
    cleanup_parser.add_argument('--work-dir', help='Directory for intermediate files (env STOCKRANK_WORK_DIR)')
    cleanup_parser.set_defaults(func=cleanup)

    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not hasattr(args, 'func'):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())

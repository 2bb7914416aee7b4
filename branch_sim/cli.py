"""
Command-line interface.

    branch-sim run TRACE -p gshare -p yags --table-size 4096
    branch-sim sweep config/sweep.yaml -o results/sweep.json
    branch-sim gen-trace mixed traces/mixed.txt.gz -n 100000
    branch-sim report results/sweep.json --dat results/sweep.dat
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .errors import ConfigError, ParseError, SimulationCancelled
from .predictors.config import VARIANTS, PredictorConfig, create_predictor
from .simulation.metrics import ResultsExporter, SimulationResults
from .simulation.simulator import BranchSimulator, SimulationConfig
from .simulation.sweep import aggregate_by_variant, expand_grid, load_sweep, run_sweep
from .trace.parser import TraceParser
from .trace.synthetic import PATTERNS
from .utils.helpers import format_bits, load_config, setup_logging

logger = logging.getLogger("branch_sim.cli")

EXIT_OK = 0
EXIT_MISSING = 1
EXIT_CONFIG = 2
EXIT_PARSE = 3
EXIT_CANCELLED = 130


def _predictor_configs(args) -> List[PredictorConfig]:
    """Predictor configurations from --config, or from the size flags."""
    if args.config:
        entries = load_config(args.config).get('predictors')
        if not entries or not isinstance(entries, list):
            raise ConfigError(f"{args.config}: needs a non-empty 'predictors' list")
        return [c for entry in entries for c in expand_grid(entry)]

    variants = args.predictor or ['bimodal', 'gshare', 'yags']
    return [
        PredictorConfig(
            variant=variant,
            table_size=args.table_size,
            history_length=args.history_length,
            cache_size=args.cache_size,
            tag_bits=args.tag_bits,
            counter_bits=args.counter_bits,
            address_shift=args.address_shift,
        )
        for variant in variants
    ]


def cmd_run(args) -> int:
    configs = _predictor_configs(args)

    simulator = BranchSimulator(SimulationConfig(
        warmup_branches=args.warmup,
        max_branches=args.max_branches,
        verbose=args.verbose,
        snapshot_interval=args.snapshot_interval,
    ))
    for config in configs:
        simulator.add_predictor(config.label(), create_predictor(config))

    results = simulator.run(args.trace, trace_format=args.format)

    print(results.get_summary())
    print()
    print(ResultsExporter.format_report(results))

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        ResultsExporter.to_json(results, output)
        print(f"\nResults saved to: {output}")
    return EXIT_OK


def cmd_sweep(args) -> int:
    sweep = load_sweep(args.config)

    trace = args.trace or sweep['trace']
    if not trace:
        raise ConfigError("No trace given (use --trace or 'trace:' in the sweep file)")

    results = run_sweep(
        trace,
        sweep['configs'],
        trace_format=args.format or sweep['trace_format'],
        warmup=sweep['warmup'],
        max_branches=sweep['max_branches'],
        num_workers=args.workers or sweep['workers'],
    )

    print(ResultsExporter.format_report(results['runs']))

    print("\nBest per variant:")
    for variant, summary in aggregate_by_variant(results).items():
        print(f"  {variant:8}: {summary['best']} "
              f"{summary['best_misprediction_rate']*100:.2f}% "
              f"({format_bits(summary['best_total_bits'])})")

    failed = [r for r in results['runs'] if not r['success']]
    for run in failed:
        print(f"  FAILED {run['name']}: {run['error']}", file=sys.stderr)

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        ResultsExporter.to_json(results, output)
        print(f"\nResults saved to: {output}")
    if args.dat:
        ResultsExporter.to_dat(results['runs'], args.dat)

    return _sweep_exit_code(failed)


def _sweep_exit_code(failed: List[dict]) -> int:
    """Exit status for a sweep: the trace errors win over other failures."""
    error_types = {run.get('error_type') for run in failed}
    if not error_types:
        return EXIT_OK
    if 'FileNotFoundError' in error_types:
        return EXIT_MISSING
    if 'ParseError' in error_types:
        return EXIT_PARSE
    return EXIT_CONFIG


def cmd_gen_trace(args) -> int:
    generator = PATTERNS[args.pattern]
    kwargs = {}
    if args.seed is not None and args.pattern in ('biased', 'mixed'):
        kwargs['seed'] = args.seed

    records = generator(args.num_branches, **kwargs)
    count = TraceParser(format_name=args.format).write_file(args.output, records)
    print(f"Wrote {count:,} branches to {args.output}")
    return EXIT_OK


def cmd_report(args) -> int:
    with open(args.results, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"{args.results}: not a results file ({e})") from e

    if isinstance(data, dict) and 'runs' in data:
        results = data['runs']
    elif isinstance(data, dict) and 'predictor_results' in data:
        results = SimulationResults(**data)
    else:
        raise ConfigError(f"{args.results}: not a run or sweep results file")

    print(ResultsExporter.format_report(results))
    if args.dat:
        ResultsExporter.to_dat(results, args.dat)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='branch-sim',
        description='Trace-driven evaluation of bimodal, GShare and YAGS predictors')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('--log-file', default=None, help='Also log to this file')

    sub = parser.add_subparsers(dest='command', required=True)

    # run
    p = sub.add_parser('run', help='Simulate predictors on one trace')
    p.add_argument('trace', help='Trace file (.txt/.trace text, otherwise event)')
    p.add_argument('--predictor', '-p', action='append', choices=VARIANTS,
                   help='Predictor variant (repeatable, default: all)')
    p.add_argument('--config', '-c', default=None,
                   help="YAML file with a 'predictors' list (overrides size flags)")
    p.add_argument('--table-size', type=int, default=4096)
    p.add_argument('--history-length', type=int, default=12)
    p.add_argument('--cache-size', type=int, default=1024)
    p.add_argument('--tag-bits', type=int, default=6)
    p.add_argument('--counter-bits', type=int, default=2)
    p.add_argument('--address-shift', type=int, default=0)
    p.add_argument('--format', '-f', choices=TraceParser.list_supported_formats(),
                   default=None, help='Trace format (auto-detect if omitted)')
    p.add_argument('--warmup', '-w', type=int, default=0,
                   help='Branches trained on but not counted')
    p.add_argument('--max-branches', '-n', type=int, default=None,
                   help='Counted branches (default: whole trace)')
    p.add_argument('--snapshot-interval', type=int, default=0,
                   help='Record misprediction rate every N branches')
    p.add_argument('--output', '-o', default=None, help='Write results JSON')
    p.add_argument('--verbose', '-v', action='store_true', help='Show progress')
    p.set_defaults(func=cmd_run)

    # sweep
    p = sub.add_parser('sweep', help='Run a grid of configurations in parallel')
    p.add_argument('config', help='YAML sweep file')
    p.add_argument('--trace', '-t', default=None, help="Override the sweep's trace")
    p.add_argument('--format', '-f', choices=TraceParser.list_supported_formats(),
                   default=None)
    p.add_argument('--workers', '-j', type=int, default=None,
                   help='Parallel workers (default: CPU count - 1)')
    p.add_argument('--output', '-o', default=None, help='Write results JSON')
    p.add_argument('--dat', default=None, help='Write KiB/MPKI data for plotting')
    p.set_defaults(func=cmd_sweep)

    # gen-trace
    p = sub.add_parser('gen-trace', help='Write a synthetic trace')
    p.add_argument('pattern', choices=sorted(PATTERNS))
    p.add_argument('output', help='Output path (.txt/.trace for text, .gz etc. compress)')
    p.add_argument('--num-branches', '-n', type=int, default=100000)
    p.add_argument('--seed', type=int, default=None)
    p.add_argument('--format', '-f', choices=TraceParser.list_supported_formats(),
                   default=None)
    p.set_defaults(func=cmd_gen_trace)

    # report
    p = sub.add_parser('report', help='Print a saved run or sweep, worst first')
    p.add_argument('results', help='Results JSON from run or sweep')
    p.add_argument('--dat', default=None, help='Write KiB/MPKI data for plotting')
    p.set_defaults(func=cmd_report)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    try:
        return args.func(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG
    except ParseError as e:
        logger.error("Trace error: %s", e)
        return EXIT_PARSE
    except FileNotFoundError as e:
        logger.error("%s", e)
        return EXIT_MISSING
    except (SimulationCancelled, KeyboardInterrupt):
        logger.error("Cancelled")
        return EXIT_CANCELLED


if __name__ == '__main__':
    sys.exit(main())

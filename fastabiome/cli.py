#!/usr/bin/env python3
"""
fastabiome Command-Line Interface

Analyze FASTA files for sequence statistics, quality, taxonomic composition,
geographic origin and biodiversity, and build summary reports.

Sub-commands:
    fastabiome analyze  sample.fasta        full analysis result (JSON)
    fastabiome validate sample.fasta        parse check only (JSON)
    fastabiome report   sample.fasta        report with recommendations
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__, config, core, reports, utils

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Argument parser with one sub-parser per command."""
    parser = argparse.ArgumentParser(
        prog="fastabiome",
        description="fastabiome: biodiversity analysis of FASTA sequence files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full analysis, JSON to stdout
  fastabiome analyze data/river_sample.fasta

  # Reproducible classification, result written to a file
  fastabiome analyze data/river_sample.fasta --seed 42 --output results/river.json

  # Check a file before uploading it
  fastabiome validate data/river_sample.fasta

  # Report into a directory (file name derived from the input)
  fastabiome report data/river_sample.fasta --output reports/

Notes:
  - Taxonomic assignments come from a placeholder heuristic, not a
    reference database search
  - Environment variables prefixed FASTABIOME_ override configuration
    values (e.g. FASTABIOME_TAXONOMY__SEED=42)
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'fastabiome {__version__}'
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        'fasta',
        type=Path,
        help='Input FASTA file'
    )
    common.add_argument(
        '-o', '--output',
        type=Path,
        default=None,
        help='Output file or existing directory (default: stdout)'
    )
    common.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Configuration file (YAML or JSON)'
    )
    common.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Logging verbosity (default: INFO)'
    )
    common.add_argument(
        '--log-file',
        type=Path,
        default=None,
        help='Also write log messages to this file'
    )

    analysis = argparse.ArgumentParser(add_help=False)
    analysis.add_argument(
        '--name',
        type=str,
        default=None,
        help='Display name for the file (default: input base name)'
    )
    analysis.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Seed for the classifier random source (default: unseeded)'
    )
    analysis.add_argument(
        '--batch-size',
        type=int,
        default=None,
        help='Sequences per classification batch (default: 100)'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    subparsers.add_parser(
        'analyze',
        parents=[common, analysis],
        help='Run the complete analysis and print the result'
    )
    subparsers.add_parser(
        'validate',
        parents=[common],
        help='Check that a file parses as FASTA'
    )
    subparsers.add_parser(
        'report',
        parents=[common, analysis],
        help='Analyze a file and print a report with recommendations'
    )

    return parser


def load_pipeline_config(args: argparse.Namespace) -> config.PipelineConfig:
    """Defaults < config file < FASTABIOME_* environment < command-line flags."""
    if args.config is not None:
        cfg = config.load_config_from_file(args.config)
    else:
        cfg = config.get_default_config()

    env_overrides = config.load_config_from_env()
    if env_overrides:
        cfg = cfg.update(**env_overrides)

    overrides: Dict[str, Any] = {}
    if args.log_level is not None:
        overrides['log_level'] = args.log_level
    if getattr(args, 'seed', None) is not None:
        overrides['taxonomy__seed'] = args.seed
    if getattr(args, 'batch_size', None) is not None:
        overrides['taxonomy__batch_size'] = args.batch_size

    return cfg.update(**overrides) if overrides else cfg


def resolve_output_path(output: Optional[Path], fasta: Path, suffix: str) -> Optional[Path]:
    """
    Output file for a command. A directory gets a file named after the input,
    e.g. ``reports/`` + ``river sample.fasta`` -> ``reports/river_sample_report.json``.
    """
    if output is None:
        return None
    if output.is_dir():
        return output / f"{utils.sanitize_filename(fasta.stem)}_{suffix}"
    return output


def write_output(text: str, output_path: Optional[Path]) -> None:
    if output_path is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(text)
    logger.info(f"Wrote {output_path}")


def _to_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2)


def cmd_analyze(args: argparse.Namespace, cfg: config.PipelineConfig) -> int:
    result = core.analyze_fasta_file(args.fasta, args.name, cfg)
    write_output(_to_json(result), resolve_output_path(args.output, args.fasta, "analysis.json"))
    return 0


def cmd_validate(args: argparse.Namespace, cfg: config.PipelineConfig) -> int:
    validation = core.validate_fasta_file(args.fasta, cfg)
    write_output(_to_json(validation), resolve_output_path(args.output, args.fasta, "validation.json"))
    return 0 if validation['isValid'] else 1


def cmd_report(args: argparse.Namespace, cfg: config.PipelineConfig) -> int:
    context = core.AnalysisContext(file_name=args.name or utils.display_name_for(args.fasta))
    result = core.run_analysis(context, args.fasta, cfg)
    report = reports.build_report(result, context)

    write_output(_to_json(report), resolve_output_path(args.output, args.fasta, "report.json"))
    return 0


COMMANDS = {
    'analyze': cmd_analyze,
    'validate': cmd_validate,
    'report': cmd_report,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        cfg = load_pipeline_config(args)
    except (FileNotFoundError, ValueError, TypeError, AttributeError) as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    utils.setup_logging(
        log_level=cfg.log_level,
        log_file=str(args.log_file) if args.log_file else None,
    )
    for warning in config.validate_config(cfg):
        logger.warning(warning)

    logger.info("=" * 60)
    logger.info(f"fastabiome {__version__}: {args.command}")
    logger.info(f"Input: {args.fasta}")
    logger.info("=" * 60)

    try:
        return COMMANDS[args.command](args, cfg)

    except KeyboardInterrupt:
        print("\n\nAnalysis interrupted by user", file=sys.stderr)
        return 130
    except core.AnalysisError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"Command failed with error: {e}", exc_info=True)
        print(f"\nError: {args.command} failed: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

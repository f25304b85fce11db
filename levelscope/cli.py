"""
levelscope CLI -- Support/Resistance Analysis for a Bar File
-------------------------------------------------------------
Usage:
    levelscope analyze bars.json --symbol AAPL --interval 1d
    levelscope analyze bars.json --symbol NIFTY --interval 15m --as-of 2024-06-03T15:30:00
    levelscope analyze bars.json --symbol AAPL --interval 1d --config tuning.json --indent 0

The bar file is a JSON array of {timestamp, open, high, low, close, volume}.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from pydantic import TypeAdapter, ValidationError

from levelscope.core.config import get_settings
from levelscope.core.logging import setup_logging
from levelscope.schemas.config import get_analysis_config, load_analysis_config
from levelscope.schemas.market import AnalysisRequest, Bar
from levelscope.services.analysis.service import AnalysisService
from levelscope.services.base import InputError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INPUT_ERROR = 2

_BARS = TypeAdapter(list[Bar])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="levelscope", description="Support/resistance level analysis")
    parser.add_argument("--log-level", default=None, help="Override LEVELSCOPE_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze a JSON file of OHLCV bars")
    analyze.add_argument("file", type=Path, help="JSON array of bars, oldest first")
    analyze.add_argument("--symbol", required=True)
    analyze.add_argument("--interval", required=True, help="Bar interval label, e.g. 5m, 1h, 1d, 1wk")
    analyze.add_argument("--as-of", type=datetime.fromisoformat, default=None, help="ISO timestamp echoed in output")
    analyze.add_argument("--config", type=Path, default=None, help="JSON file of AnalysisConfig overrides")
    analyze.add_argument("--indent", type=int, default=2, help="JSON indent (0 for compact)")
    return parser


def run_analyze(args: argparse.Namespace) -> int:
    try:
        bars = _BARS.validate_json(args.file.read_bytes())
    except OSError as e:
        logger.error(f"Cannot read {args.file}: {e}")
        return EXIT_ERROR
    except ValidationError as e:
        logger.error(f"Malformed bar file {args.file}: {e.error_count()} error(s)")
        return EXIT_INPUT_ERROR

    try:
        config = load_analysis_config(args.config) if args.config else get_analysis_config()
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Invalid analysis config: {e}")
        return EXIT_ERROR

    request = AnalysisRequest(symbol=args.symbol, interval=args.interval, bars=tuple(bars), as_of=args.as_of)
    try:
        output = AnalysisService(config).analyze(request)
    except InputError as e:
        logger.error(e.message)
        return EXIT_INPUT_ERROR

    print(output.model_dump_json(indent=args.indent or None))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Load environment
    load_dotenv()
    setup_logging(get_settings(), level=args.log_level)

    if args.command == "analyze":
        return run_analyze(args)
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())

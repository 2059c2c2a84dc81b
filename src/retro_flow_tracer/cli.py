# src/retro_flow_tracer/cli.py
"""
コマンドラインのエントリポイント。

.nes イメージとヒントファイルを読み込み、制御フロー追跡による逆アセンブルを行い、
リスティングをファイルまたは標準出力に書き出します。
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from retro_flow_tracer.arch.mos6502.disassembler import DisassemblyResult, disassemble_program
from retro_flow_tracer.common.types import Hints, Symbol
from retro_flow_tracer.config.loader import ConfigLoader
from retro_flow_tracer.config.models import ProjectConfig
from retro_flow_tracer.listing.renderer import format_listing, render_listing
from retro_flow_tracer.loader.hints import HintsLoader
from retro_flow_tracer.loader.ines import InesLoader

logger = logging.getLogger(__name__)

TOOL_NAME = "retro-flow-tracer"
TOOL_DESCRIPTION = "Control-flow guided 6502 disassembler for NES program ROMs"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=TOOL_NAME, description=TOOL_DESCRIPTION)
    parser.add_argument("rom", nargs="?", help="iNES ROM image (.nes)")
    parser.add_argument("hints", nargs="?", help="Hints file (symbol / nonreturn directives)")
    parser.add_argument("-o", "--output", help="Write the listing to this file instead of stdout")
    parser.add_argument("-c", "--config", help="YAML project file")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity (-v for debug output)")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Suppress all output except errors")
    parser.add_argument("--log-file", help="Write log to file")
    return parser


# @intent:responsibility 引数に従ってログ出力先とレベルを設定します。
# @intent:rationale リスティングを標準出力に流せるよう、コンソールログは標準エラーに出します。
def setup_logging(verbose: int = 0, quiet: bool = False, log_file: Optional[str] = None) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = logging.INFO
    else:
        level = logging.DEBUG

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    handlers: List[logging.Handler] = [console]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG if log_file else level, handlers=handlers, force=True)


# @intent:responsibility コマンドライン引数と設定ファイルを統合します。引数が優先されます。
def resolve_project(args: argparse.Namespace) -> ProjectConfig:
    config = ConfigLoader().load_from_file(args.config) if args.config else ProjectConfig()
    if args.rom:
        config.rom = args.rom
    if args.hints:
        config.hints = args.hints
    if args.output:
        config.output = args.output
    if not config.rom:
        raise ValueError("No ROM image given (pass ROM or set 'rom' in the project config)")
    return config


# @intent:responsibility ヒントファイルと設定ファイル内のヒントを1つにまとめます。
def collect_hints(config: ProjectConfig) -> Hints:
    symbols: List[Symbol] = []
    nonreturns = set(config.nonreturns)
    if config.hints:
        file_hints = HintsLoader().load_hints(config.hints)
        symbols.extend(file_hints.symbols)
        nonreturns |= file_hints.nonreturns
    symbols.extend(Symbol(s.name, s.address) for s in config.symbols)
    return Hints(symbols=symbols, nonreturns=frozenset(nonreturns))


# @intent:responsibility プロジェクト設定から入力を読み込み、逆アセンブルを実行します。
def disassemble_project(config: ProjectConfig) -> DisassemblyResult:
    image = InesLoader().load_ines(config.rom)
    hints = collect_hints(config)
    return disassemble_program(image.prg_rom, hints)


def write_listing(result: DisassemblyResult, output: Optional[str]) -> None:
    text = format_listing(render_listing(result.rom, result.tags, result.symbols))
    if output:
        Path(output).write_text(text, encoding="utf-8")
        logger.info("Listing written to %s", output)
    else:
        sys.stdout.write(text)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet, args.log_file)

    try:
        config = resolve_project(args)
        result = disassemble_project(config)
        write_listing(result, config.output)
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        return 1

    logger.info(
        "%d instructions decoded, %d symbols, %d failed branches, %d unresolved targets",
        result.decoded, len(result.symbols), len(result.errors), len(result.unresolved),
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())

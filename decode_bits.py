#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
BitsDecoder: decode BITS hex messages line by line.

Every non-blank input line is one independent message. For each line the
packet tree is parsed, its version sum and expression value computed, and a
summary table printed. A broken line is reported and skipped; it never
affects the other lines.
"""

import argparse
import concurrent.futures
import dataclasses
import datetime
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

try:
    import yaml
except ImportError as e:
    raise ImportError("PyYAML is required. Install it with 'pip install PyYAML'") from e

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from bits_errors import BitsError
from evaluator import count_packets, depth, value, version_sum
from hex_decoder import bits_to_str, hex_to_bits
from packet_parser import DEFAULT_MAX_DEPTH, Literal, OperatorType, Packet, effective_max_depth, parse

logger = logging.getLogger("BitsDecoder")
console = Console()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"
DEFAULT_CONFIG = Path("bits.yaml")


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
@dataclass
class DecoderConfig:
    max_depth: Optional[int] = DEFAULT_MAX_DEPTH
    workers: Optional[int] = None
    save_json: bool = True


def _is_int(raw: Any) -> bool:
    return isinstance(raw, int) and not isinstance(raw, bool)


def _bounded_depth(max_depth: Optional[int]) -> int:
    bounded = effective_max_depth(max_depth)
    if bounded != max_depth:
        logger.warning("max_depth %s limited to %d by the interpreter recursion limit", max_depth, bounded)
    return bounded


def _int_at_least(minimum: int):
    def _parse(text: str) -> int:
        try:
            number = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid integer: {text!r}") from None
        if number < minimum:
            raise argparse.ArgumentTypeError(f"must be >= {minimum}, got {number}")
        return number
    return _parse


class YamlConfigLoader:
    def load(self, path: Path) -> DecoderConfig:
        if not path.is_file():
            logger.error("Config file not found: %s", path)
            raise FileNotFoundError(f"Config file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning("Expected a mapping in %s, got %s; using defaults", path, type(data).__name__)
            return DecoderConfig()

        defaults = DecoderConfig()
        known = {f.name for f in dataclasses.fields(DecoderConfig)}
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown config key '%s'", key)

        def _pick(key: str, valid) -> Any:
            default = getattr(defaults, key)
            if key not in data:
                return default
            raw = data[key]
            if not valid(raw):
                logger.warning("Invalid value for '%s': %r; using %r", key, raw, default)
                return default
            return raw

        return DecoderConfig(
            max_depth=_pick("max_depth", lambda v: v is None or (_is_int(v) and v >= 0)),
            workers=_pick("workers", lambda v: v is None or (_is_int(v) and v >= 1)),
            save_json=_pick("save_json", lambda v: isinstance(v, bool)),
        )


# -----------------------------------------------------------------------------
# Interfaces (Protocol)
# -----------------------------------------------------------------------------
class ConfigLoaderInterface(Protocol):
    def load(self, path: Path) -> DecoderConfig:
        ...

class LineReaderInterface(Protocol):
    def read_lines(self, filepath: Path) -> Iterator[Tuple[int, str]]:
        ...

class ResultSaverInterface(Protocol):
    def save(self, input_path: Path, results: List["LineResult"]) -> Path:
        ...


# -----------------------------------------------------------------------------
# Per-line decoding
# -----------------------------------------------------------------------------
@dataclass
class LineResult:
    line: int
    hex_text: str
    version_sum: Optional[int] = None
    value: Optional[int] = None
    packets: Optional[int] = None
    depth: Optional[int] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    packet: Optional[Packet] = field(default=None, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        # decimal strings: literal values are unbounded
        return {
            "line": self.line,
            "hex": self.hex_text,
            "version_sum": None if self.version_sum is None else str(self.version_sum),
            "value": None if self.value is None else str(self.value),
            "packets": self.packets,
            "depth": self.depth,
            "error": self.error,
            "error_type": self.error_type,
        }


def decode_line(line_no: int, text: str, max_depth: Optional[int] = DEFAULT_MAX_DEPTH) -> LineResult:
    result = LineResult(line=line_no, hex_text=text)
    try:
        packet = parse(text, max_depth=max_depth)
    except BitsError as e:
        logger.warning("Line %d: could not parse packet: %s", line_no, e)
        result.error, result.error_type = str(e), type(e).__name__
        return result

    result.packet = packet
    result.version_sum = version_sum(packet)
    result.packets = count_packets(packet)
    result.depth = depth(packet)
    try:
        result.value = value(packet)
    except BitsError as e:
        logger.warning("Line %d: could not evaluate packet: %s", line_no, e)
        result.error, result.error_type = str(e), type(e).__name__
    return result


# -----------------------------------------------------------------------------
# Implementations
# -----------------------------------------------------------------------------
class SimpleLineReader:
    def read_lines(self, filepath: Path) -> Iterator[Tuple[int, str]]:
        with filepath.open("r", encoding="utf-8") as f:
            for number, line in enumerate(f, start=1):
                text = line.strip()
                if text:
                    yield number, text

class JsonResultSaver:
    def save(self, input_path: Path, results: List[LineResult]) -> Path:
        now = datetime.datetime.now(datetime.timezone.utc)
        stamp = now.strftime("%Y%m%dT%H%M%SZ")
        out = input_path.parent / f"bits_{stamp}.json"
        payload = {
            "timestamp_utc": now.replace(microsecond=0).isoformat(),
            "input_file": str(input_path),
            "decoded": sum(1 for r in results if r.ok),
            "failed": sum(1 for r in results if not r.ok),
            "results": [r.to_dict() for r in results],
        }
        with out.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        logger.info("Results saved: %s", out)
        return out


def render_tree(packet: Packet, tree: Optional[Tree] = None) -> Tree:
    if isinstance(packet.body, Literal):
        label = f"[cyan]v{packet.version}[/cyan] literal = [bold]{packet.body.value}[/bold]"
    else:
        label = (
            f"[magenta]v{packet.version}[/magenta] {OperatorType(packet.type_id).name.lower()} "
            f"({len(packet.children)} subpacket(s))"
        )
    node = Tree(label) if tree is None else tree.add(label)
    for child in packet.children:
        render_tree(child, node)
    return node


def print_summary(results: List[LineResult]) -> None:
    table = Table(title="Decoded Messages")
    table.add_column("Line", style="cyan", justify="right")
    table.add_column("Packets", style="magenta", justify="right")
    table.add_column("Depth", style="magenta", justify="right")
    table.add_column("Version sum", style="green", justify="right")
    table.add_column("Value", style="white", justify="right")
    table.add_column("Error", style="red")
    for r in results:
        table.add_row(
            str(r.line),
            "" if r.packets is None else str(r.packets),
            "" if r.depth is None else str(r.depth),
            "" if r.version_sum is None else str(r.version_sum),
            "" if r.value is None else str(r.value),
            "" if r.ok else f"{r.error_type}: {r.error}",
        )
    console.print(table)


# -----------------------------------------------------------------------------
# Orchestrator
# -----------------------------------------------------------------------------
class BitsProcessor:
    def __init__(self,
                 config_loader: ConfigLoaderInterface,
                 line_reader: LineReaderInterface,
                 result_saver: ResultSaverInterface
    ):
        self._config_loader = config_loader
        self._line_reader = line_reader
        self._result_saver = result_saver

    def load_config(self, config_path: Optional[Path], overrides: Optional[Dict[str, Any]] = None) -> DecoderConfig:
        config = self._config_loader.load(config_path) if config_path else DecoderConfig()
        if overrides:
            config = dataclasses.replace(config, **overrides)
        return dataclasses.replace(config, max_depth=_bounded_depth(config.max_depth))

    def process(self,
                input_path: Path,
                config_path: Optional[Path] = None,
                overrides: Optional[Dict[str, Any]] = None
    ) -> List[LineResult]:
        logger.info("Decoding %s", input_path)
        if not input_path.is_file():
            raise FileNotFoundError(f"Input file not found: {input_path}")

        config = self.load_config(config_path, overrides)
        lines = list(self._line_reader.read_lines(input_path))

        # lines are independent messages
        with concurrent.futures.ThreadPoolExecutor(max_workers=config.workers) as executor:
            results = list(executor.map(lambda item: decode_line(*item, max_depth=config.max_depth), lines))

        print_summary(results)
        if config.save_json:
            self._result_saver.save(input_path, results)
        logger.info("Decoded %d/%d line(s)", sum(1 for r in results if r.ok), len(results))
        return results


# -----------------------------------------------------------------------------
# CLI entrypoint
# -----------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Decode and evaluate BITS hex messages.")
    parser.add_argument("input", type=Path, nargs="?", help="Input file, one hex message per line")
    parser.add_argument("--hex", dest="hex_text", help="Decode a single hex message instead of a file")
    parser.add_argument("--config", type=Path, default=None,
                        help=f"YAML config file (default: {DEFAULT_CONFIG} if present)")
    parser.add_argument("--max-depth", type=_int_at_least(0), default=None, help="Maximum packet nesting depth")
    parser.add_argument("--workers", type=_int_at_least(1), default=None, help="Max parallel threads")
    parser.add_argument("--no-json", action="store_true", help="Do not write a JSON result file")
    parser.add_argument("--tree", action="store_true", help="Print the packet tree of each message")
    parser.add_argument("--bits", action="store_true", help="Print the binary form of each message")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.input is None) == (args.hex_text is None):
        parser.error("give either an input file or --hex")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    overrides: Dict[str, Any] = {}
    if args.max_depth is not None:
        overrides["max_depth"] = args.max_depth
    if args.workers is not None:
        overrides["workers"] = args.workers
    if args.no_json:
        overrides["save_json"] = False

    config_path = args.config
    if config_path is None and DEFAULT_CONFIG.is_file():
        config_path = DEFAULT_CONFIG

    processor = BitsProcessor(
        config_loader=YamlConfigLoader(),
        line_reader=SimpleLineReader(),
        result_saver=JsonResultSaver(),
    )
    try:
        if args.hex_text is not None:
            config = processor.load_config(config_path, overrides)
            results = [decode_line(1, args.hex_text.strip(), max_depth=config.max_depth)]
            print_summary(results)
        else:
            results = processor.process(args.input, config_path, overrides)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Processing error: %s", e)
        return 2

    for r in results:
        if r.packet is None:
            continue
        if args.bits:
            console.print(f"[bold]Line {r.line}:[/bold] {bits_to_str(hex_to_bits(r.hex_text))}")
        if args.tree:
            console.print(render_tree(r.packet))

    return 0 if all(r.ok for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())

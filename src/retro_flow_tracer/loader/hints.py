# retro_flow_tracer/loader/hints.py
"""
逆アセンブル用ヒントファイルのローダーモジュール。

書式（1行1ディレクティブ、空白区切り）:
    # コメント
    symbol <name> <addr>
    nonreturn <addr>
"""
import logging
import re
from typing import Iterable, List, Set

from retro_flow_tracer.common.types import Hints, Symbol

logger = logging.getLogger(__name__)


# @intent:responsibility ヒントファイルの構文エラーを行番号付きで示します。
class HintsSyntaxError(ValueError):
    def __init__(self, line_num: int, message: str):
        super().__init__(f"Hints line {line_num}: {message}")
        self.line_num = line_num


# @intent:utility_function 0x / $ 接頭辞の16進数、または10進数のアドレスを解析します。
def parse_address(value: str) -> int:
    value = value.strip()
    if value.startswith("$"):
        result = int(value[1:], 16)
    elif value.lower().startswith("0x"):
        result = int(value, 16)
    else:
        result = int(value, 10)
    if not 0 <= result <= 0xFFFF:
        raise ValueError(f"Address out of 16-bit range: {value}")
    return result


class HintsLoader:
    """
    ヒントファイルを解析し、シードシンボルと非復帰アドレスを返すローダー。
    未知のディレクティブは無視されます。
    """
    def load_hints(self, file_path: str) -> Hints:
        with open(file_path, "r", encoding="ascii") as f:
            hints = self.parse(f)
        logger.info(
            "Loaded %d symbols and %d nonreturn addresses from %s",
            len(hints.symbols), len(hints.nonreturns), file_path,
        )
        return hints

    def parse(self, lines: Iterable[str]) -> Hints:
        symbols: List[Symbol] = []
        nonreturns: Set[int] = set()

        for line_num, line in enumerate(lines, 1):
            parts = re.split(r"\s+", line.strip())
            directive = parts[0]
            if not directive or directive.startswith("#"):
                continue

            if directive == "symbol":
                if len(parts) != 3:
                    raise HintsSyntaxError(line_num, "syntax: symbol <name> <addr>")
                symbols.append(Symbol(parts[1], self._parse_addr(parts[2], line_num)))
            elif directive == "nonreturn":
                if len(parts) != 2:
                    raise HintsSyntaxError(line_num, "syntax: nonreturn <addr>")
                nonreturns.add(self._parse_addr(parts[1], line_num))
            else:
                logger.debug("Ignoring unknown hints directive '%s' on line %d", directive, line_num)

        return Hints(symbols=symbols, nonreturns=frozenset(nonreturns))

    def _parse_addr(self, value: str, line_num: int) -> int:
        try:
            return parse_address(value)
        except ValueError as e:
            raise HintsSyntaxError(line_num, f"invalid address '{value}' ({e})")

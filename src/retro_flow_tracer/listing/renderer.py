# retro_flow_tracer/listing/renderer.py
"""
リスティング描画モジュール。

バイト分類マップとシンボルテーブルをアドレス昇順に1回だけ走査し、
ラベル行と命令/データ行からなるテキストを生成します。
"""
from dataclasses import dataclass
from enum import Enum
from typing import List

from retro_flow_tracer.core.symbols import SymbolTable
from retro_flow_tracer.core.tags import ByteTagMap, Continuation, InstructionHead
from retro_flow_tracer.transport.rom import ProgramRom

UNVISITED_PLACEHOLDER = "??"
UNKNOWN_TARGET_NOTE = "; unknown target"


class LineKind(Enum):
    LABEL = "LABEL"
    INSTRUCTION = "INSTRUCTION"
    DATA = "DATA"  # エンジンが一度も到達しなかったバイト


# @intent:responsibility リスティングの1行を構造化して保持します。
@dataclass(frozen=True)
class ListingLine:
    """
    リスティングの1行。テキスト出力とUI表示の両方で使用されます。
    """
    kind: LineKind
    address: int
    raw: bytes = b""  # 命令が所有するバイト列 (ラベル行は空)
    text: str = ""    # ニーモニック、プレースホルダ、またはラベル名
    annotation: str = ""

    # @intent:responsibility 行をリスティングファイルの書式に変換します。
    def format(self) -> str:
        if self.kind is LineKind.LABEL:
            return f"{self.text}:"
        line = f"{self.address:04x}: {self.raw.hex():<6}  {self.text}"
        if self.annotation:
            line += f"  {self.annotation}"
        return line


# @intent:responsibility 分類済みのバイトマップとシンボルから、アドレス順の行リストを生成します。
# @intent:post-condition 同一入力に対して常に同一の行列を返します（決定的）。
def render_listing(rom: ProgramRom, tags: ByteTagMap, symbols: SymbolTable) -> List[ListingLine]:
    """
    各アドレスについて、まずそのアドレスの全シンボルをラベル行として挿入順に出力し、
    続いて Continuation 以外であれば命令行またはデータ行を1行出力します。
    """
    lines: List[ListingLine] = []
    for offset, tag in enumerate(tags):
        address = rom.to_address(offset)

        for symbol in symbols.at(address):
            lines.append(ListingLine(LineKind.LABEL, address, text=symbol.name))

        if isinstance(tag, Continuation):
            # 所有する命令の行に既にダンプされている
            continue
        if isinstance(tag, InstructionHead):
            lines.append(ListingLine(
                LineKind.INSTRUCTION,
                address,
                raw=rom.read_bytes(address, tag.length),
                text=tag.text,
                annotation=UNKNOWN_TARGET_NOTE if tag.unknown_target else "",
            ))
        else:
            lines.append(ListingLine(
                LineKind.DATA,
                address,
                raw=rom.read_bytes(address, 1),
                text=UNVISITED_PLACEHOLDER,
            ))

    return lines


# @intent:responsibility 行リストをそのままファイルへ書き出せるテキストに連結します。
def format_listing(lines: List[ListingLine]) -> str:
    return "".join(line.format() + "\n" for line in lines)

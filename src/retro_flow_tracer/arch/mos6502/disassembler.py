# src/retro_flow_tracer/arch/mos6502/disassembler.py
"""
MOS 6502 制御フロー追跡型逆アセンブラ。

線形走査ではなく、割り込みベクタとヒントで与えられたアドレスから制御フローを辿り、
到達した命令だけをデコードします。コードとデータが混在するROMでも、
各バイトを「命令先頭」「命令の継続バイト」「未到達データ」に正しく分類します。
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from retro_flow_tracer.arch.mos6502.instructions.base import decode_operand
from retro_flow_tracer.arch.mos6502.instructions.maps import Instruction, lookup
from retro_flow_tracer.common.types import Hints, Symbol
from retro_flow_tracer.core.errors import DisassemblyError, MidInstructionJump
from retro_flow_tracer.core.symbols import SymbolTable
from retro_flow_tracer.core.tags import ByteTagMap, Continuation, InstructionHead
from retro_flow_tracer.transport.rom import IRQ_VECTOR, NMI_VECTOR, RESET_VECTOR, ProgramRom

logger = logging.getLogger(__name__)

# 割り込みベクタと、そのハンドラに付ける固定シンボル名 (トラバーサル順)
VECTORS = (
    ("nmi", NMI_VECTOR),
    ("reset", RESET_VECTOR),
    ("irq", IRQ_VECTOR),
)


# @intent:responsibility 1回の traverse 呼び出しの結果を記録します。
@dataclass
class TraversalResult:
    start: int
    decoded: int = 0
    errors: List[DisassemblyError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# @intent:responsibility 追跡中の1本の線形実行（再帰呼び出し1回分）を表すフレーム。
@dataclass
class _Frame:
    start: int
    pc: int
    done: bool = False


# @intent:responsibility 制御フローを辿って命令をデコードし、バイト分類マップとシンボルテーブルを更新します。
# @intent:rationale 再帰の代わりにフレームの明示スタックを使います。
#                  子フレームが終わるまで親フレームは再開しないため、訪問順序は再帰版と同一です。
class DisassemblyEngine:
    """
    制御フロー追跡エンジン。

    分岐先は深さ優先で追跡し、既に InstructionHead になっているアドレスへの到達は
    即座に打ち切ります（メモ化）。分岐先で発生したエラーはその分岐だけを中断し、
    呼び出し元の線形デコードはそのまま続行します。
    """
    def __init__(self, rom: ProgramRom, symbols: Optional[SymbolTable] = None, nonreturns: Iterable[int] = ()):
        self._rom = rom
        self.tags = ByteTagMap(rom.data, rom.base)
        self.symbols = symbols if symbols is not None else SymbolTable()
        self._nonreturns = frozenset(nonreturns)
        self.errors: List[DisassemblyError] = []
        # 分岐先を解決できなかった分岐命令のアドレス (警告のサイドチャネル)
        self.unresolved: List[int] = []

    @property
    def rom(self) -> ProgramRom:
        return self._rom

    # @intent:responsibility 指定アドレスから制御フローを追跡します。
    # @intent:post-condition DisassemblyError は送出せず、結果オブジェクトに記録してログ出力します。
    def traverse(self, start_address: int) -> TraversalResult:
        result = TraversalResult(start=start_address)
        stack = [_Frame(start_address, start_address)]

        while stack:
            frame = stack[-1]
            if frame.done:
                stack.pop()
                continue

            try:
                target = self._step(frame, result)
            except DisassemblyError as e:
                stack.pop()
                self._record_error(e, frame, result)
                continue

            if target is not None:
                stack.append(_Frame(target, target))

        return result

    # @intent:responsibility エントリアドレスを1つずつ追跡します。各エントリの失敗は他に影響しません。
    def run(self, entry_points: Iterable[int]) -> List[TraversalResult]:
        return [self.traverse(address) for address in entry_points]

    # @intent:responsibility フレームの現在PCにある命令を1つデコードし、追跡すべき分岐先を返します。
    def _step(self, frame: _Frame, result: TraversalResult) -> Optional[int]:
        pc = frame.pc
        offset = self._rom.to_offset(pc)

        tag = self.tags[offset]
        if isinstance(tag, InstructionHead):
            frame.done = True
            return None
        if isinstance(tag, Continuation):
            raise MidInstructionJump(pc, self._rom.to_address(tag.owner))

        insn = lookup(self._rom.read(pc), pc)
        operand = decode_operand(insn.mode, pc, self._rom)

        operand_str = operand.operand_str
        unknown_target = False
        if insn.branch:
            if operand.target is not None:
                operand_str = self._resolve_symbol(insn, operand.target).name
            else:
                unknown_target = True

        text = f"{insn.mnemonic} {operand_str}" if operand_str else insn.mnemonic
        self.tags.commit(offset, text, insn.length, unknown_target)
        result.decoded += 1

        if unknown_target:
            self.unresolved.append(pc)
            logger.warning("Unresolved branch target: %s at $%04x", text, pc)

        if insn.terminal or (insn.is_subroutine_call and operand.target in self._nonreturns):
            frame.done = True
        else:
            frame.pc = pc + insn.length

        # a target of $0000 is treated as "no target" and never followed
        if insn.branch and operand.target:
            return operand.target
        return None

    # @intent:responsibility 分岐先のシンボルを引き、無ければ自動生成して追加します。
    def _resolve_symbol(self, insn: Instruction, target: int) -> Symbol:
        symbol = self.symbols.find(target)
        if symbol is None:
            prefix = "_func_" if insn.is_subroutine_call else "_label_"
            symbol = self.symbols.add(f"{prefix}{target:x}", target)
            logger.debug("New symbol %s", symbol.name)
        return symbol

    def _record_error(self, error: DisassemblyError, frame: _Frame, result: TraversalResult) -> None:
        result.errors.append(error)
        self.errors.append(error)
        logger.error("Traversal from $%04x aborted: %s", frame.start, error)


# @intent:responsibility 1回の逆アセンブル実行の最終状態をまとめます。
@dataclass
class DisassemblyResult:
    rom: ProgramRom
    tags: ByteTagMap
    symbols: SymbolTable
    traversals: List[TraversalResult]
    unresolved: List[int]

    @property
    def errors(self) -> List[DisassemblyError]:
        return [e for t in self.traversals for e in t.errors]

    @property
    def decoded(self) -> int:
        return sum(t.decoded for t in self.traversals)


# @intent:responsibility 3つの割り込みベクタを読み、固定名のシンボルとして返します。
def read_vectors(rom: ProgramRom) -> List[Symbol]:
    return [Symbol(name, rom.read_word(vector)) for name, vector in VECTORS]


# @intent:responsibility ヒントとベクタからシンボルテーブルを作り、全エントリを追跡します。
def disassemble_program(prg_rom: bytes, hints: Optional[Hints] = None) -> DisassemblyResult:
    """
    プログラムROMを逆アセンブルし、分類済みのバイトタグとシンボルを返します。

    トラバーサルの順序は NMI, RESET, IRQ の各ベクタ、続いてヒントの
    シードシンボル（実行開始時点のもの）のアドレスです。
    """
    rom = ProgramRom(prg_rom)
    if hints is None:
        hints = Hints(symbols=[], nonreturns=frozenset())

    seeds = list(hints.symbols)
    symbols = SymbolTable(seeds)
    vectors = read_vectors(rom)
    for vector in vectors:
        symbols.add(vector.name, vector.address)

    engine = DisassemblyEngine(rom, symbols, hints.nonreturns)
    entry_points = [v.address for v in vectors] + [s.address for s in seeds]
    traversals = engine.run(entry_points)

    failed = sum(len(t.errors) for t in traversals)
    logger.info(
        "Traversed %d entry points: %d instructions decoded, %d symbols, %d failed branches, %d unresolved targets",
        len(entry_points), sum(t.decoded for t in traversals), len(symbols), failed, len(engine.unresolved),
    )
    return DisassemblyResult(
        rom=rom,
        tags=engine.tags,
        symbols=symbols,
        traversals=traversals,
        unresolved=engine.unresolved,
    )

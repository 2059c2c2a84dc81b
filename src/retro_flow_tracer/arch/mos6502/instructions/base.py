# src/retro_flow_tracer/arch/mos6502/instructions/base.py
"""
MOS 6502 アドレッシングモードのオペランド解決ロジック。
"""
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional

from retro_flow_tracer.transport.rom import ProgramRom


# @intent:responsibility 6502のアドレッシングモード（オペランドの符号化カテゴリ）を定義します。
class AddressingMode(Enum):
    IMPLICIT = "IMPLICIT"
    ACCUMULATOR = "ACCUMULATOR"
    IMMEDIATE = "IMMEDIATE"
    ZEROPAGE = "ZEROPAGE"
    ZEROPAGE_X = "ZEROPAGE_X"
    ZEROPAGE_Y = "ZEROPAGE_Y"
    RELATIVE = "RELATIVE"
    ABSOLUTE = "ABSOLUTE"
    ABSOLUTE_X = "ABSOLUTE_X"
    ABSOLUTE_Y = "ABSOLUTE_Y"
    INDIRECT = "INDIRECT"
    INDEXED_INDIRECT = "INDEXED_INDIRECT"
    INDIRECT_INDEXED = "INDIRECT_INDEXED"

    # @intent:responsibility オペコードに続くオペランドのバイト数を返します。
    @property
    def operand_length(self) -> int:
        return OPERAND_LENGTHS[self]


OPERAND_LENGTHS: Dict[AddressingMode, int] = {
    AddressingMode.IMPLICIT: 0,
    AddressingMode.ACCUMULATOR: 0,
    AddressingMode.IMMEDIATE: 1,
    AddressingMode.ZEROPAGE: 1,
    AddressingMode.ZEROPAGE_X: 1,
    AddressingMode.ZEROPAGE_Y: 1,
    AddressingMode.RELATIVE: 1,
    AddressingMode.INDEXED_INDIRECT: 1,
    AddressingMode.INDIRECT_INDEXED: 1,
    AddressingMode.ABSOLUTE: 2,
    AddressingMode.ABSOLUTE_X: 2,
    AddressingMode.ABSOLUTE_Y: 2,
    AddressingMode.INDIRECT: 2,
}


# @intent:responsibility アドレッシングモードの解決結果。
# target: 静的に解決できた制御転送先 (Relative / Absolute のみ、それ以外は None)
# operand_str: 逆アセンブリ用のオペランド文字列表現
class AddressingResult(NamedTuple):
    target: Optional[int]
    operand_str: str


# --- Addressing Modes ---
# 逆アセンブル時にはレジスタ状態が不明なため、インデックス付き・間接モードの実効アドレスは解決しない。

def addr_implied(pc: int, rom: ProgramRom) -> AddressingResult:
    return AddressingResult(None, "")

def addr_accumulator(pc: int, rom: ProgramRom) -> AddressingResult:
    return AddressingResult(None, "A")

# @intent:responsibility Immediate Mode (#$xx)
def addr_immediate(pc: int, rom: ProgramRom) -> AddressingResult:
    val = rom.read(pc + 1)
    return AddressingResult(None, f"#${val:02x}")

# @intent:responsibility Zero Page Mode ($xx)
def addr_zeropage(pc: int, rom: ProgramRom) -> AddressingResult:
    addr = rom.read(pc + 1)
    return AddressingResult(None, f"${addr:02x}")

def addr_zeropage_x(pc: int, rom: ProgramRom) -> AddressingResult:
    base = rom.read(pc + 1)
    return AddressingResult(None, f"${base:02x},X")

# @intent:note LDX, STX のみ
def addr_zeropage_y(pc: int, rom: ProgramRom) -> AddressingResult:
    base = rom.read(pc + 1)
    return AddressingResult(None, f"${base:02x},Y")

# @intent:responsibility Relative Mode (Branch)
# @intent:note 戻り値のtargetは「ジャンプ先の絶対アドレス」= 命令直後のPC + 符号付き8bitオフセット。
def addr_relative(pc: int, rom: ProgramRom) -> AddressingResult:
    offset = rom.read(pc + 1)
    # 符号付き8bitとして解釈
    if offset >= 0x80:
        offset -= 0x100
    dest_addr = (pc + 2 + offset) & 0xFFFF
    return AddressingResult(dest_addr, f"${dest_addr:04x}")

# @intent:responsibility Absolute Mode ($xxxx)
def addr_absolute(pc: int, rom: ProgramRom) -> AddressingResult:
    lo = rom.read(pc + 1)
    hi = rom.read(pc + 2)
    addr = (hi << 8) | lo
    return AddressingResult(addr, f"${addr:04x}")

def addr_absolute_x(pc: int, rom: ProgramRom) -> AddressingResult:
    lo = rom.read(pc + 1)
    hi = rom.read(pc + 2)
    return AddressingResult(None, f"${(hi << 8) | lo:04x},X")

def addr_absolute_y(pc: int, rom: ProgramRom) -> AddressingResult:
    lo = rom.read(pc + 1)
    hi = rom.read(pc + 2)
    return AddressingResult(None, f"${(hi << 8) | lo:04x},Y")

# @intent:responsibility Indirect Mode - JMP only
# @intent:note ポインタ先はROM外(RAM)であることが多いため、転送先は解決しない。
def addr_indirect(pc: int, rom: ProgramRom) -> AddressingResult:
    ptr_lo = rom.read(pc + 1)
    ptr_hi = rom.read(pc + 2)
    return AddressingResult(None, f"$({(ptr_hi << 8) | ptr_lo:04x})")

# @intent:responsibility Indexed Indirect Mode ($xx,X) - "Pre-indexed"
def addr_indexed_indirect(pc: int, rom: ProgramRom) -> AddressingResult:
    base = rom.read(pc + 1)
    return AddressingResult(None, f"(${base:02x},X)")

# @intent:responsibility Indirect Indexed Mode ($xx),Y - "Post-indexed"
def addr_indirect_indexed(pc: int, rom: ProgramRom) -> AddressingResult:
    ptr_addr = rom.read(pc + 1)
    return AddressingResult(None, f"(${ptr_addr:02x}),Y")


AddrFunc = Callable[[int, ProgramRom], AddressingResult]

ADDRESSING_FUNCS: Dict[AddressingMode, AddrFunc] = {
    AddressingMode.IMPLICIT: addr_implied,
    AddressingMode.ACCUMULATOR: addr_accumulator,
    AddressingMode.IMMEDIATE: addr_immediate,
    AddressingMode.ZEROPAGE: addr_zeropage,
    AddressingMode.ZEROPAGE_X: addr_zeropage_x,
    AddressingMode.ZEROPAGE_Y: addr_zeropage_y,
    AddressingMode.RELATIVE: addr_relative,
    AddressingMode.ABSOLUTE: addr_absolute,
    AddressingMode.ABSOLUTE_X: addr_absolute_x,
    AddressingMode.ABSOLUTE_Y: addr_absolute_y,
    AddressingMode.INDIRECT: addr_indirect,
    AddressingMode.INDEXED_INDIRECT: addr_indexed_indirect,
    AddressingMode.INDIRECT_INDEXED: addr_indirect_indexed,
}


# @intent:responsibility 指定されたPCの命令のオペランドを、アドレッシングモードに従って解決します。
def decode_operand(mode: AddressingMode, pc: int, rom: ProgramRom) -> AddressingResult:
    return ADDRESSING_FUNCS[mode](pc, rom)

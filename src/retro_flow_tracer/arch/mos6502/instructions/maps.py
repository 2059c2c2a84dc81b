# src/retro_flow_tracer/arch/mos6502/instructions/maps.py
"""
MOS 6502 命令マップ（公式命令のみ）。
"""
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional

from retro_flow_tracer.core.errors import UnknownOpcode
from retro_flow_tracer.arch.mos6502.instructions.base import AddressingMode

IMP = AddressingMode.IMPLICIT
ACC = AddressingMode.ACCUMULATOR
IMM = AddressingMode.IMMEDIATE
ZP = AddressingMode.ZEROPAGE
ZPX = AddressingMode.ZEROPAGE_X
ZPY = AddressingMode.ZEROPAGE_Y
REL = AddressingMode.RELATIVE
ABS = AddressingMode.ABSOLUTE
ABX = AddressingMode.ABSOLUTE_X
ABY = AddressingMode.ABSOLUTE_Y
IND = AddressingMode.INDIRECT
IZX = AddressingMode.INDEXED_INDIRECT
IZY = AddressingMode.INDIRECT_INDEXED


# @intent:data_structure オペコード1つ分のデコード情報。
# branch: 制御転送の可能性がある命令 (分岐先のシンボル化と追跡の対象)
# terminal: この命令の後ろへ逐次デコードを続けてはならない命令
class Instruction(NamedTuple):
    mnemonic: str
    mode: AddressingMode
    branch: bool = False
    terminal: bool = False

    @property
    def length(self) -> int:
        return 1 + self.mode.operand_length

    @property
    def is_subroutine_call(self) -> bool:
        return self.mnemonic == "JSR"


_OPCODES = {
    # --- Load/Store/Transfer ---
    0xA9: Instruction("LDA", IMM),
    0xA5: Instruction("LDA", ZP),
    0xB5: Instruction("LDA", ZPX),
    0xAD: Instruction("LDA", ABS),
    0xBD: Instruction("LDA", ABX),
    0xB9: Instruction("LDA", ABY),
    0xA1: Instruction("LDA", IZX),
    0xB1: Instruction("LDA", IZY),

    0xA2: Instruction("LDX", IMM),
    0xA6: Instruction("LDX", ZP),
    0xB6: Instruction("LDX", ZPY),
    0xAE: Instruction("LDX", ABS),
    0xBE: Instruction("LDX", ABY),

    0xA0: Instruction("LDY", IMM),
    0xA4: Instruction("LDY", ZP),
    0xB4: Instruction("LDY", ZPX),
    0xAC: Instruction("LDY", ABS),
    0xBC: Instruction("LDY", ABX),

    0x85: Instruction("STA", ZP),
    0x95: Instruction("STA", ZPX),
    0x8D: Instruction("STA", ABS),
    0x9D: Instruction("STA", ABX),
    0x99: Instruction("STA", ABY),
    0x81: Instruction("STA", IZX),
    0x91: Instruction("STA", IZY),

    0x86: Instruction("STX", ZP),
    0x96: Instruction("STX", ZPY),
    0x8E: Instruction("STX", ABS),

    0x84: Instruction("STY", ZP),
    0x94: Instruction("STY", ZPX),
    0x8C: Instruction("STY", ABS),

    0xAA: Instruction("TAX", IMP),
    0xA8: Instruction("TAY", IMP),
    0x8A: Instruction("TXA", IMP),
    0x98: Instruction("TYA", IMP),
    0x9A: Instruction("TXS", IMP),
    0xBA: Instruction("TSX", IMP),

    # --- ALU Operations ---
    0x69: Instruction("ADC", IMM),
    0x65: Instruction("ADC", ZP),
    0x75: Instruction("ADC", ZPX),
    0x6D: Instruction("ADC", ABS),
    0x7D: Instruction("ADC", ABX),
    0x79: Instruction("ADC", ABY),
    0x61: Instruction("ADC", IZX),
    0x71: Instruction("ADC", IZY),

    0xE9: Instruction("SBC", IMM),
    0xE5: Instruction("SBC", ZP),
    0xF5: Instruction("SBC", ZPX),
    0xED: Instruction("SBC", ABS),
    0xFD: Instruction("SBC", ABX),
    0xF9: Instruction("SBC", ABY),
    0xE1: Instruction("SBC", IZX),
    0xF1: Instruction("SBC", IZY),

    0xC9: Instruction("CMP", IMM),
    0xC5: Instruction("CMP", ZP),
    0xD5: Instruction("CMP", ZPX),
    0xCD: Instruction("CMP", ABS),
    0xDD: Instruction("CMP", ABX),
    0xD9: Instruction("CMP", ABY),
    0xC1: Instruction("CMP", IZX),
    0xD1: Instruction("CMP", IZY),

    0xE0: Instruction("CPX", IMM),
    0xE4: Instruction("CPX", ZP),
    0xEC: Instruction("CPX", ABS),

    0xC0: Instruction("CPY", IMM),
    0xC4: Instruction("CPY", ZP),
    0xCC: Instruction("CPY", ABS),

    0x29: Instruction("AND", IMM),
    0x25: Instruction("AND", ZP),
    0x35: Instruction("AND", ZPX),
    0x2D: Instruction("AND", ABS),
    0x3D: Instruction("AND", ABX),
    0x39: Instruction("AND", ABY),
    0x21: Instruction("AND", IZX),
    0x31: Instruction("AND", IZY),

    0x09: Instruction("ORA", IMM),
    0x05: Instruction("ORA", ZP),
    0x15: Instruction("ORA", ZPX),
    0x0D: Instruction("ORA", ABS),
    0x1D: Instruction("ORA", ABX),
    0x19: Instruction("ORA", ABY),
    0x01: Instruction("ORA", IZX),
    0x11: Instruction("ORA", IZY),

    0x49: Instruction("EOR", IMM),
    0x45: Instruction("EOR", ZP),
    0x55: Instruction("EOR", ZPX),
    0x4D: Instruction("EOR", ABS),
    0x5D: Instruction("EOR", ABX),
    0x59: Instruction("EOR", ABY),
    0x41: Instruction("EOR", IZX),
    0x51: Instruction("EOR", IZY),

    0x24: Instruction("BIT", ZP),
    0x2C: Instruction("BIT", ABS),

    # Shift / Rotate
    0x0A: Instruction("ASL", ACC),
    0x06: Instruction("ASL", ZP),
    0x16: Instruction("ASL", ZPX),
    0x0E: Instruction("ASL", ABS),
    0x1E: Instruction("ASL", ABX),

    0x4A: Instruction("LSR", ACC),
    0x46: Instruction("LSR", ZP),
    0x56: Instruction("LSR", ZPX),
    0x4E: Instruction("LSR", ABS),
    0x5E: Instruction("LSR", ABX),

    0x2A: Instruction("ROL", ACC),
    0x26: Instruction("ROL", ZP),
    0x36: Instruction("ROL", ZPX),
    0x2E: Instruction("ROL", ABS),
    0x3E: Instruction("ROL", ABX),

    0x6A: Instruction("ROR", ACC),
    0x66: Instruction("ROR", ZP),
    0x76: Instruction("ROR", ZPX),
    0x6E: Instruction("ROR", ABS),
    0x7E: Instruction("ROR", ABX),

    # INC/DEC
    0xE6: Instruction("INC", ZP),
    0xF6: Instruction("INC", ZPX),
    0xEE: Instruction("INC", ABS),
    0xFE: Instruction("INC", ABX),

    0xC6: Instruction("DEC", ZP),
    0xD6: Instruction("DEC", ZPX),
    0xCE: Instruction("DEC", ABS),
    0xDE: Instruction("DEC", ABX),

    0xE8: Instruction("INX", IMP),
    0xCA: Instruction("DEX", IMP),
    0xC8: Instruction("INY", IMP),
    0x88: Instruction("DEY", IMP),

    # --- Control Instructions ---
    # Branch
    0x90: Instruction("BCC", REL, branch=True),
    0xB0: Instruction("BCS", REL, branch=True),
    0xF0: Instruction("BEQ", REL, branch=True),
    0xD0: Instruction("BNE", REL, branch=True),
    0x30: Instruction("BMI", REL, branch=True),
    0x10: Instruction("BPL", REL, branch=True),
    0x50: Instruction("BVC", REL, branch=True),
    0x70: Instruction("BVS", REL, branch=True),

    # Jump / Subroutine
    0x4C: Instruction("JMP", ABS, branch=True, terminal=True),
    0x6C: Instruction("JMP", IND, branch=True, terminal=True),
    0x20: Instruction("JSR", ABS, branch=True),
    0x60: Instruction("RTS", IMP, terminal=True),

    # Stack
    0x48: Instruction("PHA", IMP),
    0x08: Instruction("PHP", IMP),
    0x68: Instruction("PLA", IMP),
    0x28: Instruction("PLP", IMP),

    # Flags
    0x18: Instruction("CLC", IMP),
    0x38: Instruction("SEC", IMP),
    0x58: Instruction("CLI", IMP),
    0x78: Instruction("SEI", IMP),
    0xB8: Instruction("CLV", IMP),
    0xD8: Instruction("CLD", IMP),
    0xF8: Instruction("SED", IMP),

    # System
    0xEA: Instruction("NOP", IMP),
    # BRK has no operand, yet it is flagged as a branch: every occurrence reports an unresolved target.
    0x00: Instruction("BRK", IMP, branch=True),
    0x40: Instruction("RTI", IMP, terminal=True),
}

OPCODE_MAP: Mapping[int, Instruction] = MappingProxyType(_OPCODES)


# @intent:responsibility オペコードからデコード情報を引きます。存在しなければ UnknownOpcode を送出します。
def lookup(opcode: int, address: Optional[int] = None) -> Instruction:
    entry = OPCODE_MAP.get(opcode)
    if entry is None:
        raise UnknownOpcode(address, opcode)
    return entry

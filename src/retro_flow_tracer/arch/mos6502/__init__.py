"""
MOS 6502 Architecture Package
"""
from .disassembler import DisassemblyEngine, DisassemblyResult, TraversalResult, disassemble_program

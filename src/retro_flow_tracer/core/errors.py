# retro_flow_tracer/core/errors.py
"""
Core Layer (解析エラー)

トラバーサルの1分岐を中断させるエラー種別を定義します。
これらはエンジン内部で捕捉・記録され、実行全体を止めることはありません。
"""
from typing import Optional


# @intent:responsibility 逆アセンブル時に発生する全てのエラーの基底クラス。
class DisassemblyError(Exception):
    """
    トラバーサル分岐を中断させるエラーの基底クラス。
    address は問題が検出された絶対アドレスです。
    """
    def __init__(self, address: int, message: str):
        super().__init__(message)
        self.address = address


# @intent:responsibility 命令表に存在しないオペコードを検出したことを示します。
class UnknownOpcode(DisassemblyError):
    def __init__(self, address: Optional[int], opcode: int):
        where = f" at ${address:04x}" if address is not None else ""
        super().__init__(address, f"Unknown opcode 0x{opcode:02x}{where}")
        self.opcode = opcode


# @intent:responsibility 既にデコードされた命令の途中へジャンプしたことを示します。
# @intent:rationale ヒントまたはROMの不整合を意味し、クラッシュではありません。
class MidInstructionJump(DisassemblyError):
    def __init__(self, address: int, owner: int, message: Optional[str] = None):
        super().__init__(
            address,
            message or f"Jump into the middle of the instruction at ${owner:04x} (target ${address:04x})",
        )
        self.owner = owner


# @intent:responsibility 命令の後続バイトが既に確保済みのバイトと重なることを示します。
class InstructionOverlap(MidInstructionJump):
    def __init__(self, address: int, conflict: int):
        super().__init__(
            address,
            conflict,
            f"Instruction at ${address:04x} overlaps already decoded byte ${conflict:04x}",
        )


# @intent:responsibility プログラムウィンドウ外のアドレスへのアクセスを示します。
class AddressOutOfRange(DisassemblyError, IndexError):
    def __init__(self, address: int):
        super().__init__(address, f"Address ${address:04x} is outside the program window")

# retro_flow_tracer/transport/rom.py
"""
Transport Layer (プログラムROMウィンドウ)

このモジュールは、$8000-$FFFF に固定配置されたプログラムROMを抽象化し、
絶対アドレスとオフセットの相互変換、およびバイト/ワード読み出しの責務を負います。
"""
from typing import Iterable

from retro_flow_tracer.core.errors import AddressOutOfRange

# assumed memory layout: PRG ROM from $8000-$FFFF
PRG_ROM_BASE = 0x8000
PRG_ROM_SIZE = 0x10000 - PRG_ROM_BASE

NMI_VECTOR = 0xFFFA
RESET_VECTOR = 0xFFFC
IRQ_VECTOR = 0xFFFE


# @intent:responsibility 読み込み専用のプログラムROMウィンドウを提供します。
class ProgramRom:
    """
    単一の固定ウィンドウに配置されたプログラムコード領域。
    バンク切り替えやミラーリングは扱いません。
    """
    # @intent:pre-condition data の長さはウィンドウサイズ (base から $FFFF まで) と一致する必要があります。
    def __init__(self, data: Iterable[int], base: int = PRG_ROM_BASE):
        data = bytes(data)
        if not 0 <= base <= 0xFFFF:
            raise ValueError(f"Invalid base address: {base:#06x}")
        expected_size = 0x10000 - base
        if len(data) != expected_size:
            raise ValueError(
                f"Program ROM size ({len(data)} bytes) does not match "
                f"the window ${base:04X}-$FFFF ({expected_size} bytes)."
            )
        self._data = data
        self._base = base

    @property
    def base(self) -> int:
        return self._base

    @property
    def data(self) -> bytes:
        return self._data

    def __len__(self) -> int:
        return len(self._data)

    def contains(self, address: int) -> bool:
        return self._base <= address < self._base + len(self._data)

    # @intent:responsibility 絶対アドレスをウィンドウ内オフセットに変換します。
    # @intent:post-condition ウィンドウ外の場合は AddressOutOfRange を送出します。
    def to_offset(self, address: int) -> int:
        if not self.contains(address):
            raise AddressOutOfRange(address)
        return address - self._base

    def to_address(self, offset: int) -> int:
        return self._base + offset

    def read(self, address: int) -> int:
        return self._data[self.to_offset(address)]

    # @intent:responsibility リトルエンディアンの16bitワードを読み出します。
    def read_word(self, address: int) -> int:
        lo = self.read(address)
        hi = self.read(address + 1)
        return (hi << 8) | lo

    def read_bytes(self, address: int, length: int) -> bytes:
        start = self.to_offset(address)
        if length > 0:
            self.to_offset(address + length - 1)
        return self._data[start:start + length]

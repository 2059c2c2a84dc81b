# retro_flow_tracer/loader/ines.py
"""
iNES (.nes) コンテナローダーモジュール。
16バイトのヘッダを検証し、PRG ROM / CHR ROM 領域を切り出します。
"""
import logging
from typing import NamedTuple

logger = logging.getLogger(__name__)

INES_HEADER_MAGIC = b"NES\x1a"
INES_HEADER_SIZE = 16
TRAINER_SIZE = 512
PRG_ROM_UNIT = 16384
CHR_ROM_UNIT = 8192


# @intent:responsibility iNESヘッダの不正やファイルの切り詰めを示します。
class InesFormatError(ValueError):
    pass


# @intent:data_structure iNESイメージから取り出した領域。
class InesImage(NamedTuple):
    prg_rom: bytes
    chr_rom: bytes
    mapper: int


class InesLoader:
    """
    iNES形式のROMイメージを解析するローダー。
    マッパーの解釈（バンク切り替え）は行わず、番号を記録するだけです。
    """
    def load_ines(self, file_path: str) -> InesImage:
        with open(file_path, "rb") as f:
            data = f.read()
        image = self.parse(data)
        logger.info(
            "Loaded %s: PRG %d bytes, CHR %d bytes, mapper %d",
            file_path, len(image.prg_rom), len(image.chr_rom), image.mapper,
        )
        return image

    def parse(self, data: bytes) -> InesImage:
        if len(data) < INES_HEADER_SIZE or data[0:4] != INES_HEADER_MAGIC:
            raise InesFormatError("ROM header magic incorrect")

        prg_rom_size = data[4] * PRG_ROM_UNIT
        chr_rom_size = data[5] * CHR_ROM_UNIT
        flags6 = data[6]
        flags7 = data[7]
        mapper = (flags7 & 0xF0) | (flags6 >> 4)

        prg_start = INES_HEADER_SIZE
        if flags6 & 0x04:
            # 512-byte trainer precedes PRG ROM
            prg_start += TRAINER_SIZE
        chr_start = prg_start + prg_rom_size

        if len(data) < chr_start + chr_rom_size:
            raise InesFormatError(
                f"ROM image truncated: expected {chr_start + chr_rom_size} bytes, got {len(data)}"
            )

        return InesImage(
            prg_rom=bytes(data[prg_start:chr_start]),
            chr_rom=bytes(data[chr_start:chr_start + chr_rom_size]),
            mapper=mapper,
        )

import pytest

from retro_flow_tracer.transport.rom import PRG_ROM_BASE, PRG_ROM_SIZE


def build_prg(code, reset=0x8000, nmi=None, irq=None, fill=0xFF):
    """
    {絶対アドレス: バイト列} から32KiBのPRG ROMイメージを組み立てます。
    NMI/IRQ を省略した場合はリセットベクタと同じアドレスを指します。
    """
    prg = bytearray([fill]) * PRG_ROM_SIZE
    for address, data in code.items():
        offset = address - PRG_ROM_BASE
        prg[offset:offset + len(data)] = bytes(data)
    for vector, target in ((0xFFFA, nmi if nmi is not None else reset),
                           (0xFFFC, reset),
                           (0xFFFE, irq if irq is not None else reset)):
        offset = vector - PRG_ROM_BASE
        prg[offset] = target & 0xFF
        prg[offset + 1] = (target >> 8) & 0xFF
    return bytes(prg)


@pytest.fixture
def make_prg():
    return build_prg


def build_ines(prg, chr_rom=b"", flags6=0, flags7=0, trainer=None):
    """
    PRG/CHR ROM から iNES イメージ (.nes) のバイト列を組み立てます。
    """
    header = bytearray(b"NES\x1a")
    header += bytes([len(prg) // 16384, len(chr_rom) // 8192, flags6, flags7])
    header += bytes(8)
    if trainer is not None:
        header += bytes(trainer)
    return bytes(header) + bytes(prg) + bytes(chr_rom)


@pytest.fixture
def make_ines():
    return build_ines

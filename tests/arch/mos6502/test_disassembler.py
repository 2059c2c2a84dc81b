# tests/arch/mos6502/test_disassembler.py
import logging
import random

import pytest

from retro_flow_tracer.arch.mos6502.disassembler import DisassemblyEngine, disassemble_program
from retro_flow_tracer.common.types import Hints, Symbol
from retro_flow_tracer.core.errors import (
    AddressOutOfRange,
    InstructionOverlap,
    MidInstructionJump,
    UnknownOpcode,
)
from retro_flow_tracer.core.symbols import SymbolTable
from retro_flow_tracer.core.tags import Continuation, InstructionHead, Unvisited
from retro_flow_tracer.transport.rom import ProgramRom

ENGINE_LOGGER = "retro_flow_tracer.arch.mos6502.disassembler"


@pytest.fixture
def engine_for(make_prg):
    def _engine_for(code, nonreturns=()):
        rom = ProgramRom(make_prg(code))
        return DisassemblyEngine(rom, SymbolTable(), nonreturns)
    return _engine_for


def tag_at(engine, address):
    return engine.tags[engine.rom.to_offset(address)]


def heads(engine):
    return [(engine.rom.to_address(offset), head.text) for offset, head in engine.tags.heads()]


def test_linear_run_stops_at_rts(engine_for):
    engine = engine_for({
        0x8000: [0xA9, 0x01],        # LDA #$01
        0x8002: [0x8D, 0x00, 0x20],  # STA $2000
        0x8005: [0x60],              # RTS
        0x8006: [0xEA, 0xEA],        # NOP (never reached)
    })

    result = engine.traverse(0x8000)

    assert result.ok
    assert result.decoded == 3
    assert heads(engine) == [
        (0x8000, "LDA #$01"),
        (0x8002, "STA $2000"),
        (0x8005, "RTS"),
    ]
    assert tag_at(engine, 0x8001) == Continuation(owner=0)
    assert tag_at(engine, 0x8006) == Unvisited(0xEA)


def test_converging_branches_decode_target_once(engine_for):
    engine = engine_for({
        0x8000: [0xF0, 0x03],        # BEQ $8005
        0x8002: [0x4C, 0x05, 0x80],  # JMP $8005
        0x8005: [0x60],              # RTS
    })

    result = engine.traverse(0x8000)

    assert result.ok
    assert heads(engine) == [
        (0x8000, "BEQ _label_8005"),
        (0x8002, "JMP _label_8005"),
        (0x8005, "RTS"),
    ]
    assert [s.name for s in engine.symbols] == ["_label_8005"]

    # a second visit is a no-op
    again = engine.traverse(0x8000)
    assert again.ok
    assert again.decoded == 0


def test_self_loop_branch_terminates(engine_for):
    engine = engine_for({
        0x8010: [0xD0, 0xFE],  # BNE $8010
        0x8012: [0x60],        # RTS
    })

    result = engine.traverse(0x8010)

    assert result.ok
    assert heads(engine) == [(0x8010, "BNE _label_8010"), (0x8012, "RTS")]
    assert engine.symbols.find(0x8010) == Symbol("_label_8010", 0x8010)


def test_forward_and_backward_relative_targets(engine_for):
    engine = engine_for({
        0x8000: [0xCA],        # DEX
        0x8001: [0xD0, 0xFD],  # BNE $8000
        0x8003: [0x10, 0x01],  # BPL $8006
        0x8005: [0x60],        # RTS
        0x8006: [0x40],        # RTI
    })

    engine.traverse(0x8000)

    assert heads(engine) == [
        (0x8000, "DEX"),
        (0x8001, "BNE _label_8000"),
        (0x8003, "BPL _label_8006"),
        (0x8005, "RTS"),
        (0x8006, "RTI"),
    ]


def test_jsr_target_gets_func_symbol(engine_for):
    engine = engine_for({
        0x8000: [0x20, 0x00, 0x90],  # JSR $9000
        0x8003: [0x60],
        0x9000: [0x60],
    })

    engine.traverse(0x8000)

    assert list(engine.symbols) == [Symbol("_func_9000", 0x9000)]
    assert tag_at(engine, 0x8000).text == "JSR _func_9000"
    assert tag_at(engine, 0x9000).text == "RTS"


def test_existing_symbol_is_reused(engine_for):
    engine = engine_for({
        0x8000: [0x20, 0x00, 0x90],  # JSR $9000
        0x8003: [0x60],
        0x9000: [0x60],
    })
    engine.symbols.add("update_sound", 0x9000)

    engine.traverse(0x8000)

    assert [s.name for s in engine.symbols] == ["update_sound"]
    assert tag_at(engine, 0x8000).text == "JSR update_sound"


def test_symbols_are_discovered_depth_first(engine_for):
    engine = engine_for({
        0x8000: [0x20, 0x00, 0x90],  # JSR $9000
        0x8003: [0x20, 0x00, 0xA0],  # JSR $a000
        0x8006: [0x60],
        0x9000: [0x20, 0x00, 0xB0],  # JSR $b000
        0x9003: [0x60],
        0xA000: [0x60],
        0xB000: [0x60],
    })

    engine.traverse(0x8000)

    assert [s.name for s in engine.symbols] == ["_func_9000", "_func_b000", "_func_a000"]


def test_call_to_nonreturn_target_stops_fallthrough(engine_for):
    code = {
        0x8000: [0x20, 0x00, 0x90],  # JSR $9000
        0x8003: [0x02],              # garbage after a call that never returns
        0x9000: [0x4C, 0x00, 0x90],  # JMP $9000
    }
    engine = engine_for(code, nonreturns={0x9000})

    result = engine.traverse(0x8000)

    assert result.ok
    assert isinstance(tag_at(engine, 0x8003), Unvisited)
    assert isinstance(tag_at(engine, 0x9000), InstructionHead)


def test_call_to_returning_target_continues(engine_for):
    engine = engine_for({
        0x8000: [0x20, 0x00, 0x90],
        0x8003: [0x02],
        0x9000: [0x60],
    })

    result = engine.traverse(0x8000)

    assert len(result.errors) == 1
    assert isinstance(result.errors[0], UnknownOpcode)
    assert result.errors[0].address == 0x8003
    assert result.errors[0].opcode == 0x02


def test_unknown_opcode_only_aborts_its_branch(engine_for, caplog):
    caplog.set_level(logging.ERROR, logger=ENGINE_LOGGER)
    engine = engine_for({
        0x8000: [0xF0, 0x03],        # BEQ $8005
        0x8002: [0x4C, 0x10, 0x80],  # JMP $8010
        0x8005: [0x02],              # illegal, only reachable via the BEQ
        0x8010: [0xA9, 0x00],        # LDA #$00
        0x8012: [0x60],              # RTS
    })

    result = engine.traverse(0x8000)

    assert [type(e) for e in result.errors] == [UnknownOpcode]
    assert heads(engine) == [
        (0x8000, "BEQ _label_8005"),
        (0x8002, "JMP _label_8010"),
        (0x8010, "LDA #$00"),
        (0x8012, "RTS"),
    ]
    assert isinstance(tag_at(engine, 0x8005), Unvisited)
    assert "Unknown opcode 0x02" in caplog.text


def test_jump_into_middle_of_instruction(engine_for):
    engine = engine_for({
        0x8000: [0xA9, 0x60],        # LDA #$60
        0x8002: [0x4C, 0x01, 0x80],  # JMP $8001
    })

    result = engine.traverse(0x8000)

    assert len(result.errors) == 1
    error = result.errors[0]
    assert type(error) is MidInstructionJump
    assert error.address == 0x8001
    assert error.owner == 0x8000
    assert heads(engine) == [(0x8000, "LDA #$60"), (0x8002, "JMP _label_8001")]


def test_hinted_entry_inside_instruction_is_reported(engine_for):
    engine = engine_for({
        0x8000: [0xAD, 0x00, 0x20],  # LDA $2000
        0x8003: [0x60],
    })
    engine.traverse(0x8000)

    result = engine.traverse(0x8002)

    assert isinstance(result.errors[0], MidInstructionJump)


def test_instruction_overlapping_decoded_bytes(engine_for):
    engine = engine_for({
        0x8000: [0xF0, 0x01],  # BEQ $8003
        0x8002: [0xAD],        # LDA abs, whose operand would swallow the RTS
        0x8003: [0x60],        # RTS
        0x8004: [0x00],
    })

    result = engine.traverse(0x8000)

    assert len(result.errors) == 1
    error = result.errors[0]
    assert isinstance(error, InstructionOverlap)
    assert isinstance(error, MidInstructionJump)
    assert error.address == 0x8002
    assert error.owner == 0x8003
    assert "overlaps already decoded byte $8003" in str(error)
    assert isinstance(tag_at(engine, 0x8002), Unvisited)
    assert tag_at(engine, 0x8003).text == "RTS"


def test_brk_reports_unresolved_target(engine_for, caplog):
    caplog.set_level(logging.WARNING, logger=ENGINE_LOGGER)
    engine = engine_for({
        0x8000: [0x00],  # BRK
        0x8001: [0x60],
    })

    result = engine.traverse(0x8000)

    assert result.ok
    assert tag_at(engine, 0x8000) == InstructionHead("BRK", 1, unknown_target=True)
    assert tag_at(engine, 0x8001).text == "RTS"
    assert engine.unresolved == [0x8000]
    assert "Unresolved branch target" in caplog.text


def test_indirect_jump_is_terminal_and_unresolved(engine_for):
    engine = engine_for({
        0x8000: [0x6C, 0x00, 0x02],  # JMP $(0200)
        0x8003: [0x60],
    })

    result = engine.traverse(0x8000)

    assert result.ok
    assert tag_at(engine, 0x8000) == InstructionHead("JMP $(0200)", 3, unknown_target=True)
    assert isinstance(tag_at(engine, 0x8003), Unvisited)
    assert len(engine.symbols) == 0


def test_zero_target_is_named_but_not_followed(engine_for):
    engine = engine_for({
        0x8000: [0x4C, 0x00, 0x00],  # JMP $0000
    })

    result = engine.traverse(0x8000)

    assert result.ok
    assert tag_at(engine, 0x8000) == InstructionHead("JMP _label_0", 3, unknown_target=False)
    assert list(engine.symbols) == [Symbol("_label_0", 0x0000)]


def test_target_outside_window_is_isolated(engine_for):
    engine = engine_for({
        0x8000: [0x20, 0x00, 0x03],  # JSR $0300 (RAM)
        0x8003: [0x60],
    })

    result = engine.traverse(0x8000)

    assert [type(e) for e in result.errors] == [AddressOutOfRange]
    assert result.errors[0].address == 0x0300
    assert tag_at(engine, 0x8000).text == "JSR _func_300"
    assert tag_at(engine, 0x8003).text == "RTS"


def test_running_off_the_end_of_the_window():
    engine = DisassemblyEngine(ProgramRom(bytes([0xEA]) * 0x8000))

    result = engine.traverse(0xFFFE)

    assert len(result.errors) == 1
    assert isinstance(result.errors[0], AddressOutOfRange)
    assert result.errors[0].address == 0x10000


def test_deep_call_chain_does_not_recurse(engine_for):
    code = {}
    address = 0x8000
    for _ in range(3000):
        nxt = address + 3
        code[address] = [0x20, nxt & 0xFF, nxt >> 8]  # JSR to the following instruction
        address = nxt
    code[address] = [0x60]
    engine = engine_for(code)

    result = engine.traverse(0x8000)

    assert result.ok
    assert result.decoded == 3001


def test_disassemble_program_registers_vectors_after_hints(make_prg):
    prg = make_prg({
        0x8000: [0x60],  # reset
        0x8100: [0x40],  # nmi
        0x8200: [0x40],  # irq
        0x9000: [0xA2, 0x00, 0x60],  # only reachable through a hint
    }, reset=0x8000, nmi=0x8100, irq=0x8200)
    hints = Hints(symbols=[Symbol("dispatch_target", 0x9000)], nonreturns=frozenset())

    result = disassemble_program(prg, hints)

    assert list(result.symbols) == [
        Symbol("dispatch_target", 0x9000),
        Symbol("nmi", 0x8100),
        Symbol("reset", 0x8000),
        Symbol("irq", 0x8200),
    ]
    assert [t.start for t in result.traversals] == [0x8100, 0x8000, 0x8200, 0x9000]
    assert result.errors == []
    assert result.decoded == 5


def test_disassemble_program_keeps_going_after_failed_entry(make_prg):
    prg = make_prg({
        0x8000: [0x60],
        0x9000: [0x02],
    })
    hints = Hints(symbols=[Symbol("bogus", 0x9000), Symbol("ram_var", 0x0300)], nonreturns=frozenset())

    result = disassemble_program(prg, hints)

    assert [type(e) for e in result.errors] == [UnknownOpcode, AddressOutOfRange]
    assert result.decoded == 1


@pytest.mark.parametrize("seed", [1, 7, 1234])
def test_random_image_keeps_heads_disjoint(seed):
    rng = random.Random(seed)
    prg = bytes(rng.randrange(256) for _ in range(0x8000))
    hints = Hints(
        symbols=[Symbol(f"hint_{i}", rng.randrange(0x8000, 0x10000)) for i in range(64)],
        nonreturns=frozenset(rng.randrange(0x8000, 0x10000) for _ in range(8)),
    )

    result = disassemble_program(prg, hints)

    tags = result.tags
    owner = [None] * len(tags)
    for offset, head in tags.heads():
        for i in range(offset, offset + head.length):
            assert owner[i] is None
            owner[i] = offset
    for offset, tag in enumerate(tags):
        if isinstance(tag, Continuation):
            assert owner[offset] == tag.owner
        elif isinstance(tag, Unvisited):
            assert owner[offset] is None
            assert tag.value == prg[offset]
        else:
            assert owner[offset] == offset

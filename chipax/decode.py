"""CHIP-8 instruction decoding."""

from enum import IntEnum
from typing import Optional

import jax.numpy as jnp
from chex import dataclass


class Instruction(IntEnum):
    """Closed set of base CHIP-8 instructions, in handler-table order."""
    SYS = 0          # 0NNN
    CLS = 1          # 00E0
    RET = 2          # 00EE
    JP = 3           # 1NNN
    CALL = 4         # 2NNN
    SE_VX_NN = 5     # 3XNN
    SNE_VX_NN = 6    # 4XNN
    SE_VX_VY = 7     # 5XY0
    LD_VX_NN = 8     # 6XNN
    ADD_VX_NN = 9    # 7XNN
    LD_VX_VY = 10    # 8XY0
    OR = 11          # 8XY1
    AND = 12         # 8XY2
    XOR = 13         # 8XY3
    ADD_VX_VY = 14   # 8XY4
    SUB = 15         # 8XY5
    SHR = 16         # 8XY6
    SUBN = 17        # 8XY7
    SHL = 18         # 8XYE
    SNE_VX_VY = 19   # 9XY0
    LD_I = 20        # ANNN
    JP_V0 = 21       # BNNN
    RND = 22         # CXNN
    DRW = 23         # DXYN
    SKP = 24         # EX9E
    SKNP = 25        # EXA1
    LD_VX_DT = 26    # FX07
    LD_VX_K = 27     # FX0A
    LD_DT_VX = 28    # FX15
    LD_ST_VX = 29    # FX18
    ADD_I_VX = 30    # FX1E
    LD_F_VX = 31     # FX29
    LD_B_VX = 32     # FX33
    LD_MEM_VX = 33   # FX55
    LD_VX_MEM = 34   # FX65


# Index used for words that match no entry of DECODE_TABLE
UNSUPPORTED = len(Instruction)

# (mask, pattern, instruction), searched in order; first match wins
DECODE_TABLE = (
    (0xFFFF, 0x00E0, Instruction.CLS),
    (0xFFFF, 0x00EE, Instruction.RET),
    (0xF000, 0x0000, Instruction.SYS),
    (0xF000, 0x1000, Instruction.JP),
    (0xF000, 0x2000, Instruction.CALL),
    (0xF000, 0x3000, Instruction.SE_VX_NN),
    (0xF000, 0x4000, Instruction.SNE_VX_NN),
    (0xF000, 0x5000, Instruction.SE_VX_VY),
    (0xF000, 0x6000, Instruction.LD_VX_NN),
    (0xF000, 0x7000, Instruction.ADD_VX_NN),
    (0xF000, 0x9000, Instruction.SNE_VX_VY),
    (0xF000, 0xA000, Instruction.LD_I),
    (0xF000, 0xB000, Instruction.JP_V0),
    (0xF000, 0xC000, Instruction.RND),
    (0xF000, 0xD000, Instruction.DRW),
    (0xF00F, 0x8000, Instruction.LD_VX_VY),
    (0xF00F, 0x8001, Instruction.OR),
    (0xF00F, 0x8002, Instruction.AND),
    (0xF00F, 0x8003, Instruction.XOR),
    (0xF00F, 0x8004, Instruction.ADD_VX_VY),
    (0xF00F, 0x8005, Instruction.SUB),
    (0xF00F, 0x8006, Instruction.SHR),
    (0xF00F, 0x8007, Instruction.SUBN),
    (0xF00F, 0x800E, Instruction.SHL),
    (0xF0FF, 0xE09E, Instruction.SKP),
    (0xF0FF, 0xE0A1, Instruction.SKNP),
    (0xF0FF, 0xF007, Instruction.LD_VX_DT),
    (0xF0FF, 0xF00A, Instruction.LD_VX_K),
    (0xF0FF, 0xF015, Instruction.LD_DT_VX),
    (0xF0FF, 0xF018, Instruction.LD_ST_VX),
    (0xF0FF, 0xF01E, Instruction.ADD_I_VX),
    (0xF0FF, 0xF029, Instruction.LD_F_VX),
    (0xF0FF, 0xF033, Instruction.LD_B_VX),
    (0xF0FF, 0xF055, Instruction.LD_MEM_VX),
    (0xF0FF, 0xF065, Instruction.LD_VX_MEM),
)

assert {entry[2] for entry in DECODE_TABLE} == set(Instruction), "decode table must cover every instruction"


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands."""
    raw: int
    kind: int    # Instruction index, UNSUPPORTED if no match
    opcode: int  # First nibble
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Fourth nibble (4-bit immediate)
    nn: int      # Last byte (8-bit immediate)
    nnn: int     # Last 12 bits (12-bit address)


def classify(instruction) -> jnp.ndarray:
    """Return the Instruction index of a (possibly traced) 16-bit word."""
    kind = jnp.asarray(UNSUPPORTED, dtype=jnp.int32)
    for mask, pattern, op in reversed(DECODE_TABLE):
        kind = jnp.where((instruction & mask) == pattern, int(op), kind)
    return kind


def lookup(instruction: int) -> Optional[Instruction]:
    """Host-side classification of a concrete word; None if unsupported."""
    for mask, pattern, op in DECODE_TABLE:
        if instruction & mask == pattern:
            return op
    return None


def decode(instruction: int) -> DecodedInstruction:
    """Decode 16-bit instruction into components."""
    return DecodedInstruction(
        raw=instruction,
        kind=classify(instruction),
        opcode=(instruction & 0xF000) >> 12,
        x=(instruction & 0x0F00) >> 8,
        y=(instruction & 0x00F0) >> 4,
        n=instruction & 0x000F,
        nn=instruction & 0x00FF,
        nnn=instruction & 0x0FFF
    )


_MNEMONICS = {
    Instruction.SYS: "SYS 0x{nnn:03X}",
    Instruction.CLS: "CLS",
    Instruction.RET: "RET",
    Instruction.JP: "JP 0x{nnn:03X}",
    Instruction.CALL: "CALL 0x{nnn:03X}",
    Instruction.SE_VX_NN: "SE V{x:X}, 0x{nn:02X}",
    Instruction.SNE_VX_NN: "SNE V{x:X}, 0x{nn:02X}",
    Instruction.SE_VX_VY: "SE V{x:X}, V{y:X}",
    Instruction.LD_VX_NN: "LD V{x:X}, 0x{nn:02X}",
    Instruction.ADD_VX_NN: "ADD V{x:X}, 0x{nn:02X}",
    Instruction.LD_VX_VY: "LD V{x:X}, V{y:X}",
    Instruction.OR: "OR V{x:X}, V{y:X}",
    Instruction.AND: "AND V{x:X}, V{y:X}",
    Instruction.XOR: "XOR V{x:X}, V{y:X}",
    Instruction.ADD_VX_VY: "ADD V{x:X}, V{y:X}",
    Instruction.SUB: "SUB V{x:X}, V{y:X}",
    Instruction.SHR: "SHR V{x:X}, V{y:X}",
    Instruction.SUBN: "SUBN V{x:X}, V{y:X}",
    Instruction.SHL: "SHL V{x:X}, V{y:X}",
    Instruction.SNE_VX_VY: "SNE V{x:X}, V{y:X}",
    Instruction.LD_I: "LD I, 0x{nnn:03X}",
    Instruction.JP_V0: "JP V0, 0x{nnn:03X}",
    Instruction.RND: "RND V{x:X}, 0x{nn:02X}",
    Instruction.DRW: "DRW V{x:X}, V{y:X}, {n}",
    Instruction.SKP: "SKP V{x:X}",
    Instruction.SKNP: "SKNP V{x:X}",
    Instruction.LD_VX_DT: "LD V{x:X}, DT",
    Instruction.LD_VX_K: "LD V{x:X}, K",
    Instruction.LD_DT_VX: "LD DT, V{x:X}",
    Instruction.LD_ST_VX: "LD ST, V{x:X}",
    Instruction.ADD_I_VX: "ADD I, V{x:X}",
    Instruction.LD_F_VX: "LD F, V{x:X}",
    Instruction.LD_B_VX: "LD B, V{x:X}",
    Instruction.LD_MEM_VX: "LD [I], V{x:X}",
    Instruction.LD_VX_MEM: "LD V{x:X}, [I]",
}


def disassemble(instruction: int) -> str:
    """Render a concrete instruction word as an assembler mnemonic."""
    instruction = int(instruction) & 0xFFFF
    op = lookup(instruction)
    if op is None:
        return f"???? 0x{instruction:04X}"
    return _MNEMONICS[op].format(
        x=(instruction & 0x0F00) >> 8,
        y=(instruction & 0x00F0) >> 4,
        n=instruction & 0x000F,
        nn=instruction & 0x00FF,
        nnn=instruction & 0x0FFF,
    )

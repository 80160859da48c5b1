"""CHIP-8 interpreter package."""

from chipax.state import EmulatorState, Fault, create_state
from chipax.emulator import (
    execute, fetch, step, tick, load_rom, run_frame, run_n_instruction,
    set_keypad, press_key, release_key, is_sound_on,
)
from chipax.decode import DecodedInstruction, Instruction, decode, disassemble
from chipax.errors import (
    Chip8Error, UnsupportedOpcodeError, ResourceExhaustedError, StackOverflowError,
    StackUnderflowError, RomTooLargeError, raise_for_fault,
)
from chipax.constants import *
from chipax.machine import Chip8Machine, MachineConfig

__all__ = [
    "EmulatorState",
    "Fault",
    "create_state",
    "fetch",
    "execute",
    "step",
    "tick",
    "load_rom",
    "run_frame",
    "run_n_instruction",
    "set_keypad",
    "press_key",
    "release_key",
    "is_sound_on",
    "DecodedInstruction",
    "Instruction",
    "decode",
    "disassemble",
    "Chip8Error",
    "UnsupportedOpcodeError",
    "ResourceExhaustedError",
    "StackOverflowError",
    "StackUnderflowError",
    "RomTooLargeError",
    "raise_for_fault",
    "Chip8Machine",
    "MachineConfig",
    "PROGRAM_START",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
]

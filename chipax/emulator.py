"""Main CHIP-8 emulator execution engine."""

from functools import partial
from typing import Sequence, Union

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import EmulatorState, Fault, create_state
from chipax.decode import Instruction, UNSUPPORTED, decode
from chipax.constants import PROGRAM_START, MAX_ROM_SIZE, MEMORY_SIZE, NUM_KEYS
from chipax.errors import RomTooLargeError
from chipax.instructions.system import execute_sys, execute_clear_screen, execute_return, execute_unsupported
from chipax.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_skip_if_key, execute_skip_if_not_key
)
from chipax.instructions.alu import (
    execute_alu_set, execute_alu_or, execute_alu_and, execute_alu_xor, execute_alu_add,
    execute_alu_sub_xy, execute_alu_shift_right, execute_alu_sub_yx, execute_alu_shift_left
)
from chipax.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chipax.instructions.display import execute_display
from chipax.instructions.misc import (
    execute_get_delay_timer, execute_wait_for_key, execute_set_delay_timer,
    execute_set_sound_timer, execute_add_to_index, execute_font_character,
    execute_bcd_conversion, execute_store_registers, execute_load_registers
)

HANDLERS = {
    Instruction.SYS: execute_sys,
    Instruction.CLS: execute_clear_screen,
    Instruction.RET: execute_return,
    Instruction.JP: execute_jump,
    Instruction.CALL: execute_call,
    Instruction.SE_VX_NN: execute_skip_if_equal_immediate,
    Instruction.SNE_VX_NN: execute_skip_if_not_equal_immediate,
    Instruction.SE_VX_VY: execute_skip_if_equal_register,
    Instruction.LD_VX_NN: execute_set,
    Instruction.ADD_VX_NN: execute_add,
    Instruction.LD_VX_VY: execute_alu_set,
    Instruction.OR: execute_alu_or,
    Instruction.AND: execute_alu_and,
    Instruction.XOR: execute_alu_xor,
    Instruction.ADD_VX_VY: execute_alu_add,
    Instruction.SUB: execute_alu_sub_xy,
    Instruction.SHR: execute_alu_shift_right,
    Instruction.SUBN: execute_alu_sub_yx,
    Instruction.SHL: execute_alu_shift_left,
    Instruction.SNE_VX_VY: execute_skip_if_not_equal_register,
    Instruction.LD_I: execute_set_index,
    Instruction.JP_V0: execute_jump_with_offset,
    Instruction.RND: execute_random,
    Instruction.DRW: execute_display,
    Instruction.SKP: execute_skip_if_key,
    Instruction.SKNP: execute_skip_if_not_key,
    Instruction.LD_VX_DT: execute_get_delay_timer,
    Instruction.LD_VX_K: execute_wait_for_key,
    Instruction.LD_DT_VX: execute_set_delay_timer,
    Instruction.LD_ST_VX: execute_set_sound_timer,
    Instruction.ADD_I_VX: execute_add_to_index,
    Instruction.LD_F_VX: execute_font_character,
    Instruction.LD_B_VX: execute_bcd_conversion,
    Instruction.LD_MEM_VX: execute_store_registers,
    Instruction.LD_VX_MEM: execute_load_registers,
}

assert set(HANDLERS) == set(Instruction), "every instruction needs a handler"

# Branch table for jax.lax.switch: position i handles Instruction(i), the last slot
# handles words that decode to nothing
BRANCHES = [HANDLERS[op] for op in sorted(Instruction)] + [execute_unsupported]

assert len(BRANCHES) == UNSUPPORTED + 1


def execute(state: EmulatorState, instruction: int) -> EmulatorState:
    """Execute single CHIP-8 instruction.

    The handler moves PC itself; ``state.opcode`` records the executed word.
    """
    decoded_instruction = decode(instruction)
    state = state.replace(opcode=jnp.astype(instruction, jnp.uint16))
    return jax.lax.switch(decoded_instruction.kind, BRANCHES, state, decoded_instruction)


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch(state: EmulatorState) -> jnp.uint16:
    """Fetch the big-endian instruction word at PC. PC is left unchanged."""
    pc = jnp.astype(state.pc, jnp.int32)
    return _pack_u16(state.memory[pc % MEMORY_SIZE], state.memory[(pc + 1) % MEMORY_SIZE])


def step(state: EmulatorState) -> EmulatorState:
    """Run one fetch-decode-execute cycle. A faulted state is returned unchanged."""
    return jax.lax.cond(
        state.fault == int(Fault.NONE),
        lambda s: execute(s, fetch(s)),
        lambda s: s,
        state
    )


def tick(state: EmulatorState) -> EmulatorState:
    """Apply one 60 Hz timer decrement; both timers saturate at zero."""
    return state.replace(
        delay_timer=jnp.astype(jnp.maximum(jnp.astype(state.delay_timer, jnp.int32) - 1, 0), jnp.uint8),
        sound_timer=jnp.astype(jnp.maximum(jnp.astype(state.sound_timer, jnp.int32) - 1, 0), jnp.uint8),
    )


def is_sound_on(state: EmulatorState) -> jnp.ndarray:
    """The buzzer sounds while the sound timer is non-zero."""
    return state.sound_timer > 0


def run_instruction(state, _):
    state = step(state)
    return state, state


@partial(jax.jit, static_argnums=1)
def run_n_instruction(state: EmulatorState, n: int) -> EmulatorState:
    """Run ``n`` cycles back to back."""
    state, _ = jax.lax.scan(run_instruction, state, length=n)
    return state


@partial(jax.jit, static_argnums=1)
def run_frame(state: EmulatorState, cycles: int) -> EmulatorState:
    """Run one 60 Hz frame: ``cycles`` instructions followed by a single timer tick.

    Timer updates and instruction execution share one thread of control, so an
    instruction never observes a half-applied tick.
    """
    state, _ = jax.lax.scan(run_instruction, state, length=cycles)
    return tick(state)


def load_rom(state: EmulatorState, data: Union[bytes, bytearray, Sequence[int]], strict: bool = False) -> EmulatorState:
    """Reset the machine and load a program image at 0x200.

    Bytes beyond the available space are dropped, unless ``strict`` is set, in
    which case an oversized image raises :class:`RomTooLargeError`. The rng key
    and quirk mode of ``state`` carry over to the fresh state.
    """
    rom_data = bytes(data)
    if len(rom_data) > MAX_ROM_SIZE:
        if strict:
            raise RomTooLargeError(len(rom_data), MAX_ROM_SIZE)
        rom_data = rom_data[:MAX_ROM_SIZE]

    state = create_state(state.rng, modern_mode=state.modern_mode)
    if not rom_data:
        return state
    rom_array = jnp.array(list(rom_data), dtype=jnp.uint8)
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(rom_data)].set(rom_array)
    return state.replace(memory=new_memory)


def set_keypad(state: EmulatorState, keys: Sequence[bool]) -> EmulatorState:
    """Replace the whole keypad with 16 key states."""
    keypad = jnp.asarray(keys, dtype=jnp.bool_)
    if keypad.shape != (NUM_KEYS,):
        raise ValueError(f"Expected {NUM_KEYS} key states, got shape {keypad.shape}")
    return state.replace(keypad=keypad)


def press_key(state: EmulatorState, key: int) -> EmulatorState:
    return state.replace(keypad=state.keypad.at[key & 0xF].set(True))


def release_key(state: EmulatorState, key: int) -> EmulatorState:
    return state.replace(keypad=state.keypad.at[key & 0xF].set(False))

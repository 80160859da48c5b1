"""CHIP-8 miscellaneous instructions (Exxx timers, keys, index and memory blocks)."""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import EmulatorState, advance
from chipax.decode import DecodedInstruction
from chipax.constants import FONT_START, GLYPH_SIZE, ADDRESS_MASK, MEMORY_SIZE, NUM_REGISTERS


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return advance(state.replace(V=state.V.at[instruction.x].set(state.delay_timer)))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return advance(state.replace(delay_timer=state.V[instruction.x]))


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return advance(state.replace(sound_timer=state.V[instruction.x]))


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I, wrapping inside the address space. VF is untouched."""
    new_i = (state.I + jnp.astype(state.V[instruction.x], jnp.uint16)) & ADDRESS_MASK
    return advance(state.replace(I=jnp.astype(new_i, jnp.uint16)))


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press.

    Without a pressed key PC stays put, so the instruction runs again next cycle.
    """
    def key_pressed_action(state):
        pressed_key = jnp.argmax(state.keypad)
        return advance(state.replace(V=state.V.at[instruction.x].set(jnp.astype(pressed_key, jnp.uint8))))

    return jax.lax.cond(jnp.any(state.keypad), key_pressed_action, lambda s: s, state)


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    digit = jnp.astype(state.V[instruction.x] & 0xF, jnp.uint16)
    return advance(state.replace(I=jnp.astype(FONT_START + digit * GLYPH_SIZE, jnp.uint16)))


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = state.V[instruction.x]

    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    indices = (jnp.astype(state.I, jnp.int32) + jnp.arange(3)) % MEMORY_SIZE
    return advance(state.replace(memory=state.memory.at[indices].set(digits)))


def _block_indices(state: EmulatorState, instruction: DecodedInstruction):
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = (jnp.astype(state.I, jnp.int32) + jnp.arange(NUM_REGISTERS)) % MEMORY_SIZE
    return register_mask, base_indices


def _legacy_index(state: EmulatorState, instruction: DecodedInstruction) -> jnp.ndarray:
    return jnp.astype((state.I + instruction.x + 1) & ADDRESS_MASK, jnp.uint16)


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX (inclusive) in memory starting at I."""
    register_mask, base_indices = _block_indices(state, instruction)
    current_memory_values = state.memory[base_indices]
    new_memory_values = jnp.where(register_mask, state.V, current_memory_values)
    new_memory = state.memory.at[base_indices].set(new_memory_values)

    if state.modern_mode:
        return advance(state.replace(memory=new_memory))
    else:
        return advance(state.replace(memory=new_memory, I=_legacy_index(state, instruction)))


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX (inclusive) from memory starting at I."""
    register_mask, base_indices = _block_indices(state, instruction)
    memory_values = state.memory[base_indices]
    new_V = jnp.where(register_mask, memory_values, state.V)

    if state.modern_mode:
        return advance(state.replace(V=new_V))
    else:
        return advance(state.replace(V=new_V, I=_legacy_index(state, instruction)))

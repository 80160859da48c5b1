"""CHIP-8 memory and register operations."""

import jax
import jax.numpy as jnp
from chipax.state import EmulatorState, advance
from chipax.decode import DecodedInstruction


def execute_set(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """6XNN - Set VX = NN."""
    return advance(state.replace(V=state.V.at[instruction.x].set(instruction.nn)))


def execute_add(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """7XNN - Add NN to VX, wrapping at 8 bits; VF is untouched."""
    result = jnp.astype((jnp.astype(state.V[instruction.x], jnp.int32) + instruction.nn) & 0xFF, jnp.uint8)
    return advance(state.replace(V=state.V.at[instruction.x].set(result)))


def execute_set_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """ANNN - Set I = NNN."""
    return advance(state.replace(I=jnp.astype(instruction.nnn, jnp.uint16)))


def execute_random(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """CXNN - Set VX = random & NN."""
    key, subkey = jax.random.split(state.rng)
    random_value = jax.random.bits(subkey, shape=(), dtype=jnp.uint8)
    new_V = state.V.at[instruction.x].set(random_value & jnp.astype(instruction.nn, jnp.uint8))
    return advance(state.replace(V=new_V, rng=key))

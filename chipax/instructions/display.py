"""CHIP-8 display operations."""

import jax.numpy as jnp
from chipax.state import EmulatorState, advance
from chipax.decode import DecodedInstruction
from chipax.constants import SCREEN_WIDTH, SCREEN_HEIGHT, MEMORY_SIZE, FLAG_REGISTER

SPRITE_WIDTH = 8

# Pre-computed coordinate grids for display operations
xx, yy = jnp.meshgrid(jnp.arange(SCREEN_WIDTH), jnp.arange(SCREEN_HEIGHT), indexing='ij')


def sprite_mask(memory: jnp.ndarray, index: jnp.ndarray, x: jnp.ndarray, y: jnp.ndarray, height) -> jnp.ndarray:
    """Boolean screen-sized mask of the pixels lit by an 8xN sprite at (x, y).

    The sprite wraps on both axes; sprite rows are read from ``memory[index + row]``
    with addresses wrapping at the end of memory.
    """
    sprite_x = jnp.astype(x, jnp.int32) % SCREEN_WIDTH
    sprite_y = jnp.astype(y, jnp.int32) % SCREEN_HEIGHT

    col_offset = (xx - sprite_x) % SCREEN_WIDTH
    row_offset = (yy - sprite_y) % SCREEN_HEIGHT
    in_sprite = (col_offset < SPRITE_WIDTH) & (row_offset < height)

    addresses = (jnp.astype(index, jnp.int32) + row_offset) % MEMORY_SIZE
    sprite_bytes = jnp.astype(memory[addresses], jnp.int32)
    bit = (sprite_bytes >> jnp.clip(SPRITE_WIDTH - 1 - col_offset, 0, SPRITE_WIDTH - 1)) & 1
    return (bit == 1) & in_sprite


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N, VF = collision."""
    sprite = sprite_mask(state.memory, state.I, state.V[instruction.x], state.V[instruction.y], instruction.n)
    collision = jnp.any(state.display & sprite)

    return advance(state.replace(
        display=state.display ^ sprite,
        V=state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8))
    ))

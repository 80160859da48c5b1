"""CHIP-8 emulator state structures."""

from enum import IntEnum

import jax
import jax.numpy as jnp
from flax.struct import dataclass, PyTreeNode, field

from chipax.constants import (
    PROGRAM_START, FONT_START, FONT_DATA, MEMORY_SIZE, ADDRESS_MASK, SCREEN_WIDTH, SCREEN_HEIGHT,
    STACK_SIZE, NUM_REGISTERS, NUM_KEYS,
)


class Fault(IntEnum):
    """Fatal conditions that halt the interpreter."""
    NONE = 0
    UNSUPPORTED_OPCODE = 1
    STACK_OVERFLOW = 2
    STACK_UNDERFLOW = 3


@dataclass(frozen=True)
class StackState:
    """Stack state for subroutine calls."""
    data: jnp.ndarray = field(default_factory=lambda: jnp.zeros(STACK_SIZE, dtype=jnp.uint16))
    pointer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))


class EmulatorState(PyTreeNode):
    """Main CHIP-8 emulator state.

    The display is stored column-major as ``display[x, y]``. ``opcode`` holds the
    last fetched instruction word and ``fault`` a :class:`Fault` code; once a
    fault is recorded the engine stops advancing.
    """
    rng: jax.random.PRNGKey
    memory: jnp.ndarray = field(default_factory=lambda: jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8))
    pc: jnp.ndarray = field(default_factory=lambda: jnp.astype(PROGRAM_START, jnp.uint16))
    display: jnp.ndarray = field(default_factory=lambda: jnp.zeros((SCREEN_WIDTH, SCREEN_HEIGHT), dtype=jnp.bool_))
    stack: StackState = field(default_factory=lambda: StackState())
    delay_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    sound_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    keypad: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_KEYS, dtype=jnp.bool_))
    V: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8))
    I: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    opcode: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    fault: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    modern_mode: bool = field(pytree_node=False, default=True)


def create_state(rng: jax.random.PRNGKey = jax.random.PRNGKey(0), modern_mode: bool = True) -> EmulatorState:
    """Create initial emulator state with font data loaded."""
    state = EmulatorState(rng, modern_mode=modern_mode)
    return state.replace(memory=state.memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(FONT_DATA))


def raise_fault(state: EmulatorState, fault: Fault) -> EmulatorState:
    """Record a fatal fault, leaving the rest of the state untouched."""
    return state.replace(fault=jnp.asarray(int(fault), dtype=jnp.uint8))


def advance(state: EmulatorState, amount: int = 2) -> EmulatorState:
    """Move PC forward by ``amount`` bytes, wrapping inside the address space."""
    return state.replace(pc=jnp.astype((state.pc + amount) & ADDRESS_MASK, jnp.uint16))

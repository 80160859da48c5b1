"""CHIP-8 system instructions (0x0xxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import EmulatorState, Fault, advance, raise_fault
from chipax.decode import DecodedInstruction
from chipax.stack import pop, is_empty


def execute_sys(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """0NNN - Machine code routine; ignored by the interpreter."""
    return advance(state)


def execute_clear_screen(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00E0 - Clear display."""
    return advance(state.replace(display=jnp.zeros_like(state.display)))


def execute_return(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00EE - Return from subroutine.

    The stack holds the address of the CALL itself, so execution resumes one
    instruction past it.
    """
    def _return(state):
        stack, address = pop(state.stack)
        return advance(state.replace(stack=stack, pc=address))

    return jax.lax.cond(
        is_empty(state.stack),
        lambda s: raise_fault(s, Fault.STACK_UNDERFLOW),
        _return,
        state
    )


def execute_unsupported(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Any word outside the base instruction set halts the machine."""
    return raise_fault(state, Fault.UNSUPPORTED_OPCODE)

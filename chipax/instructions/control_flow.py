"""CHIP-8 control flow instructions."""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.constants import ADDRESS_MASK
from chipax.state import EmulatorState, Fault, advance, raise_fault
from chipax.decode import DecodedInstruction
from chipax.stack import push, is_full


def execute_jump(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return state.replace(pc=jnp.astype(instruction.nnn, jnp.uint16))


def execute_call(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """2NNN - Call subroutine at NNN.

    The address of the CALL itself is pushed; RET skips past it.
    """
    def _call(state):
        state = state.replace(stack=push(state.stack, state.pc))
        return execute_jump(state, instruction)

    return jax.lax.cond(
        is_full(state.stack),
        lambda s: raise_fault(s, Fault.STACK_OVERFLOW),
        _call,
        state
    )


def make_skip_instruction(condition_fn):
    """Factory for skip instructions."""
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        condition = condition_fn(state, instruction)
        return jax.lax.cond(
            condition,
            lambda s: advance(s, 4),
            lambda s: advance(s, 2),
            state
        )
    return skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
)

execute_skip_if_not_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
)

execute_skip_if_key = make_skip_instruction(
    lambda state, inst: state.keypad[state.V[inst.x] & 0xF]
)

execute_skip_if_not_key = make_skip_instruction(
    lambda state, inst: ~state.keypad[state.V[inst.x] & 0xF]
)


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BNNN - Jump to address NNN + V0."""
    jump_address = (jnp.astype(instruction.nnn, jnp.uint16) + jnp.astype(state.V[0], jnp.uint16)) & ADDRESS_MASK
    return state.replace(pc=jnp.astype(jump_address, jnp.uint16))

"""Engine: FLAT/LONG position state machine."""

from strategy_engine.engine.state_machine import BarInputs, PositionStateMachine, Transition, step

__all__ = ["BarInputs", "PositionStateMachine", "Transition", "step"]

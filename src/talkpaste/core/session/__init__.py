from .state_machine import Session, SessionState, SessionStateMachine

__all__ = ["Session", "SessionState", "SessionStateMachine"]

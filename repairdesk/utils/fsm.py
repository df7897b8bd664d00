from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Designed for lightweight lifecycle models (RepairTicket, Appointment).
Usage:
    from repairdesk.utils.fsm import TransitionValidator
    TICKET_FSM = TransitionValidator({
        'new': {'in_progress', 'cancelled'},
        'in_progress': {'completed'},
        'completed': set(),
    }, entity='ticket')
    TICKET_FSM.assert_can_transition(current_status, target_status)

Raises InvalidTransition if the target is not reachable from the current state.
"""
from typing import Dict, FrozenSet, Iterable, Set
from repairdesk.errors import InvalidTransition

class TransitionValidator:
    def __init__(self, graph: Dict[str, Iterable[str]], entity: str = 'entity'):
        self.graph: Dict[str, FrozenSet[str]] = {k: frozenset(v) for k, v in graph.items()}
        self.entity = entity

    @property
    def states(self) -> Set[str]:
        return set(self.graph)

    def allowed(self, current: str) -> FrozenSet[str]:
        return self.graph.get(current, frozenset())

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.allowed(current)

    def is_terminal(self, state: str) -> bool:
        return not self.allowed(state)

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise InvalidTransition(self.entity, current, target)
        return True

__all__ = ['TransitionValidator']

from repairdesk.errors import InvalidTransition
from repairdesk.utils.fsm import TransitionValidator
from repairdesk.utils.validation import optional_identifier, require_fields, validate_status
from repairdesk.errors import ValidationError
import pytest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()}, entity='widget')
    with pytest.raises(InvalidTransition) as exc:
        fsm.assert_can_transition('A', 'C')
    assert exc.value.context == {'entity': 'widget', 'current': 'A', 'requested': 'C'}


def test_unknown_state_is_terminal():
    fsm = TransitionValidator({'A': {'B'}})
    assert fsm.is_terminal('B')
    assert fsm.allowed('Z') == frozenset()
    assert fsm.states == {'A'}


def test_validate_status_helper():
    assert validate_status('new', ('new', 'cancelled')) == 'new'
    with pytest.raises(ValidationError) as exc:
        validate_status('NEW', ('new', 'cancelled'))
    assert exc.value.context['allowed'] == ['new', 'cancelled']
    with pytest.raises(ValidationError):
        validate_status(None, ('new',))


def test_optional_identifier_and_required_fields():
    assert optional_identifier(None, 'assigned_to') is None
    assert optional_identifier('  ', 'assigned_to') is None
    assert optional_identifier(' u1 ', 'assigned_to') == 'u1'
    with pytest.raises(ValidationError):
        optional_identifier(5, 'assigned_to')
    with pytest.raises(ValidationError) as exc:
        require_fields({'name': ''}, 'name', 'customer_id')
    assert exc.value.context['missing'] == ['name', 'customer_id']

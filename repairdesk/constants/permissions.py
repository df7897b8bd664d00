"""Central enum-like definitions to avoid typos in permission/service strings.
Extend cautiously; never rename codes silently, add new ones and retire old ones.
"""
from __future__ import annotations
from typing import List, Dict

SERVICES = ['CUSTOMER', 'TICKET', 'APPT']

SERVICE_ACTIONS = {
    'CUSTOMER': ['READ', 'MANAGE', 'DELETE'],
    'TICKET': ['READ', 'MANAGE', 'ASSIGN', 'CHANGE_STATUS'],
    'APPT': ['READ', 'MANAGE', 'ASSIGN'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

ROLE_PRESETS: Dict[str, List[str]] = {
    'Technician': ['CUSTOMER.READ', 'TICKET.READ', 'TICKET.CHANGE_STATUS', 'TICKET.ASSIGN', 'APPT.READ'],
    'FrontDesk': ['CUSTOMER.READ', 'CUSTOMER.MANAGE', 'TICKET.READ', 'TICKET.MANAGE', 'APPT.READ', 'APPT.MANAGE', 'APPT.ASSIGN'],
    # Manager: everything except removing customers
    'Manager': [c for c in ALL_PERMISSION_CODES if c != 'CUSTOMER.DELETE'],
    'Admin': ['*'],
}


def expand_role(role: str) -> List[str]:
    codes = ROLE_PRESETS.get(role, [])
    if '*' in codes:
        return list(ALL_PERMISSION_CODES)
    return list(codes)
